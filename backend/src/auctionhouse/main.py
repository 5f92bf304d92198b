import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auctionhouse.api.v1 import auctions, auth, bids, items, ws
from auctionhouse.core.config import settings
from auctionhouse.core.database import engine
from auctionhouse.core.logging import configure_logging
from auctionhouse.core.redis import close_redis
from auctionhouse.middleware.metrics import PrometheusMiddleware, metrics_endpoint

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    configure_logging()
    logger.info("Starting auction house API...")

    yield

    logger.info("Shutting down: closing Redis and database connections")
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title="Auction House",
    version="1.0.0",
    description="Auctions, items, bids and phone-verified bidders",
    lifespan=lifespan,
)

# Prometheus Metrics Middleware (added first so it wraps everything else)
app.add_middleware(PrometheusMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include API routers
app.include_router(auth.router, prefix="/api/v1/auth", tags=["auth"])
app.include_router(auctions.router, prefix="/api/v1/auctions", tags=["auctions"])
app.include_router(items.router, prefix="/api/v1/items", tags=["items"])
app.include_router(bids.router, prefix="/api/v1/bids", tags=["bids"])

# WebSocket router (endpoint is /ws/auctions/{auction_id})
app.include_router(ws.router, tags=["websocket"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


app.add_route("/metrics", metrics_endpoint)
