"""Tests for auction status derivation and live bid broadcasts."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from auctionhouse.services.auction_service import get_auction_status
from auctionhouse.services.ws_manager import ConnectionManager, broadcast_bid_placed


class TestAuctionStatus:

    def _auction(self, start: datetime, end: datetime) -> SimpleNamespace:
        return SimpleNamespace(start_time=start, end_time=end)

    def test_statuses(self):
        start = datetime(2026, 5, 1, 10, 0)
        end = datetime(2026, 5, 1, 12, 0)
        auction = self._auction(start, end)

        before = datetime(2026, 5, 1, 9, 59, tzinfo=timezone.utc)
        during = datetime(2026, 5, 1, 11, 0, tzinfo=timezone.utc)
        at_end = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)

        assert get_auction_status(auction, now=before) == "upcoming"
        assert get_auction_status(auction, now=during) == "active"
        assert get_auction_status(auction, now=at_end) == "ended"

    def test_start_is_inclusive(self):
        start = datetime(2026, 5, 1, 10, 0)
        auction = self._auction(start, start + timedelta(hours=1))

        assert get_auction_status(auction, now=start.replace(tzinfo=timezone.utc)) == "active"


def _websocket() -> MagicMock:
    ws = MagicMock()
    ws.accept = AsyncMock()
    ws.send_json = AsyncMock()
    return ws


class TestConnectionManager:

    @pytest.mark.asyncio
    async def test_broadcast_only_reaches_room(self):
        manager = ConnectionManager()
        in_room, other_room = _websocket(), _websocket()
        await manager.connect("a1", "c1", in_room)
        await manager.connect("a2", "c2", other_room)

        sent = await manager.broadcast_to_auction("a1", {"event": "ping"})

        assert sent == 1
        in_room.send_json.assert_awaited_once_with({"event": "ping"})
        other_room.send_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_send_drops_connection(self):
        manager = ConnectionManager()
        healthy, broken = _websocket(), _websocket()
        broken.send_json.side_effect = RuntimeError("closed")
        await manager.connect("a1", "ok", healthy)
        await manager.connect("a1", "gone", broken)

        sent = await manager.broadcast_to_auction("a1", {"event": "ping"})

        assert sent == 1
        assert manager.get_room_size("a1") == 1

    @pytest.mark.asyncio
    async def test_disconnect_removes_empty_room(self):
        manager = ConnectionManager()
        await manager.connect("a1", "c1", _websocket())

        await manager.disconnect("a1", "c1")

        assert manager.get_room_size("a1") == 0
        assert "a1" not in manager.active_connections

    @pytest.mark.asyncio
    async def test_empty_room(self):
        assert await ConnectionManager().broadcast_to_auction("nobody", {}) == 0


class TestBidPlacedEvent:

    @pytest.mark.asyncio
    async def test_event_payload(self):
        manager = ConnectionManager()
        ws = _websocket()
        await manager.connect("a1", "c1", ws)

        with patch("auctionhouse.services.ws_manager.manager", manager):
            sent = await broadcast_bid_placed(
                auction_id="a1",
                item_id="i1",
                bid_id="b1",
                amount=Decimal("105.00"),
                new_current_price=Decimal("105.00"),
            )

        assert sent == 1
        message = ws.send_json.call_args[0][0]
        assert message["event"] == "bid_placed"
        assert message["data"]["item_id"] == "i1"
        assert Decimal(message["data"]["new_current_price"]) == Decimal("105.00")
        assert "timestamp" in message["data"]
