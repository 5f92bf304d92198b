"""Outbound SMS for verification codes.

Delivery itself is out of scope for this service; the only sender logs the
dispatch so an operator (or a developer with DEBUG on) can see it.
"""

import logging
from typing import Protocol

from auctionhouse.core.config import settings

logger = logging.getLogger(__name__)


class SmsSender(Protocol):
    async def send_verification_code(self, phone_number: str, code: str) -> None: ...


class LoggingSmsSender:
    """SmsSender that writes to the log instead of a carrier."""

    def __init__(self, reveal_codes: bool | None = None):
        self.reveal_codes = settings.DEBUG if reveal_codes is None else reveal_codes

    async def send_verification_code(self, phone_number: str, code: str) -> None:
        if self.reveal_codes:
            logger.info(f"Verification code for {phone_number}: {code}")
        else:
            logger.info(f"Verification code dispatched to {phone_number}")
