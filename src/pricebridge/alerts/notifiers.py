# src/pricebridge/alerts/notifiers.py
from __future__ import annotations
import asyncio
import os
from typing import Callable, Optional, Protocol

import structlog

from pricebridge.alerts.formatting import format_price_update
from pricebridge.alerts.state import NotificationState
from pricebridge.notify.webhook import PUBLISH_ERRORS
from pricebridge.utils.time import utc_now_ms
from storage.state_file import save_state

log = structlog.get_logger("notifier")


class MessagePublisher(Protocol):
    async def create(self, content: str) -> str: ...
    async def edit(self, message_id: str, content: str) -> None: ...


class PriceNotifier:
    """
    Owns the NotificationState and runs one format -> send -> commit -> persist
    cycle per price. Cycles are serialized with a lock, so a slow webhook call
    can't interleave with the next poll tick or log event.

    State is only committed (memory + disk) after the webhook accepted the
    message; a failed send leaves everything as it was, so the next cycle
    retries the same create-vs-edit branch.
    """
    def __init__(
        self,
        publisher: MessagePublisher,
        state: NotificationState,
        data_file: str | os.PathLike,
        now_ms: Optional[Callable[[], int]] = None,
    ):
        self.publisher = publisher
        self.state = state
        self.data_file = data_file
        self._now_ms = now_ms or utc_now_ms
        self._lock = asyncio.Lock()

    @property
    def previous_price(self) -> Optional[float]:
        return self.state.previous_price

    async def publish_if_changed(self, price: float) -> bool:
        """Poll-mode gate: publish only when the price differs from the last published one."""
        async with self._lock:
            if price == self.state.previous_price:
                log.debug("price_unchanged", price=price)
                return False
            return await self._publish_locked(price)

    async def publish_price(self, price: float) -> bool:
        async with self._lock:
            return await self._publish_locked(price)

    async def _publish_locked(self, price: float) -> bool:
        content, pending = format_price_update(price, self.state, self._now_ms())

        try:
            if pending.message_id:
                await self.publisher.edit(pending.message_id, content)
                action = "edit"
            else:
                pending.message_id = await self.publisher.create(content)
                action = "create"
        except PUBLISH_ERRORS as e:
            log.error("webhook_publish_failed", err=str(e), err_type=type(e).__name__,
                      had_message_id=bool(self.state.message_id))
            return False

        pending.previous_price = price
        self.state = pending
        log.info("price_updated", action=action, message_id=pending.message_id, content=content)

        try:
            save_state(self.data_file, self.state)
        except OSError as e:
            # already published; in-memory state stays committed
            log.error("state_persist_failed", path=str(self.data_file), err=str(e))
        return True
