from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol

import structlog


class PriceSource(Protocol):
    async def get_price(self) -> float: ...


@dataclass(slots=True)
class PollerConfig:
    interval_s: float = 30.0


class PricePoller:
    """
    Query the price once immediately, then every interval_s, and hand each
    reading to `on_price` (PriceNotifier.publish_if_changed decides whether it
    is new). Fetch errors are logged and the next tick proceeds as usual.

    The next tick is scheduled from the start of the previous one, so a slow
    RPC call doesn't stretch the cadence.
    """
    def __init__(
        self,
        reader: PriceSource,
        on_price: Callable[[float], Awaitable[object]],
        cfg: Optional[PollerConfig] = None,
    ):
        self.reader = reader
        self.on_price = on_price
        self.cfg = cfg or PollerConfig()
        self._log = structlog.get_logger("poller")
        self._stop = asyncio.Event()
        self.cycles = 0

    async def start(self) -> None:
        self._log.info("poller_started", interval_s=self.cfg.interval_s)
        loop = asyncio.get_running_loop()
        while not self._stop.is_set():
            started = loop.time()
            await self.poll_once()
            delay = max(0.0, self.cfg.interval_s - (loop.time() - started))
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
        self._log.info("poller_exit", cycles=self.cycles)

    async def stop(self) -> None:
        self._stop.set()

    async def poll_once(self) -> None:
        self.cycles += 1
        try:
            price = await self.reader.get_price()
        except Exception as e:
            # RPC hiccups, decode errors, ... -> skip this tick
            self._log.error("price_fetch_failed", err=str(e), err_type=type(e).__name__)
            return
        try:
            await self.on_price(price)
        except Exception as e:
            self._log.error("price_handler_failed", err=str(e), err_type=type(e).__name__)
