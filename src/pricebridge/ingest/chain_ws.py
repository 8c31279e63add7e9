from __future__ import annotations

import asyncio
import itertools
import json
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol

import structlog
from web3 import Web3
from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed

from pricebridge.ingest import parser
from pricebridge.ingest.chain import DEFAULT_CONTRACT_ADDRESS, PRICE_SETTING_SELECTOR
from pricebridge.utils.types import PriceLog, StreamState


class PriceSource(Protocol):
    async def get_price(self) -> float: ...


@dataclass(slots=True)
class ChainWSConfig:
    ws_url: str
    contract_address: str = DEFAULT_CONTRACT_ADDRESS
    selector: str = PRICE_SETTING_SELECTOR
    # reconnect behavior: fixed delay, retried forever
    reconnect_delay_s: float = 5.0
    # timeouts
    open_timeout_s: float = 10.0
    subscribe_timeout_s: float = 10.0
    ping_interval_s: float = 20.0
    recv_timeout_s: float = 5.0


class SubscriptionError(RuntimeError):
    pass


class ChainLogStream:
    """
    eth_subscribe("logs") client for the price contract, with its own
    connection supervisor.

    Lifecycle:
      connecting -> subscribed -> (closed | errored) -> connecting -> ...
      - connecting: open websocket, send eth_subscribe, wait for the ack
      - subscribed: read notifications; logs matching the price-setting
        selector trigger a getPrice() read which is handed to `on_price`
      - closed/errored: warn, wait reconnect_delay_s, reconnect
    Runs until stop(). Per-event failures (bad JSON, unparsable log, RPC
    read or publish errors) are logged and never leave `subscribed`.

    Usage:
        stream = ChainLogStream(ChainWSConfig(ws_url=...), reader, notifier.publish_price)
        await stream.start()
    """
    def __init__(
        self,
        cfg: ChainWSConfig,
        reader: PriceSource,
        on_price: Callable[[float], Awaitable[object]],
    ):
        self.cfg = cfg
        self.reader = reader
        self.on_price = on_price
        self.address = Web3.to_checksum_address(cfg.contract_address)

        self._log = structlog.get_logger("chain_ws")
        self._stop = asyncio.Event()
        self._ws = None
        self._ids = itertools.count(1)

        self.state: StreamState = "idle"
        self.subscription_id: Optional[str] = None
        self.connects: int = 0
        self.matched: int = 0
        self.ignored: int = 0

    # ---------------------------- public API ---------------------------- #

    async def start(self) -> None:
        while not self._stop.is_set():
            try:
                await self._connect_and_stream()
                if self._stop.is_set():
                    break
                self.state = "closed"
                self._log.warning("ws_stream_ended_reconnect", delay_s=self.cfg.reconnect_delay_s)
            except ConnectionClosed as e:
                if self._stop.is_set():
                    break
                self.state = "closed"
                self._log.warning("ws_closed_reconnect", code=_close_code(e), reason=str(e),
                                  delay_s=self.cfg.reconnect_delay_s)
            except Exception as e:
                if self._stop.is_set():
                    break
                self.state = "errored"
                self._log.warning("ws_error_reconnect", err=str(e), err_type=type(e).__name__,
                                  delay_s=self.cfg.reconnect_delay_s)
            await self._sleep_unless_stopped(self.cfg.reconnect_delay_s)
        self.state = "idle"
        self._log.info("ws_loop_exit")

    async def stop(self) -> None:
        self._stop.set()
        if self._ws and hasattr(self._ws, "close"):
            try:
                await self._ws.close()
            except Exception as e:
                self._log.debug("ws_close_error", err=str(e))

    # --------------------------- core internals ------------------------- #

    async def _connect_and_stream(self) -> None:
        """
        Connect, subscribe, then stream notifications. Returns on stop() or when
        the server ends the stream; raises on connection failure/closure.
        """
        self.state = "connecting"
        self.subscription_id = None
        self._ws = None
        self._log.info("ws_connecting", url=self.cfg.ws_url)

        async with ws_connect(
            self.cfg.ws_url,
            open_timeout=self.cfg.open_timeout_s,
            ping_interval=self.cfg.ping_interval_s,
        ) as ws:
            self._ws = ws
            self.connects += 1
            await self._subscribe(ws)
            self.state = "subscribed"
            await self._stream_loop(ws)

    def subscribe_request(self) -> dict:
        return {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": "eth_subscribe",
            "params": ["logs", {"address": self.address}],
        }

    async def _subscribe(self, ws) -> None:
        req = self.subscribe_request()
        await ws.send(json.dumps(req))
        try:
            raw = await asyncio.wait_for(ws.recv(), timeout=self.cfg.subscribe_timeout_s)
        except asyncio.TimeoutError:
            raise SubscriptionError("eth_subscribe ack timed out")
        try:
            resp = json.loads(raw)
        except ValueError as e:
            raise SubscriptionError(f"eth_subscribe ack is not JSON: {e}")
        if not isinstance(resp, dict) or "error" in resp or not resp.get("result"):
            raise SubscriptionError(f"eth_subscribe rejected: {str(resp)[:200]}")
        self.subscription_id = str(resp["result"])
        self._log.info("ws_subscribed", address=self.address, subscription=self.subscription_id)

    async def _stream_loop(self, ws) -> None:
        while not self._stop.is_set():
            try:
                raw = await asyncio.wait_for(ws.recv(), timeout=self.cfg.recv_timeout_s)
            except asyncio.TimeoutError:
                # quiet contract; just re-check the stop flag
                continue

            try:
                msg = json.loads(raw)
            except ValueError as e:
                self._log.warning("ws_json_error", err=str(e))
                continue

            log_ = self.match(msg)
            if log_ is None:
                continue
            await self._handle_price_log(log_)

        self._log.info("ws_stream_loop_exit")

    # --------------------------- helpers -------------------------------- #

    def match(self, msg) -> Optional[PriceLog]:
        """Parse a notification and keep it only if it is a price-setting log."""
        log_ = parser.parse_log_msg(msg)
        if log_ is None or not parser.is_price_setting_log(log_, self.cfg.selector, self.address):
            self.ignored += 1
            self._log.debug("log_ignored", snippet=str(msg)[:200])
            return None
        self.matched += 1
        return log_

    async def _handle_price_log(self, log_: PriceLog) -> None:
        try:
            price = await self.reader.get_price()
        except Exception as e:
            self._log.error("price_fetch_failed", err=str(e), err_type=type(e).__name__,
                            tx=log_.tx_hash, block=log_.block_number)
            return
        self._log.info("price_setting_log", tx=log_.tx_hash, block=log_.block_number, price=price)
        try:
            await self.on_price(price)
        except Exception as e:
            self._log.error("price_handler_failed", err=str(e), err_type=type(e).__name__)

    async def _sleep_unless_stopped(self, delay: float) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass


def _close_code(e: ConnectionClosed) -> Optional[int]:
    rcvd = getattr(e, "rcvd", None)
    return getattr(rcvd, "code", None)
