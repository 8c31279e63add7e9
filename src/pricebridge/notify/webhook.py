from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

import aiohttp
import structlog

log = structlog.get_logger("webhook")


class WebhookError(RuntimeError):
    """Webhook answered 2xx but not with what we need (e.g. no message id)."""


# --------- config & client ----------

@dataclass(slots=True)
class WebhookConfig:
    url: str
    timeout_s: float = 10.0
    wait_for_message: bool = True   # Discord only returns the message body with ?wait=true


class WebhookPublisher:
    """
    Create / edit one chat message through a Discord-style webhook.
      create: POST  <url>                    {"content": ...} -> {"id": ...}
      edit:   PATCH <url>/messages/<id>      {"content": ...}

    Errors propagate (aiohttp.ClientResponseError for HTTP >= 400,
    aiohttp.ClientError / asyncio.TimeoutError for transport, WebhookError for
    a create reply without an id); retry policy belongs to the caller.
    """
    def __init__(self, cfg: WebhookConfig, session: Optional[aiohttp.ClientSession] = None):
        self.cfg = cfg
        self._session = session
        self._owns_session = session is None

    async def start(self):
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.cfg.timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True

    async def stop(self):
        if self._session and self._owns_session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "WebhookPublisher":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    def message_url(self, message_id: str) -> str:
        return f"{self.cfg.url.rstrip('/')}/messages/{message_id}"

    async def create(self, content: str) -> str:
        assert self._session is not None, "call start() first"
        params = {"wait": "true"} if self.cfg.wait_for_message else None
        async with self._session.post(self.cfg.url, json={"content": content}, params=params) as resp:
            if resp.status >= 400:
                detail = await _maybe_text(resp)
                log.warning("webhook_create_rejected", status=resp.status, body=detail[:300])
            resp.raise_for_status()
            try:
                data = await resp.json(content_type=None)
            except ValueError as e:
                raise WebhookError(f"create reply is not JSON: {e}") from e
        msg_id = data.get("id") if isinstance(data, dict) else None
        if not msg_id:
            raise WebhookError("create reply has no message id")
        return str(msg_id)

    async def edit(self, message_id: str, content: str) -> None:
        assert self._session is not None, "call start() first"
        async with self._session.patch(self.message_url(message_id), json={"content": content}) as resp:
            if resp.status >= 400:
                detail = await _maybe_text(resp)
                log.warning("webhook_edit_rejected", status=resp.status, message_id=message_id, body=detail[:300])
            resp.raise_for_status()


PUBLISH_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, WebhookError)


async def _maybe_text(resp: aiohttp.ClientResponse) -> str:
    try:
        return await resp.text()
    except Exception:
        return "<no body>"
