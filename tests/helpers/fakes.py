import asyncio
import json
from types import SimpleNamespace

import aiohttp


class FakeReader:
    """Stand-in for PriceReader: returns scripted prices; Exception items are raised."""
    def __init__(self, prices):
        self.prices = list(prices)
        self.calls = 0

    async def get_price(self) -> float:
        self.calls += 1
        item = self.prices.pop(0) if len(self.prices) > 1 else self.prices[0]
        if isinstance(item, Exception):
            raise item
        return item


class FakePublisher:
    """Records create/edit calls; `fail_next` makes the next call raise."""
    def __init__(self, next_id="1001"):
        self.next_id = next_id
        self.created = []
        self.edited = []
        self.fail_next = None
        self.delay = 0.0

    async def _maybe_fail(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_next is not None:
            e, self.fail_next = self.fail_next, None
            raise e

    async def create(self, content: str) -> str:
        await self._maybe_fail()
        self.created.append(content)
        return self.next_id

    async def edit(self, message_id: str, content: str) -> None:
        await self._maybe_fail()
        self.edited.append((message_id, content))


# ---- aiohttp.ClientSession stand-in ----

class FakeResponse:
    def __init__(self, status=200, body=None):
        self.status = status
        self._body = body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientResponseError(
                SimpleNamespace(real_url="https://hooks.test/webhook"),
                (),
                status=self.status,
                message="fake error",
            )

    async def json(self, content_type="application/json"):
        if isinstance(self._body, str):
            return json.loads(self._body)
        return self._body

    async def text(self):
        return self._body if isinstance(self._body, str) else json.dumps(self._body)


class FakeSession:
    """Queue FakeResponses (or exceptions) per call; captures (method, url, kwargs)."""
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []
        self.closed = False

    def _next(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def post(self, url, **kwargs):
        return self._next("POST", url, **kwargs)

    def patch(self, url, **kwargs):
        return self._next("PATCH", url, **kwargs)

    async def close(self):
        self.closed = True
