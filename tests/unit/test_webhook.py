import aiohttp
import pytest

from pricebridge.notify.webhook import WebhookConfig, WebhookError, WebhookPublisher
from tests.helpers.fakes import FakeResponse, FakeSession

URL = "https://hooks.test/api/webhooks/1/token"


@pytest.mark.asyncio
async def test_create_posts_content_and_returns_id():
    session = FakeSession(FakeResponse(200, {"id": "111", "content": "x"}))
    pub = WebhookPublisher(WebhookConfig(url=URL), session=session)

    msg_id = await pub.create("hello")

    assert msg_id == "111"
    method, url, kwargs = session.requests[0]
    assert method == "POST" and url == URL
    assert kwargs["json"] == {"content": "hello"}
    assert kwargs["params"] == {"wait": "true"}


@pytest.mark.asyncio
async def test_edit_patches_message_url():
    session = FakeSession(FakeResponse(200, {"id": "111"}))
    pub = WebhookPublisher(WebhookConfig(url=URL + "/"), session=session)

    await pub.edit("111", "updated")

    method, url, kwargs = session.requests[0]
    assert method == "PATCH"
    assert url == URL + "/messages/111"
    assert kwargs["json"] == {"content": "updated"}


@pytest.mark.asyncio
async def test_http_error_raises_client_response_error():
    session = FakeSession(FakeResponse(404, {"message": "Unknown Message"}))
    pub = WebhookPublisher(WebhookConfig(url=URL), session=session)
    with pytest.raises(aiohttp.ClientResponseError):
        await pub.edit("gone", "x")


@pytest.mark.asyncio
async def test_create_without_id_raises():
    session = FakeSession(FakeResponse(200, {}))
    pub = WebhookPublisher(WebhookConfig(url=URL), session=session)
    with pytest.raises(WebhookError):
        await pub.create("x")


@pytest.mark.asyncio
async def test_injected_session_is_not_closed():
    session = FakeSession()
    async with WebhookPublisher(WebhookConfig(url=URL), session=session):
        pass
    assert session.closed is False


@pytest.mark.asyncio
async def test_owned_session_lifecycle():
    pub = WebhookPublisher(WebhookConfig(url=URL, timeout_s=1.0))
    await pub.start()
    assert isinstance(pub._session, aiohttp.ClientSession)
    await pub.stop()
    assert pub._session is None
