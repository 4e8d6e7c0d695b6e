from __future__ import annotations

import json

import httpx
import pytest

from ppm_checker.exceptions import RateLimitedError
from ppm_checker.notifications import NotificationQueue, WebhookSender
from ppm_checker.notifications.webhook import redact_url, split_message

URL = "https://chat.example.test/api/webhooks/1/secret-token"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_split_message_prefers_newlines() -> None:
    text = "a" * 30 + "\n" + "b" * 30
    assert split_message(text, max_len=40) == ["a" * 30, "b" * 30]
    assert split_message("", max_len=40) == [""]
    assert all(len(part) <= 10 for part in split_message("x" * 35, max_len=10))


def test_redact_url_hides_token() -> None:
    assert redact_url(URL) == "https://chat.example.test/api/webhooks/1/<redacted>"


@pytest.mark.asyncio
async def test_send_posts_each_chunk() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == URL
        seen.append(json.loads(request.content))
        return httpx.Response(204)

    async with _client(handler) as client:
        sender = WebhookSender(client, {"700": URL}, max_len=10, username="PPMChecker")
        await sender.send("700", "x" * 25)

    assert [p["content"] for p in seen] == ["x" * 10, "x" * 10, "x" * 5]
    assert all(p["username"] == "PPMChecker" for p in seen)


@pytest.mark.asyncio
async def test_rate_limit_raises_with_retry_after() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"retry_after": 2.5})

    async with _client(handler) as client:
        sender = WebhookSender(client, {"700": URL})
        with pytest.raises(RateLimitedError) as excinfo:
            await sender.send("700", "hello")

    assert excinfo.value.retry_after == 2.5
    assert "secret-token" not in excinfo.value.message


@pytest.mark.asyncio
async def test_rate_limit_falls_back_to_header() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, headers={"Retry-After": "4"}, text="slow down")

    async with _client(handler) as client:
        with pytest.raises(RateLimitedError) as excinfo:
            await WebhookSender(client, {"700": URL}).send("700", "hello")

    assert excinfo.value.retry_after == 4.0


@pytest.mark.asyncio
async def test_server_error_raises_status_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    async with _client(handler) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await WebhookSender(client, {"700": URL}).send("700", "hello")


@pytest.mark.asyncio
async def test_unknown_channel_raises_lookup_error() -> None:
    async with _client(lambda request: httpx.Response(204)) as client:
        with pytest.raises(LookupError):
            await WebhookSender(client, {}).send("700", "hello")


@pytest.mark.asyncio
async def test_rate_limit_mid_message_reports_undelivered_parts() -> None:
    statuses = [204, 429]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(statuses.pop(0), json={"retry_after": 1})

    async with _client(handler) as client:
        sender = WebhookSender(client, {"700": URL}, max_len=10)
        with pytest.raises(RateLimitedError) as excinfo:
            await sender.send("700", "aaaaaaaaaa\nbbbbbbbbbb\nccccc")

    assert excinfo.value.remaining_content == "bbbbbbbbbb\nccccc"


@pytest.mark.asyncio
async def test_first_part_rate_limit_keeps_whole_message() -> None:
    async with _client(lambda request: httpx.Response(429)) as client:
        with pytest.raises(RateLimitedError) as excinfo:
            await WebhookSender(client, {"700": URL}, max_len=10).send("700", "aaaaaaaaaa\nbbbbb")

    assert excinfo.value.remaining_content is None


@pytest.mark.asyncio
async def test_queue_retry_does_not_repost_delivered_parts() -> None:
    statuses = [204, 429, 204, 204]
    delivered: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        status = statuses.pop(0)
        if status < 400:
            delivered.append(json.loads(request.content)["content"])
        return httpx.Response(status)

    async def no_wait(seconds: float) -> None:
        pass

    async with _client(handler) as client:
        sender = WebhookSender(client, {"700": URL}, max_len=10)
        queue = NotificationQueue(sender.send, min_interval=0, rate_limit_backoff=0, sleep=no_wait)
        queue.enqueue("aaaaaaaaaa\nbbbbbbbbbb\nccccc", "700")
        await queue.join()

    assert delivered == ["aaaaaaaaaa", "bbbbbbbbbb", "ccccc"]
    assert statuses == []
    assert queue.sent_count == 1
