from __future__ import annotations

from dataclasses import dataclass, field

import httpx

from ..exceptions import RateLimitedError

WEBHOOK_MAX_MESSAGE_LEN = 2000


def split_message(text: str, *, max_len: int = WEBHOOK_MAX_MESSAGE_LEN) -> list[str]:
    s = (text or "").strip()
    if not s:
        return [""]

    max_len = max(1, int(max_len))
    parts: list[str] = []
    while s:
        if len(s) <= max_len:
            parts.append(s)
            break
        cut = s.rfind("\n", 0, max_len + 1)
        if cut < max_len * 0.6:
            cut = max_len
        chunk = s[:cut].rstrip()
        parts.append(chunk)
        s = s[cut:].lstrip()
    return parts


def redact_url(url: str) -> str:
    head, sep, _token = url.rpartition("/")
    return f"{head}{sep}<redacted>" if sep else "<redacted>"


@dataclass
class WebhookSender:
    """Delivers notifications through channel-keyed webhook URLs.

    Can stand in for ``HostBindings.send`` when the host offers no way to post
    plain messages.
    """

    client: httpx.AsyncClient
    webhooks: dict[str, str] = field(default_factory=dict)
    max_len: int = WEBHOOK_MAX_MESSAGE_LEN
    username: str | None = None

    async def send(self, channel_id: str, content: str) -> None:
        url = self.webhooks.get(channel_id)
        if not url:
            raise LookupError(f"No webhook configured for channel {channel_id}")

        parts = split_message(content, max_len=self.max_len)
        for index, part in enumerate(parts):
            payload: dict = {"content": part}
            if self.username:
                payload["username"] = self.username
            resp = await self.client.post(url, json=payload, timeout=15.0)
            if resp.status_code == 429:
                raise RateLimitedError(
                    f"Webhook rate limited ({redact_url(url)})",
                    retry_after=_retry_after(resp),
                    remaining_content="\n".join(parts[index:]) if index else None,
                )
            if resp.status_code >= 400:
                raise httpx.HTTPStatusError(
                    f"Webhook returned {resp.status_code} ({redact_url(url)})",
                    request=resp.request,
                    response=resp,
                )


def _retry_after(resp: httpx.Response) -> float | None:
    try:
        data = resp.json()
    except ValueError:
        data = {}
    value = data.get("retry_after") if isinstance(data, dict) else None
    if value is None:
        value = resp.headers.get("Retry-After")
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None
