from __future__ import annotations

from typing import Any

import httpx

from pixelfree.api_client import PixelfedClient
from pixelfree.retry import RetryConfig

TOKEN = "t0ken"

NO_RETRY = RetryConfig(max_attempts=1, base_delay_seconds=0.0, max_delay_seconds=0.0, jitter_ratio=0.0)


async def no_sleep(_: float) -> None:
    return None


def image(media_id: str, url: str | None = None) -> dict[str, Any]:
    return {
        "id": media_id,
        "type": "image",
        "url": url or f"https://cdn.example/{media_id}.jpg",
        "preview_url": f"https://cdn.example/{media_id}_s.jpg",
    }


def status(
    status_id: str,
    *,
    created_at: str | None = "2025-01-01T00:00:00Z",
    tags: list[str] | None = None,
    media: list[dict[str, Any]] | None = None,
    account_id: str = "42",
) -> dict[str, Any]:
    return {
        "id": status_id,
        "created_at": created_at,
        "content": f"<p>post {status_id}</p>",
        "url": f"https://social.example/p/{status_id}",
        "account": {
            "id": account_id,
            "acct": f"user{account_id}",
            "username": f"user{account_id}",
            "display_name": f"User {account_id}",
            "avatar": f"https://social.example/a/{account_id}.png",
        },
        "tags": [{"name": t} for t in (tags or [])],
        "media_attachments": media if media is not None else [image(f"m{status_id}")],
    }


class FakeInstance:
    """Programmable upstream served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.search: dict[str, list[dict[str, Any]]] = {}
        self.lookup: dict[str, dict[str, Any]] = {}
        self.account_search: dict[str, list[dict[str, Any]]] = {}
        self.tag_timelines: dict[str, list[dict[str, Any]]] = {}
        self.user_timelines: dict[str, list[dict[str, Any]]] = {}
        self.public: list[dict[str, Any]] = []
        self.failures: dict[str, list[int]] = {}
        self.requests: list[httpx.Request] = []

    def fail(self, path: str, *codes: int) -> None:
        """Answer the next len(codes) requests for `path` with these statuses."""
        self.failures.setdefault(path, []).extend(codes)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def _limited(self, items: list[dict[str, Any]], request: httpx.Request) -> list[dict[str, Any]]:
        limit = int(request.url.params.get("limit", "20"))
        return items[:limit]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params

        queued = self.failures.get(path)
        if queued:
            return httpx.Response(queued.pop(0), json={"error": "forced"})

        if path == "/api/v2/search":
            return httpx.Response(200, json={"accounts": self.search.get(params["q"], [])})
        if path == "/api/v1/accounts/lookup":
            account = self.lookup.get(params["acct"])
            if account is None:
                return httpx.Response(404, json={"error": "Record not found"})
            return httpx.Response(200, json=account)
        if path == "/api/v1/accounts/search":
            return httpx.Response(200, json=self.account_search.get(params["q"], []))
        if path.startswith("/api/v1/timelines/tag/"):
            tag = path.rsplit("/", 1)[-1]
            return httpx.Response(200, json=self._limited(self.tag_timelines.get(tag, []), request))
        if path.startswith("/api/v1/accounts/") and path.endswith("/statuses"):
            account_id = path.split("/")[4]
            return httpx.Response(
                200, json=self._limited(self.user_timelines.get(account_id, []), request)
            )
        if path == "/api/v1/timelines/public":
            return httpx.Response(200, json=self._limited(self.public, request))
        return httpx.Response(404, json={"error": "Not found"})

    def client(self, *, retry: RetryConfig | None = None) -> PixelfedClient:
        return PixelfedClient(
            "https://social.example",
            transport=httpx.MockTransport(self.handle),
            retry=retry or NO_RETRY,
            sleep_fn=no_sleep,
        )
