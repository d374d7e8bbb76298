from __future__ import annotations

from typing import Any

import httpx

OFFLINE_TOKEN = "offline-token"

_ACCOUNTS: dict[str, dict[str, Any]] = {
    "alice": {
        "id": "101",
        "acct": "alice",
        "username": "alice",
        "display_name": "Alice",
        "avatar": "https://offline.example/avatars/alice.png",
        "url": "https://offline.example/@alice",
    },
    "bob@remote.example": {
        "id": "202",
        "acct": "bob@remote.example",
        "username": "bob",
        "display_name": "Bob",
        "avatar": "https://remote.example/avatars/bob.png",
        "url": "https://remote.example/@bob",
    },
}


def _image(media_id: str) -> dict[str, Any]:
    return {
        "id": media_id,
        "type": "image",
        "url": f"https://offline.example/media/{media_id}.jpg",
        "preview_url": f"https://offline.example/media/{media_id}_s.jpg",
    }


def _status(
    status_id: str,
    acct: str,
    created_at: str,
    tags: list[str],
    media: list[dict[str, Any]],
) -> dict[str, Any]:
    return {
        "id": status_id,
        "created_at": created_at,
        "content": f"<p>Offline post {status_id}</p>",
        "url": f"https://offline.example/p/{status_id}",
        "account": _ACCOUNTS[acct],
        "tags": [{"name": t} for t in tags],
        "media_attachments": media,
    }


_STATUSES: list[dict[str, Any]] = [
    _status("1", "alice", "2025-01-05T10:00:00Z", ["Otters", "nature"], [_image("m1")]),
    _status("2", "alice", "2025-01-04T10:00:00Z", ["hiking"], [_image("m2"), _image("m3")]),
    _status("3", "bob@remote.example", "2025-01-03T10:00:00Z", ["otters"], [_image("m4")]),
    _status(
        "4",
        "bob@remote.example",
        "2025-01-02T10:00:00Z",
        ["otters"],
        [{"id": "v1", "type": "video", "url": "https://offline.example/media/v1.mp4"}],
    ),
    _status("5", "alice", "2025-01-01T10:00:00Z", [], []),
]


def _limited(items: list[dict[str, Any]], request: httpx.Request) -> list[dict[str, Any]]:
    try:
        limit = int(request.url.params.get("limit", "20"))
    except ValueError:
        limit = 20
    return items[: max(0, limit)]


def _find_account(query: str) -> dict[str, Any] | None:
    q = (query or "").strip().lstrip("@")
    return _ACCOUNTS.get(q)


def _handler(request: httpx.Request) -> httpx.Response:
    if request.headers.get("Authorization") != f"Bearer {OFFLINE_TOKEN}":
        return httpx.Response(401, json={"error": "The access token is invalid"})

    path = request.url.path
    params = request.url.params

    if path == "/api/v2/search":
        account = _find_account(params.get("q", ""))
        return httpx.Response(200, json={"accounts": [account] if account else []})

    if path == "/api/v1/accounts/lookup":
        account = _find_account(params.get("acct", ""))
        if account is None:
            return httpx.Response(404, json={"error": "Record not found"})
        return httpx.Response(200, json=account)

    if path == "/api/v1/accounts/search":
        account = _find_account(params.get("q", ""))
        return httpx.Response(200, json=[account] if account else [])

    if path.startswith("/api/v1/timelines/tag/"):
        tag = path.rsplit("/", 1)[-1].casefold()
        items = [
            s for s in _STATUSES if any(t["name"].casefold() == tag for t in s["tags"])
        ]
        return httpx.Response(200, json=_limited(items, request))

    if path.startswith("/api/v1/accounts/") and path.endswith("/statuses"):
        account_id = path.split("/")[4]
        items = [s for s in _STATUSES if s["account"]["id"] == account_id]
        return httpx.Response(200, json=_limited(items, request))

    if path == "/api/v1/timelines/public":
        items = list(_STATUSES)
        if params.get("local") == "true":
            items = [s for s in items if "@" not in s["account"]["acct"]]
        return httpx.Response(200, json=_limited(items, request))

    return httpx.Response(404, json={"error": "Not found"})


def offline_transport() -> httpx.MockTransport:
    """In-process stand-in for a small Pixelfed instance, used by `--offline`."""
    return httpx.MockTransport(_handler)
