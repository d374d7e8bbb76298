from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class PhotoAuthor:
    account_id: str | None = None
    handle: str | None = None
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    profile_url: str | None = None

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.account_id,
            "acct": self.handle,
            "username": self.username,
            "display_name": self.display_name,
            "avatar": self.avatar_url,
            "url": self.profile_url,
        }


@dataclass(frozen=True)
class PhotoRecord:
    """One displayable image, flattened from a status and one of its attachments."""

    id: str
    media_url: str
    preview_url: str
    created_at: datetime | None = None
    caption_html: str = ""
    post_url: str | None = None
    author: PhotoAuthor | None = None
    location: Any = None
    tags: frozenset[str] = field(default_factory=frozenset)

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.media_url,
            "preview_url": self.preview_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "caption": self.caption_html,
            "post_url": self.post_url,
            "author": self.author.to_json() if self.author else None,
            "location": self.location,
            "tags": sorted(self.tags),
        }
