from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from .photo import PhotoAuthor, PhotoRecord


def _coerce_str(value: Any) -> str | None:
    if isinstance(value, str):
        s = value.strip()
        return s if s else None
    return None


def _coerce_id(value: Any) -> str | None:
    if isinstance(value, str):
        v = value.strip()
        return v if v else None
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    raw = _coerce_str(value)
    if raw is None:
        return None
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_tag(value: Any) -> str | None:
    s = _coerce_str(value)
    if s is None:
        return None
    if s.startswith("#"):
        s = s[1:].strip()
    return s.casefold() or None


def _status_tags(value: Any) -> frozenset[str]:
    if not isinstance(value, list):
        return frozenset()

    out: set[str] = set()
    for item in value:
        name = item.get("name") if isinstance(item, Mapping) else item
        tag = normalize_tag(name)
        if tag:
            out.add(tag)
    return frozenset(out)


def _status_author(value: Any) -> PhotoAuthor | None:
    if not isinstance(value, Mapping):
        return None

    username = _coerce_str(value.get("username"))
    return PhotoAuthor(
        account_id=_coerce_id(value.get("id")),
        handle=_coerce_str(value.get("acct")) or username,
        username=username,
        display_name=_coerce_str(value.get("display_name")),
        avatar_url=_coerce_str(value.get("avatar")),
        profile_url=_coerce_str(value.get("url")),
    )


def _status_location(status: Mapping[str, Any]) -> Any:
    for key in ("location", "place", "geo"):
        value = status.get(key)
        if value:
            return value
    return None


def photo_records_from_status(status: Any) -> list[PhotoRecord]:
    """
    Flatten one upstream status into one PhotoRecord per image attachment.

    Statuses without image attachments (text-only, video-only) yield nothing.
    """
    if not isinstance(status, Mapping):
        return []

    attachments = status.get("media_attachments")
    if not isinstance(attachments, list):
        return []

    status_id = _coerce_id(status.get("id")) or _coerce_str(status.get("uri")) or ""
    created_at = parse_timestamp(status.get("created_at"))
    content = status.get("content")
    caption = content if isinstance(content, str) else ""
    post_url = _coerce_str(status.get("url"))
    author = _status_author(status.get("account"))
    location = _status_location(status)
    tags = _status_tags(status.get("tags"))

    out: list[PhotoRecord] = []
    for index, media in enumerate(attachments):
        if not isinstance(media, Mapping):
            continue
        if media.get("type") != "image":
            continue
        media_url = _coerce_str(media.get("url"))
        if not media_url:
            continue

        media_id = _coerce_id(media.get("id")) or str(index)
        out.append(
            PhotoRecord(
                id=f"{status_id}:{media_id}",
                media_url=media_url,
                preview_url=_coerce_str(media.get("preview_url")) or media_url,
                created_at=created_at,
                caption_html=caption,
                post_url=post_url,
                author=author,
                location=location,
                tags=tags,
            )
        )
    return out


def photo_records_from_statuses(payload: Any) -> list[PhotoRecord]:
    if not isinstance(payload, list):
        return []

    out: list[PhotoRecord] = []
    for status in payload:
        out.extend(photo_records_from_status(status))
    return out
