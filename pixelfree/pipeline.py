from __future__ import annotations

from typing import Collection, Iterable

from .photo import PhotoRecord
from .query import TagMode


def dedupe_by_id(records: Iterable[PhotoRecord]) -> list[PhotoRecord]:
    """Keep the first record seen for each id, preserving order."""
    out: list[PhotoRecord] = []
    seen: set[str] = set()
    for record in records:
        if record.id in seen:
            continue
        seen.add(record.id)
        out.append(record)
    return out


def _newest_first_key(record: PhotoRecord) -> tuple[bool, float]:
    if record.created_at is None:
        return True, 0.0
    return False, -record.created_at.timestamp()


def sort_newest_first(records: Iterable[PhotoRecord]) -> list[PhotoRecord]:
    # sorted() is stable, so equal timestamps keep their merge order
    return sorted(records, key=_newest_first_key)


def finalize_photos(records: Iterable[PhotoRecord], limit: int) -> list[PhotoRecord]:
    """Dedupe by id, sort newest first (missing timestamps last), then truncate."""
    return sort_newest_first(dedupe_by_id(records))[: max(0, int(limit))]


def matches_tags(record: PhotoRecord, wanted: Collection[str], mode: TagMode) -> bool:
    """`wanted` must already be normalized (lowercase, no leading '#')."""
    if not wanted:
        return True
    if mode is TagMode.ALL:
        return all(tag in record.tags for tag in wanted)
    return any(tag in record.tags for tag in wanted)


def filter_by_tags(
    records: Iterable[PhotoRecord],
    wanted: Collection[str],
    mode: TagMode,
) -> list[PhotoRecord]:
    return [r for r in records if matches_tags(r, wanted, mode)]
