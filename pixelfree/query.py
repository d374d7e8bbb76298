from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Union

from .errors import ValidationError
from .normalize import normalize_tag

DEFAULT_LIMIT = 20
MAX_LIMIT = 40


class TagMode(str, Enum):
    ANY = "any"
    ALL = "all"

    @classmethod
    def parse(cls, value: Any) -> "TagMode":
        if isinstance(value, TagMode):
            return value
        text = (str(value) if value is not None else "").strip().casefold()
        if not text:
            return cls.ANY
        try:
            return cls(text)
        except ValueError:
            raise ValidationError(
                "tagMode must be 'any' or 'all'",
                meta={"tagMode": str(value)},
            ) from None


def clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


def clamp_limit(value: Any, *, default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> int:
    """
    Clamp a requested limit into 1..maximum; non-numeric input takes the default.

    The maximum itself never exceeds MAX_LIMIT.
    """
    maximum = clamp(maximum, 1, MAX_LIMIT)
    if isinstance(value, bool) or value is None:
        return clamp(default, 1, maximum)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return clamp(default, 1, maximum)
    if math.isnan(number):
        return clamp(default, 1, maximum)
    if math.isinf(number):
        return maximum if number > 0 else 1
    return clamp(int(number), 1, maximum)


def normalize_tags(values: Iterable[Any]) -> tuple[str, ...]:
    out: list[str] = []
    seen: set[str] = set()
    for value in values:
        tag = normalize_tag(value)
        if not tag or tag in seen:
            continue
        seen.add(tag)
        out.append(tag)
    return tuple(out)


def normalize_ids(values: Iterable[Any]) -> tuple[str, ...]:
    out: list[str] = []
    seen: set[str] = set()
    for value in values:
        if value is None or isinstance(value, bool):
            continue
        ident = str(value).strip()
        if not ident or ident in seen:
            continue
        seen.add(ident)
        out.append(ident)
    return tuple(out)


@dataclass(frozen=True)
class TagQuery:
    tags: tuple[str, ...]
    tag_mode: TagMode = TagMode.ANY
    limit: int = DEFAULT_LIMIT

    def __post_init__(self) -> None:
        if not self.tags:
            raise ValidationError("tags required")


@dataclass(frozen=True)
class UserQuery:
    account_ids: tuple[str, ...]
    limit: int = DEFAULT_LIMIT

    def __post_init__(self) -> None:
        if not self.account_ids:
            raise ValidationError("users required")


@dataclass(frozen=True)
class CompoundQuery:
    tags: tuple[str, ...]
    account_ids: tuple[str, ...]
    tag_mode: TagMode = TagMode.ANY
    limit: int = DEFAULT_LIMIT

    def __post_init__(self) -> None:
        if not self.tags and not self.account_ids:
            raise ValidationError("tags or users required")


@dataclass(frozen=True)
class PublicQuery:
    local_only: bool = False
    limit: int = DEFAULT_LIMIT


Query = Union[TagQuery, UserQuery, CompoundQuery, PublicQuery]
