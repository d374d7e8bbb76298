from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import ValidationError as PydanticValidationError

from .accounts import AccountResolver, ResolutionBatch
from .aggregate import PhotoAggregator
from .errors import PixelfreeError, ResolutionError, ValidationError
from .event_log import EventLogger
from .photo import PhotoRecord
from .query import (
    CompoundQuery,
    PublicQuery,
    Query,
    TagMode,
    TagQuery,
    UserQuery,
    normalize_ids,
    normalize_tags,
)
from .query_schema import QueryPayload

QUERY_TYPES = ("tag", "user", "compound", "public")


@dataclass(frozen=True)
class QueryResult:
    photos: tuple[PhotoRecord, ...]
    errors: tuple[ResolutionError, ...] = ()

    def to_json(self) -> Any:
        """Bare photo list, or {photos, errors} when some handles failed."""
        photos = [p.to_json() for p in self.photos]
        if not self.errors:
            return photos
        return {"photos": photos, "errors": [e.to_json() for e in self.errors]}


def _parse_payload(payload: Mapping[str, Any]) -> QueryPayload:
    if not isinstance(payload, Mapping):
        raise ValidationError("query payload must be an object")
    try:
        return QueryPayload.model_validate(dict(payload))
    except PydanticValidationError as e:
        details = [
            {
                "loc": ".".join(str(part) for part in item.get("loc", [])),
                "msg": item.get("msg", "invalid value"),
            }
            for item in e.errors()
        ]
        raise ValidationError("invalid query payload", meta={"errors": details}) from e


class QueryDispatcher:
    """
    Classifies a query payload, resolves handles, and routes it to the aggregator.

    Per-handle resolution failures are collected and returned next to the
    photos; they only fail the query when no usable dimension remains.
    """

    def __init__(
        self,
        aggregator: PhotoAggregator,
        resolver: AccountResolver,
        *,
        logger: EventLogger | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._resolver = resolver
        self._logger = logger

    async def _resolve_users(self, body: QueryPayload) -> tuple[tuple[str, ...], ResolutionBatch]:
        batch = await self._resolver.resolve_many(body.all_accts())
        ids = normalize_ids(list(body.all_account_ids()) + list(batch.account_ids))
        return ids, batch

    async def build_query(self, body: QueryPayload) -> tuple[Query, tuple[ResolutionError, ...]]:
        if body.type not in QUERY_TYPES:
            raise ValidationError("unsupported query type", meta={"type": body.type})

        limit = self._aggregator.clamp_limit(body.limit)

        if body.type == "public":
            return PublicQuery(local_only=body.local_only, limit=limit), ()

        if body.type == "tag":
            tag_mode = TagMode.parse(body.tag_mode)
            tags = normalize_tags(body.tags)
            if not tags:
                raise ValidationError("tags required")
            return TagQuery(tags=tags, tag_mode=tag_mode, limit=limit), ()

        tag_mode = TagMode.parse(body.tag_mode) if body.type == "compound" else TagMode.ANY
        ids, batch = await self._resolve_users(body)
        failures = [e.to_json() for e in batch.errors]

        if body.type == "user":
            if not ids:
                raise ValidationError(
                    "users required",
                    meta={"errors": failures} if failures else None,
                )
            return UserQuery(account_ids=ids, limit=limit), batch.errors

        tags = normalize_tags(body.tags)
        if not tags and not ids:
            raise ValidationError(
                "tags or users required",
                meta={"errors": failures} if failures else None,
            )
        return (
            CompoundQuery(tags=tags, account_ids=ids, tag_mode=tag_mode, limit=limit),
            batch.errors,
        )

    async def dispatch(self, payload: Mapping[str, Any]) -> QueryResult:
        body = _parse_payload(payload)
        log = self._logger.bind(query_type=body.type) if self._logger is not None else None

        try:
            query, errors = await self.build_query(body)
            photos = await self._aggregator.run(query)
        except PixelfreeError as e:
            if log is not None:
                log.warning("query_failed", code=e.code, message=e.message)
            raise

        if log is not None:
            log.info(
                "query_completed",
                limit=query.limit,
                photos=len(photos),
                handle_errors=len(errors),
            )
        return QueryResult(photos=tuple(photos), errors=tuple(errors))
