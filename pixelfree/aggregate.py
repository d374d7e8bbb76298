from __future__ import annotations

import asyncio
import math
from typing import Awaitable, Iterable, Sequence

from .api_client import ApiResponse, PixelfedClient
from .auth import AccessTokenProvider
from .config_schema import QueryConfig
from .errors import ValidationError
from .event_log import EventLogger
from .normalize import photo_records_from_statuses
from .photo import PhotoRecord
from .pipeline import filter_by_tags, finalize_photos
from .query import (
    CompoundQuery,
    PublicQuery,
    Query,
    TagMode,
    TagQuery,
    UserQuery,
    clamp,
    clamp_limit,
    normalize_ids,
    normalize_tags,
)


class PhotoAggregator:
    """
    Fetches statuses per tag or per account, flattens them to photos and merges
    them into one bounded, newest-first list.

    Tag+user queries never trust a remote tag timeline to be filtered by
    author: tag indexes are incomplete across federation, so user timelines are
    over-fetched and filtered locally instead. A failure in any single source
    fetch aborts the whole aggregation.
    """

    def __init__(
        self,
        client: PixelfedClient,
        tokens: AccessTokenProvider,
        *,
        config: QueryConfig | None = None,
        logger: EventLogger | None = None,
    ) -> None:
        self._client = client
        self._tokens = tokens
        self._cfg = config or QueryConfig()
        self._logger = logger

    def clamp_limit(self, value: object) -> int:
        return clamp_limit(value, default=self._cfg.default_limit, maximum=self._cfg.max_limit)

    def per_source(self, limit: int, factor: float) -> int:
        return clamp(
            math.ceil(limit * factor),
            self._cfg.min_fetch_per_source,
            self._cfg.max_fetch_per_source,
        )

    async def _gather_photos(self, calls: Sequence[Awaitable[ApiResponse]]) -> list[PhotoRecord]:
        # Every sibling settles before the first failure (in source order) is raised.
        results = await asyncio.gather(*calls, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result

        records: list[PhotoRecord] = []
        for response in results:
            records.extend(photo_records_from_statuses(response.data))
        return records

    async def _fetch_user_photos(
        self, account_ids: Sequence[str], token: str, per: int
    ) -> list[PhotoRecord]:
        return await self._gather_photos(
            [
                self._client.account_statuses(account_id, token, limit=per, exclude_replies=True)
                for account_id in account_ids
            ]
        )

    def _completed(self, source: str, fetched: int, photos: list[PhotoRecord], limit: int) -> None:
        if self._logger is not None:
            self._logger.info(
                "aggregation_completed",
                source=source,
                fetched_photos=fetched,
                returned=len(photos),
                limit=limit,
            )

    async def by_tags(
        self,
        tags: Iterable[str],
        *,
        limit: object = None,
        tag_mode: TagMode | str = TagMode.ANY,
    ) -> list[PhotoRecord]:
        wanted = normalize_tags(tags)
        lim = self.clamp_limit(limit)
        mode = TagMode.parse(tag_mode)
        if not wanted:
            raise ValidationError("tags required")

        token = await self._tokens.get_access_token()
        per = self.per_source(lim, self._cfg.overfetch_factor)
        records = await self._gather_photos(
            [self._client.tag_timeline(tag, token, limit=per) for tag in wanted]
        )
        photos = finalize_photos(filter_by_tags(records, wanted, mode), lim)
        self._completed("tags", len(records), photos, lim)
        return photos

    async def by_users(
        self,
        account_ids: Iterable[str],
        *,
        limit: object = None,
    ) -> list[PhotoRecord]:
        ids = normalize_ids(account_ids)
        lim = self.clamp_limit(limit)
        if not ids:
            raise ValidationError("users required")

        token = await self._tokens.get_access_token()
        per = self.per_source(lim, self._cfg.overfetch_factor)
        records = await self._fetch_user_photos(ids, token, per)
        photos = finalize_photos(records, lim)
        self._completed("users", len(records), photos, lim)
        return photos

    async def compound(
        self,
        tags: Iterable[str],
        account_ids: Iterable[str],
        *,
        limit: object = None,
        tag_mode: TagMode | str = TagMode.ANY,
    ) -> list[PhotoRecord]:
        wanted = normalize_tags(tags)
        ids = normalize_ids(account_ids)
        lim = self.clamp_limit(limit)
        mode = TagMode.parse(tag_mode)

        if wanted and not ids:
            return await self.by_tags(wanted, limit=lim, tag_mode=mode)
        if ids and not wanted:
            return await self.by_users(ids, limit=lim)

        if not wanted and not ids:
            raise ValidationError("tags or users required")

        token = await self._tokens.get_access_token()
        per = self.per_source(lim, self._cfg.compound_overfetch_factor)
        records = await self._fetch_user_photos(ids, token, per)
        photos = finalize_photos(filter_by_tags(records, wanted, mode), lim)
        self._completed("compound", len(records), photos, lim)
        return photos

    async def by_public(self, *, limit: object = None, local_only: bool = False) -> list[PhotoRecord]:
        lim = self.clamp_limit(limit)
        token = await self._tokens.get_access_token()

        per = self.per_source(lim, self._cfg.overfetch_factor)
        response = await self._client.public_timeline(token, limit=per, local_only=local_only)
        records = photo_records_from_statuses(response.data)
        photos = finalize_photos(records, lim)
        self._completed("public", len(records), photos, lim)
        return photos

    async def run(self, query: Query) -> list[PhotoRecord]:
        if isinstance(query, TagQuery):
            return await self.by_tags(query.tags, limit=query.limit, tag_mode=query.tag_mode)
        if isinstance(query, UserQuery):
            return await self.by_users(query.account_ids, limit=query.limit)
        if isinstance(query, CompoundQuery):
            return await self.compound(
                query.tags,
                query.account_ids,
                limit=query.limit,
                tag_mode=query.tag_mode,
            )
        if isinstance(query, PublicQuery):
            return await self.by_public(limit=query.limit, local_only=query.local_only)
        raise TypeError(f"Unsupported query type: {type(query).__name__}")
