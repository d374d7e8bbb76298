from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Mapping, Sequence

import httpx

from .api_client import ApiResponse, PixelfedClient
from .auth import AccessTokenProvider
from .errors import ResolutionError, ResolutionFailure, UpstreamError
from .event_log import EventLogger
from .handles import is_remote_handle, normalize_handle


class StepStatus(str, Enum):
    FOUND = "found"
    NO_MATCH = "no_match"
    FAILED = "failed"


@dataclass(frozen=True)
class StepOutcome:
    """Result of one resolution strategy."""

    status: StepStatus
    account_id: str | None = None
    detail: str | None = None

    @classmethod
    def found(cls, account_id: str) -> "StepOutcome":
        return cls(StepStatus.FOUND, account_id=account_id)

    @classmethod
    def no_match(cls) -> "StepOutcome":
        return cls(StepStatus.NO_MATCH)

    @classmethod
    def failed(cls, detail: str) -> "StepOutcome":
        return cls(StepStatus.FAILED, detail=detail)


@dataclass(frozen=True)
class ResolutionBatch:
    account_ids: tuple[str, ...]
    errors: tuple[ResolutionError, ...]


class AccountResolutionCache:
    """Normalized handle -> account id. Entries are never evicted."""

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, handle: object) -> bool:
        return handle in self._entries

    def get(self, handle: str) -> str | None:
        return self._entries.get(handle)

    def put(self, handle: str, account_id: str) -> None:
        self._entries[handle] = account_id


def _account_id(value: Any) -> str | None:
    if not isinstance(value, Mapping):
        return None
    ident = value.get("id")
    if isinstance(ident, bool):
        return None
    if isinstance(ident, (str, int)):
        text = str(ident).strip()
        return text or None
    return None


def _first_account_from_search(data: Any) -> str | None:
    if not isinstance(data, Mapping):
        return None
    accounts = data.get("accounts")
    if not isinstance(accounts, list) or not accounts:
        return None
    return _account_id(accounts[0])


def _first_account_from_list(data: Any) -> str | None:
    if not isinstance(data, list) or not data:
        return None
    return _account_id(data[0])


StepFn = Callable[[str, str], Awaitable[StepOutcome]]


class AccountResolver:
    """
    Resolves local or federated handles to account ids on one instance.

    Strategies, first success wins:
    1. v2 search with resolve=true (triggers federation lookup)
    2. v1 accounts/lookup, only for handles without a domain
    3. v1 accounts/search, first match
    """

    def __init__(
        self,
        client: PixelfedClient,
        tokens: AccessTokenProvider,
        *,
        cache: AccountResolutionCache | None = None,
        logger: EventLogger | None = None,
    ) -> None:
        self._client = client
        self._tokens = tokens
        self._cache = cache if cache is not None else AccountResolutionCache()
        self._logger = logger

    @property
    def cache(self) -> AccountResolutionCache:
        return self._cache

    async def _run_step(
        self,
        name: str,
        call: Callable[[], Awaitable[ApiResponse]],
        extract: Callable[[Any], str | None],
    ) -> StepOutcome:
        try:
            response = await call()
        except UpstreamError as e:
            return StepOutcome.failed(f"{name}: {e.message}")
        except httpx.HTTPError as e:
            return StepOutcome.failed(f"{name}: {e}")

        account_id = extract(response.data)
        if account_id is None:
            return StepOutcome.no_match()
        return StepOutcome.found(account_id)

    async def _search_resolve(self, handle: str, token: str) -> StepOutcome:
        return await self._run_step(
            "search",
            lambda: self._client.search_accounts(handle, token),
            _first_account_from_search,
        )

    async def _local_lookup(self, handle: str, token: str) -> StepOutcome:
        return await self._run_step(
            "lookup",
            lambda: self._client.lookup_account(handle, token),
            _account_id,
        )

    async def _local_search(self, handle: str, token: str) -> StepOutcome:
        return await self._run_step(
            "account_search",
            lambda: self._client.local_account_search(handle, token),
            _first_account_from_list,
        )

    def _steps_for(self, handle: str) -> list[tuple[str, StepFn]]:
        steps: list[tuple[str, StepFn]] = [("search", self._search_resolve)]
        if not is_remote_handle(handle):
            steps.append(("lookup", self._local_lookup))
        steps.append(("account_search", self._local_search))
        return steps

    async def _resolve_normalized(self, raw: str, handle: str) -> str:
        token = await self._tokens.get_access_token()

        for name, step in self._steps_for(handle):
            outcome = await step(handle, token)
            if outcome.status is StepStatus.FOUND and outcome.account_id:
                self._cache.put(handle, outcome.account_id)
                if self._logger is not None:
                    self._logger.info(
                        "handle_resolved",
                        handle=handle,
                        account_id=outcome.account_id,
                        strategy=name,
                    )
                return outcome.account_id
            if self._logger is not None:
                self._logger.debug(
                    "resolve_step_failed" if outcome.status is StepStatus.FAILED else "resolve_step_no_match",
                    handle=handle,
                    strategy=name,
                    detail=outcome.detail,
                )

        raise ResolutionError(
            f'Unable to resolve acct "{raw}" to an account ID',
            reason=ResolutionFailure.UNRESOLVED,
            handle=raw,
        )

    async def resolve_handle(self, raw_handle: str) -> str:
        """
        Resolve one handle to an account id, consulting the cache first.

        Raises ResolutionError (MALFORMED_HANDLE before any network call, or
        UNRESOLVED after every strategy came up empty). AuthError propagates.
        """
        handle = normalize_handle(raw_handle)
        cached = self._cache.get(handle)
        if cached is not None:
            return cached
        return await self._resolve_normalized(raw_handle, handle)

    async def resolve_many(self, handles: Iterable[str]) -> ResolutionBatch:
        """
        Resolve a batch of handles without letting one failure abort the rest.

        Returns the deduplicated ids (input order) plus one error per failed handle.
        """
        errors: list[ResolutionError] = []
        pending: dict[str, str] = {}
        order: list[str] = []
        seen_raw: set[str] = set()

        for item in handles:
            raw = str(item or "").strip()
            if not raw or raw in seen_raw:
                continue
            seen_raw.add(raw)

            try:
                handle = normalize_handle(raw)
            except ResolutionError as e:
                errors.append(e)
                continue

            if handle in pending:
                continue
            pending[handle] = raw
            order.append(handle)

        misses = [h for h in order if self._cache.get(h) is None]
        results: Sequence[str | BaseException] = await asyncio.gather(
            *(self._resolve_normalized(pending[h], h) for h in misses),
            return_exceptions=True,
        )

        resolved: dict[str, str] = {}
        for handle, result in zip(misses, results):
            if isinstance(result, ResolutionError):
                errors.append(result)
                if self._logger is not None:
                    self._logger.warning("handle_unresolved", handle=handle, code=result.code)
            elif isinstance(result, BaseException):
                raise result
            else:
                resolved[handle] = result

        ids: list[str] = []
        seen_ids: set[str] = set()
        for handle in order:
            account_id = resolved.get(handle) or self._cache.get(handle)
            if account_id is None or account_id in seen_ids:
                continue
            seen_ids.add(account_id)
            ids.append(account_id)

        return ResolutionBatch(account_ids=tuple(ids), errors=tuple(errors))
