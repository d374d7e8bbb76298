from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import quote

import httpx

from .config_schema import InstanceConfig
from .errors import UpstreamError
from .event_log import EventLogger
from .retry import OnRetryFn, RetryConfig, RetryEvent, SleepFn, call_with_retries
from .upstream_retry import is_retryable_upstream_exception, parse_retry_after


_DEFAULT_UPSTREAM_RETRY = RetryConfig()


@dataclass(frozen=True)
class ApiResponse:
    status: int
    data: Any


def _encode_params(params: Mapping[str, Any] | None) -> dict[str, str]:
    out: dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            out[key] = "true" if value else "false"
            continue
        text = str(value)
        if text == "":
            continue
        out[key] = text
    return out


def _path_segment(value: str) -> str:
    return quote(str(value), safe="")


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class PixelfedClient:
    """
    Authenticated GET client for a Pixelfed/Mastodon-compatible API.

    Every call is retried on 429, 5xx and transport failures; anything else
    that is not 2xx surfaces as UpstreamError for the caller to judge.
    """

    def __init__(
        self,
        base_url: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout_seconds: float = 15.0,
        user_agent: str | None = None,
        retry: RetryConfig | None = None,
        on_retry: OnRetryFn | None = None,
        sleep_fn: SleepFn | None = None,
        logger: EventLogger | None = None,
    ) -> None:
        self._base_url = (base_url or "").strip().rstrip("/")
        if not self._base_url:
            raise ValueError("base_url must be a non-empty URL")

        self._retry = retry or _DEFAULT_UPSTREAM_RETRY
        self._on_retry = on_retry
        self._sleep_fn = sleep_fn
        self._logger = logger

        if http_client is not None:
            self._http = http_client
            self._owns_http = False
        else:
            headers = {"User-Agent": user_agent} if user_agent else None
            self._http = httpx.AsyncClient(
                transport=transport,
                timeout=timeout_seconds,
                headers=headers,
            )
            self._owns_http = True

    @classmethod
    def from_config(
        cls,
        instance: InstanceConfig,
        *,
        retry: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: EventLogger | None = None,
    ) -> "PixelfedClient":
        return cls(
            instance.base_url,
            transport=transport,
            timeout_seconds=instance.timeout_seconds,
            user_agent=instance.user_agent,
            retry=retry,
            logger=logger,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "PixelfedClient":
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> None:
        await self.aclose()

    def _handle_retry(self, event: RetryEvent) -> None:
        if self._logger is not None:
            self._logger.warning(
                "upstream_retry",
                operation=event.operation,
                attempt=event.failure_attempt,
                max_attempts=event.max_attempts,
                delay_seconds=round(event.delay_seconds, 3),
                reason=event.reason,
            )
        if self._on_retry is not None:
            self._on_retry(event)

    async def fetch_json(
        self,
        path: str,
        access_token: str,
        params: Mapping[str, Any] | None = None,
    ) -> ApiResponse:
        """
        GET a server-relative API path and return the status plus parsed JSON.

        Params with None or empty-string values are dropped before the request.
        """
        url = f"{self._base_url}/{path.lstrip('/')}"
        query = _encode_params(params)
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

        async def _do_fetch() -> ApiResponse:
            response = await self._http.get(url, params=query, headers=headers)
            data = _decode_body(response)
            if not response.is_success:
                raise UpstreamError(
                    f"Upstream GET {path} failed ({response.status_code})",
                    status_code=response.status_code,
                    body=data,
                    path=path,
                    retry_after=parse_retry_after(response.headers.get("Retry-After")),
                )
            return ApiResponse(status=response.status_code, data=data)

        try:
            return await call_with_retries(
                _do_fetch,
                cfg=self._retry,
                is_retryable=is_retryable_upstream_exception,
                operation=f"GET {path}",
                on_retry=self._handle_retry,
                sleep_fn=self._sleep_fn,
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"Upstream GET {path} failed: {e}", path=path) from e

    async def search_accounts(self, query: str, access_token: str) -> ApiResponse:
        return await self.fetch_json(
            "/api/v2/search",
            access_token,
            {"q": query, "resolve": True, "type": "accounts", "limit": 1},
        )

    async def lookup_account(self, acct: str, access_token: str) -> ApiResponse:
        return await self.fetch_json("/api/v1/accounts/lookup", access_token, {"acct": acct})

    async def local_account_search(self, query: str, access_token: str) -> ApiResponse:
        return await self.fetch_json(
            "/api/v1/accounts/search",
            access_token,
            {"q": query, "limit": 1},
        )

    async def tag_timeline(self, tag: str, access_token: str, *, limit: int) -> ApiResponse:
        return await self.fetch_json(
            f"/api/v1/timelines/tag/{_path_segment(tag)}",
            access_token,
            {"limit": limit},
        )

    async def account_statuses(
        self,
        account_id: str,
        access_token: str,
        *,
        limit: int,
        exclude_replies: bool = True,
    ) -> ApiResponse:
        return await self.fetch_json(
            f"/api/v1/accounts/{_path_segment(account_id)}/statuses",
            access_token,
            {"limit": limit, "exclude_replies": exclude_replies},
        )

    async def public_timeline(
        self,
        access_token: str,
        *,
        limit: int,
        local_only: bool = False,
    ) -> ApiResponse:
        return await self.fetch_json(
            "/api/v1/timelines/public",
            access_token,
            {"limit": limit, "local": True if local_only else None},
        )
