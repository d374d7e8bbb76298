from __future__ import annotations

import re
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .query import MAX_LIMIT
from .retry import RetryConfig

_ENV_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _validate_env_var_name(value: str) -> str:
    name = (value or "").strip()
    if not _ENV_NAME_RE.fullmatch(name):
        raise ValueError("must be a valid environment variable name")
    return name


PositiveInt = Annotated[int, Field(ge=1)]
BoundedLimit = Annotated[int, Field(ge=1, le=MAX_LIMIT)]
NonNegativeInt = Annotated[int, Field(ge=0)]


class InstanceConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str = "https://pixelfed.social"
    token_env: str = "PIXELFED_ACCESS_TOKEN"
    timeout_seconds: float = Field(15.0, gt=0)
    user_agent: str = "pixelfree/0.1"

    @field_validator("base_url")
    @classmethod
    def _base_url_must_be_http(cls, v: str) -> str:
        url = (v or "").strip().rstrip("/")
        if not re.match(r"^https?://[^/\s]+", url, flags=re.IGNORECASE):
            raise ValueError("must be an http(s) URL")
        return url

    @field_validator("token_env")
    @classmethod
    def _token_env_must_be_valid(cls, v: str) -> str:
        return _validate_env_var_name(v)


class RetrySettings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_retries: NonNegativeInt = 3
    base_delay_seconds: float = Field(0.4, ge=0)
    max_delay_seconds: float = Field(8.0, ge=0)
    jitter_ratio: float = Field(0.25, ge=0.0, le=1.0)
    retry_after_cap_seconds: float = Field(30.0, ge=0)

    @model_validator(mode="after")
    def _max_must_cover_base(self) -> "RetrySettings":
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        return self

    def to_retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_attempts=self.max_retries + 1,
            base_delay_seconds=self.base_delay_seconds,
            max_delay_seconds=self.max_delay_seconds,
            jitter_ratio=self.jitter_ratio,
            retry_after_cap_seconds=self.retry_after_cap_seconds,
        )


class QueryConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    default_limit: BoundedLimit = 20
    max_limit: BoundedLimit = MAX_LIMIT
    min_fetch_per_source: BoundedLimit = 10
    max_fetch_per_source: BoundedLimit = MAX_LIMIT
    overfetch_factor: float = Field(1.5, ge=1.0)
    compound_overfetch_factor: float = Field(3.0, ge=1.0)

    @model_validator(mode="after")
    def _bounds_must_be_ordered(self) -> "QueryConfig":
        if self.default_limit > self.max_limit:
            raise ValueError("default_limit must be <= max_limit")
        if self.min_fetch_per_source > self.max_fetch_per_source:
            raise ValueError("min_fetch_per_source must be <= max_fetch_per_source")
        return self


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    instance: InstanceConfig = Field(default_factory=InstanceConfig)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    query: QueryConfig = Field(default_factory=QueryConfig)
