from __future__ import annotations

from .accounts import AccountResolutionCache, AccountResolver, ResolutionBatch
from .aggregate import PhotoAggregator
from .api_client import ApiResponse, PixelfedClient
from .config import load_config
from .config_schema import AppConfig
from .dispatch import QueryDispatcher, QueryResult
from .errors import (
    AuthError,
    ConfigError,
    ErrorKind,
    PixelfreeError,
    ResolutionError,
    ResolutionFailure,
    UpstreamError,
    ValidationError,
    error_payload,
)
from .handles import normalize_handle
from .normalize import photo_records_from_status
from .photo import PhotoAuthor, PhotoRecord
from .query import CompoundQuery, PublicQuery, TagMode, TagQuery, UserQuery

__all__ = [
    "AccountResolutionCache",
    "AccountResolver",
    "ApiResponse",
    "AppConfig",
    "AuthError",
    "CompoundQuery",
    "ConfigError",
    "ErrorKind",
    "PhotoAggregator",
    "PhotoAuthor",
    "PhotoRecord",
    "PixelfedClient",
    "PixelfreeError",
    "PublicQuery",
    "QueryDispatcher",
    "QueryResult",
    "ResolutionBatch",
    "ResolutionError",
    "ResolutionFailure",
    "TagMode",
    "TagQuery",
    "UpstreamError",
    "UserQuery",
    "ValidationError",
    "error_payload",
    "load_config",
    "normalize_handle",
    "photo_records_from_status",
]
