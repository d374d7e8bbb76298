from __future__ import annotations

import os
from typing import Mapping, Protocol

from .errors import AuthError


class AccessTokenProvider(Protocol):
    async def get_access_token(self) -> str:
        """Return a currently valid bearer token or raise AuthError."""
        ...


class StaticTokenProvider:
    """Serves one fixed token; an empty token means "not authenticated"."""

    def __init__(self, token: str | None) -> None:
        self._token = (token or "").strip()

    async def get_access_token(self) -> str:
        if not self._token:
            raise AuthError("Not authenticated: no access token configured")
        return self._token


class EnvTokenProvider:
    """
    Reads the token from an environment variable on every call, so an external
    refresher can rotate it without restarting the process.
    """

    def __init__(self, env_name: str, *, environ: Mapping[str, str] | None = None) -> None:
        self._env_name = env_name
        self._environ = environ

    async def get_access_token(self) -> str:
        env = os.environ if self._environ is None else self._environ
        token = (env.get(self._env_name) or "").strip()
        if not token:
            raise AuthError(
                f"Not authenticated: environment variable {self._env_name} is empty",
                meta={"token_env": self._env_name},
            )
        return token
