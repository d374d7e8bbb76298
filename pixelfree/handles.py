from __future__ import annotations

import re
from urllib.parse import unquote, urlsplit

from .errors import ResolutionError, ResolutionFailure

_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
_AT_PATH_RE = re.compile(r"/@([^/]+)")
_USERS_PATH_RE = re.compile(r"^/users/([^/]+)/?$")
_BARE_PATH_RE = re.compile(r"^/([A-Za-z0-9_.\-]+)/?$")


def _malformed(raw: str, detail: str) -> ResolutionError:
    return ResolutionError(
        f'Bad acct "{raw}": {detail}',
        reason=ResolutionFailure.MALFORMED_HANDLE,
        handle=raw,
    )


def _handle_from_profile_url(raw: str, value: str) -> str:
    parts = urlsplit(value)
    host = (parts.hostname or "").strip()
    path = unquote(parts.path or "")

    for pattern in (_AT_PATH_RE, _USERS_PATH_RE, _BARE_PATH_RE):
        m = pattern.search(path)
        if not m or not host:
            continue
        name = m.group(1)
        # /@name@origin is a remote profile viewed through another instance
        if "@" in name:
            return name
        return f"{name}@{host}"

    raise _malformed(raw, "profile URL does not contain a user name")


def normalize_handle(raw: str) -> str:
    """
    Reduce a user-supplied handle to `name` or `name@domain`.

    Accepts "name", "@name", "name@domain", "@name@domain" and profile URLs
    such as https://example.social/@name. Raises a MALFORMED_HANDLE
    ResolutionError without touching the network when the input cannot be a
    valid handle.
    """
    original = str(raw or "")
    value = original.strip()
    if value.startswith("@"):
        value = value[1:]

    if _URL_RE.match(value):
        value = _handle_from_profile_url(original, value)

    if not value:
        raise _malformed(original, "handle is empty")

    if "@" in value:
        name, _, domain = value.partition("@")
        if not name:
            raise _malformed(original, "user name is empty")
        if "@" in domain:
            raise _malformed(original, "too many '@' separators")
        if "." not in domain or domain.startswith(".") or domain.endswith("."):
            raise _malformed(
                original,
                'domain appears incomplete. Include the full domain, e.g. "@user@host.tld"',
            )

    return value


def is_remote_handle(handle: str) -> bool:
    return "@" in handle
