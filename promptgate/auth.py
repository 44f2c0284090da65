"""Static bearer-token check for the /v1 API.

Authorization: Bearer <key> must match the configured master key exactly.
A missing header or a non-Bearer scheme is 401; a wrong key is 403.
With no master key configured every request is let through.
"""

from __future__ import annotations

import hmac
from typing import Mapping

from promptgate.errors import InvalidApiKey, Unauthorized

_BEARER_PREFIX = "Bearer "


def extract_bearer(headers: Mapping[str, str]) -> str | None:
    """Return the raw token after "Bearer ", or None if absent or malformed."""
    auth = headers.get("Authorization") or headers.get("authorization")
    if not auth or not auth.startswith(_BEARER_PREFIX):
        return None
    return auth[len(_BEARER_PREFIX) :]


def check_api_key(headers: Mapping[str, str], master_key: str | None) -> None:
    """Raise Unauthorized or InvalidApiKey unless the request may proceed."""
    if master_key is None:
        return
    token = extract_bearer(headers)
    if token is None:
        raise Unauthorized("Missing or invalid Authorization header.")
    if not hmac.compare_digest(token.encode("utf-8"), master_key.encode("utf-8")):
        raise InvalidApiKey("Invalid API Key.")
