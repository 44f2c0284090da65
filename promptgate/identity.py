"""Disposable per-call identities sent to the upstream."""

from __future__ import annotations

import uuid
from typing import Callable

IdentityProvider = Callable[[], str]

ANONYMOUS_DOMAIN = "anonymous.user"


def anonymous_email() -> str:
    """Return a fresh email-shaped token, e.g. ``<uuid4>@anonymous.user``."""
    return f"{uuid.uuid4()}@{ANONYMOUS_DOMAIN}"
