"""Outbound calls to the Teleprompt prompt service and envelope validation.

A well-formed upstream answer is ``{"success": true, "data": "<text>"}``.
Anything else (non-2xx status, non-JSON body, ``success`` false, ``data``
missing) is raised as UpstreamError. There are no retries.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from promptgate.identity import IdentityProvider, anonymous_email

log = logging.getLogger(__name__)


class UpstreamError(Exception):
    """Upstream transport or business failure, with an HTTP-like status."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


@dataclass
class UpstreamResult:
    success: bool
    data: str


class UpstreamClient:
    def __init__(
        self,
        session: aiohttp.ClientSession,
        origin: str,
        extension_origin: str,
        user_agent: str,
        identity_provider: IdentityProvider = anonymous_email,
    ) -> None:
        self._session = session
        self._origin = origin.rstrip("/")
        self._extension_origin = extension_origin
        self._user_agent = user_agent
        self._identity_provider = identity_provider

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "*/*",
            "Origin": self._extension_origin,
            "User-Agent": self._user_agent,
            "email": self._identity_provider(),
            "sec-fetch-dest": "empty",
            "sec-fetch-mode": "cors",
            "sec-fetch-site": "none",
        }

    async def call(self, endpoint: str, payload: dict[str, Any]) -> UpstreamResult:
        """POST payload to endpoint and return the validated result."""
        url = f"{self._origin}{endpoint}"
        try:
            async with self._session.post(
                url, data=json.dumps(payload), headers=self._headers()
            ) as resp:
                body = await resp.text()
                status = resp.status
        except asyncio.TimeoutError as exc:
            log.error("Upstream request to %s timed out", url)
            raise UpstreamError(504, f"Upstream request timed out: {url}") from exc
        except aiohttp.ClientError as exc:
            log.error("Upstream request to %s failed: %s", url, exc)
            raise UpstreamError(502, f"Upstream request failed: {exc}") from exc

        if not 200 <= status < 300:
            raise UpstreamError(status, f"Upstream Error ({status}): {body}")

        try:
            envelope = json.loads(body)
        except ValueError:
            raise UpstreamError(status, f"Upstream Business Error: {body}") from None

        return _validate_envelope(status, envelope)


def _validate_envelope(status: int, envelope: Any) -> UpstreamResult:
    if (
        not isinstance(envelope, dict)
        or not envelope.get("success")
        or not isinstance(envelope.get("data"), str)
    ):
        raise UpstreamError(
            status, f"Upstream Business Error: {json.dumps(envelope, ensure_ascii=False)}"
        )
    return UpstreamResult(success=True, data=envelope["data"])
