"""Client-facing error taxonomy and the JSON error envelope."""

from __future__ import annotations

from aiohttp import web


class GatewayError(Exception):
    status = 500
    code = "generation_failed"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_response(self) -> web.Response:
        return error_response(self.message, self.status, self.code)


class InvalidRequest(GatewayError):
    status = 400
    code = "invalid_request"


class Unauthorized(GatewayError):
    status = 401
    code = "unauthorized"


class InvalidApiKey(GatewayError):
    status = 403
    code = "invalid_api_key"


class NotFound(GatewayError):
    status = 404
    code = "not_found"


class GenerationFailed(GatewayError):
    status = 500
    code = "generation_failed"


def error_response(message: str, status: int, code: str) -> web.Response:
    return web.json_response(
        {"error": {"message": message, "type": "api_error", "code": code}},
        status=status,
    )
