"""aiohttp application: OpenAI-compatible /v1 API in front of Teleprompt."""

from __future__ import annotations

import logging
import time
import uuid

import aiohttp
from aiohttp import web

from promptgate.auth import check_api_key
from promptgate.chat import last_user_message, parse_chat_request
from promptgate.completions import ChunkStreamer, build_completion
from promptgate.config import SERVICE_NAME, SERVICE_VERSION, Settings
from promptgate.errors import GatewayError, GenerationFailed, InvalidRequest, error_response
from promptgate.identity import IdentityProvider, anonymous_email
from promptgate.registry import ModelRegistry
from promptgate.upstream import UpstreamClient, UpstreamError

log = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


async def health(request: web.Request) -> web.Response:
    return web.json_response(
        {"status": "alive", "service": SERVICE_NAME, "version": SERVICE_VERSION}
    )


async def list_models(request: web.Request) -> web.Response:
    registry: ModelRegistry = request.app["registry"]
    created = int(time.time())
    return web.json_response(
        {
            "object": "list",
            "data": [
                {"id": model_id, "object": "model", "created": created, "owned_by": SERVICE_NAME}
                for model_id in registry.model_ids()
            ],
        }
    )


async def chat_completions(request: web.Request) -> web.StreamResponse:
    settings: Settings = request.app["settings"]
    registry: ModelRegistry = request.app["registry"]
    upstream: UpstreamClient = request.app["upstream"]

    try:
        body = await request.json()
    except ValueError:
        raise InvalidRequest("Request body is not valid JSON") from None
    chat = parse_chat_request(body)

    model = chat.model or registry.default_model
    endpoint = registry.resolve(chat.model)
    prompt = last_user_message(chat.messages)
    request_id = f"req-{uuid.uuid4()}"
    log.debug("Request %s: model=%s endpoint=%s stream=%s", request_id, model, endpoint, chat.stream)

    try:
        result = await upstream.call(endpoint, {"text": prompt.content})
    except UpstreamError as exc:
        log.error("Request %s failed upstream (status %d): %s", request_id, exc.status, exc.message)
        raise GenerationFailed(exc.message) from exc

    if not chat.stream:
        return web.json_response(build_completion(result.data, model, request_id))

    response = web.StreamResponse(headers=SSE_HEADERS)
    response.content_type = "text/event-stream"
    await response.prepare(request)
    streamer = ChunkStreamer(
        result.data,
        model,
        request_id,
        chunk_size=settings.chunk_size,
        delay=settings.stream_delay,
    )
    await streamer.run(response)
    return response


@web.middleware
async def preflight_middleware(request: web.Request, handler) -> web.StreamResponse:
    if request.method == "OPTIONS":
        return web.Response(status=204)
    return await handler(request)


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except GatewayError as exc:
        return exc.to_response()
    except web.HTTPRequestEntityTooLarge as exc:
        return error_response(exc.text or "Request body too large", 413, "invalid_request")
    except web.HTTPNotFound:
        return error_response(f"Path not found: {request.path}", 404, "not_found")
    except web.HTTPMethodNotAllowed:
        return error_response(f"Method not allowed for: {request.path}", 404, "not_found")
    except web.HTTPException:
        raise
    except Exception as exc:
        log.exception("Unhandled error on %s %s", request.method, request.path)
        return error_response(str(exc) or exc.__class__.__name__, 500, "generation_failed")


def _auth_middleware(master_key: str | None):
    @web.middleware
    async def auth_middleware(request: web.Request, handler) -> web.StreamResponse:
        if request.path.startswith("/v1/"):
            check_api_key(request.headers, master_key)
        return await handler(request)

    return auth_middleware


async def _add_cors_headers(request: web.Request, response: web.StreamResponse) -> None:
    response.headers.update(CORS_HEADERS)


def create_app(
    settings: Settings, identity_provider: IdentityProvider = anonymous_email
) -> web.Application:
    app = web.Application(
        middlewares=[
            preflight_middleware,
            error_middleware,
            _auth_middleware(settings.master_key),
        ],
        client_max_size=settings.client_max_size,
    )
    app["settings"] = settings
    app["registry"] = ModelRegistry(settings.model_endpoints, settings.default_model)

    async def on_startup(app: web.Application) -> None:
        timeout = aiohttp.ClientTimeout(total=settings.upstream_timeout)
        session = aiohttp.ClientSession(timeout=timeout)
        app["upstream_session"] = session
        app["upstream"] = UpstreamClient(
            session,
            settings.upstream_origin,
            settings.extension_origin,
            settings.user_agent,
            identity_provider=identity_provider,
        )

    async def on_cleanup(app: web.Application) -> None:
        log.info("Shutting down: closing upstream session")
        await app["upstream_session"].close()

    app.on_startup.append(on_startup)
    app.on_cleanup.append(on_cleanup)
    app.on_response_prepare.append(_add_cors_headers)

    app.router.add_get("/", health)
    app.router.add_get("/v1/models", list_models)
    app.router.add_post("/v1/chat/completions", chat_completions)
    return app
