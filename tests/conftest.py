"""Shared fixtures: a fake Teleprompt upstream and gateway app factories."""

import asyncio
import dataclasses
from pathlib import Path

import pytest
from aiohttp import web

from promptgate.config import Settings, load_config
from promptgate.server import create_app

FIXED_IDENTITY = "00000000-0000-4000-8000-000000000000@anonymous.user"


class FakeUpstream:
    """Records every call and answers with a configurable envelope."""

    def __init__(self) -> None:
        self.status = 200
        self.envelope: object = {"success": True, "data": "Hi there"}
        self.raw_body: str | None = None
        self.calls: list[dict] = []
        self.delay = 0.0

    async def handle(self, request: web.Request) -> web.Response:
        self.calls.append(
            {
                "path": request.path,
                "headers": request.headers.copy(),
                "json": await request.json(),
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raw_body is not None:
            return web.Response(status=self.status, text=self.raw_body)
        return web.json_response(self.envelope, status=self.status)


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
async def upstream_server(aiohttp_server, fake_upstream: FakeUpstream):
    app = web.Application(client_max_size=64 * 1024 * 1024)
    app.router.add_post("/{tail:.*}", fake_upstream.handle)
    return await aiohttp_server(app)


@pytest.fixture
def make_settings(tmp_path: Path):
    """Build Settings from defaults (no YAML file), with field overrides."""
    base = Settings.from_config(load_config(tmp_path / "nonexistent.yaml"))

    def factory(**overrides) -> Settings:
        overrides.setdefault("master_key", None)
        overrides.setdefault("stream_delay", 0.0)
        return dataclasses.replace(base, **overrides)

    return factory


@pytest.fixture
def make_gateway(aiohttp_client, upstream_server, make_settings):
    async def factory(**overrides):
        overrides.setdefault("upstream_origin", str(upstream_server.make_url("")).rstrip("/"))
        app = create_app(make_settings(**overrides), identity_provider=lambda: FIXED_IDENTITY)
        return await aiohttp_client(app)

    return factory
