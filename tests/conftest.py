"""Shared pytest fixtures: fake Redis, fake REST backend, storefront app."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from typing import Any

os.environ.setdefault("RATE_LIMIT_DISABLED", "1")

import httpx
import pytest
import pytest_asyncio
import redis
from aiohttp import web
from aiohttp.test_utils import TestServer

from storefront.api.server import create_app
from storefront.core.client_storage import ClientStorage
from storefront.core.config import Settings, load_settings
from storefront.integrations.payment_service import PaymentService


@dataclass
class FakeRedisClient:
    hashes: dict[str, dict[str, str]] = field(default_factory=dict)
    fail_writes: bool = False

    def ping(self) -> bool:
        return True

    def hget(self, name: str, key: str):
        return self.hashes.get(name, {}).get(key)

    def hset(self, name: str, key: str, value: str) -> int:
        if self.fail_writes:
            raise redis.ConnectionError("connection lost")
        self.hashes.setdefault(name, {})[key] = value
        return 1

    def hdel(self, name: str, key: str) -> int:
        return 1 if self.hashes.get(name, {}).pop(key, None) is not None else 0

    def hkeys(self, name: str) -> list[str]:
        return list(self.hashes.get(name, {}))


@pytest.fixture
def fake_redis(monkeypatch):
    import storefront.core.client_storage as client_storage_module

    client = FakeRedisClient()
    monkeypatch.setattr(
        client_storage_module.redis, "from_url", lambda *args, **kwargs: client
    )
    return client


@pytest.fixture
def client_storage() -> ClientStorage:
    """In-memory visitor storage (no REDIS_URL)."""
    return ClientStorage(redis_url=None)


@pytest.fixture
def visitor_storage(client_storage: ClientStorage):
    return client_storage.for_visitor("visitor-test-0001")


@dataclass
class FakeBackend:
    """In-process REST backend recording every request it receives."""

    responses: dict[str, tuple[int, Any]] = field(default_factory=dict)
    requests: list[dict[str, Any]] = field(default_factory=list)
    base_url: str = ""

    def respond(self, path: str, status: int = 200, body: Any = None) -> None:
        self.responses[path] = (status, body if body is not None else {})

    def requests_to(self, path: str) -> list[dict[str, Any]]:
        return [req for req in self.requests if req["path"] == path]


@pytest_asyncio.fixture
async def backend():
    fake = FakeBackend()

    async def _handle(request: web.Request) -> web.StreamResponse:
        raw = await request.text()
        fake.requests.append(
            {
                "method": request.method,
                "path": request.path,
                "headers": dict(request.headers),
                "cookies": dict(request.cookies),
                "json": json.loads(raw) if raw else None,
            }
        )
        status, body = fake.responses.get(request.path, (404, {"message": "Not found"}))
        if isinstance(body, str):
            return web.Response(status=status, text=body)
        return web.json_response(body, status=status)

    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", _handle)
    server = TestServer(app)
    await server.start_server()
    fake.base_url = str(server.make_url("/api"))
    try:
        yield fake
    finally:
        await server.close()


@pytest.fixture
def payment_service(backend: FakeBackend) -> PaymentService:
    return PaymentService(backend.base_url, timeout=5)


@pytest.fixture
def settings(backend: FakeBackend) -> Settings:
    return replace(
        load_settings(),
        api_base_url=backend.base_url,
        public_base_url="https://shop.example.com",
        redis_url=None,
        verify_payments=False,
        allowed_origins=(),
        environment="test",
    )


@pytest.fixture
def storefront_app(settings: Settings, client_storage: ClientStorage, payment_service: PaymentService):
    return create_app(settings, client_storage=client_storage, payment_service=payment_service)


@pytest_asyncio.fixture
async def http(storefront_app):
    transport = httpx.ASGITransport(app=storefront_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
