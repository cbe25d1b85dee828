"""Shared fixtures: settings, a fake Redis client, and a scripted upstream API."""

from __future__ import annotations

import json

import httpx
import pytest

from coursebridge.config import Settings
from coursebridge.store import SessionStore


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the session store."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.expiries: dict[str, int | None] = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.expiries[key] = ex
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.expiries.pop(key, None)
        return removed


class BrokenRedis:
    """A Redis client whose every call fails."""

    async def get(self, key):
        raise ConnectionError("redis is down")

    async def set(self, key, value, ex=None):
        raise ConnectionError("redis is down")

    async def delete(self, *keys):
        raise ConnectionError("redis is down")


class Upstream:
    """
    Scripted replacement for the provider APIs.

    Queue responses with ``add``; each request pops the next one. Requests
    are recorded in ``calls``.
    """

    def __init__(self):
        self.responses: list[httpx.Response] = []
        self.calls: list[httpx.Request] = []

    def add(self, status: int = 200, json_body=None, text: str | None = None) -> "Upstream":
        if text is not None:
            self.responses.append(httpx.Response(status, text=text))
        else:
            self.responses.append(httpx.Response(status, json=json_body if json_body is not None else {}))
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected upstream call: {request.method} {request.url}")
        return self.responses.pop(0)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def body(self, index: int) -> dict:
        return json.loads(self.calls[index].content)


def make_settings(**overrides) -> Settings:
    values = {
        "AI_PROVIDER": "gemini",
        "GEMINI_API_KEY": "gemini-key",
        "OPENAI_API_KEY": "openai-key",
        "MISTRAL_API_KEY": "mistral-key",
        "YANDEX_API_KEY": "yandex-key",
        "YANDEX_FOLDER_ID": "folder-1",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def gemini_reply(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def chat_reply(text: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


def yandex_reply(text: str) -> dict:
    return {"result": {"alternatives": [{"message": {"role": "assistant", "text": text}}]}}


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def store(fake_redis):
    return SessionStore(redis=fake_redis)
