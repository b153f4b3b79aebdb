"""Shared fixtures: scripted reasoning engine and an in-process target API."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from schemaprobe.discovery.models import Message
from schemaprobe.discovery.pacing import ProbePacer
from schemaprobe.discovery.transport import ProbeTransport


class ScriptedReasoning:
    """Reasoning engine that replays canned replies and records each call."""

    def __init__(self, replies: list[str]) -> None:
        self.replies = list(replies)
        self.calls: list[list[Message]] = []

    async def complete(self, messages: list[Message]) -> str:
        self.calls.append(list(messages))
        if not self.replies:
            return action_reply({"filler": "value"})
        return self.replies.pop(0)


def action_reply(body: dict, action: str = "modify_fields", explanation: str = "next step") -> str:
    """Render a reasoning reply wrapping an action object in prose."""
    payload = json.dumps({"action": action, "body": body, "explanation": explanation})
    return f"Based on the last response I will try this:\n{payload}\nLet me know."


def _json_response(status_code: int, data: object) -> httpx.Response:
    return httpx.Response(status_code, json=data)


def users_api(request: httpx.Request) -> httpx.Response:
    """Fixture endpoints modelled on a small user/product service."""
    try:
        data = json.loads(request.content) if request.content else None
    except json.JSONDecodeError:
        return _json_response(400, {"error": "invalid JSON"})

    path = request.url.path

    if path == "/api/users":
        if not isinstance(data, dict):
            return _json_response(400, {"error": "cannot unmarshal array into user"})
        if not data.get("email"):
            return _json_response(400, {"error": "email is required"})
        if not data.get("password"):
            return _json_response(400, {"error": "password is required"})
        return _json_response(201, {"id": 1, "email": data["email"], "isActive": True})

    if path == "/api/strict/users":
        if not isinstance(data, dict) or not data.get("email"):
            return _json_response(400, {"error": "field 'email' is required"})
        if not data.get("password"):
            return _json_response(
                422,
                {"validation_errors": {"password": "password is required"}},
            )
        return _json_response(
            201,
            {
                "id": 7,
                "email": data["email"],
                "createdAt": "2024-03-01T10:00:00Z",
                "updatedAt": "2024-03-01T10:00:00Z",
            },
        )

    if path in ("/api/batch/users", "/api/tags"):
        if not isinstance(data, list) or not data:
            return _json_response(400, {"error": "at least one user is required"})
        created = []
        for i, item in enumerate(data):
            if not isinstance(item, dict) or not item.get("email"):
                return _json_response(400, {"error": f"Missing required field 'email' in item {i}"})
            created.append({"id": i + 1, **item, "isActive": True})
        return _json_response(201, created)

    if path == "/api/plain":
        return httpx.Response(400, text="Missing required parameter 'token'")

    return _json_response(404, {"error": "not found"})


@pytest.fixture
def scripted_reasoning() -> Callable[[list[str]], ScriptedReasoning]:
    return ScriptedReasoning


@pytest.fixture
def make_action() -> Callable[..., str]:
    return action_reply


@pytest.fixture
def target_api() -> Callable[[httpx.Request], httpx.Response]:
    return users_api


@pytest.fixture
def make_transport() -> Callable[..., ProbeTransport]:
    """Build a ProbeTransport backed by an httpx MockTransport handler."""

    def _make(handler: Callable[[httpx.Request], httpx.Response] = users_api) -> ProbeTransport:
        return ProbeTransport(
            transport=httpx.MockTransport(handler),
            pacer=ProbePacer(requests_per_second=1000.0, burst_limit=100),
        )

    return _make


@pytest.fixture
def recording_handler():
    """users_api wrapper that records every request it receives."""
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return users_api(request)

    _handler.seen = seen  # type: ignore[attr-defined]
    return _handler
