"""
Pytest fixtures for Minesweeper client tests.
"""

import json

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from minesweeper_client.client_provider import ClientConfig
from minesweeper_client.controller import SessionController
from minesweeper_client.errors import TransportError
from minesweeper_client.normalizer import normalize
from minesweeper_client.session_store import BrowserUrl, MemoryStorage, SessionStore
from minesweeper_client.transport import GameTransport

API_BASE = "http://engine.test"


def make_response(status=200, body=None, headers=None, content_type="application/json", text=None):
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status
    response.reason = "OK" if status < 400 else "Error"
    response.headers = CaseInsensitiveDict(headers or {})
    if body is not None:
        response._content = json.dumps(body).encode("utf-8")
        if content_type:
            response.headers["Content-Type"] = content_type
    elif text is not None:
        response._content = text.encode("utf-8")
        response.headers.setdefault("Content-Type", "text/plain")
    else:
        response._content = b""
    response.encoding = "utf-8"
    return response


class FakeSession:
    """Stands in for requests.Session: replays queued responses, records calls."""

    def __init__(self):
        self.responses = []
        self.calls = []

    def add(self, status=200, body=None, headers=None, **kwargs):
        self.responses.append(make_response(status, body, headers, **kwargs))
        return self

    def raise_error(self, error):
        self.responses.append(error)
        return self

    def request(self, method, url, json=None, timeout=None):
        self.calls.append((method, url, json))
        if not self.responses:
            raise AssertionError(f"Unexpected request {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        response.url = url
        return response


def state_payload(game_id="game-1", status="InProgress", rows=2, cols=2, **overrides):
    """A typical server document for a small board."""
    payload = {
        "gameId": game_id,
        "gameStatus": status,
        "rows": rows,
        "cols": cols,
        "mines": 1,
        "flagsLeft": 1,
        "cells": [
            {"x": x, "y": y, "isRevealed": False, "isFlagged": False}
            for y in range(rows)
            for x in range(cols)
        ],
    }
    payload.update(overrides)
    return payload


class FakeTransport:
    """Async transport double; each call returns the next queued outcome."""

    def __init__(self):
        self.outcomes = []
        self.calls = []
        self.gate = None

    def push(self, outcome):
        self.outcomes.append(outcome)
        return self

    async def _next(self, name, *args):
        self.calls.append((name,) + args)
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def create_game(self, difficulty):
        return await self._next("create_game", difficulty)

    async def fetch_game(self, session_id):
        return await self._next("fetch_game", session_id)

    async def reveal_cell(self, session_id, x, y):
        return await self._next("reveal_cell", session_id, x, y)

    async def toggle_flag(self, session_id, x, y):
        return await self._next("toggle_flag", session_id, x, y)


@pytest.fixture
def config():
    return ClientConfig(api_base=API_BASE, timeout=1.0)


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def transport(config, fake_session):
    return GameTransport(config, session=fake_session)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def page_url():
    return BrowserUrl("http://localhost:3000/")


@pytest.fixture
def store(page_url, storage):
    return SessionStore(url=page_url, storage=storage)


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def controller(fake_transport, store):
    return SessionController(fake_transport, store)


@pytest.fixture
def game_state():
    return normalize(state_payload())


@pytest.fixture
def transport_error():
    return TransportError("Reveal", status=500, body="boom")


@pytest.fixture
def payload_factory():
    return state_payload
