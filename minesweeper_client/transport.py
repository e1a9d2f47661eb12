"""HTTP transport between the client and the remote game engine."""
import asyncio
import logging
from urllib.parse import quote, urljoin, urlparse

import requests

from minesweeper_client.client_provider import ClientConfig, get_http_session
from minesweeper_client.errors import NoUsableSessionIdError, TransportError
from minesweeper_client.normalizer import normalize
from minesweeper_client.types import Difficulty, GameState

logger = logging.getLogger(__name__)

def response_text(response: requests.Response) -> str:
    """Best-effort body text for diagnostics. Never raises."""
    try:
        return response.text or ""
    except Exception:
        return ""


def has_json_body(response: requests.Response) -> bool:
    content_type = response.headers.get("Content-Type", "")
    return "application/json" in content_type.lower() and bool(response.content)


def session_id_from_location(location: str | None) -> str | None:
    """Trailing path segment of a Location header, if any."""
    if not location:
        return None
    segment = urlparse(location).path.rstrip("/").rsplit("/", 1)[-1]
    return segment or None


def endpoint_path(template: str, session_id: str) -> str:
    """Fill a path template; the id always stays a single path segment."""
    return template.format(game_id=quote(session_id, safe=""))


class GameTransport:
    """Issues game requests and hands back canonical ``GameState`` values.

    The underlying ``requests`` calls block, so each one runs in a worker
    thread; callers simply ``await`` the operations.
    """

    def __init__(self, config: ClientConfig | None = None, session: requests.Session | None = None):
        self.config = config or ClientConfig()
        self.session = session or get_http_session()

    async def create_game(self, difficulty: Difficulty | str) -> GameState:
        """Create a game for a difficulty preset."""
        value = difficulty.value if isinstance(difficulty, Difficulty) else difficulty
        response = await self._send("POST", self.config.endpoints.create, {"difficulty": value}, action="Create")

        location = response.headers.get("Location")
        fallback_id = session_id_from_location(location)

        if has_json_body(response):
            state = normalize(self._decode(response, "Create"), fallback_id)
        elif location:
            follow_url = location if location.startswith(("http://", "https://")) else urljoin(
                self.config.api_base.rstrip("/") + "/", location.lstrip("/")
            )
            logger.info(f"Create returned no body, following Location {follow_url}")
            follow = await self._send("GET", follow_url, action="Follow GET")
            state = normalize(self._decode(follow, "Follow GET"), fallback_id)
        else:
            raise NoUsableSessionIdError("Create returned no body and no Location header")

        if not state.session_id:
            raise NoUsableSessionIdError("Server did not return gameId")
        return state

    async def fetch_game(self, session_id: str) -> GameState:
        """Get the current state of a game."""
        path = endpoint_path(self.config.endpoints.fetch, session_id)
        response = await self._send("GET", path, action="Fetch")
        return normalize(self._decode(response, "Fetch"), session_id)

    async def reveal_cell(self, session_id: str, x: int, y: int) -> GameState:
        """Reveal a cell."""
        endpoints = self.config.endpoints
        return await self._mutate(endpoints.reveal_method, endpoints.reveal, session_id, x, y, action="Reveal")

    async def toggle_flag(self, session_id: str, x: int, y: int) -> GameState:
        """Toggle flag on a cell."""
        endpoints = self.config.endpoints
        return await self._mutate(
            endpoints.toggle_flag_method, endpoints.toggle_flag, session_id, x, y, action="Toggle flag"
        )

    async def _mutate(self, method: str, template: str, session_id: str, x: int, y: int, action: str) -> GameState:
        path = endpoint_path(template, session_id)
        response = await self._send(method, path, {"x": x, "y": y}, action=action)
        if has_json_body(response):
            return normalize(self._decode(response, action), session_id)

        # Success without state is not a result; read it back once.
        logger.info(f"{action} for game {session_id} returned no body, re-fetching state")
        return await self.fetch_game(session_id)

    async def _send(self, method: str, path: str, payload: dict | None = None, action: str = "Request") -> requests.Response:
        url = path if path.startswith(("http://", "https://")) else self.config.url(path)
        logger.debug(f"{action}: {method} {url} {payload or ''}")
        try:
            response = await asyncio.to_thread(
                self.session.request,
                method,
                url,
                json=payload,
                timeout=self.config.timeout,
            )
        except requests.RequestException as error:
            logger.warning(f"{action} failed: {error}")
            raise TransportError(f"{action} failed: {error}") from error

        if not response.ok:
            body = response_text(response)
            logger.warning(f"{action} {method} {url} -> {response.status_code}")
            raise TransportError(action, status=response.status_code, body=body or response.reason or "")
        return response

    def _decode(self, response: requests.Response, action: str):
        try:
            return response.json()
        except ValueError as error:
            raise TransportError(
                f"{action} returned malformed JSON",
                status=response.status_code,
                body=response_text(response),
            ) from error
