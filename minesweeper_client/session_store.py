"""Durable session identifier: URL query parameter plus key-value storage."""
import contextlib
import json
import logging
import os
import pathlib
import tempfile
from dataclasses import dataclass
from typing import Optional, Protocol
from urllib.parse import parse_qsl, quote, unquote_plus, urlsplit, urlunsplit

from minesweeper_client.normalizer import is_usable_id

logger = logging.getLogger(__name__)

URL_PARAM = "gameId"
STORAGE_KEY = "ms:lastGameId"


class UrlChannel(Protocol):
    def get_param(self, name: str) -> Optional[str]: ...

    def set_param(self, name: str, value: str) -> None: ...

    def delete_param(self, name: str) -> None: ...


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class BrowserUrl:
    """The page address. Edits replace the history entry, never navigate."""

    def __init__(self, href: str = "http://localhost/"):
        self.href = href

    def load(self, href: str) -> None:
        """Point the channel at the URL the page was opened with."""
        self.href = href

    def get_param(self, name: str) -> Optional[str]:
        for key, value in self._params():
            if key == name:
                return value
        return None

    def set_param(self, name: str, value: str) -> None:
        segments = self._segments_without(name)
        segments.append(f"{quote(name, safe='')}={quote(value, safe='')}")
        self._replace(segments)

    def delete_param(self, name: str) -> None:
        self._replace(self._segments_without(name))

    def _params(self):
        return parse_qsl(urlsplit(self.href).query, keep_blank_values=True)

    def _segments_without(self, name: str) -> list:
        """Raw query segments for every other parameter, left exactly as written."""
        query = urlsplit(self.href).query
        return [
            segment for segment in query.split("&")
            if segment and unquote_plus(segment.split("=", 1)[0]) != name
        ]

    def _replace(self, segments) -> None:
        parts = urlsplit(self.href)
        self.href = urlunsplit(parts._replace(query="&".join(segments)))


class MemoryStorage:
    """In-process key-value storage."""

    def __init__(self, initial: Optional[dict] = None):
        self.data = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStorage:
    """Key-value storage kept in a JSON file that survives restarts."""

    def __init__(self, path: pathlib.Path):
        self.path = pathlib.Path(path)

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)

    def _read(self) -> dict:
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as error:
            logger.warning(f"Ignoring unreadable session file {self.path}: {error}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".session-", suffix=".json")
        try:
            handle = os.fdopen(fd, "w", encoding="utf-8")
        except BaseException:
            os.close(fd)
            with contextlib.suppress(OSError):
                os.unlink(tmp_path)
            raise
        try:
            with handle:
                json.dump(data, handle)
            os.replace(tmp_path, self.path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_path)
            raise


@dataclass(frozen=True)
class SessionCandidate:
    session_id: str
    from_url: bool


class SessionStore:
    """Reads, writes and clears the session id across both channels."""

    def __init__(self, url: UrlChannel, storage: KeyValueStorage):
        self.url = url
        self.storage = storage

    def load(self) -> Optional[SessionCandidate]:
        """URL parameter first; storage only when the URL has none."""
        from_url = self.url.get_param(URL_PARAM)
        if is_usable_id(from_url):
            return SessionCandidate(from_url, from_url=True)
        stored = self.storage.get(STORAGE_KEY)
        if is_usable_id(stored):
            return SessionCandidate(stored, from_url=False)
        return None

    def save(self, session_id: str) -> None:
        self.storage.set(STORAGE_KEY, session_id)
        self.url.set_param(URL_PARAM, session_id)
        logger.debug(f"Saved session {session_id}")

    def clear(self) -> None:
        try:
            self.storage.remove(STORAGE_KEY)
        finally:
            self.url.delete_param(URL_PARAM)
        logger.debug("Cleared saved session")
