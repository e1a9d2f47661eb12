"""Exceptions raised by the Minesweeper client."""
from typing import Optional


class MinesweeperClientError(Exception):
    """Base class for every client-side failure."""


class TransportError(MinesweeperClientError):
    """Non-2xx status or a response the client cannot read."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self):
        base = super().__str__()
        if self.status is None:
            return base
        detail = self.body or "(no body)"
        return f"{base} [{self.status}]: {detail}"


class NoUsableSessionIdError(MinesweeperClientError):
    """Game creation succeeded but produced no session identifier."""


class RecoveryError(MinesweeperClientError):
    """A stored or URL-provided session identifier no longer resolves."""

    def __init__(self, session_id: str):
        super().__init__(f"Could not recover game {session_id}")
        self.session_id = session_id
