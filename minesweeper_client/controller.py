"""Session controller: owns the canonical game state and its lifecycle."""
import logging
from enum import Enum
from typing import Awaitable, Callable

from minesweeper_client.board import BoardView
from minesweeper_client.errors import MinesweeperClientError, NoUsableSessionIdError, RecoveryError
from minesweeper_client.session_store import SessionStore
from minesweeper_client.transport import GameTransport
from minesweeper_client.types import Difficulty, GameState

logger = logging.getLogger(__name__)

EMPTY_ID_MESSAGE = "gameId is empty, create a new game."


class ControllerPhase(str, Enum):
    NO_SESSION = 'NO_SESSION'
    RECOVERING = 'RECOVERING'
    ACTIVE = 'ACTIVE'
    MUTATING = 'MUTATING'


class SessionController:
    """Drives recovery, game creation and moves for a single view.

    Each async flow remembers the epoch it started in. ``unmount``, ``clear``
    and ``new_game`` move the epoch forward, so a flow that finishes after
    being superseded drops its result instead of touching the live view.
    """

    def __init__(self, transport: GameTransport, store: SessionStore):
        self.transport = transport
        self.store = store
        self.state: GameState | None = None
        self.phase = ControllerPhase.NO_SESSION
        self.error: str | None = None
        self._epoch = 0

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def pending(self) -> bool:
        return self.phase == ControllerPhase.MUTATING

    @property
    def disabled(self) -> bool:
        """True when the board must not accept moves."""
        return self.state is None or self.state.is_over or self.pending

    def board(self) -> BoardView | None:
        if self.state is None:
            return None
        return BoardView(
            state=self.state,
            on_reveal=self.reveal,
            on_toggle_flag=self.toggle_flag,
            disabled=self.disabled,
        )

    async def mount(self) -> GameState | None:
        """Recover a previous session from the URL or durable storage."""
        candidate = self.store.load()
        if candidate is None:
            return None

        epoch = self._epoch
        self.phase = ControllerPhase.RECOVERING
        logger.info(f"Recovering game {candidate.session_id} (from {'url' if candidate.from_url else 'storage'})")
        try:
            try:
                state = await self.transport.fetch_game(candidate.session_id)
            except MinesweeperClientError as error:
                raise RecoveryError(candidate.session_id) from error
        except RecoveryError as error:
            if self._superseded(epoch):
                return None
            # Stale or expired sessions are not reported to the user.
            logger.info(f"{error}: {error.__cause__}")
            self.store.clear()
            self.state = None
            self.phase = ControllerPhase.NO_SESSION
            return None

        if self._superseded(epoch):
            return None
        self._publish(state)
        if not candidate.from_url and state.session_id:
            self.store.save(state.session_id)
        return state

    def unmount(self) -> None:
        """Tear the view down; in-flight results are ignored from now on."""
        self._epoch += 1
        self._settle()

    async def new_game(self, difficulty: Difficulty | str) -> GameState | None:
        """Create a game and make it the current session."""
        if self.pending:
            logger.debug("Ignoring new game request while another request is pending")
            return self.state

        self._epoch += 1
        epoch = self._epoch
        self.error = None
        self.phase = ControllerPhase.MUTATING
        try:
            state = await self.transport.create_game(difficulty)
        except MinesweeperClientError as error:
            if self._superseded(epoch):
                return None
            self._settle()
            self._fail("Failed to create game", error)
            return self.state

        if self._superseded(epoch):
            return None
        self.store.save(state.session_id)
        self._publish(state)
        logger.info(f"Started game {state.session_id}")
        return state

    async def reveal(self, x: int, y: int) -> GameState | None:
        return await self._mutate(self.transport.reveal_cell, x, y, "Reveal failed")

    async def toggle_flag(self, x: int, y: int) -> GameState | None:
        return await self._mutate(self.transport.toggle_flag, x, y, "Toggle flag failed")

    def clear(self) -> None:
        """Forget the current game in memory and in both persistence channels."""
        self._epoch += 1
        self.store.clear()
        self.state = None
        self.error = None
        self.phase = ControllerPhase.NO_SESSION
        logger.info("Session cleared")

    def dismiss_error(self) -> None:
        self.error = None

    async def _mutate(
        self,
        call: Callable[[str, int, int], Awaitable[GameState]],
        x: int,
        y: int,
        failure_message: str,
    ) -> GameState | None:
        current = self.state
        if not self._accepts_moves():
            return current

        epoch = self._epoch
        self.error = None
        self.phase = ControllerPhase.MUTATING
        try:
            next_state = await call(current.session_id, x, y)
        except MinesweeperClientError as error:
            if self._superseded(epoch):
                return None
            self._settle()
            self._fail(failure_message, error)
            return current

        if self._superseded(epoch):
            return None
        self._publish(next_state)
        return next_state

    def _accepts_moves(self) -> bool:
        if self.state is None:
            logger.debug("Move rejected: no active game")
            return False
        if self.pending:
            logger.debug("Move rejected: a request is already pending")
            return False
        if self.state.is_over:
            logger.debug(f"Move rejected: game is {self.state.status.value}")
            return False
        if not self.state.session_id:
            self.error = EMPTY_ID_MESSAGE
            return False
        return True

    def _settle(self) -> None:
        """Leave any in-flight phase for the resting one matching the state."""
        self.phase = ControllerPhase.ACTIVE if self.state is not None else ControllerPhase.NO_SESSION

    def _publish(self, state: GameState) -> None:
        self.state = state
        self.phase = ControllerPhase.ACTIVE
        if state.is_over:
            logger.info(f"Game {state.session_id} finished: {state.status.value}")

    def _fail(self, message: str, error: MinesweeperClientError) -> None:
        logger.warning(f"{message}: {error}")
        if isinstance(error, NoUsableSessionIdError):
            self.error = str(error)
        else:
            self.error = message

    def _superseded(self, epoch: int) -> bool:
        if epoch != self._epoch:
            logger.debug(f"Discarding result from superseded flow (epoch {epoch}, now {self._epoch})")
            return True
        return False
