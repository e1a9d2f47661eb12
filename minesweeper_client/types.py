"""Type definitions for the Minesweeper client."""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
from enum import Enum


class GameStatus(str, Enum):
    """Possible game states as reported by the server."""
    CREATED = 'Created'
    IN_PROGRESS = 'InProgress'
    WON = 'Won'
    LOST = 'Lost'

    @property
    def is_terminal(self) -> bool:
        return self in (GameStatus.WON, GameStatus.LOST)


class Difficulty(str, Enum):
    """Board presets understood by the server."""
    EASY = 'Easy'
    MEDIUM = 'Medium'
    HARD = 'Hard'
    CUSTOM = 'Custom'


@dataclass(frozen=True)
class Cell:
    """Represents a single cell on the minesweeper board."""
    x: int
    y: int
    is_revealed: bool = False
    is_flagged: bool = False
    adjacent_mines: int = 0
    is_mine: Optional[bool] = None  # only set when the server discloses it

    def to_dict(self) -> dict:
        data = {
            'x': self.x,
            'y': self.y,
            'isRevealed': self.is_revealed,
            'isFlagged': self.is_flagged,
            'adjacentMines': self.adjacent_mines,
        }
        if self.is_mine is not None:
            data['isMine'] = self.is_mine
        return data


@dataclass(frozen=True)
class GameState:
    """Canonical snapshot of a game. Never edited in place."""
    session_id: str
    status: GameStatus
    rows: int = 0
    cols: int = 0
    mines: int = 0
    flags_remaining: int = 0
    cells: Tuple[Cell, ...] = ()
    _index: Dict[Tuple[int, int], Cell] = field(
        default=None, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        object.__setattr__(self, '_index', {(c.x, c.y): c for c in self.cells})

    @property
    def is_over(self) -> bool:
        return self.status.is_terminal

    def has_cell(self, x: int, y: int) -> bool:
        return (x, y) in self._index

    def cell_at(self, x: int, y: int) -> Optional[Cell]:
        return self._index.get((x, y))

    def to_dict(self) -> dict:
        """Convert game state to JSON-serializable format."""
        return {
            'gameId': self.session_id,
            'status': self.status.value,
            'rows': self.rows,
            'cols': self.cols,
            'mines': self.mines,
            'flagsLeft': self.flags_remaining,
            'cells': [cell.to_dict() for cell in self.cells],
        }
