"""Turn loosely-shaped server payloads into canonical game state.

The backend does not promise a single response shape: dimensions may come as
rows/cols or height/width, cells as a flat list or a 2-D grid, and the id under
either ``gameId`` or ``id``. Every canonical field is resolved through the
synonym tables below, first usable value wins. Adding a new wire name is a
one-line change to the matching table.

``normalize`` is total: malformed values fall back to defaults and never abort
the whole payload.
"""
import logging
import uuid
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Optional

from minesweeper_client.types import Cell, GameState, GameStatus

logger = logging.getLogger(__name__)

SENTINEL_GAME_ID = "00000000-0000-0000-0000-000000000000"

# Envelope keys some servers wrap the state document in.
ENVELOPE_FIELDS = ("gameState",)
BOARD_FIELDS = ("board",)

SESSION_ID_FIELDS = ("gameId", "id")
STATUS_FIELDS = ("gameStatus", "status")
ROWS_FIELDS = ("rows", "height")
COLS_FIELDS = ("cols", "width")
MINES_FIELDS = ("mines", "mineCount")
FLAGS_FIELDS = ("flagsLeft", "flagsRemaining")
CELLS_FIELDS = ("cells", "gameBoard")

CELL_X_FIELDS = ("x", "col")
CELL_Y_FIELDS = ("y", "row")
REVEALED_FIELDS = ("isRevealed",)
FLAGGED_FIELDS = ("isFlagged",)
MINE_FIELDS = ("isMine",)
ADJACENT_FIELDS = ("adjacentMines", "adjacentMinesCount", "neighborMines")

_FALSY_STRINGS = {"", "0", "false", "no", "off", "none", "null"}

_STATUS_ALIASES = {
    "created": GameStatus.CREATED,
    "notstarted": GameStatus.CREATED,
    "new": GameStatus.CREATED,
    "inprogress": GameStatus.IN_PROGRESS,
    "started": GameStatus.IN_PROGRESS,
    "playing": GameStatus.IN_PROGRESS,
    "won": GameStatus.WON,
    "win": GameStatus.WON,
    "lost": GameStatus.LOST,
    "lose": GameStatus.LOST,
}
# Servers serializing the enum by ordinal.
_STATUS_ORDINALS = (
    GameStatus.CREATED,
    GameStatus.IN_PROGRESS,
    GameStatus.WON,
    GameStatus.LOST,
)

_MISSING = object()


def is_sentinel(value: Any) -> bool:
    """True for the all-zero UUID in any of its string spellings."""
    if not isinstance(value, str):
        return False
    try:
        return uuid.UUID(value).int == 0
    except ValueError:
        return False


def is_usable_id(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != "" and not is_sentinel(value)


def pick(source: Any, fields, accept: Callable[[Any], bool] = None) -> Any:
    """Return the first present (and accepted) value among ``fields``."""
    if not isinstance(source, Mapping):
        return _MISSING
    for name in fields:
        value = source.get(name)
        if value is None:
            continue
        if accept is not None and not accept(value):
            continue
        return value
    return _MISSING


def as_int(value: Any, default: int = 0) -> int:
    if value is _MISSING or value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else default
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            try:
                number = float(value)
            except ValueError:
                return default
            return int(number) if number.is_integer() else default
    return default


def as_bool(value: Any) -> bool:
    if value is _MISSING or value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() not in _FALSY_STRINGS
    try:
        return bool(value)
    except Exception:
        return False


def as_status(value: Any) -> GameStatus:
    if isinstance(value, GameStatus):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value < len(_STATUS_ORDINALS):
            return _STATUS_ORDINALS[value]
    elif isinstance(value, str):
        key = value.strip().replace("_", "").replace("-", "").replace(" ", "").lower()
        if key.isdigit():
            return as_status(int(key))
        if key in _STATUS_ALIASES:
            return _STATUS_ALIASES[key]
    if value is not _MISSING:
        logger.warning(f"Unknown game status {value!r}, treating as {GameStatus.CREATED.value}")
    return GameStatus.CREATED


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def flatten_cells(raw_cells: Any) -> list:
    """Flatten a 2-D grid one level; flat lists pass through."""
    if not _is_sequence(raw_cells):
        return []
    if raw_cells and _is_sequence(raw_cells[0]):
        flat = []
        for row in raw_cells:
            if _is_sequence(row):
                flat.extend(row)
        return flat
    return list(raw_cells)


def normalize_cell(raw: Mapping) -> Cell:
    mine = pick(raw, MINE_FIELDS)
    return Cell(
        x=as_int(pick(raw, CELL_X_FIELDS)),
        y=as_int(pick(raw, CELL_Y_FIELDS)),
        is_revealed=as_bool(pick(raw, REVEALED_FIELDS)),
        is_flagged=as_bool(pick(raw, FLAGGED_FIELDS)),
        adjacent_mines=max(0, as_int(pick(raw, ADJACENT_FIELDS))),
        is_mine=None if mine is _MISSING else as_bool(mine),
    )


def pick_session_id(raw: Any, fallback_id: Optional[str] = None) -> str:
    session_id = pick(raw, SESSION_ID_FIELDS, accept=is_usable_id)
    if session_id is not _MISSING:
        return session_id
    if is_usable_id(fallback_id):
        return fallback_id
    return ""


def _unwrap(raw: Any) -> Any:
    envelope = pick(raw, ENVELOPE_FIELDS, accept=lambda v: isinstance(v, Mapping))
    return raw if envelope is _MISSING else envelope


def normalize(raw: Any, fallback_id: Optional[str] = None) -> GameState:
    """Build a ``GameState`` from any server payload; never raises."""
    raw = _unwrap(raw)
    if not isinstance(raw, Mapping):
        logger.warning(f"Game payload is not an object ({type(raw).__name__}), using defaults")
        raw = {}

    board = pick(raw, BOARD_FIELDS, accept=lambda v: isinstance(v, Mapping))
    if board is _MISSING:
        board = {}

    def resolve(fields):
        value = pick(raw, fields)
        return pick(board, fields) if value is _MISSING else value

    cells = {}
    for entry in flatten_cells(resolve(CELLS_FIELDS)):
        if not isinstance(entry, Mapping):
            logger.debug(f"Skipping malformed cell entry {entry!r}")
            continue
        cell = normalize_cell(entry)
        cells[(cell.x, cell.y)] = cell

    return GameState(
        session_id=pick_session_id(raw, fallback_id),
        status=as_status(pick(raw, STATUS_FIELDS)),
        rows=as_int(resolve(ROWS_FIELDS)),
        cols=as_int(resolve(COLS_FIELDS)),
        mines=as_int(resolve(MINES_FIELDS)),
        flags_remaining=as_int(resolve(FLAGS_FIELDS)),
        cells=tuple(cells.values()),
    )
