"""What the rendering layer gets: the state, two callbacks and a disabled flag."""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional

from minesweeper_client.types import Cell, GameState

CellCallback = Callable[[int, int], Awaitable[Any]]


@dataclass(frozen=True)
class BoardView:
    state: GameState
    on_reveal: CellCallback
    on_toggle_flag: CellCallback
    disabled: bool = False

    def grid(self) -> List[List[Optional[Cell]]]:
        """Cells row by row; gaps in the server's cell set stay None."""
        return [
            [self.state.cell_at(x, y) for x in range(self.state.cols)]
            for y in range(self.state.rows)
        ]

    def accepts(self, x: int, y: int) -> bool:
        return not self.disabled and self.state.has_cell(x, y)

    def reveal(self, x: int, y: int) -> Optional[Awaitable[Any]]:
        """Start a reveal, or return None when the click is ignored."""
        if not self.accepts(x, y):
            return None
        return self.on_reveal(x, y)

    def toggle_flag(self, x: int, y: int) -> Optional[Awaitable[Any]]:
        if not self.accepts(x, y):
            return None
        return self.on_toggle_flag(x, y)
