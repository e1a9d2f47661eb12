"""
Tests for the response normalizer.

Tests:
- Field-name synonyms resolve to the same canonical state
- Session id selection, sentinel and fallback rules
- Tolerance of malformed or missing values
"""

import pytest

from minesweeper_client.normalizer import SENTINEL_GAME_ID, as_bool, as_int, normalize
from minesweeper_client.types import Cell, GameState, GameStatus


class TestShapeVariants:
    """Different wire shapes produce one canonical state."""

    def test_documented_example(self):
        """rows/cols from height/width, adjacency from adjacentMinesCount."""
        payload = {
            "gameStatus": "InProgress",
            "width": 3,
            "height": 3,
            "cells": [{"x": 0, "y": 0, "isRevealed": True, "adjacentMinesCount": 2}],
            "id": "abc",
        }

        state = normalize(payload)

        assert state == GameState(
            session_id="abc",
            status=GameStatus.IN_PROGRESS,
            rows=3,
            cols=3,
            mines=0,
            flags_remaining=0,
            cells=(Cell(x=0, y=0, is_revealed=True, is_flagged=False, adjacent_mines=2),),
        )

    def test_naming_variants_are_equivalent(self):
        """rows/height, flat/nested cells and both adjacency names agree."""
        flat = {
            "gameId": "g1",
            "gameStatus": "InProgress",
            "rows": 2,
            "cols": 2,
            "cells": [
                {"x": 0, "y": 0, "isRevealed": True, "adjacentMines": 1},
                {"x": 1, "y": 0, "isRevealed": False},
                {"x": 0, "y": 1, "isFlagged": True},
                {"x": 1, "y": 1},
            ],
        }
        nested = {
            "gameId": "g1",
            "gameStatus": "InProgress",
            "height": 2,
            "width": 2,
            "gameBoard": [
                [
                    {"x": 0, "y": 0, "isRevealed": True, "adjacentMinesCount": 1},
                    {"x": 1, "y": 0, "isRevealed": False},
                ],
                [
                    {"x": 0, "y": 1, "isFlagged": True},
                    {"x": 1, "y": 1},
                ],
            ],
        }

        assert normalize(flat) == normalize(nested)

    def test_rows_take_priority_over_height(self):
        """height/width only apply when rows/cols are absent."""
        state = normalize({"rows": 4, "height": 9, "cols": 5, "width": 9})

        assert (state.rows, state.cols) == (4, 5)

    def test_first_adjacency_field_wins(self):
        """adjacentMines beats adjacentMinesCount when both are present."""
        state = normalize({"cells": [{"x": 0, "y": 0, "adjacentMines": 3, "adjacentMinesCount": 7}]})

        assert state.cell_at(0, 0).adjacent_mines == 3

    def test_null_adjacency_falls_through(self):
        """A null first synonym does not hide the second."""
        state = normalize({"cells": [{"x": 0, "y": 0, "adjacentMines": None, "adjacentMinesCount": 4}]})

        assert state.cell_at(0, 0).adjacent_mines == 4

    def test_envelope_and_board_object(self):
        """A gameState envelope with a nested board object is understood."""
        payload = {
            "gameState": {
                "id": "wrapped",
                "status": "IN_PROGRESS",
                "board": {
                    "width": 2,
                    "height": 1,
                    "mineCount": 1,
                    "cells": [[
                        {"row": 0, "col": 0, "isRevealed": True, "neighborMines": 1},
                        {"row": 0, "col": 1, "isFlagged": True},
                    ]],
                },
            }
        }

        state = normalize(payload)

        assert state.session_id == "wrapped"
        assert state.status == GameStatus.IN_PROGRESS
        assert (state.rows, state.cols, state.mines) == (1, 2, 1)
        assert state.cell_at(0, 0).adjacent_mines == 1
        assert state.cell_at(1, 0).is_flagged

    @pytest.mark.parametrize("raw,expected", [
        ("Created", GameStatus.CREATED),
        ("inprogress", GameStatus.IN_PROGRESS),
        ("NOT_STARTED", GameStatus.CREATED),
        ("WON", GameStatus.WON),
        (3, GameStatus.LOST),
        ("2", GameStatus.WON),
        ("CLOSED", GameStatus.CREATED),
        (None, GameStatus.CREATED),
    ])
    def test_status_spellings(self, raw, expected):
        """Status accepts several spellings and degrades to Created."""
        assert normalize({"gameStatus": raw}).status == expected


class TestSessionId:
    """Session identifier selection."""

    def test_game_id_preferred_over_id(self):
        assert normalize({"gameId": "first", "id": "second"}).session_id == "first"

    def test_sentinel_game_id_skipped(self):
        """The all-zero id is treated as absent."""
        state = normalize({"gameId": SENTINEL_GAME_ID, "id": "real"})

        assert state.session_id == "real"

    def test_sentinel_without_fallback_is_empty(self):
        assert normalize({"gameId": SENTINEL_GAME_ID}).session_id == ""

    def test_sentinel_uses_fallback(self):
        assert normalize({"gameId": SENTINEL_GAME_ID}, "fallback").session_id == "fallback"

    def test_sentinel_fallback_is_also_rejected(self):
        assert normalize({}, SENTINEL_GAME_ID).session_id == ""

    def test_sentinel_without_hyphens(self):
        assert normalize({"gameId": "0" * 32}).session_id == ""

    def test_empty_strings_skipped(self):
        assert normalize({"gameId": "", "id": "  "}, "fb").session_id == "fb"


class TestTolerance:
    """Normalization never raises and degrades to defaults."""

    @pytest.mark.parametrize("payload", [None, [], "text", 42, {"cells": "nope"}, {"cells": [1, "x", None]}])
    def test_garbage_payloads(self, payload):
        """Non-object payloads produce an empty default state."""
        state = normalize(payload)

        assert state.session_id == ""
        assert state.cells == ()

    def test_missing_numbers_default_to_zero(self):
        state = normalize({"gameId": "g"})

        assert (state.rows, state.cols, state.mines, state.flags_remaining) == (0, 0, 0, 0)

    def test_malformed_numbers_default(self):
        state = normalize({"rows": "lots", "cols": "8", "mines": 2.5, "flagsLeft": {"a": 1}})

        assert (state.rows, state.cols, state.mines, state.flags_remaining) == (0, 8, 0, 0)

    def test_negative_flags_pass_through(self):
        """Over-flagging is the server's business."""
        assert normalize({"flagsLeft": -3}).flags_remaining == -3

    def test_flags_remaining_synonym(self):
        assert normalize({"flagsRemaining": 5}).flags_remaining == 5

    def test_revealed_and_flagged_cell_is_kept(self):
        """Contradictory cells are passed through, not rejected."""
        state = normalize({"cells": [{"x": 0, "y": 0, "isRevealed": True, "isFlagged": True}]})

        cell = state.cell_at(0, 0)
        assert cell.is_revealed and cell.is_flagged

    def test_is_mine_only_when_disclosed(self):
        state = normalize({"cells": [
            {"x": 0, "y": 0},
            {"x": 1, "y": 0, "isMine": None},
            {"x": 2, "y": 0, "isMine": 1},
        ]})

        assert state.cell_at(0, 0).is_mine is None
        assert state.cell_at(1, 0).is_mine is None
        assert state.cell_at(2, 0).is_mine is True

    def test_duplicate_coordinates_keep_last(self):
        state = normalize({"cells": [
            {"x": 0, "y": 0, "isFlagged": False},
            {"x": 0, "y": 0, "isFlagged": True},
        ]})

        assert len(state.cells) == 1
        assert state.cell_at(0, 0).is_flagged

    def test_negative_adjacency_clamped(self):
        state = normalize({"cells": [{"x": 0, "y": 0, "adjacentMines": -1}]})

        assert state.cell_at(0, 0).adjacent_mines == 0

    def test_nested_grid_flattened_one_level_only(self):
        """A 3-D structure is not flattened further; inner lists are skipped."""
        state = normalize({"cells": [[[{"x": 0, "y": 0}]]]})

        assert state.cells == ()


class TestCoercion:
    """Value coercion helpers."""

    @pytest.mark.parametrize("value,expected", [
        (True, True), (1, True), ("true", True), ("yes", True),
        (False, False), (0, False), ("false", False), ("0", False), ("", False), (None, False),
    ])
    def test_as_bool(self, value, expected):
        assert as_bool(value) is expected

    @pytest.mark.parametrize("value,expected", [
        (3, 3), ("4", 4), (" 5 ", 5), (6.0, 6), ("7.0", 7), (None, 0), ("x", 0), (1.5, 0),
    ])
    def test_as_int(self, value, expected):
        assert as_int(value) == expected
