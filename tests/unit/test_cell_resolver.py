from __future__ import annotations

from datetime import date, datetime

from pmchecklist.models.grid import Cell, Grid
from pmchecklist.services.cell_resolver import (
    EMPTY,
    fill_of,
    is_bold,
    is_merge_continuation,
    resolve,
    resolve_text,
)


def test_every_cell_of_a_merge_reads_as_anchor():
    grid = Grid.from_rows(
        [["Header", None, None], [None, None, None], [None, None, None]],
        merges=[(1, 3, 1, 3)],
        bold=[(1, 1)],
    )
    for r in range(1, 4):
        for c in range(1, 4):
            assert resolve(grid, r, c) == "Header"
            assert is_bold(grid, r, c)


def test_missing_cells_are_empty():
    grid = Grid.from_rows([["a"]])
    assert resolve(grid, 5, 5) == EMPTY
    assert resolve_text(grid, 1, 2) == ""


def test_value_normalization():
    grid = Grid.from_rows([[
        Cell(rich_text=("Check ", "earth", " bar ")),
        Cell(formula="SUM(A1:A2)", value=12.0),
        Cell(formula="NOW()"),
        True,
        3.0,
        2.5,
        "  padded  ",
    ]])
    assert resolve(grid, 1, 1) == "Check earth bar"
    assert resolve(grid, 1, 2) == "12"
    assert resolve(grid, 1, 3) == "=NOW()"
    assert resolve(grid, 1, 4) == "TRUE"
    assert resolve(grid, 1, 5) == "3"
    assert resolve(grid, 1, 6) == "2.5"
    assert resolve(grid, 1, 7) == "padded"


def test_dates_are_returned_unchanged_and_rendered_as_iso():
    stamp = datetime(2025, 9, 1, 14, 30)
    grid = Grid.from_rows([[datetime(2025, 9, 1), stamp, date(2025, 1, 2)]])
    assert resolve(grid, 1, 2) == stamp
    assert resolve_text(grid, 1, 1) == "2025-09-01"
    assert resolve_text(grid, 1, 2) == "2025-09-01T14:30:00"
    assert resolve_text(grid, 1, 3) == "2025-01-02"


def test_fill_and_merge_continuation():
    grid = Grid.from_rows(
        [["Group", None, "x"]],
        merges=[(1, 1, 1, 2)],
        fills={(1, 1): "FFD9D9D9"},
    )
    assert fill_of(grid, 1, 2) == "FFD9D9D9"
    assert not is_merge_continuation(grid, 1, 1)
    assert is_merge_continuation(grid, 1, 2)
    assert not is_merge_continuation(grid, 1, 3)
