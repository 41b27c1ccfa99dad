from __future__ import annotations

from datetime import date, datetime

from ..models.grid import Cell, Grid

"""Cell resolution: effective displayed value of any grid coordinate.

A cell inside a merge range reads as the range's anchor cell. Values are
normalized as follows:
- rich-text runs are concatenated in order
- formula cells yield the cached result, or "=<formula>" when no result is cached
- date / datetime values are returned unchanged so callers format them
- every other scalar becomes trimmed text (integral floats lose their ".0")
- empty / missing cells yield EMPTY ("") rather than raising
"""

__all__ = [
    "EMPTY",
    "CellValue",
    "resolve",
    "resolve_text",
    "is_bold",
    "fill_of",
    "is_merge_continuation",
]

EMPTY = ""

CellValue = str | date | datetime


def _normalize(cell: Cell | None) -> CellValue:
    if cell is None:
        return EMPTY
    if cell.rich_text is not None:
        return "".join(cell.rich_text).strip()
    value = cell.value
    if value is None:
        if cell.formula:
            return f"={cell.formula}"
        return EMPTY
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def resolve(grid: Grid, row: int, col: int) -> CellValue:
    """Return the displayed value at (row, col), following merge ranges to the anchor."""
    anchor_row, anchor_col = grid.anchor_of(row, col)
    return _normalize(grid.cell(anchor_row, anchor_col))


def resolve_text(grid: Grid, row: int, col: int) -> str:
    """Like resolve() but always text; dates render as ISO-8601 (date part only at midnight)."""
    value = resolve(grid, row, col)
    if isinstance(value, datetime):
        if value.hour == value.minute == value.second == value.microsecond == 0:
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def is_bold(grid: Grid, row: int, col: int) -> bool:
    cell = grid.cell(*grid.anchor_of(row, col))
    return cell is not None and cell.bold


def fill_of(grid: Grid, row: int, col: int) -> str | None:
    cell = grid.cell(*grid.anchor_of(row, col))
    return cell.fill if cell is not None else None


def is_merge_continuation(grid: Grid, row: int, col: int) -> bool:
    """True when (row, col) is covered by a merge range anchored in another column."""
    rng = grid.merge_at(row, col)
    return rng is not None and rng.left != col
