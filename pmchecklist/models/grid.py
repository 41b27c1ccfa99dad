from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

"""Grid domain model for the checklist extraction engine.

A Grid is the read-only view of one worksheet handed to the engine by the
spreadsheet-reading collaborator (see pmchecklist.excel.reader). Coordinates are
1-based (row 1 / column 1 is the top-left cell) like the spreadsheet itself.

Merge ranges are indexed once per grid: for every covered row we keep a sorted
list of (left, right, range) intervals, so anchor lookups are a bisect instead
of a scan over every range in the sheet.
"""

__all__ = [
    "Cell",
    "CellScalar",
    "Grid",
    "GridError",
    "MergeRange",
]

CellScalar = str | int | float | bool | date | datetime | None


class GridError(Exception):
    """Raised when a grid is internally inconsistent (e.g. overlapping merges)."""


@dataclass(frozen=True)
class Cell:
    """Raw cell as read from the workbook.

    Attributes:
        value: Raw scalar (text, number, bool, date) or None. For formula cells this
            is the cached result, None when the workbook carries no cached value.
        rich_text: Ordered rich-text run texts when the cell holds formatted text.
        formula: Formula source without the leading '='.
        bold: Font weight of the cell.
        fill: Foreground fill color (ARGB hex) or None for no fill.
    """
    value: CellScalar = None
    rich_text: tuple[str, ...] | None = None
    formula: str | None = None
    bold: bool = False
    fill: str | None = None


@dataclass(frozen=True)
class MergeRange:
    """Rectangular merged region; its anchor is the top-left cell."""
    top: int
    bottom: int
    left: int
    right: int

    @property
    def anchor(self) -> tuple[int, int]:
        return (self.top, self.left)

    def contains(self, row: int, col: int) -> bool:
        return self.top <= row <= self.bottom and self.left <= col <= self.right


@dataclass(frozen=True)
class Grid:
    """Rectangular table of cells with merge ranges.

    Cells absent from ``cells`` are empty. ``max_row``/``max_column`` give the sheet
    extents; a grid with either extent at zero is structurally empty.
    """
    max_row: int
    max_column: int
    cells: Mapping[tuple[int, int], Cell] = field(default_factory=dict)
    merges: tuple[MergeRange, ...] = ()
    # row -> sorted [(left, right, MergeRange)]
    _merge_index: dict[int, list[tuple[int, int, MergeRange]]] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )
    # row -> sorted lefts (parallel to _merge_index)
    _merge_lefts: dict[int, list[int]] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if self.max_row < 0 or self.max_column < 0:
            raise GridError(f"negative grid extents: {self.max_row}x{self.max_column}")
        index: dict[int, list[tuple[int, int, MergeRange]]] = {}
        lefts_index: dict[int, list[int]] = {}
        for rng in self.merges:
            if rng.top > rng.bottom or rng.left > rng.right or rng.top < 1 or rng.left < 1:
                raise GridError(f"invalid merge range: {rng}")
            for row in range(rng.top, rng.bottom + 1):
                intervals = index.setdefault(row, [])
                lefts = lefts_index.setdefault(row, [])
                pos = bisect_right(lefts, rng.left)
                # 左隣の区間が rng.left を覆う / 右隣の区間が rng.right 以前から始まる -> 重複
                if pos > 0 and intervals[pos - 1][1] >= rng.left:
                    raise GridError(f"overlapping merge ranges: {intervals[pos - 1][2]} and {rng}")
                if pos < len(intervals) and intervals[pos][0] <= rng.right:
                    raise GridError(f"overlapping merge ranges: {intervals[pos][2]} and {rng}")
                intervals.insert(pos, (rng.left, rng.right, rng))
                lefts.insert(pos, rng.left)
        object.__setattr__(self, "_merge_index", index)
        object.__setattr__(self, "_merge_lefts", lefts_index)

    @property
    def is_empty(self) -> bool:
        return self.max_row == 0 or self.max_column == 0

    def cell(self, row: int, col: int) -> Cell | None:
        return self.cells.get((row, col))

    def merge_at(self, row: int, col: int) -> MergeRange | None:
        """Return the merge range covering (row, col), if any."""
        intervals = self._merge_index.get(row)
        if not intervals:
            return None
        pos = bisect_right(self._merge_lefts[row], col)
        if pos == 0:
            return None
        left, right, rng = intervals[pos - 1]
        return rng if left <= col <= right else None

    def anchor_of(self, row: int, col: int) -> tuple[int, int]:
        rng = self.merge_at(row, col)
        return rng.anchor if rng is not None else (row, col)

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[Sequence[Any]],
        merges: Iterable[MergeRange | tuple[int, int, int, int]] = (),
        bold: Iterable[tuple[int, int]] = (),
        fills: Mapping[tuple[int, int], str] | None = None,
    ) -> Grid:
        """Build a grid from row-major values (row 0 of ``rows`` is sheet row 1).

        Values may be plain scalars or ready-made ``Cell`` objects. Merge ranges may be
        given as ``(top, bottom, left, right)`` tuples.
        """
        bold_set = set(bold)
        fills = fills or {}
        cells: dict[tuple[int, int], Cell] = {}
        max_col = 0
        for r, values in enumerate(rows, start=1):
            max_col = max(max_col, len(values))
            for c, value in enumerate(values, start=1):
                if isinstance(value, Cell):
                    cells[(r, c)] = value
                    continue
                is_bold = (r, c) in bold_set
                fill = fills.get((r, c))
                if value is None and not is_bold and fill is None:
                    continue
                cells[(r, c)] = Cell(value=value, bold=is_bold, fill=fill)
        ranges = tuple(m if isinstance(m, MergeRange) else MergeRange(*m) for m in merges)
        return cls(max_row=len(rows), max_column=max_col, cells=cells, merges=ranges)
