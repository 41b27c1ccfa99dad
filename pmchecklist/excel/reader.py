from __future__ import annotations

import zipfile
from collections.abc import Iterable
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Any

import openpyxl
import pandas as pd
from openpyxl.cell.rich_text import CellRichText, TextBlock
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.formula import ArrayFormula
from openpyxl.worksheet.worksheet import Worksheet

from ..models.grid import Cell, CellScalar, Grid, MergeRange

"""Worksheet -> Grid conversion (input boundary of the engine).

read_workbook() is the full-fidelity path: the workbook is loaded twice with
openpyxl, once for formulas / rich-text runs and once (data_only) for the cached
formula results, so a Cell carries both. Bold, fill and merge ranges come along.

grids_from_excel() / grid_from_dataframe() are the pandas path (header=None, as the
import tooling reads sheets). pandas drops styles and merge ranges: merged
regions read as anchor value + empty cells, which the engine tolerates.
"""

__all__ = [
    "WorkbookReadError",
    "read_workbook",
    "grid_from_worksheet",
    "grids_from_excel",
    "grid_from_dataframe",
]


class WorkbookReadError(Exception):
    """Raised when the bytes cannot be opened as an xlsx workbook."""


def _load(data: bytes, **kwargs: Any) -> openpyxl.Workbook:
    try:
        return openpyxl.load_workbook(BytesIO(data), **kwargs)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        raise WorkbookReadError(f"cannot read workbook: {e}") from e


def read_workbook(data: bytes, target_sheets: Iterable[str] | None = None) -> dict[str, Grid]:
    """Read xlsx bytes returning one Grid per worksheet, keyed by sheet name.

    Parameters
    ----------
    data: xlsx ファイルの中身
    target_sheets: 対象シート制限 (None なら全シート)
    """
    if not data:
        raise WorkbookReadError("cannot read workbook: empty payload")
    wanted = set(target_sheets) if target_sheets is not None else None
    wb_formulas = _load(data, rich_text=True)
    wb_values = _load(data, data_only=True)
    grids: dict[str, Grid] = {}
    for ws in wb_formulas.worksheets:
        if wanted is not None and ws.title not in wanted:
            continue
        grids[ws.title] = grid_from_worksheet(ws, wb_values[ws.title])
    return grids


def _scalar(value: Any) -> CellScalar:
    if value is None or isinstance(value, (str, bool, int, float, datetime, date)):
        return value
    # time / timedelta / エラー値などは文字列として扱う
    return str(value)


def _rich_text(value: Any) -> tuple[str, ...] | None:
    if not isinstance(value, CellRichText):
        return None
    return tuple(run.text if isinstance(run, TextBlock) else str(run) for run in value)


def _formula(value: Any, data_type: str | None) -> str | None:
    if isinstance(value, ArrayFormula):
        return (value.text or "").lstrip("=")
    if data_type == "f" and isinstance(value, str):
        return value.lstrip("=")
    return None


def _fill(cell: Any) -> str | None:
    fill = cell.fill
    if fill is None or not fill.fill_type:
        return None
    color = fill.fgColor
    # テーマ色/インデックス色は rgb を持たない
    if color is None or color.type != "rgb" or not isinstance(color.rgb, str):
        return None
    return color.rgb.upper()


def grid_from_worksheet(ws: Worksheet, values_ws: Worksheet | None = None) -> Grid:
    """Convert an openpyxl worksheet into a Grid.

    ``values_ws`` is the same sheet loaded with data_only=True; it supplies cached
    formula results. Extents shrink to the last cell holding content or a merge,
    so a sheet with no content becomes an empty (0 x 0) grid.
    """
    cells: dict[tuple[int, int], Cell] = {}
    max_row = 0
    max_col = 0
    for row in ws.iter_rows():
        for c in row:
            raw = c.value
            rich = _rich_text(raw)
            formula = _formula(raw, c.data_type)
            if formula is not None:
                value = values_ws.cell(row=c.row, column=c.column).value if values_ws is not None else None
            elif rich is not None:
                value = None
            else:
                value = raw
            bold = bool(c.font is not None and c.font.b)
            fill = _fill(c)
            if value is None and rich is None and formula is None and not bold and fill is None:
                continue
            cells[(c.row, c.column)] = Cell(
                value=_scalar(value), rich_text=rich, formula=formula, bold=bold, fill=fill
            )
            if value is not None or rich is not None or formula is not None:
                max_row = max(max_row, c.row)
                max_col = max(max_col, c.column)

    merges = tuple(
        MergeRange(top=r.min_row, bottom=r.max_row, left=r.min_col, right=r.max_col)
        for r in ws.merged_cells.ranges
    )
    for rng in merges:
        max_row = max(max_row, rng.bottom)
        max_col = max(max_col, rng.right)
    if max_row == 0 or max_col == 0:
        return Grid(max_row=0, max_column=0)
    # 範囲外の書式だけのセルは落とす
    cells = {k: v for k, v in cells.items() if k[0] <= max_row and k[1] <= max_col}
    return Grid(max_row=max_row, max_column=max_col, cells=cells, merges=merges)


def _frame_value(value: Any) -> CellScalar:
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    return _scalar(value)


def grid_from_dataframe(df: pd.DataFrame) -> Grid:
    """Build a Grid from a sheet read with ``header=None`` (frame row 0 is sheet row 1)."""
    rows = [[_frame_value(v) for v in row] for row in df.astype(object).itertuples(index=False, name=None)]
    # 末尾の空行/空列は Excel 上の範囲に含めない
    while rows and all(v is None for v in rows[-1]):
        rows.pop()
    width = max((max((i + 1 for i, v in enumerate(r) if v is not None), default=0) for r in rows), default=0)
    if not rows or width == 0:
        return Grid(max_row=0, max_column=0)
    return Grid.from_rows([r[:width] for r in rows])


def grids_from_excel(path: Path, target_sheets: Iterable[str] | None = None) -> dict[str, Grid]:
    """Read an Excel file with pandas returning one Grid per sheet."""
    wanted = set(target_sheets) if target_sheets is not None else None
    grids: dict[str, Grid] = {}
    try:
        xls = pd.ExcelFile(path)
    except (zipfile.BadZipFile, ValueError, OSError) as e:
        raise WorkbookReadError(f"cannot read workbook {path}: {e}") from e
    for name in xls.sheet_names:
        if wanted is not None and str(name) not in wanted:
            continue
        df = xls.parse(name, header=None)
        grids[str(name)] = grid_from_dataframe(df)
    return grids
