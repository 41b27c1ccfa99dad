from __future__ import annotations

from datetime import datetime
from io import BytesIO
from pathlib import Path

import openpyxl
import pandas as pd
import pytest
from openpyxl.styles import Font, PatternFill

from pmchecklist.excel.reader import (
    WorkbookReadError,
    grid_from_dataframe,
    grids_from_excel,
    read_workbook,
)
from pmchecklist.services.cell_resolver import is_bold, resolve, resolve_text


def _xlsx_bytes(wb: openpyxl.Workbook) -> bytes:
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def test_read_workbook_merges_styles_and_values():
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "PM"
    ws["A1"] = "PM-014"
    ws["B2"] = "Electrical"
    ws["B2"].font = Font(bold=True)
    ws["C2"].fill = PatternFill(fill_type="solid", fgColor="FFFFFF00")
    ws["A3"] = 3
    ws["B3"] = datetime(2025, 9, 1)
    ws.merge_cells("C3:E3")
    ws["C3"] = "merged value"
    grids = read_workbook(_xlsx_bytes(wb))
    grid = grids["PM"]
    assert grid.max_row == 3
    assert grid.max_column == 5
    assert resolve(grid, 1, 1) == "PM-014"
    assert is_bold(grid, 2, 2)
    assert grid.cell(2, 3).fill == "FFFFFF00"
    assert resolve(grid, 3, 1) == "3"
    assert resolve_text(grid, 3, 2) == "2025-09-01"
    assert resolve(grid, 3, 5) == "merged value"


def test_formula_without_cached_value():
    wb = openpyxl.Workbook()
    ws = wb.active
    ws["A1"] = 1
    ws["A2"] = "=A1+1"
    grid = next(iter(read_workbook(_xlsx_bytes(wb)).values()))
    cell = grid.cell(2, 1)
    assert cell.formula == "A1+1"
    # openpyxl で保存したファイルにはキャッシュ値がない
    assert resolve(grid, 2, 1) == "=A1+1"


def test_target_sheets_filter_and_empty_sheet():
    wb = openpyxl.Workbook()
    wb.active.title = "Blank"
    wb.create_sheet("Data")["A1"] = "x"
    data = _xlsx_bytes(wb)
    assert set(read_workbook(data)) == {"Blank", "Data"}
    assert read_workbook(data)["Blank"].is_empty
    assert set(read_workbook(data, target_sheets=["Data"])) == {"Data"}


@pytest.mark.parametrize("payload", [b"", b"not a zip file"])
def test_unreadable_bytes(payload: bytes):
    with pytest.raises(WorkbookReadError):
        read_workbook(payload)


def test_grid_from_dataframe_normalizes_values():
    df = pd.DataFrame([
        ["PM-001", None, 1.0],
        [None, pd.Timestamp("2025-01-02"), 2],
        [None, None, None],
    ])
    grid = grid_from_dataframe(df)
    assert grid.max_row == 2
    assert grid.max_column == 3
    assert grid.cell(1, 2) is None
    assert resolve(grid, 1, 3) == "1"
    assert resolve(grid, 2, 2) == datetime(2025, 1, 2)


def test_grid_from_empty_dataframe():
    assert grid_from_dataframe(pd.DataFrame()).is_empty


def test_grids_from_excel(tmp_path: Path):
    path = tmp_path / "sheet.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame([["No.", "Description"], [1, "Check A"]]).to_excel(
            writer, sheet_name="S1", header=False, index=False
        )
    grids = grids_from_excel(path)
    assert resolve(grids["S1"], 2, 2) == "Check A"
    assert resolve(grids["S1"], 2, 1) == "1"
