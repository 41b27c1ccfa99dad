from __future__ import annotations

from io import BytesIO
from pathlib import Path

import openpyxl
import pandas as pd
import pytest
from openpyxl.styles import Font

from pmchecklist import (
    EmptyGridError,
    document_to_json,
    grids_from_excel,
    load_config,
    parse_grid,
    read_workbook,
    validate_document,
)
from pmchecklist.models.template import ItemType

"""End-to-end: xlsx bytes -> Grid -> TemplateDocument -> validated JSON."""


def _inverter_workbook() -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Checklist"
    ws["A3"] = "PM-021"
    ws["F3"] = "Concentrated Cabinet Inverter Inspection"
    ws.merge_cells("F3:H3")
    ws["A5"] = "No."
    ws["B5"] = "Description"
    ws["C5"] = "CT1"
    ws["E5"] = "CT2"
    ws["G5"] = "Remarks"
    ws.merge_cells("A5:A6")
    ws.merge_cells("B5:B6")
    ws.merge_cells("C5:D5")
    ws.merge_cells("E5:F5")
    ws.merge_cells("G5:G6")
    for col, code in zip("CDEF", ["C001", "C002", "C003", "C004"]):
        ws[f"{col}6"] = code
    ws["A7"] = 1
    ws["B7"] = "Cabinet exterior"
    ws["B7"].font = Font(bold=True)
    rows = [
        ("1.1", "Check door seals", "OK", "OK", "OK", "NOK", "replace seal on C004"),
        ("1.2", "Cabinet temperature", "{value}", "{value}", "{value}", "{value}", None),
        ("2.1", "Check DC isolator operation", "OK", "OK", "OK", "OK", None),
    ]
    for offset, values in enumerate(rows):
        for col, value in zip("ABCDEFG", values):
            ws[f"{col}{8 + offset}"] = value
    ws["B11"] = "Observations:"
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def test_concentrated_cabinet_workbook_end_to_end():
    grids = read_workbook(_inverter_workbook())
    doc = parse_grid(grids["Checklist"], "Concentrated Cabinet_Bi-Monthly 202509.xlsx")
    md = doc.metadata
    assert md.code == "PM-021"
    assert md.title == "Concentrated Cabinet Inverter Inspection"
    assert md.frequency.value == "bi-monthly"
    assert md.asset_type == "concentrated_cabinet"
    assert [a.code for a in md.ct_buildings] == ["CT1", "CT2"]
    assert [(a.code, a.parent) for a in md.inverters] == [
        ("C001", "CT1"), ("C002", "CT1"), ("C003", "CT2"), ("C004", "CT2"),
    ]
    assert doc.header_row == 5
    assert [s.title for s in doc.sections] == ["Cabinet exterior", "Section 2"]

    seals, temperature = doc.sections[0].items
    assert seals.asset_values["CT2:C004"] == "NOK"
    assert seals.remarks == "replace seal on C004"
    assert temperature.type is ItemType.PASS_FAIL_WITH_MEASUREMENT
    assert {f.unit for f in temperature.measurement_fields} == {"°C"}
    assert len(temperature.measurement_fields) == 4
    assert doc.sections[1].items[0].number == "2.1"
    assert doc.warnings == []

    validate_document(doc)


def test_parse_twice_gives_identical_json():
    data = _inverter_workbook()
    first = document_to_json(parse_grid(read_workbook(data)["Checklist"], "a.xlsx"))
    second = document_to_json(parse_grid(read_workbook(data)["Checklist"], "a.xlsx"))
    assert first == second


def test_empty_worksheet_is_rejected():
    wb = openpyxl.Workbook()
    buf = BytesIO()
    wb.save(buf)
    grid = next(iter(read_workbook(buf.getvalue()).values()))
    with pytest.raises(EmptyGridError):
        parse_grid(grid, "empty.xlsx")


def test_pandas_path_with_yaml_config(tmp_path: Path, write_config: Path):
    path = tmp_path / "Weather Station_Fortnightly.xlsx"
    rows = [
        ["WO-7 Weather station check", None, None],
        [None, None, None],
        ["No.", "Description", "Reading"],
        [1, "Clean pyranometer dome", None],
        [2, "Irradiance (W/m²)", "{value}"],
        [None, "Notes", None],
    ]
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name="WS", header=False, index=False)

    grid = grids_from_excel(path)["WS"]
    doc = parse_grid(grid, path.name, load_config(write_config))
    assert doc.metadata.code == "WO-007"
    assert doc.metadata.task_type == "WO"
    assert doc.metadata.frequency.value == "weekly"
    assert [i.label for i in doc.sections[0].items] == ["Clean pyranometer dome", "Irradiance (W/m²)"]
    assert doc.sections[0].items[1].measurement_fields[0].unit == "W/m²"
    validate_document(doc)
