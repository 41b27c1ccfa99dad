from __future__ import annotations

import pytest

from pmchecklist.models.finding import FindingCode
from pmchecklist.models.grid import Grid
from pmchecklist.models.template import Frequency
from pmchecklist.services.metadata import (
    derive_name,
    detect_asset_type,
    detect_frequency,
    extract_metadata,
    find_title,
    is_code_token,
    normalize_code,
)


def _header_region(code_cell: object, title_cell: object) -> Grid:
    rows = [[None] * 8 for _ in range(3)]
    rows[2][0] = code_cell
    rows[2][5] = title_cell
    return Grid.from_rows(rows)


def test_code_and_title_from_header_region(cc):
    grid = _header_region("PM-014", "Inspection for CT Building Energy Meter")
    result = extract_metadata(grid, "CT Energy Meter_Monthly 202509.xlsx", cc)
    md = result.metadata
    assert md.code == "PM-014"
    assert md.title == "Inspection for CT Building Energy Meter"
    assert md.frequency is Frequency.MONTHLY
    assert md.asset_type == "energy_meter"
    assert md.task_type == "PM"
    assert result.findings == []


@pytest.mark.parametrize(
    "text,expected",
    [
        ("PM-014", "PM-014"),
        ("pm 14", "PM-014"),
        ("Procedure: PM_6", "PM-006"),
        ("CM-0123", "CM-123"),
        ("Monthly Inspection (PM_06) 202505", "PM-006"),
        ("SPM-001", None),
        ("no code here", None),
    ],
)
def test_normalize_code(cc, text, expected):
    assert normalize_code(text, cc) == expected


def test_is_code_token(cc):
    assert is_code_token(" PM-014 ", cc)
    assert not is_code_token("PM-014 Energy Meter", cc)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("Inverter_Bi-Monthly 202501.xlsx", Frequency.BI_MONTHLY),
        ("Inverter_Bimonthly.xlsx", Frequency.BI_MONTHLY),
        ("Transformer Semi-Annual Check.xlsx", Frequency.BI_ANNUALLY),
        ("Transformer Biannual.xlsx", Frequency.BI_ANNUALLY),
        ("Fire_Annual_2025.xlsx", Frequency.ANNUALLY),
        ("CCTV_quarterly.xlsx", Frequency.QUARTERLY),
        ("SCADA WEEKLY.xlsx", Frequency.WEEKLY),
        ("daily_log.xlsx", Frequency.DAILY),
        ("checklist.xlsx", None),
    ],
)
def test_detect_frequency(cc, name, expected):
    assert detect_frequency(name, cc) is expected


def test_detect_asset_type(cc):
    assert detect_asset_type("Concentrated Cabinet_Monthly.xlsx", cc) == "concentrated_cabinet"
    assert detect_asset_type("String Combiner Box.xlsx", cc) == "string_combiner"
    assert detect_asset_type("Fire Extinguisher.xlsx", cc) == "safety_fire"
    assert detect_asset_type("Misc.xlsx", cc) == "general"


def test_derive_name_strips_extension_and_date_stamp():
    assert derive_name("reports/Inverter_Monthly 202509.xlsx") == "Inverter_Monthly"
    assert derive_name("") is None


def test_title_rejects_code_tokens_and_labels(cc):
    rows = [[None] * 8 for _ in range(4)]
    rows[0][5] = "PM-014"
    rows[1][5] = "Location:"
    rows[2][5] = "Short"
    rows[3][5] = "Longer descriptive title"
    assert find_title(Grid.from_rows(rows), cc) == "Longer descriptive title"


def test_title_label_value_to_the_right(cc):
    grid = Grid.from_rows([["Title:", "Weather Station Monthly Check"]])
    assert find_title(grid, cc) == "Weather Station Monthly Check"


def test_code_outside_scan_window_is_not_found(cc):
    rows = [[None] for _ in range(12)]
    rows[11][0] = "PM-001"
    result = extract_metadata(Grid.from_rows(rows), "sheet.xlsx", cc)
    assert result.metadata.code is None
    codes = [f.code for f in result.findings]
    assert FindingCode.TEMPLATE_CODE_NOT_FOUND in codes
    assert FindingCode.TITLE_NOT_FOUND in codes
    assert FindingCode.FREQUENCY_DEFAULTED in codes
    assert result.metadata.frequency is Frequency.MONTHLY
    assert result.metadata.title == "sheet"


def test_code_falls_back_to_file_name(cc):
    grid = Grid.from_rows([["nothing"]])
    result = extract_metadata(grid, "CM_07 Cable Trench Weekly.xlsx", cc)
    assert result.metadata.code == "CM-007"
    assert result.metadata.task_type == "CM"
    assert result.metadata.frequency is Frequency.WEEKLY
    assert [f.code for f in result.findings] == [
        FindingCode.TEMPLATE_CODE_FROM_FILENAME,
        FindingCode.TITLE_NOT_FOUND,
    ]


def test_scan_stops_above_header_row(cc):
    rows = [[None] * 6 for _ in range(6)]
    rows[2][0] = "PM-014"
    rows[2][5] = "CT Meter Check"
    rows[4][:2] = ["No.", "Description"]
    rows[4][5] = "Remarks"
    rows[5][:2] = [1, "Check display"]
    rows[5][5] = "Display backlight flickers intermittently; replace unit"
    grid = Grid.from_rows(rows)
    assert find_title(grid, cc) == "Display backlight flickers intermittently; replace unit"
    result = extract_metadata(grid, "CT Energy Meter_Monthly.xlsx", cc, header_row=5)
    assert result.metadata.title == "CT Meter Check"
    assert result.metadata.code == "PM-014"
    assert result.findings == []


def test_header_on_first_row_leaves_no_header_region(cc):
    grid = Grid.from_rows([["PM-003", "Description"], [1, "Check fans on the inverter"]])
    result = extract_metadata(grid, "CM-009 Fans Weekly.xlsx", cc, header_row=1)
    assert result.metadata.code == "CM-009"
    assert [f.code for f in result.findings] == [
        FindingCode.TEMPLATE_CODE_FROM_FILENAME,
        FindingCode.TITLE_NOT_FOUND,
    ]


@pytest.mark.parametrize(
    "label,expected",
    [
        ("Title", "Weather Station Monthly Check"),
        ("TITLE :", "Weather Station Monthly Check"),
        # 部分一致のラベルは候補にしない
        ("Title of work: replace damaged cable trays", "Weather Station Monthly Check"),
        ("Titles", "Weather Station Monthly Check"),
    ],
)
def test_title_label_must_be_the_whole_label(cc, label, expected):
    grid = Grid.from_rows([[label, None, None, None, None, "Weather Station Monthly Check"]])
    assert find_title(grid, cc) == expected


def test_title_inline_after_label(cc):
    grid = Grid.from_rows([["Title: Fire Pump Annual Test"]])
    assert find_title(grid, cc) == "Fire Pump Annual Test"
