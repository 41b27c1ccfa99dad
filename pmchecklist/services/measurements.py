from __future__ import annotations

import logging

from ..config.loader import CompiledConfig
from ..models.grid import Grid
from ..models.template import AssetDimension, ItemType, MeasurementField
from .cell_resolver import is_merge_continuation, resolve_text
from .header import HeaderLayout, asset_key
from .segmenter import ItemDraft

"""Measurement Field Detector.

Looks at an item's value columns: the asset columns when the sheet has them,
otherwise the measurement_column_span columns right of the description. A column
yields one numeric MeasurementField when its cell holds a placeholder such as
"{value}" or a unit-bearing label ("(V)", "voltage"). Detection is column-local;
nothing is remembered between rows or parses.
"""

__all__ = [
    "find_unit",
    "value_columns",
    "detect_measurements",
    "apply_measurements",
]

logger = logging.getLogger(__name__)


def find_unit(text: str, cc: CompiledConfig) -> str | None:
    """Unit named by ``text``: a parenthesised abbreviation first, then a unit keyword."""
    m = cc.unit_abbr_re.search(text)
    if m:
        return m.group(1)
    # 大文字小文字違い ("(v)") は設定上の表記で返す
    m = cc.unit_abbr_ci_re.search(text)
    if m:
        return cc.unit_spellings[m.group(1).casefold()]
    for unit, pattern in cc.unit_keyword_res:
        if pattern.search(text):
            return unit
    return None


def value_columns(grid: Grid, layout: HeaderLayout, cc: CompiledConfig) -> list[tuple[int, AssetDimension | None]]:
    if layout.value_assets:
        return [(a.column, a) for a in layout.value_assets]
    first = layout.description_column + 1
    last = min(grid.max_column, layout.description_column + cc.config.measurement_column_span)
    skip = {layout.sequence_column, layout.remarks_column}
    return [(col, None) for col in range(first, last + 1) if col not in skip]


def detect_measurements(
    grid: Grid, layout: HeaderLayout, item: ItemDraft, cc: CompiledConfig
) -> list[MeasurementField]:
    found: list[MeasurementField] = []
    for col, asset in value_columns(grid, layout, cc):
        if is_merge_continuation(grid, item.row, col):
            continue
        text = resolve_text(grid, item.row, col)
        if not text:
            continue
        cell_unit = find_unit(text, cc)
        if cc.placeholder_re.search(text) is None and cell_unit is None:
            continue
        unit = cell_unit or find_unit(item.label, cc)
        label = item.label if asset is None else f"{item.label} - {asset_key(asset)}"
        if unit is not None and f"({unit})" not in label:
            label = f"{label} ({unit})"
        found.append(MeasurementField(id=f"value_{col}", label=label, unit=unit))
    return found


def apply_measurements(grid: Grid, layout: HeaderLayout, item: ItemDraft, cc: CompiledConfig) -> None:
    """Set the item's type and measurement fields from its value columns."""
    if any(
        cc.free_text_re.search(resolve_text(grid, item.row, col))
        for col, _ in value_columns(grid, layout, cc)
    ):
        item.type = ItemType.FREE_TEXT
    fields = detect_measurements(grid, layout, item, cc)
    if fields:
        item.measurement_fields = fields
        item.type = ItemType.PASS_FAIL_WITH_MEASUREMENT
        logger.debug("row %d: %d measurement field(s)", item.row, len(fields))
