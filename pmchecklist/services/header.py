from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from ..config.loader import CompiledConfig
from ..models.finding import Finding, FindingCode
from ..models.grid import Grid
from ..models.template import AssetDimension, AssetKind, ColumnRole, RoleKind
from .cell_resolver import resolve_text
from .rules import Rule, first_match

"""Header & Column Role Classifier.

1. Header row: the first row in the scan window whose cells carry at least one
   asset-dimension code, or both a sequence-like and a description-like label in
   different cells. First match wins; later rows are never preferred.
2. Column roles: each header cell is run through ordered rules
   (CT building -> inverter -> sequence -> description -> remarks -> result).
3. CT building headers may be followed by an inverter sub-header row (one inverter
   column per CT column group); those columns are attached to their CT.
4. Missing header -> default layout from config (sequence col 2, description col 3).
"""

__all__ = [
    "HeaderLayout",
    "HeaderSignal",
    "ColumnContext",
    "HEADER_ROW_RULES",
    "COLUMN_ROLE_RULES",
    "match_asset",
    "header_signal",
    "find_header_row",
    "classify_columns",
    "classify_header",
]

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)*[.)]?")


@dataclass(frozen=True)
class HeaderLayout:
    header_row: int | None
    data_start_row: int
    roles: dict[int, ColumnRole]
    sequence_column: int
    description_column: int
    remarks_column: int | None = None
    result_column: int | None = None
    asset_dimensions: tuple[AssetDimension, ...] = ()

    @property
    def value_assets(self) -> tuple[AssetDimension, ...]:
        """Asset columns that hold per-item values.

        A CT column that owns inverter sub-columns is a grouping header only; its
        inverters carry the values.
        """
        grouped = {a.parent for a in self.asset_dimensions if a.parent is not None}
        return tuple(
            a for a in self.asset_dimensions
            if not (a.kind is AssetKind.CT_BUILDING and a.code in grouped)
        )


def asset_key(asset: AssetDimension) -> str:
    """Key under which an item stores this asset's captured value."""
    return f"{asset.parent}:{asset.code}" if asset.parent else asset.code


# ---------------------------------------------------------------------------
# Asset-dimension patterns

def match_asset(text: str, cc: CompiledConfig) -> tuple[AssetKind, int] | None:
    """Classify a header cell as a CT building or inverter code (whole-cell match)."""
    stripped = text.strip()
    if not stripped:
        return None
    for pattern in cc.ct_res:
        m = pattern.fullmatch(stripped)
        if m:
            return AssetKind.CT_BUILDING, int(m.group(1))
    for pattern in cc.inverter_res:
        m = pattern.fullmatch(stripped)
        if m:
            return AssetKind.INVERTER, int(m.group(1))
    return None


def _asset(kind: AssetKind, index: int, text: str, column: int, parent: str | None = None) -> AssetDimension:
    code = f"CT{index}" if kind is AssetKind.CT_BUILDING else f"C{index:03d}"
    return AssetDimension(kind=kind, index=index, code=code, display_name=text.strip(), column=column, parent=parent)


# ---------------------------------------------------------------------------
# Header row detection

@dataclass(frozen=True)
class HeaderSignal:
    asset_count: int
    sequence_cells: frozenset[int]
    description_cells: frozenset[int]

    @property
    def has_sequence_and_description(self) -> bool:
        # 同一セル ("Item description") だけでは不十分: 別々のセルが必要
        return bool(self.sequence_cells) and bool(self.description_cells) and (
            len(self.sequence_cells | self.description_cells) >= 2
        )


HEADER_ROW_RULES: tuple[Rule[HeaderSignal, str], ...] = (
    Rule("asset_dimension", lambda s: s.asset_count >= 1, "asset_dimension"),
    Rule("sequence_and_description", lambda s: s.has_sequence_and_description, "labels"),
)


def header_signal(grid: Grid, row: int, cc: CompiledConfig) -> HeaderSignal:
    last_col = min(grid.max_column, cc.config.header_scan_columns)
    assets = 0
    seq: set[int] = set()
    desc: set[int] = set()
    for col in range(1, last_col + 1):
        text = resolve_text(grid, row, col)
        if not text:
            continue
        if match_asset(text, cc) is not None:
            assets += 1
            continue
        if cc.sequence_kw_re.search(text):
            seq.add(col)
        if cc.description_kw_re.search(text):
            desc.add(col)
    return HeaderSignal(asset_count=assets, sequence_cells=frozenset(seq), description_cells=frozenset(desc))


def find_header_row(grid: Grid, cc: CompiledConfig) -> int | None:
    last_row = min(grid.max_row, cc.config.header_scan_rows)
    for row in range(1, last_row + 1):
        rule = first_match(HEADER_ROW_RULES, header_signal(grid, row, cc))
        if rule is not None:
            logger.debug("header row %d selected by rule %s", row, rule.name)
            return row
    return None


# ---------------------------------------------------------------------------
# Column roles

@dataclass(frozen=True)
class ColumnContext:
    text: str
    cc: CompiledConfig
    taken: frozenset[RoleKind] = field(default_factory=frozenset)

    def asset(self) -> tuple[AssetKind, int] | None:
        return match_asset(self.text, self.cc)


COLUMN_ROLE_RULES: tuple[Rule[ColumnContext, AssetKind | RoleKind], ...] = (
    Rule(
        "ct_building",
        lambda c: (m := c.asset()) is not None and m[0] is AssetKind.CT_BUILDING,
        AssetKind.CT_BUILDING,
    ),
    Rule(
        "inverter",
        lambda c: (m := c.asset()) is not None and m[0] is AssetKind.INVERTER,
        AssetKind.INVERTER,
    ),
    Rule(
        "sequence_keyword",
        lambda c: RoleKind.SEQUENCE_NUMBER not in c.taken and bool(c.cc.sequence_kw_re.search(c.text)),
        RoleKind.SEQUENCE_NUMBER,
    ),
    Rule(
        "description_keyword",
        lambda c: RoleKind.DESCRIPTION not in c.taken and bool(c.cc.description_kw_re.search(c.text)),
        RoleKind.DESCRIPTION,
    ),
    Rule(
        "remarks_keyword",
        lambda c: RoleKind.REMARKS not in c.taken and bool(c.cc.remarks_kw_re.search(c.text)),
        RoleKind.REMARKS,
    ),
    Rule(
        "result_keyword",
        lambda c: RoleKind.RESULT not in c.taken and bool(c.cc.result_kw_re.search(c.text)),
        RoleKind.RESULT,
    ),
)


def classify_columns(grid: Grid, row: int, cc: CompiledConfig) -> tuple[dict[int, ColumnRole], list[AssetDimension]]:
    """Assign at most one role per column of the header row."""
    roles: dict[int, ColumnRole] = {}
    assets: list[AssetDimension] = []
    seen_codes: set[str] = set()
    taken: set[RoleKind] = set()
    last_col = min(grid.max_column, cc.config.header_scan_columns)
    for col in range(1, last_col + 1):
        text = resolve_text(grid, row, col)
        if not text:
            continue
        ctx = ColumnContext(text=text, cc=cc, taken=frozenset(taken))
        rule = first_match(COLUMN_ROLE_RULES, ctx)
        if rule is None:
            continue
        if isinstance(rule.outcome, AssetKind):
            _, index = match_asset(text, cc)  # type: ignore[misc]
            asset = _asset(rule.outcome, index, text, col)
            # 結合セルで同じコードが複数列に現れる -> 左端の列のみ採用
            if asset.code in seen_codes:
                continue
            seen_codes.add(asset.code)
            assets.append(asset)
            roles[col] = ColumnRole(RoleKind.ASSET_DIMENSION, asset)
        else:
            roles[col] = ColumnRole(rule.outcome)
            taken.add(rule.outcome)
    return roles, assets


def _inverter_subheader(
    grid: Grid, header_row: int, cts: list[AssetDimension], cc: CompiledConfig
) -> list[AssetDimension]:
    """Inverter columns in the row directly below a CT building header row.

    The row qualifies only if every non-empty cell is an inverter code or is
    vertically merged down from the header row.
    """
    row = header_row + 1
    if row > grid.max_row:
        return []
    last_col = min(grid.max_column, cc.config.header_scan_columns)
    found: list[AssetDimension] = []
    seen: set[tuple[str, str | None]] = set()
    for col in range(1, last_col + 1):
        text = resolve_text(grid, row, col)
        if not text:
            continue
        rng = grid.merge_at(row, col)
        if rng is not None and rng.top <= header_row:
            continue
        m = match_asset(text, cc)
        if m is None or m[0] is not AssetKind.INVERTER:
            return []
        owners = [ct for ct in cts if ct.column <= col]
        parent = max(owners, key=lambda ct: ct.column).code if owners else None
        asset = _asset(AssetKind.INVERTER, m[1], text, col, parent=parent)
        if (asset.code, parent) in seen:
            continue
        seen.add((asset.code, parent))
        found.append(asset)
    return found


def _header_bottom(grid: Grid, header_row: int, cc: CompiledConfig) -> int:
    """Last row covered by the header (vertically merged header cells extend it)."""
    bottom = header_row
    last_col = min(grid.max_column, cc.config.header_scan_columns)
    for col in range(1, last_col + 1):
        rng = grid.merge_at(header_row, col)
        if rng is not None:
            bottom = max(bottom, rng.bottom)
    return bottom


def _infer_sequence_column(
    grid: Grid, start_row: int, roles: dict[int, ColumnRole], cc: CompiledConfig
) -> int | None:
    cfg = cc.config
    last_row = min(grid.max_row, start_row + cfg.sequence_inference_rows - 1)
    last_col = min(grid.max_column, cfg.sequence_inference_columns)
    for row in range(start_row, last_row + 1):
        for col in range(1, last_col + 1):
            if col in roles:
                continue
            if _NUMBER_RE.fullmatch(resolve_text(grid, row, col)):
                return col
    return None


def _default_layout(cc: CompiledConfig) -> HeaderLayout:
    cfg = cc.config
    return HeaderLayout(
        header_row=None,
        data_start_row=1,
        roles={
            cfg.default_sequence_column: ColumnRole(RoleKind.SEQUENCE_NUMBER),
            cfg.default_description_column: ColumnRole(RoleKind.DESCRIPTION),
        },
        sequence_column=cfg.default_sequence_column,
        description_column=cfg.default_description_column,
    )


def classify_header(grid: Grid, cc: CompiledConfig) -> tuple[HeaderLayout, list[Finding]]:
    findings: list[Finding] = []
    header_row = find_header_row(grid, cc)
    if header_row is None:
        findings.append(Finding.create(
            FindingCode.HEADER_ROW_NOT_FOUND,
            f"no header row in rows 1-{min(grid.max_row, cc.config.header_scan_rows)}; using default column layout",
        ))
        findings.append(Finding.create(FindingCode.ASSET_DIMENSIONS_NOT_FOUND, "no asset-dimension columns"))
        return _default_layout(cc), findings

    roles, assets = classify_columns(grid, header_row, cc)
    data_start = _header_bottom(grid, header_row, cc) + 1

    cts = [a for a in assets if a.kind is AssetKind.CT_BUILDING]
    if cts:
        inverters = _inverter_subheader(grid, header_row, cts, cc)
        if inverters:
            for inv in inverters:
                roles[inv.column] = ColumnRole(RoleKind.ASSET_DIMENSION, inv)
            assets.extend(inverters)
            data_start = max(data_start, header_row + 2)
            logger.debug("inverter sub-header at row %d: %d inverter columns", header_row + 1, len(inverters))

    def column_of(kind: RoleKind) -> int | None:
        return next((col for col, role in sorted(roles.items()) if role.kind is kind), None)

    seq_col = column_of(RoleKind.SEQUENCE_NUMBER)
    desc_col = column_of(RoleKind.DESCRIPTION)
    if seq_col is None:
        seq_col = _infer_sequence_column(grid, data_start, roles, cc)
        if seq_col is not None:
            roles[seq_col] = ColumnRole(RoleKind.SEQUENCE_NUMBER)
    if desc_col is None:
        if seq_col is not None:
            desc_col = seq_col + 1
        else:
            desc_col = cc.config.default_description_column
        roles.setdefault(desc_col, ColumnRole(RoleKind.DESCRIPTION))
        findings.append(Finding.create(
            FindingCode.DESCRIPTION_COLUMN_INFERRED,
            f"no description header; using column {desc_col}",
            row=header_row,
        ))
    if seq_col is None:
        seq_col = cc.config.default_sequence_column

    if not assets:
        findings.append(Finding.create(
            FindingCode.ASSET_DIMENSIONS_NOT_FOUND, "no asset-dimension columns", row=header_row
        ))

    layout = HeaderLayout(
        header_row=header_row,
        data_start_row=data_start,
        roles=roles,
        sequence_column=seq_col,
        description_column=desc_col,
        remarks_column=column_of(RoleKind.REMARKS),
        result_column=column_of(RoleKind.RESULT),
        asset_dimensions=tuple(assets),
    )
    logger.debug(
        "header row %d: sequence=%d description=%d assets=%s",
        header_row, seq_col, desc_col, [a.code for a in assets],
    )
    return layout, findings
