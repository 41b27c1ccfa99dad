from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from ..config.loader import CompiledConfig
from ..models.finding import Finding, FindingCode
from ..models.grid import Grid
from ..models.template import ItemType, MeasurementField, NumberingScheme
from .cell_resolver import fill_of, is_bold, resolve_text
from .header import HeaderLayout, asset_key
from .rules import Rule, first_match

"""Section/Item Segmenter.

Walks the data rows below the header (bounded by data_row_cap) and classifies each
row as a section boundary, an item or noise using ROW_RULES, evaluated in order.
Section rules come before item rules: a row that reads as both (long, bold or
upper-case text with a number) opens a section.

Items always belong to a section. The first item of a sheet without an explicit
section opens the default section; under hierarchical numbering an item whose
number prefix differs from the open section's number opens a new section.

Output is a list of mutable drafts; the assembler freezes them.
"""

__all__ = [
    "RowKind",
    "RowView",
    "ROW_RULES",
    "ItemDraft",
    "SectionDraft",
    "SegmentationResult",
    "classify_row",
    "segment",
]

logger = logging.getLogger(__name__)

_SEPARATOR_RE = re.compile(r"[\W_]+")
_BARE_INTEGER_RE = re.compile(r"(\d+)[.)]?")
_ANY_NUMBER_RE = re.compile(r"\d+(?:\.\d+)*[.)]?")


class RowKind(Enum):
    SECTION = "section"
    ITEM = "item"
    NOISE = "noise"


@dataclass(frozen=True)
class RowView:
    """What the row rules see of one data row."""
    row: int
    number: str
    description: str
    bold: bool
    fill: str | None
    scheme: NumberingScheme
    cc: CompiledConfig

    @property
    def is_blank(self) -> bool:
        return not self.number and not self.description

    @property
    def is_separator(self) -> bool:
        return bool(self.description) and _SEPARATOR_RE.fullmatch(self.description) is not None

    @property
    def is_noise_keyword(self) -> bool:
        return self.description.casefold().rstrip(":").strip() in self.cc.noise_keywords

    @property
    def is_bare_integer(self) -> bool:
        return _BARE_INTEGER_RE.fullmatch(self.number) is not None

    @property
    def is_hierarchical(self) -> bool:
        return self.cc.hierarchical_re.fullmatch(self.number) is not None

    @property
    def is_number(self) -> bool:
        return _ANY_NUMBER_RE.fullmatch(self.number) is not None or self.is_hierarchical

    @property
    def is_long(self) -> bool:
        return len(self.description) > self.cc.config.section_length_threshold

    @property
    def is_upper(self) -> bool:
        letters = sum(1 for ch in self.description if ch.isalpha())
        return letters >= 3 and self.description.isupper()

    @property
    def is_styled(self) -> bool:
        if not self.description:
            return False
        return self.bold or (self.fill is not None and self.fill.upper() in self.cc.section_fills)

    @property
    def has_text(self) -> bool:
        """Description is non-trivial: long enough and not a separator."""
        return len(self.description) >= self.cc.config.min_description_length and not self.is_separator

    @property
    def prefix(self) -> str | None:
        """Leading integer of a section/item number ("2" for "2", "2." and "2.3")."""
        m = re.match(r"\d+", self.number)
        return str(int(m.group(0))) if m else None


ROW_RULES: tuple[Rule[RowView, RowKind], ...] = (
    Rule("blank", lambda r: r.is_blank, RowKind.NOISE),
    Rule("separator", lambda r: not r.number and (r.is_separator or r.is_noise_keyword), RowKind.NOISE),
    Rule(
        "bare_integer_section",
        lambda r: r.scheme is NumberingScheme.HIERARCHICAL and r.is_bare_integer,
        RowKind.SECTION,
    ),
    Rule("long_text_section", lambda r: r.is_long, RowKind.SECTION),
    Rule("upper_case_section", lambda r: r.is_upper, RowKind.SECTION),
    Rule("styled_section", lambda r: r.is_styled, RowKind.SECTION),
    Rule(
        "hierarchical_item",
        lambda r: r.scheme is NumberingScheme.HIERARCHICAL and r.is_hierarchical and r.has_text,
        RowKind.ITEM,
    ),
    Rule(
        "sequential_item",
        lambda r: r.scheme is NumberingScheme.SEQUENTIAL and r.is_number and r.has_text,
        RowKind.ITEM,
    ),
)


def classify_row(view: RowView) -> RowKind:
    rule = first_match(ROW_RULES, view)
    return rule.outcome if rule is not None else RowKind.NOISE


@dataclass
class ItemDraft:
    label: str
    number: str | None
    row: int
    asset_values: dict[str, str] = field(default_factory=dict)
    remarks: str | None = None
    type: ItemType = ItemType.PASS_FAIL
    measurement_fields: list[MeasurementField] = field(default_factory=list)


@dataclass
class SectionDraft:
    title: str
    row: int
    key: str | None = None  # section number for hierarchical sheets
    items: list[ItemDraft] = field(default_factory=list)


@dataclass
class SegmentationResult:
    sections: list[SectionDraft]
    findings: list[Finding] = field(default_factory=list)

    @property
    def items(self) -> list[ItemDraft]:
        return [item for section in self.sections for item in section.items]


class _Segmenter:
    def __init__(self, grid: Grid, layout: HeaderLayout, scheme: NumberingScheme, cc: CompiledConfig) -> None:
        self.grid = grid
        self.layout = layout
        self.scheme = scheme
        self.cc = cc
        self.sections: list[SectionDraft] = []
        self.current: SectionDraft | None = None

    def view(self, row: int) -> RowView:
        desc_col = self.layout.description_column
        return RowView(
            row=row,
            number=resolve_text(self.grid, row, self.layout.sequence_column),
            description=resolve_text(self.grid, row, desc_col),
            bold=is_bold(self.grid, row, desc_col),
            fill=fill_of(self.grid, row, desc_col),
            scheme=self.scheme,
            cc=self.cc,
        )

    def open_section(self, title: str, row: int, key: str | None) -> SectionDraft:
        section = SectionDraft(title=title, row=row, key=key)
        self.sections.append(section)
        self.current = section
        return section

    def owning_section(self, view: RowView) -> SectionDraft:
        prefix = view.prefix if self.scheme is NumberingScheme.HIERARCHICAL else None
        current = self.current
        if current is None:
            return self.open_section(self.cc.config.default_section_title, view.row, prefix)
        if prefix is None:
            return current
        if current.key is None:
            current.key = prefix
            return current
        if current.key != prefix:
            # "1.x" の後に "2.1" -> 見出し行がなくても新セクション
            return self.open_section(f"Section {prefix}", view.row, prefix)
        return current

    def add_section(self, view: RowView) -> None:
        title = view.description if view.has_text else f"Section {view.number}".strip()
        key = view.prefix if self.scheme is NumberingScheme.HIERARCHICAL else None
        self.open_section(title, view.row, key)
        logger.debug("row %d: section %r", view.row, title)

    def add_item(self, view: RowView) -> None:
        section = self.owning_section(view)
        item = ItemDraft(label=view.description, number=view.number or None, row=view.row)
        for asset in self.layout.value_assets:
            text = resolve_text(self.grid, view.row, asset.column).strip()
            if not text or self.cc.placeholder_re.fullmatch(text):
                continue
            item.asset_values[asset_key(asset)] = text
        if self.layout.remarks_column is not None:
            remarks = resolve_text(self.grid, view.row, self.layout.remarks_column)
            if remarks and remarks != view.description:
                item.remarks = remarks
        section.items.append(item)

    def run(self) -> SegmentationResult:
        findings: list[Finding] = []
        start = self.layout.data_start_row
        last = min(self.grid.max_row, start + self.cc.config.data_row_cap - 1)
        for row in range(start, last + 1):
            view = self.view(row)
            kind = classify_row(view)
            if kind is RowKind.SECTION:
                self.add_section(view)
            elif kind is RowKind.ITEM:
                self.add_item(view)
        if self.grid.max_row > last:
            findings.append(Finding.create(
                FindingCode.ROW_CAP_REACHED,
                f"stopped after {self.cc.config.data_row_cap} data rows; rows {last + 1}-{self.grid.max_row} ignored",
                row=last,
            ))
        return SegmentationResult(sections=self.sections, findings=findings)


def segment(grid: Grid, layout: HeaderLayout, scheme: NumberingScheme, cc: CompiledConfig) -> SegmentationResult:
    """Partition the data rows into ordered section drafts holding ordered item drafts."""
    return _Segmenter(grid, layout, scheme, cc).run()
