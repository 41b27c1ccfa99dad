from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from .finding import Finding

"""Template document domain models.

These are the engine's output types. Everything here is frozen: the segmenter
builds mutable drafts during the parse pass and the assembler freezes them into
Section/Item instances (see services/segmenter.py, services/assembler.py).

to_dict() renders the checklist_structure shape consumed by the form renderer and
response validator; contracts/template_document_schema.json pins that shape.
"""

__all__ = [
    "AssetDimension",
    "AssetKind",
    "ColumnRole",
    "Frequency",
    "Item",
    "ItemType",
    "MeasurementField",
    "NumberingScheme",
    "RoleKind",
    "Section",
    "TemplateDocument",
    "TemplateMetadata",
]


class AssetKind(Enum):
    CT_BUILDING = "ct_building"
    INVERTER = "inverter"


class RoleKind(Enum):
    SEQUENCE_NUMBER = "sequence_number"
    DESCRIPTION = "description"
    RESULT = "result"
    REMARKS = "remarks"
    ASSET_DIMENSION = "asset_dimension"


class NumberingScheme(Enum):
    """Item numbering used by a worksheet. Decided once, before segmentation."""
    SEQUENTIAL = "sequential"  # 1, 2, 3 ...
    HIERARCHICAL = "hierarchical"  # 1.1, 1.2, 2.1 ...


class Frequency(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    BI_MONTHLY = "bi-monthly"
    BI_ANNUALLY = "bi-annually"
    ANNUALLY = "annually"


class ItemType(Enum):
    PASS_FAIL = "pass_fail"
    PASS_FAIL_WITH_MEASUREMENT = "pass_fail_with_measurement"
    FREE_TEXT = "free_text"


@dataclass(frozen=True)
class AssetDimension:
    """One CT building / inverter column family member found in the header."""
    kind: AssetKind
    index: int  # building / inverter ordinal from the header text
    code: str  # canonical code: CT3, C014
    display_name: str
    column: int
    parent: str | None = None  # owning CT code for inverter sub-header columns

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "code": self.code,
            "displayName": self.display_name,
            "number": self.index,
            "column": self.column,
        }
        if self.parent is not None:
            data["ctBuilding"] = self.parent
        return data


@dataclass(frozen=True)
class ColumnRole:
    """Semantic role of a header column. ``asset`` is set only for ASSET_DIMENSION."""
    kind: RoleKind
    asset: AssetDimension | None = None


@dataclass(frozen=True)
class MeasurementField:
    id: str
    label: str
    unit: str | None = None
    value_type: str = "number"
    required: bool = True

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "type": self.value_type,
            "required": self.required,
        }
        if self.unit is not None:
            data["unit"] = self.unit
        return data


@dataclass(frozen=True)
class Item:
    id: str
    label: str
    number: str | None = None
    required: bool = True
    type: ItemType = ItemType.PASS_FAIL
    measurement_fields: tuple[MeasurementField, ...] = ()
    asset_values: Mapping[str, str] = field(default_factory=dict)  # asset code -> captured text
    remarks: str | None = None
    source_row: int | None = None

    def __post_init__(self) -> None:
        # 読み取り専用のコピーで保持
        object.__setattr__(self, "asset_values", MappingProxyType(dict(self.asset_values)))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "number": self.number,
            "label": self.label,
            "type": self.type.value,
            "required": self.required,
            "has_observations": True,
        }
        if self.measurement_fields:
            data["measurement_fields"] = [f.to_dict() for f in self.measurement_fields]
        if self.asset_values:
            data["asset_values"] = dict(self.asset_values)
        if self.remarks:
            data["remarks"] = self.remarks
        return data


@dataclass(frozen=True)
class Section:
    id: str
    title: str
    items: tuple[Item, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass(frozen=True)
class TemplateMetadata:
    """Header-derived facts about the checklist (code / title are nullable)."""
    code: str | None
    title: str | None
    frequency: Frequency
    source_file: str
    asset_dimensions: tuple[AssetDimension, ...] = ()
    asset_type: str = "general"
    task_type: str = "PM"

    @property
    def ct_buildings(self) -> tuple[AssetDimension, ...]:
        return tuple(a for a in self.asset_dimensions if a.kind is AssetKind.CT_BUILDING)

    @property
    def inverters(self) -> tuple[AssetDimension, ...]:
        return tuple(a for a in self.asset_dimensions if a.kind is AssetKind.INVERTER)


@dataclass(frozen=True)
class TemplateDocument:
    """Root output of one parse: metadata, ordered sections, advisory findings."""
    metadata: TemplateMetadata
    sections: tuple[Section, ...]
    findings: tuple[Finding, ...] = ()
    numbering_scheme: NumberingScheme = NumberingScheme.SEQUENTIAL
    header_row: int | None = None

    @property
    def warnings(self) -> list[str]:
        return [f.code for f in self.findings]

    @property
    def item_count(self) -> int:
        return sum(len(s.items) for s in self.sections)

    def to_dict(self) -> dict[str, Any]:
        md = self.metadata
        name = md.title or md.source_file
        return {
            "template_code": md.code,
            "template_name": name,
            "description": md.title or f"Checklist for {md.source_file}",
            "asset_type": md.asset_type,
            "task_type": md.task_type,
            "frequency": md.frequency.value,
            "checklist_structure": {
                "metadata": {
                    "procedure": md.code,
                    "source_file": md.source_file,
                    "has_ct_buildings": bool(md.ct_buildings),
                    "has_inverters": bool(md.inverters),
                    "ct_buildings": [a.to_dict() for a in md.ct_buildings],
                    "inverters": [a.to_dict() for a in md.inverters],
                    "numbering_scheme": self.numbering_scheme.value,
                    "header_row": self.header_row,
                },
                "sections": [s.to_dict() for s in self.sections],
            },
            "warnings": self.warnings,
            "findings": [f.to_dict() for f in self.findings],
        }
