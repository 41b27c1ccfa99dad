"""Domain models for the checklist structure extraction engine.

This package contains the input grid model, the template document output model
and the advisory finding record.
"""

from .finding import Finding, FindingCode
from .grid import Cell, Grid, GridError, MergeRange
from .template import (
    AssetDimension,
    AssetKind,
    ColumnRole,
    Frequency,
    Item,
    ItemType,
    MeasurementField,
    NumberingScheme,
    RoleKind,
    Section,
    TemplateDocument,
    TemplateMetadata,
)

__all__ = [
    # Input models
    "Cell",
    "Grid",
    "GridError",
    "MergeRange",
    # Output models
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
    # Advisory findings
    "Finding",
    "FindingCode",
]
