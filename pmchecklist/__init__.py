"""Checklist structure extraction engine for PM inspection spreadsheets.

Converts one worksheet grid into a normalized template document (sections,
items, measurement fields, asset dimensions) through a single entry point,
parse_grid().
"""

from .config.loader import CompiledConfig, ConfigError, ExtractionConfig, load_config
from .excel.reader import WorkbookReadError, grid_from_dataframe, grids_from_excel, read_workbook
from .models import Finding, FindingCode, Grid, GridError, TemplateDocument
from .services.engine import EmptyGridError, StructuralInputError, parse_grid
from .services.export import DocumentContractError, document_to_json, validate_document

__all__ = [
    # Entry point
    "parse_grid",
    # Configuration
    "CompiledConfig",
    "ExtractionConfig",
    "load_config",
    # Input boundary
    "Grid",
    "grid_from_dataframe",
    "grids_from_excel",
    "read_workbook",
    # Output
    "Finding",
    "FindingCode",
    "TemplateDocument",
    "document_to_json",
    "validate_document",
    # Errors
    "ConfigError",
    "DocumentContractError",
    "EmptyGridError",
    "GridError",
    "StructuralInputError",
    "WorkbookReadError",
]
