from __future__ import annotations

import logging

from ..config.loader import CompiledConfig, ExtractionConfig
from ..logging.init import SUMMARY_LEVEL
from ..models.grid import Grid
from ..models.template import TemplateDocument
from .assembler import assemble
from .header import classify_header
from .measurements import apply_measurements
from .metadata import extract_metadata
from .numbering import classify_numbering
from .segmenter import segment
from .summary import render_summary_line

"""Single entry point of the checklist structure extraction engine.

parse_grid() runs the pipeline for one worksheet:

    header/column roles -> metadata -> numbering scheme -> segmentation
    -> measurement fields -> assembly

It is synchronous, performs no I/O and keeps no state between calls, so callers
may parse many grids concurrently (one Grid per worker). Only a structurally empty
grid is a hard failure; every other ambiguity becomes an advisory finding on the
returned document.
"""

__all__ = [
    "StructuralInputError",
    "EmptyGridError",
    "parse_grid",
]

logger = logging.getLogger(__name__)


class StructuralInputError(Exception):
    """Base exception for grids the engine cannot parse at all."""
    pass


class EmptyGridError(StructuralInputError):
    """Raised when the grid has zero rows or zero columns."""
    pass


def parse_grid(
    grid: Grid,
    source_name: str = "",
    config: ExtractionConfig | CompiledConfig | None = None,
) -> TemplateDocument:
    """Extract the normalized checklist template from one worksheet grid.

    Args:
        grid: Worksheet grid produced by the spreadsheet-reading collaborator
        source_name: Declared source file name (drives the frequency heuristic)
        config: Extraction configuration; defaults when None

    Returns:
        TemplateDocument with at least one section holding at least one item

    Raises:
        EmptyGridError: If the grid has no rows or no columns
        ConfigError: If the configuration holds an invalid pattern
    """
    if grid.is_empty:
        raise EmptyGridError(
            f"grid for '{source_name or '<unnamed>'}' is empty ({grid.max_row} rows x {grid.max_column} columns)"
        )
    cc = config if isinstance(config, CompiledConfig) else (config or ExtractionConfig()).compile()

    layout, header_findings = classify_header(grid, cc)
    meta = extract_metadata(grid, source_name, cc, layout.header_row)
    scheme, numbering_findings = classify_numbering(grid, layout, cc)
    logger.debug("%s: header_row=%s scheme=%s", source_name, layout.header_row, scheme.value)

    segmentation = segment(grid, layout, scheme, cc)
    for item in segmentation.items:
        apply_measurements(grid, layout, item, cc)

    document = assemble(
        meta.metadata,
        segmentation.sections,
        layout,
        scheme,
        meta.findings + header_findings + numbering_findings + segmentation.findings,
        cc,
    )
    logger.log(SUMMARY_LEVEL, render_summary_line(document))
    return document
