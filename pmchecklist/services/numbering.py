from __future__ import annotations

import logging
import re

from ..config.loader import CompiledConfig
from ..models.finding import Finding, FindingCode
from ..models.grid import Grid
from ..models.template import NumberingScheme
from .cell_resolver import resolve_text
from .header import HeaderLayout

"""Numbering Scheme Classifier.

Reads up to numbering_sample_rows values of the sequence column below the header.
One hierarchical value ("1.1", "2.3.1") makes the sheet Hierarchical; otherwise it
is Sequential. The decision is made once per worksheet and the segmenter never
revisits it.
"""

logger = logging.getLogger(__name__)

_ANY_NUMBER_RE = re.compile(r"\d+(?:\.\d+)*[.)]?")


def classify_numbering(
    grid: Grid, layout: HeaderLayout, cc: CompiledConfig
) -> tuple[NumberingScheme, list[Finding]]:
    start = layout.data_start_row
    last = min(grid.max_row, start + cc.config.numbering_sample_rows - 1)
    saw_number = False
    for row in range(start, last + 1):
        text = resolve_text(grid, row, layout.sequence_column)
        if not text:
            continue
        if cc.hierarchical_re.fullmatch(text):
            logger.debug("hierarchical numbering detected at row %d (%s)", row, text)
            return NumberingScheme.HIERARCHICAL, []
        if _ANY_NUMBER_RE.fullmatch(text):
            saw_number = True

    findings: list[Finding] = []
    if not saw_number:
        findings.append(Finding.create(
            FindingCode.NUMBERING_SCHEME_AMBIGUOUS,
            f"no item numbers in rows {start}-{last} of column {layout.sequence_column}; assuming sequential",
        ))
    return NumberingScheme.SEQUENTIAL, findings
