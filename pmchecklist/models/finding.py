from __future__ import annotations

from dataclasses import asdict, dataclass

"""Advisory finding model.

A Finding records a heuristic default the engine applied because the input was
ambiguous (header row not found, code not found, ...) or degenerate (no section
survived). Findings never abort a parse; they travel with the TemplateDocument so
a caller can accept, review or reject a low-confidence extraction.

Codes are lower snake_case and stable (callers filter on them). row=-1 marks a
sheet-level finding where no specific row applies.
"""

__all__ = [
    "Finding",
    "FindingCode",
]


class FindingCode:
    HEADER_ROW_NOT_FOUND = "header_row_not_found"
    TEMPLATE_CODE_NOT_FOUND = "template_code_not_found"
    TEMPLATE_CODE_FROM_FILENAME = "template_code_from_filename"
    TITLE_NOT_FOUND = "title_not_found"
    FREQUENCY_DEFAULTED = "frequency_defaulted"
    NUMBERING_SCHEME_AMBIGUOUS = "numbering_scheme_ambiguous"
    ASSET_DIMENSIONS_NOT_FOUND = "asset_dimensions_not_found"
    DESCRIPTION_COLUMN_INFERRED = "description_column_inferred"
    ROW_CAP_REACHED = "row_cap_reached"
    EMPTY_SECTIONS_DROPPED = "empty_sections_dropped"
    DEFAULT_SECTION_FABRICATED = "default_section_fabricated"


@dataclass(frozen=True)
class Finding:
    """Non-fatal note attached to a parse result.

    Attributes:
        code: Stable finding code (see FindingCode)
        message: Human readable detail
        row: 1-based sheet row the finding refers to, -1 when sheet-level
    """
    code: str
    message: str
    row: int = -1

    @staticmethod
    def create(code: str, message: str, row: int = -1) -> Finding:
        return Finding(code=code, message=message, row=row)

    def to_dict(self) -> dict[str, object]:
        return asdict(self)
