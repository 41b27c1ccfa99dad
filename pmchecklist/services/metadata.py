from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePath

from ..config.loader import CompiledConfig
from ..models.finding import Finding, FindingCode
from ..models.grid import Grid
from ..models.template import Frequency, TemplateMetadata
from .cell_resolver import resolve_text

"""Metadata Extractor.

Scans a bounded header region (metadata_scan_rows x metadata_scan_columns) for the
procedure code and the title, and derives the maintenance frequency. Nothing here
raises when a value is missing: code and title are nullable and each default is
recorded as an advisory finding.
"""

logger = logging.getLogger(__name__)

_EXTENSION_RE = re.compile(r"\.(xlsx|xlsm|xls)$", re.IGNORECASE)
_DATE_STAMP_RE = re.compile(r"(?<!\d)\d{6,8}(?!\d)")
_TITLE_LABEL_RE = re.compile(r"^\s*title\s*(?::\s*(.*)|$)", re.IGNORECASE)


@dataclass
class MetadataResult:
    metadata: TemplateMetadata
    findings: list[Finding] = field(default_factory=list)


def normalize_code(text: str, cc: CompiledConfig) -> str | None:
    """Return the canonical PREFIX-NNN code found in ``text`` (None if absent).

    >>> from pmchecklist.config.loader import ExtractionConfig
    >>> normalize_code("Monthly Inspection (PM_06) 202505", ExtractionConfig().compile())
    'PM-006'
    """
    m = cc.code_re.search(text)
    if m is None:
        return None
    return f"{m.group(1).upper()}-{int(m.group(2)):03d}"


def is_code_token(text: str, cc: CompiledConfig) -> bool:
    """True when the whole of ``text`` is a code token (e.g. "PM-014", "pm 14")."""
    stripped = text.strip()
    m = cc.code_re.search(stripped)
    return m is not None and m.start() == 0 and m.end() == len(stripped)


def derive_name(source_name: str) -> str | None:
    """Readable name from a file name: extension and date stamps removed."""
    name = PurePath(source_name).name
    name = _EXTENSION_RE.sub("", name)
    name = _DATE_STAMP_RE.sub("", name)
    name = re.sub(r"\s+", " ", name).strip(" -_.")
    return name or None


def detect_frequency(text: str, cc: CompiledConfig) -> Frequency | None:
    lowered = text.lower().replace("_", " ")
    for keyword, value in cc.config.frequency_keywords:
        if keyword.lower() in lowered:
            return Frequency(value)
    return None


def detect_asset_type(text: str, cc: CompiledConfig) -> str:
    lowered = text.lower()
    for keyword, asset_type in cc.config.asset_type_keywords:
        if keyword.lower() in lowered:
            return asset_type
    return "general"


def _region(grid: Grid, cc: CompiledConfig, header_row: int | None = None) -> tuple[int, int]:
    cfg = cc.config
    max_row = min(cfg.metadata_scan_rows, grid.max_row)
    if header_row is not None:
        # ヘッダ行以降は表本体
        max_row = min(max_row, header_row - 1)
    return max_row, min(cfg.metadata_scan_columns, grid.max_column)


def find_code(grid: Grid, cc: CompiledConfig, header_row: int | None = None) -> tuple[str | None, int]:
    """First code token in the header region, row-major. Returns (code, row)."""
    max_row, max_col = _region(grid, cc, header_row)
    for row in range(1, max_row + 1):
        for col in range(1, max_col + 1):
            text = resolve_text(grid, row, col)
            if not text:
                continue
            code = normalize_code(text, cc)
            if code is not None:
                return code, row
    return None, -1


def _title_candidates(grid: Grid, cc: CompiledConfig, header_row: int | None) -> list[str]:
    cfg = cc.config
    max_row, max_col = _region(grid, cc, header_row)
    candidates: list[str] = []
    for row in range(1, max_row + 1):
        for col in cfg.title_columns:
            if col <= grid.max_column:
                candidates.append(resolve_text(grid, row, col))
        # "Title:" ラベルの右隣 (または同一セル内の残り) も候補
        for col in range(1, max_col + 1):
            text = resolve_text(grid, row, col)
            m = _TITLE_LABEL_RE.match(text) if text else None
            if m is None:
                continue
            inline = (m.group(1) or "").strip()
            if inline:
                candidates.append(inline)
                continue
            for right in range(col + 1, grid.max_column + 1):
                value = resolve_text(grid, row, right)
                if value and value != text:
                    candidates.append(value)
                    break
    return candidates


def find_title(grid: Grid, cc: CompiledConfig, header_row: int | None = None) -> str | None:
    """Longest plausible title in the header region; code tokens and labels are rejected."""
    best: str | None = None
    for text in _title_candidates(grid, cc, header_row):
        text = text.strip()
        if len(text) < cc.config.min_title_length:
            continue
        if is_code_token(text, cc) or text.endswith(":"):
            continue
        if best is None or len(text) > len(best):
            best = text
    return best


def extract_metadata(
    grid: Grid, source_name: str, cc: CompiledConfig, header_row: int | None = None
) -> MetadataResult:
    """Code, title and cadence of one sheet.

    When ``header_row`` is known only the rows above it are scanned.
    """
    findings: list[Finding] = []

    code, code_row = find_code(grid, cc, header_row)
    if code is None:
        code = normalize_code(source_name, cc)
        if code is not None:
            findings.append(Finding.create(
                FindingCode.TEMPLATE_CODE_FROM_FILENAME,
                f"no code in header region; using {code} from file name",
            ))
        else:
            findings.append(Finding.create(
                FindingCode.TEMPLATE_CODE_NOT_FOUND, "no procedure code in header region or file name"
            ))
    else:
        logger.debug("template code %s found at row %d", code, code_row)

    title = find_title(grid, cc, header_row)
    if title is None:
        title = derive_name(source_name)
        findings.append(Finding.create(
            FindingCode.TITLE_NOT_FOUND,
            f"no title in header region; derived {title!r} from file name",
        ))

    # ファイル名が周期の一次情報源, 次にタイトル
    frequency = detect_frequency(source_name, cc)
    if frequency is None and title:
        frequency = detect_frequency(title, cc)
    if frequency is None:
        frequency = Frequency.MONTHLY
        findings.append(Finding.create(
            FindingCode.FREQUENCY_DEFAULTED, "no cadence keyword in file name or title; using monthly"
        ))

    metadata = TemplateMetadata(
        code=code,
        title=title,
        frequency=frequency,
        source_file=source_name,
        asset_type=detect_asset_type(f"{source_name} {title or ''}", cc),
        task_type=code.split("-", 1)[0] if code else "PM",
    )
    return MetadataResult(metadata=metadata, findings=findings)
