from __future__ import annotations

import logging
from dataclasses import replace

from ..config.loader import CompiledConfig
from ..models.finding import Finding, FindingCode
from ..models.template import (
    Item,
    ItemType,
    NumberingScheme,
    Section,
    TemplateDocument,
    TemplateMetadata,
)
from .header import HeaderLayout
from .segmenter import SectionDraft

"""Document Assembler.

Freezes the segmenter's drafts into the final TemplateDocument:
- sections without items are dropped
- ids are assigned in document order (section_<n>, item_<n>_<m>)
- a document is never structurally empty: when no section survives, one
  "General Inspection" section with a single pass/fail item is fabricated
"""

logger = logging.getLogger(__name__)


def _freeze_section(draft: SectionDraft, index: int) -> Section:
    items = tuple(
        Item(
            id=f"item_{index}_{n}",
            label=item.label,
            number=item.number,
            type=item.type,
            measurement_fields=tuple(item.measurement_fields),
            asset_values=item.asset_values,
            remarks=item.remarks,
            source_row=item.row,
        )
        for n, item in enumerate(draft.items, start=1)
    )
    return Section(id=f"section_{index}", title=draft.title, items=items)


def _fallback_section(cc: CompiledConfig) -> Section:
    cfg = cc.config
    item = Item(id="item_1_1", label=cfg.fallback_item_label, type=ItemType.PASS_FAIL)
    return Section(id="section_1", title=cfg.fallback_section_title, items=(item,))


def assemble(
    metadata: TemplateMetadata,
    drafts: list[SectionDraft],
    layout: HeaderLayout,
    scheme: NumberingScheme,
    findings: list[Finding],
    cc: CompiledConfig,
) -> TemplateDocument:
    findings = list(findings)
    kept = [d for d in drafts if d.items]
    dropped = [d for d in drafts if not d.items]
    if dropped:
        findings.append(Finding.create(
            FindingCode.EMPTY_SECTIONS_DROPPED,
            f"dropped {len(dropped)} section(s) without items: {[d.title for d in dropped]}",
            row=dropped[0].row,
        ))

    sections = tuple(_freeze_section(d, i) for i, d in enumerate(kept, start=1))
    if not sections:
        sections = (_fallback_section(cc),)
        findings.append(Finding.create(
            FindingCode.DEFAULT_SECTION_FABRICATED,
            "no checklist items recognised; fabricated a default section",
        ))

    for finding in findings:
        logger.warning("%s: %s (row %d)", finding.code, finding.message, finding.row)

    return TemplateDocument(
        metadata=replace(metadata, asset_dimensions=layout.asset_dimensions),
        sections=sections,
        findings=tuple(findings),
        numbering_scheme=scheme,
        header_row=layout.header_row,
    )
