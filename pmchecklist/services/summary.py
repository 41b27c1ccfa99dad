from __future__ import annotations

from ..models.template import TemplateDocument

"""Summary line rendering for one parsed worksheet.

Logged at SUMMARY level by the engine (the LabeledFormatter adds the label), e.g.:

    SUMMARY file=CT Energy Meter_Checklist 202509.xlsx code=PM-014 frequency=monthly
    sections=2 items=11 measurements=1 assets=0 warnings=1
"""


def render_summary_line(document: TemplateDocument) -> str:
    """Render the key=value summary of a TemplateDocument.

    Examples:
        >>> from pmchecklist.models.template import Frequency, Item, Section, TemplateMetadata
        >>> md = TemplateMetadata(code=None, title="T", frequency=Frequency.WEEKLY, source_file="a.xlsx")
        >>> doc = TemplateDocument(metadata=md, sections=(Section("section_1", "S", (Item("item_1_1", "x"),)),))
        >>> render_summary_line(doc)
        'file=a.xlsx code=- frequency=weekly sections=1 items=1 measurements=0 assets=0 warnings=0'
    """
    md = document.metadata
    measurements = sum(
        len(item.measurement_fields) for section in document.sections for item in section.items
    )
    return (
        f"file={md.source_file or '-'} "
        f"code={md.code or '-'} "
        f"frequency={md.frequency.value} "
        f"sections={len(document.sections)} "
        f"items={document.item_count} "
        f"measurements={measurements} "
        f"assets={len(md.asset_dimensions)} "
        f"warnings={len(document.findings)}"
    )
