from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema.exceptions import ValidationError

from ..models.template import TemplateDocument

"""Template document export.

document_to_json() renders the to_dict() shape deterministically: parsing the same
grid twice yields byte-identical JSON (no timestamps, insertion-ordered keys).
validate_document() checks a rendered document against
contracts/template_document_schema.json.
"""

__all__ = [
    "DOCUMENT_SCHEMA_PATH",
    "DocumentContractError",
    "document_to_json",
    "validate_document",
]

_package_root = Path(__file__).parent.parent
DOCUMENT_SCHEMA_PATH = _package_root / "contracts" / "template_document_schema.json"


class DocumentContractError(Exception):
    """Raised when a rendered document violates the output contract."""
    pass


def document_to_json(document: TemplateDocument, indent: int | None = 2) -> str:
    return json.dumps(document.to_dict(), ensure_ascii=False, indent=indent)


def _load_schema() -> dict[str, Any]:
    if not DOCUMENT_SCHEMA_PATH.exists():
        raise DocumentContractError(f"document schema not found: {DOCUMENT_SCHEMA_PATH}")
    return json.loads(DOCUMENT_SCHEMA_PATH.read_text(encoding="utf-8"))


def validate_document(document: TemplateDocument | dict[str, Any]) -> dict[str, Any]:
    """Validate a document (or its to_dict() rendering) against the output contract.

    Returns:
        The validated dict rendering

    Raises:
        DocumentContractError: If the rendering fails schema validation
    """
    data = document.to_dict() if isinstance(document, TemplateDocument) else document
    try:
        jsonschema.validate(data, _load_schema())
    except ValidationError as e:
        path = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise DocumentContractError(f"document contract violated at {path}: {e.message}") from e
    return data
