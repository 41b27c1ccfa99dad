from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.template import Frequency

"""Extraction configuration.

Every knob the engine consults lives on ExtractionConfig: scan windows, the
data-row cap, asset-dimension patterns, keyword lists and the default column
layout. New checklist families are supported by overriding these values (YAML
file or mapping) rather than editing classifier code.

Responsibilities:
- Provide defaults (ExtractionConfig())
- Load YAML overrides and validate them against contracts/config_schema.json
- Compile patterns once per parse (ExtractionConfig.compile -> CompiledConfig)
"""

_package_root = Path(__file__).parent.parent
SCHEMA_PATH = _package_root / "contracts" / "config_schema.json"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ExtractionConfig:
    # Metadata Extractor
    metadata_scan_rows: int = 10
    metadata_scan_columns: int = 10
    title_columns: tuple[int, ...] = (6, 7, 8)  # F-H
    min_title_length: int = 5
    code_prefixes: tuple[str, ...] = ("PM", "CM")
    frequency_keywords: tuple[tuple[str, str], ...] = (
        # 順序が重要: "bi-monthly" は "monthly" より先, "semi-annual" は "annual" より先
        ("bi-monthly", "bi-monthly"),
        ("bimonthly", "bi-monthly"),
        ("bi-annual", "bi-annually"),
        ("biannual", "bi-annually"),
        ("semi-annual", "bi-annually"),
        ("semiannual", "bi-annually"),
        ("annual", "annually"),
        ("yearly", "annually"),
        ("quarterly", "quarterly"),
        ("quaterly", "quarterly"),
        ("monthly", "monthly"),
        ("weekly", "weekly"),
        ("daily", "daily"),
    )
    asset_type_keywords: tuple[tuple[str, str], ...] = (
        ("concentrated cabinet", "concentrated_cabinet"),
        ("energy meter", "energy_meter"),
        ("string combiner", "string_combiner"),
        ("inverter", "inverter"),
        ("ventilation", "ventilation"),
        ("weather station", "weather_station"),
        ("cctv", "cctv"),
        ("scada", "scada"),
        ("safety", "safety_fire"),
        ("fire", "safety_fire"),
    )

    # Header & Column Role Classifier
    header_scan_rows: int = 50
    header_scan_columns: int = 30
    default_sequence_column: int = 2  # B
    default_description_column: int = 3  # C
    ct_building_patterns: tuple[str, ...] = (
        r"CT\s*[-_#]?\s*(\d{1,3})(?:\s*(?:building|bldg\.?))?",
        r"CT\s*(?:building|bldg\.?)\s*[-_#]?\s*(\d{1,3})",
    )
    inverter_patterns: tuple[str, ...] = (
        r"C[O0]?(\d{2,3})",
        r"(?:inverter|inv\.?)\s*[-_#]?\s*C?(\d{1,3})",
        r"(\d{3})",
    )
    sequence_keywords: tuple[str, ...] = (
        "#", "no", "no.", "nº", "item no", "item", "number", "s/n", "sn", "sr", "sl",
    )
    description_keywords: tuple[str, ...] = (
        "description", "check", "checks", "inspect", "inspection", "activity", "activities",
        "task", "tasks", "item", "items", "procedure", "details",
    )
    remarks_keywords: tuple[str, ...] = (
        "remark", "remarks", "note", "notes", "observation", "observations", "comment", "comments",
    )
    result_keywords: tuple[str, ...] = (
        "result", "results", "status", "pass", "fail", "ok", "not ok", "nok", "yes", "condition",
    )
    sequence_inference_columns: int = 5
    sequence_inference_rows: int = 10

    # Numbering Scheme Classifier
    numbering_sample_rows: int = 20
    hierarchical_pattern: str = r"\d+\.\d+(?:\.\d+)*\.?"

    # Section/Item Segmenter
    data_row_cap: int = 300
    section_length_threshold: int = 100
    min_description_length: int = 3
    section_fill_colors: tuple[str, ...] = ()
    noise_keywords: tuple[str, ...] = ("observations", "observation")
    default_section_title: str = "Inspection Items"

    # Measurement Field Detector
    measurement_column_span: int = 3
    placeholder_patterns: tuple[str, ...] = (r"\{\s*value\s*\}", r"\[\s*value\s*\]")
    free_text_patterns: tuple[str, ...] = (r"\{\s*text\s*\}", r"\[\s*text\s*\]")
    unit_abbreviations: tuple[str, ...] = (
        "VDC", "VAC", "kV", "mV", "V", "kA", "mA", "A", "kWh", "MW", "kW", "W",
        "°C", "ºC", "Hz", "MΩ", "kΩ", "Ω", "w/m2", "W/m²",
    )
    unit_keywords: tuple[tuple[str, tuple[str, ...]], ...] = (
        ("V", ("voltage", "volt", "volts")),
        ("A", ("current", "amp", "amps", "ampere", "amperes")),
        ("W", ("power", "watt", "watts")),
        ("°C", ("temperature", "temp")),
        ("Hz", ("frequency",)),
        ("Ω", ("resistance", "ohm", "ohms")),
    )

    # Document Assembler
    fallback_section_title: str = "General Inspection"
    fallback_item_label: str = "General Inspection"

    @classmethod
    def from_mapping(cls, data: dict[str, Any], base: ExtractionConfig | None = None) -> ExtractionConfig:
        """Overlay a (validated) mapping of overrides onto ``base`` (defaults if None)."""
        base = base or cls()
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"unknown config keys: {sorted(unknown)}")
        overrides: dict[str, Any] = {}
        for key, value in data.items():
            if key in ("frequency_keywords", "asset_type_keywords"):
                overrides[key] = tuple((str(k), str(v)) for k, v in _pairs(value))
                if key == "frequency_keywords":
                    _check_frequencies(overrides[key])
            elif key == "unit_keywords":
                overrides[key] = tuple((str(unit), tuple(words)) for unit, words in _pairs(value))
            elif isinstance(value, list):
                overrides[key] = tuple(value)
            else:
                overrides[key] = value
        return replace(base, **overrides)

    def compile(self) -> CompiledConfig:
        """Compile every pattern and keyword list; raise ConfigError on a bad regex."""
        try:
            prefixes = "|".join(re.escape(p) for p in self.code_prefixes)
            return CompiledConfig(
                config=self,
                code_re=re.compile(rf"(?<![A-Za-z])({prefixes})[\s_\-]*(\d{{1,4}})(?!\d)", re.IGNORECASE),
                ct_res=tuple(re.compile(p, re.IGNORECASE) for p in self.ct_building_patterns),
                inverter_res=tuple(re.compile(p, re.IGNORECASE) for p in self.inverter_patterns),
                sequence_kw_re=_leading_keyword_re(self.sequence_keywords),
                description_kw_re=_leading_keyword_re(self.description_keywords),
                remarks_kw_re=_leading_keyword_re(self.remarks_keywords),
                result_kw_re=_leading_keyword_re(self.result_keywords),
                hierarchical_re=re.compile(self.hierarchical_pattern),
                placeholder_re=re.compile("|".join(f"(?:{p})" for p in self.placeholder_patterns), re.IGNORECASE),
                free_text_re=re.compile("|".join(f"(?:{p})" for p in self.free_text_patterns), re.IGNORECASE),
                unit_abbr_re=re.compile(
                    r"\(\s*(" + "|".join(re.escape(u) for u in self.unit_abbreviations) + r")\s*\)"
                ),
                unit_abbr_ci_re=re.compile(
                    r"\(\s*(" + "|".join(re.escape(u) for u in self.unit_abbreviations) + r")\s*\)", re.IGNORECASE
                ),
                unit_spellings=_unit_spellings(self.unit_abbreviations),
                unit_keyword_res=tuple(
                    (unit, re.compile(r"\b(?:" + "|".join(re.escape(w) for w in words) + r")\b", re.IGNORECASE))
                    for unit, words in self.unit_keywords
                ),
                noise_keywords=frozenset(k.casefold() for k in self.noise_keywords),
                section_fills=frozenset(c.upper() for c in self.section_fill_colors),
            )
        except re.error as e:
            raise ConfigError(f"invalid pattern in config: {e}") from e


@dataclass(frozen=True)
class CompiledConfig:
    """Per-parse compiled view of an ExtractionConfig (no module-level state)."""
    config: ExtractionConfig
    code_re: re.Pattern[str]
    ct_res: tuple[re.Pattern[str], ...]
    inverter_res: tuple[re.Pattern[str], ...]
    sequence_kw_re: re.Pattern[str]
    description_kw_re: re.Pattern[str]
    remarks_kw_re: re.Pattern[str]
    result_kw_re: re.Pattern[str]
    hierarchical_re: re.Pattern[str]
    placeholder_re: re.Pattern[str]
    free_text_re: re.Pattern[str]
    unit_abbr_re: re.Pattern[str]
    unit_abbr_ci_re: re.Pattern[str]
    unit_spellings: Mapping[str, str]
    unit_keyword_res: tuple[tuple[str, re.Pattern[str]], ...]
    noise_keywords: frozenset[str]
    section_fills: frozenset[str] = field(default_factory=frozenset)


def _leading_keyword_re(keywords: tuple[str, ...]) -> re.Pattern[str]:
    # ヘッダセルは通常キーワードで始まる ("Item No.", "Description of work", "#")
    alternation = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf"^[\W_]*(?:{alternation})(?![A-Za-z0-9])", re.IGNORECASE)


def _unit_spellings(units: tuple[str, ...]) -> dict[str, str]:
    # casefold -> 設定上の表記 (先勝ち)
    spellings: dict[str, str] = {}
    for unit in units:
        spellings.setdefault(unit.casefold(), unit)
    return spellings


def _check_frequencies(pairs: tuple[tuple[str, str], ...]) -> None:
    valid = {f.value for f in Frequency}
    bad = sorted({v for _, v in pairs if v not in valid})
    if bad:
        raise ConfigError(f"unknown frequency values: {bad}")


def _pairs(value: Any) -> list[tuple[Any, Any]]:
    if isinstance(value, dict):
        return list(value.items())
    return [tuple(pair) for pair in value]


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Raises:
        ConfigError: If the schema file is missing or invalid, or the data fails
            schema validation (unknown keys, wrong types, ...).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> ExtractionConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)

    config = ExtractionConfig.from_mapping(data)
    config.compile()  # 不正な正規表現はロード時点で検出
    return config
