# Shared pytest fixtures
from __future__ import annotations

from pathlib import Path

import pytest

from pmchecklist.config.loader import CompiledConfig, ExtractionConfig
from pmchecklist.logging.init import reset_logging
from pmchecklist.models.grid import Grid


@pytest.fixture()
def cc() -> CompiledConfig:
    return ExtractionConfig().compile()


@pytest.fixture(autouse=True)
def _clean_logging():
    # setup_logging() を呼ぶテストがあっても propagate を戻し caplog が使えるようにする
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def energy_meter_rows() -> list[list[object]]:
    """CT Energy Meter style sheet: metadata block, header, two sections, one measurement."""
    return [
        ["Solar Farm O&M", None, None, None, None, None, None, None],
        [None, None, None, None, None, None, None, None],
        ["PM-014", None, None, None, None, "Inspection for CT Building Energy Meter", None, None],
        [None, None, None, None, None, None, None, None],
        [None, "No.", "Description", "Result", "Remarks", None, None, None],
        [None, None, "VISUAL INSPECTION", None, None, None, None, None],
        [None, 1, "Check meter display is readable", "{value}", None, None, None, None],
        [None, 2, "Check cable glands", None, "tighten if loose", None, None, None],
        [None, None, "-----", None, None, None, None, None],
        [None, None, "ELECTRICAL TESTS", None, None, None, None, None],
        [None, 3, "Phase voltage (V)", "{value}", None, None, None, None],
        [None, 4, "Check terminal torque", None, None, None, None, None],
        [None, None, "Observations:", None, None, None, None, None],
    ]


@pytest.fixture()
def energy_meter_grid(energy_meter_rows: list[list[object]]) -> Grid:
    return Grid.from_rows(energy_meter_rows, merges=[(3, 3, 6, 8)])


@pytest.fixture()
def sample_config_yaml() -> str:
    return """data_row_cap: 50
section_length_threshold: 80
section_fill_colors: ["FFFFFF00"]
noise_keywords: [observations, observation, notes]
frequency_keywords:
  - [fortnightly, weekly]
  - [monthly, monthly]
code_prefixes: [PM, CM, WO]
"""


@pytest.fixture()
def write_config(tmp_path: Path, sample_config_yaml: str) -> Path:
    cfg = tmp_path / "extraction.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg
