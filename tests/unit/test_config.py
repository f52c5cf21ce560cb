from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from contextpack.config import ContextSettings, load_settings
from contextpack.errors import ConfigError
from contextpack.packer import ContextPacker
from contextpack.records import FileHandle, ScoredFile


def _write(path: Path, body: str) -> Path:
    path.write_text(textwrap.dedent(body).strip() + "\n", encoding="utf-8")
    return path


def test_defaults_match_documented_budgets() -> None:
    settings = ContextSettings()

    assert settings.budget.max_total_length == 100_000
    assert settings.budget.max_file_length == 15_000
    assert settings.weights.active_file > settings.weights.definition
    assert settings.summarizer.overlap_threshold == 0.7
    assert "node_modules" in settings.scan.exclude_dirs
    assert settings.max_workers == 8


def test_load_settings_reads_context_section(tmp_path: Path) -> None:
    config_path = _write(
        tmp_path / "contextpack.yaml",
        """
        context:
          budget:
            max_total_length: 2000
            max_file_length: 500
          weights:
            direct_dependency: 75
          max_workers: 2
        """,
    )

    settings = load_settings(config_path)

    assert settings.budget.max_total_length == 2000
    assert settings.budget.max_file_length == 500
    assert settings.weights.direct_dependency == 75
    assert settings.weights.reverse_dependency == 40
    assert settings.max_workers == 2


def test_load_settings_accepts_bare_mapping(tmp_path: Path) -> None:
    config_path = _write(tmp_path / "settings.yaml", "budget:\n  max_ranked_files: 5")

    assert load_settings(config_path).budget.max_ranked_files == 5


def test_missing_file_is_an_error_unless_allowed(tmp_path: Path) -> None:
    missing = tmp_path / "absent.yaml"

    with pytest.raises(ConfigError, match="not found"):
        load_settings(missing)
    assert load_settings(missing, missing_ok=True) == ContextSettings()


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ("budget: [unclosed", "Failed to parse"),
        ("- just\n- a list", "mapping"),
        ("budget:\n  max_total_length: -1", "Invalid context settings"),
        ("budget:\n  unknown_option: 1", "Invalid context settings"),
    ],
)
def test_invalid_settings_raise_config_error(tmp_path: Path, body: str, message: str) -> None:
    config_path = tmp_path / "bad.yaml"
    config_path.write_text(body + "\n", encoding="utf-8")

    with pytest.raises(ConfigError, match=message):
        load_settings(config_path)


def test_total_budget_can_be_lowered_on_its_own(tmp_path: Path) -> None:
    config_path = _write(tmp_path / "contextpack.yaml", "budget:\n  max_total_length: 5000")

    settings = load_settings(config_path)

    assert settings.budget.max_total_length == 5_000
    assert settings.budget.max_file_length == 15_000

    source = tmp_path / "big.py"
    source.write_text("value = 1\n" * 2_000, encoding="utf-8")
    ranked = [ScoredFile(file=FileHandle(source), path="big.py")]

    result = ContextPacker(settings.budget).pack(ranked, tmp_path)

    assert len(result.text) <= 5_000
    assert result.files == ["big.py"]
