"""Pydantic settings for budgets, relevance weights and summarisation."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError

__all__ = [
    "ContextBudget",
    "ContextSettings",
    "RelevanceWeights",
    "ScanSettings",
    "SettingsModel",
    "SummarizerSettings",
    "load_settings",
]


class SettingsModel(BaseModel):
    """Base Pydantic model with strict field handling."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class ContextBudget(SettingsModel):
    """Character budgets applied while packing the context document."""

    max_total_length: int = Field(default=100_000, gt=0)
    max_file_length: int = Field(default=15_000, gt=0)
    max_symbols_per_file: int = Field(default=40, gt=0)
    max_symbol_section_length: int = Field(default=8_000, gt=0)
    max_active_symbol_length: int = Field(default=8_000, gt=0)
    max_import_display: int = Field(default=8, gt=0)
    max_path_display: int = Field(default=200, gt=0)
    max_ranked_files: int = Field(default=25, gt=0)
    max_changes: int = Field(default=20, gt=0)
    max_diagnostics: int = Field(default=10, gt=0)


class RelevanceWeights(SettingsModel):
    """Additive weights for each relevance signal.

    Only the ordering of the values matters; a larger weight means the signal
    is preferred.  ``active_file`` must dominate every other signal combined.
    """

    active_file: float = Field(default=1000.0, ge=0)
    definition: float = Field(default=120.0, ge=0)
    implementation: float = Field(default=90.0, ge=0)
    type_definition: float = Field(default=80.0, ge=0)
    referenced_type: float = Field(default=60.0, ge=0)
    call_hierarchy: float = Field(default=70.0, ge=0)
    symbol_related: float = Field(default=25.0, ge=0)
    direct_dependency: float = Field(default=50.0, ge=0)
    reverse_dependency: float = Field(default=40.0, ge=0)
    same_directory: float = Field(default=20.0, ge=0)
    sibling_directory: float = Field(default=8.0, ge=0)
    shared_ancestor: float = Field(default=3.0, ge=0)
    min_shared_depth: int = Field(default=1, ge=1)
    symbol_density: float = Field(default=5.0, ge=0)


class SummarizerSettings(SettingsModel):
    """Knobs for the per-file content summariser."""

    overlap_threshold: float = Field(default=0.7, gt=0, le=1)
    preamble_scan_lines: int = Field(default=20, gt=0)
    preamble_budget_share: float = Field(default=0.15, gt=0, le=1)
    imports_budget_share: float = Field(default=0.20, gt=0, le=1)
    call_site_max_chars: int = Field(default=1_500, gt=0)
    fallback_chunk_chars: int = Field(default=2_000, gt=0)
    min_block_chars: int = Field(default=10, ge=0)
    truncation_marker_min_space: int = Field(default=30, ge=0)
    stub_preview_chars: int = Field(default=100, ge=0)


class ScanSettings(SettingsModel):
    """Rules used when enumerating workspace files."""

    max_file_size: int = Field(default=1024 * 1024, gt=0)
    exclude_dirs: frozenset[str] = frozenset(
        {
            ".git",
            ".hg",
            ".svn",
            "__pycache__",
            ".mypy_cache",
            ".ruff_cache",
            ".pytest_cache",
            ".idea",
            ".vscode",
            "node_modules",
            ".venv",
            "venv",
            "build",
            "dist",
            "out",
            "coverage",
        }
    )
    exclude_suffixes: frozenset[str] = frozenset(
        {
            ".pyc",
            ".pyo",
            ".log",
            ".tmp",
            ".cache",
            ".lock",
            ".png",
            ".jpg",
            ".jpeg",
            ".gif",
            ".ico",
            ".pdf",
            ".zip",
            ".gz",
            ".tar",
            ".woff",
            ".woff2",
            ".ttf",
            ".so",
            ".dll",
            ".exe",
            ".bin",
        }
    )
    exclude_files: frozenset[str] = frozenset({".DS_Store", "package-lock.json", "yarn.lock"})


class ContextSettings(SettingsModel):
    """Aggregate settings for one assembly pipeline."""

    budget: ContextBudget = Field(default_factory=ContextBudget)
    weights: RelevanceWeights = Field(default_factory=RelevanceWeights)
    summarizer: SummarizerSettings = Field(default_factory=SummarizerSettings)
    scan: ScanSettings = Field(default_factory=ScanSettings)
    max_workers: int = Field(default=8, ge=1, le=64)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> ContextSettings:
        """Build settings from a mapping, accepting an optional ``context`` wrapper."""
        if not data:
            return cls()
        section = data.get("context") if isinstance(data.get("context"), Mapping) else data
        try:
            return cls.model_validate(dict(section))
        except ValidationError as error:
            raise ConfigError(f"Invalid context settings: {error}") from error


def load_settings(path: Path | str, *, missing_ok: bool = False) -> ContextSettings:
    """Load YAML settings from disk."""
    config_path = Path(path)
    if not config_path.exists():
        if missing_ok:
            return ContextSettings()
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config {config_path}: {error}") from error
    except OSError as error:
        raise ConfigError(f"Failed to read config {config_path}: {error}") from error

    if not isinstance(data, Mapping):
        raise ConfigError("Configuration must be a mapping at the top level.")
    return ContextSettings.from_mapping(data)
