"""Convenience exports for the contextpack assembly pipeline."""

from .assembler import ContextAssembler
from .cache import ContextCache
from .cancellation import CancellationToken
from .config import ContextBudget, ContextSettings, RelevanceWeights, load_settings
from .errors import ConfigError, ContextPackError, ImportParseError
from .graph import build_dependency_graph, build_reverse_dependency_graph
from .packer import ContextPacker, SectionBudget
from .records import (
    ActiveSymbolContext,
    ChangeRecord,
    ContextResult,
    Diagnostic,
    EditorContext,
    FileHandle,
    ScoredFile,
    SymbolEntry,
)
from .scanner import scan_workspace
from .scoring import RelevanceScorer
from .summarizer import CandidateTier, ContentSummarizer

__all__ = [
    "ActiveSymbolContext",
    "CancellationToken",
    "CandidateTier",
    "ChangeRecord",
    "ConfigError",
    "ContentSummarizer",
    "ContextAssembler",
    "ContextBudget",
    "ContextCache",
    "ContextPackError",
    "ContextPacker",
    "ContextResult",
    "ContextSettings",
    "Diagnostic",
    "EditorContext",
    "FileHandle",
    "ImportParseError",
    "RelevanceScorer",
    "RelevanceWeights",
    "ScoredFile",
    "SectionBudget",
    "SymbolEntry",
    "build_dependency_graph",
    "build_reverse_dependency_graph",
    "load_settings",
    "scan_workspace",
]
