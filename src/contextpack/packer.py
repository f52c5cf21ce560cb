"""Budget-cascading assembly of the context document."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .cancellation import CancellationToken
from .config import ContextBudget, SummarizerSettings
from .records import (
    ActiveSymbolContext,
    ChangeRecord,
    ContextResult,
    Diagnostic,
    DiagnosticSeverity,
    ScoredFile,
    SymbolEntry,
)
from .summarizer import ContentSummarizer
from .tree import build_file_tree, render_file_tree

__all__ = ["ContextPacker", "SectionBudget", "TRUNCATION_SUFFIX"]

LOGGER = logging.getLogger(__name__)

TRUNCATION_SUFFIX = "\n... (section truncated due to size limit)\n\n"
REFERENCED_TYPE_MAX_CHARS = 500


class SectionBudget:
    """Remaining character allowance shared by every packing stage."""

    def __init__(self, total: int) -> None:
        self._total = max(0, total)
        self._used = 0

    @property
    def total(self) -> int:
        return self._total

    @property
    def used(self) -> int:
        return self._used

    @property
    def remaining(self) -> int:
        return self._total - self._used

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0

    def consume(self, amount: int) -> None:
        if amount < 0:
            raise ValueError("Budget consumption must be non-negative")
        if amount > self.remaining:
            raise ValueError(f"Cannot consume {amount} chars with {self.remaining} remaining")
        self._used += amount


@dataclass(slots=True)
class _PackRun:
    budget: SectionBudget
    parts: list[str] = field(default_factory=list)
    sections: list[dict[str, Any]] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
    skipped_files: int = 0
    cancelled: bool = False

    def record(self, label: str, *, included: bool, truncated: bool, chars: int) -> None:
        self.sections.append(
            {"label": label, "included": included, "truncated": truncated, "chars": chars}
        )

    def result(self) -> ContextResult:
        return ContextResult(
            text="".join(self.parts),
            files=list(self.files),
            skipped_files=self.skipped_files,
            cancelled=self.cancelled,
            sections=list(self.sections),
        )


class ContextPacker:
    """Pack ranked files and auxiliary data into one bounded document.

    Stages run in a fixed order: header, file structure, recent changes,
    diagnostics, existing paths, modified paths, symbol index, active symbol
    detail and file bodies.  Packing stops as soon as the shared budget is
    used up; later stages are never attempted.
    """

    def __init__(
        self,
        budget: ContextBudget | None = None,
        summarizer: ContentSummarizer | None = None,
        *,
        summarizer_settings: SummarizerSettings | None = None,
    ) -> None:
        self._budget = budget or ContextBudget()
        self._summarizer = summarizer or ContentSummarizer(summarizer_settings)

    def pack(
        self,
        ranked: Sequence[ScoredFile],
        root: Path,
        *,
        candidate_paths: Sequence[str] | None = None,
        graph: Mapping[str, Sequence[str]] | None = None,
        changes: Sequence[ChangeRecord] | None = None,
        diagnostics: Sequence[Diagnostic] | None = None,
        symbols: Mapping[str, Sequence[SymbolEntry]] | None = None,
        active_symbol: ActiveSymbolContext | None = None,
        user_request: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ContextResult:
        run = _PackRun(budget=SectionBudget(self._budget.max_total_length))
        ranked_paths = [entry.path for entry in ranked]
        stages = (
            ("header", lambda: self._render_header(root, ranked_paths, user_request)),
            ("file_structure", lambda: self._render_structure(ranked_paths)),
            ("recent_changes", lambda: self._render_changes(changes or ())),
            ("diagnostics", lambda: self._render_diagnostics(diagnostics or ())),
            (
                "existing_paths",
                lambda: self._render_existing_paths(
                    candidate_paths if candidate_paths is not None else ranked_paths
                ),
            ),
            ("modified_paths", lambda: self._render_modified_paths(changes or ())),
            ("symbol_index", lambda: self._render_symbol_index(ranked_paths, symbols or {})),
            ("active_symbol", lambda: self._render_active_symbol(active_symbol)),
        )

        for label, render in stages:
            if CancellationToken.requested(cancellation):
                run.cancelled = True
                LOGGER.debug("Packing cancelled before %s", label)
                return run.result()
            if not self._emit(run, label, render()):
                run.skipped_files = len(ranked)
                return run.result()

        self._pack_file_bodies(run, ranked, graph, symbols or {}, active_symbol, cancellation)
        LOGGER.debug(
            "Packed %d file(s), skipped %d, %d of %d chars used",
            len(run.files),
            run.skipped_files,
            run.budget.used,
            run.budget.total,
        )
        return run.result()

    def _emit(self, run: _PackRun, label: str, text: str) -> bool:
        """Append ``text`` within budget; return False once the budget is spent."""
        if not text:
            run.record(label, included=False, truncated=False, chars=0)
            return True

        budget = run.budget
        truncated = False
        if len(text) > budget.remaining:
            truncated = True
            if budget.remaining < len(TRUNCATION_SUFFIX):
                LOGGER.debug("No room for section %s (%d chars left)", label, budget.remaining)
                text = ""
            else:
                LOGGER.debug(
                    "Truncating section %s from %d to %d chars",
                    label,
                    len(text),
                    budget.remaining,
                )
                text = text[: budget.remaining - len(TRUNCATION_SUFFIX)] + TRUNCATION_SUFFIX

        if text:
            run.parts.append(text)
            budget.consume(len(text))
        run.record(label, included=bool(text), truncated=truncated, chars=len(text))

        if truncated or budget.exhausted:
            LOGGER.debug("Context budget reached after section %s", label)
            return False
        return True

    def _pack_file_bodies(
        self,
        run: _PackRun,
        ranked: Sequence[ScoredFile],
        graph: Mapping[str, Sequence[str]] | None,
        symbols: Mapping[str, Sequence[SymbolEntry]],
        active_symbol: ActiveSymbolContext | None,
        cancellation: CancellationToken | None,
    ) -> None:
        budget = run.budget
        heading = "=== FILE CONTENTS ===\n"
        if not ranked:
            run.record("file_bodies", included=False, truncated=False, chars=0)
            return
        if len(heading) >= budget.remaining:
            run.skipped_files = len(ranked)
            run.record("file_bodies", included=False, truncated=True, chars=0)
            return
        run.parts.append(heading)
        budget.consume(len(heading))
        start_used = budget.used

        for index, entry in enumerate(ranked):
            if CancellationToken.requested(cancellation):
                run.cancelled = True
                run.skipped_files = len(ranked) - index
                LOGGER.debug("Packing cancelled with %d file(s) left", run.skipped_files)
                break
            header = f"--- File: {entry.path} ---\n"
            annotation = self._imports_annotation(entry.path, graph)
            trailer = "\n\n"
            available = budget.remaining - len(header) - len(annotation) - len(trailer)
            if available <= 0:
                run.skipped_files = len(ranked) - index
                LOGGER.debug("Skipping %d remaining file(s): budget reached", run.skipped_files)
                break
            body = self._file_body(
                entry,
                min(available, self._budget.max_file_length),
                symbols.get(entry.path),
                active_symbol,
            )
            block = f"{header}{annotation}{body}{trailer}"
            run.parts.append(block)
            budget.consume(len(block))
            run.files.append(entry.path)

        if run.skipped_files:
            notice = (
                f"... (Content from {run.skipped_files} more files omitted "
                "due to context limit)\n"
            )
            if len(notice) <= budget.remaining and not run.cancelled:
                run.parts.append(notice)
                budget.consume(len(notice))
        run.record(
            "file_bodies",
            included=bool(run.files),
            truncated=run.skipped_files > 0,
            chars=budget.used - start_used,
        )

    def _file_body(
        self,
        entry: ScoredFile,
        limit: int,
        symbols: Sequence[SymbolEntry] | None,
        active_symbol: ActiveSymbolContext | None,
    ) -> str:
        try:
            content = entry.file.path.read_text(encoding="utf-8", errors="replace")
        except OSError as error:
            LOGGER.warning("Could not read file content for %s: %s", entry.path, error)
            return f"[Error reading file: {error}]"[:limit]
        try:
            return self._summarizer.summarize(
                content,
                limit,
                path=entry.path,
                symbols=symbols,
                active_symbol=active_symbol,
            )
        except Exception as error:  # noqa: BLE001 - one bad file must not abort packing
            LOGGER.warning("Could not summarize %s: %s", entry.path, error)
            return f"[Error summarizing file: {error}]"[:limit]

    def _imports_annotation(self, path: str, graph: Mapping[str, Sequence[str]] | None) -> str:
        if graph is None:
            return ""
        if path not in graph:
            return "imports: (unknown)\n"
        imports = list(graph[path])
        if not imports:
            return ""
        limit = self._budget.max_import_display
        shown = ", ".join(imports[:limit])
        hidden = len(imports) - limit
        if hidden > 0:
            return f"imports: {shown} ... and {hidden} more\n"
        return f"imports: {shown}\n"

    @staticmethod
    def _render_header(root: Path, ranked_paths: Sequence[str], user_request: str | None) -> str:
        lines = [f"Project Context (Workspace: {root.name or root}):"]
        if user_request and user_request.strip():
            lines.append(f"User Request: {user_request.strip()}")
        lines.append(f"Relevant files identified: {len(ranked_paths)}")
        return "\n".join(lines) + "\n\n"

    @staticmethod
    def _render_structure(ranked_paths: Sequence[str]) -> str:
        if not ranked_paths:
            return ""
        tree = render_file_tree(build_file_tree(ranked_paths))
        return f"=== FILE STRUCTURE ===\n{tree}\n\n"

    def _render_changes(self, changes: Sequence[ChangeRecord]) -> str:
        if not changes:
            return ""
        limit = self._budget.max_changes
        lines = ["=== RECENT CHANGES ==="]
        for change in changes[:limit]:
            lines.append(f"--- File {change.kind.value.upper()}: {change.path} ---")
            lines.append(f"Summary: {change.summary}")
            if change.diff:
                lines.append(f"Changes:\n{change.diff.rstrip()}")
            lines.append(f"Timestamp: {change.timestamp.isoformat()}")
        hidden = len(changes) - limit
        if hidden > 0:
            lines.append(f"... and {hidden} more changes")
        return "\n".join(lines) + "\n\n"

    def _render_diagnostics(self, diagnostics: Sequence[Diagnostic]) -> str:
        if not diagnostics:
            return ""
        limit = self._budget.max_diagnostics
        groups = (
            ("Errors", (DiagnosticSeverity.ERROR,)),
            ("Warnings", (DiagnosticSeverity.WARNING,)),
            ("Information", (DiagnosticSeverity.INFORMATION, DiagnosticSeverity.HINT)),
        )
        lines = ["=== DIAGNOSTICS ==="]
        for title, severities in groups:
            matching = [item for item in diagnostics if item.severity in severities]
            if not matching:
                continue
            lines.append(f"{title} ({len(matching)}):")
            for item in matching[:limit]:
                lines.append(f"  - {item.path}:{item.range.start_line + 1}: {item.message}")
            if len(matching) > limit:
                lines.append(f"  ... and {len(matching) - limit} more")
        return "\n".join(lines) + "\n\n"

    def _render_existing_paths(self, paths: Sequence[str]) -> str:
        if not paths:
            return ""
        limit = self._budget.max_path_display
        ordered = sorted(paths)
        lines = ["=== EXISTING PATHS ===", *ordered[:limit]]
        if len(ordered) > limit:
            lines.append(f"... and {len(ordered) - limit} more")
        return "\n".join(lines) + "\n\n"

    def _render_modified_paths(self, changes: Sequence[ChangeRecord]) -> str:
        seen: dict[str, str] = {}
        for change in changes:
            seen.setdefault(change.path, change.kind.value)
        if not seen:
            return ""
        limit = self._budget.max_path_display
        entries = list(seen.items())
        lines = ["=== MODIFIED PATHS ==="]
        lines.extend(f"- {path} ({kind})" for path, kind in entries[:limit])
        if len(entries) > limit:
            lines.append(f"... and {len(entries) - limit} more")
        return "\n".join(lines) + "\n\n"

    def _render_symbol_index(
        self,
        ranked_paths: Sequence[str],
        symbols: Mapping[str, Sequence[SymbolEntry]],
    ) -> str:
        limit = self._budget.max_symbols_per_file
        lines: list[str] = []
        for path in ranked_paths:
            entries = symbols.get(path)
            if not entries:
                continue
            flattened = [pair for top in entries for pair in top.walk()]
            lines.append(f"{path}:")
            for depth, symbol in flattened[:limit]:
                indent = "  " * (depth + 1)
                lines.append(
                    f"{indent}{symbol.kind.value} {symbol.name} "
                    f"[L{symbol.range.start_line + 1}-L{symbol.range.end_line + 1}]"
                )
            if len(flattened) > limit:
                lines.append(f"  ... and {len(flattened) - limit} more symbols")
        if not lines:
            return ""
        text = "=== SYMBOL INDEX ===\n" + "\n".join(lines) + "\n\n"
        return _cap(text, self._budget.max_symbol_section_length)

    def _render_active_symbol(self, symbol: ActiveSymbolContext | None) -> str:
        if symbol is None:
            return ""
        lines = [
            "=== ACTIVE SYMBOL ===",
            f"Symbol Name: {symbol.name}",
            f"Symbol Kind: {symbol.kind.value}",
            f"File Path: {symbol.path}:{symbol.range.start_line + 1}",
        ]
        if symbol.detail:
            lines.append(f"Detail: {symbol.detail}")
        for title, locations in (
            ("Definitions", symbol.definitions),
            ("Implementations", symbol.implementations),
            ("Type Definitions", symbol.type_definitions),
        ):
            if locations:
                lines.append(f"{title} ({len(locations)}):")
                lines.extend(f"  - {location.describe()}" for location in locations)
        for title, edges in (
            ("Incoming Calls", symbol.incoming_calls),
            ("Outgoing Calls", symbol.outgoing_calls),
        ):
            if edges:
                lines.append(f"{title} ({len(edges)}):")
                lines.extend(
                    f"  - {edge.name} at {edge.path}:{edge.range.start_line + 1}" for edge in edges
                )
        if symbol.children_hierarchy:
            lines.append("Children Hierarchy:")
            lines.append(symbol.children_hierarchy.rstrip())
        if symbol.referenced_types:
            lines.append("Referenced Type Definitions:")
            for path, content in symbol.referenced_types.items():
                excerpt = content[:REFERENCED_TYPE_MAX_CHARS]
                if len(content) > REFERENCED_TYPE_MAX_CHARS:
                    excerpt += "..."
                lines.append(f"  - {path}:")
                lines.append(f"    {excerpt}")
        text = "\n".join(lines) + "\n\n"
        return _cap(text, self._budget.max_active_symbol_length)


def _cap(text: str, limit: int) -> str:
    """Bound a section by its own limit before the global budget applies."""
    if len(text) <= limit:
        return text
    if limit <= len(TRUNCATION_SUFFIX):
        return ""
    return text[: limit - len(TRUNCATION_SUFFIX)] + TRUNCATION_SUFFIX
