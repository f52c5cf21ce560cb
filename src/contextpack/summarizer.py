"""Priority-based, overlap-aware summarisation of a single file's content."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import IntEnum

from .config import SummarizerSettings
from .records import ActiveSymbolContext, Range, SymbolEntry, SymbolKind

__all__ = [
    "CandidateTier",
    "ContentCandidate",
    "ContentSummarizer",
    "NON_CONTIGUOUS_MARKER",
]

LOGGER = logging.getLogger(__name__)

NON_CONTIGUOUS_MARKER = "\n\n// --- Non-contiguous section; gap in content --- \n\n"
SECTION_TRUNCATED_MARKER = "\n// ... (section truncated)"
FINAL_TRUNCATED_MARKER = "\n// ... (final content truncated to fit total file length limit)"


class CandidateTier(IntEnum):
    """Ordering of content candidates; a higher tier is considered first."""

    FALLBACK = 0
    MAJOR_SYMBOL = 1
    CALL_SITE = 2
    EXPORTED_SYMBOL = 3
    IMPORTS = 4
    PREAMBLE = 5
    ACTIVE_SYMBOL = 6


_EXPORTED_KINDS = frozenset(
    {
        SymbolKind.CLASS,
        SymbolKind.FUNCTION,
        SymbolKind.INTERFACE,
        SymbolKind.ENUM,
        SymbolKind.STRUCT,
        SymbolKind.CONSTANT,
        SymbolKind.VARIABLE,
    }
)
_MAJOR_KINDS = frozenset(
    {
        SymbolKind.CLASS,
        SymbolKind.FUNCTION,
        SymbolKind.METHOD,
        SymbolKind.CONSTRUCTOR,
        SymbolKind.PROPERTY,
        SymbolKind.FIELD,
        SymbolKind.INTERFACE,
        SymbolKind.ENUM,
        SymbolKind.STRUCT,
        SymbolKind.NAMESPACE,
        SymbolKind.MODULE,
    }
)

_COMMENT_PREFIXES = ("#", "//", "/*", "*", "--", ";;")
_DOCSTRING_QUOTES = ('"""', "'''")
_IMPORT_RE = re.compile(
    r"^\s*(?:"
    r"import\b|from\s+\S+\s+import\b|export\s+(?:\*|\{|type\s+\{)[^;]*\bfrom\b"
    r"|(?:const|let|var)\s+[\w{}\s,]+=\s*require\s*\(|require\s*\("
    r"|using\s+[\w.]+|package\s+[\w.]+|#include\b|use\s+[\w:]+|@import\b"
    r")"
)


@dataclass(slots=True)
class ContentCandidate:
    """Proposed block of a file considered for the summary."""

    tier: CandidateTier
    range: Range
    header: str | None = None
    footer: str | None = None
    max_chars: int | None = None


@dataclass(slots=True)
class _Block:
    range: Range
    text: str


@dataclass(slots=True)
class _SummaryState:
    max_length: int
    used: int = 0
    blocks: list[_Block] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        return self.max_length - self.used

    def covers(self, line: int) -> bool:
        return any(block.range.contains_line(line) for block in self.blocks)


class ContentSummarizer:
    """Reduce a file to its most useful excerpts within a character budget."""

    def __init__(self, settings: SummarizerSettings | None = None) -> None:
        self._settings = settings or SummarizerSettings()

    @property
    def settings(self) -> SummarizerSettings:
        return self._settings

    def summarize(
        self,
        content: str,
        max_length: int,
        *,
        path: str | None = None,
        symbols: Sequence[SymbolEntry] | None = None,
        active_symbol: ActiveSymbolContext | None = None,
    ) -> str:
        """Return excerpts of ``content`` no longer than ``max_length``.

        ``active_symbol`` contributes its own range only when its path equals
        ``path``; call edges landing in ``path`` contribute their call sites.
        """
        if max_length <= 0 or not content:
            return ""
        if len(content) <= max_length:
            return content

        lines = content.split("\n")
        state = _SummaryState(max_length=max_length)
        for candidate in self.collect_candidates(lines, path, symbols, active_symbol):
            if state.remaining <= 0:
                break
            text = _extract(lines, candidate.range)
            if not text.strip():
                continue
            self._add_block(state, candidate, text, check_overlap=True)

        if state.remaining > 0:
            self._fill_gaps(state, lines)

        if not state.blocks:
            return self._stub(content, max_length)
        return self._join(state, max_length)

    def collect_candidates(
        self,
        lines: Sequence[str],
        path: str | None = None,
        symbols: Sequence[SymbolEntry] | None = None,
        active_symbol: ActiveSymbolContext | None = None,
    ) -> list[ContentCandidate]:
        """Build the ordered candidate list for a file split into ``lines``."""
        settings = self._settings
        candidates: list[ContentCandidate] = []

        if active_symbol is not None and path is not None and active_symbol.path == path:
            candidates.append(
                ContentCandidate(
                    CandidateTier.ACTIVE_SYMBOL,
                    active_symbol.range,
                    header=f"// --- Active Symbol: {active_symbol.name} ---",
                    footer="// --- End Active Symbol ---",
                )
            )

        preamble_end = _preamble_end(lines, settings.preamble_scan_lines)
        if preamble_end > 0:
            candidates.append(
                ContentCandidate(
                    CandidateTier.PREAMBLE,
                    Range.from_lines(0, preamble_end - 1),
                    header="// --- File preamble ---",
                )
            )

        imports = _import_block(lines, preamble_end)
        body_start = preamble_end
        if imports is not None:
            candidates.append(
                ContentCandidate(
                    CandidateTier.IMPORTS,
                    imports,
                    header="// --- Imports ---",
                )
            )
            body_start = imports.end_line + 1

        exported_ids: set[int] = set()
        for entry in symbols or ():
            if entry.kind not in _EXPORTED_KINDS or entry.range.start_line < body_start:
                continue
            if entry.kind is SymbolKind.VARIABLE and not _is_exported_line(lines, entry.range):
                continue
            exported_ids.add(id(entry))
            candidates.append(
                ContentCandidate(
                    CandidateTier.EXPORTED_SYMBOL,
                    entry.range,
                    header=f"// --- Definition: {entry.kind.value} {entry.name} ---",
                    footer="// --- End Definition ---",
                )
            )

        if active_symbol is not None and path is not None:
            for edge in active_symbol.incoming_calls:
                if edge.path == path:
                    candidates.append(
                        ContentCandidate(
                            CandidateTier.CALL_SITE,
                            edge.range,
                            header=f"// --- Incoming Call: {edge.name} ({edge.kind.value}) ---",
                            footer="// --- End Incoming Call ---",
                            max_chars=settings.call_site_max_chars,
                        )
                    )
            for edge in active_symbol.outgoing_calls:
                if edge.path == path:
                    candidates.append(
                        ContentCandidate(
                            CandidateTier.CALL_SITE,
                            edge.range,
                            header=f"// --- Outgoing Call: {edge.name} ({edge.kind.value}) ---",
                            footer="// --- End Outgoing Call ---",
                            max_chars=settings.call_site_max_chars,
                        )
                    )

        for top in symbols or ():
            for _, entry in top.walk():
                if id(entry) in exported_ids or entry.kind not in _MAJOR_KINDS:
                    continue
                candidates.append(
                    ContentCandidate(
                        CandidateTier.MAJOR_SYMBOL,
                        entry.range,
                        header=f"// --- Definition: {entry.kind.value} {entry.name} ---",
                        footer="// --- End Definition ---",
                    )
                )

        candidates.sort(key=lambda candidate: (-candidate.tier, candidate.range.start_line))
        return candidates

    def overlaps(self, included: Sequence[Range], candidate: Range) -> bool:
        """Return True when one included range covers enough of ``candidate``."""
        span = candidate.line_span
        threshold = self._settings.overlap_threshold
        return any(existing.overlap_lines(candidate) / span >= threshold for existing in included)

    def _add_block(
        self,
        state: _SummaryState,
        candidate: ContentCandidate,
        text: str,
        *,
        check_overlap: bool,
    ) -> bool:
        settings = self._settings
        if state.remaining <= 0:
            return False
        if check_overlap and self.overlaps([block.range for block in state.blocks], candidate.range):
            LOGGER.debug(
                "Skipping %s candidate at line %d: overlaps included content",
                candidate.tier.name,
                candidate.range.start_line + 1,
            )
            return False

        # Preamble and import caps scale with the whole file budget.
        limit = candidate.max_chars
        if candidate.tier is CandidateTier.PREAMBLE:
            limit = int(state.max_length * settings.preamble_budget_share)
        elif candidate.tier is CandidateTier.IMPORTS:
            limit = int(state.max_length * settings.imports_budget_share)
        if limit is not None and len(text) > limit:
            text = text[:limit]

        block = text
        if candidate.header:
            block = f"{candidate.header}\n{block}"
        if candidate.footer:
            block = f"{block}\n{candidate.footer}"

        # Every block after the first may be preceded by a gap marker.
        overhead = len(NON_CONTIGUOUS_MARKER) if state.blocks else 0
        remaining = state.remaining - overhead
        if remaining <= 0:
            return False
        if len(block) > remaining:
            block = _truncate(
                block, remaining, SECTION_TRUNCATED_MARKER, settings.truncation_marker_min_space
            )
            if len(block) < settings.min_block_chars:
                return False

        state.blocks.append(_Block(candidate.range, block))
        state.used += len(block) + overhead
        return True

    def _fill_gaps(self, state: _SummaryState, lines: Sequence[str]) -> None:
        chunk_chars = self._settings.fallback_chunk_chars
        index = 0
        while index < len(lines) and state.remaining > 0:
            if state.covers(index):
                index += 1
                continue
            start = index
            size = 0
            # Chunks hold whole lines; only a single oversized line is cut.
            while index < len(lines) and not state.covers(index):
                line_size = len(lines[index]) + 1
                if index > start and size + line_size > chunk_chars + 1:
                    break
                size += line_size
                index += 1
            gap = Range.from_lines(start, index - 1)
            text = _extract(lines, gap)
            if not text.strip():
                continue
            candidate = ContentCandidate(
                CandidateTier.FALLBACK,
                gap,
                header=f"// --- Lines {start + 1}-{index} ---",
                max_chars=chunk_chars,
            )
            if not self._add_block(state, candidate, text, check_overlap=False):
                break

    def _join(self, state: _SummaryState, max_length: int) -> str:
        ordered = sorted(state.blocks, key=lambda block: block.range.start_line)
        pieces: list[str] = [ordered[0].text]
        for previous, current in zip(ordered, ordered[1:]):
            contiguous = current.range.start_line == previous.range.end_line + 1
            pieces.append("\n" if contiguous else NON_CONTIGUOUS_MARKER)
            pieces.append(current.text)
        text = "".join(pieces)
        if len(text) > max_length:
            LOGGER.debug("Final summary truncated from %d to %d chars", len(text), max_length)
            text = _truncate(
                text,
                max_length,
                FINAL_TRUNCATED_MARKER,
                self._settings.truncation_marker_min_space,
            )
        return text.strip()

    def _stub(self, content: str, max_length: int) -> str:
        preview = content[: self._settings.stub_preview_chars]
        stub = (
            f"// File content (original length: {len(content)}) could not be summarized "
            f"within limits.\n// Snippet (first {len(preview)} chars): {preview}..."
        )
        return stub[:max_length]


def _extract(lines: Sequence[str], span: Range) -> str:
    """Return the whole lines covered by ``span`` clamped to the file."""
    start = max(span.start_line, 0)
    end = min(span.end_line, len(lines) - 1)
    if start > end:
        return ""
    return "\n".join(lines[start : end + 1])


def _truncate(text: str, limit: int, marker: str, min_space: int) -> str:
    """Cut ``text`` to ``limit`` characters, keeping ``marker`` when it fits."""
    if len(text) <= limit:
        return text
    if limit > min_space and limit > len(marker):
        return text[: limit - len(marker)] + marker
    return text[:limit]


def _is_comment(stripped: str) -> bool:
    return stripped.startswith(_COMMENT_PREFIXES)


def _preamble_end(lines: Sequence[str], scan_lines: int) -> int:
    """Return the exclusive end of the leading comment/blank run."""
    end = 0
    meaningful = False
    docstring_quote: str | None = None
    for index, line in enumerate(lines[:scan_lines]):
        stripped = line.strip()
        if docstring_quote is not None:
            if docstring_quote in stripped:
                docstring_quote = None
            end = index + 1
            continue
        if not stripped:
            end = index + 1
            continue
        quote = next((q for q in _DOCSTRING_QUOTES if stripped.startswith(q)), None)
        if quote is not None:
            meaningful = True
            end = index + 1
            if stripped.count(quote) < 2:
                docstring_quote = quote
            continue
        if _is_comment(stripped):
            meaningful = True
            end = index + 1
            continue
        break
    if docstring_quote is not None or not meaningful:
        return 0
    while end > 0 and not lines[end - 1].strip():
        end -= 1
    return end


def _import_block(lines: Sequence[str], start: int) -> Range | None:
    """Locate the import block that begins at or after line ``start``."""
    first: int | None = None
    last: int | None = None
    depth = 0
    for index in range(start, len(lines)):
        stripped = lines[index].strip()
        if depth > 0:
            depth += _bracket_delta(stripped)
            last = index
            continue
        if not stripped or _is_comment(stripped):
            continue
        if _IMPORT_RE.match(lines[index]):
            if first is None:
                first = index
            last = index
            depth = max(_bracket_delta(stripped), 0)
            continue
        break
    if first is None or last is None:
        return None
    return Range.from_lines(first, last)


def _bracket_delta(text: str) -> int:
    opened = text.count("(") + text.count("{") + text.count("[")
    closed = text.count(")") + text.count("}") + text.count("]")
    return opened - closed


def _is_exported_line(lines: Sequence[str], span: Range) -> bool:
    if span.start_line >= len(lines):
        return False
    return lines[span.start_line].lstrip().startswith("export")
