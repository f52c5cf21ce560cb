from __future__ import annotations

import logging
from pathlib import Path

from contextpack.assembler import (
    CANCELLED_PLACEHOLDER,
    NO_FILES_PLACEHOLDER,
    NO_ROOT_PLACEHOLDER,
    ContextAssembler,
)
from contextpack.cache import ContextCache
from contextpack.cancellation import CancellationToken
from contextpack.config import ContextBudget, ContextSettings
from contextpack.records import EditorContext, FileHandle


def test_missing_root_and_empty_workspace_return_placeholders(tmp_path: Path) -> None:
    assembler = ContextAssembler()

    assert assembler.assemble(None).text == NO_ROOT_PLACEHOLDER
    assert assembler.assemble(tmp_path).text == NO_FILES_PLACEHOLDER
    assert assembler.assemble(tmp_path, files=[]).text == NO_FILES_PLACEHOLDER


def test_cancellation_before_start_returns_cancelled_result(sample_workspace) -> None:
    token = CancellationToken()
    token.cancel()

    result = ContextAssembler().assemble(sample_workspace.root, cancellation=token)

    assert result.cancelled is True
    assert result.text == CANCELLED_PLACEHOLDER


def test_active_file_and_neighbours_lead_the_document(sample_workspace) -> None:
    root = sample_workspace.root
    editor = EditorContext(
        file=FileHandle(sample_workspace.path("src/shop/cart.py")),
        instruction="Add a discount rule",
    )

    result = ContextAssembler().assemble(root, editor=editor)

    assert result.files == ["src/shop/cart.py", "src/shop/pricing.py", "src/shop/__init__.py"]
    assert "User Request: Add a discount rule" in result.text
    assert "--- File: src/shop/cart.py ---\nimports: src/shop/pricing.py\n" in result.text
    assert "web/app.ts" in result.text
    assert "=== SYMBOL INDEX ===" in result.text
    assert "  class Cart [L8-L" in result.text
    assert result.cancelled is False


def test_result_respects_configured_budget(sample_workspace) -> None:
    settings = ContextSettings(budget=ContextBudget(max_total_length=400, max_file_length=200))

    result = ContextAssembler(settings).assemble(sample_workspace.root)

    assert len(result.text) <= 400


def test_no_signal_falls_back_to_path_order(sample_workspace) -> None:
    settings = ContextSettings(budget=ContextBudget(max_ranked_files=2))
    assembler = ContextAssembler(settings)
    files = [FileHandle(sample_workspace.path(name)) for name in ("web/format.ts", "README.md")]

    ranked = assembler.rank(sample_workspace.root, files)

    assert [entry.path for entry in ranked] == ["README.md", "web/format.ts"]


def test_collaborator_failure_becomes_placeholder(sample_workspace, caplog) -> None:
    def broken_provider(path: Path):
        raise RuntimeError("symbol service down")

    assembler = ContextAssembler(symbol_provider=broken_provider)

    with caplog.at_level(logging.WARNING, logger="contextpack.assembler"):
        result = assembler.assemble(sample_workspace.root)

    assert result.text == "[Error building project context: symbol service down]"
    assert "symbol service down" in caplog.text


def test_symbol_lookup_errors_only_drop_that_file(sample_workspace, caplog) -> None:
    def flaky_provider(path: Path):
        if path.name == "cart.py":
            raise OSError("unreadable")
        return []

    with caplog.at_level(logging.WARNING, logger="contextpack.assembler"):
        result = ContextAssembler(symbol_provider=flaky_provider).assemble(sample_workspace.root)

    assert "=== FILE CONTENTS ===" in result.text
    assert "Symbol lookup failed for src/shop/cart.py" in caplog.text


def test_injected_cache_serves_repeated_requests(sample_workspace) -> None:
    cache = ContextCache()
    assembler = ContextAssembler(cache=cache)

    first = assembler.assemble(sample_workspace.root)
    second = assembler.assemble(sample_workspace.root)

    assert second == first
    assert second is not first
    assert cache.stats() == {"hits": 1, "misses": 1, "size": 1}

    sample_workspace.path("web/format.ts").write_text("export const changed = true;\n", encoding="utf-8")
    third = assembler.assemble(sample_workspace.root)

    assert third is not first
    assert cache.stats()["misses"] == 2
