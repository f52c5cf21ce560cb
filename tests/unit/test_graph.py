from __future__ import annotations

import logging
from pathlib import Path

from contextpack.cancellation import CancellationToken
from contextpack.graph import build_dependency_graph, build_reverse_dependency_graph
from contextpack.records import FileHandle
from contextpack.scanner import scan_workspace


def _handles(root: Path, *names: str) -> list[FileHandle]:
    return [FileHandle(root / name) for name in names]


def test_graph_covers_python_and_script_files(sample_workspace) -> None:
    root = sample_workspace.root
    files = scan_workspace(root)

    graph = build_dependency_graph(files, root, max_workers=4)

    assert graph["src/shop/cart.py"] == ["src/shop/pricing.py"]
    assert graph["src/shop/__init__.py"] == ["src/shop/cart.py"]
    assert graph["web/app.ts"] == ["web/format.ts"]
    assert graph["README.md"] == []
    assert list(graph) == [handle.relative_to(root) for handle in files]


def test_reverse_graph_is_consistent_with_forward_graph() -> None:
    graph = {
        "a.ts": ["b.ts", "c.ts"],
        "b.ts": ["c.ts"],
        "c.ts": [],
        "d.ts": ["b.ts", "b.ts"],
    }

    reverse = build_reverse_dependency_graph(graph)

    for source, imports in graph.items():
        for target in imports:
            assert source in reverse[target]
    for target, importers in reverse.items():
        for source in importers:
            assert target in graph[source]
    assert reverse["b.ts"] == ["a.ts", "d.ts"]
    assert "a.ts" not in reverse
    assert "d.ts" not in reverse


def test_parse_failure_omits_only_that_file(tmp_path: Path, caplog) -> None:
    files = _handles(tmp_path, "good.py", "bad.py", "other.py")

    def parser(path: Path, root: Path) -> list[str]:
        if path.name == "bad.py":
            raise ValueError("cannot parse")
        return ["./shared.py", "shared.py", path.name]

    with caplog.at_level(logging.WARNING, logger="contextpack.graph"):
        graph = build_dependency_graph(files, tmp_path, parser)

    assert list(graph) == ["good.py", "other.py"]
    assert graph["good.py"] == ["shared.py"]
    assert "bad.py" in caplog.text
    assert "cannot parse" in caplog.text


def test_cancelled_token_stops_graph_building(tmp_path: Path) -> None:
    files = _handles(tmp_path, "a.py", "b.py")
    token = CancellationToken()
    token.cancel()
    calls: list[Path] = []

    def parser(path: Path, root: Path) -> list[str]:
        calls.append(path)
        return []

    graph = build_dependency_graph(files, tmp_path, parser, cancellation=token)

    assert graph == {}
    assert calls == []


def test_empty_file_list_yields_empty_graph(tmp_path: Path) -> None:
    assert build_dependency_graph([], tmp_path) == {}


def test_relative_root_with_absolute_files_keeps_edges(tmp_path: Path, monkeypatch) -> None:
    project = tmp_path / "proj"
    (project / "pkg").mkdir(parents=True)
    (project / "a.ts").write_text("import { b } from './b';\n", encoding="utf-8")
    (project / "b.ts").write_text("export const b = 1;\n", encoding="utf-8")
    (project / "pkg" / "__init__.py").write_text("from . import util\n", encoding="utf-8")
    (project / "pkg" / "util.py").write_text("from ..shared import VALUE\n", encoding="utf-8")
    (project / "shared.py").write_text("VALUE = 1\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    files = _handles(project, "a.ts", "b.ts", "pkg/__init__.py", "pkg/util.py", "shared.py")
    graph = build_dependency_graph(files, Path("proj"))

    assert graph["a.ts"] == ["b.ts"]
    assert graph["pkg/__init__.py"] == ["pkg/util.py"]
    assert graph["pkg/util.py"] == ["shared.py"]
