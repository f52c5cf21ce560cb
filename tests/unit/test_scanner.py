from __future__ import annotations

from pathlib import Path

from contextpack.config import ScanSettings
from contextpack.scanner import scan_workspace


def test_scan_skips_excluded_directories_and_sorts(sample_workspace) -> None:
    root = sample_workspace.root

    paths = [handle.relative_to(root) for handle in scan_workspace(root)]

    assert paths == [
        "README.md",
        "src/shop/__init__.py",
        "src/shop/cart.py",
        "src/shop/pricing.py",
        "web/app.ts",
        "web/format.ts",
    ]


def test_scan_applies_size_and_suffix_rules(tmp_path: Path) -> None:
    (tmp_path / "small.py").write_text("x = 1\n", encoding="utf-8")
    (tmp_path / "large.py").write_text("x" * 200, encoding="utf-8")
    (tmp_path / "debug.log").write_text("noise\n", encoding="utf-8")
    (tmp_path / "yarn.lock").write_text("lock\n", encoding="utf-8")

    handles = scan_workspace(tmp_path, ScanSettings(max_file_size=100))

    assert [handle.name for handle in handles] == ["small.py"]


def test_scan_of_missing_root_is_empty(tmp_path: Path) -> None:
    assert scan_workspace(tmp_path / "nope") == []
