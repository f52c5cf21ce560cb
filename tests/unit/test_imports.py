from __future__ import annotations

from pathlib import Path

import pytest

from contextpack.errors import ImportParseError
from contextpack.imports import (
    CompositeImportParser,
    PythonImportParser,
    ScriptImportParser,
    default_import_parser,
)


def test_python_parser_resolves_relative_imports(sample_workspace) -> None:
    root = sample_workspace.root
    parser = PythonImportParser()

    assert parser(sample_workspace.path("src/shop/cart.py"), root) == ["src/shop/pricing.py"]
    assert parser(sample_workspace.path("src/shop/__init__.py"), root) == ["src/shop/cart.py"]


def test_python_parser_resolves_absolute_imports_under_src(tmp_path: Path) -> None:
    package = tmp_path / "src" / "app"
    package.mkdir(parents=True)
    (package / "__init__.py").write_text("", encoding="utf-8")
    (package / "models.py").write_text("VALUE = 1\n", encoding="utf-8")
    main = package / "main.py"
    main.write_text(
        "import json\nfrom app import models\nfrom app.models import VALUE\n",
        encoding="utf-8",
    )

    imports = PythonImportParser()(main, tmp_path)

    assert imports == ["src/app/__init__.py", "src/app/models.py"]


def test_python_parser_raises_on_syntax_error(tmp_path: Path) -> None:
    broken = tmp_path / "broken.py"
    broken.write_text("def oops(:\n", encoding="utf-8")

    with pytest.raises(ImportParseError) as excinfo:
        PythonImportParser()(broken, tmp_path)

    assert excinfo.value.path == "broken.py"


def test_script_parser_keeps_relative_specifiers_only(sample_workspace) -> None:
    imports = ScriptImportParser()(sample_workspace.path("web/app.ts"), sample_workspace.root)

    assert imports == ["web/format.ts"]


def test_script_parser_ignores_commented_imports(tmp_path: Path) -> None:
    (tmp_path / "used.ts").write_text("export const a = 1;\n", encoding="utf-8")
    (tmp_path / "unused.ts").write_text("export const b = 2;\n", encoding="utf-8")
    (tmp_path / "lib").mkdir()
    (tmp_path / "lib" / "index.js").write_text("module.exports = {};\n", encoding="utf-8")
    entry = tmp_path / "entry.ts"
    entry.write_text(
        "// import { b } from './unused';\n"
        "/* import { b } from './unused'; */\n"
        "import { a } from './used.js';\n"
        "const lib = require('./lib');\n",
        encoding="utf-8",
    )

    imports = ScriptImportParser()(entry, tmp_path)

    assert imports == ["used.ts", "lib/index.js"]


def test_composite_parser_ignores_unknown_suffixes(tmp_path: Path) -> None:
    readme = tmp_path / "README.md"
    readme.write_text("import nothing\n", encoding="utf-8")

    assert default_import_parser()(readme, tmp_path) == []
    assert CompositeImportParser({})(readme, tmp_path) == []
