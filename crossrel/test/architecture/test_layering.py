"""Import and call policies between crossrel's layers.

- External processes are only started by ``platform/process.py``.
- Only ``output/console.py`` talks to rich.
- Nothing below the CLI imports ``crossrel.cli``.
- ``core`` depends on nothing but itself and the package root.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ImportRef:
    module: str
    line: int


def package_root() -> Path:
    return Path(__file__).resolve().parents[2]


def iter_python_files(base: Path) -> list[Path]:
    root = package_root()
    files: list[Path] = []
    for path in sorted(base.rglob("*.py")):
        rel = path.relative_to(root)
        if rel.parts and rel.parts[0] == "test":
            continue
        if any(part == "__pycache__" or part.startswith(".") for part in rel.parts):
            continue
        files.append(path)
    return files


def read_tree(path: Path) -> ast.AST:
    return ast.parse(path.read_text(encoding="utf-8"), filename=str(path))


def parse_imports(path: Path) -> list[ImportRef]:
    imports: list[ImportRef] = []
    for node in ast.walk(read_tree(path)):
        if isinstance(node, ast.Import):
            imports.extend(ImportRef(module=alias.name, line=node.lineno) for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module and not node.level:
            imports.append(ImportRef(module=node.module, line=node.lineno))
    return imports


def matches_prefix(module: str, prefix: str) -> bool:
    return module == prefix or module.startswith(prefix + ".")


def _offenders(prefix: str, allowlist: set[str], base: Path | None = None) -> list[str]:
    root = package_root()
    found: list[str] = []
    for file_path in iter_python_files(base or root):
        rel = file_path.relative_to(root).as_posix()
        if rel in allowlist:
            continue
        for item in parse_imports(file_path):
            if matches_prefix(item.module, prefix):
                found.append(f"{rel}:{item.line}: forbidden import '{item.module}'")
    return found


def test_subprocess_only_in_process_wrapper() -> None:
    offenders = _offenders("subprocess", {"platform/process.py"})
    assert not offenders, "Subprocess policy violations:\n" + "\n".join(offenders)


def test_rich_only_in_console() -> None:
    offenders = _offenders("rich", {"output/console.py"})
    assert not offenders, "Rich usage policy violations:\n" + "\n".join(offenders)


def test_lower_layers_do_not_import_cli() -> None:
    root = package_root()
    offenders: list[str] = []
    for layer in ("core", "platform", "git", "output", "services"):
        offenders += _offenders("crossrel.cli", set(), root / layer)
    assert not offenders, "cli dependency violations:\n" + "\n".join(offenders)


def test_core_is_self_contained() -> None:
    root = package_root()
    offenders: list[str] = []
    for file_path in iter_python_files(root / "core"):
        rel = file_path.relative_to(root).as_posix()
        for item in parse_imports(file_path):
            if not matches_prefix(item.module, "crossrel"):
                continue
            if item.module == "crossrel" or matches_prefix(item.module, "crossrel.core"):
                continue
            offenders.append(f"{rel}:{item.line}: forbidden import '{item.module}'")
    assert not offenders, "core layering violations:\n" + "\n".join(offenders)
