"""Import and call policies of the relbuild package, checked on the AST."""

from __future__ import annotations

import ast
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ImportRef:
    module: str
    line: int


def _package_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _iter_python_files(base: Path) -> list[Path]:
    root = _package_root()
    files: list[Path] = []
    for path in sorted(base.rglob("*.py")):
        rel = path.relative_to(root)
        if "__pycache__" in rel.parts or rel.parts[0] == "test":
            continue
        files.append(path)
    return files


def _read_tree(path: Path) -> ast.AST:
    return ast.parse(path.read_text(encoding="utf-8"), filename=str(path))


def _parse_imports(path: Path) -> list[ImportRef]:
    imports: list[ImportRef] = []
    for node in ast.walk(_read_tree(path)):
        if isinstance(node, ast.Import):
            imports.extend(ImportRef(alias.name, node.lineno) for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module and not node.level:
            imports.append(ImportRef(node.module, node.lineno))
    return imports


def _matches_prefix(module: str, prefix: str) -> bool:
    return module == prefix or module.startswith(prefix + ".")


def test_subprocess_only_in_process_module() -> None:
    root = _package_root()
    offenders: list[str] = []
    for path in _iter_python_files(root):
        rel = path.relative_to(root).as_posix()
        if rel == "platform/process.py":
            continue
        for item in _parse_imports(path):
            if _matches_prefix(item.module, "subprocess"):
                offenders.append(f"{rel}:{item.line}: imports subprocess")

    assert not offenders, "subprocess policy violations:\n" + "\n".join(offenders)


def test_rich_imports_are_limited() -> None:
    root = _package_root()
    allowlist = {"output/console.py", "cli/commands/source.py"}
    offenders: list[str] = []
    for path in _iter_python_files(root):
        rel = path.relative_to(root).as_posix()
        if rel in allowlist:
            continue
        for item in _parse_imports(path):
            if _matches_prefix(item.module, "rich"):
                offenders.append(f"{rel}:{item.line}: direct rich import '{item.module}'")

    assert not offenders, "rich usage policy violations:\n" + "\n".join(offenders)


def test_lower_layers_do_not_import_pipeline_or_cli() -> None:
    root = _package_root()
    offenders: list[str] = []
    for layer in ("core", "platform", "git", "release", "store", "tools"):
        for path in _iter_python_files(root / layer):
            rel = path.relative_to(root).as_posix()
            for item in _parse_imports(path):
                if _matches_prefix(item.module, "relbuild.pipeline") or _matches_prefix(
                    item.module, "relbuild.cli"
                ):
                    offenders.append(f"{rel}:{item.line}: forbidden import '{item.module}'")

    assert not offenders, "layering violations:\n" + "\n".join(offenders)


def test_boto3_only_in_s3_store() -> None:
    root = _package_root()
    offenders: list[str] = []
    for path in _iter_python_files(root):
        rel = path.relative_to(root).as_posix()
        if rel == "store/s3.py":
            continue
        for item in _parse_imports(path):
            if _matches_prefix(item.module, "boto3") or _matches_prefix(item.module, "botocore"):
                offenders.append(f"{rel}:{item.line}: imports '{item.module}'")

    assert not offenders, "boto3 usage violations:\n" + "\n".join(offenders)
