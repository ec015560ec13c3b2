#!/usr/bin/env python3
"""Local guardrails for the subplay package.

Checks, per file:
- the file parses with `ast.parse`;
- no bare `except:` clauses;
- no `print()` calls outside the CLI module (core modules log instead).

Usage:
- python tools/guardrails.py
- python tools/guardrails.py --files subplay/clock.py subplay/subtitles.py
- python tools/guardrails.py --root /path/to/checkout --allow-print subplay/cli.py
"""

from __future__ import annotations

import argparse
import ast
from dataclasses import dataclass, field
from pathlib import Path
import sys


PACKAGE_DIR = "subplay"
PRINT_ALLOWED = ("subplay/cli.py",)


@dataclass
class FileReport:
    path: str
    problems: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.problems


def default_files(root: Path) -> list[str]:
    return sorted(p.relative_to(root).as_posix() for p in (root / PACKAGE_DIR).glob("*.py"))


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run local guardrails over the package sources.")
    parser.add_argument(
        "--files",
        nargs="*",
        default=None,
        help="Files to check, relative to --root (defaults to every module in subplay/).",
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Project root (defaults to the checkout holding this script).",
    )
    parser.add_argument(
        "--allow-print",
        nargs="*",
        default=list(PRINT_ALLOWED),
        help="Files that may call print().",
    )
    return parser.parse_args(argv)


def read_source(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError:
        return path.read_text(encoding="utf-8", errors="replace")


def check_tree(tree: ast.AST, allow_print: bool = False) -> list[str]:
    problems = []
    for node in ast.walk(tree):
        if isinstance(node, ast.ExceptHandler) and node.type is None:
            problems.append(f"bare except at line {node.lineno}")
        elif (
            not allow_print
            and isinstance(node, ast.Call)
            and isinstance(node.func, ast.Name)
            and node.func.id == "print"
        ):
            problems.append(f"print() at line {node.lineno}")
    return problems


def check_file(root: Path, rel: str, allow_print: bool = False) -> FileReport:
    report = FileReport(rel)
    path = root / rel
    if not path.exists():
        report.problems.append("missing")
        return report
    if not path.is_file():
        report.problems.append("not a file")
        return report
    try:
        tree = ast.parse(read_source(path), filename=str(path))
    except SyntaxError as exc:
        location = f"{exc.lineno}:{exc.offset}" if exc.lineno else "unknown"
        report.problems.append(f"syntax error at {location}: {exc.msg}")
        return report
    report.problems.extend(check_tree(tree, allow_print))
    return report


def main(argv=None) -> int:
    args = parse_args(argv)
    root = Path(args.root).resolve() if args.root else Path(__file__).resolve().parent.parent
    files = args.files or default_files(root)
    allowed = set(args.allow_print)

    print("Guardrails: syntax, bare except, print")
    print(f"Root: {root}")

    failures = 0
    for rel in files:
        report = check_file(root, rel, rel in allowed)
        if report.ok:
            print(f"[PASS] {rel}")
            continue
        failures += 1
        for problem in report.problems:
            print(f"[FAIL] {rel} - {problem}")

    if failures:
        print(f"Result: FAILED ({failures} file(s))")
        return 1
    print(f"Result: PASSED ({len(files)} file(s))")
    return 0


if __name__ == "__main__":
    sys.exit(main())
