#!/usr/bin/env python3
"""Check that README command snippets parse and that every verb is documented."""
from __future__ import annotations

import argparse
import contextlib
import io
import re
import shlex
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from mantle_forge.cli.main import _build_parser  # noqa: E402

CLI_NAME = "mantle-forge"


def _extract_cli_commands(text: str) -> list[str]:
    pattern = re.compile(r"```bash\s*(.*?)```", re.DOTALL | re.IGNORECASE)
    commands: list[str] = []
    for block in pattern.findall(text):
        for line in block.splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if stripped.startswith(f"{CLI_NAME} "):
                commands.append(stripped)
    return commands


def _top_level_verbs(cli_parser: argparse.ArgumentParser) -> set[str]:
    for action in cli_parser._actions:
        if isinstance(action, argparse._SubParsersAction):
            return set(action.choices)
    return set()


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--paths",
        nargs="+",
        default=[str(ROOT / "README.md")],
        help="Markdown files to validate",
    )
    args = parser.parse_args()

    cli_parser = _build_parser()
    errors: list[str] = []
    documented_verbs: set[str] = set()
    checked = 0

    for raw in args.paths:
        path = Path(raw)
        if not path.exists():
            errors.append(f"{path}: not found")
            continue
        for command in _extract_cli_commands(path.read_text(encoding="utf-8")):
            checked += 1
            argv = shlex.split(command)[1:]
            if argv:
                documented_verbs.add(argv[0])
            if any(token.startswith("<") and token.endswith(">") for token in argv):
                continue
            try:
                with contextlib.redirect_stdout(io.StringIO()):
                    with contextlib.redirect_stderr(io.StringIO()):
                        cli_parser.parse_args(argv)
            except SystemExit as exc:
                if exc.code not in (0, None):
                    errors.append(f"{path}: invalid command snippet: {command}")

    for verb in sorted(_top_level_verbs(cli_parser) - documented_verbs):
        errors.append(f"command not documented: {CLI_NAME} {verb}")

    if errors:
        print("doc command validation failed:")
        for item in errors:
            print(f"- {item}")
        return 1

    print(f"doc command validation passed ({checked} command snippets)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
