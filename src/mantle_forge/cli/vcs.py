"""Read-only git context for the mantle-forge CLI."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class GitContext:
    cwd: Path | None = None
    git_binary: str = "git"

    def _run(self, *args: str) -> str:
        try:
            result = subprocess.run(
                [self.git_binary, *args],
                cwd=self.cwd,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError:
            return ""
        if result.returncode != 0:
            return ""
        return result.stdout.strip()

    def current_branch(self) -> str:
        branch = self._run("rev-parse", "--abbrev-ref", "HEAD")
        # Detached HEAD has no branch name to address an agent by.
        return "" if branch == "HEAD" else branch

    def origin_url(self) -> str:
        return self._run("remote", "get-url", "origin")
