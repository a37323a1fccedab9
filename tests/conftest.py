from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path
from typing import Callable

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from ghmode.governance_paths import GOVERNANCE_PATHS
from tests.env_helpers import env_scope as _env_scope


@pytest.fixture
def env_scope():
    return _env_scope


@pytest.fixture
def write_scoreboard() -> Callable[..., Path]:
    def _write(root: Path, capabilities: list[dict[str, object]], *, version: int = 1) -> Path:
        path = GOVERNANCE_PATHS.scoreboard_path(root=root)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps({"version": version, "capabilities": capabilities}, indent=2) + "\n",
            encoding="utf-8",
        )
        return path

    return _write


@pytest.fixture
def git_runner() -> Callable[..., Callable[..., subprocess.CompletedProcess[str]]]:
    """Build a fake `subprocess.run` for git commands.

    `refs` lists the refs `git rev-parse --verify` accepts; `diff_output` is
    returned for `git diff`, or the diff fails when it is None.
    """

    def _make(
        *,
        refs: tuple[str, ...] = ("origin/main",),
        diff_output: str | None = "",
        calls: list[list[str]] | None = None,
    ) -> Callable[..., subprocess.CompletedProcess[str]]:
        def _run(cmd: list[str], **kwargs) -> subprocess.CompletedProcess[str]:
            if calls is not None:
                calls.append(list(cmd))
            if cmd[:3] == ["git", "rev-parse", "--verify"]:
                if cmd[3] in refs:
                    return subprocess.CompletedProcess(cmd, 0, "deadbeef\n", "")
                raise subprocess.CalledProcessError(128, cmd, "", "fatal: bad ref")
            if cmd[:2] == ["git", "diff"]:
                if diff_output is None:
                    raise subprocess.CalledProcessError(128, cmd, "", "fatal: bad revision")
                return subprocess.CompletedProcess(cmd, 0, diff_output, "")
            raise AssertionError(f"unexpected command: {cmd}")

        return _run

    return _make
