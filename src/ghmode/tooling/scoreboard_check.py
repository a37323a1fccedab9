"""Spec-to-implementation tracking guard.

A change set that adds planning/spec documents must also touch the
implementation scoreboard. The scoreboard itself is validated on every run,
whether or not any spec documents were added.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, replace
import json
from pathlib import Path
import subprocess
import sys
from typing import Callable, Iterable, Sequence

from pydantic import ValidationError

from ghmode.config import governance_paths_for
from ghmode.exceptions import GhModeError, ScoreboardError, TrackingPolicyError
from ghmode.governance_paths import GOVERNANCE_PATHS, GovernancePathConfig
from ghmode.schema import ALLOWED_SCORE_STATES, ScoreboardDTO, ScoreState

BASE_REF_CANDIDATES = ("origin/main", "origin/master")
FALLBACK_BASE_REF = "HEAD~1"
SUCCESS_LINE = "✅ Implementation scoreboard is valid and spec tracking guard passed."

RunCommand = Callable[..., subprocess.CompletedProcess[str]]
PrintFn = Callable[[str], None]


@dataclass(frozen=True)
class ScoreboardCheckDeps:
    run: RunCommand
    print_out: PrintFn
    print_err: PrintFn


@dataclass(frozen=True)
class DiffEntry:
    status: str
    path: str


@dataclass(frozen=True)
class DiffCollection:
    entries: tuple[DiffEntry, ...]
    history_available: bool


@dataclass(frozen=True)
class ScoreboardCheckOptions:
    root: Path = Path(".")
    scoreboard: Path | None = None
    summary: bool = False
    base_ref: str | None = None
    require_history: bool = False

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> "ScoreboardCheckOptions":
        return cls(
            root=Path(str(args.root)),
            scoreboard=Path(str(args.scoreboard)) if args.scoreboard else None,
            summary=bool(args.summary),
            base_ref=str(args.base_ref) if args.base_ref else None,
            require_history=bool(args.require_history),
        )


def _default_print_err(message: str) -> None:
    print(message, file=sys.stderr)


def _default_deps() -> ScoreboardCheckDeps:
    return ScoreboardCheckDeps(run=subprocess.run, print_out=print, print_err=_default_print_err)


def parse_diff_entries(diff_output: str) -> list[DiffEntry]:
    """Parse `git diff --name-status` text into entries, in input order.

    Rename and copy rows (`R100\\told\\tnew`) yield one entry per path, both
    carrying the raw status. Rows with fewer than two fields are skipped.
    """
    entries: list[DiffEntry] = []
    for line in diff_output.split("\n"):
        parts = line.split("\t")
        if len(parts) < 2:
            continue
        status = parts[0].strip()
        if status.startswith("R") or status.startswith("C"):
            entries.append(DiffEntry(status=status, path=parts[1].strip()))
            if len(parts) > 2 and parts[2]:
                entries.append(DiffEntry(status=status, path=parts[2].strip()))
            continue
        entries.append(DiffEntry(status=status, path=parts[1].strip()))
    return entries


def is_spec_artifact(path: str, *, paths: GovernancePathConfig = GOVERNANCE_PATHS) -> bool:
    return paths.is_spec_artifact(path)


def get_added_spec_artifacts(
    entries: Iterable[DiffEntry],
    *,
    paths: GovernancePathConfig = GOVERNANCE_PATHS,
) -> list[str]:
    additions = {
        entry.path
        for entry in entries
        if entry.status == "A" and paths.is_spec_artifact(entry.path)
    }
    return sorted(additions)


def has_scoreboard_update(
    entries: Iterable[DiffEntry],
    *,
    paths: GovernancePathConfig = GOVERNANCE_PATHS,
) -> bool:
    return any(
        paths.is_scoreboard_path(entry.path) and entry.status != "D"
        for entry in entries
    )


def load_scoreboard(path: Path) -> ScoreboardDTO:
    # Missing files and malformed JSON propagate unchanged.
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ScoreboardError(f"{path.name} must contain a JSON object.")
    try:
        return ScoreboardDTO.model_validate(payload)
    except ValidationError as exc:
        raise ScoreboardError(f"{path.name} has an invalid shape: {exc}") from exc


def validate_scoreboard(scoreboard: ScoreboardDTO) -> None:
    if not scoreboard.capabilities:
        raise ScoreboardError(
            "implementation-scoreboard.json must contain at least one capability."
        )
    allowed = [str(state) for state in ALLOWED_SCORE_STATES]
    seen: set[str] = set()
    for capability in scoreboard.capabilities:
        if not capability.id or not capability.description:
            raise ScoreboardError(
                "Each capability requires non-empty id and description fields."
            )
        if capability.id in seen:
            raise ScoreboardError(f"Duplicate capability id found: {capability.id}")
        seen.add(capability.id)
        if capability.state not in allowed:
            raise ScoreboardError(
                f'Capability {capability.id} has invalid state "{capability.state}". '
                f"Expected one of: {', '.join(allowed)}."
            )


def score_counts(scoreboard: ScoreboardDTO) -> dict[ScoreState, int]:
    counts = {state: 0 for state in ALLOWED_SCORE_STATES}
    for capability in scoreboard.capabilities:
        counts[ScoreState(str(capability.state))] += 1
    return counts


def render_summary_markdown(scoreboard: ScoreboardDTO) -> str:
    counts = score_counts(scoreboard)
    total = len(scoreboard.capabilities)
    operational = counts[ScoreState.OPERATIONAL]
    return "\n".join(
        [
            f"- Capabilities tracked: **{total}**",
            f"- Operational: **{operational}**",
            f"- Scaffold: **{counts[ScoreState.SCAFFOLD]}**",
            f"- Spec-only: **{counts[ScoreState.SPEC_ONLY]}**",
            f"- Implementation ratio (operational/total): **{operational}/{total}**",
        ]
    )


def enforce_spec_to_implementation_tracking(
    entries: Sequence[DiffEntry],
    *,
    paths: GovernancePathConfig = GOVERNANCE_PATHS,
) -> None:
    added_specs = get_added_spec_artifacts(entries, paths=paths)
    if not added_specs:
        return
    if has_scoreboard_update(entries, paths=paths):
        return
    raise TrackingPolicyError(
        "\n".join(
            [
                "New planning/spec artifacts were added without updating implementation scoreboard.",
                "Added artifacts:",
                *[f"  - {artifact}" for artifact in added_specs],
                f"Update {paths.scoreboard_rel} in the same change to keep "
                "spec-vs-implementation tracking current.",
            ]
        ),
        added_artifacts=tuple(added_specs),
        scoreboard_rel=paths.scoreboard_rel,
    )


def _run_git(deps: ScoreboardCheckDeps, args: list[str], *, root: Path) -> str:
    proc = deps.run(
        ["git", *args],
        cwd=root,
        check=True,
        capture_output=True,
        text=True,
    )
    return proc.stdout


def determine_base_ref(deps: ScoreboardCheckDeps, *, root: Path) -> str:
    for candidate in BASE_REF_CANDIDATES:
        try:
            _run_git(deps, ["rev-parse", "--verify", candidate], root=root)
        except (subprocess.CalledProcessError, OSError):
            continue
        return candidate
    return FALLBACK_BASE_REF


def collect_diff_entries(
    deps: ScoreboardCheckDeps,
    *,
    root: Path,
    base_ref: str | None = None,
) -> DiffCollection:
    resolved = base_ref or determine_base_ref(deps, root=root)
    try:
        diff_output = _run_git(
            deps, ["diff", "--name-status", f"{resolved}...HEAD"], root=root
        ).strip()
    except (subprocess.CalledProcessError, OSError):
        return DiffCollection(entries=(), history_available=False)
    if not diff_output:
        return DiffCollection(entries=(), history_available=True)
    return DiffCollection(
        entries=tuple(parse_diff_entries(diff_output)),
        history_available=True,
    )


def _with_scoreboard_override(
    paths: GovernancePathConfig,
    scoreboard: Path,
    *,
    root: Path,
) -> GovernancePathConfig:
    # The guard matches diff paths, which are root-relative POSIX strings.
    candidate = scoreboard if scoreboard.is_absolute() else root / scoreboard
    try:
        rel = candidate.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        rel = candidate.as_posix()
    return replace(paths, scoreboard_rel=rel)


def run_check(
    *,
    options: ScoreboardCheckOptions,
    deps: ScoreboardCheckDeps | None = None,
) -> int:
    active_deps = deps or _default_deps()
    paths = governance_paths_for(root=options.root)
    if options.scoreboard is not None:
        paths = _with_scoreboard_override(paths, options.scoreboard, root=options.root)
    scoreboard_path = paths.scoreboard_path(root=options.root)

    try:
        scoreboard = load_scoreboard(scoreboard_path)
        validate_scoreboard(scoreboard)
    except FileNotFoundError:
        active_deps.print_err(f"❌ Scoreboard file not found: {scoreboard_path}")
        return 1
    except json.JSONDecodeError as exc:
        active_deps.print_err(f"❌ Scoreboard is not valid JSON ({scoreboard_path}): {exc}")
        return 1
    except (OSError, GhModeError) as exc:
        active_deps.print_err(f"❌ {exc}")
        return 1

    summary = render_summary_markdown(scoreboard)
    if options.summary:
        active_deps.print_out(summary)
        return 0

    collection = collect_diff_entries(active_deps, root=options.root, base_ref=options.base_ref)
    if not collection.history_available:
        if options.require_history:
            active_deps.print_err(
                "❌ git history is unavailable; cannot compute the change set "
                "(fetch more history or pass --base-ref)."
            )
            return 1
        active_deps.print_err(
            "scoreboard-check: git history unavailable; spec tracking guard skipped."
        )

    try:
        enforce_spec_to_implementation_tracking(collection.entries, paths=paths)
    except TrackingPolicyError as exc:
        active_deps.print_err(f"❌ {exc}")
        return 1

    active_deps.print_out(SUCCESS_LINE)
    active_deps.print_out(summary)
    return 0


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Validate the implementation scoreboard and enforce spec tracking.",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print the scoreboard summary as Markdown and exit.",
    )
    parser.add_argument("--root", default=".", help="Repository root (default: .)")
    parser.add_argument(
        "--scoreboard",
        help=(
            "Scoreboard JSON path, relative to --root "
            "(default: taken from ghmode.toml or the built-in path)."
        ),
    )
    parser.add_argument(
        "--base-ref",
        help="Diff base ref (default: origin/main, origin/master, then HEAD~1).",
    )
    parser.add_argument(
        "--require-history",
        action="store_true",
        help="Fail instead of skipping the guard when git history is unavailable.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None, deps: ScoreboardCheckDeps | None = None) -> int:
    args = _parse_args(argv)
    options = ScoreboardCheckOptions.from_namespace(args)
    return run_check(options=options, deps=deps)


if __name__ == "__main__":
    raise SystemExit(main())
