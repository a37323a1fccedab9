from __future__ import annotations

import subprocess
from pathlib import Path

from typer.testing import CliRunner

from ghmode import cli
from ghmode.governance_paths import GOVERNANCE_PATHS
from ghmode.tooling import scoreboard_check
from ghmode.tooling.scoreboard_check import (
    DiffEntry,
    ScoreboardCheckDeps,
    ScoreboardCheckOptions,
    collect_diff_entries,
    determine_base_ref,
    run_check,
)

SCOREBOARD = GOVERNANCE_PATHS.scoreboard_rel
PLANNING = GOVERNANCE_PATHS.spec_artifact_prefix
CAPABILITIES = [
    {"id": "bundle", "description": "Bundle builder", "state": "operational"},
    {"id": "reactions", "description": "Reaction signaling", "state": "scaffold"},
]


def _deps(run, out: list[str], err: list[str]) -> ScoreboardCheckDeps:
    return ScoreboardCheckDeps(run=run, print_out=out.append, print_err=err.append)


def test_determine_base_ref_prefers_origin_main(tmp_path: Path, git_runner) -> None:
    calls: list[list[str]] = []
    deps = _deps(git_runner(refs=("origin/main", "origin/master"), calls=calls), [], [])
    assert determine_base_ref(deps, root=tmp_path) == "origin/main"
    assert calls == [["git", "rev-parse", "--verify", "origin/main"]]


def test_determine_base_ref_falls_back_to_master_then_previous_commit(
    tmp_path: Path, git_runner
) -> None:
    assert (
        determine_base_ref(_deps(git_runner(refs=("origin/master",)), [], []), root=tmp_path)
        == "origin/master"
    )
    assert determine_base_ref(_deps(git_runner(refs=()), [], []), root=tmp_path) == "HEAD~1"


def test_determine_base_ref_treats_missing_git_as_unresolved(tmp_path: Path) -> None:
    def _no_git(cmd, **kwargs):
        raise FileNotFoundError("git")

    assert determine_base_ref(_deps(_no_git, [], []), root=tmp_path) == "HEAD~1"


def test_collect_diff_entries_uses_three_dot_range(tmp_path: Path, git_runner) -> None:
    calls: list[list[str]] = []
    run = git_runner(diff_output="A\tnew.md\nM\told.md\n", calls=calls)
    collection = collect_diff_entries(_deps(run, [], []), root=tmp_path)
    assert collection.history_available
    assert collection.entries == (
        DiffEntry(status="A", path="new.md"),
        DiffEntry(status="M", path="old.md"),
    )
    assert calls[-1] == ["git", "diff", "--name-status", "origin/main...HEAD"]


def test_collect_diff_entries_honors_explicit_base_ref(tmp_path: Path, git_runner) -> None:
    calls: list[list[str]] = []
    collect_diff_entries(
        _deps(git_runner(diff_output="", calls=calls), [], []),
        root=tmp_path,
        base_ref="release",
    )
    assert calls == [["git", "diff", "--name-status", "release...HEAD"]]


def test_collect_diff_entries_empty_output(tmp_path: Path, git_runner) -> None:
    collection = collect_diff_entries(_deps(git_runner(diff_output="\n"), [], []), root=tmp_path)
    assert collection.entries == ()
    assert collection.history_available


def test_collect_diff_entries_git_failure_is_soft(tmp_path: Path, git_runner) -> None:
    collection = collect_diff_entries(
        _deps(git_runner(refs=(), diff_output=None), [], []), root=tmp_path
    )
    assert collection.entries == ()
    assert not collection.history_available


def test_run_check_summary_skips_git(tmp_path: Path, write_scoreboard) -> None:
    write_scoreboard(tmp_path, CAPABILITIES)
    out: list[str] = []

    def _fail_run(cmd, **kwargs):
        raise AssertionError(f"unexpected command: {cmd}")

    rc = run_check(
        options=ScoreboardCheckOptions(root=tmp_path, summary=True),
        deps=_deps(_fail_run, out, []),
    )
    assert rc == 0
    assert out == [
        "\n".join(
            [
                "- Capabilities tracked: **2**",
                "- Operational: **1**",
                "- Scaffold: **1**",
                "- Spec-only: **0**",
                "- Implementation ratio (operational/total): **1/2**",
            ]
        )
    ]


def test_run_check_passes_with_scoreboard_update(
    tmp_path: Path, write_scoreboard, git_runner
) -> None:
    write_scoreboard(tmp_path, CAPABILITIES)
    out: list[str] = []
    err: list[str] = []
    run = git_runner(diff_output=f"A\t{PLANNING}new.md\nM\t{SCOREBOARD}\n")
    rc = run_check(options=ScoreboardCheckOptions(root=tmp_path), deps=_deps(run, out, err))
    assert rc == 0
    assert out[0] == scoreboard_check.SUCCESS_LINE
    assert "Capabilities tracked: **2**" in out[1]
    assert err == []


def test_run_check_reports_policy_violation(
    tmp_path: Path, write_scoreboard, git_runner
) -> None:
    write_scoreboard(tmp_path, CAPABILITIES)
    out: list[str] = []
    err: list[str] = []
    run = git_runner(diff_output=f"A\t{PLANNING}b.md\nA\t{PLANNING}a.md\n")
    rc = run_check(options=ScoreboardCheckOptions(root=tmp_path), deps=_deps(run, out, err))
    assert rc == 1
    assert out == []
    assert len(err) == 1
    assert err[0].startswith("❌ New planning/spec artifacts were added")
    assert err[0].index(f"{PLANNING}a.md") < err[0].index(f"{PLANNING}b.md")
    assert f"Update {SCOREBOARD} in the same change" in err[0]


def test_run_check_validates_scoreboard_before_diff(
    tmp_path: Path, write_scoreboard, git_runner
) -> None:
    write_scoreboard(tmp_path, [{"id": "a", "description": "d", "state": "finished"}])
    err: list[str] = []
    calls: list[list[str]] = []
    rc = run_check(
        options=ScoreboardCheckOptions(root=tmp_path),
        deps=_deps(git_runner(calls=calls), [], err),
    )
    assert rc == 1
    assert calls == []
    assert err == [
        '❌ Capability a has invalid state "finished". '
        "Expected one of: spec-only, scaffold, operational."
    ]


def test_run_check_missing_scoreboard_is_fatal(tmp_path: Path, git_runner) -> None:
    err: list[str] = []
    rc = run_check(
        options=ScoreboardCheckOptions(root=tmp_path, summary=True),
        deps=_deps(git_runner(), [], err),
    )
    assert rc == 1
    assert err[0].startswith("❌ Scoreboard file not found:")


def test_run_check_unparsable_scoreboard_is_fatal(tmp_path: Path, git_runner) -> None:
    path = GOVERNANCE_PATHS.scoreboard_path(root=tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text("{", encoding="utf-8")
    err: list[str] = []
    rc = run_check(options=ScoreboardCheckOptions(root=tmp_path), deps=_deps(git_runner(), [], err))
    assert rc == 1
    assert err[0].startswith("❌ Scoreboard is not valid JSON")


def test_run_check_without_history_is_advisory_by_default(
    tmp_path: Path, write_scoreboard, git_runner
) -> None:
    write_scoreboard(tmp_path, CAPABILITIES)
    out: list[str] = []
    err: list[str] = []
    run = git_runner(refs=(), diff_output=None)
    rc = run_check(options=ScoreboardCheckOptions(root=tmp_path), deps=_deps(run, out, err))
    assert rc == 0
    assert out[0] == scoreboard_check.SUCCESS_LINE
    assert err == ["scoreboard-check: git history unavailable; spec tracking guard skipped."]


def test_run_check_require_history_fails_without_history(
    tmp_path: Path, write_scoreboard, git_runner
) -> None:
    write_scoreboard(tmp_path, CAPABILITIES)
    err: list[str] = []
    rc = run_check(
        options=ScoreboardCheckOptions(root=tmp_path, require_history=True),
        deps=_deps(git_runner(refs=(), diff_output=None), [], err),
    )
    assert rc == 1
    assert err[0].startswith("❌ git history is unavailable")


def test_run_check_reads_paths_from_config(tmp_path: Path, git_runner) -> None:
    (tmp_path / "ghmode.toml").write_text(
        '[paths]\nscoreboard = "meta/scoreboard.json"\nspec_artifact_prefix = "plans/"\n',
        encoding="utf-8",
    )
    scoreboard = tmp_path / "meta" / "scoreboard.json"
    scoreboard.parent.mkdir()
    scoreboard.write_text(
        '{"version": 1, "capabilities": [{"id": "a", "description": "d", "state": "scaffold"}]}',
        encoding="utf-8",
    )
    err: list[str] = []
    rc = run_check(
        options=ScoreboardCheckOptions(root=tmp_path),
        deps=_deps(git_runner(diff_output="A\tplans/x.md\n"), [], err),
    )
    assert rc == 1
    assert "Update meta/scoreboard.json" in err[0]


def test_run_check_scoreboard_option_drives_the_guard(tmp_path: Path, git_runner) -> None:
    board = tmp_path / "meta" / "board.json"
    board.parent.mkdir()
    board.write_text(
        '{"version": 1, "capabilities": [{"id": "a", "description": "d", "state": "scaffold"}]}',
        encoding="utf-8",
    )
    out: list[str] = []
    rc = run_check(
        options=ScoreboardCheckOptions(root=tmp_path, scoreboard=Path("meta/board.json")),
        deps=_deps(git_runner(diff_output=f"A\t{PLANNING}x.md\nM\tmeta/board.json\n"), out, []),
    )
    assert rc == 0
    assert out[0] == scoreboard_check.SUCCESS_LINE

    err: list[str] = []
    rc = run_check(
        options=ScoreboardCheckOptions(root=tmp_path, scoreboard=board),
        deps=_deps(git_runner(diff_output=f"A\t{PLANNING}x.md\nM\t{SCOREBOARD}\n"), [], err),
    )
    assert rc == 1
    assert "Update meta/board.json" in err[0]


def test_main_parses_flags(tmp_path: Path, write_scoreboard) -> None:
    write_scoreboard(tmp_path, CAPABILITIES)
    out: list[str] = []
    rc = scoreboard_check.main(
        ["--summary", "--root", str(tmp_path)],
        deps=_deps(subprocess.run, out, []),
    )
    assert rc == 0
    assert "Implementation ratio (operational/total): **1/2**" in out[0]


def test_cli_scoreboard_check_success(tmp_path: Path, write_scoreboard, git_runner) -> None:
    write_scoreboard(tmp_path, CAPABILITIES)
    runner = CliRunner()
    result = runner.invoke(
        cli.app,
        ["scoreboard-check", "--root", str(tmp_path)],
        obj={"run": git_runner(diff_output=f"M\t{SCOREBOARD}\n")},
    )
    assert result.exit_code == 0
    assert scoreboard_check.SUCCESS_LINE in result.output


def test_cli_scoreboard_check_violation_exits_nonzero(
    tmp_path: Path, write_scoreboard, git_runner
) -> None:
    write_scoreboard(tmp_path, CAPABILITIES)
    runner = CliRunner()
    result = runner.invoke(
        cli.app,
        ["scoreboard-check", "--root", str(tmp_path), "--base-ref", "origin/main"],
        obj={"run": git_runner(diff_output=f"A\t{PLANNING}x.md\n")},
    )
    assert result.exit_code == 1
    assert scoreboard_check.SUCCESS_LINE not in result.stdout


def test_cli_scoreboard_check_summary(tmp_path: Path, write_scoreboard) -> None:
    write_scoreboard(tmp_path, CAPABILITIES)
    runner = CliRunner()
    result = runner.invoke(cli.app, ["scoreboard-check", "--summary", "--root", str(tmp_path)])
    assert result.exit_code == 0
    assert result.stdout.startswith("- Capabilities tracked: **2**")
