from __future__ import annotations

import os
from pathlib import Path
import subprocess
from typing import Mapping, Optional

import typer

from ghmode.exceptions import UsageError
from ghmode.tooling import bundle as bundle_tool
from ghmode.tooling import scoreboard_check
from ghmode.tooling import signal_reaction

app = typer.Typer(add_completion=False)


def _echo_err(message: str) -> None:
    typer.echo(message, err=True)


def _context_run(ctx: typer.Context):
    obj = ctx.obj
    if isinstance(obj, Mapping):
        candidate = obj.get("run")
        if callable(candidate):
            return candidate
    return subprocess.run


def _context_environ(ctx: typer.Context) -> Mapping[str, str]:
    obj = ctx.obj
    if isinstance(obj, Mapping):
        candidate = obj.get("environ")
        if isinstance(candidate, Mapping):
            return candidate
    return os.environ


@app.command("scoreboard-check")
def scoreboard_check_command(
    ctx: typer.Context,
    summary: bool = typer.Option(
        False,
        "--summary",
        help="Print the scoreboard summary as Markdown and exit.",
    ),
    root: Path = typer.Option(Path("."), "--root"),
    scoreboard: Optional[Path] = typer.Option(
        None,
        "--scoreboard",
        help="Scoreboard JSON path, relative to --root (default: from ghmode.toml or the built-in path).",
    ),
    base_ref: Optional[str] = typer.Option(
        None,
        "--base-ref",
        help="Diff base ref (default: origin/main, origin/master, then HEAD~1).",
    ),
    require_history: bool = typer.Option(
        False,
        "--require-history",
        help="Fail instead of skipping the guard when git history is unavailable.",
    ),
) -> None:
    """Validate the implementation scoreboard and enforce spec-to-implementation tracking."""
    deps = scoreboard_check.ScoreboardCheckDeps(
        run=_context_run(ctx),
        print_out=typer.echo,
        print_err=_echo_err,
    )
    exit_code = scoreboard_check.run_check(
        options=scoreboard_check.ScoreboardCheckOptions(
            root=root,
            scoreboard=scoreboard,
            summary=summary,
            base_ref=base_ref,
            require_history=require_history,
        ),
        deps=deps,
    )
    raise typer.Exit(code=exit_code)


@app.command("signal-reaction")
def signal_reaction_command(
    ctx: typer.Context,
    mode: Optional[str] = typer.Argument(None, help="add | remove"),
    state_file: Optional[Path] = typer.Option(
        None,
        "--state-file",
        help="Reaction state JSON handed between workflow steps.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Print gh commands without executing.",
    ),
) -> None:
    """Add or remove the eyes reaction that marks an agent run in progress."""
    deps = signal_reaction.SignalReactionDeps(
        run=_context_run(ctx),
        print_out=typer.echo,
        print_err=_echo_err,
    )
    exit_code = signal_reaction.run_signal(
        mode=mode,
        state_file=state_file,
        dry_run=dry_run,
        environ=_context_environ(ctx),
        deps=deps,
    )
    raise typer.Exit(code=exit_code)


@app.command("bundle")
def bundle_command(
    output: Optional[str] = typer.Argument(None, help="Output directory (positional form)."),
    output_dir: Optional[str] = typer.Option(
        None,
        "--output-dir",
        help="Directory for the output zip (default: repo root).",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="List files without creating the zip.",
    ),
    root: Path = typer.Option(Path("."), "--root"),
) -> None:
    """Build a timestamped zip bundle of all GitHub Mode components."""
    try:
        options = bundle_tool.resolve_options(
            output_dir=output_dir or output,
            dry_run=dry_run,
            repo_root=root.resolve(),
        )
    except UsageError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc
    exit_code = bundle_tool.run_bundle(options, print_out=typer.echo, print_err=_echo_err)
    raise typer.Exit(code=exit_code)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
