"""Reaction signaling for issue-driven agent workflows.

An "eyes" reaction on the triggering issue or comment tells the author the
agent is working; a later step removes it using the state file written by
`add`. Everything here except `main` and `EventEnvironment.from_environ` is
pure, so event handling can be tested without GitHub Actions.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
import json
import os
from pathlib import Path
import subprocess
import sys
from typing import Callable, Mapping

from pydantic import ValidationError

from ghmode.exceptions import UsageError
from ghmode.json_types import JSONObject, JSONValue
from ghmode.schema import ReactionStateDTO, ReactionTarget

ALLOWED_ASSOCIATIONS = frozenset({"OWNER", "MEMBER", "COLLABORATOR"})
REACTION_CONTENT = "eyes"

RunCommand = Callable[..., subprocess.CompletedProcess[str]]
PrintFn = Callable[[str], None]


@dataclass(frozen=True)
class SignalReactionDeps:
    run: RunCommand
    print_out: PrintFn
    print_err: PrintFn


@dataclass(frozen=True)
class EventContext:
    event_name: str
    issue_number: int
    comment_id: int | None
    repo: str
    author_association: str


@dataclass(frozen=True)
class EventEnvironment:
    event_path: Path
    event_name: str
    repo: str

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "EventEnvironment":
        event_path = environ.get("GITHUB_EVENT_PATH", "")
        event_name = environ.get("GITHUB_EVENT_NAME", "")
        repo = environ.get("GITHUB_REPOSITORY", "")
        if not event_path or not event_name or not repo:
            raise UsageError("Missing required GitHub Actions environment variables")
        return cls(event_path=Path(event_path), event_name=event_name, repo=repo)


def _default_print_err(message: str) -> None:
    print(message, file=sys.stderr)


def _default_deps() -> SignalReactionDeps:
    return SignalReactionDeps(run=subprocess.run, print_out=print, print_err=_default_print_err)


def is_authorized_association(association: str) -> bool:
    return association.upper() in ALLOWED_ASSOCIATIONS


def _mapping(payload: Mapping[str, JSONValue], key: str) -> Mapping[str, JSONValue]:
    value = payload.get(key)
    return value if isinstance(value, Mapping) else {}


def _int_or_none(value: JSONValue) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _text(value: JSONValue, default: str) -> str:
    return value if isinstance(value, str) else default


def parse_event_context(
    event_name: str,
    payload: Mapping[str, JSONValue],
    repo: str,
) -> EventContext:
    """Handle `issue_comment` (created) and `issues` (opened) payloads."""
    issue = _mapping(payload, "issue")
    issue_number = _int_or_none(issue.get("number")) or 0
    if event_name == "issue_comment":
        comment = _mapping(payload, "comment")
        return EventContext(
            event_name=event_name,
            issue_number=issue_number,
            comment_id=_int_or_none(comment.get("id")),
            repo=repo,
            author_association=_text(comment.get("author_association"), "NONE"),
        )
    return EventContext(
        event_name=event_name,
        issue_number=issue_number,
        comment_id=None,
        repo=repo,
        author_association=_text(issue.get("author_association"), "NONE"),
    )


def resolve_reaction_target(event_name: str) -> ReactionTarget:
    return "comment" if event_name == "issue_comment" else "issue"


def build_reaction_state(context: EventContext, reaction_id: int | None) -> ReactionStateDTO:
    return ReactionStateDTO(
        reaction_id=reaction_id,
        reaction_target=resolve_reaction_target(context.event_name),
        comment_id=context.comment_id,
        issue_number=context.issue_number,
        repo=context.repo,
    )


def _split_repo(repo: str) -> tuple[str, str]:
    owner, _, name = repo.partition("/")
    return owner, name


def build_add_reaction_args(context: EventContext) -> list[str]:
    owner, name = _split_repo(context.repo)
    if context.event_name == "issue_comment" and context.comment_id:
        endpoint = f"repos/{owner}/{name}/issues/comments/{context.comment_id}/reactions"
    else:
        endpoint = f"repos/{owner}/{name}/issues/{context.issue_number}/reactions"
    return ["api", endpoint, "-f", f"content={REACTION_CONTENT}", "--jq", ".id"]


def build_remove_reaction_args(state: ReactionStateDTO) -> list[str] | None:
    if state.reaction_id is None:
        return None
    owner, name = _split_repo(state.repo)
    if state.reaction_target == "comment" and state.comment_id:
        endpoint = (
            f"repos/{owner}/{name}/issues/comments/{state.comment_id}"
            f"/reactions/{state.reaction_id}"
        )
    else:
        endpoint = f"repos/{owner}/{name}/issues/{state.issue_number}/reactions/{state.reaction_id}"
    return ["api", "--method", "DELETE", endpoint]


def extract_prompt(event_name: str, payload: Mapping[str, JSONValue]) -> str:
    if event_name == "issue_comment":
        return _text(_mapping(payload, "comment").get("body"), "")
    issue = _mapping(payload, "issue")
    title = _text(issue.get("title"), "")
    body = _text(issue.get("body"), "")
    return f"{title}\n\n{body}" if body else title


def write_reaction_state(path: Path, state: ReactionStateDTO) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(state.model_dump(by_alias=True), indent=2) + "\n",
        encoding="utf-8",
    )


def read_reaction_state(path: Path) -> ReactionStateDTO:
    return ReactionStateDTO.model_validate_json(path.read_text(encoding="utf-8"))


def _load_event_payload(path: Path) -> JSONObject:
    payload = json.loads(path.read_text(encoding="utf-8"))
    return payload if isinstance(payload, dict) else {}


def _parse_reaction_id(stdout: str) -> int | None:
    token = stdout.strip()
    return int(token) if token.isdigit() else None


def add_reaction(
    *,
    environment: EventEnvironment,
    state_file: Path,
    dry_run: bool,
    deps: SignalReactionDeps,
) -> ReactionStateDTO:
    payload = _load_event_payload(environment.event_path)
    context = parse_event_context(environment.event_name, payload, environment.repo)

    if not is_authorized_association(context.author_association):
        deps.print_out(
            f'Skipping reaction: author association "{context.author_association}" is not authorized'
        )
        state = build_reaction_state(context, None)
        write_reaction_state(state_file, state)
        return state

    args = build_add_reaction_args(context)
    reaction_id: int | None = None
    if dry_run:
        deps.print_out("DRY RUN: " + " ".join(["gh", *args]))
    else:
        deps.print_out(f"Adding {REACTION_CONTENT} reaction: gh {' '.join(args)}")
        try:
            proc = deps.run(["gh", *args], check=True, capture_output=True, text=True)
        except (subprocess.CalledProcessError, OSError) as exc:
            deps.print_err(f"Warning: adding reaction failed: {exc}")
        else:
            reaction_id = _parse_reaction_id(proc.stdout)

    state = build_reaction_state(context, reaction_id)
    write_reaction_state(state_file, state)
    deps.print_out(f"Reaction state written to {state_file}")
    return state


def remove_reaction(
    *,
    state_file: Path,
    dry_run: bool,
    deps: SignalReactionDeps,
) -> None:
    # Cleanup must never fail the pipeline; every error becomes a warning.
    try:
        state = read_reaction_state(state_file)
    except (OSError, ValidationError, ValueError) as exc:
        deps.print_err(f"Warning: reaction cleanup failed: {exc}")
        return

    args = build_remove_reaction_args(state)
    if args is None:
        deps.print_out("No reaction to remove (reactionId is null)")
        return
    if dry_run:
        deps.print_out("DRY RUN: " + " ".join(["gh", *args]))
        return
    deps.print_out(f"Removing reaction: gh {' '.join(args)}")
    try:
        deps.run(["gh", *args], check=True, capture_output=True, text=True)
    except (subprocess.CalledProcessError, OSError) as exc:
        deps.print_err(f"Warning: reaction cleanup failed: {exc}")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Add or remove the eyes reaction that marks an agent run in progress.",
    )
    parser.add_argument("mode", nargs="?", help="add | remove")
    parser.add_argument("--state-file", help="Reaction state JSON handed between steps.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print gh commands without executing.",
    )
    return parser.parse_args(argv)


USAGE = "\n".join(
    [
        "Usage: signal-reaction <add|remove> --state-file PATH",
        "  add    - Add eyes reaction and write state to --state-file",
        "  remove - Remove reaction using state from --state-file",
    ]
)


def run_signal(
    *,
    mode: str | None,
    state_file: Path | None,
    dry_run: bool,
    environ: Mapping[str, str],
    deps: SignalReactionDeps | None = None,
) -> int:
    active_deps = deps or _default_deps()
    if mode not in ("add", "remove"):
        active_deps.print_err(USAGE)
        return 1
    if state_file is None:
        active_deps.print_err("--state-file is required")
        return 1

    if mode == "remove":
        remove_reaction(state_file=state_file, dry_run=dry_run, deps=active_deps)
        return 0

    try:
        environment = EventEnvironment.from_environ(environ)
    except UsageError as exc:
        active_deps.print_err(str(exc))
        return 1
    try:
        add_reaction(
            environment=environment,
            state_file=state_file,
            dry_run=dry_run,
            deps=active_deps,
        )
    except (OSError, ValueError) as exc:
        # Reaction failures should not block the pipeline.
        active_deps.print_err(f"Warning: reaction signal failed: {exc}")
    return 0


def main(argv: list[str] | None = None, deps: SignalReactionDeps | None = None) -> int:
    args = _parse_args(argv)
    return run_signal(
        mode=args.mode,
        state_file=Path(args.state_file) if args.state_file else None,
        dry_run=bool(args.dry_run),
        environ=os.environ,
        deps=deps,
    )


if __name__ == "__main__":
    raise SystemExit(main())
