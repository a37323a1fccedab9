"""Error types raised by GitHub Mode tooling."""

from __future__ import annotations


class GhModeError(RuntimeError):
    """Base class for errors that tooling entry points turn into exit codes."""


class ScoreboardError(GhModeError):
    """The implementation scoreboard is structurally invalid."""


class TrackingPolicyError(GhModeError):
    """New spec artifacts landed without a scoreboard update.

    The offending paths and the scoreboard path are kept on the instance so
    callers can render their own remediation text.
    """

    def __init__(self, message: str, *, added_artifacts: tuple[str, ...], scoreboard_rel: str):
        super().__init__(message)
        self.added_artifacts = added_artifacts
        self.scoreboard_rel = scoreboard_rel


class UsageError(GhModeError):
    """Invalid invocation: missing flags, arguments, or environment."""
