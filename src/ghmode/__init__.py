"""GitHub Mode governance tooling package root."""

from ghmode.exceptions import GhModeError, ScoreboardError, TrackingPolicyError, UsageError

__all__ = [
    "__version__",
    "GhModeError",
    "ScoreboardError",
    "TrackingPolicyError",
    "UsageError",
]

__version__ = "0.1.0"
