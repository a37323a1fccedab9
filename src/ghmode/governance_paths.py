from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping


@dataclass(frozen=True)
class GovernancePathConfig:
    """Centralized spec-tracking path rules for repo-local tooling."""

    scoreboard_rel: str = ".GITHUB-MODE/runtime/implementation-scoreboard.json"
    spec_artifact_prefix: str = ".GITHUB-MODE/docs/planning/"
    spec_artifact_extension: str = ".md"
    spec_index_suffix: str = "/README.md"

    def scoreboard_path(self, *, root: Path) -> Path:
        return root / self.scoreboard_rel

    def is_spec_artifact(self, path: str) -> bool:
        return (
            path.startswith(self.spec_artifact_prefix)
            and path.endswith(self.spec_artifact_extension)
            and not path.endswith(self.spec_index_suffix)
        )

    def is_scoreboard_path(self, path: str) -> bool:
        return path == self.scoreboard_rel

    def with_overrides(self, overrides: Mapping[str, object]) -> "GovernancePathConfig":
        """Return a copy with string overrides applied; unknown keys are ignored."""
        known = {
            "scoreboard": "scoreboard_rel",
            "spec_artifact_prefix": "spec_artifact_prefix",
            "spec_artifact_extension": "spec_artifact_extension",
            "spec_index_suffix": "spec_index_suffix",
        }
        changes: dict[str, str] = {}
        for key, field_name in known.items():
            value = overrides.get(key)
            if isinstance(value, str) and value:
                changes[field_name] = value
        if not changes:
            return self
        return replace(self, **changes)


GOVERNANCE_PATHS = GovernancePathConfig()
