from __future__ import annotations

from enum import StrEnum
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ScoreState(StrEnum):
    SPEC_ONLY = "spec-only"
    SCAFFOLD = "scaffold"
    OPERATIONAL = "operational"


ALLOWED_SCORE_STATES: tuple[ScoreState, ...] = (
    ScoreState.SPEC_ONLY,
    ScoreState.SCAFFOLD,
    ScoreState.OPERATIONAL,
)

ReactionTarget = Literal["issue", "comment"]


class CapabilityDTO(BaseModel):
    # Non-empty and known-state checks live in validate_scoreboard so their
    # order and wording stay fixed; the model only decodes shape.
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    description: Optional[str] = None
    state: Optional[str] = None
    evidence: Optional[List[str]] = None


class ScoreboardDTO(BaseModel):
    model_config = ConfigDict(extra="allow")

    version: Union[int, float] = 0
    capabilities: List[CapabilityDTO] = []

    @field_validator("capabilities", mode="before")
    @classmethod
    def _non_list_is_empty(cls, value: Any) -> Any:
        # Anything but a list reports as "no capabilities" in validate_scoreboard.
        return value if isinstance(value, list) else []


class ReactionStateDTO(BaseModel):
    """Reaction handoff between workflow steps, serialized with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    reaction_id: Optional[int] = Field(default=None, alias="reactionId")
    reaction_target: ReactionTarget = Field(default="issue", alias="reactionTarget")
    comment_id: Optional[int] = Field(default=None, alias="commentId")
    issue_number: int = Field(default=0, alias="issueNumber")
    repo: str = ""
