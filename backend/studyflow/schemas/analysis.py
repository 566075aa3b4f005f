"""Schemas for AI task analysis and suggestive actions.

Field aliases follow the camelCase JSON the language model is asked to
produce, so a reply can be validated as-is.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from studyflow.schemas.tasks import PriorityType

ActionType = Literal["email", "phone", "calendar", "maps", "search", "document", "website"]


class AnalysisResource(BaseModel):
    """Learning resource suggested by the model."""

    title: str
    url: str
    type: str  # article, video, documentation or course when the model follows the prompt


class ContextualAction(BaseModel):
    """External tool or service suggested by the model."""

    type: str
    label: str
    description: str = ""
    url: str | None = None


def _keep_valid(model: type[BaseModel], items: Any) -> list[BaseModel]:
    """Validate list entries one by one, dropping the ones that don't fit."""
    if not isinstance(items, list):
        return []
    kept = []
    for item in items:
        try:
            kept.append(model.model_validate(item))
        except ValidationError:
            continue
    return kept


class AIAnalysis(BaseModel):
    """
    Structured breakdown of a task. Never persisted.

    Only the four headline fields are required. Malformed resources,
    tips and contextual actions are dropped individually so one bad entry
    does not discard an otherwise usable reply.
    """

    model_config = ConfigDict(populate_by_name=True)

    summary: str
    suggested_steps: list[str] = Field(..., alias="suggestedSteps")
    estimated_time: str = Field(..., alias="estimatedTime")
    difficulty: str
    resources: list[AnalysisResource] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)
    contextual_actions: list[ContextualAction] | None = Field(None, alias="contextualActions")

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, value: Any) -> Any:
        # "medium" and "MEDIUM" map to "Medium"; anything else passes through
        if isinstance(value, str) and value.strip().capitalize() in ("Easy", "Medium", "Hard"):
            return value.strip().capitalize()
        return value

    @field_validator("resources", mode="before")
    @classmethod
    def drop_invalid_resources(cls, value: Any) -> list:
        return _keep_valid(AnalysisResource, value)

    @field_validator("contextual_actions", mode="before")
    @classmethod
    def drop_invalid_actions(cls, value: Any) -> list | None:
        if value is None:
            return None
        return _keep_valid(ContextualAction, value)

    @field_validator("tips", mode="before")
    @classmethod
    def drop_invalid_tips(cls, value: Any) -> list:
        if not isinstance(value, list):
            return []
        return [tip for tip in value if isinstance(tip, str)]


class SuggestiveAction(BaseModel):
    """Deep link derived from free text by the text heuristics."""

    type: ActionType
    label: str
    url: str
    data: dict[str, str] = Field(default_factory=dict)


class AnalysisRequest(BaseModel):
    """Request to analyze arbitrary text."""

    text: str = Field(..., min_length=1)
    priority: PriorityType = "medium"


class ActionExtractRequest(BaseModel):
    """Request to run only the text heuristics."""

    text: str


class AnalysisResponse(BaseModel):
    """Analysis result plus actions extracted from the analyzed text."""

    model_config = ConfigDict(populate_by_name=True)

    task_text: str
    analysis: AIAnalysis
    suggestive_actions: list[SuggestiveAction]
