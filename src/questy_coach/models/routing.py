"""Routing models for questy_coach."""

from enum import StrEnum

from pydantic import BaseModel, Field

__all__ = [
    "HandlerRole",
    "IntentCategory",
    "ModelTier",
    "RouteDecision",
]


class IntentCategory(StrEnum):
    """What a free-text request is about."""

    ENROLLMENT = "ENROLLMENT"
    STUDY_PLAN = "STUDY_PLAN"
    QUESTION = "QUESTION"
    PROGRESS = "PROGRESS"
    MOTIVATION = "MOTIVATION"
    EMOTIONAL = "EMOTIONAL"
    FEEDBACK = "FEEDBACK"
    ADMIN = "ADMIN"
    SCHEDULE_CHANGE = "SCHEDULE_CHANGE"
    SCHEDULE_REMINDER = "SCHEDULE_REMINDER"


class HandlerRole(StrEnum):
    """Downstream handler a request is routed to."""

    ADMISSION = "ADMISSION"
    PLANNER = "PLANNER"
    COACH = "COACH"
    ANALYST = "ANALYST"
    DIRECTOR = "DIRECTOR"


class ModelTier(StrEnum):
    FAST = "FAST"
    BALANCED = "BALANCED"
    DEEP = "DEEP"


class RouteDecision(BaseModel, frozen=True):
    """Routing decision for one request.

    Attributes:
        target_handler: Handler that should answer
        intent: Detected intent
        confidence: Routing confidence (0.5 - 0.95)
        reasoning: Human-readable summary of the decision
        complexity: Keyword/length complexity score (0.0 - 1.0)
        model_tier: Model tier selected from the complexity
        has_multimodal_content: Whether the request mentions images or files
    """

    target_handler: HandlerRole
    intent: IntentCategory
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    complexity: float = Field(default=0.0, ge=0.0, le=1.0)
    model_tier: ModelTier = ModelTier.FAST
    has_multimodal_content: bool = False
