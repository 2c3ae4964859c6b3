"""Wire models for the tutor API.

Fields serialize with camelCase aliases to match the browser client and
accept either camelCase or snake_case on input.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


ChatMode = Literal["questions", "feedback"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConversationMessage(CamelModel):
    role: Literal["user", "assistant"]
    content: str


class Step(CamelModel):
    """One decision point in an adaptive case."""

    step_number: int = Field(..., ge=1)
    title: str
    content: str
    decision_prompt: str
    expected_considerations: List[str] = Field(default_factory=list)


class AdaptiveCase(CamelModel):
    """A multi-step patient case generated at a given difficulty."""

    difficulty_level: int = Field(..., ge=1, le=5)
    title: str = ""
    patient_presentation: str = ""
    steps: List[Step] = Field(default_factory=list)
    correct_approach: str = ""
    key_learning_points: List[str] = Field(default_factory=list)

    @field_validator("steps")
    @classmethod
    def _steps_in_order(cls, steps: List[Step]) -> List[Step]:
        numbers = [s.step_number for s in steps]
        if numbers != list(range(1, len(steps) + 1)):
            raise ValueError(f"Steps must be numbered 1..{len(steps)} in order, got {numbers}")
        return steps


class StepDecision(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    step_number: int = Field(..., ge=1)
    decision: str
    reasoning: str = ""


class StepEvaluation(CamelModel):
    """Structured verdict on a learner's decision."""

    score: float = 0.0
    is_appropriate: bool = False
    feedback: str = ""
    strengths: List[str] = Field(default_factory=list)
    gaps: List[str] = Field(default_factory=list)
    can_proceed: bool = False

    @field_validator("score")
    @classmethod
    def _clamp_score(cls, value: float) -> float:
        return min(1.0, max(0.0, value))


class PerformanceRecord(CamelModel):
    score: float = Field(..., ge=0.0, le=1.0)
    difficulty: int = Field(default=1, ge=1, le=5)
    date: Optional[datetime] = None


# Request / response bodies


class ChatRequest(CamelModel):
    user_id: Optional[str] = None
    messages: List[ConversationMessage] = Field(default_factory=list)
    mode: ChatMode = "questions"

    @field_validator("mode", mode="before")
    @classmethod
    def _default_mode(cls, value):
        # Clients may send null for the default mode
        return "questions" if value is None else value


class ChatReply(CamelModel):
    reply: ConversationMessage


class UploadResponse(CamelModel):
    message: str
    chunk_count: int


class CaseResponse(BaseModel):
    case: str


class AdaptiveCaseRequest(CamelModel):
    user_id: Optional[str] = None
    difficulty_level: Optional[int] = Field(default=None, ge=1, le=5)
    performance_history: List[PerformanceRecord] = Field(default_factory=list)


class AdaptiveCaseResponse(CamelModel):
    case: AdaptiveCase
    difficulty_level: int


class EvaluateDecisionRequest(CamelModel):
    user_id: Optional[str] = None
    step_number: int = Field(..., ge=1)
    decision: str
    reasoning: str = ""
    case_data: AdaptiveCase
