"""Scoring of learner decisions against retrieved guideline context."""

from __future__ import annotations

import logging
from typing import Sequence

from pydantic import ValidationError as PydanticValidationError

from medtutor.errors import UpstreamError
from medtutor.llm.client import LLMClient
from medtutor.models.tutor import Step, StepEvaluation
from medtutor.prompts.system import EVALUATOR_SYSTEM_PROMPT, build_evaluation_prompt

logger = logging.getLogger(__name__)


class DecisionEvaluator:
    """Grades one step decision with a JSON-mode completion."""

    def __init__(self, llm: LLMClient, temperature: float = 0.3):
        self.llm = llm
        self.temperature = temperature

    def evaluate(
        self,
        step: Step,
        decision: str,
        reasoning: str,
        context_chunks: Sequence[str],
    ) -> StepEvaluation:
        """Evaluate a decision for ``step``.

        Raises:
            UpstreamError: If the call fails or the reply has the wrong shape.
        """
        prompt = build_evaluation_prompt(step, decision, reasoning, context_chunks)
        data = self.llm.generate_json(prompt, system_prompt=EVALUATOR_SYSTEM_PROMPT, temperature=self.temperature)

        try:
            evaluation = StepEvaluation.model_validate(data)
        except PydanticValidationError as e:
            logger.error("Evaluation reply did not match schema: %s", e)
            raise UpstreamError("Failed to evaluate decision") from e

        logger.info(
            "Evaluated step %d: score=%.2f can_proceed=%s",
            step.step_number,
            evaluation.score,
            evaluation.can_proceed,
        )
        return evaluation
