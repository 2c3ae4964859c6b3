"""
Tests for decision evaluation
"""
from unittest.mock import Mock

import pytest

from medtutor.errors import UpstreamError
from medtutor.llm.client import LLMClient
from medtutor.models.tutor import Step
from medtutor.prompts.system import EVALUATOR_SYSTEM_PROMPT
from medtutor.tutor.evaluator import DecisionEvaluator


class TestDecisionEvaluator:
    """Test DecisionEvaluator parsing"""

    def setup_method(self):
        self.llm = Mock(spec=LLMClient)
        self.evaluator = DecisionEvaluator(self.llm, temperature=0.3)
        self.step = Step(
            step_number=1,
            title="Initial therapy",
            content="58-year-old, HbA1c 7.9%, eGFR 85",
            decision_prompt="What do you start?",
            expected_considerations=["renal function"],
        )

    def test_parses_structured_result(self):
        self.llm.generate_json.return_value = {
            "score": 0.85,
            "isAppropriate": True,
            "feedback": "Metformin is supported by the guideline.",
            "strengths": ["Checked eGFR"],
            "gaps": ["Did not mention lifestyle"],
            "canProceed": True,
        }

        evaluation = self.evaluator.evaluate(self.step, "Start metformin", "eGFR is normal", ["ctx"])

        assert evaluation.score == 0.85
        assert evaluation.is_appropriate is True
        assert evaluation.can_proceed is True
        assert evaluation.gaps == ["Did not mention lifestyle"]

        args, kwargs = self.llm.generate_json.call_args
        assert "Start metformin" in args[0]
        assert "ctx" in args[0]
        assert kwargs["system_prompt"] == EVALUATOR_SYSTEM_PROMPT
        assert kwargs["temperature"] == 0.3

    def test_score_is_clamped(self):
        self.llm.generate_json.return_value = {"score": 1.7, "canProceed": True}
        assert self.evaluator.evaluate(self.step, "x", "y", []).score == 1.0

        self.llm.generate_json.return_value = {"score": -0.2}
        assert self.evaluator.evaluate(self.step, "x", "y", []).score == 0.0

    def test_missing_fields_default_to_not_proceeding(self):
        self.llm.generate_json.return_value = {"score": 0.4}
        evaluation = self.evaluator.evaluate(self.step, "x", "y", [])
        assert evaluation.can_proceed is False
        assert evaluation.strengths == []

    def test_wrong_shape_is_upstream_error(self):
        self.llm.generate_json.return_value = {"score": "excellent", "strengths": "many"}
        with pytest.raises(UpstreamError):
            self.evaluator.evaluate(self.step, "x", "y", [])

    def test_call_failure_propagates(self):
        self.llm.generate_json.side_effect = UpstreamError()
        with pytest.raises(UpstreamError):
            self.evaluator.evaluate(self.step, "x", "y", [])
