"""Step-by-step progression through an adaptive case.

A case moves through explicit states::

    Pending(0) -> Evaluating(0) -> Answered(0) -> Pending(1) -> ... -> Complete

Leaving ``Answered(i)`` goes to the next step only when the evaluation
allowed it (``can_proceed``); otherwise the learner stays on step ``i`` and
may resubmit. The newest answer to a step replaces earlier ones.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple, Union

from medtutor.errors import CaseProgressionError
from medtutor.models.tutor import AdaptiveCase, PerformanceRecord, Step, StepDecision, StepEvaluation


@dataclass(frozen=True)
class Pending:
    index: int


@dataclass(frozen=True)
class Evaluating:
    index: int
    decision: StepDecision


@dataclass(frozen=True)
class Answered:
    index: int
    can_proceed: bool


@dataclass(frozen=True)
class Complete:
    pass


CaseState = Union[Pending, Evaluating, Answered, Complete]

EvaluateFn = Callable[[Step, StepDecision], StepEvaluation]


def leave_answered(state: Answered, step_count: int) -> CaseState:
    """Transition out of ``Answered``, gated by ``can_proceed``."""
    if not state.can_proceed:
        return Pending(state.index)
    if state.index + 1 >= step_count:
        return Complete()
    return Pending(state.index + 1)


class CaseSession:
    """Tracks one learner's progress through an :class:`AdaptiveCase`.

    Example:
        >>> session = CaseSession(case)
        >>> session.submit(StepDecision(step_number=1, decision="..."), evaluator_fn)
        >>> session.current_step
        1
    """

    def __init__(self, case: AdaptiveCase):
        if not case.steps:
            raise CaseProgressionError("Case has no steps")
        self.case = case
        self.state: CaseState = Pending(0)
        self._answers: Dict[int, Tuple[StepDecision, StepEvaluation]] = {}

    @property
    def step_count(self) -> int:
        return len(self.case.steps)

    @property
    def is_complete(self) -> bool:
        return isinstance(self.state, Complete)

    @property
    def current_step(self) -> int:
        """0-indexed step the learner is on; ``step_count`` once complete."""
        if isinstance(self.state, Complete):
            return self.step_count
        return self.state.index

    def current(self) -> Optional[Step]:
        if self.is_complete:
            return None
        return self.case.steps[self.current_step]

    def begin(self, decision: StepDecision) -> Step:
        """Pending(i) -> Evaluating(i). Returns the step being answered."""
        if not isinstance(self.state, Pending):
            raise CaseProgressionError(f"Cannot submit a decision while {type(self.state).__name__.lower()}")
        index = self.state.index
        if decision.step_number != index + 1:
            raise CaseProgressionError(
                f"Expected a decision for step {index + 1}, got step {decision.step_number}"
            )
        self.state = Evaluating(index, decision)
        return self.case.steps[index]

    def record(self, evaluation: StepEvaluation) -> CaseState:
        """Evaluating(i) -> Answered(i) -> next state."""
        if not isinstance(self.state, Evaluating):
            raise CaseProgressionError("No decision is awaiting evaluation")
        index = self.state.index
        self._answers[index] = (self.state.decision, evaluation)
        self.state = leave_answered(Answered(index, evaluation.can_proceed), self.step_count)
        return self.state

    def cancel(self) -> None:
        """Evaluating(i) -> Pending(i), e.g. after the evaluator failed."""
        if isinstance(self.state, Evaluating):
            self.state = Pending(self.state.index)

    def submit(self, decision: StepDecision, evaluate: EvaluateFn) -> StepEvaluation:
        """Submit a decision, evaluate it and advance."""
        step = self.begin(decision)
        try:
            evaluation = evaluate(step, decision)
        except Exception:
            self.cancel()
            raise
        self.record(evaluation)
        return evaluation

    @property
    def evaluations(self) -> List[StepEvaluation]:
        return [self._answers[i][1] for i in sorted(self._answers)]

    @property
    def aggregate_score(self) -> Optional[float]:
        """Mean per-step score, available once the case is complete."""
        if not self.is_complete:
            return None
        scores = [e.score for e in self.evaluations]
        return sum(scores) / len(scores)

    def summary(self) -> dict:
        """End-of-case summary for display."""
        if not self.is_complete:
            raise CaseProgressionError("Case is not complete")
        return {
            "aggregateScore": self.aggregate_score,
            "correctApproach": self.case.correct_approach,
            "keyLearningPoints": list(self.case.key_learning_points),
            "steps": [
                {
                    "stepNumber": decision.step_number,
                    "decision": decision.decision,
                    "score": evaluation.score,
                    "feedback": evaluation.feedback,
                }
                for decision, evaluation in (self._answers[i] for i in sorted(self._answers))
            ],
        }

    def to_performance_record(self, date: Optional[datetime] = None) -> PerformanceRecord:
        if not self.is_complete:
            raise CaseProgressionError("Case is not complete")
        return PerformanceRecord(
            score=self.aggregate_score,
            difficulty=self.case.difficulty_level,
            date=date or datetime.now(),
        )
