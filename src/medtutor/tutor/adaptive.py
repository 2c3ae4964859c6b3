"""Adaptive difficulty for generated cases.

A rolling window of recent scores moves the level up or down by one step.
Identical history always gives the same level.
"""

from __future__ import annotations

from typing import Dict, Sequence

from medtutor.models.tutor import PerformanceRecord

MIN_LEVEL = 1
MAX_LEVEL = 5
HISTORY_WINDOW = 5
PROMOTE_ABOVE = 0.8
DEMOTE_BELOW = 0.5

# Number of case steps required at each difficulty level
STEPS_PER_LEVEL: Dict[int, int] = {1: 3, 2: 3, 3: 4, 4: 5, 5: 6}


def clamp_level(level: int) -> int:
    return max(MIN_LEVEL, min(MAX_LEVEL, int(level)))


def next_difficulty(current: int, history: Sequence[PerformanceRecord]) -> int:
    """Difficulty for the next case.

    Args:
        current: Current level (clamped into 1..5).
        history: Performance records, oldest first.

    Returns:
        One level up if the mean of the last five scores is above 0.8, one
        level down if below 0.5, otherwise unchanged.
    """
    level = clamp_level(current)
    recent = list(history)[-HISTORY_WINDOW:]
    if not recent:
        return level

    mean = sum(r.score for r in recent) / len(recent)
    if mean > PROMOTE_ABOVE:
        return clamp_level(level + 1)
    if mean < DEMOTE_BELOW:
        return clamp_level(level - 1)
    return level


def steps_for_level(level: int) -> int:
    return STEPS_PER_LEVEL[clamp_level(level)]
