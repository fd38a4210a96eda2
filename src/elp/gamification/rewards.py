"""Points awarded per learning action."""

from __future__ import annotations

SIGNUP_POINTS = 10
LEARNED_WORD_POINTS = 5
POINTS_PER_CORRECT_ANSWER = 10


def exercise_points(score: int) -> int:
    return score * POINTS_PER_CORRECT_ANSWER


def exam_points(score: int, total: int) -> int:
    """Exam percentage rounded half-up to the nearest ten, as points (0..100).

    Integer arithmetic: round_half_up(10 * score / total) == (20 * score + total) // (2 * total).
    """
    if total <= 0:
        return 0
    return (20 * score + total) // (2 * total) * 10
