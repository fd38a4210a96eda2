"""Exercise and exam scoring.

Pure functions: no database, no I/O. Every scorer returns a ``Score`` of
``(score, total)`` where unanswered questions count as incorrect.
"""

from __future__ import annotations

import random
from collections.abc import Hashable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

T = TypeVar("T")


class ExerciseType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    FILL_IN_BLANK = "fill-in-blank"
    MATCHING = "matching"
    AUDIO_SELECT = "audio-select"


EXERCISE_TYPE_LABELS = {
    ExerciseType.MULTIPLE_CHOICE: "Multiple Choice",
    ExerciseType.FILL_IN_BLANK: "Fill in the Blanks",
    ExerciseType.MATCHING: "Matching",
    ExerciseType.AUDIO_SELECT: "Listening",
}

# Exams only mix these two question formats.
EXAM_QUESTION_TYPES = frozenset({ExerciseType.MULTIPLE_CHOICE, ExerciseType.FILL_IN_BLANK})


@dataclass(frozen=True)
class Score:
    score: int
    total: int

    @property
    def percentage(self) -> float:
        if self.total == 0:
            return 0.0
        return self.score / self.total * 100

    @property
    def is_perfect(self) -> bool:
        return self.total > 0 and self.score == self.total


@dataclass(frozen=True)
class AnswerKey:
    """The correct answer for one question.

    ``correct_option_id`` is set for option-based questions (multiple choice,
    matching), ``canonical_answer`` for typed or transcript answers
    (fill in the blank, audio select).
    """

    question_id: int
    correct_option_id: int | None = None
    canonical_answer: str | None = None
    points: int = 1
    question_type: ExerciseType | None = None


def normalize_text(value: object) -> str:
    """Case-folded, whitespace-trimmed text for fill-in-the-blank comparison."""
    return str(value).strip().casefold()


def _lookup(answers: Mapping[Any, Any], question_id: int) -> Any:
    """Fetch an answer keyed by int id or by its string form (JSON object keys)."""
    if question_id in answers:
        return answers[question_id]
    return answers.get(str(question_id))


def _as_option_id(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def is_correct(key: AnswerKey, submitted: Any, question_type: ExerciseType) -> bool:
    """Grade one submitted answer against its key."""
    if submitted is None:
        return False
    if question_type in (ExerciseType.MULTIPLE_CHOICE, ExerciseType.MATCHING):
        return key.correct_option_id is not None and _as_option_id(submitted) == key.correct_option_id
    if question_type is ExerciseType.FILL_IN_BLANK:
        if key.canonical_answer is None or not isinstance(submitted, str):
            return False
        return normalize_text(submitted) == normalize_text(key.canonical_answer)
    if question_type is ExerciseType.AUDIO_SELECT:
        return key.canonical_answer is not None and submitted == key.canonical_answer
    msg = f"Unsupported question type: {question_type}"
    raise ValueError(msg)


def _count_correct(
    keys: Sequence[AnswerKey],
    answers: Mapping[Any, Any],
    question_type: ExerciseType,
) -> Score:
    correct = sum(1 for key in keys if is_correct(key, _lookup(answers, key.question_id), question_type))
    return Score(correct, len(keys))


def score_multiple_choice(keys: Sequence[AnswerKey], answers: Mapping[Any, Any]) -> Score:
    """Correct iff the submitted option id equals the flagged-correct option id."""
    return _count_correct(keys, answers, ExerciseType.MULTIPLE_CHOICE)


def score_fill_blank(keys: Sequence[AnswerKey], answers: Mapping[Any, Any]) -> Score:
    """Correct iff submitted text matches the canonical answer, ignoring case and edge whitespace."""
    return _count_correct(keys, answers, ExerciseType.FILL_IN_BLANK)


def score_audio_select(keys: Sequence[AnswerKey], answers: Mapping[Any, Any]) -> Score:
    """Correct iff the selected option text is exactly the canonical transcript."""
    return _count_correct(keys, answers, ExerciseType.AUDIO_SELECT)


def score_matching(pairs: Mapping[Hashable, Hashable], submitted: Mapping[Hashable, Hashable]) -> Score:
    """Per-pair credit for a term -> definition mapping.

    ``pairs`` is the canonical pairing. Each term whose submitted definition
    equals the canonical one scores a point; partial matchings earn partial
    credit.
    """
    correct = sum(1 for term, definition in pairs.items() if submitted.get(term) == definition)
    return Score(correct, len(pairs))


def score_questions(
    exercise_type: ExerciseType | str,
    keys: Sequence[AnswerKey],
    answers: Mapping[Any, Any],
) -> Score:
    """Score an exercise attempt. All questions of an exercise share its type."""
    exercise_type = ExerciseType(exercise_type)
    if exercise_type is ExerciseType.MATCHING:
        pairs = {key.question_id: key.correct_option_id for key in keys}
        submitted = {
            key.question_id: _as_option_id(_lookup(answers, key.question_id))
            for key in keys
        }
        return score_matching(pairs, submitted)
    return _count_correct(keys, answers, exercise_type)


def score_exam(keys: Sequence[AnswerKey], answers: Mapping[Any, Any]) -> Score:
    """Points-weighted exam score. Each key carries its own question type."""
    score = 0
    total = 0
    for key in keys:
        if key.question_type is None:
            msg = f"Exam question {key.question_id} has no question type"
            raise ValueError(msg)
        total += key.points
        if is_correct(key, _lookup(answers, key.question_id), key.question_type):
            score += key.points
    return Score(score, total)


def shuffled(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """Return a shuffled copy (Fisher-Yates via ``random.shuffle``)."""
    result = list(items)
    (rng or random).shuffle(result)
    return result
