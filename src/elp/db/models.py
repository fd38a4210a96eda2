"""ORM models for the learning platform.

The same metadata runs on PostgreSQL (production) and SQLite (tests, local
development); portable column variants live in ``elp.db.base``.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from elp.db.base import Base, BigIntId, JSONDict


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users & auth
# ---------------------------------------------------------------------------


class User(Base):
    """An account holder."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    email_confirmed: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    login_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")


class RefreshToken(Base):
    """Refresh token hashes for rotation and revocation."""

    __tablename__ = "refresh_tokens"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_revoked: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    replaced_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)


class EmailConfirmationToken(Base):
    __tablename__ = "email_confirmation_tokens"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token_hash: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    color: Mapped[str | None] = mapped_column(String(32), nullable=True)


class DifficultyLevel(Base):
    __tablename__ = "difficulty_levels"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0")


class ContentItem(Base):
    """A vocabulary entry."""

    __tablename__ = "content_items"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    word: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    definition: Mapped[str] = mapped_column(Text, nullable=False)
    phonetic: Mapped[str | None] = mapped_column(String(128), nullable=True)
    part_of_speech: Mapped[str | None] = mapped_column(String(32), nullable=True)
    audio_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("categories.id"), nullable=False, index=True)
    difficulty_id: Mapped[int | None] = mapped_column(BigIntId, ForeignKey("difficulty_levels.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    examples: Mapped[list[Example]] = relationship(
        "Example", lazy="selectin", order_by="Example.id", cascade="all, delete-orphan",
    )
    related_words: Mapped[list[RelatedWord]] = relationship(
        "RelatedWord", lazy="selectin", order_by="RelatedWord.id", cascade="all, delete-orphan",
    )


class Example(Base):
    __tablename__ = "examples"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    content_item_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    translation: Mapped[str | None] = mapped_column(Text, nullable=True)


class RelatedWord(Base):
    __tablename__ = "related_words"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    content_item_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    word: Mapped[str] = mapped_column(String(128), nullable=False)
    part_of_speech: Mapped[str | None] = mapped_column(String(32), nullable=True)


class Bookmark(Base):
    __tablename__ = "bookmarks"
    __table_args__ = (
        UniqueConstraint("user_id", "content_item_id", name="bookmarks_user_id_content_item_id_key"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content_item_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class WordList(Base):
    """A curated list of vocabulary items."""

    __tablename__ = "word_lists"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    difficulty_id: Mapped[int | None] = mapped_column(BigIntId, ForeignKey("difficulty_levels.id"), nullable=True)


class WordListItem(Base):
    __tablename__ = "word_list_items"
    __table_args__ = (
        UniqueConstraint("word_list_id", "content_item_id", name="word_list_items_list_id_item_id_key"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    word_list_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("word_lists.id", ondelete="CASCADE"), nullable=False,
    )
    content_item_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False,
    )


# ---------------------------------------------------------------------------
# Progress & gamification
# ---------------------------------------------------------------------------


class UserProgress(Base):
    """Mastery of one content item by one user."""

    __tablename__ = "user_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "content_item_id", name="user_progress_user_id_content_item_id_key"),
        CheckConstraint("mastery_level BETWEEN 0 AND 3", name="user_progress_mastery_range"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content_item_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False,
    )
    mastery_level: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    last_practiced: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class UserPoints(Base):
    """Denormalized points wallet, one row per user."""

    __tablename__ = "user_points"
    __table_args__ = (
        CheckConstraint("total_points >= 0", name="user_points_total_non_negative"),
        CheckConstraint("level >= 1", name="user_points_level_positive"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False,
    )
    total_points: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    level: Mapped[int] = mapped_column(Integer, default=1, server_default="1")
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class PointsLedger(Base):
    """Append-only record of every points award."""

    __tablename__ = "points_ledger"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(256), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class UserStreak(Base):
    __tablename__ = "user_streaks"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False,
    )
    current_streak: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    last_activity_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Achievement(Base):
    """Catalog entry for an unlockable badge."""

    __tablename__ = "achievements"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    icon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    trigger_type: Mapped[str] = mapped_column(String(32), nullable=False)
    threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0")


class UserAchievement(Base):
    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="user_achievements_user_id_achievement_id_key"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    achievement_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("achievements.id", ondelete="CASCADE"), nullable=False,
    )
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


# ---------------------------------------------------------------------------
# Exercises
# ---------------------------------------------------------------------------


class Exercise(Base):
    __tablename__ = "exercises"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    exercise_type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    content_item_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("content_items.id", ondelete="SET NULL"), nullable=True,
    )
    difficulty_id: Mapped[int | None] = mapped_column(BigIntId, ForeignKey("difficulty_levels.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    questions: Mapped[list[ExerciseQuestion]] = relationship(
        "ExerciseQuestion",
        lazy="selectin",
        order_by=lambda: [ExerciseQuestion.sort_order, ExerciseQuestion.id],
        cascade="all, delete-orphan",
    )


class ExerciseQuestion(Base):
    """One gradable question of an exercise. For matching, the prompt is the term."""

    __tablename__ = "exercise_questions"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    exercise_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("exercises.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    audio_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    points: Mapped[int] = mapped_column(Integer, default=1, server_default="1")
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    options: Mapped[list[ExerciseOption]] = relationship(
        "ExerciseOption", lazy="selectin", order_by="ExerciseOption.id", cascade="all, delete-orphan",
    )


class ExerciseOption(Base):
    __tablename__ = "exercise_options"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("exercise_questions.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())


class UserExerciseResult(Base):
    __tablename__ = "user_exercise_results"
    __table_args__ = (
        CheckConstraint("score <= total_questions", name="user_exercise_results_score_le_total"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    exercise_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("exercises.id", ondelete="CASCADE"), nullable=False,
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    answers: Mapped[dict[str, Any]] = mapped_column(JSONDict, default=dict)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


# ---------------------------------------------------------------------------
# Exams
# ---------------------------------------------------------------------------


class Exam(Base):
    __tablename__ = "exams"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    time_limit: Mapped[int] = mapped_column(Integer, nullable=False)  # minutes
    difficulty_id: Mapped[int | None] = mapped_column(BigIntId, ForeignKey("difficulty_levels.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    questions: Mapped[list[ExamQuestion]] = relationship(
        "ExamQuestion",
        lazy="selectin",
        order_by=lambda: [ExamQuestion.sort_order, ExamQuestion.id],
        cascade="all, delete-orphan",
    )


class ExamQuestion(Base):
    __tablename__ = "exam_questions"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    exam_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[str] = mapped_column(String(32), nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=1, server_default="1")
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    options: Mapped[list[ExamQuestionOption]] = relationship(
        "ExamQuestionOption", lazy="selectin", order_by="ExamQuestionOption.id", cascade="all, delete-orphan",
    )


class ExamQuestionOption(Base):
    __tablename__ = "exam_question_options"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("exam_questions.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    option_text: Mapped[str] = mapped_column(Text, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())


class UserExamResult(Base):
    __tablename__ = "user_exam_results"
    __table_args__ = (
        CheckConstraint("score <= total_points", name="user_exam_results_score_le_total"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    exam_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False)
    time_taken: Mapped[int] = mapped_column(Integer, nullable=False)  # seconds
    auto_submitted: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    answers: Mapped[dict[str, Any]] = mapped_column(JSONDict, default=dict)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


# ---------------------------------------------------------------------------
# Listening
# ---------------------------------------------------------------------------


class Story(Base):
    __tablename__ = "stories"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    audio_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    difficulty_id: Mapped[int | None] = mapped_column(BigIntId, ForeignKey("difficulty_levels.id"), nullable=True)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)  # seconds


class Dialogue(Base):
    __tablename__ = "dialogues"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    audio_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    difficulty_id: Mapped[int | None] = mapped_column(BigIntId, ForeignKey("difficulty_levels.id"), nullable=True)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)  # seconds


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class Notification(Base):
    """Persisted toast / user notification."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    action_url: Mapped[str | None] = mapped_column(String(256), nullable=True)
    read: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
