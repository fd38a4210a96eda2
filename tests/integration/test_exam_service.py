"""Exam scoring, persistence and timed auto-submission."""

import pytest
from sqlalchemy import select

from elp.database import session_scope
from elp.db.models import Notification, UserExamResult
from elp.errors import InvalidSubmissionError
from elp.exams.service import persist_expired_attempt, present_exam, submit_exam
from elp.exams.sessions import ExamSessionManager
from elp.gamification.points_service import get_or_create_points
from tests.factories import correct_option_id, make_exam, wrong_option_id

QUESTIONS = [
    ("Pick the past tense of go", "multiple-choice", 2, [("went", True), ("goed", False)]),
    ("Yesterday I ___ (eat) an apple", "fill-in-blank", 3, [("ate", True)]),
    ("Pick the plural of mouse", "multiple-choice", 5, [("mice", True), ("mouses", False)]),
]


class TestSubmitExam:
    @pytest.mark.asyncio
    async def test_points_weighted_score(self, db_session, user):
        exam = await make_exam(db_session, QUESTIONS)
        q1, q2, q3 = exam.questions
        answers = {str(q1.id): correct_option_id(q1), str(q2.id): " ATE", str(q3.id): wrong_option_id(q3)}

        result = await submit_exam(db_session, None, user.id, exam.id, answers, time_taken=42)

        assert (result.score, result.total) == (5, 10)
        assert result.percentage == 50.0
        assert result.points_awarded == 50
        assert result.time_taken == 42
        assert not result.auto_submitted
        assert (await get_or_create_points(db_session, user.id)).total_points == 50

    @pytest.mark.asyncio
    async def test_perfect_exam(self, db_session, user):
        exam = await make_exam(db_session, QUESTIONS)
        q1, q2, q3 = exam.questions
        answers = {str(q1.id): correct_option_id(q1), str(q2.id): "ate", str(q3.id): correct_option_id(q3)}

        result = await submit_exam(db_session, None, user.id, exam.id, answers, time_taken=10)

        assert result.points_awarded == 100
        assert result.achievements == ["perfect_score"]

    @pytest.mark.asyncio
    async def test_time_taken_clamped_to_limit(self, db_session, user):
        exam = await make_exam(db_session, QUESTIONS, time_limit=1)
        result = await submit_exam(db_session, None, user.id, exam.id, {}, time_taken=500)
        assert result.time_taken == 60

    @pytest.mark.asyncio
    async def test_unknown_question_rejected(self, db_session, user):
        exam = await make_exam(db_session, QUESTIONS)
        with pytest.raises(InvalidSubmissionError):
            await submit_exam(db_session, None, user.id, exam.id, {"123456": "x"}, time_taken=1)


class TestAutoSubmit:
    @pytest.mark.asyncio
    async def test_timeout_persists_zero_score(self, db_session, user):
        exam = await make_exam(db_session, QUESTIONS, time_limit=1)
        sessions = ExamSessionManager(persist_expired_attempt, tick_interval=0)

        attempt = sessions.start(user.id, exam.id, exam.time_limit)
        await attempt.countdown.wait()

        async with session_scope() as db:
            row = (await db.execute(select(UserExamResult))).scalar_one()
            assert row.auto_submitted
            assert row.score == 0
            assert row.total_points == 10
            assert row.time_taken == 60

            toast = (await db.execute(
                select(Notification).where(Notification.category == "exam")
            )).scalar_one()
            assert toast.message.startswith("Time's up!")

    @pytest.mark.asyncio
    async def test_timeout_keeps_recorded_answers(self, db_session, user):
        exam = await make_exam(db_session, QUESTIONS, time_limit=1)
        q1 = exam.questions[0]
        sessions = ExamSessionManager(persist_expired_attempt, tick_interval=0)

        attempt = sessions.start(user.id, exam.id, exam.time_limit)
        sessions.record_answer(user.id, exam.id, q1.id, correct_option_id(q1))
        await attempt.countdown.wait()

        async with session_scope() as db:
            row = (await db.execute(select(UserExamResult))).scalar_one()
            assert row.score == 2
            assert row.answers == {str(q1.id): correct_option_id(q1)}


class TestPresentExam:
    @pytest.mark.asyncio
    async def test_fill_in_blank_has_no_options(self, db_session):
        exam = await make_exam(db_session, QUESTIONS)
        view = present_exam(exam)
        assert view["total_points"] == 10
        assert [len(q["options"]) for q in view["questions"]] == [2, 0, 2]
        for question in view["questions"]:
            for option in question["options"]:
                assert set(option) == {"id", "text"}
