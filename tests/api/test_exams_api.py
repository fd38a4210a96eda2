"""Timed exam flow over HTTP."""

import asyncio

import pytest
from httpx import AsyncClient

from tests.factories import auth_headers, correct_option_id, make_exam

QUESTIONS = [
    ("Pick the past tense of go", "multiple-choice", 2, [("went", True), ("goed", False)]),
    ("Yesterday I ___ (eat) an apple", "fill-in-blank", 3, [("ate", True)]),
]


class TestExamFlow:
    @pytest.mark.asyncio
    async def test_list_and_detail(self, client: AsyncClient, db_session):
        exam = await make_exam(db_session, QUESTIONS, time_limit=15)
        listing = (await client.get("/api/v1/exams")).json()
        assert [(e["id"], e["time_limit"], e["question_count"]) for e in listing] == [(exam.id, 15, 2)]

        detail = (await client.get(f"/api/v1/exams/{exam.id}")).json()
        assert detail["total_points"] == 5
        assert "is_correct" not in str(detail)

    @pytest.mark.asyncio
    async def test_start_answer_submit(self, client: AsyncClient, db_session, user, app):
        app.state.exam_sessions.tick_interval = 60
        exam = await make_exam(db_session, QUESTIONS, time_limit=10)
        q1, q2 = exam.questions
        headers = auth_headers(user)

        started = await client.post(f"/api/v1/exams/{exam.id}/start", headers=headers)
        assert started.status_code == 201
        assert started.json()["remaining_seconds"] == 600

        recorded = await client.put(
            f"/api/v1/exams/{exam.id}/answers",
            json={"answers": {str(q1.id): correct_option_id(q1), str(q2.id): "ate"}},
            headers=headers,
        )
        assert recorded.status_code == 200
        assert set(recorded.json()["answers"]) == {str(q1.id), str(q2.id)}

        submitted = await client.post(f"/api/v1/exams/{exam.id}/submit", headers=headers)
        assert submitted.status_code == 200
        data = submitted.json()
        assert (data["score"], data["total"], data["points_awarded"]) == (5, 5, 100)
        assert data["auto_submitted"] is False
        assert data["achievements"] == ["perfect_score"]

        again = await client.post(f"/api/v1/exams/{exam.id}/submit", headers=headers)
        assert again.status_code == 409

        results = (await client.get("/api/v1/exams/results", headers=headers)).json()
        assert [(r["score"], r["total_points"]) for r in results] == [(5, 5)]

    @pytest.mark.asyncio
    async def test_answers_without_attempt(self, client: AsyncClient, db_session, user):
        exam = await make_exam(db_session, QUESTIONS)
        response = await client.put(
            f"/api/v1/exams/{exam.id}/answers", json={"answers": {}}, headers=auth_headers(user),
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_question_in_answers(self, client: AsyncClient, db_session, user, app):
        app.state.exam_sessions.tick_interval = 60
        exam = await make_exam(db_session, QUESTIONS)
        headers = auth_headers(user)
        await client.post(f"/api/v1/exams/{exam.id}/start", headers=headers)
        response = await client.put(
            f"/api/v1/exams/{exam.id}/answers", json={"answers": {"999999": "x"}}, headers=headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_abandon(self, client: AsyncClient, db_session, user, app):
        app.state.exam_sessions.tick_interval = 60
        exam = await make_exam(db_session, QUESTIONS)
        headers = auth_headers(user)
        await client.post(f"/api/v1/exams/{exam.id}/start", headers=headers)

        assert (await client.delete(f"/api/v1/exams/{exam.id}/attempt", headers=headers)).status_code == 204
        assert (await client.get(f"/api/v1/exams/{exam.id}/attempt", headers=headers)).status_code == 404
        assert (await client.post(f"/api/v1/exams/{exam.id}/submit", headers=headers)).status_code == 409

    @pytest.mark.asyncio
    async def test_timeout_auto_submits(self, client: AsyncClient, db_session, user, app):
        exam = await make_exam(db_session, QUESTIONS, time_limit=1)
        headers = auth_headers(user)

        await client.post(f"/api/v1/exams/{exam.id}/start", headers=headers)
        attempt = app.state.exam_sessions.get(user.id, exam.id)
        await asyncio.wait_for(attempt.countdown.wait(), timeout=5)

        results = (await client.get("/api/v1/exams/results", headers=headers)).json()
        assert len(results) == 1
        assert results[0]["auto_submitted"] is True
        assert results[0]["score"] == 0
        assert results[0]["total_points"] == 5
        assert results[0]["time_taken"] == 60

    @pytest.mark.asyncio
    async def test_missing_exam(self, client: AsyncClient, user):
        response = await client.post("/api/v1/exams/9999/start", headers=auth_headers(user))
        assert response.status_code == 404
