"""Progress, exercise and gamification endpoint tests."""

import pytest
from httpx import AsyncClient

from tests.factories import auth_headers, correct_option_id, make_content, make_exercise, wrong_option_id

MC_QUESTIONS = [
    ("Which one do you sleep in?", [("bed", True), ("sink", False)]),
    ("Which one do you sit on?", [("chair", True), ("lamp", False)]),
    ("Which one keeps food cold?", [("fridge", True), ("oven", False)]),
]


class TestProgressApi:
    @pytest.mark.asyncio
    async def test_mark_learned_and_list(self, client: AsyncClient, db_session, user):
        item = await make_content(db_session, word="bed")
        headers = auth_headers(user)

        response = await client.post(f"/api/v1/progress/{item.id}/learned", headers=headers)
        assert response.status_code == 200
        assert response.json() == {
            "content_item_id": item.id,
            "mastery_level": 1,
            "previous_level": 0,
            "points_awarded": 5,
            "achievements": [],
        }

        progress = (await client.get("/api/v1/progress", headers=headers)).json()
        assert progress["total"] == 1
        assert progress["progress"][0]["item"]["word"] == "bed"

        stats = (await client.get("/api/v1/progress/statistics", headers=headers)).json()
        assert stats["total_words"] == 1

    @pytest.mark.asyncio
    async def test_mark_unknown_item(self, client: AsyncClient, user):
        response = await client.post("/api/v1/progress/9999/learned", headers=auth_headers(user))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_recommended(self, client: AsyncClient, db_session, user):
        await make_content(db_session, word="apple")
        data = (await client.get("/api/v1/progress/recommended", headers=auth_headers(user))).json()
        assert [r["title"] for r in data] == ["apple"]
        assert data[0]["type"] == "reading"


class TestExercisesApi:
    @pytest.mark.asyncio
    async def test_types(self, client: AsyncClient):
        data = (await client.get("/api/v1/exercises/types")).json()
        assert {"slug": "matching", "name": "Matching"} in data

    @pytest.mark.asyncio
    async def test_list_filter(self, client: AsyncClient, db_session):
        await make_exercise(db_session, "multiple-choice", MC_QUESTIONS)
        data = (await client.get("/api/v1/exercises", params={"type": "multiple-choice"})).json()
        assert len(data) == 1
        assert data[0]["question_count"] == 3

        bad = await client.get("/api/v1/exercises", params={"type": "crossword"})
        assert bad.status_code == 400

    @pytest.mark.asyncio
    async def test_detail_hides_answers(self, client: AsyncClient, db_session):
        exercise = await make_exercise(db_session, "multiple-choice", MC_QUESTIONS)
        data = (await client.get(f"/api/v1/exercises/{exercise.id}")).json()
        assert "is_correct" not in str(data)
        assert len(data["questions"]) == 3

    @pytest.mark.asyncio
    async def test_fill_blank_detail_omits_answer_text(self, client: AsyncClient, db_session):
        exercise = await make_exercise(db_session, "fill-in-blank", [("I sleep in a ___", [("bed", True)])])
        data = (await client.get(f"/api/v1/exercises/{exercise.id}")).json()
        question = data["questions"][0]
        assert question["prompt"] == "I sleep in a ___"
        assert question["options"] == []
        assert "bed" not in str(data)

    @pytest.mark.asyncio
    async def test_submit(self, client: AsyncClient, db_session, user):
        exercise = await make_exercise(db_session, "multiple-choice", MC_QUESTIONS)
        q1, q2, q3 = exercise.questions
        answers = {str(q1.id): correct_option_id(q1), str(q2.id): correct_option_id(q2), str(q3.id): wrong_option_id(q3)}
        headers = auth_headers(user)

        response = await client.post(f"/api/v1/exercises/{exercise.id}/submit", json={"answers": answers}, headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert (data["score"], data["total"], data["points_awarded"]) == (2, 3, 20)
        assert data["percentage"] == 66.7
        assert data["is_perfect"] is False

        results = (await client.get("/api/v1/exercises/results", headers=headers)).json()
        assert [(r["score"], r["total_questions"]) for r in results] == [(2, 3)]

        points = (await client.get("/api/v1/gamification/points", headers=headers)).json()
        assert points["total_points"] == 20

    @pytest.mark.asyncio
    async def test_submit_unknown_question(self, client: AsyncClient, db_session, user):
        exercise = await make_exercise(db_session, "multiple-choice", MC_QUESTIONS)
        response = await client.post(
            f"/api/v1/exercises/{exercise.id}/submit", json={"answers": {"999999": 1}}, headers=auth_headers(user),
        )
        assert response.status_code == 400


class TestGamificationApi:
    @pytest.mark.asyncio
    async def test_points_for_new_user(self, client: AsyncClient, user):
        data = (await client.get("/api/v1/gamification/points", headers=auth_headers(user))).json()
        assert data == {
            "total_points": 0,
            "level": 1,
            "points_into_level": 0,
            "points_for_level": 100,
            "next_level": 2,
            "next_level_at": 100,
        }

    @pytest.mark.asyncio
    async def test_dashboard_visit_starts_streak(self, client: AsyncClient, user):
        headers = auth_headers(user)
        assert (await client.get("/api/v1/gamification/streak", headers=headers)).json()["current_streak"] == 0

        visit = (await client.post("/api/v1/dashboard/visit", headers=headers)).json()
        assert visit["current_streak"] == 1
        assert visit["active_today"] is True

        again = (await client.post("/api/v1/dashboard/visit", headers=headers)).json()
        assert again["current_streak"] == 1

        streak = (await client.get("/api/v1/gamification/streak", headers=headers)).json()
        assert streak["longest_streak"] == 1
        assert streak["active_today"] is True

    @pytest.mark.asyncio
    async def test_achievement_catalog(self, client: AsyncClient):
        data = (await client.get("/api/v1/achievements")).json()
        assert len(data["achievements"]) == 6
        assert data["achievements"][0]["name"] == "First Login"

    @pytest.mark.asyncio
    async def test_points_history(self, client: AsyncClient, db_session, user):
        item = await make_content(db_session)
        headers = auth_headers(user)
        await client.post(f"/api/v1/progress/{item.id}/learned", headers=headers)

        data = (await client.get("/api/v1/gamification/points/history", headers=headers)).json()
        assert data["total"] == 1
        assert data["entries"][0]["source"] == "progress"
        assert data["entries"][0]["amount"] == 5


class TestNotificationsApi:
    @pytest.mark.asyncio
    async def test_toast_persisted_and_marked_read(self, client: AsyncClient, db_session, user):
        item = await make_content(db_session)
        headers = auth_headers(user)
        await client.post(f"/api/v1/progress/{item.id}/learned", headers=headers)

        listing = (await client.get("/api/v1/notifications", headers=headers)).json()
        assert listing["total"] == 1
        toast = listing["notifications"][0]
        assert (toast["kind"], toast["message"]) == ("success", "Word marked as learned! +5 XP")
        assert (await client.get("/api/v1/notifications/unread-count", headers=headers)).json() == {"unread_count": 1}

        response = await client.post(f"/api/v1/notifications/{toast['id']}/read", headers=headers)
        assert response.status_code == 200
        assert response.json()["read"] is True
        assert (await client.get("/api/v1/notifications/unread-count", headers=headers)).json() == {"unread_count": 0}

        unread = (await client.get("/api/v1/notifications", params={"unread_only": True}, headers=headers)).json()
        assert unread["total"] == 0
        assert unread["notifications"] == []

    @pytest.mark.asyncio
    async def test_read_all_and_missing(self, client: AsyncClient, db_session, user):
        headers = auth_headers(user)
        for word in ("bed", "lamp"):
            item = await make_content(db_session, word=word)
            await client.post(f"/api/v1/progress/{item.id}/learned", headers=headers)

        response = await client.post("/api/v1/notifications/read-all", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"marked": 2}
        assert (await client.post("/api/v1/notifications/12345/read", headers=headers)).status_code == 404


class TestUsersApi:
    @pytest.mark.asyncio
    async def test_profile_update(self, client: AsyncClient, user):
        headers = auth_headers(user)
        response = await client.patch("/api/v1/users/me", json={"full_name": "Renamed"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["full_name"] == "Renamed"
        assert (await client.get("/api/v1/users/me", headers=headers)).json()["full_name"] == "Renamed"
