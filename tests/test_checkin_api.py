"""End-to-end tests for the check-in endpoints."""
from __future__ import annotations

import asyncio
import json
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from mamafit.errors import RATE_LIMIT_NOTICE, DailyQuotaExceeded, RateLimited
from mamafit.models.database_models import CheckInRecord
from mamafit.services.fallback_scorer import FALLBACK_MESSAGE
from mamafit.services.normalizer import is_uuid
from tests.catalog_fixtures import (
    BREATHING_ID,
    DANCE_ID,
    PILATES_ID,
    YOGA_ID,
    StubCompletionClient,
)


def _body(**overrides):
    body = {
        "user_id": "mama@example.com",
        "energy_level": 1,
        "symptoms": ["back_pain"],
        "moods": ["anxious"],
    }
    body.update(overrides)
    return body


def _ids(payload: dict) -> list[str]:
    return [workout["id"] for workout in payload["recommendations"]]


class TestSubmitCheckIn:
    """Test POST /check-in."""

    def test_model_unavailable_uses_heuristic(self, test_client, db_session, override_dependencies):
        override_dependencies(db_session, None)

        response = test_client.post("/check-in", json=_body())

        assert response.status_code == 200
        payload = response.json()
        assert payload["success"] is True
        assert payload["used_fallback_recommendations"] is True
        assert _ids(payload) == [YOGA_ID, BREATHING_ID, PILATES_ID]

        top = payload["recommendations"][0]
        assert top["intensity_level"] == "low"
        assert "back_pain" in top["good_for_symptoms"]
        assert top["reasoning"]
        assert payload["message"] == FALLBACK_MESSAGE
        assert payload["gemini_insights"]["source"] == "fallback"
        assert payload["data_source"] == "database"
        assert payload["checkIn"]["id"] == payload["check_in_id"]

    def test_hallucinated_ids_are_backfilled(self, test_client, db_session, override_dependencies):
        reply = {
            "recommendations": [
                {"workout_id": YOGA_ID, "title": "Yoga", "reasoning": "Gentle on your back."},
                {"workout_id": str(uuid.uuid4()), "title": "Imaginary Stretch", "reasoning": "?"},
                {"workout_id": "workout-42", "title": "Made Up", "reasoning": "?"},
            ],
            "overall_message": "Take it slow today.",
        }
        stub = StubCompletionClient(json.dumps(reply))
        override_dependencies(db_session, stub)

        response = test_client.post("/check-in", json=_body())

        assert response.status_code == 200
        payload = response.json()
        assert stub.calls == 1
        assert payload["used_fallback_recommendations"] is False
        assert _ids(payload) == [YOGA_ID, BREATHING_ID, PILATES_ID]
        assert payload["recommendations"][0]["reasoning"] == "Gentle on your back."
        assert payload["ai_message"] == "Take it slow today."
        # the stored blob keeps the model's original picks
        assert payload["gemini_insights"] == reply

    def test_model_picks_returned_with_full_workouts(self, test_client, db_session, override_dependencies):
        reply = {
            "recommendations": [
                {"workout_id": DANCE_ID, "title": "Dance", "reasoning": "Fun."},
                {"workout_id": PILATES_ID, "title": "Pilates", "reasoning": "Core."},
                {"workout_id": YOGA_ID, "title": "Yoga", "reasoning": "Calm."},
            ],
            "overall_message": "Enjoy!",
        }
        override_dependencies(db_session, StubCompletionClient("```json\n" + json.dumps(reply) + "\n```"))

        payload = test_client.post("/check-in", json=_body(energy_level=5)).json()

        assert _ids(payload) == [DANCE_ID, PILATES_ID, YOGA_ID]
        assert payload["recommendations"][0]["title"] == "Dance Cardio Party"
        assert payload["recommendations"][0]["duration_minutes"] == 30

    def test_too_many_symptoms_rejected_before_model_call(self, test_client, db_session, override_dependencies):
        stub = StubCompletionClient("{}")
        override_dependencies(db_session, stub)

        response = test_client.post(
            "/check-in",
            json=_body(symptoms=["a", "b", "c", "d", "e", "f"]),
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Maximum 5 symptoms allowed"}
        assert stub.calls == 0

    def test_too_many_moods(self, test_client, db_session, override_dependencies):
        override_dependencies(db_session, None)
        response = test_client.post("/check-in", json=_body(moods=["a", "b", "c", "d"]))
        assert response.status_code == 400
        assert response.json()["error"] == "Maximum 3 moods allowed"

    def test_missing_fields(self, test_client, db_session, override_dependencies):
        override_dependencies(db_session, None)

        response = test_client.post("/check-in", json={"user_id": "mama@example.com", "energy_level": 3})

        assert response.status_code == 400
        assert response.json()["error"].startswith("Missing required fields")

    def test_energy_out_of_range(self, test_client, db_session, override_dependencies):
        override_dependencies(db_session, None)
        response = test_client.post("/check-in", json=_body(energy_level=6))
        assert response.status_code == 400
        assert response.json()["error"] == "energy_level must be between 1 and 5"

    def test_malformed_types(self, test_client, db_session, override_dependencies):
        override_dependencies(db_session, None)

        for body in (_body(energy_level="lots"), _body(symptoms="back_pain")):
            response = test_client.post("/check-in", json=body)
            assert response.status_code == 400
            assert response.json()["success"] is False

    def test_daily_quota_falls_back(self, test_client, db_session, override_dependencies):
        stub = StubCompletionClient(DailyQuotaExceeded("quota exceeded: requests per day"))
        override_dependencies(db_session, stub)

        payload = test_client.post("/check-in", json=_body()).json()

        assert stub.calls == 1
        assert payload["success"] is True
        assert payload["used_fallback_recommendations"] is True
        assert len(payload["recommendations"]) == 3

    def test_invalid_model_reply_falls_back(self, test_client, db_session, override_dependencies):
        override_dependencies(db_session, StubCompletionClient("Sure! Here are some workouts."))

        payload = test_client.post("/check-in", json=_body()).json()

        assert payload["used_fallback_recommendations"] is True
        assert payload["gemini_insights"]["fallback_reason"] == "Invalid response from AI"

    def test_catalog_failure_is_500(self, test_client, override_dependencies):
        session = MagicMock()
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("database is locked"))
        override_dependencies(session, None)

        response = test_client.post("/check-in", json=_body())

        assert response.status_code == 500
        assert response.json()["success"] is False
        assert response.json()["error"].startswith("Failed to load workouts")

    def test_without_datastore_uses_static_catalog(self, test_client, override_dependencies):
        override_dependencies(None, None)

        payload = test_client.post("/check-in", json=_body()).json()

        assert payload["success"] is True
        assert payload["data_source"] == "static_catalog"
        assert len(payload["recommendations"]) == 3
        assert is_uuid(payload["check_in_id"])

    def test_unexpected_client_errors_fall_back(self, test_client, db_session, override_dependencies):
        for error in (RuntimeError("client exploded"), asyncio.TimeoutError()):
            stub = StubCompletionClient(error)
            override_dependencies(db_session, stub)

            response = test_client.post("/check-in", json=_body())

            assert response.status_code == 200
            payload = response.json()
            assert stub.calls == 1
            assert payload["used_fallback_recommendations"] is True
            assert _ids(payload) == [YOGA_ID, BREATHING_ID, PILATES_ID]
            assert payload["gemini_insights"]["fallback_reason"] in ("client exploded", "TimeoutError")

    def test_save_failure_is_500(self, test_client, db_session, override_dependencies, monkeypatch):
        def failing_commit():
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "commit", failing_commit)
        override_dependencies(db_session, None)

        response = test_client.post("/check-in", json=_body())

        assert response.status_code == 500
        assert response.json()["success"] is False
        assert response.json()["error"].startswith("Failed to save check-in")

    def test_rate_limited_failure_gets_generic_notice(self, test_client, db_session, override_dependencies, monkeypatch):
        def failing_commit():
            try:
                raise RateLimited("Too Many Requests", status_code=429)
            except RateLimited as upstream:
                raise OperationalError("INSERT", {}, upstream) from upstream

        monkeypatch.setattr(db_session, "commit", failing_commit)
        override_dependencies(db_session, None)

        response = test_client.post("/check-in", json=_body())

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": RATE_LIMIT_NOTICE}


class TestCheckInHistory:
    """Test GET /check-in/history/{user_id}."""

    def test_unknown_user_has_empty_history(self, test_client, db_session, override_dependencies):
        override_dependencies(db_session, None)

        response = test_client.get(f"/check-in/history/{uuid.uuid4()}")

        assert response.status_code == 200
        assert response.json() == {"success": True, "history": []}

    def test_submissions_appear_newest_first(self, test_client, db_session, override_dependencies):
        override_dependencies(db_session, None)
        first = test_client.post("/check-in", json=_body(energy_level=2)).json()
        second = test_client.post("/check-in", json=_body(energy_level=4)).json()
        third = test_client.post("/check-in", json=_body(energy_level=3)).json()
        base = datetime(2026, 5, 1, tzinfo=timezone.utc)
        for offset, submitted in enumerate((first, second, third)):
            db_session.get(CheckInRecord, submitted["check_in_id"]).created_at = base + timedelta(hours=offset)
        db_session.commit()

        history = test_client.get("/check-in/history/mama@example.com").json()["history"]

        assert [entry["id"] for entry in history] == [
            third["check_in_id"],
            second["check_in_id"],
            first["check_in_id"],
        ]
        entry = history[-1]
        assert entry["energy_level"] == 2
        assert entry["recommended_workout_ids"] == _ids(first)
        assert entry["used_fallback"] is True
        assert entry["gemini_reasoning"]["source"] == "fallback"
        assert entry["user_id"] != "mama@example.com"
        assert is_uuid(entry["user_id"])

    def test_limit_parameter(self, test_client, db_session, override_dependencies):
        override_dependencies(db_session, None)
        for energy in (1, 2, 3):
            test_client.post("/check-in", json=_body(energy_level=energy))

        history = test_client.get("/check-in/history/mama@example.com", params={"limit": 2}).json()["history"]

        assert len(history) == 2

    def test_without_datastore(self, test_client, override_dependencies):
        override_dependencies(None, None)
        response = test_client.get("/check-in/history/mama@example.com")
        assert response.json() == {"success": True, "history": []}


def test_health(test_client):
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
