from __future__ import annotations

from fastapi.testclient import TestClient

from api_server import app
from interview_stages import RateLimitedError


def _client() -> TestClient:
    return TestClient(app)


def _start(client: TestClient, **profile) -> dict:
    candidate = client.post(
        "/api/candidates",
        json={"fullName": "Meera Nair", "email": "meera@example.com", "primarySubject": "Chemistry", **profile},
    ).json()
    response = client.post("/api/mock-interviews/sessions", json={"candidateId": candidate["candidateId"]})
    assert response.status_code == 201
    return response.json()


def _action(client: TestClient, **body):
    return client.post("/api/mock-interviews/actions", json=body)


def test_get_stages_action(fake_inference):
    client = _client()
    payload = _action(client, action="get_stages").json()
    assert len(payload["stages"]) == 8
    assert payload["stages"][2]["questionCount"] == 8
    assert payload["stages"][2]["passingScorePercent"] == 70
    assert client.get("/api/mock-interviews/stages").json() == payload


def test_stage_flow_through_actions(fake_inference, fake_notifier, make_outcome):
    client = _client()
    session = _start(client)
    sid = session["id"]
    assert session["currentStageOrder"] == 1
    assert fake_notifier.invitations[0].candidate_name == "Meera Nair"

    step = _action(client, action="complete_instructions", sessionId=sid, stageOrder=1).json()
    assert step["nextStage"]["order"] == 2
    assert step["requiresSlotBooking"] is True

    step = _action(client, action="book_slot", sessionId=sid, stageOrder=2, bookedSlot="Mon 10:00").json()
    assert step["shouldSendEmail"] is True

    questions = _action(client, action="generate_questions", sessionId=sid, stageOrder=3).json()["questions"]
    assert len(questions) == 8

    fake_inference.evaluations.append(make_outcome(40, passed=True))
    evaluation = _action(
        client,
        action="evaluate_answers",
        sessionId=sid,
        stageOrder=3,
        answers=["a"] * 8,
        recordingUrl="https://cdn.example/r.webm",
    ).json()
    assert evaluation["evaluation"]["overallScore"] == 40.0
    assert evaluation["evaluation"]["passed"] is False
    assert evaluation["nextStage"]["order"] == 4
    assert evaluation["replayed"] is False

    repeat = _action(client, action="evaluate_answers", sessionId=sid, stageOrder=3, answers=["b"]).json()
    assert repeat["replayed"] is True

    detail = client.get(f"/api/mock-interviews/sessions/{sid}").json()
    assert detail["session"]["stagesCompleted"] == [
        "Interview Instructions",
        "Technical Assessment Slot Booking",
        "Technical Assessment",
    ]
    assert detail["currentStage"]["order"] == 4
    assert detail["results"][2]["recordingUrl"] == "https://cdn.example/r.webm"


def test_error_envelope_for_invalid_stage(fake_inference):
    client = _client()
    sid = _start(client)["id"]
    response = _action(client, action="generate_questions", sessionId=sid, stageOrder=99)
    assert response.status_code == 400
    assert response.json() == {"error": {"code": "validation_error", "message": "Invalid stage order: 99"}}


def test_unknown_action_and_missing_session(fake_inference):
    client = _client()
    assert _action(client, action="dance").status_code == 400
    missing = _action(client, action="generate_questions", sessionId="nope", stageOrder=1)
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "not_found"
    assert _action(client, action="book_slot", stageOrder=2).status_code == 400


def test_evaluate_requires_generated_questions(fake_inference):
    client = _client()
    sid = _start(client)["id"]
    response = _action(client, action="evaluate_answers", sessionId=sid, stageOrder=1, answers=[])
    assert response.status_code == 400
    _action(client, action="complete_instructions", sessionId=sid, stageOrder=1)
    _action(client, action="book_slot", sessionId=sid, stageOrder=2, bookedSlot="Tue")
    response = _action(client, action="evaluate_answers", sessionId=sid, stageOrder=3, answers=["x"])
    assert response.status_code == 404


def test_rate_limit_maps_to_429(fake_inference):
    client = _client()
    sid = _start(client)["id"]
    _action(client, action="complete_instructions", sessionId=sid, stageOrder=1)
    _action(client, action="book_slot", sessionId=sid, stageOrder=2, bookedSlot="Tue")
    _action(client, action="generate_questions", sessionId=sid, stageOrder=3)
    fake_inference.error = RateLimitedError("Rate limit exceeded, please try again later.")
    response = _action(client, action="evaluate_answers", sessionId=sid, stageOrder=3, answers=["x"])
    assert response.status_code == 429
    assert response.json()["error"]["code"] == "rate_limited"
    detail = client.get(f"/api/mock-interviews/sessions/{sid}").json()
    assert detail["results"][-1]["aiScore"] is None


def test_no_inference_bound_is_502():
    client = _client()
    assert _action(client, action="get_stages").status_code == 200
    response = _action(client, action="generate_questions", sessionId="s-1", stageOrder=3)
    assert response.status_code == 502
    assert response.json()["error"]["code"] == "external_service_error"


def test_candidates_routes():
    client = _client()
    created = client.post("/api/candidates", json={"fullName": "Ravi", "skills": "maths, physics"})
    assert created.status_code == 201
    body = created.json()
    assert body["skills"] == ["maths", "physics"]
    assert client.get(f"/api/candidates/{body['candidateId']}").json()["fullName"] == "Ravi"
    assert len(client.get("/api/candidates").json()) == 1
    assert client.get("/api/candidates/missing").status_code == 404


def test_malformed_body_uses_error_envelope(fake_inference):
    client = _client()
    response = _action(client, action="generate_questions", sessionId="s", stageOrder="abc")
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "validation_error"
    assert error["message"].startswith("Invalid stageOrder")
    assert "detail" not in response.json()


def test_session_reads_without_inference(fake_notifier):
    client = _client()
    session = _start(client)
    listed = client.get("/api/mock-interviews/sessions", params={"candidate_id": session["candidateId"]}).json()
    assert [item["id"] for item in listed] == [session["id"]]
    detail = client.get(f"/api/mock-interviews/sessions/{session['id']}").json()
    assert detail["currentStage"]["order"] == 1
    assert detail["results"] == []
    assert client.get("/api/mock-interviews/sessions/missing").json()["error"]["code"] == "not_found"
