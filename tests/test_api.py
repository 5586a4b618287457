# tests/test_api.py
from fastapi import status

from app.core.exceptions import LLMOverloadedError

HEADERS = {"X-User-Id": "user-1"}


def create(client, headers=HEADERS, **body):
    payload = {"role": "backend-developer", "programmingLanguage": "Go"}
    payload.update(body)
    return client.post("/api/interviews", json=payload, headers=headers)


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "ok"


def test_start_and_answer_scenario(client):
    response = create(client)
    assert response.status_code == status.HTTP_200_OK
    interview = response.json()
    assert len(interview["questions"]) == 1
    assert interview["questions"][0]["score"] is None
    assert interview["questions"][0]["feedback"]
    assert interview["role"] == "backend-developer"
    assert interview["programmingLanguage"] == "Go"
    assert interview["userId"] == "user-1"
    assert interview["completed"] is False

    response = client.post(
        f"/api/interviews/{interview['id']}/answer",
        json={"questionIndex": 0, "answerText": "I design idempotent APIs."},
        headers=HEADERS,
    )
    assert response.status_code == status.HTTP_200_OK
    updated = response.json()
    assert 0 <= updated["questions"][0]["score"] <= 10
    assert updated["questions"][0]["answerText"] == "I design idempotent APIs."
    assert len(updated["questions"]) == 2
    assert updated["overallScore"] is not None
    assert updated["version"] > interview["version"]


def test_coding_question_json_shape(client, fake_llm):
    fake_llm.script("first", "Feedback: Hi\nScore: N/A\nNext Question: [CODING_PROBLEM] Merge two sorted lists.")
    interview = create(client).json()
    question = interview["questions"][0]
    assert question["kind"] == "coding"
    assert question["questionText"] == "Merge two sorted lists."

    response = client.post(
        f"/api/interviews/{interview['id']}/answer",
        json={"questionIndex": 0, "codeAnswer": "func merge() {}", "programmingLanguage": "Go"},
        headers=HEADERS,
    )
    assert response.status_code == status.HTTP_200_OK
    answered = response.json()["questions"][0]
    assert answered["codeProgrammingLanguage"] == "Go"
    assert answered["codeScore"] == 8
    assert answered["score"] == 7


def test_missing_identity_is_unauthorized(client):
    response = create(client, headers={})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"] == "unauthorized"


def test_unknown_role_is_rejected(client, fake_llm):
    response = create(client, role="astronaut")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "validation_error"
    assert "role" in response.json()["detail"]
    assert fake_llm.calls == []


def test_malformed_question_index_is_bad_request(client):
    interview = create(client).json()
    url = f"/api/interviews/{interview['id']}/answer"

    for body in ({"answerText": "x"}, {"questionIndex": "first", "answerText": "x"}):
        response = client.post(url, json=body, headers=HEADERS)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "validation_error"
        assert "questionIndex" in response.json()["detail"]


def test_technical_role_without_language(client, fake_llm):
    response = create(client, programmingLanguage=None)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "validation_error"
    assert fake_llm.calls == []


def test_answer_validation_errors(client):
    interview = create(client).json()
    url = f"/api/interviews/{interview['id']}/answer"

    response = client.post(url, json={"questionIndex": 3, "answerText": "x"}, headers=HEADERS)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "invalid_index"

    response = client.post(url, json={"questionIndex": 0}, headers=HEADERS)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "validation_error"


def test_ownership_is_enforced(client):
    interview = create(client).json()
    other = {"X-User-Id": "user-2"}

    assert client.get(f"/api/interviews/{interview['id']}", headers=other).status_code == status.HTTP_401_UNAUTHORIZED
    response = client.post(
        f"/api/interviews/{interview['id']}/answer", json={"questionIndex": 0, "answerText": "x"}, headers=other
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert client.delete(f"/api/interviews/{interview['id']}", headers=other).status_code == status.HTTP_401_UNAUTHORIZED


def test_missing_interview_is_404(client):
    assert client.get("/api/interviews/999", headers=HEADERS).status_code == status.HTTP_404_NOT_FOUND
    response = client.post("/api/interviews/999/answer", json={"questionIndex": 0, "answerText": "x"}, headers=HEADERS)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_persistent_overload_is_503(client, fake_llm, sleeps):
    fake_llm.script("first", *[LLMOverloadedError("503")] * 5)
    response = create(client)
    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    body = response.json()
    assert body["error"] == "ai_overloaded"
    assert "try again" in body["detail"]
    assert sleeps == [2.0, 4.0, 8.0, 16.0]


def test_non_overload_llm_failure_is_500(client, fake_llm):
    fake_llm.script("first", RuntimeError("invalid api key"))
    response = create(client)
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert "invalid api key" not in response.text


def test_next_question_failure_still_returns_200(client, fake_llm):
    interview = create(client).json()
    fake_llm.script("turn", *[LLMOverloadedError("503")] * 5)
    response = client.post(
        f"/api/interviews/{interview['id']}/answer", json={"questionIndex": 0, "answerText": "x"}, headers=HEADERS
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["questions"][1]["questionText"] == "Could not generate the next question."


def test_resubmitting_answered_question_conflicts(client):
    interview = create(client).json()
    url = f"/api/interviews/{interview['id']}/answer"
    for index in range(5):
        assert client.post(url, json={"questionIndex": index, "answerText": "x"}, headers=HEADERS).status_code == 200

    response = client.post(url, json={"questionIndex": 4, "answerText": "again"}, headers=HEADERS)
    assert response.status_code == status.HTTP_409_CONFLICT

    final = client.get(f"/api/interviews/{interview['id']}", headers=HEADERS).json()
    assert final["completed"] is True
    assert len(final["questions"]) == 5
    assert final["overallFeedback"]


def test_list_and_delete(client):
    first = create(client).json()
    second = create(client, role="product-manager", programmingLanguage=None).json()

    listed = client.get("/api/interviews/user", headers=HEADERS).json()
    assert [item["id"] for item in listed] == [second["id"], first["id"]]
    assert listed[0]["questionCount"] == 1

    response = client.delete(f"/api/interviews/{first['id']}", headers=HEADERS)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"msg": "Interview removed"}
    assert client.get(f"/api/interviews/{first['id']}", headers=HEADERS).status_code == status.HTTP_404_NOT_FOUND
    assert [item["id"] for item in client.get("/api/interviews/user", headers=HEADERS).json()] == [second["id"]]


def test_reads_and_deletes_work_without_model_credentials(client, monkeypatch):
    from app.api.deps import get_llm_client
    from app.core.config import settings
    from main import app

    interview = create(client).json()
    app.dependency_overrides.pop(get_llm_client)
    monkeypatch.setattr(settings, "openai_api_key", None)

    assert client.get("/api/interviews/user", headers=HEADERS).status_code == status.HTTP_200_OK
    assert client.get(f"/api/interviews/{interview['id']}", headers=HEADERS).status_code == status.HTTP_200_OK
    assert client.get("/api/interviews/999", headers=HEADERS).status_code == status.HTTP_404_NOT_FOUND
    assert client.delete(f"/api/interviews/{interview['id']}", headers=HEADERS).status_code == status.HTTP_200_OK

    # Only the routes that call the model need the key
    assert create(client).status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
