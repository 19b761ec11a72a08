from fastapi.testclient import TestClient

from tests.helpers.asserts import api_call, assert_error
from tests.helpers.factories import OWNER_ID, create_exam, single_question, text_question


def test_create_exam_assigns_question_and_option_ids(client: TestClient, owner_headers):
    exam = create_exam(client, owner_headers, questions=[single_question(), text_question()])

    assert exam["owner_id"] == OWNER_ID
    assert [q["type"] for q in exam["questions"]] == ["single", "text"]
    single = exam["questions"][0]
    assert single["id"]
    assert all(o["id"] for o in single["options"])
    assert single["correct_option"] == 1
    assert exam["questions"][1]["options"] == []


def test_create_exam_defaults_policy(client: TestClient, owner_headers):
    exam = create_exam(client, owner_headers)
    policy = exam["policy"]
    assert policy["max_attempts"] == 0
    assert policy["question_time_limit_sec"] == 0
    assert policy["reveal_score_mode"] == "after_submit"


def test_create_exam_requires_token(client: TestClient):
    response = client.post("/exams/", json={"title": "No auth", "questions": []})
    assert response.status_code == 401


def test_single_choice_question_needs_answer_key(client: TestClient, owner_headers):
    question = single_question()
    question["correct_option"] = None
    response = client.post("/exams/", headers=owner_headers, json={"title": "Broken", "questions": [question]})
    assert_error(response, 422, "validation_error")


def test_text_question_rejects_options(client: TestClient, owner_headers):
    question = text_question()
    question["options"] = [{"text": "a"}, {"text": "b"}]
    response = client.post("/exams/", headers=owner_headers, json={"title": "Broken", "questions": [question]})
    assert_error(response, 422, "validation_error")


def test_get_exam_owner_only(client: TestClient, owner_headers, student_headers):
    exam = create_exam(client, owner_headers)

    fetched = api_call(client, "GET", f"/exams/{exam['id']}", headers=owner_headers).json()["data"]
    assert fetched["title"] == exam["title"]

    assert_error(client.get(f"/exams/{exam['id']}", headers=student_headers), 403, "forbidden")


def test_get_missing_exam(client: TestClient, owner_headers):
    assert_error(client.get("/exams/999999", headers=owner_headers), 404, "not_found")


def test_list_my_exams(client: TestClient, owner_headers, student_headers):
    exam = create_exam(client, owner_headers, title="Listed exam")

    mine = api_call(client, "GET", "/exams/", headers=owner_headers).json()["data"]
    assert exam["id"] in [e["id"] for e in mine]

    theirs = api_call(client, "GET", "/exams/", headers=student_headers).json()["data"]
    assert exam["id"] not in [e["id"] for e in theirs]
