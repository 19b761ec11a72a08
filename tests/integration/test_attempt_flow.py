from fastapi.testclient import TestClient

from tests.helpers.asserts import api_call, assert_error
from tests.helpers.factories import (
    answer, create_assignment, multi_question, next_question, single_question, start_attempt,
)

ALWAYS = {"reveal_score_mode": "always"}


def test_attempt_full_flow(client: TestClient, owner_headers, student_headers):
    print("\n[TEST] Attempt full flow")
    assignment = create_assignment(client, owner_headers, policy=ALWAYS)

    print("[1] Starting attempt")
    attempt = start_attempt(client, student_headers, assignment["id"])
    attempt_id = attempt["attempt_id"]

    print("[2] Serving first question")
    served = next_question(client, student_headers, attempt_id)
    question = served["question"]
    assert question["type"] == "single"
    assert "correct_option" not in question
    assert [o["text"] for o in question["options"]] == ["3", "4", "5"]

    print("[3] Answering correctly")
    r = answer(client, student_headers, attempt_id, 1, {"kind": "single", "selected": 1})
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["answer"]["is_correct"] is True
    assert data["answer"]["score"] == 1.0
    assert data["attempt"]["cursor"] == 1
    assert data["attempt"]["version"] == 2
    assert data["attempt"]["score"] == 1.0

    print("[4] Answering the second question wrongly")
    served = next_question(client, student_headers, attempt_id)
    assert served["question"]["text"] == "What is 3+3?"
    r = answer(client, student_headers, attempt_id, 2, {"kind": "single", "selected": 0})
    assert r.status_code == 200, r.text
    assert r.json()["data"]["answer"]["is_correct"] is False
    assert r.json()["data"]["attempt"]["cursor"] == 2

    print("[5] No question left")
    served = next_question(client, student_headers, attempt_id)
    assert served["question"] is None
    assert served["attempt"]["status"] == "active"

    print("[6] Finishing")
    finished = api_call(
        client, "POST", f"/attempts/{attempt_id}/submit", headers=student_headers, json={"version": 3}
    ).json()["data"]
    assert finished["status"] == "submitted"
    assert finished["version"] == 4
    assert finished["score"] == 1.0
    assert finished["max_score"] == 2.0
    assert finished["pending_score"] == 0
    print("[OK] Attempt submitted")


def test_submitting_without_answers_scores_zero(client: TestClient, owner_headers, student_headers):
    assignment = create_assignment(client, owner_headers, policy=ALWAYS)
    attempt = start_attempt(client, student_headers, assignment["id"])

    finished = api_call(
        client, "POST", f"/attempts/{attempt['attempt_id']}/submit", headers=student_headers, json={"version": 1}
    ).json()["data"]
    assert finished["score"] == 0.0
    assert finished["max_score"] == 2.0


def test_single_choice_correct_option_scores_weight(client: TestClient, owner_headers, student_headers):
    questions = [single_question("Pick C", ("A", "B", "C", "D"), correct=2, weight=2.5)]
    assignment = create_assignment(client, owner_headers, questions=questions, policy=ALWAYS)
    attempt = start_attempt(client, student_headers, assignment["id"])
    next_question(client, student_headers, attempt["attempt_id"])

    r = answer(client, student_headers, attempt["attempt_id"], 1, {"kind": "single", "selected": 2})
    record = r.json()["data"]["answer"]
    assert record["is_correct"] is True
    assert record["score"] == 2.5
    assert record["payload"] == {"selected": 2}


def test_multi_choice_uses_set_equality(client: TestClient, owner_headers, student_headers):
    assignment = create_assignment(
        client, owner_headers, questions=[multi_question(), multi_question("Pick the evens", correct=(1,))], policy=ALWAYS
    )
    attempt = start_attempt(client, student_headers, assignment["id"])

    r = answer(client, student_headers, attempt["attempt_id"], 1, {"kind": "multi", "selected_options": [2, 0]})
    assert r.json()["data"]["answer"]["is_correct"] is True
    assert r.json()["data"]["answer"]["payload"] == {"selected_options": [0, 2]}

    r = answer(client, student_headers, attempt["attempt_id"], 2, {"kind": "multi", "selected_options": [1, 3]})
    assert r.json()["data"]["answer"]["is_correct"] is False
    assert r.json()["data"]["attempt"]["score"] == 1.0


def test_stale_version_is_rejected_without_mutation(client: TestClient, owner_headers, student_headers):
    print("\n[TEST] Two tabs holding the same version")
    assignment = create_assignment(client, owner_headers, policy=ALWAYS)
    attempt = start_attempt(client, student_headers, assignment["id"])
    attempt_id = attempt["attempt_id"]
    version = attempt["version"]

    r_a = answer(client, student_headers, attempt_id, version, {"kind": "single", "selected": 1})
    assert r_a.status_code == 200, r_a.text

    r_b = answer(client, student_headers, attempt_id, version, {"kind": "single", "selected": 0})
    body = assert_error(r_b, 409, "version_conflict")
    assert body["error"]["details"]["current_version"] == version + 1

    served = next_question(client, student_headers, attempt_id)
    assert served["attempt"]["cursor"] == 1
    assert served["attempt"]["version"] == version + 1
    assert served["attempt"]["score"] == 1.0


def test_invalid_payload_does_not_advance(client: TestClient, owner_headers, student_headers):
    assignment = create_assignment(client, owner_headers)
    attempt = start_attempt(client, student_headers, assignment["id"])
    attempt_id = attempt["attempt_id"]

    assert_error(answer(client, student_headers, attempt_id, 1, {"kind": "text", "text": "four"}), 400, "invalid_payload")
    assert_error(answer(client, student_headers, attempt_id, 1, {"kind": "single", "selected": 7}), 400, "invalid_payload")
    assert_error(answer(client, student_headers, attempt_id, 1, {"selected": 1}), 400, "invalid_payload")
    assert_error(answer(client, student_headers, attempt_id, 1, {"kind": "essay"}), 400, "invalid_payload")

    served = next_question(client, student_headers, attempt_id)
    assert served["attempt"]["cursor"] == 0
    assert served["attempt"]["version"] == 1


def test_cursor_never_decreases(client: TestClient, owner_headers, student_headers):
    questions = [single_question(f"Q{i}") for i in range(4)]
    assignment = create_assignment(client, owner_headers, questions=questions)
    attempt = start_attempt(client, student_headers, assignment["id"])
    attempt_id = attempt["attempt_id"]

    cursors = [attempt["cursor"]]
    version = attempt["version"]
    for selected in (0, 1, 5, 2, 1):
        r = answer(client, student_headers, attempt_id, version, {"kind": "single", "selected": selected})
        served = next_question(client, student_headers, attempt_id)
        cursors.append(served["attempt"]["cursor"])
        version = served["attempt"]["version"]
    assert cursors == sorted(cursors)
    assert cursors[-1] == 4


def test_answering_past_the_last_question_is_invalid(client: TestClient, owner_headers, student_headers):
    assignment = create_assignment(client, owner_headers, questions=[single_question()])
    attempt = start_attempt(client, student_headers, assignment["id"])

    api_call(client, "POST", f"/attempts/{attempt['attempt_id']}/answer", headers=student_headers,
             json={"version": 1, "payload": {"kind": "single", "selected": 0}})
    assert_error(answer(client, student_headers, attempt["attempt_id"], 2, {"kind": "single", "selected": 0}), 400, "invalid_state")


def test_require_all_answered_gates_finish(client: TestClient, owner_headers, student_headers):
    assignment = create_assignment(client, owner_headers, policy={"require_all_answered": True})
    attempt = start_attempt(client, student_headers, assignment["id"])
    attempt_id = attempt["attempt_id"]

    body = assert_error(
        client.post(f"/attempts/{attempt_id}/submit", headers=student_headers, json={"version": 1}),
        400, "incomplete_attempt",
    )
    assert body["error"]["details"] == {"cursor": 0, "total": 2}

    answer(client, student_headers, attempt_id, 1, {"kind": "single", "selected": 1})
    answer(client, student_headers, attempt_id, 2, {"kind": "single", "selected": 1})
    finished = api_call(
        client, "POST", f"/attempts/{attempt_id}/submit", headers=student_headers, json={"version": 3}
    ).json()["data"]
    assert finished["status"] == "submitted"


def test_terminal_attempts_are_immutable(client: TestClient, owner_headers, student_headers):
    assignment = create_assignment(client, owner_headers)
    attempt = start_attempt(client, student_headers, assignment["id"])
    attempt_id = attempt["attempt_id"]

    cancelled = api_call(
        client, "POST", f"/attempts/{attempt_id}/cancel", headers=student_headers, json={"version": 1}
    ).json()["data"]
    assert cancelled["status"] == "cancelled"
    assert cancelled["version"] == 2

    assert_error(answer(client, student_headers, attempt_id, 2, {"kind": "single", "selected": 1}), 400, "invalid_state")
    assert_error(client.post(f"/attempts/{attempt_id}/submit", headers=student_headers, json={"version": 2}), 400, "invalid_state")
    assert_error(client.post(f"/attempts/{attempt_id}/cancel", headers=student_headers, json={"version": 2}), 400, "invalid_state")
    # A retried cancel still carrying the old version reads as a conflict
    assert_error(client.post(f"/attempts/{attempt_id}/cancel", headers=student_headers, json={"version": 1}), 409, "version_conflict")

    served = next_question(client, student_headers, attempt_id)
    assert served["question"] is None
    assert served["attempt"]["status"] == "cancelled"
    assert served["attempt"]["version"] == 2
    assert served["attempt"]["cursor"] == 0


def test_shuffled_order_is_stable_across_reads(client: TestClient, owner_headers, student_headers):
    questions = [single_question(f"Q{i}") for i in range(8)]
    assignment = create_assignment(
        client, owner_headers, questions=questions, policy={"shuffle_questions": True, "shuffle_answers": True}
    )
    attempt = start_attempt(client, student_headers, assignment["id"])

    first = next_question(client, student_headers, attempt["attempt_id"])["question"]
    again = next_question(client, student_headers, attempt["attempt_id"])["question"]
    assert first == again
