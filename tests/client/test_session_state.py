from app.client import state as session
from app.client.state import TimerEvent
from app.schemas.attempt import AnswerResponse, AttemptView, NextQuestionResponse

from tests.helpers.fake_server import attempt_view, question_view

TIMED = {"max_attempt_time_sec": 600, "question_time_limit_sec": 30}


def _view(**kwargs) -> AttemptView:
    return AttemptView.model_validate(attempt_view(**kwargs))


def _served(cursor=0, **kwargs) -> NextQuestionResponse:
    return NextQuestionResponse.model_validate({
        "attempt": attempt_view(cursor=cursor, **kwargs),
        "question": question_view(cursor),
    })


def test_first_view_seeds_both_timers():
    state = session.apply_attempt(session.initial_state(), _view(policy=TIMED, time_left_sec=600, question_time_left_sec=30))
    assert state.attempt_remaining == 600
    assert state.question_remaining == 30
    assert state.has_running_timer


def test_same_question_keeps_local_countdown():
    state = session.apply_next_question(
        session.initial_state(), _served(policy=TIMED, time_left_sec=600, question_time_left_sec=30)
    )
    for _ in range(5):
        state, _ = session.tick(state)
    assert state.question_remaining == 25

    state = session.apply_next_question(state, _served(policy=TIMED, time_left_sec=595, question_time_left_sec=25))
    assert state.question_remaining == 25
    assert state.attempt_remaining == 595


def test_new_question_resets_to_policy_limit():
    state = session.apply_next_question(
        session.initial_state(), _served(policy=TIMED, time_left_sec=600, question_time_left_sec=12)
    )
    assert state.question_remaining == 12
    state = session.apply_next_question(
        state, _served(cursor=1, version=2, policy=TIMED, time_left_sec=580, question_time_left_sec=30)
    )
    assert state.question_remaining == 30
    assert state.question.id == "q1"


def test_answer_clears_question():
    state = session.apply_next_question(session.initial_state(), _served())
    response = AnswerResponse.model_validate({
        "attempt": attempt_view(cursor=1, version=2),
        "answer": {"attempt_id": "attempt-1", "question_id": "q0", "position": 0, "kind": "single",
                   "payload": {"selected": 0}},
    })
    state = session.apply_answer(state, response)
    assert state.question is None
    assert state.attempt.version == 2


def test_terminal_view_stops_timers():
    state = session.apply_attempt(session.initial_state(), _view(policy=TIMED, time_left_sec=10, question_time_left_sec=5))
    state = session.apply_attempt(state, _view(status="expired", version=2, policy=TIMED, time_left_sec=0))
    assert state.is_finished
    assert state.attempt_remaining is None
    assert state.question_remaining is None
    assert not state.has_running_timer
    assert session.tick(state) == (state, ())


def test_attempt_timeout_fires_once():
    state = session.apply_attempt(session.initial_state(), _view(policy={"max_attempt_time_sec": 600}, time_left_sec=2))
    state, events = session.tick(state)
    assert events == ()
    state, events = session.tick(state)
    assert events == (TimerEvent.ATTEMPT_TIMEOUT,)
    assert state.finishing
    state, events = session.tick(state)
    assert events == ()
    assert state.attempt_remaining == 0


def test_question_timeout_fires_once():
    state = session.apply_next_question(
        session.initial_state(), _served(policy={"question_time_limit_sec": 30}, question_time_left_sec=1)
    )
    state, events = session.tick(state)
    assert events == (TimerEvent.QUESTION_TIMEOUT,)
    state, events = session.tick(state)
    assert events == ()


def test_attempt_timeout_wins_over_question_timeout():
    state = session.apply_next_question(
        session.initial_state(), _served(policy=TIMED, time_left_sec=1, question_time_left_sec=1)
    )
    _, events = session.tick(state)
    assert events == (TimerEvent.ATTEMPT_TIMEOUT,)


def test_server_response_rearms_guards():
    state = session.apply_attempt(session.initial_state(), _view(policy={"max_attempt_time_sec": 600}, time_left_sec=1))
    state, _ = session.tick(state)
    assert state.finishing
    state = session.apply_attempt(state, _view(policy={"max_attempt_time_sec": 600}, time_left_sec=1))
    assert not state.finishing


def test_last_question_has_no_question_timer():
    state = session.apply_attempt(
        session.initial_state(), _view(cursor=2, total=2, policy=TIMED, time_left_sec=100, question_time_left_sec=0)
    )
    assert state.question_remaining is None
    assert state.attempt_remaining == 100


def test_error_is_recorded_and_cleared():
    state = session.apply_error(session.initial_state(), "stale")
    assert state.last_error == "stale"
    state = session.apply_next_question(state, _served())
    assert state.last_error is None


def test_released_timeout_can_fire_again():
    state = session.apply_attempt(session.initial_state(), _view(policy={"max_attempt_time_sec": 600}, time_left_sec=1))
    state, events = session.tick(state)
    assert events == (TimerEvent.ATTEMPT_TIMEOUT,)

    state = session.release_timeouts(state, "not yet")
    assert state.last_error == "not yet"
    assert not state.finishing
    _, events = session.tick(state)
    assert events == (TimerEvent.ATTEMPT_TIMEOUT,)


def test_refetch_can_keep_the_error():
    state = session.apply_error(session.initial_state(), "stale")
    assert session.apply_next_question(state, _served(), keep_error=True).last_error == "stale"
