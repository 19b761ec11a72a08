import httpx
import pytest

from app.client.controller import SessionController
from app.client.transport import AttemptTransport, TransportError
from app.core.exceptions import Expired, InvalidPayload

from tests.helpers.fake_server import FakeAttemptServer, attempt_view, error, ok, question_view

TIMED = {"max_attempt_time_sec": 600, "question_time_limit_sec": 30}


def _served(cursor=0, version=1, **kwargs):
    return {"attempt": attempt_view(cursor=cursor, version=version, **kwargs), "question": question_view(cursor)}


def _controller(server: FakeAttemptServer, states=None) -> SessionController:
    transport = AttemptTransport("http://testserver", token="t0ken", client=server.client())
    return SessionController(transport, tick_interval=3600, on_change=states.append if states is not None else None)


@pytest.mark.asyncio
async def test_start_fetches_first_question():
    server = FakeAttemptServer()
    server.on("POST", "/attempts/start", ok(attempt_view(policy=TIMED, time_left_sec=600, question_time_left_sec=30), 201))
    server.on("GET", "/question", ok(_served(policy=TIMED, time_left_sec=600, question_time_left_sec=30)))
    controller = _controller(server)

    state = await controller.start("assignment-1")
    assert state.question.id == "q0"
    assert state.attempt_remaining == 600
    assert controller._ticker.running
    assert server.calls[0]["json"]["assignment_id"] == "assignment-1"
    await controller.close()
    assert not controller._ticker.running


@pytest.mark.asyncio
async def test_version_conflict_refetches_without_resubmitting():
    print("\n[TEST] Stale answer is not retried")
    server = FakeAttemptServer()
    server.on("POST", "/attempts/start", ok(attempt_view(), 201))
    server.on("GET", "/question", ok(_served()), ok(_served(cursor=1, version=3)))
    server.on("POST", "/answer", error(409, "version_conflict", details={"current_version": 3, "supplied_version": 1}))
    states = []
    controller = _controller(server, states)

    await controller.start("assignment-1")
    state = await controller.submit_answer({"kind": "single", "selected": 0})

    assert server.count("POST", "/answer") == 1
    assert server.count("GET", "/question") == 2
    assert state.attempt.version == 3
    assert state.question.id == "q1"
    assert any(s.last_error for s in states)
    await controller.close()


@pytest.mark.asyncio
async def test_expired_finish_shows_expired_state():
    server = FakeAttemptServer()
    server.on("POST", "/attempts/start", ok(attempt_view(policy=TIMED, time_left_sec=5, question_time_left_sec=5), 201))
    server.on(
        "GET", "/question",
        ok(_served(policy=TIMED, time_left_sec=5, question_time_left_sec=5)),
        ok({"attempt": attempt_view(status="expired", version=2, policy=TIMED, time_left_sec=0), "question": None}),
    )
    server.on("POST", "/submit", error(410, "attempt_expired"))
    controller = _controller(server)

    await controller.start("assignment-1")
    assert controller._ticker.running
    state = await controller.finish()

    assert state.attempt.status == "expired"
    assert state.question is None
    assert state.attempt_remaining is None
    assert state.question_remaining is None
    assert not controller._ticker.running
    await controller.close()


@pytest.mark.asyncio
async def test_attempt_timeout_finishes_once():
    server = FakeAttemptServer()
    policy = {"max_attempt_time_sec": 600}
    server.on("POST", "/attempts/start", ok(attempt_view(policy=policy, time_left_sec=1), 201))
    server.on("GET", "/question", ok(_served(policy=policy, time_left_sec=1)))
    server.on("POST", "/submit", ok(attempt_view(status="submitted", version=2, policy=policy, time_left_sec=0)))
    controller = _controller(server)

    await controller.start("assignment-1")
    await controller.on_tick()
    await controller.on_tick()

    assert server.count("POST", "/submit") == 1
    assert server.calls[-1]["json"] == {"version": 1}
    assert controller.state.is_finished
    await controller.close()


@pytest.mark.asyncio
async def test_question_timeout_asks_for_next_question():
    server = FakeAttemptServer()
    policy = {"question_time_limit_sec": 30}
    server.on("POST", "/attempts/start", ok(attempt_view(policy=policy, question_time_left_sec=1), 201))
    server.on(
        "GET", "/question",
        ok(_served(policy=policy, question_time_left_sec=1)),
        ok(_served(cursor=1, version=2, policy=policy, question_time_left_sec=30)),
    )
    controller = _controller(server)

    await controller.start("assignment-1")
    await controller.on_tick()

    assert server.count("GET", "/question") == 2
    assert controller.state.question.id == "q1"
    assert controller.state.question_remaining == 30
    assert not controller.state.advancing
    await controller.close()


@pytest.mark.asyncio
async def test_auto_finish_after_last_answer():
    server = FakeAttemptServer()
    server.on("POST", "/attempts/start", ok(attempt_view(total=1), 201))
    server.on("GET", "/question", ok(_served(total=1)))
    server.on("POST", "/answer", ok({
        "attempt": attempt_view(cursor=1, version=2, total=1),
        "answer": {"attempt_id": "attempt-1", "question_id": "q0", "position": 0, "kind": "single",
                   "payload": {"selected": 1}},
    }))
    server.on("POST", "/submit", ok(attempt_view(status="submitted", cursor=1, version=3, total=1)))
    controller = _controller(server)

    await controller.start("assignment-1")
    state = await controller.submit_answer({"kind": "single", "selected": 1}, auto_finish=True)

    assert state.attempt.status == "submitted"
    assert server.calls[-1] == {"method": "POST", "path": "/attempts/attempt-1/submit", "json": {"version": 2}}
    await controller.close()


@pytest.mark.asyncio
async def test_other_errors_reach_the_caller():
    server = FakeAttemptServer()
    server.on("POST", "/attempts/start", ok(attempt_view(), 201))
    server.on("GET", "/question", ok(_served()))
    server.on("POST", "/answer", error(400, "invalid_payload", "selected must be between 0 and 1."))
    controller = _controller(server)

    await controller.start("assignment-1")
    with pytest.raises(InvalidPayload) as exc:
        await controller.submit_answer({"kind": "single", "selected": 7})
    assert exc.value.detail == "selected must be between 0 and 1."
    assert controller.state.attempt.version == 1
    await controller.close()


@pytest.mark.asyncio
async def test_transport_maps_errors_and_network_failures():
    server = FakeAttemptServer()
    server.on("POST", "/submit", error(410, "question_expired"))
    transport = AttemptTransport("http://testserver", client=server.client())
    with pytest.raises(Expired) as exc:
        await transport.finish("attempt-1", 1)
    assert exc.value.code == "question_expired"
    await transport.aclose()

    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    offline = AttemptTransport(
        "http://testserver",
        client=httpx.AsyncClient(transport=httpx.MockTransport(refuse), base_url="http://testserver"),
    )
    with pytest.raises(TransportError):
        await offline.next_question("attempt-1")
    await offline.aclose()


@pytest.mark.asyncio
async def test_rejected_timeout_finish_is_retried_on_a_later_tick():
    print("\n[TEST] Attempt timer fires before the server deadline")
    server = FakeAttemptServer()
    policy = {"max_attempt_time_sec": 600, "require_all_answered": True}
    server.on("POST", "/attempts/start", ok(attempt_view(policy=policy, time_left_sec=1), 201))
    server.on(
        "GET", "/question",
        ok(_served(policy=policy, time_left_sec=1)),
        ok(_served(policy=policy, time_left_sec=0)),
        ok({"attempt": attempt_view(status="expired", version=2, policy=policy, time_left_sec=0), "question": None}),
    )
    server.on(
        "POST", "/submit",
        error(400, "incomplete_attempt", "All questions must be answered before finishing."),
        error(410, "attempt_expired"),
    )
    controller = _controller(server)

    await controller.start("assignment-1")
    await controller.on_tick()

    state = controller.state
    assert state.is_active
    assert state.finishing is False
    assert state.attempt_remaining == 0
    assert state.last_error == "All questions must be answered before finishing."
    assert server.count("POST", "/submit") == 1
    assert server.count("GET", "/question") == 2

    await controller.on_tick()

    assert server.count("POST", "/submit") == 2
    assert controller.state.attempt.status == "expired"
    assert controller.state.last_error is not None
    assert not controller._ticker.running
    await controller.close()


@pytest.mark.asyncio
async def test_unreachable_server_rearms_question_timeout():
    server = FakeAttemptServer()
    policy = {"question_time_limit_sec": 30}
    server.on("POST", "/attempts/start", ok(attempt_view(policy=policy, question_time_left_sec=1), 201))
    server.on("GET", "/question", ok(_served(policy=policy, question_time_left_sec=1)))
    controller = _controller(server)
    await controller.start("assignment-1")

    async def offline():
        raise TransportError("Network error: connection refused")

    controller.transport.next_question = lambda attempt_id: offline()
    await controller.on_tick()

    assert controller.state.advancing is False
    assert controller.state.question_remaining == 0
    assert controller.state.last_error == "Network error: connection refused"
    await controller.close()
