import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from app.client import state as session
from app.client.state import SessionState, TimerEvent
from app.client.timers import Ticker
from app.client.transport import AttemptTransport, TransportError
from app.core.exceptions import AttemptError, Expired, VersionConflict

logger = logging.getLogger(__name__)


class SessionController:
    """Drives one attempt from the participant's side.

    Holds the current ``SessionState`` and replaces it after every server
    response or timer tick. Expiry and version conflicts are answered by
    refetching the authoritative attempt view, never by retrying with the
    version that was rejected.
    """

    def __init__(self, transport: AttemptTransport, *, tick_interval: float = 1.0,
                 on_change: Optional[Callable[[SessionState], None]] = None):
        self.transport = transport
        self.state = session.initial_state()
        self._on_change = on_change
        self._ticker = Ticker(self.on_tick, interval=tick_interval)

    @property
    def attempt_id(self) -> str:
        if self.state.attempt is None:
            raise RuntimeError("No attempt has been started.")
        return self.state.attempt.attempt_id

    def _set(self, new_state: SessionState) -> SessionState:
        self.state = new_state
        if new_state.has_running_timer:
            self._ticker.start()
        else:
            self._ticker.stop()
        if self._on_change:
            self._on_change(new_state)
        return new_state

    async def _recover(self, exc: AttemptError) -> SessionState:
        logger.info(f"Refetching attempt {self.attempt_id} after {type(exc).__name__}")
        self._set(session.apply_error(self.state, str(exc.detail)))
        return await self._refetch_keeping_error()

    async def _refetch_keeping_error(self) -> SessionState:
        response = await self.transport.next_question(self.attempt_id)
        return self._set(session.apply_next_question(self.state, response, keep_error=True))

    async def start(self, assignment_id: str, *, guest_name: Optional[str] = None,
                    fields: Optional[Dict[str, str]] = None) -> SessionState:
        view = await self.transport.start(assignment_id, guest_name=guest_name, fields=fields)
        self._set(session.apply_attempt(self.state, view))
        return await self.next_question()

    async def refresh(self) -> SessionState:
        response = await self.transport.next_question(self.attempt_id)
        return self._set(session.apply_next_question(self.state, response))

    async def next_question(self) -> SessionState:
        return await self.refresh()

    async def submit_answer(self, payload: Dict[str, Any], *, auto_finish: bool = False) -> SessionState:
        try:
            response = await self.transport.submit_answer(self.attempt_id, self.state.attempt.version, payload)
        except (Expired, VersionConflict) as exc:
            return await self._recover(exc)

        self._set(session.apply_answer(self.state, response))
        attempt = self.state.attempt
        if auto_finish and attempt.cursor >= attempt.total and self.state.is_active:
            return await self.finish()
        return await self.next_question()

    async def finish(self) -> SessionState:
        try:
            view = await self.transport.finish(self.attempt_id, self.state.attempt.version)
        except (Expired, VersionConflict) as exc:
            return await self._recover(exc)
        return self._set(session.apply_attempt(self.state, view))

    async def cancel(self) -> SessionState:
        try:
            view = await self.transport.cancel(self.attempt_id, self.state.attempt.version)
        except (Expired, VersionConflict) as exc:
            return await self._recover(exc)
        return self._set(session.apply_attempt(self.state, view))

    async def on_tick(self):
        new_state, events = session.tick(self.state)
        self._set(new_state)
        for event in events:
            if event == TimerEvent.ATTEMPT_TIMEOUT:
                logger.info(f"Attempt timer ran out for {self.attempt_id}; finishing")
                await self._on_timeout(self.finish)
            elif event == TimerEvent.QUESTION_TIMEOUT:
                logger.info(f"Question timer ran out for {self.attempt_id}; advancing")
                await self._on_timeout(self.next_question)

    async def _on_timeout(self, action: Callable[[], Awaitable[SessionState]]):
        try:
            await action()
        except AttemptError as exc:
            # The server has not reached the deadline yet; its next view decides
            logger.warning(f"Timeout call for {self.attempt_id} failed with {exc.code}: {exc.detail}")
            self._set(session.release_timeouts(self.state, str(exc.detail)))
            await self._refetch_keeping_error()
        except TransportError as exc:
            logger.warning(f"Timeout call for {self.attempt_id} could not reach the server: {exc}")
            self._set(session.release_timeouts(self.state, str(exc)))

    async def close(self):
        self._ticker.stop()
        await self.transport.aclose()
