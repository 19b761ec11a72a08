import logging
from typing import Any, Dict, Optional

import httpx

from app.core.constants import FINGERPRINT_HEADER
from app.core.exceptions import AttemptError, error_for
from app.schemas.attempt import AnswerResponse, AttemptView, NextQuestionResponse

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """The server could not be reached; safe to retry at the user-action level."""


class AttemptTransport:
    """Async HTTP binding for the attempt endpoints.

    Unwraps the ``{message, data}`` envelope and turns error envelopes back into
    the same exception classes the server raised.
    """

    def __init__(self, base_url: str, *, token: Optional[str] = None, fingerprint: Optional[str] = None,
                 client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        headers = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if fingerprint:
            headers[FINGERPRINT_HEADER] = fingerprint
        self.fingerprint = fingerprint
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._client.headers.update(headers)

    async def aclose(self):
        await self._client.aclose()

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.RequestError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise TransportError(f"Network error: {e}") from e

        if response.is_error:
            raise self._error_from(response)
        return response.json().get("data")

    def _error_from(self, response: httpx.Response) -> AttemptError:
        try:
            error = response.json().get("error") or {}
        except ValueError:
            error = {}
        err = error_for(response.status_code, error.get("code"), error.get("message"))
        err.details = error.get("details")
        return err

    async def start(self, assignment_id: str, *, guest_name: Optional[str] = None,
                    fields: Optional[Dict[str, str]] = None) -> AttemptView:
        body = {"assignment_id": assignment_id, "fields": fields or {}}
        if guest_name:
            body["guest_name"] = guest_name
        if self.fingerprint:
            body["fingerprint"] = self.fingerprint
        return AttemptView.model_validate(await self._request("POST", "/attempts/start", json=body))

    async def next_question(self, attempt_id: str) -> NextQuestionResponse:
        return NextQuestionResponse.model_validate(await self._request("GET", f"/attempts/{attempt_id}/question"))

    async def submit_answer(self, attempt_id: str, version: int, payload: Dict[str, Any]) -> AnswerResponse:
        data = await self._request(
            "POST", f"/attempts/{attempt_id}/answer", json={"version": version, "payload": payload}
        )
        return AnswerResponse.model_validate(data)

    async def finish(self, attempt_id: str, version: int) -> AttemptView:
        data = await self._request("POST", f"/attempts/{attempt_id}/submit", json={"version": version})
        return AttemptView.model_validate(data)

    async def cancel(self, attempt_id: str, version: int) -> AttemptView:
        data = await self._request("POST", f"/attempts/{attempt_id}/cancel", json={"version": version})
        return AttemptView.model_validate(data)
