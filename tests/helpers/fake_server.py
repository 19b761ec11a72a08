import json
from typing import Any, Dict, List, Optional

import httpx


def attempt_view(*, status: str = "active", version: int = 1, cursor: int = 0, total: int = 2,
                 time_left_sec: Optional[int] = None, question_time_left_sec: Optional[int] = None,
                 policy: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "attempt_id": "attempt-1",
        "assignment_id": "assignment-1",
        "test_id": 1,
        "status": status,
        "version": version,
        "cursor": cursor,
        "total": total,
        "time_left_sec": time_left_sec,
        "question_time_left_sec": question_time_left_sec,
        "started_at": "2026-03-02T09:00:00+00:00",
        "participant": {"kind": "user", "user_id": 2001},
        "policy": policy or {},
    }


def question_view(position: int = 0) -> Dict[str, Any]:
    return {
        "id": f"q{position}",
        "type": "single",
        "text": f"Question {position}",
        "weight": 1.0,
        "options": [{"id": f"q{position}-a", "text": "yes"}, {"id": f"q{position}-b", "text": "no"}],
    }


def ok(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json={"message": "ok", "data": data})


def error(status_code: int, code: str, message: str = "", details: Optional[Dict[str, Any]] = None) -> httpx.Response:
    return httpx.Response(status_code, json={
        "error": {"code": code, "message": message or code, "details": details},
        "timestamp": "2026-03-02T09:00:00+00:00",
        "path": "/",
        "request_id": "test",
    })


class FakeAttemptServer:
    """Scripted stand-in for the attempt endpoints.

    Queue responses per ``(method, suffix)``; the last queued response repeats.
    Every request is recorded in ``calls``.
    """

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self._routes: Dict[tuple, List[httpx.Response]] = {}

    def on(self, method: str, suffix: str, *responses: httpx.Response):
        self._routes.setdefault((method, suffix), []).extend(responses)

    def count(self, method: str, suffix: str) -> int:
        return sum(1 for c in self.calls if c["method"] == method and c["path"].endswith(suffix))

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.calls.append({"method": request.method, "path": request.url.path, "json": body})
        for (method, suffix), queue in self._routes.items():
            if method == request.method and request.url.path.endswith(suffix):
                return queue.pop(0) if len(queue) > 1 else queue[0]
        return error(404, "not_found")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), base_url="http://testserver")
