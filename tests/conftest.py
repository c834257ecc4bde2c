import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import urlsplit

import pytest
import requests

from interview_console.api_client import BackendClient

BASE = "http://backend.test"


def make_response(status: int = 200, body: Any = None, content_type: Optional[str] = None,
                  url: str = BASE) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.url = url
    resp.reason = {200: "OK", 202: "Accepted", 204: "No Content", 404: "Not Found",
                   500: "Internal Server Error"}.get(status, "")
    if body is None:
        resp._content = b""
    elif isinstance(body, bytes):
        resp._content = body
    elif isinstance(body, str) and content_type != "application/json":
        resp._content = body.encode("utf-8")
        content_type = content_type or "text/plain"
    else:
        resp._content = json.dumps(body).encode("utf-8")
        content_type = "application/json"
    if content_type:
        resp.headers["Content-Type"] = content_type
    resp.encoding = "utf-8"
    return resp


Handler = Union[requests.Response, Exception, Callable[..., requests.Response]]


class FakeSession:
    """Routes (method, path) to canned responses and records every call."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Handler]] = {}
        self.calls: List[Dict[str, Any]] = []

    def add(self, method: str, path: str, *handlers: Handler) -> "FakeSession":
        # several handlers are served in order; the last one repeats
        self.routes[(method.upper(), path)] = list(handlers)
        return self

    def request(self, method: str, url: str, **kwargs) -> requests.Response:
        parts = urlsplit(url)
        path = parts.path if parts.netloc == urlsplit(BASE).netloc else url
        self.calls.append({"method": method.upper(), "url": url, "path": path, **kwargs})
        handlers = self.routes.get((method.upper(), path))
        if not handlers:
            return make_response(404, {"error": "not found"}, url=url)
        handler = handlers.pop(0) if len(handlers) > 1 else handlers[0]
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            return handler(method=method, url=url, **kwargs)
        return handler

    def calls_to(self, method: str, path: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["method"] == method.upper() and c["path"] == path]


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(session: FakeSession) -> BackendClient:
    return BackendClient(BASE, session=session, timeout=5)
