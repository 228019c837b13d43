"""
Shared fixtures: an in-memory fake server behind the client's session factory
"""

import io
import json
from typing import Any, Dict, List, Optional, Tuple

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from rest_adapter.credentials import CredentialHolder
from rest_adapter.http_client import HTTPClient


BASE_URL = 'https://api.example.com'


def build_response(status_code: int = 200, body: Any = b'', headers: Optional[Dict[str, str]] = None,
                   reason: Optional[str] = 'OK', url: str = '') -> requests.Response:
    """Build a real requests.Response whose raw stream serves the given body"""
    if isinstance(body, (dict, list)):
        body = json.dumps(body).encode('utf-8')
    elif isinstance(body, str):
        body = body.encode('utf-8')

    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response.headers = CaseInsensitiveDict(headers or {})
    response.raw = io.BytesIO(body)
    response.url = url
    return response


class FakeSession:
    """Stands in for requests.Session for exactly one call"""

    def __init__(self, server: 'FakeServer'):
        self.server = server
        self.close_count = 0

    def request(self, method, url, headers=None, data=None, stream=False, timeout=None):
        self.server.requests.append({
            'method': method,
            'url': url,
            'headers': dict(headers or {}),
            'data': data,
            'stream': stream,
            'timeout': timeout
        })
        route = self.server.routes.get((method, url))
        if route is None:
            raise requests.exceptions.ConnectionError(f"no route to {method} {url}")
        status_code, body, headers, reason = route
        response = build_response(status_code, body, headers, reason, url)
        self.server.responses.append(response)
        return response

    def close(self):
        self.close_count += 1


class FakeServer:
    """Routes (method, url) to canned responses and records every request"""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Tuple[int, Any, Dict[str, str], Optional[str]]] = {}
        self.requests: List[Dict[str, Any]] = []
        self.responses: List[requests.Response] = []
        self.sessions: List[FakeSession] = []

    def add(self, method: str, url: str, status_code: int = 200, body: Any = b'',
            headers: Optional[Dict[str, str]] = None, reason: Optional[str] = 'OK') -> None:
        self.routes[(method, url)] = (status_code, body, headers or {}, reason)

    def session_factory(self) -> FakeSession:
        session = FakeSession(self)
        self.sessions.append(session)
        return session


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def credentials():
    return CredentialHolder('test_token_123')


@pytest.fixture
def client(server, credentials):
    return HTTPClient(BASE_URL, credentials, timeout=5, session_factory=server.session_factory)
