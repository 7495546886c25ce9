import json

import pytest
import requests

from gapfill.errors import TransportError
from gapfill.http import HttpClient, extract_error_message


class FakeResponse:
    def __init__(self, payload=None, status_code=200, headers=None):
        self._payload = payload
        self.status_code = status_code
        self.headers = headers or {}
        self.content = b"" if payload is None else json.dumps(payload).encode("utf-8")

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append(("GET", url, headers))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def post(self, url, data=None, headers=None, timeout=None):
        self.calls.append(("POST", url, headers))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def make_client(responses, retry_max=3):
    client = HttpClient(
        base_url="http://backend.test/",
        token="secret",
        timeout=1,
        retry_max=retry_max,
        backoff_base=0.0,
        backoff_max=0.0,
    )
    client.session = FakeSession(responses)
    return client


def test_extract_error_message_prefers_payload():
    assert extract_error_message({"message": "  Phone number invalid "}, "fallback") == "Phone number invalid"
    assert extract_error_message({"message": ""}, "fallback") == "fallback"
    assert extract_error_message({"error": "x"}, "fallback") == "fallback"
    assert extract_error_message(None, "fallback") == "fallback"


def test_get_retries_gateway_errors_then_succeeds():
    client = make_client([FakeResponse(None, 503), FakeResponse({"id": 5})])

    assert client.get_json("/employees/external/1") == {"id": 5}
    assert len(client.session.calls) == 2
    assert client.session.calls[0][1] == "http://backend.test/employees/external/1"


def test_get_without_retry_makes_one_call():
    client = make_client([FakeResponse({"message": "busy"}, 503)])

    with pytest.raises(TransportError) as excinfo:
        client.get_json("/employees/external/1", retry=False)

    assert excinfo.value.message == "busy"
    assert len(client.session.calls) == 1


def test_post_is_single_shot_on_network_error():
    client = make_client([requests.ConnectionError("connection refused")])

    with pytest.raises(TransportError) as excinfo:
        client.post_json("/sms/client/1", {"message": "hi"})

    assert "connection refused" in excinfo.value.message
    assert len(client.session.calls) == 1


def test_empty_success_body_returns_empty_dict():
    client = make_client([FakeResponse(None, 204)])

    assert client.post_json("/sms/client/1", {"message": "hi"}) == {}


def test_bearer_token_header():
    client = make_client([FakeResponse({})])

    client.get_json("/x")

    headers = client.session.calls[0][2]
    assert headers["Authorization"] == "Bearer secret"
