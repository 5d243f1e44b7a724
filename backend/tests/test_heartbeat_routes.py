import asyncio
import base64

import httpx
import pytest
from fastapi.testclient import TestClient

from server import create_app
from routes.heartbeat_routes import validate_json_body
from relay_errors import InvalidPayloadError

HEARTBEATS = "/api/v1/users/current/heartbeats"
HEARTBEATS_BULK = "/api/v1/users/current/heartbeats.bulk"


def _answer(status, content, headers=None):
    def handler(request):
        return httpx.Response(status, headers=headers or {"Content-Type": "application/json"}, content=content)
    return handler


def test_heartbeat_relays_primary_response(client, fake_backends):
    fake_backends.route("primary.example.com", _answer(202, b'{"data":"primary success"}'))
    fake_backends.route("secondary.example.com", _answer(202, b'{"data":"secondary success"}'))

    response = client.post(
        HEARTBEATS,
        content=b'{"test":"heartbeat"}',
        headers={"User-Agent": "TestUserAgent", "Content-Type": "application/json"},
    )

    assert response.status_code == 202
    assert response.content == b'{"data":"primary success"}'
    assert response.headers["content-type"] == "application/json"

    for host, key in (("primary.example.com", "primary-key"), ("secondary.example.com", "secondary-key")):
        [request] = fake_backends.for_host(host)
        assert request.method == "POST"
        assert request.url.path == HEARTBEATS
        assert request.content == b'{"test":"heartbeat"}'
        assert request.headers["User-Agent"] == "TestUserAgent (JasonLovesDoggo/multitime)"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["Authorization"] == "Basic " + base64.b64encode(f":{key}".encode()).decode()


def test_bulk_heartbeats_relay_primary_response(client, fake_backends):
    body = b'[{"test":"heartbeat1"},{"test":"heartbeat2"}]'
    fake_backends.route("primary.example.com", _answer(202, b'{"data":"primary bulk success"}'))
    fake_backends.route("secondary.example.com", _answer(202, b'{"data":"secondary bulk success"}'))

    response = client.post(HEARTBEATS_BULK, content=body, headers={"User-Agent": "TestUserAgent"})

    assert response.status_code == 202
    assert response.content == b'{"data":"primary bulk success"}'
    for request in fake_backends.requests:
        assert request.url.path == HEARTBEATS_BULK
        assert request.content == body


def test_primary_headers_relayed_verbatim(client, fake_backends):
    fake_backends.route("primary.example.com", _answer(201, b"{}", headers=[
        ("Content-Type", "application/json"),
        ("X-RateLimit-Remaining", "99"),
        ("Set-Cookie", "a=1"),
        ("Set-Cookie", "b=2"),
    ]))
    fake_backends.route("secondary.example.com", _answer(201, b"{}", headers={"X-Secondary": "yes"}))

    response = client.post(HEARTBEATS, content=b"{}")

    assert response.status_code == 201
    assert response.headers["x-ratelimit-remaining"] == "99"
    assert response.headers.get_list("set-cookie") == ["a=1", "b=2"]
    assert "x-secondary" not in response.headers


@pytest.mark.parametrize("secondary", [
    _answer(500, b'{"error":"secondary exploded"}'),
    _answer(401, b'{"error":"bad key"}'),
    None,  # unreachable
])
def test_secondary_outcome_never_changes_response(client, fake_backends, secondary):
    fake_backends.route("primary.example.com", _answer(201, b'{"data":{"id":"1"}}'))
    if secondary is not None:
        fake_backends.route("secondary.example.com", secondary)

    response = client.post(HEARTBEATS, content=b'{"entity":"main.py"}')

    assert response.status_code == 201
    assert response.content == b'{"data":{"id":"1"}}'


def test_primary_error_status_is_relayed(client, fake_backends):
    fake_backends.route("primary.example.com", _answer(400, b'{"error":"invalid heartbeat"}'))
    fake_backends.route("secondary.example.com", _answer(201, b"{}"))

    response = client.post(HEARTBEATS, content=b"{}")

    assert response.status_code == 400
    assert response.content == b'{"error":"invalid heartbeat"}'


def test_primary_transport_failure_is_500(client, fake_backends):
    fake_backends.route("secondary.example.com", _answer(201, b"{}"))

    response = client.post(HEARTBEATS, content=b"{}")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}


def test_slow_secondary_is_drained_on_shutdown(relay_config, fake_backends, test_logger):
    finished = []

    async def slow_secondary(request):
        await asyncio.sleep(0.2)
        finished.append(request.url.host)
        return httpx.Response(201)

    fake_backends.route("primary.example.com", _answer(201, b"primary"))
    fake_backends.route("secondary.example.com", slow_secondary)

    app = create_app(relay_config, logger=test_logger, transport=fake_backends.transport())
    with TestClient(app) as test_client:
        response = test_client.post(HEARTBEATS, content=b"{}")
        assert response.content == b"primary"

    assert finished == ["secondary.example.com"]


@pytest.mark.parametrize("path", [HEARTBEATS, HEARTBEATS_BULK])
@pytest.mark.parametrize("body", [
    b"invalid json",
    b"",
    b'{"a":',
    b'{"a": NaN}',
    b"\xff\xfe{}",
    '{"entity":"a.py"}'.encode("utf-16"),
    '{"entity":"a.py"}'.encode("utf-16-le"),
    b"\xef\xbb\xbf{}",
    b'{"entity":"\xe9.py"}',
])
def test_invalid_json_is_rejected_without_calls(client, fake_backends, path, body):
    response = client.post(path, content=body)

    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid JSON"}
    assert fake_backends.requests == []


@pytest.mark.parametrize("path", [HEARTBEATS, HEARTBEATS_BULK])
@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
def test_wrong_method_is_405(client, fake_backends, path, method):
    response = client.request(method, path)

    assert response.status_code == 405
    assert fake_backends.requests == []


def test_unknown_path_is_404(client, fake_backends):
    assert client.post("/api/v1/users/current/heartbeat", content=b"{}").status_code == 404
    assert client.get("/").status_code == 404
    assert fake_backends.requests == []


@pytest.mark.parametrize("body", [b"{}", b"[]", b'[{"entity":"a.py","time":1700000000.5}]', b'"text"', b"null"])
def test_validate_json_body_accepts_documents(body):
    validate_json_body(body)


def test_validate_json_body_accepts_utf8_text():
    validate_json_body('{"entity":"café.py"}'.encode("utf-8"))


@pytest.mark.parametrize("body", [
    b"",
    b"{} {}",
    b"Infinity",
    b"{'single': 'quotes'}",
    "[]".encode("utf-32"),
    b"\xef\xbb\xbf[]",
])
def test_validate_json_body_rejects_malformed(body):
    with pytest.raises(InvalidPayloadError):
        validate_json_body(body)
