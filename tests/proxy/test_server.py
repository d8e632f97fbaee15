import json
import time
from pathlib import Path

import httpx
import pytest

pytestmark = pytest.mark.integration


def test_forwards_body_and_headers_unchanged(proxy_client, stub_backend):
    response = proxy_client.post("/", content=b"hello", headers={"x-custom": "kept"})

    assert response.status_code == 200
    assert response.content == b"backend response"
    assert response.headers["content-type"] == "text/plain"
    assert stub_backend.connection_count == 1

    forwarded = stub_backend.requests[0]
    assert forwarded.method == "POST"
    assert forwarded.url == httpx.URL("http://127.0.0.1:3030/")
    assert forwarded.content == b"hello"
    assert forwarded.headers["x-custom"] == "kept"
    assert forwarded.headers["content-length"] == "5"
    assert "connection" not in forwarded.headers


def test_response_is_tagged_with_unique_request_id(proxy_client):
    first = proxy_client.post("/", content=b"one")
    second = proxy_client.post("/", content=b"two")

    assert first.headers["x-proxy-request-id"]
    assert second.headers["x-proxy-request-id"]
    assert first.headers["x-proxy-request-id"] != second.headers["x-proxy-request-id"]


def test_backend_status_and_body_are_relayed(proxy_client, stub_backend):
    stub_backend.status_code = 404
    stub_backend.content = b"not here"

    response = proxy_client.get("/missing")

    assert response.status_code == 404
    assert response.content == b"not here"


def test_path_and_query_are_forwarded(proxy_client, stub_backend):
    proxy_client.put("/api/items/7?verbose=1&tag=a", content=b"{}")

    forwarded = stub_backend.requests[0]
    assert forwarded.method == "PUT"
    assert forwarded.url.path == "/api/items/7"
    assert forwarded.url.query == b"verbose=1&tag=a"


def test_filtered_body_is_rejected_without_contacting_backend(proxy_client, stub_backend):
    response = proxy_client.post("/", content=b"contains bad_message here")

    assert response.status_code == 401
    assert response.content == b""
    assert stub_backend.connection_count == 0


def test_filtered_string_comes_from_environment(proxy_client, stub_backend, monkeypatch):
    monkeypatch.setenv("FILTERED_STRING", "forbidden")

    assert proxy_client.post("/", content=b"bad_message").status_code == 200
    assert proxy_client.post("/", content=b"this is forbidden").status_code == 401
    assert stub_backend.connection_count == 1


def test_rejected_body_does_not_count_as_previous(proxy_client, monkeypatch):
    monkeypatch.setenv("DUPLICATE_DELAY_SECONDS", "1.0")

    proxy_client.post("/", content=b"x")
    assert proxy_client.post("/", content=b"bad_message").status_code == 401

    start = time.monotonic()
    proxy_client.post("/", content=b"x")
    assert time.monotonic() - start >= 1.0


def test_duplicate_body_is_delayed_by_default(proxy_client, stub_backend):
    proxy_client.post("/", content=b"x")

    start = time.monotonic()
    response = proxy_client.post("/", content=b"x")
    elapsed = time.monotonic() - start

    assert response.status_code == 200
    assert elapsed >= 2.0
    # The duplicate is forwarded like any other request
    assert stub_backend.connection_count == 2


def test_third_identical_request_is_not_delayed(proxy_client, monkeypatch):
    monkeypatch.setenv("DUPLICATE_DELAY_SECONDS", "1.0")

    proxy_client.post("/", content=b"x")
    start = time.monotonic()
    proxy_client.post("/", content=b"x")
    assert time.monotonic() - start >= 1.0

    start = time.monotonic()
    proxy_client.post("/", content=b"x")
    assert time.monotonic() - start < 1.0


def test_different_bodies_are_not_delayed(proxy_client, monkeypatch):
    monkeypatch.setenv("DUPLICATE_DELAY_SECONDS", "1.0")

    start = time.monotonic()
    proxy_client.post("/", content=b"x")
    proxy_client.post("/", content=b"y")
    proxy_client.post("/", content=b"x")

    assert time.monotonic() - start < 1.0


def test_empty_bodies_are_never_delayed(proxy_client, monkeypatch):
    monkeypatch.setenv("DUPLICATE_DELAY_SECONDS", "1.0")

    start = time.monotonic()
    first = proxy_client.get("/")
    second = proxy_client.get("/")

    assert first.status_code == 200
    assert second.status_code == 200
    assert time.monotonic() - start < 1.0


def test_unreachable_backend_returns_502(proxy_client, stub_backend):
    stub_backend.error = lambda request: httpx.ConnectError("Connection refused", request=request)

    response = proxy_client.post("/", content=b"hello")

    assert response.status_code == 502
    assert "Could not forward request to backend" in response.json()["detail"]


def test_policy_file_replaces_default_pipeline(proxy_client, stub_backend, monkeypatch, tmp_path):
    policy_file = tmp_path / "policy.json"
    policy_file.write_text(
        json.dumps(
            {
                "type": "SerialPolicy",
                "config": {
                    "name": "FilterOnly",
                    "policies": [
                        {"type": "ContentFilter", "config": {"filtered_string": "secret"}},
                        {"type": "SendBackendRequest", "config": {}},
                    ],
                },
            }
        )
    )
    monkeypatch.setenv("POLICY_FILEPATH", str(policy_file))

    assert proxy_client.post("/", content=b"a secret").status_code == 401
    assert proxy_client.post("/", content=b"bad_message").status_code == 200
    assert stub_backend.connection_count == 1


def test_unreadable_policy_file_returns_500(proxy_client, stub_backend, monkeypatch, tmp_path):
    monkeypatch.setenv("POLICY_FILEPATH", str(tmp_path / "absent.json"))

    response = proxy_client.post("/", content=b"hello")

    assert response.status_code == 500
    assert "Could not load main control policy" in response.json()["detail"]
    assert stub_backend.connection_count == 0


@pytest.mark.parametrize("method", ["PROPFIND", "MKCOL", "PURGE"])
def test_extension_methods_are_forwarded(proxy_client, stub_backend, method):
    response = proxy_client.request(method, "/dav/folder", content=b"hello")

    assert response.status_code == 200
    assert stub_backend.connection_count == 1
    assert stub_backend.requests[0].method == method
    assert stub_backend.requests[0].content == b"hello"


def test_non_ascii_request_header_is_forwarded_byte_for_byte(proxy_client, stub_backend):
    response = proxy_client.post("/", content=b"hello", headers={"x-name": b"caf\xe9"})

    assert response.status_code == 200
    assert (b"x-name", b"caf\xe9") in stub_backend.requests[0].headers.raw


def test_non_ascii_backend_header_is_relayed_byte_for_byte(proxy_client, stub_backend):
    stub_backend.headers = [(b"content-type", b"text/plain"), (b"x-label", "€".encode("utf-8"))]

    response = proxy_client.get("/")

    assert response.status_code == 200
    assert (b"x-label", b"\xe2\x82\xac") in response.headers.raw
    assert response.content == b"backend response"


def test_shipped_policy_file_follows_environment(proxy_client, stub_backend, monkeypatch):
    default_policy = Path(__file__).resolve().parents[2] / "policies" / "default.json"
    monkeypatch.setenv("POLICY_FILEPATH", str(default_policy))
    monkeypatch.setenv("FILTERED_STRING", "forbidden")
    monkeypatch.setenv("DUPLICATE_DELAY_SECONDS", "1.0")

    assert proxy_client.post("/", content=b"bad_message").status_code == 200
    assert proxy_client.post("/", content=b"this is forbidden").status_code == 401

    start = time.monotonic()
    proxy_client.post("/", content=b"bad_message")
    assert time.monotonic() - start >= 1.0
