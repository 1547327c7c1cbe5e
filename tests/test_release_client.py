from __future__ import annotations

from typing import List, Optional

import pytest
import requests

from image_optimizer.models.errors import NetworkError, ParseError
from image_optimizer.services.updater import release_client
from image_optimizer.services.updater.release_client import ReleaseClient


# -----------------------------
# Test doubles
# -----------------------------
class FakeResponse:
    def __init__(self, payload=None, body: bytes = b"", status: int = 200, bad_json: bool = False):
        self._payload = payload
        self._body = body
        self.status_code = status
        self._bad_json = bad_json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._bad_json:
            raise ValueError("Expecting value")
        return self._payload

    def iter_content(self, chunk_size: int = 1):
        for i in range(0, len(self._body), 4):
            yield self._body[i:i + 4]


class FakeSession:
    def __init__(self, responses: List[object]):
        self._responses = list(responses)
        self.calls: List[str] = []
        self.headers: List[Optional[dict]] = []

    def get(self, url, **kwargs):
        self.calls.append(url)
        self.headers.append(kwargs.get("headers"))
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def make_client(session: FakeSession, max_retries: int = 1) -> ReleaseClient:
    return ReleaseClient("https://api.test/releases/latest", user_agent="image-optimizer/1.1.0",
                         max_retries=max_retries, session=session)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(release_client.time, "sleep", lambda _s: None)


# -----------------------------
# Tests
# -----------------------------
def test_fetch_latest_parses_release():
    session = FakeSession([FakeResponse({"tag_name": "v1.2.0", "assets": []})])

    info = make_client(session).fetch_latest()

    assert info.version_tag == "v1.2.0"
    assert session.calls == ["https://api.test/releases/latest"]
    assert session.headers[0]["User-Agent"] == "image-optimizer/1.1.0"


def test_transient_failure_is_retried():
    session = FakeSession([requests.ConnectionError("reset"), FakeResponse({"tag_name": "1.0"})])

    info = make_client(session, max_retries=3).fetch_latest()

    assert info.version_tag == "1.0"
    assert len(session.calls) == 2


def test_network_failure_after_retries():
    session = FakeSession([requests.ConnectionError("down")] * 3)

    with pytest.raises(NetworkError):
        make_client(session, max_retries=3).fetch_latest()
    assert len(session.calls) == 3


def test_http_error_status_is_network_error():
    with pytest.raises(NetworkError):
        make_client(FakeSession([FakeResponse(status=503)])).fetch_latest()


def test_non_json_body_is_parse_error():
    with pytest.raises(ParseError):
        make_client(FakeSession([FakeResponse(bad_json=True)])).fetch_latest()


def test_download_streams_body_to_file(tmp_path):
    body = b"\x7fELF" + b"\x01" * 37
    session = FakeSession([FakeResponse(body=body)])

    target = make_client(session).download("https://x/bin", tmp_path / "bin")

    assert target.read_bytes() == body
    assert session.headers[0]["Accept"] == "application/octet-stream"


def test_download_failure_is_network_error(tmp_path):
    with pytest.raises(NetworkError):
        make_client(FakeSession([requests.Timeout("slow")])).download("https://x/bin", tmp_path / "bin")
