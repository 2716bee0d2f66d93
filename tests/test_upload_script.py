from __future__ import annotations

import sys

import pytest

from scripts import ufile_upload
from scripts.ufile_upload import read_chunks
from tests.infra.fake_transport import FakeTransport, json_response, ok
from ufile_tier.common.config import Settings
from ufile_tier.services.cloud_service import build_cloud_service


@pytest.fixture
def fake_service(monkeypatch):
    transport = FakeTransport()
    settings = Settings(UFILE_PUBLIC_KEY="pub", UFILE_PRIVATE_KEY="priv")
    service = build_cloud_service(settings, transport=transport)
    monkeypatch.setattr(ufile_upload, "build_cloud_service", lambda: service)
    monkeypatch.setattr(ufile_upload, "setup_logging", lambda level: None)
    return transport


def test_read_chunks(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"x" * 10)

    chunks = read_chunks(path, chunk_size=4)

    assert chunks == [b"xxxx", b"xxxx", b"xx"]


def test_single_put(tmp_path, monkeypatch, fake_service):
    path = tmp_path / "data.bin"
    path.write_bytes(b"hello")
    monkeypatch.setattr(sys, "argv", ["ufile_upload", "b", "k", str(path)])
    fake_service.queue(ok())

    assert ufile_upload.main() == 0
    assert fake_service.requests[0].method == "PUT"
    assert fake_service.requests[0].body == b"hello"


def test_multipart_upload(tmp_path, monkeypatch, fake_service):
    path = tmp_path / "data.bin"
    path.write_bytes(b"abcdefg")
    monkeypatch.setattr(
        sys, "argv", ["ufile_upload", "b", "k", str(path), "--multipart"]
    )
    fake_service.queue(
        json_response(200, {"UploadId": "U1", "BlkSize": 4}),
        ok(headers={"ETag": "e1"}),
        ok(headers={"ETag": "e2"}),
        ok(),
    )

    assert ufile_upload.main() == 0
    assert fake_service.requests[-1].body == b"e1,e2"


def test_delete_failure_returns_nonzero(monkeypatch, fake_service):
    monkeypatch.setattr(sys, "argv", ["ufile_upload", "b", "k", "--delete"])
    fake_service.queue(json_response(500, {"RetCode": 1, "ErrMsg": "boom"}))

    assert ufile_upload.main() == 1
