import logging
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from api.common.gating import utcnow
from api.files.controllers import files_controller
from config import Settings
from main import create_app


def build_client(tmp_path, **overrides):
    settings = Settings(
        data_dir=tmp_path,
        max_file_size=overrides.pop("max_file_size", "1KB"),
        sweep_interval_seconds=3600,
        **overrides,
    )
    app = create_app(settings)
    return TestClient(app), app


def upload(client, data=b"hello world", **form):
    return client.post(
        "/api/file",
        data=form,
        files={"file": ("hello.txt", data, "text/plain")},
    )


def test_health(tmp_path):
    client, _ = build_client(tmp_path)
    with client:
        assert client.get("/api/health").json() == {"status": "ok"}


def test_upload_info_download_delete(tmp_path):
    client, _ = build_client(tmp_path)
    with client:
        created = upload(client, ttl="2h")
        assert created.status_code == 201
        body = created.json()
        assert body["filename"] == "hello.txt"
        assert body["size"] == 11
        assert body["max_downloads"] == -1
        file_id = body["id"]

        info = client.get(f"/api/file/{file_id}/info")
        assert info.status_code == 200
        assert "storage_key" not in info.json()
        assert info.json()["downloads"] == 0

        download = client.get(f"/api/file/{file_id}")
        assert download.status_code == 200
        assert download.content == b"hello world"
        assert download.headers["content-type"].startswith("text/plain")
        assert download.headers["content-disposition"].startswith('attachment; filename="hello_')

        assert client.get(f"/api/file/{file_id}/info").json()["downloads"] == 1

        assert client.delete(f"/api/file/{file_id}").status_code == 204
        missing = client.get(f"/api/file/{file_id}/info")
        assert missing.status_code == 404
        assert missing.json()["error"]["code"] == "not_found"


def test_download_limit_maps_to_429(tmp_path):
    client, _ = build_client(tmp_path)
    with client:
        file_id = upload(client, max_downloads="1").json()["id"]

        assert client.get(f"/api/file/{file_id}").status_code == 200
        second = client.get(f"/api/file/{file_id}")
        assert second.status_code == 429
        assert second.json()["error"]["code"] == "limit_exceeded"


def test_expired_file_maps_to_410(tmp_path):
    client, app = build_client(tmp_path)
    with client:
        file_id = upload(client, ttl="1h").json()["id"]
        app.state.services.files.clock = lambda: utcnow() + timedelta(hours=2)

        expired = client.get(f"/api/file/{file_id}")
        assert expired.status_code == 410
        assert expired.json()["error"]["code"] == "expired"


def test_upload_too_large(tmp_path):
    client, _ = build_client(tmp_path)
    with client:
        response = upload(client, data=b"a" * 2048)
        assert response.status_code == 413
        assert response.json()["error"]["code"] == "payload_too_large"


def test_upload_without_file_is_bad_request(tmp_path):
    client, _ = build_client(tmp_path)
    with client:
        response = client.post("/api/file", data={"ttl": "1h"})
        assert response.status_code == 400
        assert "missing parameters" in response.json()["error"]["message"]


def test_paste_lifecycle(tmp_path):
    client, _ = build_client(tmp_path)
    with client:
        created = client.post(
            "/api/paste",
            json={"content": "print('hi')", "language": "python", "title": "greeting", "ttl": "1h"},
        )
        assert created.status_code == 201
        body = created.json()
        assert body["language"] == "python"
        paste_id = body["id"]
        assert body["raw"] == f"/api/paste/{paste_id}/raw"

        paste = client.get(f"/api/paste/{paste_id}")
        assert paste.status_code == 200
        assert paste.json()["content"] == "print('hi')"
        assert paste.json()["views"] == 1

        raw = client.get(f"/api/paste/{paste_id}/raw")
        assert raw.status_code == 200
        assert raw.text == "print('hi')"
        assert raw.headers["content-type"].startswith("text/plain")

        assert client.get(f"/api/paste/{paste_id}").json()["views"] == 3

        assert client.delete(f"/api/paste/{paste_id}").status_code == 204
        assert client.get(f"/api/paste/{paste_id}").status_code == 404


def test_paste_view_limit_and_empty_content(tmp_path):
    client, _ = build_client(tmp_path)
    with client:
        paste_id = client.post("/api/paste", json={"content": "once", "max_views": 1}).json()["id"]
        assert client.get(f"/api/paste/{paste_id}/raw").status_code == 200
        assert client.get(f"/api/paste/{paste_id}/raw").status_code == 429

        empty = client.post("/api/paste", json={"content": ""})
        assert empty.status_code == 400
        assert empty.json()["error"]["code"] == "bad_request"


def test_lifespan_starts_and_stops_sweeper(tmp_path):
    client, app = build_client(tmp_path)
    with client:
        assert app.state.sweeper.running
    assert not app.state.sweeper.running


def test_download_with_non_latin1_filename(tmp_path):
    client, _ = build_client(tmp_path)
    with client:
        created = client.post(
            "/api/file",
            data={"max_downloads": "1"},
            files={"file": ("报告.txt", b"quarterly", "text/plain")},
        )
        assert created.status_code == 201
        file_id = created.json()["id"]

        download = client.get(f"/api/file/{file_id}")
        assert download.status_code == 200
        assert download.content == b"quarterly"
        disposition = download.headers["content-disposition"]
        assert disposition.startswith("attachment; filename*=utf-8''%E6%8A%A5%E5%91%8A_")
        assert disposition.endswith(".txt")

        assert client.get(f"/api/file/{file_id}/info").json()["downloads"] == 1


def test_download_closes_stream_when_response_cannot_be_built(tmp_path, monkeypatch):
    client, app = build_client(tmp_path)
    with client:
        file_id = upload(client).json()["id"]
        blob_store = app.state.services.files.blob_store
        opened = []
        original_get = blob_store.get

        async def tracking_get(key):
            stream = await original_get(key)
            opened.append(stream)
            return stream

        def broken_header(_):
            raise RuntimeError("cannot build header")

        monkeypatch.setattr(blob_store, "get", tracking_get)
        monkeypatch.setattr(files_controller, "content_disposition", broken_header)

        with pytest.raises(RuntimeError, match="cannot build header"):
            client.get(f"/api/file/{file_id}")
        [stream] = opened
        assert stream.closed


def test_content_disposition_keeps_plain_names_quoted():
    assert files_controller.content_disposition("a_1.txt") == 'attachment; filename="a_1.txt"'
    assert files_controller.content_disposition("a b.txt") == "attachment; filename*=utf-8''a%20b.txt"


def test_requests_are_logged(tmp_path, caplog):
    client, _ = build_client(tmp_path)
    with client:
        caplog.set_level(logging.INFO, logger="main")
        client.get("/api/paste/missing")

    [line] = [r.getMessage() for r in caplog.records if r.name == "main" and "/api/paste/missing" in r.getMessage()]
    assert line.startswith("GET /api/paste/missing 404 ")
    assert line.endswith("testclient")
