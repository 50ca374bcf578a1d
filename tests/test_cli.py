from typing import Any

import httpx
import pytest
from typer.testing import CliRunner

import cli

runner = CliRunner()

SERVER = "http://quip.test"


@pytest.fixture
def requests(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    recorded: list[dict[str, Any]] = []

    def fake_post(server: str, path: str, **kwargs: Any) -> dict[str, Any]:
        call = {"server": server, "path": path, **kwargs}
        if "files" in kwargs:
            name, fh = kwargs["files"]["file"]
            call["uploaded"] = (name, fh.read())
            recorded.append(call)
            return {
                "id": "abc",
                "filename": name,
                "size": 5,
                "download": "/api/file/abc",
                "info": "/api/file/abc/info",
            }
        recorded.append(call)
        return {"id": "xyz", "language": kwargs["json"]["language"] or "python", "raw": "/api/paste/xyz/raw"}

    monkeypatch.setattr(cli, "post", fake_post)
    return recorded


def test_existing_path_is_uploaded(requests, tmp_path):
    report = tmp_path / "report.txt"
    report.write_bytes(b"hello")

    result = runner.invoke(cli.app, [str(report), "--ttl", "2h", "--max-uses", "1", "--server", SERVER])

    assert result.exit_code == 0, result.output
    [call] = requests
    assert call["path"] == "/api/file"
    assert call["data"] == {"max_downloads": "1", "ttl": "2h"}
    assert call["uploaded"] == ("report.txt", b"hello")
    assert f"curl -J -O {SERVER}/api/file/abc" in result.stdout


def test_text_argument_becomes_a_paste(requests):
    result = runner.invoke(cli.app, ["not a file on disk", "-l", "text", "--server", SERVER + "/"])

    assert result.exit_code == 0, result.output
    [call] = requests
    assert call["server"] == SERVER
    assert call["path"] == "/api/paste"
    assert call["json"] == {
        "content": "not a file on disk",
        "language": "text",
        "title": None,
        "ttl": None,
        "max_views": -1,
    }
    assert f"curl {SERVER}/api/paste/xyz/raw" in result.stdout


def test_piped_stdin_becomes_a_paste(requests):
    result = runner.invoke(cli.app, ["--ttl", "30m", "--server", SERVER], input="print('hi')\n")

    assert result.exit_code == 0, result.output
    [call] = requests
    assert call["json"]["content"] == "print('hi')\n"
    assert call["json"]["ttl"] == "30m"
    assert "Created paste xyz (python)" in result.stdout


def test_server_errors_exit_nonzero(monkeypatch):
    def refusing_post(server: str, path: str, **kwargs: Any) -> dict[str, Any]:
        raise cli.ShareError("400: content must not be empty")

    monkeypatch.setattr(cli, "post", refusing_post)

    result = runner.invoke(cli.app, ["", "--server", SERVER], input="")

    assert result.exit_code == 1
    assert "content must not be empty" in result.output


def test_post_reports_error_body(monkeypatch):
    def fake_httpx_post(url: str, **kwargs: Any) -> httpx.Response:
        assert url == f"{SERVER}/api/paste"
        return httpx.Response(
            429,
            json={"error": {"code": "limit_exceeded", "message": "paste xyz: usage limit reached"}},
            request=httpx.Request("POST", url),
        )

    monkeypatch.setattr(cli.httpx, "post", fake_httpx_post)

    with pytest.raises(cli.ShareError, match="429: paste xyz: usage limit reached"):
        cli.post(SERVER, "/api/paste", json={"content": "x"})


def test_post_reports_unreachable_server(monkeypatch):
    def failing_httpx_post(url: str, **kwargs: Any) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=httpx.Request("POST", url))

    monkeypatch.setattr(cli.httpx, "post", failing_httpx_post)

    with pytest.raises(cli.ShareError, match="cannot reach"):
        cli.post(SERVER, "/api/file")
