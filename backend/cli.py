"""Command line client: share a file, inline text or piped stdin with a quip server.

    quip report.pdf --ttl 2h
    quip "some text" --language text
    cat main.py | quip --language python
"""

import sys
from pathlib import Path
from typing import Any

import httpx
import typer

DEFAULT_SERVER = "http://localhost:8000"

app = typer.Typer(help="Share files and pastes that expire", add_completion=False)


class ShareError(Exception):
    """The server refused the request or could not be reached."""


def post(server: str, path: str, **kwargs: Any) -> dict[str, Any]:
    """POST to the server and return the JSON body, raising ShareError on failure."""
    try:
        response = httpx.post(f"{server.rstrip('/')}{path}", timeout=60.0, **kwargs)
    except httpx.HTTPError as exc:
        raise ShareError(f"cannot reach {server}: {exc}") from exc
    if response.is_error:
        try:
            message = response.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            message = response.text or response.reason_phrase
        raise ShareError(f"{response.status_code}: {message}")
    return response.json()


def upload_file(server: str, path: Path, ttl: str | None, max_uses: int) -> dict[str, Any]:
    data: dict[str, Any] = {"max_downloads": str(max_uses)}
    if ttl:
        data["ttl"] = ttl
    with path.open("rb") as fh:
        return post(server, "/api/file", data=data, files={"file": (path.name, fh)})


def create_paste(
    server: str,
    content: str,
    language: str,
    title: str | None,
    ttl: str | None,
    max_uses: int,
) -> dict[str, Any]:
    payload = {
        "content": content,
        "language": language,
        "title": title,
        "ttl": ttl,
        "max_views": max_uses,
    }
    return post(server, "/api/paste", json=payload)


@app.command()
def share(
    target: str | None = typer.Argument(None, help="File to upload, or text to paste"),
    language: str = typer.Option("", "--language", "-l", help="Paste language, detected when empty"),
    title: str | None = typer.Option(None, "--title", help="Paste title"),
    ttl: str | None = typer.Option(None, "--ttl", "-t", help="Time to live, e.g. 30m, 2h, 7d"),
    max_uses: int = typer.Option(-1, "--max-uses", help="Downloads or views allowed, -1 for unlimited"),
    server: str = typer.Option(DEFAULT_SERVER, "--server", envvar="QUIP_SERVER", help="Server URL"),
) -> None:
    """Upload TARGET when it is a file, paste it as text otherwise, or paste stdin."""
    server = server.rstrip("/")
    try:
        if target and Path(target).is_file():
            result = upload_file(server, Path(target), ttl, max_uses)
            typer.secho(f"Uploaded {result['filename']} ({result['size']} bytes)", fg=typer.colors.GREEN)
            typer.echo(f"Download: curl -J -O {server}{result['download']}")
            typer.echo(f"Info:     {server}{result['info']}")
            return

        if target:
            content = target
        elif not sys.stdin.isatty():
            content = sys.stdin.read()
        else:
            typer.secho("Nothing to share: pass a file, some text, or pipe stdin", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=2)

        result = create_paste(server, content, language, title, ttl, max_uses)
        typer.secho(f"Created paste {result['id']} ({result['language']})", fg=typer.colors.GREEN)
        typer.echo(f"Raw: curl {server}{result['raw']}")
    except ShareError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


if __name__ == "__main__":
    app()
