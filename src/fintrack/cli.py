"""fintrack CLI utilities built with Typer + Rich."""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .auth import AuthService
from .boundary import categorize, sanitize_message
from .client import ApiClient
from .config import settings
from .errors import ApiError, TransportFailure
from .storage import FileStorage, load_session

console = Console()
app = typer.Typer(help="Talk to the fintrack backend through the resilient client.")


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


_FORMAT_OPTION = typer.Option(
    OutputFormat.TEXT,
    "--format",
    "-f",
    case_sensitive=False,
    help="Output format (text or json).",
)


def _make_client() -> ApiClient:
    s = settings()
    return ApiClient(storage=FileStorage(s.storage_path))


def _parse_body(data: Optional[str]) -> Any:
    if data is None:
        return None
    try:
        return json.loads(data)
    except ValueError as exc:
        raise typer.BadParameter(f"--data must be valid JSON: {exc}") from exc


def _run(action: Callable[[ApiClient], Awaitable[Any]]) -> Any:
    async def _go():
        async with _make_client() as client:
            return await action(client)

    try:
        return asyncio.run(_go())
    except ApiError as exc:
        message = sanitize_message(exc.message)
        console.print(
            Panel(
                escape(f"[{exc.kind.value}] {exc.status} {message}"),
                title=f"Request failed ({categorize(exc)})",
                border_style="red",
            )
        )
        raise typer.Exit(code=1) from exc
    except TransportFailure as exc:
        console.print(Panel(escape(sanitize_message(str(exc))), title="Transport failure", border_style="red"))
        raise typer.Exit(code=1) from exc


def _render(payload: Any, *, title: str, output_format: OutputFormat) -> None:
    if output_format is OutputFormat.JSON:
        console.print_json(data=payload)
        return
    if isinstance(payload, dict) and payload and all(not isinstance(v, (dict, list)) for v in payload.values()):
        table = Table(title=title, show_header=True, header_style="bold blue")
        table.add_column("field")
        table.add_column("value")
        for key, value in payload.items():
            table.add_row(escape(str(key)), escape(str(value)))
        console.print(table)
        return
    if isinstance(payload, str):
        console.print(Panel(escape(payload) or "<empty>", title=title, border_style="green"))
        return
    console.print(Panel(escape(json.dumps(payload, indent=2)), title=title, border_style="green"))


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log request attempts and retries."),
):
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(message)s", handlers=[RichHandler(console=console)], force=True)


@app.command()
def get(path: str = typer.Argument(..., help="API path, e.g. /budgets."), output_format: OutputFormat = _FORMAT_OPTION):
    """Send a GET request."""
    payload = _run(lambda client: client.get(path))
    _render(payload, title=f"GET {path}", output_format=output_format)


@app.command()
def post(
    path: str = typer.Argument(..., help="API path."),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="JSON request body."),
    output_format: OutputFormat = _FORMAT_OPTION,
):
    """Send a POST request."""
    body = _parse_body(data)
    payload = _run(lambda client: client.post(path, body))
    _render(payload, title=f"POST {path}", output_format=output_format)


@app.command()
def put(
    path: str = typer.Argument(..., help="API path."),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="JSON request body."),
    output_format: OutputFormat = _FORMAT_OPTION,
):
    """Send a PUT request."""
    body = _parse_body(data)
    payload = _run(lambda client: client.put(path, body))
    _render(payload, title=f"PUT {path}", output_format=output_format)


@app.command()
def delete(path: str = typer.Argument(..., help="API path."), output_format: OutputFormat = _FORMAT_OPTION):
    """Send a DELETE request."""
    payload = _run(lambda client: client.delete(path))
    _render(payload, title=f"DELETE {path}", output_format=output_format)


@app.command()
def health():
    """Check that the backend is reachable."""
    status = _run(lambda client: client.health_check())
    console.print(Panel(escape(status), title="Health", border_style="green"))


@app.command()
def login(
    email: str = typer.Argument(..., help="Account email."),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Account password."),
):
    """Sign in and store the session locally."""
    session = _run(lambda client: AuthService(client).login(email, password))
    console.print(f"Signed in as [bold]{session.user_id or email}[/bold]")


@app.command()
def logout():
    """Sign out and forget the stored session."""
    _run(lambda client: AuthService(client).logout())
    console.print("Signed out.")


@app.command()
def whoami():
    """Show the stored session (without the token)."""
    session = load_session(FileStorage(settings().storage_path))
    if session is None:
        console.print("Not signed in.")
        raise typer.Exit(code=1)
    _render(
        {
            "user_id": session.user_id,
            "expires_at": session.expires_at,
            "onboarding_completed": session.onboarding_completed,
            "refresh_token": "stored" if session.refresh_token else "none",
        },
        title="Session",
        output_format=OutputFormat.TEXT,
    )


@app.command("config")
def show_config(
    base_url: Optional[str] = typer.Option(None, help="Backend base URL."),
    max_retries: Optional[int] = typer.Option(None, help="Retry budget per request."),
):
    """Show shell commands to export client settings."""

    exports: List[str] = []
    if base_url:
        exports.append(f"export FINTRACK_BASE_URL={base_url}")
    if max_retries is not None:
        exports.append(f"export FINTRACK_MAX_RETRIES={max_retries}")

    if not exports:
        s = settings()
        exports = [
            f"export FINTRACK_BASE_URL={s.base_url}",
            f"export FINTRACK_MAX_RETRIES={s.max_retries}",
            "export FINTRACK_STORAGE_PATH=<optional-session-file>",
        ]

    console.print(Panel("\n".join(exports), title="Add these to your shell", border_style="cyan"))


def main():  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
