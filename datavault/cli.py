"""Command line entry for the Data Vault console controller.

Usage:
    datavault config
    datavault login --email admin@example.com
    datavault whoami
    datavault logout

Notes:
    - The session is kept in DATAVAULT_SESSION_FILE (or --session-file) so
      consecutive invocations share one login.
    - `login` shows the human-verification text and asks for it back before
      the password is sent, like the login form does.
    - A local .env is loaded unless running under pytest or
      DATAVAULT_ENABLE_DOTENV is false.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from datavault.app import ConsoleApp
from datavault.config import Settings, ensure_secure_config_on_startup, load_settings
from datavault.identity_access.stores import JsonFileArea

DEFAULT_SESSION_FILE = Path.home() / ".datavault" / "session.json"


def _should_load_dotenv() -> bool:
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("DATAVAULT_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


def _settings() -> Settings:
    if _should_load_dotenv():
        load_dotenv()
    try:
        settings = load_settings()
    except ValueError as exc:
        raise click.ClickException(str(exc))
    ensure_secure_config_on_startup(settings)
    return settings


def build_app(settings: Settings, session_file: Path) -> ConsoleApp:
    return ConsoleApp(settings, area=JsonFileArea(session_file))


def _session_path(settings: Settings, option: Optional[Path]) -> Path:
    if option is not None:
        return option
    if settings.session_file:
        return Path(settings.session_file)
    return DEFAULT_SESSION_FILE


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--session-file", type=click.Path(path_type=Path), default=None, help="Where the session is stored.")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def cli(ctx: click.Context, session_file: Optional[Path], verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    settings = _settings()
    ctx.obj = {"settings": settings, "session_file": _session_path(settings, session_file)}


@cli.command("config")
@click.pass_obj
def show_config(obj: dict) -> None:
    """Print the effective configuration."""
    settings: Settings = obj["settings"]
    click.echo(f"environment: {settings.environment}")
    click.echo(f"api_url: {settings.api_url}")
    click.echo(f"http_timeout_seconds: {settings.http_timeout_seconds}")
    click.echo(f"session_file: {obj['session_file']}")


@cli.command()
@click.option("--email", prompt=True, help="Account e-mail.")
@click.option("--password", prompt=True, hide_input=True, help="Account password.")
@click.pass_obj
def login(obj: dict, email: str, password: str) -> None:
    """Log in with e-mail and password."""

    async def _run() -> None:
        async with build_app(obj["settings"], obj["session_file"]) as app:
            if app.session is not None:
                click.echo(f"Already logged in as {app.session.subject_id} ({app.session.role}).")
                return
            click.echo(f"Verification text: {app.login.gate.text}")
            typed = click.prompt("Type the verification text", default="", show_default=False)
            session = await app.login.submit_credentials(email, password, typed)
            if session is None:
                raise click.ClickException(app.login.error or "Login failed. Please try again.")
            click.echo(f"Logged in as {session.subject_id} ({session.role}).")

    asyncio.run(_run())


@cli.command()
@click.pass_obj
def whoami(obj: dict) -> None:
    """Show the stored session."""

    async def _run() -> None:
        async with build_app(obj["settings"], obj["session_file"]) as app:
            if app.session is None:
                raise click.ClickException("Not logged in.")
            click.echo(f"{app.session.subject_id} ({app.session.role})")
            menu = app.dashboard.menu if app.dashboard else []
            for view, label in menu:
                click.echo(f"  #{view}  {label}")

    asyncio.run(_run())


@cli.command()
@click.pass_obj
def logout(obj: dict) -> None:
    """Forget the stored session."""

    async def _run() -> None:
        async with build_app(obj["settings"], obj["session_file"]) as app:
            app.logout()
            click.echo("Logged out.")

    asyncio.run(_run())


def main() -> None:  # pragma: no cover - console script
    cli()


if __name__ == "__main__":  # pragma: no cover - manual entry
    main()
