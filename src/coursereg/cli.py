"""CLI entry point for coursereg.

Commands:
- serve: run the REST API under uvicorn
- init-db: create the database tables
- create-admin: create an administrator account
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click

from coursereg import __version__
from coursereg.auth import hash_password
from coursereg.config import ConfigError, Settings, load_settings
from coursereg.logging import get_logger, setup_logging
from coursereg.rules import ConflictError, InstructorInput, ValidationError, assert_unique_email
from coursereg.rules.validation import validate_payload
from coursereg.store import EmailExistsError, Role, Store

logger = get_logger("cli")


def _load(config_path: Path | None, verbose: bool) -> Settings:
    try:
        settings = load_settings(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    level = "DEBUG" if verbose else settings.log_level
    setup_logging(log_dir=settings.log_dir, level=level, console=True)
    return settings


config_option = click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to a YAML config file (default: $COURSEREG_CONFIG)",
)
verbose_option = click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")


@click.group()
@click.version_option(__version__)
def main() -> None:
    """coursereg - course registration and enrollment service."""
    pass


@main.command()
@config_option
@verbose_option
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address")
@click.option("--port", default=8000, type=int, show_default=True, help="Bind port")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(config_path: Path | None, verbose: bool, host: str, port: int, reload: bool) -> None:
    """Run the REST API server."""
    import uvicorn  # noqa: PLC0415

    from coursereg.api.app import create_app  # noqa: PLC0415

    settings = _load(config_path, verbose)
    click.echo(f"Serving coursereg {__version__} on http://{host}:{port}")
    if reload:
        # The reloader imports the module-level app, which reads the environment
        if config_path is not None:
            os.environ["COURSEREG_CONFIG"] = str(config_path.resolve())
        if verbose:
            os.environ["COURSEREG_LOG_LEVEL"] = "DEBUG"
        uvicorn.run("coursereg.api.app:app", host=host, port=port, reload=True)
    else:
        uvicorn.run(create_app(settings), host=host, port=port)


@main.command("init-db")
@config_option
@verbose_option
def init_db(config_path: Path | None, verbose: bool) -> None:
    """Create the database tables if they don't exist."""
    settings = _load(config_path, verbose)
    store = Store(settings.db_path)
    try:
        wal = store.database.is_wal_mode()
        foreign_keys = store.database.foreign_keys_enabled()
    finally:
        store.close()
    click.echo(
        f"Database ready at {settings.db_path} "
        f"(WAL: {'on' if wal else 'off'}, foreign keys: {'on' if foreign_keys else 'off'})"
    )


@main.command("create-admin")
@config_option
@verbose_option
@click.option("--email", prompt=True, help="Admin email address")
@click.option("--first-name", prompt=True, help="Given name")
@click.option("--last-name", prompt=True, help="Family name")
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Password (at least 6 characters)",
)
def create_admin(
    config_path: Path | None,
    verbose: bool,
    email: str,
    first_name: str,
    last_name: str,
    password: str,
) -> None:
    """Create an administrator account."""
    settings = _load(config_path, verbose)
    store = Store(settings.db_path)
    try:
        data = validate_payload(
            InstructorInput,
            {"email": email, "password": password, "firstName": first_name, "lastName": last_name},
        )
        assert_unique_email(store, data.email)
        user = store.create_user(
            email=data.email,
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            role=Role.ADMIN,
        )
    except ValidationError as e:
        for detail in e.details:
            click.echo(f"  {detail.field}: {detail.message}", err=True)
        sys.exit(1)
    except (ConflictError, EmailExistsError):
        click.echo(f"A user with email {email} already exists", err=True)
        sys.exit(1)
    finally:
        store.close()

    logger.info("Created admin account %s", user.id)
    click.echo(f"Created admin {user.email} ({user.id})")


if __name__ == "__main__":
    main()
