"""Typer-based CLI entry point."""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich import print
from rich.console import Console
from rich.table import Table

from rendercache.application.services.context_factory import ThumbnailContextFactory
from rendercache.application.use_cases.prepare_thumbnails import (
    PrepareThumbnailsRequest,
    PrepareThumbnailsUseCase,
)
from rendercache.di.bootstrap import create_container
from rendercache.di.container import Container
from rendercache.domain.models import PixelSet
from rendercache.domain.repositories import IUpdateService
from rendercache.errors import ConfigError, MetadataPreconditionError, RenderCacheError
from rendercache.infrastructure.db.pool import ConnectionPool
from rendercache.settings.loader import RuntimeSettings, load_settings
from rendercache.utils.console_logger import ensure_console_logger

app = typer.Typer(help="Batch-prepare thumbnail metadata for pixel sets")

_state: dict = {"settings_path": None, "verbose": False}


def _handle_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ConfigError as exc:
            typer.echo(f"Configuration error: {exc}", err=True)
            raise typer.Exit(2) from exc
        except RenderCacheError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1) from exc

    return wrapper


def _settings() -> RuntimeSettings:
    settings = load_settings(_state["settings_path"])
    level = logging.DEBUG if _state["verbose"] else getattr(logging, settings.log_level)
    ensure_console_logger(logging.getLogger("rendercache"), "rendercache-cli", level=level)
    return settings


def _container() -> Container:
    return create_container(_settings())


@app.callback()
def main(
    settings: Optional[Path] = typer.Option(None, "--settings", help="Settings JSON file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    _state["settings_path"] = settings
    _state["verbose"] = verbose


@app.command("init-db")
@_handle_errors
def init_db() -> None:
    """Create the database schema if it does not exist."""

    container = _container()
    pool = container.resolve(ConnectionPool)
    print(f"[green]Database ready at {pool.db_path}")


@app.command("register-pixels")
@_handle_errors
def register_pixels(
    pixels_id: int = typer.Argument(..., help="Pixel set id"),
    width: int = typer.Argument(..., min=1),
    height: int = typer.Argument(..., min=1),
    owner: int = typer.Option(..., "--owner", help="Owning user id"),
) -> None:
    """Insert or update a pixel set record."""

    container = _container()
    container.resolve(IUpdateService).save_all(
        [PixelSet(id=pixels_id, size_x=width, size_y=height, owner_id=owner)]
    )
    print(f"[green]Registered pixel set {pixels_id} ({width}x{height}) for user {owner}")


@app.command()
@_handle_errors
def prepare(
    pixels_ids: List[int] = typer.Argument(..., help="Pixel set ids"),
    user: int = typer.Option(..., "--user", help="Acting user id"),
    size: Optional[int] = typer.Option(None, "--size", help="Longest thumbnail side"),
    width: Optional[int] = typer.Option(None, "--width"),
    height: Optional[int] = typer.Option(None, "--height"),
    create_settings: bool = typer.Option(True, "--create-settings/--no-create-settings"),
) -> None:
    """Prepare settings and thumbnail metadata, then report cache status."""

    if (width is None) != (height is None):
        raise typer.BadParameter("--width and --height go together")
    container = _container()
    settings = container.resolve(RuntimeSettings)
    use_case = container.resolve(PrepareThumbnailsUseCase)
    response = use_case.execute(PrepareThumbnailsRequest(
        user_id=user,
        pixels_ids=tuple(pixels_ids),
        longest_side=size or settings.default_longest_side,
        dimensions=(width, height) if width is not None else None,
        create_missing_settings=create_settings,
    ))
    if not response.success:
        typer.echo(f"Error: {response.error}", err=True)
        raise typer.Exit(1)

    table = Table(title=f"Thumbnails for user {user}" + (" (restricted)" if response.restricted else ""))
    for column in ("pixels", "settings", "thumbnail", "size", "stale", "cached"):
        table.add_column(column)
    for status in response.statuses:
        table.add_row(
            str(status.pixels_id),
            "yes" if status.has_settings else "no",
            str(status.thumbnail_id) if status.thumbnail_id is not None else "-",
            f"{status.width}x{status.height}" if status.has_metadata else "-",
            "-" if status.stale is None else ("yes" if status.stale else "no"),
            "yes" if status.cached else "no",
        )
    Console().print(table)
    if response.reset_settings_ids:
        print(f"[yellow]Created default settings for {len(response.reset_settings_ids)} pixel sets")


@app.command()
@_handle_errors
def stale(
    pixels_id: int = typer.Argument(...),
    user: int = typer.Option(..., "--user", help="Acting user id"),
    size: Optional[int] = typer.Option(None, "--size", help="Longest thumbnail side"),
) -> None:
    """Exit with status 1 when the thumbnail of PIXELS_ID must be re-rendered."""

    container = _container()
    settings = container.resolve(RuntimeSettings)
    ctx = container.resolve(ThumbnailContextFactory).create(user)
    ctx.prepare_settings({pixels_id})
    ctx.prepare_metadata({pixels_id}, size or settings.default_longest_side)
    try:
        needs_render = not ctx.is_thumbnail_image_cached(pixels_id)
    except MetadataPreconditionError as exc:
        typer.echo(f"Unknown: {exc}", err=True)
        raise typer.Exit(2) from exc
    if needs_render:
        print(f"[yellow]Pixel set {pixels_id} needs rendering")
        raise typer.Exit(1)
    print(f"[green]Pixel set {pixels_id} is cached and current")


if __name__ == "__main__":  # pragma: no cover
    app()
