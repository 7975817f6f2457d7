"""Command line interface for Assetpress."""

from __future__ import annotations

import asyncio
import logging
import pathlib
from typing import List, Optional

import typer
import yaml
from rich.console import Console

from assetpress import get_version
from assetpress.config import Config, load_config
from assetpress.core import BuildHooks, Compressor, ConfigurationError, MemoryCache
from assetpress.core.cache import Cache
from assetpress.logging import configure_logging
from assetpress.reports import render_asset_table, render_pass_table, write_pass_report
from assetpress.storage import SqliteCache, load_directory, write_directory


def _prepare_logging(
    config: Config,
    override_path: Optional[pathlib.Path],
    override_level: Optional[str],
) -> logging.Logger:
    """Configure logging based on configuration and overrides."""

    configured_path = override_path or config.logging.path
    configured_level = (override_level or config.logging.level).upper()
    return configure_logging(
        log_path=configured_path,
        level=configured_level,
        mirror_to_console=False,
    )


def _open_cache(config: Config) -> SqliteCache:
    path = config.cache.path
    if not path.is_absolute():
        path = pathlib.Path.cwd() / path
    cache = SqliteCache(path)
    cache.initialize()
    return cache


def _build_cache(config: Config, *, disabled: bool) -> Cache:
    if disabled or not config.cache.enabled:
        return MemoryCache()
    return _open_cache(config)


app = typer.Typer(
    name="assetpress",
    help="Compress build output assets with gzip, deflate or brotli.",
    no_args_is_help=True,
    add_completion=False,
)

config_app = typer.Typer(help="Configuration utilities.", no_args_is_help=True)
cache_app = typer.Typer(help="Compression cache utilities.", no_args_is_help=True)
app.add_typer(config_app, name="config")
app.add_typer(cache_app, name="cache")


def _version_callback(value: bool) -> None:
    """Print the package version and exit when requested."""

    if value:
        typer.echo(get_version())
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[pathlib.Path] = typer.Option(
        None,
        "--config",
        metavar="PATH",
        help="Path to YAML configuration file (used exclusively).",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        metavar="LEVEL",
        help="Override the configured log level (debug, info, warn, error).",
    ),
    log_path: Optional[pathlib.Path] = typer.Option(
        None,
        "--log-path",
        metavar="PATH",
        help="Write logs to this file or directory instead of stderr.",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show Assetpress version and exit.",
    ),
) -> None:
    """CLI root; loads configuration and logging."""

    ctx.ensure_object(dict)

    if ctx.invoked_subcommand == "version":
        return

    try:
        config_obj = load_config(config)
    except (FileNotFoundError, ConfigurationError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--config") from exc

    logger = _prepare_logging(config_obj, log_path, log_level)
    ctx.obj.update({"config": config_obj, "config_path": config, "logger": logger})


@app.command()
def compress(
    ctx: typer.Context,
    directory: pathlib.Path = typer.Argument(
        ...,
        exists=True,
        file_okay=False,
        dir_okay=True,
        help="Build output directory to compress in place.",
    ),
    profile: Optional[List[str]] = typer.Option(
        None,
        "--profile",
        "-p",
        metavar="NAME",
        help="Profile to run; repeat for several (default: every profile, in order).",
    ),
    no_cache: bool = typer.Option(False, "--no-cache", help="Do not read or write the cache."),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Compute everything but leave the directory untouched."
    ),
    report: Optional[pathlib.Path] = typer.Option(
        None, "--report", metavar="PATH", help="Write a Markdown report of the passes."
    ),
) -> None:
    """Compress the assets of DIRECTORY with the configured profiles."""

    config: Config = ctx.obj["config"]
    logger: logging.Logger = ctx.obj["logger"]

    try:
        profiles = config.select_profiles(profile or None)
    except KeyError as exc:
        raise typer.BadParameter(str(exc), param_hint="--profile") from exc
    if not profiles:
        raise typer.BadParameter("No compression profiles configured.", param_hint="--config")

    try:
        compressors = [Compressor(item.to_options(), logger=logger) for item in profiles]
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=2) from exc

    store = load_directory(directory)
    originals = store.list()

    hooks = BuildHooks(cache=_build_cache(config, disabled=no_cache), logger=logger)
    for compressor in compressors:
        compressor.apply(hooks)

    logger.info("Compressing %s asset(s) in %s", len(originals), directory)
    results = asyncio.run(hooks.run(store))

    if dry_run:
        typer.echo("Dry run: no files written.")
    else:
        synced = write_directory(store, directory, originals)
        typer.echo(f"Wrote {len(synced.written)} file(s), removed {len(synced.removed)} file(s).")

    console = Console()
    console.print(render_asset_table(store))
    console.print(render_pass_table(results))

    if report is not None:
        write_pass_report(results, report)
        typer.echo(f"Report written to {report}")

    for error in store.errors:
        typer.echo(f"error: {error}", err=True)
    if store.errors:
        raise typer.Exit(code=1)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Print the merged configuration as YAML."""

    config: Config = ctx.obj["config"]
    if config.loaded_from:
        typer.echo("# Loaded from: " + ", ".join(config.loaded_from))
    typer.echo(yaml.safe_dump(dict(config.model_dump()), sort_keys=False).rstrip())


@cache_app.command("stats")
def cache_stats(ctx: typer.Context) -> None:
    """Show the number and size of cached compression results."""

    cache = _open_cache(ctx.obj["config"])
    entries = cache.list_entries()
    accepted = sum(1 for entry in entries if entry.has_source)
    total_bytes = sum(entry.size for entry in entries)
    typer.echo(f"Cache: {cache.path}")
    typer.echo(f"Entries: {len(entries)} (accepted={accepted} rejected={len(entries) - accepted})")
    typer.echo(f"Compressed bytes: {total_bytes}")


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    """Remove every cached compression result."""

    cache = _open_cache(ctx.obj["config"])
    removed = cache.clear()
    typer.echo(f"Removed {removed} cache entr{'y' if removed == 1 else 'ies'}.")


@app.command()
def version() -> None:
    """Print the Assetpress version."""

    typer.echo(get_version())
