"""
Registry Image Tools CLI

Commands:
- image copy: Copy an image between references
- image export: Export an image as a docker-load tar archive
- image inspect: Show an image's configuration
- layer pull: Download a single layer/blob
"""
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any, Awaitable, BinaryIO, Callable, List, Optional

import typer

from .core.types import IntegrityPolicy, RegistryConfig
from .exceptions import RegistryError
from .operations.inspect import summarize_config
from .registry import copy_image, export_image, inspect_image, pull_blob

app = typer.Typer(
    name="registry-image-tools",
    help="Copy, export and inspect images in v2 registries",
    no_args_is_help=True,
)
image_app = typer.Typer(help="Manage images", no_args_is_help=True)
layer_app = typer.Typer(help="Manage image layers/blobs", no_args_is_help=True)
app.add_typer(image_app, name="image")
app.add_typer(layer_app, name="layer")

logger = logging.getLogger(__name__)


def _config(ctx: typer.Context) -> RegistryConfig:
    return ctx.obj if isinstance(ctx.obj, RegistryConfig) else RegistryConfig.from_env()


def _run(coro: Awaitable[Any]) -> Any:
    """Run a coroutine, turning registry errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except (RegistryError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


def _write_output(output: Optional[Path], write: Callable[[BinaryIO], Awaitable[Any]]) -> Any:
    """Run ``write`` against a file, or stdout when no file was given.

    A file is removed again if the write fails, so no truncated output is left.
    """
    if output is None:
        return _run(write(sys.stdout.buffer))

    try:
        with open(output, "wb") as f:
            return _run(write(f))
    except typer.Exit:
        output.unlink(missing_ok=True)
        raise


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    timeout: Optional[int] = typer.Option(None, "--timeout", help="Request timeout in seconds"),
    plain_http: List[str] = typer.Option(
        [], "--plain-http", help="Registry host to reach over HTTP (repeatable)"
    ),
    strict: bool = typer.Option(False, "--strict", help="Fail on digest mismatches instead of warning"),
) -> None:
    """Copy, export and inspect images in v2 registries."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # aiohttp and asyncio debug output is noise unless asked for
    if not verbose:
        logging.getLogger("asyncio").setLevel(logging.WARNING)

    try:
        config = RegistryConfig.from_env(
            timeout=timeout, verify=IntegrityPolicy.STRICT if strict else None
        )
    except ValueError as e:
        raise typer.BadParameter(str(e))
    if plain_http:
        config = dataclasses.replace(
            config, plain_http=config.plain_http | frozenset(plain_http)
        )
    ctx.obj = config


@image_app.command("copy")
def image_copy(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="Source image reference"),
    target: str = typer.Argument(..., help="Target image reference"),
) -> None:
    """Copy an image, possibly between registries."""
    digest = _run(copy_image(source, target, config=_config(ctx)))
    typer.echo(digest)


@image_app.command("export")
def image_export(
    ctx: typer.Context,
    reference: str = typer.Argument(..., help="Image reference with a tag"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Archive path (default: stdout)"),
) -> None:
    """Export an image as a tar archive for docker load."""
    if output is None and sys.stdout.isatty():
        typer.echo("Error: refusing to write an archive to a terminal, use --output", err=True)
        raise typer.Exit(code=1)

    config = _config(ctx)
    result = _write_output(output, lambda out: export_image(reference, out, config=config))
    logger.debug(f"Archive config {result.entry.config}, layers {result.entry.layers}")


@image_app.command("inspect")
def image_inspect(
    ctx: typer.Context,
    reference: str = typer.Argument(..., help="Image reference"),
    summary: bool = typer.Option(False, "--summary", help="Show only the commonly used fields"),
) -> None:
    """Show the configuration of an image."""
    image_config = _run(inspect_image(reference, config=_config(ctx)))
    if summary:
        typer.echo(json.dumps(dataclasses.asdict(summarize_config(image_config)), indent=2, default=str))
    else:
        typer.echo(json.dumps(image_config, indent=2))


@layer_app.command("pull")
def layer_pull(
    ctx: typer.Context,
    reference: str = typer.Argument(..., help="Repository reference"),
    digest: str = typer.Argument(..., help="Layer/blob digest (sha256:...)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="File to write (default: stdout)"),
) -> None:
    """Download a layer/blob and write its raw bytes."""
    config = _config(ctx)
    _write_output(output, lambda out: pull_blob(reference, digest, out, config=config))


if __name__ == "__main__":
    app()
