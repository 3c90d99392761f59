"""CLI application and commands for sdcpp-server."""

from __future__ import annotations

import os
from importlib.metadata import version
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from sdcpp_server.client import SdClient, SdClientError
from sdcpp_server.config import ENV_TOKEN, ConfigError, Settings, load_settings

DEFAULT_URL = "http://127.0.0.1:8080"


def _version_callback(value: bool) -> None:
    if value:
        print(f"sdcpp-server {version('sdcpp-server')}")
        raise typer.Exit


app = typer.Typer(
    name="sdcpp-server",
    help="Serve stable-diffusion.cpp image generation over an OpenAI-style HTTP API.",
    no_args_is_help=True,
)


@app.callback()
def _main(
    _version: Annotated[
        bool,
        typer.Option("--version", "-V", callback=_version_callback, is_eager=True, help="Show version and exit."),
    ] = False,
) -> None:
    """Serve stable-diffusion.cpp image generation over an OpenAI-style HTTP API."""


console = Console()


def _load_or_exit() -> Settings:
    try:
        return load_settings()
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1) from e


@app.command()
def serve(
    host: Annotated[str, typer.Option(help="Listen address.")] = "0.0.0.0",  # noqa: S104
    log_level: Annotated[str, typer.Option(help="Log level.")] = "info",
) -> None:
    """Start the HTTP server using SD_CPP_SERVER_* environment settings."""
    import uvicorn  # noqa: PLC0415

    from sdcpp_server.server import create_app  # noqa: PLC0415

    settings = _load_or_exit()
    console.print(f"[cyan]Starting stable-diffusion.cpp server on port {settings.port}...[/cyan]")
    uvicorn.run(create_app(settings), host=host, port=settings.port, log_level=log_level)


@app.command()
def config() -> None:
    """Show the effective configuration."""
    settings = _load_or_exit()

    table = Table(title="Configuration", show_header=True, header_style="bold magenta")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("port", str(settings.port))
    table.add_row("token", settings.masked_token())
    table.add_row("binary", settings.binary_path)
    table.add_row("args", " ".join(settings.args) if settings.args else "[dim]none[/dim]")
    table.add_row("models", settings.models_dir)
    table.add_row("cache", settings.cache_dir)
    table.add_row("max concurrent", str(settings.max_concurrent) if settings.max_concurrent else "unlimited")
    console.print(table)


@app.command()
def health(
    url: Annotated[str, typer.Option("-u", "--url", help="Server base URL.")] = DEFAULT_URL,
) -> None:
    """Check that a running server responds."""
    try:
        with SdClient(url, timeout=10) as client:
            data = client.health()
    except SdClientError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e
    console.print(f"[green]{data.get('status', 'unknown')}[/green] (timestamp {data.get('timestamp')})")


@app.command()
def generate(
    prompt: Annotated[str, typer.Argument(help="Text prompt for image generation.")],
    model: Annotated[str, typer.Option("-m", "--model", help="Model file name inside the models directory.")],
    output: Annotated[Path, typer.Option("-o", "--output", help="Where to write the PNG.")] = Path("output.png"),
    url: Annotated[str, typer.Option("-u", "--url", help="Server base URL.")] = DEFAULT_URL,
    token: Annotated[str | None, typer.Option(help=f"Bearer token (defaults to ${ENV_TOKEN}).")] = None,
    size: Annotated[str, typer.Option(help="Image size as WxH.")] = "512x512",
    negative_prompt: Annotated[str | None, typer.Option("-n", help="Negative prompt.")] = None,
    steps: Annotated[int, typer.Option(help="Sampling steps.")] = 20,
    cfg_scale: Annotated[float, typer.Option(help="CFG scale.")] = 7.0,
    seed: Annotated[int, typer.Option("-s", help="RNG seed (-1 for random).")] = -1,
) -> None:
    """Generate an image on a running server and save it."""
    token = token or os.environ.get(ENV_TOKEN)
    try:
        with SdClient(url, token=token) as client:
            console.print(f"[cyan]Generating image on {url}...[/cyan]")
            png = client.generate_image(
                prompt,
                model,
                size=size,
                negative_prompt=negative_prompt,
                steps=steps,
                cfg_scale=cfg_scale,
                seed=seed,
            )
    except SdClientError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e

    output.write_bytes(png)
    console.print(f"[green]Saved:[/green] {output}")
