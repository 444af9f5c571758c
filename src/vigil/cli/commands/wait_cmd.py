"""vigil wait — run a single condition wait from the terminal.

Exit codes: 0 matched, 1 timed out or failed, 130 interrupted (Ctrl+C sets
the cancellation token; the running wait stops on its next iteration).
"""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import typer

from vigil.core.config import configure_logging, load_config
from vigil.core.events import CLIStatusReporter
from vigil.core.exceptions import ConfigError, VigilError, WaitCancelledError
from vigil.core.models import Config, Position, Region, Spot, TextMatch, WaitOptions
from vigil.engine import SOURCE_REGISTRY
from vigil.engine.base import BaseSignalSource
from vigil.engine.clock import CancellationToken
from vigil.engine.waiter import Waiter

EXIT_CANCELLED = 130

Job = Callable[[Waiter, BaseSignalSource], Awaitable[Any]]

wait_app = typer.Typer(
    name="wait",
    help="Wait for a pixel, image or text condition.",
    no_args_is_help=True,
)

_CONFIG_OPT = typer.Option(None, "--config", "-c", help="Config file path.")
_VERBOSE_OPT = typer.Option(False, "--verbose", help="Log every poll.")


@wait_app.command(name="change")
def wait_change(
    x: int = typer.Argument(help="Window-relative x."),
    y: int = typer.Argument(help="Window-relative y."),
    timeout: int | None = typer.Option(None, "--timeout", "-t", help="Timeout in ms."),
    config_path: str | None = _CONFIG_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Wait until the pixel at (X, Y) changes colour."""

    async def job(waiter: Waiter, source: BaseSignalSource) -> bool:
        spot = await Spot.capture(source, x, y)
        return await waiter.wait_for_change(spot, timeout)

    _execute(config_path, verbose, job)


@wait_app.command(name="stasis")
def wait_stasis(
    x: int = typer.Argument(help="Window-relative x."),
    y: int = typer.Argument(help="Window-relative y."),
    timeout: int = typer.Option(10000, "--timeout", "-t", help="Timeout in ms."),
    config_path: str | None = _CONFIG_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Wait until the pixel at (X, Y) stops changing."""

    async def job(waiter: Waiter, source: BaseSignalSource) -> bool:
        spot = await Spot.capture(source, x, y)
        return await waiter.wait_for_stasis(spot, timeout)

    _execute(config_path, verbose, job)


@wait_app.command(name="stable")
def wait_stable(
    region: str | None = typer.Option(None, "--region", "-r", help="x,y,width,height"),
    timeout: int = typer.Option(10000, "--timeout", "-t", help="Timeout in ms."),
    config_path: str | None = _CONFIG_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Wait until the window (or a region of it) stops changing."""
    area = parse_region(region) if region else None

    async def job(waiter: Waiter, source: BaseSignalSource) -> bool:
        return await waiter.wait_for_screen_stable(area, timeout)

    _execute(config_path, verbose, job)


@wait_app.command(name="image")
def wait_image(
    file: str = typer.Argument(help="Template image path."),
    region: str | None = typer.Option(None, "--region", "-r", help="x,y,width,height"),
    tolerance: int | None = typer.Option(None, "--tolerance", help="Match tolerance."),
    message: str | None = typer.Option(None, "--message", "-m", help="Status line text."),
    timeout: int | None = typer.Option(None, "--timeout", "-t", help="Timeout in ms."),
    config_path: str | None = _CONFIG_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Wait until FILE appears on screen."""
    if not Path(file).is_file():
        typer.echo(typer.style(f"Image not found: {file}", fg=typer.colors.RED), err=True)
        raise typer.Exit(code=1)
    area = parse_region(region) if region else None

    async def job(waiter: Waiter, source: BaseSignalSource) -> Position | None:
        options = WaitOptions(tolerance=tolerance, message=message)
        if area is None:
            return await waiter.wait_for_image(file, timeout, options)
        # A region without a timeout is rejected by the waiter.
        return await waiter.wait_for_image_in_range(
            file, area, timeout, options  # type: ignore[arg-type]
        )

    _execute(config_path, verbose, job)


@wait_app.command(name="text")
def wait_text(
    text: str = typer.Argument(help="Text to look for."),
    region: str | None = typer.Option(None, "--region", "-r", help="x,y,width,height"),
    exact: bool = typer.Option(False, "--exact", help="Require an exact token/line match."),
    message: str | None = typer.Option(None, "--message", "-m", help="Status line text."),
    delay: int | None = typer.Option(None, "--delay", "-d", help="Poll interval in ms."),
    timeout: int | None = typer.Option(None, "--timeout", "-t", help="Timeout in ms."),
    config_path: str | None = _CONFIG_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Wait until TEXT is visible."""
    area = parse_region(region) if region else None

    async def job(waiter: Waiter, source: BaseSignalSource) -> TextMatch | None:
        options = WaitOptions(exact=exact, message=message)
        if area is None:
            return await waiter.wait_for_text(text, delay, timeout, options=options)
        return await waiter.wait_for_text_in_region(area, text, delay, timeout, options=options)

    _execute(config_path, verbose, job)


@wait_app.command(name="no-text")
def wait_no_text(
    text: str = typer.Argument(help="Text that must disappear."),
    region: str | None = typer.Option(None, "--region", "-r", help="x,y,width,height"),
    exact: bool = typer.Option(False, "--exact", help="Require an exact token/line match."),
    message: str | None = typer.Option(None, "--message", "-m", help="Status line text."),
    delay: int | None = typer.Option(None, "--delay", "-d", help="Poll interval in ms."),
    timeout: int | None = typer.Option(None, "--timeout", "-t", help="Timeout in ms."),
    config_path: str | None = _CONFIG_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Wait until TEXT is no longer visible."""
    area = parse_region(region) if region else None

    async def job(waiter: Waiter, source: BaseSignalSource) -> int | None:
        options = WaitOptions(exact=exact, message=message)
        if area is None:
            return await waiter.wait_for_no_text(text, delay, timeout, options=options)
        return await waiter.wait_for_no_text_in_region(
            area, text, delay, timeout, options=options
        )

    _execute(config_path, verbose, job)


# ----------------------------------------------------------------------
# Shared plumbing
# ----------------------------------------------------------------------


def parse_region(value: str) -> Region:
    """Parse 'x,y,width,height'."""
    parts = value.split(",")
    if len(parts) != 4:
        msg = f"Invalid region '{value}'. Expected 'x,y,width,height'"
        raise typer.BadParameter(msg)
    try:
        x, y, w, h = (int(p.strip()) for p in parts)
        return Region(x=x, y=y, width=w, height=h)
    except ValueError as e:
        msg = f"Invalid region values: '{value}'"
        raise typer.BadParameter(msg) from e


def build_source(config: Config) -> BaseSignalSource:
    source_cls = SOURCE_REGISTRY.get(config.engine.type)
    if source_cls is None:
        msg = f"Unknown signal source type: {config.engine.type}"
        raise ConfigError(msg)
    source: BaseSignalSource = source_cls(config.engine, config.matching)
    return source


def _execute(config_path: str | None, verbose: bool, job: Job) -> None:
    """Load config, run *job* with Ctrl+C wired to the token, map result to exit code."""
    token = CancellationToken()

    def _on_interrupt(signum: int, frame: Any) -> None:
        token.cancel("interrupted")

    try:
        config = load_config(config_path=Path(config_path) if config_path else None)
        configure_logging("DEBUG" if verbose else config.log_level)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    original_handler = signal.getsignal(signal.SIGINT)
    signal.signal(signal.SIGINT, _on_interrupt)
    try:
        result = asyncio.run(_run(config, token, job))
    except WaitCancelledError as e:
        typer.echo(typer.style(f"Cancelled: {e}", fg=typer.colors.YELLOW), err=True)
        raise typer.Exit(code=EXIT_CANCELLED) from None
    except VigilError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None
    finally:
        signal.signal(signal.SIGINT, original_handler)

    if result is None or result is False:
        typer.echo(typer.style("Timed out", fg=typer.colors.RED))
        raise typer.Exit(code=1)
    typer.echo(typer.style(_describe(result), fg=typer.colors.GREEN))


async def _run(config: Config, token: CancellationToken, job: Job) -> Any:
    source = build_source(config)
    reporter = CLIStatusReporter()
    waiter = Waiter(source, config.wait, token, reporter=reporter)
    await source.start()
    try:
        return await job(waiter, source)
    finally:
        reporter.clear()
        await source.stop()


def _describe(result: Any) -> str:
    if isinstance(result, Position):
        return f"Found at {result.x},{result.y}"
    if isinstance(result, TextMatch):
        return f"Found '{result.text}' at {result.x},{result.y} ({result.width}x{result.height})"
    if isinstance(result, Region):
        return f"Found in {result.x},{result.y},{result.width},{result.height}"
    if result is True:
        return "OK"
    return f"Done ({result})"
