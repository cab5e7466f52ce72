"""Typer CLI entrypoint for injection-app."""

import json
import logging
import sys
from pathlib import Path

import typer

from injection_app._types import InjectBackend
from injection_app.backends import has_ydotool_socket, ydotool_socket_paths
from injection_app.config import Config, ConfigError, load_config
from injection_app.injector import InjectionError, Injector
from injection_app.process import ProcessRunner
from injection_app.session import SessionProbe
from injection_app.window import focused_window_class, is_terminal_class

app = typer.Typer(help="Type text into the focused window on Linux desktops")

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if verbose:
        # basicConfig is a no-op once handlers exist
        logging.getLogger().setLevel(logging.DEBUG)


def _merge_config_overrides(
    cfg: Config,
    *,
    backend: str | None = None,
    clipboard: str | None = None,
    dry_run: bool = False,
) -> Config:
    """Apply CLI overrides to configuration.

    CLI options take precedence over config file values.

    Raises:
        ConfigError: If override values are invalid
    """
    if backend is not None:
        try:
            parsed = InjectBackend.parse(backend)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        logger.debug("Overriding backend to '%s'", parsed.value)
        cfg.injector.backend = parsed.value

    if clipboard is not None:
        logger.debug("Overriding clipboard to '%s'", clipboard)
        cfg.injector.clipboard = clipboard

    if dry_run:
        logger.debug("Enabling dry-run mode")
        cfg.injector.dry_run = True

    return cfg


@app.command("type")
def type_text(
    text: str = typer.Argument(..., help="Text to inject ('-' reads stdin)"),
    backend: str | None = typer.Option(
        None,
        "--backend",
        "-b",
        help="Backend (auto, ydotool, wtype, xdotool)",
    ),
    clipboard: str | None = typer.Option(
        None,
        "--clipboard",
        help="Clipboard port (gtk, wl-copy)",
    ),
    config: Path | None = typer.Option(
        None, "--config", help="Path to configuration file"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Log the plan without injecting"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging"
    ),
) -> None:
    """Inject TEXT into the currently focused window."""
    _setup_logging(verbose)
    try:
        cfg = load_config(config)
        cfg = _merge_config_overrides(
            cfg, backend=backend, clipboard=clipboard, dry_run=dry_run
        )
        cfg.validate()
        _setup_logging(verbose or cfg.general.verbose)

        if text == "-":
            text = sys.stdin.read()

        injector = Injector(cfg.injector)
        injector.inject(text)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        raise typer.Exit(1)
    except InjectionError as e:
        logger.error("Injection failed: %s", e)
        raise typer.Exit(1)


@app.command()
def probe(
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    json_output: bool = typer.Option(
        False, "--json", help="Output as JSON instead of table"
    ),
) -> None:
    """Report what the injection backends can see of this session."""
    _setup_logging(verbose)

    session = SessionProbe()
    socket_paths = ydotool_socket_paths()
    window_class = focused_window_class(ProcessRunner(timeout=5.0))

    report = {
        "session": session.kind().value,
        "wayland": session.has_wayland(),
        "x11": session.has_x11(),
        "ydotool_socket": has_ydotool_socket(socket_paths),
        "ydotool_socket_paths": [str(p) for p in socket_paths],
        "window_class": window_class,
        "terminal": is_terminal_class(window_class) if window_class else False,
    }

    if json_output:
        typer.echo(json.dumps(report, indent=2))
        return

    typer.echo(f"Session: {report['session']}")
    typer.echo(f"  Wayland: {report['wayland']}")
    typer.echo(f"  X11: {report['x11']}")
    typer.echo(f"ydotoold socket: {'found' if report['ydotool_socket'] else 'missing'}")
    for path in report["ydotool_socket_paths"]:
        typer.echo(f"  {path}")
    typer.echo(f"Focused window: {window_class or 'unknown'}")
    typer.echo(f"  Terminal: {report['terminal']}")


if __name__ == "__main__":
    app()
