"""Typer application and CLI entry point for pinproxy.

This module wires together the top-level Typer application and registers
the built-in sub-commands (``request``, ``state``, ``config``). The
library surface is :class:`~pinproxy.client.PinboardClient`; the CLI is a
thin shell around it for scripts and for inspecting or resetting the
proxy's persisted state.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, registers commands, and
invokes the Typer app. Unhandled exceptions are written to a crash log
under the data directory.

See Also:
    :mod:`pinproxy.config`: Configuration resolution.
    :mod:`pinproxy.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from pinproxy import __version__
from pinproxy.commands.config import config_app
from pinproxy.commands.request import request_command
from pinproxy.commands.state import state_app
from pinproxy.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="pinproxy",
    help="Rate-limited, caching proxy for the Pinboard API.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("request")(request_command)
app.add_typer(state_app, name="state", help="Inspect or reset the request log and response cache.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"pinproxy {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    endpoint: Optional[str] = typer.Option(
        None, "--endpoint", help="API endpoint URL."
    ),
    cache_dir: Optional[str] = typer.Option(
        None, "--cache-dir", help="Directory for the request log and response cache."
    ),
    cache_duration: Optional[int] = typer.Option(
        None, "--cache-duration", help="Seconds a cached response stays usable (0 disables)."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~pinproxy.output.OutputManager` from
    CLI flags, and stores config overrides and shared options in the Typer
    context so that sub-commands can read them via ``ctx.obj``.
    """
    from pinproxy.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["endpoint"] = endpoint
    ctx.obj["cache_dir"] = cache_dir
    ctx.obj["cache_duration"] = cache_duration
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from pinproxy.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``pinproxy`` console script.

    Unhandled :class:`~pinproxy.exceptions.PinproxyError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from pinproxy.exceptions import PinproxyError
        from pinproxy.output import error

        if isinstance(exc, PinproxyError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
