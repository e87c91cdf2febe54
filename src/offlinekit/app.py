"""Typer application and CLI entry point for offlinekit.

The root callback resolves the effective configuration once per invocation
and hands it to sub-commands through ``ctx.obj``. :func:`main` is the
console-script entry point declared in ``pyproject.toml``: it maps
:class:`~offlinekit.exceptions.OfflinekitError` to its exit code and writes
a crash log for anything unexpected.

See Also:
    :mod:`offlinekit.config`: Configuration precedence resolution.
    :mod:`offlinekit.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from offlinekit import __version__
from offlinekit.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="offlinekit",
    help="Send HTTP requests through an offline-first cache, retry and queue layer.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #

from offlinekit.commands.config import config_app  # noqa: E402
from offlinekit.commands.queue import queue_app  # noqa: E402
from offlinekit.commands.send import send_command  # noqa: E402

app.command("send")(send_command)
app.add_typer(queue_app, name="queue", help="Inspect, drain and clear the offline queue.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"offlinekit {__version__}")
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
        False, "--verbose", "-v", help="Enable debug output and logging."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
    queue_backend: Optional[str] = typer.Option(
        None, "--queue-backend", help="Queue store: memory, file or diskcache."
    ),
    queue_path: Optional[str] = typer.Option(
        None, "--queue-path", help="Queue file (file backend) or directory (diskcache)."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~offlinekit.output.OutputManager`, turns on
    DEBUG logging for ``--verbose``, and stores the resolved
    :class:`~offlinekit.models.GlobalConfig` and shared flags in
    ``ctx.obj``.

    An invalid configuration is stored as ``ctx.obj["config_error"]`` and
    raised by :func:`~offlinekit.commands.runtime.get_config`.
    """
    from offlinekit.config import resolve_config
    from offlinekit.exceptions import ConfigError
    from offlinekit.models import GlobalConfig
    from offlinekit.output import OutputFormat, OutputManager, set_output

    cli_format: Optional[str] = None
    if json_output:
        cli_format = OutputFormat.JSON.value
    elif plain_output:
        cli_format = OutputFormat.PLAIN.value

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    # A broken config must not lock the user out of `config reset`; the
    # error is raised when a command asks for the config.
    config: Optional[GlobalConfig] = None
    config_error: Optional[ConfigError] = None
    try:
        config = resolve_config(
            cli_queue_backend=queue_backend,
            cli_queue_path=queue_path,
            cli_format=cli_format,
        )
    except ConfigError as exc:
        config_error = exc

    fmt = OutputFormat.AUTO
    if cli_format is not None:
        fmt = OutputFormat(cli_format)
    elif config is not None and config.output.format in {f.value for f in OutputFormat}:
        fmt = OutputFormat(config.output.format)

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["config_error"] = config_error
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback under ``<data dir>/logs`` and return its path."""
    from offlinekit.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``offlinekit`` console script.

    :class:`~offlinekit.exceptions.OfflinekitError` instances cause a clean
    exit with the error's ``exit_code``. All other exceptions produce a crash
    log and a generic failure exit.

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
        from offlinekit.exceptions import OfflinekitError
        from offlinekit.output import error

        if isinstance(exc, OfflinekitError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
