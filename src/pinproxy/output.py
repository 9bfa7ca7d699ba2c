"""Terminal output for pinproxy: API payloads on stdout, diagnostics on stderr.

``pinproxy request posts/recent | jq`` must see nothing but the decoded
response body, so the two streams never mix:

* **stdout** carries data: response bodies (:meth:`OutputManager.format_response`)
  and the cooldown table of ``state show`` (:meth:`OutputManager.print_table`).
* **stderr** carries everything else. That covers the ``HTTP <code>``
  status line, refused requests, store recovery warnings, and the cache
  and cooldown traces printed with ``--verbose``.

Data is rendered as indented JSON (``--json``), tab-separated text
(``--plain``), or Rich markup. ``AUTO`` picks Rich for an interactive
terminal with colour enabled and plain text otherwise. Colour is off with
``--no-color``, a set ``NO_COLOR`` or ``TERM=dumb``.

Library modules do not receive a manager; they call the module-level
helpers (:func:`debug`, :func:`warning`, ...) which use the instance
installed by :func:`set_output` in :func:`~pinproxy.app.main_callback`.
"""

from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.json import JSON
from rich.table import Table


class OutputFormat(str, Enum):
    """How stdout data is rendered. ``AUTO`` is resolved at construction."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


@dataclass(frozen=True)
class _Level:
    prefix: str
    style: str
    quiet_hides: bool
    verbose_only: bool = False


_LEVELS = {
    "debug": _Level("[debug] ", "dim", quiet_hides=False, verbose_only=True),
    "info": _Level("", "", quiet_hides=True),
    "success": _Level("", "green", quiet_hides=True),
    "warning": _Level("Warning: ", "yellow", quiet_hides=False),
    "error": _Level("Error: ", "bold red", quiet_hides=False),
}


def _stdout_is_terminal() -> bool:
    return bool(getattr(sys.stdout, "isatty", None)) and sys.stdout.isatty()


def _color_disabled_by_env() -> bool:
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


def _plain_value(value: Any) -> str:
    """One tab-free cell: nested values as compact JSON, ``None`` as empty."""
    if value is None:
        return ""
    if isinstance(value, (dict, list, bool)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


class OutputManager:
    """Routes data to stdout and diagnostics to stderr in the chosen format.

    Args:
        format: Rendering for stdout data.
        no_color: Disable colour and styling.
        quiet: Hide ``info`` and ``success`` messages.
        verbose: Show ``debug`` messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _color_disabled_by_env()
        self._quiet = quiet
        self._verbose = verbose
        if format == OutputFormat.AUTO:
            rich_ok = _stdout_is_terminal() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format
        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # ------------------------------------------------------------------ #
    # stdout
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Write a decoded API body (or a status document) to stdout."""
        if self._format == OutputFormat.JSON:
            self._write(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif self._format == OutputFormat.PLAIN:
            for line in self._plain_lines(data):
                self._write(line)
        elif isinstance(data, (dict, list)):
            self._stdout.print(JSON.from_data(data, default=str))
        else:
            self._stdout.print(str(data), markup=False, highlight=False)

    def print_table(self, records: list[dict[str, Any]], title: Optional[str] = None) -> None:
        """Write *records* as a table; columns come from the first record's keys.

        JSON mode emits the records unchanged, plain mode a header line and
        one tab-separated line per record.
        """
        if self._format == OutputFormat.JSON:
            self._write(json.dumps(records, indent=2, ensure_ascii=False, default=str))
            return
        columns = list(records[0]) if records else []
        if self._format == OutputFormat.PLAIN:
            self._write("\t".join(columns))
            for record in records:
                self._write("\t".join(_plain_value(record.get(c)) for c in columns))
            return
        table = Table(title=title, header_style="bold cyan")
        for column in columns:
            table.add_column(column)
        for record in records:
            table.add_row(*(_plain_value(record.get(c)) for c in columns))
        self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # stderr
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        self._emit("info", message)

    def success(self, message: str) -> None:
        self._emit("success", message)

    def warning(self, message: str) -> None:
        """Never hidden by ``--quiet``."""
        self._emit("warning", message)

    def error(self, message: str) -> None:
        """Never hidden by ``--quiet``."""
        self._emit("error", message)

    def debug(self, message: str) -> None:
        """Only shown with ``--verbose``."""
        self._emit("debug", message)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _emit(self, level_name: str, message: str) -> None:
        level = _LEVELS[level_name]
        if level.verbose_only and not self._verbose:
            return
        if level.quiet_hides and self._quiet:
            return
        text = f"{level.prefix}{message}"
        if self._no_color:
            print(text, file=sys.stderr, flush=True)
        else:
            self._stderr.print(
                text, style=level.style or None, markup=False, highlight=False, soft_wrap=True
            )

    def _write(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def _plain_lines(self, data: Any) -> list[str]:
        if isinstance(data, dict):
            return [f"{key}\t{_plain_value(value)}" for key, value in data.items()]
        if isinstance(data, list):
            return [
                "\t".join(_plain_value(v) for v in item.values())
                if isinstance(item, dict)
                else _plain_value(item)
                for item in data
            ]
        return [_plain_value(data)]


# ------------------------------------------------------------------ #
# Process-wide instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, creating an ``AUTO`` one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the installed manager so the next call builds a fresh one."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(records: list[dict[str, Any]], title: Optional[str] = None) -> None:
    get_output().print_table(records, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
