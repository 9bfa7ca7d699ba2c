"""Persistent state: the request log and response cache documents.

Both documents live as JSON files in one directory (by default the XDG
cache directory, see :func:`~pinproxy.config.get_cache_dir`):

* ``request_log.json`` -- last request time per cooldown category plus
  the fingerprint of the most recent request.
* ``response_cache.json`` -- fingerprint to cached response.

Documents are created lazily: the first :meth:`StateStore.load` of a
missing file writes the kind's default and returns it. Every save rewrites
the whole file atomically (see :func:`~pinproxy.config.atomic_write`).

A document that cannot be read or parsed, or a request log whose timestamps
are not integers, is treated like a missing one and recreated with defaults.
A document that cannot be *written* raises
:class:`~pinproxy.exceptions.StoreError`.

The store assumes a single writer in a single process; there is no file
locking.
"""

from __future__ import annotations

import enum
import json
from pathlib import Path
from typing import Any, Iterable

from pydantic import ValidationError

from pinproxy.config import atomic_write
from pinproxy.exceptions import StoreError
from pinproxy.models import GLOBAL_CATEGORY, RequestLog
from pinproxy.output import debug, warning


class StoreKind(str, enum.Enum):
    """The two documents kept by :class:`StateStore`."""

    REQUEST_LOG = "request_log"
    RESPONSE_CACHE = "response_cache"

    @property
    def filename(self) -> str:
        return f"{self.value}.json"


class StateStore:
    """Load, save, and reset the JSON state documents in *directory*.

    Args:
        directory: Directory holding the documents. Created on first use.
        categories: Methods with their own cooldown entry. Each gets a
            ``last-<method>`` timestamp in the default request log, next to
            ``last-global``.

    Example::

        store = StateStore("/var/cache/pinproxy", categories=["posts/all"])
        log = store.load(StoreKind.REQUEST_LOG)
        # {"last-global": 0, "last-posts/all": 0}
    """

    def __init__(self, directory: str | Path, categories: Iterable[str] = ()) -> None:
        self._directory = Path(directory)
        self._categories = [c for c in categories if c != GLOBAL_CATEGORY]

    @property
    def directory(self) -> Path:
        return self._directory

    def path(self, kind: StoreKind) -> Path:
        """The file backing *kind*."""
        return self._directory / kind.filename

    def default(self, kind: StoreKind) -> dict[str, Any]:
        """Return a fresh default document for *kind*."""
        if kind is StoreKind.REQUEST_LOG:
            document = {f"last-{GLOBAL_CATEGORY}": 0}
            for category in self._categories:
                document[f"last-{category}"] = 0
            return document
        return {}

    def load(self, kind: StoreKind) -> dict[str, Any]:
        """Read the document for *kind*, creating it with defaults if needed.

        Returns:
            The parsed JSON object.

        Raises:
            StoreError: If a default document had to be written and the
                write failed.
        """
        path = self.path(kind)
        if not path.is_file():
            debug(f"Creating {path}")
            return self.reset(kind)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            warning(f"Unreadable {kind.filename} ({exc}); recreating with defaults")
            return self.reset(kind)
        if not isinstance(data, dict):
            warning(f"{kind.filename} does not hold a JSON object; recreating with defaults")
            return self.reset(kind)
        if kind is StoreKind.REQUEST_LOG:
            try:
                RequestLog.from_document(data)
            except ValidationError as exc:
                warning(
                    f"Invalid entry in {kind.filename} ({exc.error_count()} errors); "
                    "recreating with defaults"
                )
                return self.reset(kind)
        return data

    def save(self, kind: StoreKind, document: dict[str, Any]) -> None:
        """Rewrite the document for *kind*.

        Raises:
            StoreError: If the document cannot be serialised or written.
        """
        path = self.path(kind)
        try:
            text = json.dumps(document, ensure_ascii=False)
            atomic_write(path, text + "\n")
        except (OSError, TypeError, ValueError) as exc:
            raise StoreError(f"Cannot write {path}: {exc}") from exc

    def reset(self, kind: StoreKind) -> dict[str, Any]:
        """Overwrite the document for *kind* with its default and return it."""
        document = self.default(kind)
        self.save(kind, document)
        return document
