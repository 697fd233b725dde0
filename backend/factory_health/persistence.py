"""Whole-document persistence for the machine data store."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from .errors import PersistenceError

logger = logging.getLogger(__name__)


class DocumentPort(Protocol):
    """Reads and writes the full store document in one step."""

    def read(self) -> Optional[Dict[str, Any]]:  # pragma: no cover - protocol definition
        ...

    def write(self, document: Dict[str, Any]) -> None:  # pragma: no cover - protocol definition
        ...


def write_atomic(path: Path, content: bytes) -> None:
    """Replace ``path`` with ``content`` so readers never observe a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
    )
    temp_path = Path(handle.name)
    try:
        with handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise


class JsonDocumentFile:
    """JSON file holding every user's history, rewritten whole on each change."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def read(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                document = json.load(handle)
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Could not read machine data from {self.path}: {exc}") from exc
        if not isinstance(document, dict):
            raise PersistenceError(f"Machine data at {self.path} is not a JSON object.")
        return document

    def write(self, document: Dict[str, Any]) -> None:
        content = json.dumps(document, indent=2).encode("utf-8")
        try:
            write_atomic(self.path, content)
        except OSError as exc:
            raise PersistenceError(f"Could not write machine data to {self.path}: {exc}") from exc
        logger.debug("Wrote %d user histories to %s", len(document), self.path)


__all__ = ["DocumentPort", "JsonDocumentFile", "write_atomic"]
