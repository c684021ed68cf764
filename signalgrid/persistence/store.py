"""
LocalStore: named save slots on disk.

Each slot is one JSON document (same shape as an exported blueprint, minus
the export stamp) stored as ``<root>/<slot>.json``. The server auto-loads the
default slot at startup and saves it on demand.
"""
from __future__ import annotations

import json
import os
import re
from logging import getLogger
from pathlib import Path
from typing import Optional, Union

from signalgrid.core.GraphPrimitives import Graph

from .codec import loads, serialize

logger = getLogger(__name__)

DEFAULT_SLOT = "ads_logic_save"

_SLOT_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")


class StorageError(RuntimeError):
    """Raised when a slot cannot be written or read from disk."""


class LocalStore:
    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def _slot_path(self, slot: str) -> Path:
        if not _SLOT_NAME.match(slot) or slot in (".", ".."):
            raise ValueError(f"Invalid slot name {slot!r}")
        return self.root / f"{slot}.json"

    def exists(self, slot: str = DEFAULT_SLOT) -> bool:
        return self._slot_path(slot).is_file()

    def save(self, graph: Graph, slot: str = DEFAULT_SLOT) -> Path:
        """
        Write ``graph`` to ``slot``.

        The document is fully encoded before the file is touched and then
        swapped in with a rename, so a failed save leaves the previous slot
        contents intact.

        Raises:
            StorageError: On encoding or filesystem failure.
        """
        path = self._slot_path(slot)
        try:
            text = json.dumps(serialize(graph), allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Could not encode graph for slot '{slot}': {exc}") from exc

        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(text, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            raise StorageError(f"Could not write slot '{slot}' to {path}: {exc}") from exc

        logger.info("Saved %d nodes to slot '%s'", len(graph), slot)
        return path

    def load(self, slot: str = DEFAULT_SLOT) -> Optional[Graph]:
        """
        Read ``slot``. Returns None when the slot has never been saved.

        Raises:
            StorageError: If the slot file exists but cannot be read.
            SchemaError: If the slot holds a malformed document.
        """
        path = self._slot_path(slot)
        if not path.is_file():
            return None
        try:
            text = path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Could not read slot '{slot}' from {path}: {exc}") from exc

        graph = loads(text)
        logger.info("Loaded %d nodes from slot '%s'", len(graph), slot)
        return graph

    def delete(self, slot: str = DEFAULT_SLOT) -> bool:
        path = self._slot_path(slot)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageError(f"Could not delete slot '{slot}': {exc}") from exc
        return True
