"""Protocol IO helpers with atomic writes."""

from __future__ import annotations

import json
import os
import uuid
from pathlib import Path
from typing import Any

TEMP_PREFIX = ".tmp-"


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def is_temp_name(name: str) -> bool:
    return name.startswith(TEMP_PREFIX)


def is_entry_name(name: str) -> bool:
    """True for the non-temporary ``*.json`` names readers and the watcher track."""
    return name.endswith(".json") and not is_temp_name(name)


def write_json_atomic(path: Path, data: Any) -> None:
    """Serialize *data* to a uniquely named temp file beside *path*, then rename it into place.

    The temp file is removed if anything fails before the rename; the
    original exception is re-raised.
    """
    ensure_parent(path)
    tmp = path.parent / f"{TEMP_PREFIX}{uuid.uuid4().hex}.json"
    payload = json.dumps(data, indent=2, sort_keys=False) + "\n"
    try:
        with tmp.open("w", encoding="utf-8") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def list_entry_names(directory: Path) -> list[str]:
    """Sorted non-temporary JSON entry names, or ``[]`` when *directory* is absent."""
    try:
        names = os.listdir(directory)
    except (FileNotFoundError, NotADirectoryError):
        return []
    return sorted(n for n in names if is_entry_name(n))
