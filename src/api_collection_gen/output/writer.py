"""Collection persistence.

The document is written to a temporary file next to the target and then
moved into place, so a failed run never leaves a partially written file.
"""

import json
import os
import tempfile
from pathlib import Path

from api_collection_gen.errors import PersistenceError


def encode_collection(collection: dict) -> str:
    try:
        return json.dumps(collection, indent=4, ensure_ascii=False) + "\n"
    except (TypeError, ValueError) as e:
        raise PersistenceError(f"Cannot encode collection as JSON: {e}") from e


def save_collection(collection: dict, path: Path) -> int:
    """Write the collection to ``path``. Returns the number of bytes written."""
    text = encode_collection(collection)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PersistenceError(f"Cannot create directory {path.parent}: {e}") from e

    data = text.encode("utf-8")
    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile("wb", dir=path.parent, prefix=f".{path.name}.", delete=False) as tmp:
            tmp_name = tmp.name
            tmp.write(data)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise PersistenceError(f"Cannot write {path}: {e}") from e

    return len(data)


def format_bytes(size: int, precision: int = 2) -> str:
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(size)
    i = 0
    while value > 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, precision):g} {units[i]}"
