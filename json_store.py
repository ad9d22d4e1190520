from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def read_json(path: Path) -> Any | None:
    """
    Read a JSON document from disk.

    Returns None for missing files, empty files, or invalid JSON; an unreadable
    file is logged and treated the same as a missing one.
    """
    try:
        if not path.exists():
            return None
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("JSON READ: failed to read %s: %r", path, e)
        return None
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("JSON READ: %s does not hold valid JSON; treating as empty", path)
        return None


def atomic_write_json(path: Path, payload: Any, *, indent: int = 2, sort_keys: bool = True) -> None:
    """
    Atomically write JSON to disk by writing to a temp file then replacing.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=indent, sort_keys=sort_keys, ensure_ascii=False)
        f.write("\n")
    tmp_path.replace(path)
