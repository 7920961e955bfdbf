"""Filesystem helpers for kanban documents.

Documents are rewritten whole on every mutation. Writes go to a temp file in
the same directory and are renamed into place, so a crash leaves either the
old or the new document on disk, never a truncated one.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, content: str) -> Path:
    """Write content to path atomically (write-to-temp, then rename)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
    return path


def write_json(path: Path, data: dict) -> Path:
    """Serialize data with two-space indentation and write it atomically."""
    logger.debug(f"Writing {path}")
    return atomic_write_text(path, json.dumps(data, indent=2) + "\n")
