"""
Shared utility functions for the compendium engine.

JSON reading for corpus files, atomic JSON writes for the index exports,
and deterministic discovery of data files inside a directory tree.

All JSON writes use atomic temp-file-then-os.replace() so that a crashed
run never leaves a half-written index file behind.
"""

import json
import logging
import os
import re
import tempfile
import unicodedata
from pathlib import Path

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# JSON I/O (atomic writes)
# ---------------------------------------------------------------------------

def read_json(path):
    """Read and parse a JSON file.

    Propagates ``OSError`` and ``json.JSONDecodeError`` so that the
    importer can report *why* a file was skipped.
    """
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)


def safe_write_json(path, data, *, indent=2):
    """Atomically write *data* as JSON to *path*.

    Uses a temporary file in the same directory followed by
    ``os.replace()`` so that readers never see a partially-written file.
    Parent directories are created if they do not exist.

    Parameters
    ----------
    path : str or pathlib.Path
        Target JSON file.
    data
        JSON-serialisable object to write.
    indent : int, optional
        JSON indentation level (default 2).
    """
    path = os.path.abspath(str(path))
    parent = os.path.dirname(path)
    os.makedirs(parent, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=indent, ensure_ascii=False)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


# ---------------------------------------------------------------------------
# File discovery
# ---------------------------------------------------------------------------

def iter_json_files(root):
    """Yield every ``*.json`` file below *root* in sorted path order.

    Sorting keeps last-write-wins deterministic when several files in the
    same tree define the same record.
    """
    root = Path(root)
    for json_path in sorted(root.rglob("*.json")):
        if json_path.is_file():
            yield json_path


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def slugify(text: str) -> str:
    """Convert a display name to a file-name friendly slug.

    Examples:
        "Goblin"             -> "goblin"
        "Bigby's Hand"       -> "bigby-s-hand"
        "Elf (High)"         -> "elf-high"
    """
    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = text.lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return re.sub(r"-+", "-", text).strip("-")
