"""
Ledger file access.

Provides the on-disk layout and the write primitives for the usage ledger.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

SUMMARY_FILENAME = "user_summaries.json"


def daily_log_path(logs_dir: Path, date: str) -> Path:
    """Path of the NDJSON log for a UTC calendar date (YYYY-MM-DD)."""
    return logs_dir / f"usage-{date}.jsonl"


def summary_path(logs_dir: Path) -> Path:
    return logs_dir / SUMMARY_FILENAME


def read_json_document(path: Path) -> Dict[str, Any]:
    """Load a JSON object from disk.

    A missing, unreadable or malformed document is treated as empty.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def write_json_document(path: Path, data: Dict[str, Any]) -> None:
    """Replace a JSON document atomically (write new file, then rename).

    Readers see either the old or the new document, never a partial one.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def append_line(path: Path, line: str) -> None:
    """Append one line to a file, creating it (and its directory) if needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'a', encoding='utf-8') as f:
        f.write(line.rstrip("\n") + "\n")
