# src/storage/state_file.py
from __future__ import annotations
import json
import os
import tempfile
from pathlib import Path

import structlog

from pricebridge.alerts.state import NotificationState

log = structlog.get_logger("state_file")


def load_state(path: str | os.PathLike) -> NotificationState:
    """
    Read persisted state. Never raises: a missing file or one that can't be
    parsed into a NotificationState falls back to all-empty defaults.
    """
    p = Path(path)
    if not p.exists():
        log.info("state_file_missing_using_defaults", path=str(p))
        return NotificationState()
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
        state = NotificationState.from_dict(raw)
    except (OSError, ValueError, OverflowError) as e:
        # json.JSONDecodeError is a ValueError
        log.warning("state_file_unreadable_starting_fresh", path=str(p), err=str(e))
        return NotificationState()
    log.info("state_loaded", path=str(p), **state.to_dict())
    return state


def save_state(path: str | os.PathLike, state: NotificationState) -> None:
    """
    Overwrite the state file wholesale (pretty-printed). Writes a temp file in
    the same directory then renames it over the target.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(state.to_dict(), indent=2)
    fd, tmp = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=str(p.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp, p)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
