from __future__ import annotations

import time

DAY_MS = 24 * 60 * 60 * 1000  # 86_400_000


def utc_now_ms() -> int:
    """Unix epoch milliseconds (int)."""
    return time.time_ns() // 1_000_000

def ms_since(ts_past_ms: int, now_ms: int | None = None) -> int:
    """Milliseconds elapsed since ts_past_ms (may be negative if clocks moved back)."""
    now = utc_now_ms() if now_ms is None else now_ms
    return now - ts_past_ms

def window_expired(ts_ms: int | None, window_ms: int = DAY_MS, now_ms: int | None = None) -> bool:
    """True if ts_ms is unset or strictly more than window_ms old."""
    if ts_ms is None:
        return True
    return ms_since(ts_ms, now_ms) > window_ms
