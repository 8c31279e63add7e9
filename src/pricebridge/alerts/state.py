from __future__ import annotations
import math
from dataclasses import dataclass, replace
from typing import Any, Optional

def _finite(key: str, v) -> float:
    try:
        f = float(v)
    except OverflowError:
        raise ValueError(f"{key}: number out of range")
    if not math.isfinite(f):
        raise ValueError(f"{key}: expected a finite number, got {v!r}")
    return f

def _opt_float(d: dict, key: str) -> Optional[float]:
    v = d.get(key)
    if v is None:
        return None
    if isinstance(v, bool) or not isinstance(v, (int, float, str)):
        raise ValueError(f"{key}: expected number, got {type(v).__name__}")
    return _finite(key, v)

def _opt_int(d: dict, key: str) -> Optional[int]:
    v = d.get(key)
    if v is None:
        return None
    if isinstance(v, bool) or not isinstance(v, (int, float, str)):
        raise ValueError(f"{key}: expected integer, got {type(v).__name__}")
    return int(_finite(key, v))

@dataclass(slots=True)
class NotificationState:
    """
    What the chat channel currently shows.
      - previous_price:      last price actually published
      - message_id:          id of the displayed message; None -> must create one
      - last_24h_price/_ts:  rolling 24h baseline (ts in epoch ms), refreshed together
    """
    previous_price: Optional[float] = None
    message_id: Optional[str] = None
    last_24h_price: Optional[float] = None
    last_24h_ts: Optional[int] = None

    def with_baseline(self, price: float, ts_ms: int) -> "NotificationState":
        return replace(self, last_24h_price=price, last_24h_ts=ts_ms)

    def copy(self) -> "NotificationState":
        return replace(self)

    # JSON keys stay camelCase so existing price_data.json files keep loading
    def to_dict(self) -> dict[str, Any]:
        return {
            "previousPrice": self.previous_price,
            "messageId": self.message_id,
            "last24hPrice": self.last_24h_price,
            "last24hTimestamp": self.last_24h_ts,
        }

    @classmethod
    def from_dict(cls, d: Any) -> "NotificationState":
        if not isinstance(d, dict):
            raise ValueError(f"state must be a JSON object, got {type(d).__name__}")
        mid = d.get("messageId")
        if mid is not None and not isinstance(mid, (str, int)):
            raise ValueError(f"messageId: expected string, got {type(mid).__name__}")
        return cls(
            previous_price=_opt_float(d, "previousPrice"),
            message_id=str(mid) if mid not in (None, "") else None,
            last_24h_price=_opt_float(d, "last24hPrice"),
            last_24h_ts=_opt_int(d, "last24hTimestamp"),
        )
