from __future__ import annotations
from typing import Optional

from pricebridge.alerts.state import NotificationState
from pricebridge.utils.time import DAY_MS, utc_now_ms, window_expired

TOKEN = "SPLOSH"

GLYPH_UP = "⬆"
GLYPH_DOWN = "⬇"
GLYPH_FLAT = "⏺"


def pct_change(new: float, ref: Optional[float]) -> float:
    """Percent move from ref to new; 0 when there is no usable reference."""
    if not ref:
        return 0.0
    return (new - ref) / ref * 100.0

def trend_glyph(pct: float) -> str:
    if pct > 0:
        return GLYPH_UP
    if pct < 0:
        return GLYPH_DOWN
    return GLYPH_FLAT

def fmt_signed_pct(pct: float) -> str:
    # "+10.00", "-3.25", and "0.00" (never "+0.00" / "-0.00")
    s = f"{pct:+.2f}"
    if float(s) == 0.0:
        return "0.00"
    return s

def render_price_line(price: float, glyph: str, pct: float, pct_24h: float, token: str = TOKEN) -> str:
    return (
        f"🚀 {token} Price: ${price:.4f} USD {glyph} {fmt_signed_pct(pct)}% "
        f"| 24h: {fmt_signed_pct(pct_24h)}%"
    )

def format_price_update(
    new_price: float,
    state: NotificationState,
    now_ms: Optional[int] = None,
    *,
    window_ms: int = DAY_MS,
) -> tuple[str, NotificationState]:
    """
    Pure: (new_price, state) -> (display text, pending state).

    The pending state differs from `state` only in the 24h baseline, which is
    reset to (new_price, now) when unset or older than window_ms. It does NOT
    set previous_price or message_id; the publisher commits those after a
    successful send.
    """
    now = utc_now_ms() if now_ms is None else now_ms

    if state.previous_price is None:
        pct = 0.0
        glyph = GLYPH_FLAT
    else:
        pct = pct_change(new_price, state.previous_price)
        glyph = trend_glyph(pct)

    if not state.last_24h_price or window_expired(state.last_24h_ts, window_ms, now):
        pending = state.with_baseline(new_price, now)
        pct_24h = 0.0
    else:
        pending = state.copy()
        pct_24h = pct_change(new_price, state.last_24h_price)

    return render_price_line(new_price, glyph, pct, pct_24h), pending
