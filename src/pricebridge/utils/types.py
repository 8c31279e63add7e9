from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

# ---- chain-level primitives ----

@dataclass(slots=True)
class PriceLog:
    """
    Normalized contract log from an eth_subscribe("logs") notification.
    Hex fields are lowercase with 0x prefix.
    """
    address: str
    topics: list[str]
    data: str
    block_number: Optional[int] = None
    tx_hash: Optional[str] = None

# ---- supervisor ----

StreamState = Literal["idle", "connecting", "subscribed", "closed", "errored"]
