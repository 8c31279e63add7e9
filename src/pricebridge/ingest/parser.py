from __future__ import annotations
from typing import Optional
from pricebridge.utils.types import PriceLog

def _hex(v) -> Optional[str]:
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    if isinstance(v, str):
        s = v.lower()
        return s if s.startswith("0x") else "0x" + s
    return None

def _hex_int(v) -> Optional[int]:
    if isinstance(v, int):
        return v
    if isinstance(v, str):
        try:
            return int(v, 16) if v.lower().startswith("0x") else int(v)
        except ValueError:
            return None
    return None

def parse_log_msg(m: dict) -> Optional[PriceLog]:
    """
    Return PriceLog if `m` is a usable log object; else None.

    Accepts either a raw log ({"address", "topics", "data", ...}) or the full
    eth_subscribe notification wrapping it:
      {"jsonrpc":"2.0","method":"eth_subscription",
       "params":{"subscription":"0x..","result":{<log>}}}
    Logs flagged "removed" (chain reorg) are dropped.
    """
    if not isinstance(m, dict):
        return None
    if m.get("method") == "eth_subscription":
        m = (m.get("params") or {}).get("result")
        if not isinstance(m, dict):
            return None

    address = _hex(m.get("address"))
    topics_raw = m.get("topics")
    if address is None or not isinstance(topics_raw, list):
        return None
    if m.get("removed") is True:
        return None

    topics = [t for t in (_hex(x) for x in topics_raw) if t is not None]
    if len(topics) != len(topics_raw):
        return None

    data = _hex(m.get("data") if m.get("data") is not None else "0x")
    if data is None:
        return None

    return PriceLog(
        address=address,
        topics=topics,
        data=data,
        block_number=_hex_int(m.get("blockNumber")),
        tx_hash=_hex(m.get("transactionHash")),
    )

def is_price_setting_log(log: PriceLog, selector: str, address: Optional[str] = None) -> bool:
    """
    Filtering predicate applied before dispatch. A log belongs to the
    price-setting call when its first topic or its data starts with the
    4-byte selector. Optionally also require a contract address.
    """
    sel = selector.lower()
    if address is not None and log.address != address.lower():
        return False
    if log.topics and log.topics[0].startswith(sel):
        return True
    return log.data.startswith(sel)
