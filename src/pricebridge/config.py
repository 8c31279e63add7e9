from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal, Mapping, Optional

from web3 import Web3

from pricebridge.ingest.chain import DEFAULT_CONTRACT_ADDRESS

Mode = Literal["poll", "events"]
MODES: tuple[str, ...] = ("poll", "events")


class ConfigError(RuntimeError):
    pass


@dataclass(slots=True)
class BridgeConfig:
    rpc_url: str
    webhook_url: str
    ws_url: Optional[str] = None
    contract_address: str = DEFAULT_CONTRACT_ADDRESS
    data_file: str = "./price_data.json"
    mode: Mode = "poll"
    poll_interval_s: float = 30.0
    reconnect_delay_s: float = 5.0
    webhook_timeout_s: float = 10.0
    log_level: str = "INFO"
    log_json: bool = False


def _truthy(v: Optional[str]) -> bool:
    return (v or "").strip().lower() in ("1", "true", "yes", "on")

def _positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        v = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if v <= 0:
        raise ConfigError(f"{name} must be > 0, got {raw!r}")
    return v


def config_from_env(env: Optional[Mapping[str, str]] = None, mode: Optional[str] = None) -> BridgeConfig:
    """
    Build BridgeConfig from environment variables (call load_dotenv() first to
    pick up a .env file). Raises ConfigError on anything missing/invalid.
    `mode` (CLI flag) overrides BRIDGE_MODE.
    """
    env = os.environ if env is None else env

    rpc_url = (env.get("POLYGON_RPC_URL") or "").strip()
    webhook_url = (env.get("WEBHOOK_URL") or "").strip()
    missing = [n for n, v in (("POLYGON_RPC_URL", rpc_url), ("WEBHOOK_URL", webhook_url)) if not v]
    if missing:
        raise ConfigError(f"{' and '.join(missing)} not set in environment")

    mode = (mode or env.get("BRIDGE_MODE") or "poll").strip().lower()
    if mode not in MODES:
        raise ConfigError(f"BRIDGE_MODE must be one of {MODES}, got {mode!r}")

    ws_url = (env.get("POLYGON_WS_URL") or "").strip() or None
    if mode == "events" and not ws_url:
        raise ConfigError("POLYGON_WS_URL is required in events mode")

    address = (env.get("CONTRACT_ADDRESS") or DEFAULT_CONTRACT_ADDRESS).strip()
    if not Web3.is_address(address):
        raise ConfigError(f"CONTRACT_ADDRESS is not a valid address: {address!r}")

    return BridgeConfig(
        rpc_url=rpc_url,
        webhook_url=webhook_url,
        ws_url=ws_url,
        contract_address=Web3.to_checksum_address(address),
        data_file=(env.get("DATA_FILE") or "./price_data.json").strip(),
        mode=mode,  # type: ignore[arg-type]
        poll_interval_s=_positive_float(env, "POLL_INTERVAL_S", 30.0),
        reconnect_delay_s=_positive_float(env, "RECONNECT_DELAY_S", 5.0),
        webhook_timeout_s=_positive_float(env, "WEBHOOK_TIMEOUT_S", 10.0),
        log_level=(env.get("LOG_LEVEL") or "INFO").strip().upper(),
        log_json=_truthy(env.get("LOG_JSON")),
    )
