from __future__ import annotations

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

import structlog
from web3 import Web3

DEFAULT_CONTRACT_ADDRESS = "0x7F9090e31F720F6A8c0B23239b9a548e0B65D2f2"
PRICE_DECIMALS = 18

PRICE_SETTING_SIGNATURE = "Price_setting(uint256)"

PRICE_ABI: list[dict[str, Any]] = [
    {
        "inputs": [],
        "name": "getPrice",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "token_rate", "type": "uint256"}],
        "name": "Price_setting",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
]


def function_selector(signature: str) -> str:
    """0x-prefixed 4-byte selector: first 4 bytes of keccak256(signature)."""
    return "0x" + bytes(Web3.keccak(text=signature)[:4]).hex()

PRICE_SETTING_SELECTOR = function_selector(PRICE_SETTING_SIGNATURE)


def scale_price(raw: int, decimals: int = PRICE_DECIMALS) -> float:
    """Fixed-point on-chain integer (implicit 10**decimals divisor) -> float."""
    if decimals == PRICE_DECIMALS:
        return float(Web3.from_wei(int(raw), "ether"))
    return float(Decimal(int(raw)) / (Decimal(10) ** decimals))


@dataclass(slots=True)
class PriceReaderConfig:
    rpc_url: str
    contract_address: str = DEFAULT_CONTRACT_ADDRESS
    request_timeout_s: float = 20.0
    decimals: int = PRICE_DECIMALS


class PriceReader:
    """
    Reads getPrice() from the price contract over HTTP JSON-RPC.

    web3's HTTPProvider is blocking, so the call runs in a worker thread to
    keep the event loop (timer / websocket stream) responsive.

    Usage:
        reader = PriceReader(PriceReaderConfig(rpc_url=...))
        price = await reader.get_price()   # e.g. 0.0123
    """
    def __init__(self, cfg: PriceReaderConfig, contract: Optional[Any] = None):
        self.cfg = cfg
        self._log = structlog.get_logger("chain")
        if contract is None:
            w3 = Web3(Web3.HTTPProvider(cfg.rpc_url, request_kwargs={"timeout": cfg.request_timeout_s}))
            contract = w3.eth.contract(
                address=Web3.to_checksum_address(cfg.contract_address),
                abi=PRICE_ABI,
            )
        self._contract = contract

    def get_raw_price_sync(self) -> int:
        return int(self._contract.functions.getPrice().call())

    async def get_raw_price(self) -> int:
        return await asyncio.to_thread(self.get_raw_price_sync)

    async def get_price(self) -> float:
        raw = await self.get_raw_price()
        price = scale_price(raw, self.cfg.decimals)
        self._log.debug("price_read", raw=raw, price=price)
        return price
