import pytest
from web3 import Web3

from pricebridge.ingest.chain import (
    PRICE_SETTING_SELECTOR,
    PriceReader,
    PriceReaderConfig,
    function_selector,
    scale_price,
)


class _Call:
    def __init__(self, result):
        self.result = result

    def call(self):
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class _Functions:
    def __init__(self, result):
        self.result = result

    def getPrice(self):
        return _Call(self.result)


class FakeContract:
    def __init__(self, result):
        self.functions = _Functions(result)


def test_function_selector_known_value():
    assert function_selector("transfer(address,uint256)") == "0xa9059cbb"


def test_price_setting_selector_is_derived_from_signature():
    expected = "0x" + bytes(Web3.keccak(text="Price_setting(uint256)")[:4]).hex()
    assert PRICE_SETTING_SELECTOR == expected
    assert len(PRICE_SETTING_SELECTOR) == 10


def test_scale_price_18_decimals():
    assert scale_price(10**18) == 1.0
    assert scale_price(1_234_500_000_000_000_000) == pytest.approx(1.2345)
    assert scale_price(0) == 0.0
    assert scale_price(5, decimals=1) == 0.5


@pytest.mark.asyncio
async def test_reader_scales_contract_value():
    reader = PriceReader(PriceReaderConfig(rpc_url="http://unused"), contract=FakeContract(42_100_000_000_000_000))
    assert await reader.get_raw_price() == 42_100_000_000_000_000
    assert await reader.get_price() == pytest.approx(0.0421)


@pytest.mark.asyncio
async def test_reader_propagates_rpc_errors():
    reader = PriceReader(PriceReaderConfig(rpc_url="http://unused"), contract=FakeContract(ConnectionError("rpc down")))
    with pytest.raises(ConnectionError):
        await reader.get_price()


def test_reader_builds_web3_contract_without_network():
    reader = PriceReader(PriceReaderConfig(rpc_url="http://127.0.0.1:1"))
    assert reader._contract.address == Web3.to_checksum_address(reader.cfg.contract_address)
