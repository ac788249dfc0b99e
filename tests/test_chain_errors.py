"""
Tests for revert payload and reason extraction from web3 / RPC errors.
"""

from web3.exceptions import ContractLogicError

from perp_gateway.infra.chain import revert_data, revert_reason


class RpcError(Exception):
    def __init__(self, rpc_response):
        super().__init__("rpc error")
        self.rpc_response = rpc_response


def test_data_attribute():
    exc = ContractLogicError("execution reverted", data="0xdeadbeef")
    assert revert_data(exc) == "0xdeadbeef"


def test_nested_rpc_error():
    exc = RpcError({"error": {"code": 3, "message": "execution reverted", "data": {"originalError": {"data": "0x01"}}}})
    assert revert_data(exc) == "0x01"


def test_dict_argument():
    exc = ValueError({"code": -32000, "data": "0xabcd", "message": "reverted"})
    assert revert_data(exc) == "0xabcd"


def test_bytes_payload():
    exc = ContractLogicError("execution reverted", data=b"\x12\x34")
    assert revert_data(exc) == "0x1234"


def test_payload_found_through_cause():
    try:
        try:
            raise ContractLogicError("execution reverted", data="0xbeef")
        except ContractLogicError as inner:
            raise RuntimeError("wrapped") from inner
    except RuntimeError as outer:
        assert revert_data(outer) == "0xbeef"


def test_no_payload():
    assert revert_data(ConnectionError("refused")) is None
    assert revert_data(ContractLogicError("execution reverted", data="not hex")) is None


def test_reason_from_message():
    assert revert_reason(ContractLogicError("execution reverted: pool not exists")) == "execution reverted: pool not exists"


def test_reason_from_rpc_response():
    exc = RpcError({"error": {"code": -32000, "message": "insufficient funds for gas"}})
    assert revert_reason(exc) == "insufficient funds for gas"


def test_reason_from_dict_argument():
    assert revert_reason(ValueError({"code": -32000, "message": "nonce too low"})) == "nonce too low"


def test_reason_falls_back_to_type_name():
    assert revert_reason(TimeoutError()) == "TimeoutError"
