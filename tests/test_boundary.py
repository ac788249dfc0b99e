"""
Tests for error classification at the boundary and the CLI wiring.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from perp_gateway import cli
from perp_gateway.boundary import error_response, status_for
from perp_gateway.core.errors import (
    ConfigurationError,
    IndexerQueryError,
    InsufficientLiquidityError,
    InvalidAmountError,
    PerpetualIndexOutOfBoundsError,
    QuoteError,
    SymbolNotFoundError,
    SyncRequiredError,
    TradeSubmissionError,
)

from conftest import make_settings


class TestStatus:

    @pytest.mark.parametrize("exc, status", [
        (InvalidAmountError(), 400),
        (SymbolNotFoundError(), 404),
        (PerpetualIndexOutOfBoundsError(), 404),
        (SyncRequiredError(), 409),
        (InsufficientLiquidityError(), 422),
        (QuoteError(), 502),
        (IndexerQueryError(), 503),
        (TradeSubmissionError(), 502),
        (ConfigurationError(), 500),
        (RuntimeError("boom"), 500),
    ])
    def test_status_mapping(self, exc, status):
        assert status_for(exc) == status

    def test_reason_is_primary_message(self):
        status, body = error_response(QuoteError(detail="execution reverted: oracle stale"))
        assert status == 502
        assert body == {
            "error": "Query price failed",
            "kind": "QuoteError",
            "message": "execution reverted: oracle stale",
        }

    def test_reason_without_detail(self):
        _, body = error_response(InvalidAmountError())
        assert body["message"] == body["error"] == 'Invalid "amount"'

    def test_unclassified_error(self):
        status, body = error_response(KeyError("x"))
        assert status == 500
        assert body["error"] == "Internal gateway error"
        assert body["kind"] == "InternalError"


class TestCli:

    @pytest.fixture
    def gateway(self):
        gw = MagicMock()
        gw.network.name = "arbitrum"
        gw.status.return_value = {"connection": True}
        gw.get_market = AsyncMock(return_value={"perpetualIndex": 0})
        gw.submit_trade = AsyncMock(return_value={"txHash": "0xabc"})
        gw.close = AsyncMock()
        return gw

    @pytest.fixture(autouse=True)
    def wiring(self, monkeypatch, gateway):
        monkeypatch.setattr(cli.Settings, "load", classmethod(lambda cls, **kwargs: make_settings()))
        monkeypatch.setattr(cli.Gateway, "from_settings", classmethod(lambda cls, settings: gateway))
        monkeypatch.setattr(cli, "build_logger", MagicMock())

    @pytest.mark.asyncio
    async def test_market_envelope(self, gateway, capsys):
        assert await cli.run(["market", "--symbol", "00001"]) == 0
        out = json.loads(capsys.readouterr().out)
        assert out["network"] == "arbitrum"
        assert out["perpetual"] == {"perpetualIndex": 0}
        assert "timestamp" in out and "latency" in out
        gateway.get_market.assert_awaited_once_with("00001")
        gateway.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_trade_reads_key_from_env(self, gateway, monkeypatch, capsys):
        monkeypatch.setenv("MCDEX_PRIVATE_KEY", "0xkey")
        code = await cli.run([
            "trade", "--symbol", "00001", "--amount", "-2.5", "--limit-price", "0", "--close-only", "--gas-price", "100",
        ])
        assert code == 0
        gateway.submit_trade.assert_awaited_once_with("0xkey", "00001", "-2.5", "0", True, "100")
        assert json.loads(capsys.readouterr().out)["txHash"] == "0xabc"

    @pytest.mark.asyncio
    async def test_classified_error_goes_to_stderr(self, gateway, capsys):
        gateway.get_market = AsyncMock(side_effect=SymbolNotFoundError(detail="execution reverted"))
        assert await cli.run(["market", "--symbol", "00009"]) == 1
        err = json.loads(capsys.readouterr().err)
        assert err["status"] == 404
        assert err["error"] == "Symbol not found"
        gateway.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_configuration_error_exit_code(self, monkeypatch, capsys):
        def fail(cls, **kwargs):
            raise ConfigurationError(detail="ETHEREUM_RPC_URL is not set")

        monkeypatch.setattr(cli.Settings, "load", classmethod(fail))
        assert await cli.run(["status"]) == 2
        assert json.loads(capsys.readouterr().err)["kind"] == "ConfigurationError"

    @pytest.mark.asyncio
    async def test_startup_settings_logged_after_handlers(self, monkeypatch):
        calls = []
        monkeypatch.setattr(cli, "build_logger", MagicMock(side_effect=lambda *a, **k: calls.append("build_logger")))
        monkeypatch.setattr(cli.Settings, "log_startup", lambda self: calls.append("log_startup"))
        assert await cli.run(["status"]) == 0
        assert calls == ["build_logger", "log_startup"]
