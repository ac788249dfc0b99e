"""
Minimal ABIs for the reader, symbol service and liquidity pool contracts.

Only the entries the gateway calls are declared.
"""

from __future__ import annotations


def _arg(name: str, typ: str) -> dict:
    return {"name": name, "type": typ, "internalType": typ}


_PERPETUAL_COMPONENTS = [
    _arg("state", "uint8"),
    _arg("isMarketClosed", "bool"),
    _arg("underlyingSymbol", "string"),
    _arg("indexPrice", "int256"),
    _arg("markPrice", "int256"),
    _arg("fundingRate", "int256"),
    _arg("unitAccumulativeFunding", "int256"),
    _arg("operatorFeeRate", "int256"),
    _arg("lpFeeRate", "int256"),
    _arg("initialMarginRate", "int256"),
    _arg("maintenanceMarginRate", "int256"),
    _arg("keeperGasReward", "int256"),
]

_POOL_COMPONENTS = [
    _arg("isRunning", "bool"),
    _arg("collateralToken", "address"),
    _arg("vaultFeeRate", "int256"),
    {
        "name": "perpetuals",
        "type": "tuple[]",
        "internalType": "struct Reader.PerpetualReaderResult[]",
        "components": _PERPETUAL_COMPONENTS,
    },
]

_ACCOUNT_COMPONENTS = [
    _arg("cash", "int256"),
    _arg("position", "int256"),
    _arg("targetLeverage", "int256"),
]

READER_ABI = [
    {
        "type": "function",
        "name": "queryLiquidityPool",
        "stateMutability": "nonpayable",
        "inputs": [_arg("liquidityPool", "address")],
        "outputs": [
            _arg("isSynced", "bool"),
            {
                "name": "pool",
                "type": "tuple",
                "internalType": "struct Reader.LiquidityPoolReaderResult",
                "components": _POOL_COMPONENTS,
            },
        ],
    },
    {
        "type": "function",
        "name": "queryAccountStorage",
        "stateMutability": "nonpayable",
        "inputs": [
            _arg("liquidityPool", "address"),
            _arg("perpetualIndex", "uint256"),
            _arg("account", "address"),
        ],
        "outputs": [
            _arg("isSynced", "bool"),
            {
                "name": "accountStorage",
                "type": "tuple",
                "internalType": "struct Reader.AccountReaderResult",
                "components": _ACCOUNT_COMPONENTS,
            },
        ],
    },
    {
        "type": "function",
        "name": "queryTrade",
        "stateMutability": "nonpayable",
        "inputs": [
            _arg("liquidityPool", "address"),
            _arg("perpetualIndex", "uint256"),
            _arg("trader", "address"),
            _arg("amount", "int256"),
            _arg("referrer", "address"),
            _arg("flags", "uint32"),
        ],
        "outputs": [
            _arg("isSynced", "bool"),
            _arg("tradePrice", "int256"),
            _arg("totalFee", "int256"),
            _arg("cost", "int256"),
        ],
    },
]

SYMBOL_SERVICE_ABI = [
    {
        "type": "function",
        "name": "getPerpetualUID",
        "stateMutability": "view",
        "inputs": [_arg("symbol", "uint256")],
        "outputs": [
            _arg("liquidityPool", "address"),
            _arg("perpetualIndex", "uint256"),
        ],
    },
]

LIQUIDITY_POOL_ABI = [
    {
        "type": "function",
        "name": "trade",
        "stateMutability": "nonpayable",
        "inputs": [
            _arg("perpetualIndex", "uint256"),
            _arg("trader", "address"),
            _arg("amount", "int256"),
            _arg("limitPrice", "int256"),
            _arg("deadline", "uint256"),
            _arg("referrer", "address"),
            _arg("flags", "uint32"),
        ],
        "outputs": [_arg("tradeAmount", "int256")],
    },
]
