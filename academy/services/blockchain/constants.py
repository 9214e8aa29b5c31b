"""
Polygon / ERC-20 constants.
"""

# USDC contract ABI (ERC-20 subset)
USDC_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [
            {"name": "_to", "type": "address"},
            {"name": "_value", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "from", "type": "address"},
            {"indexed": True, "name": "to", "type": "address"},
            {"indexed": False, "name": "value", "type": "uint256"},
        ],
        "name": "Transfer",
        "type": "event",
    },
]

# Fallback ERC-20 transfer gas when estimation fails
DEFAULT_TOKEN_GAS_LIMIT = 100_000

# Buffer applied to estimated gas (20%)
GAS_ESTIMATE_BUFFER = 1.2

# Priority fee floor on Polygon (validators reject tips under ~25-30 gwei)
MIN_PRIORITY_FEE_GWEI = 30
