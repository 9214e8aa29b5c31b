"""
Application constants.

Centralized business and operational constants.
"""

from decimal import Decimal

# ========================================================================
# PAYMENT AMOUNTS (USDC / USD)
# ========================================================================

INITIAL_UNLOCK_AMOUNT = Decimal("499.00")  # One-time platform unlock
MONTHLY_SUBSCRIPTION_AMOUNT = Decimal("199.00")
WEEKLY_SUBSCRIPTION_AMOUNT = Decimal("49.75")
DIRECT_BONUS_AMOUNT = Decimal("249.50")  # Paid to referrer on initial unlock

# Stripe checkout amounts recorded for card payments
STRIPE_INITIAL_PAYMENT_AMOUNT = Decimal("500.00")
STRIPE_SUBSCRIPTION_MONTHLY_AMOUNT = Decimal("200.00")

# Accepted deviation from the expected deposit amount (1%)
PAYMENT_TOLERANCE_RATIO = Decimal("0.01")

# ========================================================================
# NETWORK TREE
# ========================================================================

TREE_BRANCHING_FACTOR = 3
ROOT_POSITION_ID = "L000P0000000001"
ROOT_LEVEL = 0
ROOT_POSITION = 1
PLACEMENT_MAX_DEPTH = 100  # Breadth-first search limit inside a branch

# ========================================================================
# COMMISSIONS
# ========================================================================

# (minimum active network count, commission rate), highest tier first
COMMISSION_RATE_TIERS: tuple[tuple[int, Decimal], ...] = (
    (6552, Decimal("0.16")),
    (5460, Decimal("0.15")),
    (4368, Decimal("0.14")),
    (3276, Decimal("0.13")),
    (2184, Decimal("0.12")),
    (1092, Decimal("0.11")),
)
BASE_COMMISSION_RATE = Decimal("0.10")
STRUCTURE_SIZE = 1092  # Active members per structure
MAX_STRUCTURE_NUMBER = 7
REFERRALS_PER_STRUCTURE = 3  # Required direct referrals = structure * 3
MAX_COMMISSION_VOLUME_MEMBERS = 6552  # Earnings capped at 6552 * $199
QUALIFICATION_DIRECT_REFERRALS = 3

# Activity windows (days since last payment)
ACTIVE_WINDOW_DAYS = 33  # 30 + 3 day grace
DISABLED_AFTER_DAYS = 90
MONTHLY_GRACE_DAYS = 33
WEEKLY_GRACE_DAYS = 10  # 7 + 3 day grace

# ========================================================================
# PAYOUTS
# ========================================================================

MIN_PAYOUT_AMOUNT_USDC = Decimal("10")
ADMIN_BATCH_COMMISSION_LIMIT = 100
CRON_BATCH_COMMISSION_LIMIT = 500

STRIPE_FEE_PERCENTAGE = Decimal("0.035")  # Pass-through transfer fee
STRIPE_PER_TRANSFER_FEE = Decimal("0.25")  # Stripe's own fee per transfer

# ========================================================================
# BLOCKCHAIN CONSTANTS
# ========================================================================

USDC_CONTRACT_MAINNET = "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359"
USDC_CONTRACT_TESTNET = "0x41E94Eb019C0762f9Bfcf9Fb1E58725BfB0e7582"
USDC_DECIMALS = 6

# Blockchain operation timeouts (in seconds)
BLOCKCHAIN_TIMEOUT = 30.0  # Standard RPC operations
BLOCKCHAIN_RECEIPT_TIMEOUT = 120.0  # Waiting for a receipt

# Gas
ERC20_TRANSFER_GAS_ESTIMATE = 65_000  # Per-transfer estimate for batch costing
SWEEP_TRANSFER_GAS_LIMIT = 100_000
NATIVE_TRANSFER_GAS_LIMIT = 21_000
DEFAULT_MAX_FEE_GWEI = 100  # Used when the node returns no fee data
MAX_GAS_PRICE_GWEI = 1_000  # Hard cap on any fee we sign
DEFAULT_MATIC_PRICE_USD = Decimal("0.50")
STUCK_NONCE_THRESHOLD = 5

# Gas tank thresholds (POL)
GAS_TANK_LOW_WARNING = Decimal("100")
GAS_TANK_CRITICAL = Decimal("50")
GAS_TANK_AUTO_REFILL = Decimal("25")
GAS_TANK_TARGET_BALANCE = Decimal("200")
ESTIMATED_POL_PER_TRANSFER = Decimal("0.001")

# Payout wallet thresholds (USDC)
PAYOUT_WALLET_LOW_WARNING = Decimal("5000")
PAYOUT_WALLET_CRITICAL = Decimal("1000")

# ========================================================================
# SWEEP PIPELINE
# ========================================================================

MIN_SWEEP_AMOUNT_USDC = Decimal("1")  # Skip dust
MIN_GAS_FOR_SWEEP_POL = Decimal("0.08")
GAS_FUNDING_AMOUNT_POL = Decimal("0.15")

SWEEP_IDENTIFY_BATCH_SIZE = 50
SWEEP_FUND_BATCH_SIZE = 20
SWEEP_EXECUTE_BATCH_SIZE = 20
SWEEP_VERIFY_BATCH_SIZE = 50

# ========================================================================
# DISTRIBUTED LOCKS
# ========================================================================

DISTRIBUTED_LOCK_TIMEOUT = 300  # Lock expiry in seconds
DISTRIBUTED_LOCK_BLOCKING_TIMEOUT = 5.0  # Time to wait for acquisition

# ========================================================================
# NOTIFICATIONS
# ========================================================================

NOTIFICATION_MAX_RETRIES = 5

# ========================================================================
# BLOCKCHAIN EXPLORER URLS
# ========================================================================

POLYGONSCAN_TX_URL = "https://polygonscan.com/tx"  # append /{tx_hash}
AMOY_POLYGONSCAN_TX_URL = "https://amoy.polygonscan.com/tx"
