"""
Operational constants for Ledger Bridge.

Network-level constants and defaults shared by the ingestor, the
settlement engine and the Horizon adapter.
"""

from decimal import Decimal

# =============================================================================
# NETWORK
# =============================================================================

# Asset type reported by the ledger for its single native unit of value
NATIVE_ASSET_TYPE = "native"

# Smallest unit is 10^-7 of the native asset
AMOUNT_DECIMAL_PLACES = 7

# Account IDs are 56-character base32 strings starting with "G"
ACCOUNT_ID_PATTERN = r"^G[A-Z2-7]{55}$"

# Memo attached to every withdrawal so operators can find it in history
WITHDRAWAL_MEMO_PREFIX = "wd:"

# Memo types that can carry a customer correlation identifier
CORRELATION_MEMO_TYPES = ("text", "id", "hash")


# =============================================================================
# STREAM / RETRY
# =============================================================================

# Name of the cursor row for the deposit stream
DEPOSIT_STREAM_NAME = "deposits"

STREAM_RETRY_INITIAL_DELAY = 1.0
STREAM_RETRY_MAX_DELAY = 60.0
STREAM_PAGE_SIZE = 200
STREAM_POLL_INTERVAL = 5.0

# How long the ingestor waits before retrying a blocked event
BLOCK_RETRY_INTERVAL = 60.0

# Horizon request timeout (seconds)
REQUEST_TIMEOUT = 30.0


# =============================================================================
# SETTLEMENT
# =============================================================================

SETTLEMENT_INTERVAL_SECONDS = 30

# Minimum starting balance the network accepts for a new account
MINIMUM_ACCOUNT_FUNDING = Decimal("1")

# Requests left in "sending" for longer than this are reported to operators
STUCK_SENDING_ALERT_MINUTES = 15
