"""
Validation utilities for addresses and amounts.
"""

import re
from decimal import Decimal, InvalidOperation

from ledger_bridge.config.constants import (
    ACCOUNT_ID_PATTERN,
    AMOUNT_DECIMAL_PLACES,
)

_ACCOUNT_ID_RE = re.compile(ACCOUNT_ID_PATTERN)


def is_valid_account_address(address: str | None) -> bool:
    """
    Check account ID format.

    Args:
        address: Address to validate

    Returns:
        True if address is a well-formed account ID
    """
    if not address:
        return False
    return bool(_ACCOUNT_ID_RE.match(address))


def parse_amount(value: str | Decimal | int | None) -> Decimal:
    """
    Parse a ledger amount.

    Amounts must be positive and carry at most seven fractional digits.

    Args:
        value: Amount as received (string on the wire)

    Returns:
        Amount as Decimal

    Raises:
        ValueError: If the amount is missing, not a number, not positive,
            or too precise
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("amount is missing")

    if isinstance(value, float):
        raise ValueError("amount must not be a float")

    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"amount {value!r} is not a number") from e

    if not amount.is_finite():
        raise ValueError(f"amount {value!r} is not finite")

    if amount <= 0:
        raise ValueError(f"amount {value!r} must be positive")

    if -amount.as_tuple().exponent > AMOUNT_DECIMAL_PLACES:
        raise ValueError(
            f"amount {value!r} has more than {AMOUNT_DECIMAL_PLACES} decimal places"
        )

    return amount
