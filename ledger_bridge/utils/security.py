"""
Security utilities for masking sensitive data in logs.

Provides functions to safely mask sensitive information like:
- Account addresses
- Transaction hashes
"""


def mask_address(address: str | None) -> str:
    """
    Mask account address for logging: GABC...WXYZ

    Args:
        address: Account address to mask

    Returns:
        Masked address showing first 4 and last 4 characters

    Examples:
        >>> mask_address("GAAZI4TCR3TY5OJHCTJC2A4QSY6CJWJH5IAJTGKIN2ER7LBNVKOCCWN7")
        'GAAZ...CWN7'
        >>> mask_address(None)
        '***'
        >>> mask_address("short")
        '***'
    """
    if not address or len(address) < 10:
        return "***"
    return f"{address[:4]}...{address[-4:]}"


def mask_tx_hash(tx_hash: str | None) -> str:
    """
    Mask transaction hash for logging.

    Args:
        tx_hash: Transaction hash to mask

    Returns:
        Masked hash showing first 8 and last 6 characters

    Examples:
        >>> mask_tx_hash("3389e9f0f1a65f19736cacf544c2e825313e8447f569233bb8db39aa607c8889")
        '3389e9f0...7c8889'
    """
    if not tx_hash or len(tx_hash) < 16:
        return "***"
    return f"{tx_hash[:8]}...{tx_hash[-6:]}"
