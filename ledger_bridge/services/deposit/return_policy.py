"""
Non-native payment handling.

The network can carry assets other than its native unit. They are never
credited; what happens to them (return to sender, manual handling) is
delegated to a handler outside the ingestion transaction.
"""

from typing import Protocol

from loguru import logger

from ledger_bridge.services.ledger_client.types import PaymentEvent
from ledger_bridge.utils.security import mask_address, mask_tx_hash


class NonNativePaymentHandler(Protocol):
    """Receives payments in assets the exchange does not accept."""

    async def handle(self, event: PaymentEvent) -> None:
        """Handle a rejected non-native payment."""
        ...


class LoggingReturnPolicy:
    """
    Default handler: flag the payment for a manual return.

    The event is already in the operator review queue when this runs.
    """

    async def handle(self, event: PaymentEvent) -> None:
        """Log the payment that should be returned to its sender."""
        logger.warning(
            f"[Ingestor] Non-native payment needs return to sender: "
            f"{event.amount} {event.asset_type} "
            f"from {mask_address(event.from_address)} "
            f"(TX: {mask_tx_hash(event.transaction_hash)}, "
            f"token: {event.paging_token})"
        )
