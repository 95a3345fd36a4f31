"""
Withdrawal query service module.

Customer-facing view of withdrawal requests. Internal states are mapped
to labels; a request in ``error`` is shown as waiting for manual review,
never as failed or resubmitted.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_bridge.models.enums import WithdrawalState
from ledger_bridge.models.withdrawal_request import WithdrawalRequest
from ledger_bridge.utils.exceptions import WithdrawalNotFoundError


CUSTOMER_STATUS_LABELS: dict[WithdrawalState, str] = {
    WithdrawalState.PENDING: "pending",
    WithdrawalState.SENDING: "processing",
    WithdrawalState.DONE: "completed",
    WithdrawalState.ERROR: "pending manual review",
}


def customer_status_label(state: WithdrawalState | str) -> str:
    """Map internal state to the label shown to the customer."""
    return CUSTOMER_STATUS_LABELS[WithdrawalState(state)]


class WithdrawalQueryService:
    """Handles withdrawal query operations."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize withdrawal query service.

        Args:
            session: Database session
        """
        self.session = session

    async def get_customer_status(self, customer_id: int, request_id: int) -> str:
        """
        Get status label of a customer's withdrawal.

        Args:
            customer_id: Customer ID
            request_id: Withdrawal request ID

        Returns:
            Customer-facing status label

        Raises:
            WithdrawalNotFoundError: If the request does not belong to the customer
        """
        stmt = select(WithdrawalRequest.state).where(
            WithdrawalRequest.id == request_id,
            WithdrawalRequest.customer_id == customer_id,
        )
        result = await self.session.execute(stmt)
        state = result.scalar_one_or_none()

        if state is None:
            raise WithdrawalNotFoundError(
                f"Withdrawal {request_id} not found for customer {customer_id}"
            )
        return customer_status_label(state)

    async def get_customer_withdrawals(
        self, customer_id: int, limit: int = 20
    ) -> list[dict]:
        """
        Get a customer's latest withdrawals.

        Args:
            customer_id: Customer ID
            limit: Max number of results

        Returns:
            List of dicts with id, amount, destination, status, tx_hash
        """
        stmt = (
            select(WithdrawalRequest)
            .where(WithdrawalRequest.customer_id == customer_id)
            .order_by(WithdrawalRequest.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)

        return [
            {
                "id": request.id,
                "amount": request.amount,
                "destination_address": request.destination_address,
                "status": customer_status_label(request.state),
                # Only settled requests expose a hash
                "tx_hash": request.tx_hash
                if request.state == WithdrawalState.DONE.value
                else None,
            }
            for request in result.scalars().all()
        ]
