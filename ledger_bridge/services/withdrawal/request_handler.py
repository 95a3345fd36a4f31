"""
Withdrawal request intake.

Called by the balance layer. The debit and the WithdrawalRequest insert
happen in the caller's transaction, so either both exist or neither.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ledger_bridge.models.enums import WithdrawalState
from ledger_bridge.models.withdrawal_request import WithdrawalRequest
from ledger_bridge.repositories.customer_account_repository import (
    CustomerAccountRepository,
)
from ledger_bridge.repositories.withdrawal_request_repository import (
    WithdrawalRequestRepository,
)
from ledger_bridge.utils.exceptions import (
    CustomerNotFoundError,
    InsufficientBalanceError,
    InvalidWithdrawalError,
)
from ledger_bridge.utils.security import mask_address
from ledger_bridge.utils.validation import is_valid_account_address, parse_amount


class WithdrawalRequestHandler:
    """Handles withdrawal request creation and validation."""

    def __init__(self, base_account_address: str | None = None) -> None:
        """
        Initialize withdrawal request handler.

        Args:
            base_account_address: Exchange account, rejected as a destination
        """
        self.base_account_address = base_account_address

    def validate(
        self, amount: Decimal | str, destination_address: str
    ) -> Decimal:
        """
        Validate request fields that do not need the database.

        Args:
            amount: Requested amount
            destination_address: Destination account ID

        Returns:
            Parsed amount

        Raises:
            InvalidWithdrawalError: If a field is invalid
        """
        try:
            parsed = parse_amount(amount)
        except ValueError as e:
            raise InvalidWithdrawalError(f"Invalid withdrawal amount: {e}") from e

        if not is_valid_account_address(destination_address):
            raise InvalidWithdrawalError(
                f"Invalid destination address: {destination_address!r}"
            )

        if destination_address == self.base_account_address:
            raise InvalidWithdrawalError(
                "Destination must not be the exchange's own account"
            )

        return parsed

    async def request_withdrawal(
        self,
        session: AsyncSession,
        customer_id: int,
        amount: Decimal | str,
        destination_address: str,
    ) -> WithdrawalRequest:
        """
        Debit customer and create a pending withdrawal request.

        Must run inside the caller's transaction. Nothing is written
        when an exception is raised.

        Args:
            session: Session with an open transaction
            customer_id: Customer ID
            amount: Withdrawal amount
            destination_address: Destination account ID

        Returns:
            Created WithdrawalRequest (state ``pending``)

        Raises:
            InvalidWithdrawalError: Invalid amount or destination
            CustomerNotFoundError: Unknown customer
            InsufficientBalanceError: Amount exceeds the current balance
        """
        parsed = self.validate(amount, destination_address)

        customer = await CustomerAccountRepository(session).get_for_update(
            customer_id
        )
        if not customer:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")

        if parsed > customer.balance:
            logger.warning(
                f"[Intake] Rejected withdrawal for customer {customer_id}: "
                f"requested {parsed}, available {customer.balance}"
            )
            raise InsufficientBalanceError(customer_id, parsed, customer.balance)

        balance_before = customer.balance
        customer.balance = customer.balance - parsed

        request = await WithdrawalRequestRepository(session).create(
            customer_id=customer_id,
            destination_address=destination_address,
            amount=parsed,
            state=WithdrawalState.PENDING.value,
        )

        logger.bind(
            request_id=request.id,
            customer_id=customer_id,
            amount=str(parsed),
            balance_before=str(balance_before),
            balance_after=str(customer.balance),
        ).info(
            f"[Intake] Withdrawal {request.id} created: {parsed} "
            f"to {mask_address(destination_address)}",
        )
        return request

    async def submit_withdrawal(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        customer_id: int,
        amount: Decimal | str,
        destination_address: str,
    ) -> WithdrawalRequest:
        """
        Create a withdrawal in its own transaction.

        Args:
            session_maker: Session factory
            customer_id: Customer ID
            amount: Withdrawal amount
            destination_address: Destination account ID

        Returns:
            Committed WithdrawalRequest
        """
        async with session_maker() as session:
            async with session.begin():
                return await self.request_withdrawal(
                    session, customer_id, amount, destination_address
                )
