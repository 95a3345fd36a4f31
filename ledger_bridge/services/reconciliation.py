"""
Operator reconciliation.

Everything the automatic components refuse to decide on their own:
- withdrawals in ``error`` or stuck in ``sending`` (outcome unknown)
- deposits whose memo did not resolve, or that were rejected
- moving the deposit cursor backwards

Every action checks the public ledger's history first; this service
only records the operator's decision.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ledger_bridge.config.constants import DEPOSIT_STREAM_NAME
from ledger_bridge.models.enums import UnresolvedReason, WithdrawalState
from ledger_bridge.models.unresolved_deposit import UnresolvedDeposit
from ledger_bridge.models.withdrawal_request import WithdrawalRequest
from ledger_bridge.repositories.credited_deposit_repository import (
    CreditedDepositRepository,
)
from ledger_bridge.repositories.customer_account_repository import (
    CustomerAccountRepository,
)
from ledger_bridge.repositories.deposit_cursor_repository import (
    DepositCursorRepository,
)
from ledger_bridge.repositories.unresolved_deposit_repository import (
    UnresolvedDepositRepository,
)
from ledger_bridge.repositories.withdrawal_request_repository import (
    WithdrawalRequestRepository,
)
from ledger_bridge.services.withdrawal.state_machine import assert_transition
from ledger_bridge.utils.exceptions import (
    CustomerNotFoundError,
    DepositNotFoundError,
    LedgerBridgeError,
    WithdrawalNotFoundError,
)
from ledger_bridge.utils.security import mask_tx_hash


class ReconciliationService:
    """Operator actions on withdrawals, queued deposits and the cursor."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        stream_name: str = DEPOSIT_STREAM_NAME,
    ) -> None:
        """
        Initialize reconciliation service.

        Args:
            session_maker: Session factory
            stream_name: Deposit cursor row name
        """
        self.session_maker = session_maker
        self.stream_name = stream_name

    # ------------------------------------------------------------------
    # Withdrawals
    # ------------------------------------------------------------------

    async def list_attention_required(
        self, limit: int = 100
    ) -> list[WithdrawalRequest]:
        """
        List withdrawals waiting for an operator.

        Returns:
            Requests in ``error`` or ``sending``, oldest first
        """
        async with self.session_maker() as session:
            return await WithdrawalRequestRepository(session).list_by_states(
                [WithdrawalState.SENDING, WithdrawalState.ERROR], limit=limit
            )

    async def mark_settled(self, request_id: int, tx_hash: str) -> WithdrawalRequest:
        """
        Record that a withdrawal IS on the ledger.

        Args:
            request_id: Withdrawal request ID
            tx_hash: Hash of the ledger transaction found by the operator

        Returns:
            Updated WithdrawalRequest

        Raises:
            WithdrawalNotFoundError: Unknown request
            InvalidStateTransitionError: Request is not sending/error
        """
        async with self.session_maker() as session:
            async with session.begin():
                request = await self._get_request(session, request_id)
                old_state = request.state
                assert_transition(old_state, WithdrawalState.DONE, operator=True)

                request.state = WithdrawalState.DONE.value
                request.tx_hash = tx_hash
                request.ambiguous = False

        logger.bind(request_id=request_id, tx_hash=tx_hash).warning(
            f"[Reconciliation] Withdrawal {request_id} marked settled by operator "
            f"({old_state} -> done, TX: {mask_tx_hash(tx_hash)})",
        )
        return request

    async def requeue(self, request_id: int) -> WithdrawalRequest:
        """
        Send a withdrawal back to ``pending``.

        Only after confirming it is NOT on the ledger: the next cycle
        submits it again.

        Args:
            request_id: Withdrawal request ID

        Returns:
            Updated WithdrawalRequest

        Raises:
            WithdrawalNotFoundError: Unknown request
            InvalidStateTransitionError: Request is not sending/error
        """
        async with self.session_maker() as session:
            async with session.begin():
                request = await self._get_request(session, request_id)
                old_state = request.state
                assert_transition(old_state, WithdrawalState.PENDING, operator=True)

                request.state = WithdrawalState.PENDING.value
                request.last_error = None
                request.ambiguous = False
                request.tx_hash = None
                request.attempted_at = None

        logger.bind(request_id=request_id).warning(
            f"[Reconciliation] Withdrawal {request_id} requeued by operator "
            f"({old_state} -> pending)",
        )
        return request

    async def _get_request(
        self, session: AsyncSession, request_id: int
    ) -> WithdrawalRequest:
        request = await WithdrawalRequestRepository(session).get_for_update(
            request_id
        )
        if not request:
            raise WithdrawalNotFoundError(f"Withdrawal {request_id} not found")
        return request

    # ------------------------------------------------------------------
    # Queued deposits
    # ------------------------------------------------------------------

    async def list_unresolved_deposits(
        self, limit: int = 100
    ) -> list[UnresolvedDeposit]:
        """List queued deposits awaiting an operator, oldest first."""
        async with self.session_maker() as session:
            return await UnresolvedDepositRepository(session).list_open(limit)

    async def credit_unresolved_deposit(self, event_id: str, customer_id: int) -> bool:
        """
        Credit a queued deposit to a customer.

        The credit record, the balance update and the queue entry are
        committed together. Crediting an event that is already credited
        changes nothing.

        Args:
            event_id: Stream paging token of the deposit
            customer_id: Customer chosen by the operator

        Returns:
            True if credited now, False if it already was

        Raises:
            DepositNotFoundError: Event is not in the queue
            CustomerNotFoundError: Unknown customer
            LedgerBridgeError: Event cannot be credited (asset or amount)
        """
        async with self.session_maker() as session:
            async with session.begin():
                queue_repo = UnresolvedDepositRepository(session)
                entry = await queue_repo.get_by_event_id(event_id, for_update=True)
                if not entry:
                    raise DepositNotFoundError(f"Deposit {event_id} is not queued")

                credited_repo = CreditedDepositRepository(session)
                if await credited_repo.is_credited(event_id):
                    if not entry.is_resolved:
                        await queue_repo.mark_resolved(entry, customer_id)
                    logger.info(
                        f"[Reconciliation] Deposit {event_id} already credited"
                    )
                    return False

                if entry.reason != UnresolvedReason.UNRESOLVED_MEMO.value:
                    raise LedgerBridgeError(
                        f"Deposit {event_id} was rejected ({entry.reason}) "
                        f"and cannot be credited"
                    )
                if entry.amount is None:
                    raise LedgerBridgeError(f"Deposit {event_id} has no amount")

                customer = await CustomerAccountRepository(session).credit(
                    customer_id, entry.amount
                )
                if not customer:
                    raise CustomerNotFoundError(f"Customer {customer_id} not found")

                await credited_repo.create(
                    event_id=event_id,
                    customer_id=customer_id,
                    amount=entry.amount,
                    transaction_hash=entry.transaction_hash,
                )
                await queue_repo.mark_resolved(entry, customer_id)
                amount = entry.amount

        logger.bind(
            event_id=event_id, customer_id=customer_id, amount=str(amount)
        ).success(
            f"[Reconciliation] Deposit {event_id} credited to customer "
            f"{customer_id} by operator: {amount}",
        )
        return True

    async def dismiss_unresolved_deposit(
        self, event_id: str, note: str | None = None
    ) -> UnresolvedDeposit:
        """
        Close a queued deposit without crediting it.

        Under the block policy this also releases the stream.

        Args:
            event_id: Stream paging token of the deposit
            note: Operator note (e.g. "returned to sender")

        Returns:
            Updated UnresolvedDeposit

        Raises:
            DepositNotFoundError: Event is not in the queue
        """
        async with self.session_maker() as session:
            async with session.begin():
                queue_repo = UnresolvedDepositRepository(session)
                entry = await queue_repo.get_by_event_id(event_id, for_update=True)
                if not entry:
                    raise DepositNotFoundError(f"Deposit {event_id} is not queued")

                if note:
                    entry.details = f"{entry.details}\n{note}" if entry.details else note
                await queue_repo.mark_resolved(entry)

        logger.info(f"[Reconciliation] Deposit {event_id} dismissed: {note or '-'}")
        return entry

    # ------------------------------------------------------------------
    # Cursor
    # ------------------------------------------------------------------

    async def get_cursor(self) -> str | None:
        """Get committed deposit cursor."""
        async with self.session_maker() as session:
            return await DepositCursorRepository(session).get_token(self.stream_name)

    async def reset_cursor(self, token: str | None) -> None:
        """
        Move the deposit cursor, backwards included.

        Replayed events are absorbed by the credited-deposit check, so a
        reset never credits twice. Stop the ingestor first.

        Args:
            token: New position (None = stream origin)
        """
        async with self.session_maker() as session:
            async with session.begin():
                cursor = await DepositCursorRepository(session).get_or_create(
                    self.stream_name, for_update=True
                )
                old_token = cursor.token
                cursor.token = token

        logger.warning(
            f"[Reconciliation] Deposit cursor reset by operator: "
            f"{old_token or 'origin'} -> {token or 'origin'}"
        )
