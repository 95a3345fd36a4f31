"""
Withdrawal Settlement Engine.

Drains pending withdrawal requests and settles them on the public ledger
from the exchange's single submitting account.

Per request:
1. Claim: pending -> sending, committed BEFORE any network call
2. Look up the destination (absent -> create-and-fund operation)
3. Load a fresh sequence number for the submitting account
4. Sign and submit, waiting for the outcome
5. Finish: sending -> done | error

Requests are settled strictly one after another. Each submission needs
the submitting account's current sequence number, so two in flight would
race on it. A crash between 1 and 5 leaves the request in ``sending``;
the engine never picks those up again.
"""

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ledger_bridge.config.settings import SettlementConfig
from ledger_bridge.models.enums import WithdrawalState
from ledger_bridge.repositories.withdrawal_request_repository import (
    WithdrawalRequestRepository,
)
from ledger_bridge.services.ledger_client.base import LedgerClient, TransactionSigner
from ledger_bridge.services.ledger_client.types import (
    CreateAccountOperation,
    Operation,
    PaymentOperation,
    SubmissionResult,
)
from ledger_bridge.services.withdrawal.state_machine import assert_transition
from ledger_bridge.utils.exceptions import (
    AccountNotFoundError,
    InvalidWithdrawalError,
    SubmissionRejectedError,
    is_ambiguous,
)
from ledger_bridge.utils.security import mask_address, mask_tx_hash


# Operation result code of a payment to an account that does not exist
NO_DESTINATION_CODE = "op_no_destination"


@dataclass
class CycleReport:
    """Summary of one settlement cycle."""

    processed: int = 0
    done: int = 0
    errored: int = 0
    stuck: int = 0


@dataclass(frozen=True)
class _ClaimedRequest:
    """Snapshot of a request taken when it was claimed."""

    id: int
    destination_address: str
    amount: Decimal
    memo: str


class SettlementEngine:
    """Sequential settlement of withdrawal requests."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        client: LedgerClient,
        signer: TransactionSigner,
        config: SettlementConfig,
    ) -> None:
        """
        Initialize settlement engine.

        Args:
            session_maker: Session factory for the local store
            client: Public ledger client
            signer: Offline signing adapter for the submitting account
            config: Settlement configuration
        """
        self.session_maker = session_maker
        self.client = client
        self.signer = signer
        self.config = config

        self._cycle_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """
        Request shutdown and wait for the running cycle.

        The request in progress reaches ``done``/``error`` first; no new
        request is claimed afterwards.
        """
        self._stop_event.set()
        async with self._cycle_lock:
            pass

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def run_cycle(self) -> CycleReport:
        """
        Drain pending requests, one at a time.

        A cycle started while another is running returns immediately.

        Returns:
            CycleReport
        """
        report = CycleReport()

        if self._cycle_lock.locked():
            logger.warning("[Settlement] Previous cycle still running, skipping")
            return report

        async with self._cycle_lock:
            report.stuck = await self.check_stuck_sending()

            last_id = 0
            while not self._stop_event.is_set():
                request_id = await self._next_pending_id(last_id)
                if request_id is None:
                    break
                last_id = request_id

                state = await self.settle(request_id)
                if state is None:
                    continue

                report.processed += 1
                if state is WithdrawalState.DONE:
                    report.done += 1
                else:
                    report.errored += 1

        if report.processed:
            logger.info(
                f"[Settlement] Cycle complete: processed={report.processed}, "
                f"done={report.done}, error={report.errored}"
            )
        return report

    async def _next_pending_id(self, after_id: int) -> int | None:
        """Re-read the store for the next pending request."""
        async with self.session_maker() as session:
            return await WithdrawalRequestRepository(session).next_pending_id(
                after_id
            )

    async def check_stuck_sending(self) -> int:
        """
        Report requests left in ``sending`` (crash or lost outcome).

        They need an operator to compare against the ledger history and
        are never touched here.

        Returns:
            Number of stuck requests
        """
        async with self.session_maker() as session:
            stuck = await WithdrawalRequestRepository(session).find_stuck_sending(
                self.config.stuck_sending_alert_minutes
            )

        for request in stuck:
            logger.bind(
                request_id=request.id,
                customer_id=request.customer_id,
                amount=str(request.amount),
            ).error(
                f"🚨 [Settlement] Withdrawal {request.id} stuck in 'sending' since "
                f"{request.attempted_at}: look for memo {request.memo!r} in the "
                f"ledger history of {mask_address(self.config.base_account_address)}",
            )
        return len(stuck)

    # ------------------------------------------------------------------
    # Request
    # ------------------------------------------------------------------

    async def settle(self, request_id: int) -> WithdrawalState | None:
        """
        Settle one request.

        Args:
            request_id: Withdrawal request ID

        Returns:
            Final state, or None if the request was no longer pending
        """
        claimed = await self._claim(request_id)
        if claimed is None:
            return None

        try:
            result, used_create_account = await self._submit(claimed)
        except Exception as e:
            ambiguous = is_ambiguous(e)
            await self._finish_error(claimed, e, ambiguous)
            return WithdrawalState.ERROR

        await self._finish_done(claimed, result, used_create_account)
        return WithdrawalState.DONE

    async def _claim(self, request_id: int) -> _ClaimedRequest | None:
        """
        Move request from pending to sending and commit.

        Returns:
            Snapshot of the claimed request or None
        """
        async with self.session_maker() as session:
            async with session.begin():
                request = await WithdrawalRequestRepository(session).get_for_update(
                    request_id
                )
                if not request or request.state != WithdrawalState.PENDING.value:
                    return None

                assert_transition(request.state, WithdrawalState.SENDING)
                request.state = WithdrawalState.SENDING.value
                request.attempted_at = datetime.now(UTC)

                claimed = _ClaimedRequest(
                    id=request.id,
                    destination_address=request.destination_address,
                    amount=request.amount,
                    memo=request.memo,
                )

        logger.info(
            f"[Settlement] Withdrawal {claimed.id} claimed: {claimed.amount} "
            f"to {mask_address(claimed.destination_address)}"
        )
        return claimed

    async def _build_operation(self, claimed: _ClaimedRequest) -> Operation:
        """
        Choose payment or create-and-fund based on the destination.

        Raises:
            InvalidWithdrawalError: Amount too small to create the account
        """
        try:
            await self.client.get_account(claimed.destination_address)
        except AccountNotFoundError:
            return self._create_account_operation(claimed)
        return PaymentOperation(
            destination=claimed.destination_address, amount=claimed.amount
        )

    def _create_account_operation(
        self, claimed: _ClaimedRequest
    ) -> CreateAccountOperation:
        """Build the create-and-fund operation for an absent destination."""
        if claimed.amount < self.config.minimum_account_funding:
            raise InvalidWithdrawalError(
                f"Destination does not exist and {claimed.amount} is below the "
                f"minimum account funding {self.config.minimum_account_funding}"
            )
        logger.info(
            f"[Settlement] Destination {mask_address(claimed.destination_address)} "
            f"not found, using create-and-fund for withdrawal {claimed.id}"
        )
        return CreateAccountOperation(
            destination=claimed.destination_address,
            starting_balance=claimed.amount,
        )

    async def _sign_and_submit(
        self, claimed: _ClaimedRequest, operation: Operation
    ) -> SubmissionResult:
        """Sign with a freshly loaded sequence number and submit."""
        source = await self.client.get_account(self.config.base_account_address)
        signed = await self.signer.sign(source, operation, memo=claimed.memo)
        return await self.client.submit(signed)

    async def _submit(
        self, claimed: _ClaimedRequest
    ) -> tuple[SubmissionResult, bool]:
        """
        Submit the settlement transaction.

        A payment rejected because the destination vanished after the
        lookup falls back to create-and-fund exactly once. A rejected
        transaction was not applied, so this cannot pay twice.

        Returns:
            Tuple of (result, used_create_account)
        """
        operation = await self._build_operation(claimed)

        try:
            result = await self._sign_and_submit(claimed, operation)
        except SubmissionRejectedError as e:
            if not isinstance(operation, PaymentOperation) or not _is_no_destination(e):
                raise
            operation = self._create_account_operation(claimed)
            result = await self._sign_and_submit(claimed, operation)

        return result, isinstance(operation, CreateAccountOperation)

    async def _finish_done(
        self,
        claimed: _ClaimedRequest,
        result: SubmissionResult,
        used_create_account: bool,
    ) -> None:
        """Record successful settlement."""
        async with self.session_maker() as session:
            async with session.begin():
                request = await WithdrawalRequestRepository(session).get_for_update(
                    claimed.id
                )
                assert_transition(request.state, WithdrawalState.DONE)
                request.state = WithdrawalState.DONE.value
                request.tx_hash = result.hash
                request.used_create_account = used_create_account
                request.last_error = None

        logger.bind(
            request_id=claimed.id,
            amount=str(claimed.amount),
            tx_hash=result.hash,
            ledger=result.ledger,
            create_account=used_create_account,
        ).success(
            f"✅ [Settlement] Withdrawal {claimed.id} settled: {claimed.amount} "
            f"to {mask_address(claimed.destination_address)} "
            f"(TX: {mask_tx_hash(result.hash)})",
        )

    async def _finish_error(
        self,
        claimed: _ClaimedRequest,
        error: Exception,
        ambiguous: bool,
    ) -> None:
        """Record failed settlement; the request waits for an operator."""
        message = f"{type(error).__name__}: {error}"
        if isinstance(error, SubmissionRejectedError) and error.result_codes:
            message = f"{message} {error.result_codes}"

        async with self.session_maker() as session:
            async with session.begin():
                request = await WithdrawalRequestRepository(session).get_for_update(
                    claimed.id
                )
                assert_transition(request.state, WithdrawalState.ERROR)
                request.state = WithdrawalState.ERROR.value
                request.last_error = message[:1000]
                request.ambiguous = ambiguous

        bound = logger.bind(
            request_id=claimed.id, amount=str(claimed.amount), ambiguous=ambiguous
        )
        log = bound.error if ambiguous else bound.warning
        log(
            f"❌ [Settlement] Withdrawal {claimed.id} failed"
            f"{' (outcome unknown, reconcile against ledger)' if ambiguous else ''}: "
            f"{message}",
        )


def _is_no_destination(error: SubmissionRejectedError) -> bool:
    """Check rejection result codes for a missing destination."""
    operations = error.result_codes.get("operations") or []
    return NO_DESTINATION_CODE in operations
