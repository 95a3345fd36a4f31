"""
Deposit Ingestor.

Consumes the payment stream of the exchange's receiving account and
credits customers exactly once per stream event.

Every event is handled in ONE local transaction: the CreditedDeposit
insert, the balance credit and the cursor advance commit together or
not at all. The stream is always resumed from the committed cursor, so
a crash at any point leads to redelivery, and redelivery is absorbed by
the unique event ID of CreditedDeposit.
"""

import asyncio
import contextlib
from collections.abc import AsyncIterator
from decimal import Decimal
from enum import Enum

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ledger_bridge.config.constants import DEPOSIT_STREAM_NAME
from ledger_bridge.config.settings import IngestorConfig, UnresolvedDepositPolicy
from ledger_bridge.models.enums import UnresolvedReason
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
from ledger_bridge.services.customer_directory import CustomerDirectory
from ledger_bridge.services.deposit.return_policy import (
    LoggingReturnPolicy,
    NonNativePaymentHandler,
)
from ledger_bridge.services.ledger_client.base import LedgerClient
from ledger_bridge.services.ledger_client.types import PaymentEvent
from ledger_bridge.utils.exceptions import (
    LedgerBridgeError,
    MalformedEventError,
    is_transient,
)
from ledger_bridge.utils.security import mask_address, mask_tx_hash
from ledger_bridge.utils.validation import parse_amount


class DepositOutcome(str, Enum):
    """Result of processing one stream event."""

    CREDITED = "credited"
    DUPLICATE = "duplicate"
    FOREIGN_DESTINATION = "foreign_destination"
    NON_NATIVE = "non_native"
    UNRESOLVED = "unresolved"
    MALFORMED = "malformed"
    BLOCKED = "blocked"

    @property
    def advances_cursor(self) -> bool:
        """Whether the cursor moved past the event."""
        return self is not DepositOutcome.BLOCKED


class DepositIngestor:
    """
    Exactly-once deposit crediting from the ledger payment stream.

    Responsibilities:
    - Resume the stream from the last committed cursor
    - Filter foreign destinations and non-native assets
    - Resolve the memo to a customer (or queue the event for operators)
    - Credit the customer and advance the cursor atomically
    - Retry transient stream failures with back-off
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        client: LedgerClient,
        directory: CustomerDirectory,
        config: IngestorConfig,
        non_native_handler: NonNativePaymentHandler | None = None,
        stream_name: str = DEPOSIT_STREAM_NAME,
    ) -> None:
        """
        Initialize ingestor.

        Args:
            session_maker: Session factory for the local store
            client: Public ledger client
            directory: Customer directory
            config: Ingestor configuration
            non_native_handler: Handler for payments in other assets
            stream_name: Cursor row name
        """
        self.session_maker = session_maker
        self.client = client
        self.directory = directory
        self.config = config
        self.non_native_handler = non_native_handler or LoggingReturnPolicy()
        self.stream_name = stream_name

        self._stop_event = asyncio.Event()
        self._retry_delay = config.retry_initial_delay

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """
        Consume the stream until stop() is called.

        Any failure drops the stream and resubscribes from the committed
        cursor after a back-off delay, never from in-memory progress.
        """
        self._stop_event.clear()
        logger.info(
            f"[Ingestor] Started for {mask_address(self.config.base_account_address)} "
            f"(policy: {self.config.unresolved_policy.value})"
        )

        while not self._stop_event.is_set():
            cursor = await self.load_cursor()
            stream = self.client.subscribe(self.config.base_account_address, cursor)

            try:
                blocked = await self._consume(stream)
            except Exception as e:
                if is_transient(e):
                    logger.warning(
                        f"[Ingestor] Stream interrupted at cursor "
                        f"{cursor or 'origin'}: {type(e).__name__}: {e}"
                    )
                else:
                    logger.exception(
                        f"[Ingestor] Unexpected error at cursor {cursor or 'origin'}"
                    )
                await self._record_stream_error(f"{type(e).__name__}: {e}")
                await self._sleep(self._retry_delay)
                self._retry_delay = min(
                    self._retry_delay * 2, self.config.retry_max_delay
                )
                continue
            finally:
                await self._close_stream(stream)

            if blocked:
                logger.warning(
                    f"[Ingestor] Blocked on unresolved deposit, retrying in "
                    f"{self.config.block_retry_interval}s"
                )
                await self._sleep(self.config.block_retry_interval)
            elif not self._stop_event.is_set():
                # Stream ended on its own; resubscribe
                await self._sleep(self.config.retry_initial_delay)

        logger.info("[Ingestor] Stopped")

    async def stop(self) -> None:
        """
        Request shutdown.

        An event already being processed finishes its transaction first.
        """
        self._stop_event.set()

    async def _consume(self, stream: AsyncIterator[PaymentEvent]) -> bool:
        """
        Process events until stop, stream end or a blocked event.

        Returns:
            True if an event blocked the stream
        """
        iterator = stream.__aiter__()

        while not self._stop_event.is_set():
            event = await self._next_event(iterator)
            if event is None:
                return False

            outcome = await self.process_event(event)
            self._retry_delay = self.config.retry_initial_delay

            if outcome is DepositOutcome.BLOCKED:
                return True

        return False

    async def _next_event(
        self, iterator: AsyncIterator[PaymentEvent]
    ) -> PaymentEvent | None:
        """
        Wait for the next event or for stop(), whichever comes first.

        Returns:
            Next event, or None on stop / end of stream
        """
        next_task = asyncio.create_task(_anext(iterator))
        stop_task = asyncio.create_task(self._stop_event.wait())

        done, _ = await asyncio.wait(
            {next_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
        )

        if next_task in done:
            await _cancel(stop_task)
            return next_task.result()

        await _cancel(next_task)
        return None

    async def _close_stream(self, stream: AsyncIterator[PaymentEvent]) -> None:
        """Close async generator streams."""
        aclose = getattr(stream, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            logger.debug(f"[Ingestor] Error closing stream: {e}")

    async def _sleep(self, delay: float) -> None:
        """Sleep that wakes up early on stop()."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    # ------------------------------------------------------------------
    # Cursor
    # ------------------------------------------------------------------

    async def load_cursor(self) -> str | None:
        """
        Read the committed cursor.

        Returns:
            Paging token or None (stream origin)
        """
        async with self.session_maker() as session:
            return await DepositCursorRepository(session).get_token(self.stream_name)

    async def _record_stream_error(self, error: str) -> None:
        """Store the last stream error on the cursor row."""
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    await DepositCursorRepository(session).record_error(
                        self.stream_name, error
                    )
        except Exception as e:
            logger.error(f"[Ingestor] Failed to record stream error: {e}")

    # ------------------------------------------------------------------
    # Event processing
    # ------------------------------------------------------------------

    async def process_event(self, event: PaymentEvent) -> DepositOutcome:
        """
        Process one stream event in a single transaction.

        Args:
            event: Payment event from the stream

        Returns:
            DepositOutcome

        Raises:
            TransientLedgerError: If the memo lookup fails (nothing committed)
            SQLAlchemyError: If the transaction fails (nothing committed)
        """
        memo = await self._resolve_memo(event)

        try:
            async with self.session_maker() as session:
                async with session.begin():
                    outcome = await self._apply_event(session, event, memo)
        except IntegrityError as e:
            # Another writer credited this event first
            outcome = await self._absorb_duplicate(event, e)

        if outcome is DepositOutcome.NON_NATIVE:
            await self._hand_off_non_native(event)

        return outcome

    async def _resolve_memo(self, event: PaymentEvent) -> str | None:
        """
        Get the memo for an event that may be credited.

        The memo is fetched from the ledger only for native payments to
        the receiving account that arrived without one.
        """
        if event.memo is not None or not event.transaction_hash:
            return event.memo
        if event.to != self.config.base_account_address:
            return None
        if event.asset_type != self.config.native_asset_type:
            return None
        return await self.client.get_transaction_memo(event.transaction_hash)

    async def _apply_event(
        self,
        session: AsyncSession,
        event: PaymentEvent,
        memo: str | None,
    ) -> DepositOutcome:
        """
        Apply event inside the caller's transaction.

        Args:
            session: Session with an open transaction
            event: Payment event
            memo: Correlation identifier

        Returns:
            DepositOutcome
        """
        token = event.paging_token
        cursor_repo = DepositCursorRepository(session)
        queue_repo = UnresolvedDepositRepository(session)

        # Only payments into the receiving account are deposits
        if event.to != self.config.base_account_address:
            logger.debug(
                f"[Ingestor] Skipping {token}: destination "
                f"{mask_address(event.to)} is not the receiving account"
            )
            await cursor_repo.advance(self.stream_name, token)
            return DepositOutcome.FOREIGN_DESTINATION

        # Only the native asset is credited
        if event.asset_type != self.config.native_asset_type:
            logger.warning(
                f"[Ingestor] Rejecting {token}: asset {event.asset_type!r} "
                f"is not native"
            )
            await queue_repo.enqueue(
                token,
                UnresolvedReason.NON_NATIVE_ASSET.value,
                memo=_clip(memo),
                amount=_amount_or_none(event.amount),
                asset_type=_clip(event.asset_type, 32),
                from_address=event.from_address,
                transaction_hash=event.transaction_hash,
            )
            await cursor_repo.advance(self.stream_name, token)
            return DepositOutcome.NON_NATIVE

        try:
            amount = _event_amount(event)
        except MalformedEventError as e:
            logger.error(f"[Ingestor] Malformed event {token}: {e}")
            await queue_repo.enqueue(
                token,
                UnresolvedReason.MALFORMED.value,
                memo=_clip(memo),
                asset_type=_clip(event.asset_type, 32),
                from_address=event.from_address,
                transaction_hash=event.transaction_hash,
                details=f"{e}; raw amount={event.amount!r}",
            )
            await cursor_repo.advance(self.stream_name, token)
            return DepositOutcome.MALFORMED

        # Replay of an event credited before the cursor was committed
        credited_repo = CreditedDepositRepository(session)
        if await credited_repo.is_credited(token):
            logger.info(f"⏩ [Ingestor] Deposit {token} already credited. Skipping.")
            await cursor_repo.advance(self.stream_name, token)
            return DepositOutcome.DUPLICATE

        # Resolve memo to customer
        customer_id = await self.directory.resolve(session, memo)
        if customer_id is None:
            return await self._handle_unresolved(session, event, memo, amount)

        # Record, credit and advance together
        await credited_repo.create(
            event_id=token,
            customer_id=customer_id,
            amount=amount,
            transaction_hash=event.transaction_hash,
        )
        customer = await CustomerAccountRepository(session).credit(customer_id, amount)
        if customer is None:
            raise LedgerBridgeError(
                f"Customer {customer_id} resolved by directory does not exist"
            )
        await cursor_repo.advance(self.stream_name, token)

        # Queued earlier under the block policy, resolved since
        queued = await queue_repo.get_by_event_id(token, for_update=True)
        if queued and not queued.is_resolved:
            await queue_repo.mark_resolved(queued, customer_id)

        logger.bind(
            event_id=token,
            customer_id=customer_id,
            amount=str(amount),
            balance_after=str(customer.balance),
        ).info(
            f"📥 [Ingestor] Credited deposit {token}: {amount} to customer "
            f"{customer_id} (TX: {mask_tx_hash(event.transaction_hash)})"
        )
        return DepositOutcome.CREDITED

    async def _handle_unresolved(
        self,
        session: AsyncSession,
        event: PaymentEvent,
        memo: str | None,
        amount: Decimal,
    ) -> DepositOutcome:
        """Queue an unresolvable deposit and apply the configured policy."""
        token = event.paging_token

        entry = await UnresolvedDepositRepository(session).enqueue(
            token,
            UnresolvedReason.UNRESOLVED_MEMO.value,
            memo=_clip(memo),
            amount=amount,
            asset_type=_clip(event.asset_type, 32),
            from_address=event.from_address,
            transaction_hash=event.transaction_hash,
        )

        # A dismissed entry releases a blocked stream
        blocking = (
            self.config.unresolved_policy is UnresolvedDepositPolicy.BLOCK
            and not entry.is_resolved
        )
        if blocking:
            logger.error(
                f"⚠️ [Ingestor] Unidentified deposit {token} (memo {memo!r}, "
                f"{amount}). Stream blocked until the memo resolves."
            )
            return DepositOutcome.BLOCKED

        await DepositCursorRepository(session).advance(self.stream_name, token)
        logger.warning(
            f"⚠️ [Ingestor] Unidentified deposit {token} (memo {memo!r}, "
            f"{amount}) queued for manual review"
        )
        return DepositOutcome.UNRESOLVED

    async def _absorb_duplicate(
        self, event: PaymentEvent, error: IntegrityError
    ) -> DepositOutcome:
        """
        Handle a unique-key collision on CreditedDeposit.

        The earlier transaction rolled back entirely; if the event is in
        fact credited, only the cursor still has to move.
        """
        async with self.session_maker() as session:
            async with session.begin():
                if not await CreditedDepositRepository(session).is_credited(
                    event.paging_token
                ):
                    raise error
                await DepositCursorRepository(session).advance(
                    self.stream_name, event.paging_token
                )

        logger.info(
            f"⏩ [Ingestor] Deposit {event.paging_token} credited concurrently. Skipping."
        )
        return DepositOutcome.DUPLICATE

    async def _hand_off_non_native(self, event: PaymentEvent) -> None:
        """Pass a committed non-native rejection to the return policy."""
        try:
            await self.non_native_handler.handle(event)
        except Exception as e:
            logger.error(
                f"[Ingestor] Non-native handler failed for {event.paging_token}: {e}"
            )


def _clip(value: str | None, length: int = 64) -> str | None:
    """Trim free-form ledger values to column size."""
    if value is None:
        return None
    return value[:length]


def _event_amount(event: PaymentEvent) -> Decimal:
    """
    Parse the amount of a native payment.

    Raises:
        MalformedEventError: If the amount cannot be credited
    """
    try:
        return parse_amount(event.amount)
    except ValueError as e:
        raise MalformedEventError(str(e)) from e


def _amount_or_none(value: str | None) -> Decimal | None:
    """Parse amount for the review queue, ignoring invalid values."""
    try:
        return parse_amount(value)
    except ValueError:
        return None


async def _anext(iterator: AsyncIterator[PaymentEvent]) -> PaymentEvent | None:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return None


async def _cancel(task: asyncio.Task) -> None:
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
