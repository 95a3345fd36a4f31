"""Integration tests for the deposit ingestor."""

import asyncio
from dataclasses import replace
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from ledger_bridge.config.settings import UnresolvedDepositPolicy
from ledger_bridge.models import CreditedDeposit, UnresolvedDeposit
from ledger_bridge.models.enums import UnresolvedReason
from ledger_bridge.repositories.deposit_cursor_repository import (
    DepositCursorRepository,
)
from ledger_bridge.services.customer_directory import DatabaseCustomerDirectory
from ledger_bridge.services.deposit.ingestor import DepositIngestor, DepositOutcome
from tests.fakes import (
    FakeLedgerClient,
    create_customer,
    get_balance,
    make_event,
)


def build_ingestor(session_maker, ledger, config, **kwargs) -> DepositIngestor:
    return DepositIngestor(
        session_maker, ledger, DatabaseCustomerDirectory(), config, **kwargs
    )


async def get_cursor(session_maker) -> str | None:
    async with session_maker() as session:
        return await DepositCursorRepository(session).get_token("deposits")


async def count_credited(session_maker) -> int:
    async with session_maker() as session:
        result = await session.execute(select(func.count(CreditedDeposit.event_id)))
        return result.scalar()


async def get_queue_entry(session_maker, event_id: str) -> UnresolvedDeposit | None:
    async with session_maker() as session:
        result = await session.execute(
            select(UnresolvedDeposit).where(UnresolvedDeposit.event_id == event_id)
        )
        return result.scalar_one_or_none()


class TestDepositCrediting:
    """Crediting and idempotency."""

    @pytest.mark.asyncio
    async def test_credits_customer_and_advances_cursor(
        self, session_maker, ingestor_config
    ):
        """Event for cust42 credits 100 and moves the cursor to "1"."""
        customer_id = await create_customer(session_maker, "cust42")
        ingestor = build_ingestor(session_maker, FakeLedgerClient(), ingestor_config)

        outcome = await ingestor.process_event(make_event("1", amount="100"))

        assert outcome is DepositOutcome.CREDITED
        assert await get_balance(session_maker, customer_id) == Decimal("100")
        assert await get_cursor(session_maker) == "1"
        async with session_maker() as session:
            credited = await session.get(CreditedDeposit, "1")
        assert credited.customer_id == customer_id
        assert credited.amount == Decimal("100")

    @pytest.mark.asyncio
    async def test_braces_in_ledger_values_are_credited(
        self, session_maker, ingestor_config
    ):
        """Token and memo text go into the log without being formatted."""
        customer_id = await create_customer(session_maker, "cust{42}")
        ingestor = build_ingestor(session_maker, FakeLedgerClient(), ingestor_config)

        outcome = await ingestor.process_event(
            make_event("{1}", amount="7", memo="cust{42}")
        )

        assert outcome is DepositOutcome.CREDITED
        assert await get_balance(session_maker, customer_id) == Decimal("7")
        assert await get_cursor(session_maker) == "{1}"

    @pytest.mark.asyncio
    async def test_redelivered_event_is_not_credited_twice(
        self, session_maker, ingestor_config
    ):
        """Same event after restart is a no-op."""
        customer_id = await create_customer(session_maker, "cust42")
        ingestor = build_ingestor(session_maker, FakeLedgerClient(), ingestor_config)
        event = make_event("1", amount="100")

        await ingestor.process_event(event)
        restarted = build_ingestor(session_maker, FakeLedgerClient(), ingestor_config)
        outcome = await restarted.process_event(event)

        assert outcome is DepositOutcome.DUPLICATE
        assert await get_balance(session_maker, customer_id) == Decimal("100")
        assert await count_credited(session_maker) == 1
        assert await get_cursor(session_maker) == "1"

    @pytest.mark.asyncio
    async def test_replay_from_earlier_cursor_credits_each_event_once(
        self, session_maker, ingestor_config
    ):
        """Total credit equals the sum of distinct events after any replay."""
        alice = await create_customer(session_maker, "alice")
        bob = await create_customer(session_maker, "bob")
        events = [
            make_event("1", amount="10", memo="alice"),
            make_event("2", amount="20.5", memo="bob"),
            make_event("3", amount="0.0000001", memo="alice"),
            make_event("4", amount="7", memo="bob"),
            make_event("5", amount="100", memo="alice"),
        ]
        ingestor = build_ingestor(session_maker, FakeLedgerClient(), ingestor_config)

        for event in events:
            await ingestor.process_event(event)
        # Replay everything after "2", then the whole stream again
        for event in events[2:] + events:
            await ingestor.process_event(event)

        assert await get_balance(session_maker, alice) == Decimal("110.0000001")
        assert await get_balance(session_maker, bob) == Decimal("27.5")
        assert await count_credited(session_maker) == 5

    @pytest.mark.asyncio
    async def test_crash_before_cursor_advance_rolls_back_credit(
        self, session_maker, ingestor_config
    ):
        """Crash between credit and cursor advance: nothing is committed."""
        customer_id = await create_customer(session_maker, "cust42")
        ingestor = build_ingestor(session_maker, FakeLedgerClient(), ingestor_config)
        event = make_event("1", amount="100")

        with patch.object(
            DepositCursorRepository,
            "advance",
            AsyncMock(side_effect=RuntimeError("process killed")),
        ):
            with pytest.raises(RuntimeError):
                await ingestor.process_event(event)

        assert await get_balance(session_maker, customer_id) == Decimal("0")
        assert await count_credited(session_maker) == 0
        assert await get_cursor(session_maker) is None

        # Restart resumes from the old cursor and credits exactly once
        outcome = await ingestor.process_event(event)
        await ingestor.process_event(event)

        assert outcome is DepositOutcome.CREDITED
        assert await get_balance(session_maker, customer_id) == Decimal("100")
        assert await get_cursor(session_maker) == "1"

    @pytest.mark.asyncio
    async def test_memo_fetched_from_transaction_when_missing(
        self, session_maker, ingestor_config
    ):
        """Events without memo use the transaction memo lookup."""
        customer_id = await create_customer(session_maker, "cust42")
        ledger = FakeLedgerClient()
        event = make_event("1", amount="5", memo=None, transaction_hash="ab" * 32)
        ledger.memos["ab" * 32] = "cust42"
        ingestor = build_ingestor(session_maker, ledger, ingestor_config)

        outcome = await ingestor.process_event(event)

        assert outcome is DepositOutcome.CREDITED
        assert ledger.memo_lookups == ["ab" * 32]
        assert await get_balance(session_maker, customer_id) == Decimal("5")

    @pytest.mark.asyncio
    async def test_memo_whitespace_is_ignored(self, session_maker, ingestor_config):
        """Directory trims the memo."""
        customer_id = await create_customer(session_maker, "cust42")
        ingestor = build_ingestor(session_maker, FakeLedgerClient(), ingestor_config)

        await ingestor.process_event(make_event("1", amount="1", memo="  cust42 "))

        assert await get_balance(session_maker, customer_id) == Decimal("1")


class TestRejectedEvents:
    """Events that are never credited."""

    @pytest.mark.asyncio
    async def test_foreign_destination_skipped(self, session_maker, ingestor_config):
        """Outgoing payments and payments to other accounts are skipped."""
        customer_id = await create_customer(session_maker, "cust42")
        ingestor = build_ingestor(session_maker, FakeLedgerClient(), ingestor_config)

        outcome = await ingestor.process_event(
            make_event("1", to="G" + "B" * 55)
        )

        assert outcome is DepositOutcome.FOREIGN_DESTINATION
        assert await get_balance(session_maker, customer_id) == Decimal("0")
        assert await get_cursor(session_maker) == "1"
        assert await get_queue_entry(session_maker, "1") is None

    @pytest.mark.asyncio
    async def test_non_native_asset_queued_and_handed_off(
        self, session_maker, ingestor_config
    ):
        """Non-native payments go to the return handler, not the balance."""
        customer_id = await create_customer(session_maker, "cust42")
        handler = AsyncMock()
        ingestor = build_ingestor(
            session_maker,
            FakeLedgerClient(),
            ingestor_config,
            non_native_handler=handler,
        )
        event = make_event("1", amount="50", asset_type="credit_alphanum4")

        outcome = await ingestor.process_event(event)

        assert outcome is DepositOutcome.NON_NATIVE
        handler.handle.assert_awaited_once_with(event)
        assert await get_balance(session_maker, customer_id) == Decimal("0")
        assert await get_cursor(session_maker) == "1"
        entry = await get_queue_entry(session_maker, "1")
        assert entry.reason == UnresolvedReason.NON_NATIVE_ASSET.value
        assert entry.asset_type == "credit_alphanum4"

    @pytest.mark.asyncio
    async def test_failing_return_handler_does_not_stop_ingestion(
        self, session_maker, ingestor_config
    ):
        """Handler errors are logged; the event stays committed."""
        handler = AsyncMock()
        handler.handle.side_effect = RuntimeError("return failed")
        ingestor = build_ingestor(
            session_maker,
            FakeLedgerClient(),
            ingestor_config,
            non_native_handler=handler,
        )

        outcome = await ingestor.process_event(
            make_event("1", asset_type="credit_alphanum12")
        )

        assert outcome is DepositOutcome.NON_NATIVE
        assert await get_cursor(session_maker) == "1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["abc", "-5", "0", "1.00000001", None])
    async def test_malformed_amount_queued(
        self, session_maker, ingestor_config, amount
    ):
        """Unparseable amounts are queued and skipped."""
        customer_id = await create_customer(session_maker, "cust42")
        ingestor = build_ingestor(session_maker, FakeLedgerClient(), ingestor_config)

        outcome = await ingestor.process_event(make_event("1", amount=amount))

        assert outcome is DepositOutcome.MALFORMED
        assert await get_balance(session_maker, customer_id) == Decimal("0")
        assert await get_cursor(session_maker) == "1"
        entry = await get_queue_entry(session_maker, "1")
        assert entry.reason == UnresolvedReason.MALFORMED.value


class TestUnresolvedPolicy:
    """Unresolvable correlation identifiers."""

    @pytest.mark.asyncio
    async def test_skip_and_queue_advances_cursor(
        self, session_maker, ingestor_config
    ):
        """Default policy: queue the event and move on."""
        ingestor = build_ingestor(session_maker, FakeLedgerClient(), ingestor_config)

        outcome = await ingestor.process_event(make_event("1", memo="nobody"))
        next_outcome = await ingestor.process_event(make_event("2", memo="nobody"))

        assert outcome is DepositOutcome.UNRESOLVED
        assert next_outcome is DepositOutcome.UNRESOLVED
        assert await get_cursor(session_maker) == "2"
        entry = await get_queue_entry(session_maker, "1")
        assert entry.reason == UnresolvedReason.UNRESOLVED_MEMO.value
        assert entry.memo == "nobody"
        assert entry.amount == Decimal("100")
        assert entry.is_resolved is False

    @pytest.mark.asyncio
    async def test_missing_memo_is_unresolved(self, session_maker, ingestor_config):
        """No memo anywhere means no customer."""
        ingestor = build_ingestor(session_maker, FakeLedgerClient(), ingestor_config)

        outcome = await ingestor.process_event(make_event("1", memo=None))

        assert outcome is DepositOutcome.UNRESOLVED

    @pytest.mark.asyncio
    async def test_block_policy_holds_cursor_until_resolved(
        self, session_maker, ingestor_config
    ):
        """Block policy: cursor stays until the memo resolves."""
        config = replace(
            ingestor_config, unresolved_policy=UnresolvedDepositPolicy.BLOCK
        )
        ingestor = build_ingestor(session_maker, FakeLedgerClient(), config)
        event = make_event("1", amount="30", memo="late-customer")

        outcome = await ingestor.process_event(event)

        assert outcome is DepositOutcome.BLOCKED
        assert await get_cursor(session_maker) is None
        assert await get_queue_entry(session_maker, "1") is not None

        customer_id = await create_customer(session_maker, "late-customer")
        outcome = await ingestor.process_event(event)

        assert outcome is DepositOutcome.CREDITED
        assert await get_balance(session_maker, customer_id) == Decimal("30")
        assert await get_cursor(session_maker) == "1"
        entry = await get_queue_entry(session_maker, "1")
        assert entry.is_resolved
        assert entry.resolved_customer_id == customer_id

    @pytest.mark.asyncio
    async def test_block_policy_released_by_dismissal(
        self, session_maker, ingestor_config
    ):
        """A dismissed queue entry no longer blocks the stream."""
        from ledger_bridge.services.reconciliation import ReconciliationService

        config = replace(
            ingestor_config, unresolved_policy=UnresolvedDepositPolicy.BLOCK
        )
        ingestor = build_ingestor(session_maker, FakeLedgerClient(), config)
        event = make_event("1", memo="nobody")

        assert await ingestor.process_event(event) is DepositOutcome.BLOCKED
        await ReconciliationService(session_maker).dismiss_unresolved_deposit(
            "1", note="returned to sender"
        )

        assert await ingestor.process_event(event) is DepositOutcome.UNRESOLVED
        assert await get_cursor(session_maker) == "1"


class TestIngestorLoop:
    """run() / stop() against the fake stream."""

    @pytest.mark.asyncio
    async def test_stream_error_resumes_from_committed_cursor(
        self, session_maker, ingestor_config
    ):
        """Transient stream failure: resubscribe from the durable cursor."""
        customer_id = await create_customer(session_maker, "cust42")
        ledger = FakeLedgerClient(
            events=[make_event(str(i), amount="1") for i in range(1, 6)]
        )
        ledger.fail_stream_after = 2
        ingestor = build_ingestor(session_maker, ledger, ingestor_config)

        task = asyncio.create_task(ingestor.run())
        await asyncio.wait_for(ledger.drained.wait(), timeout=5)
        await ingestor.stop()
        await asyncio.wait_for(task, timeout=5)

        assert ledger.subscriptions == [None, "2"]
        assert await get_balance(session_maker, customer_id) == Decimal("5")
        assert await get_cursor(session_maker) == "5"
        async with session_maker() as session:
            cursor = await DepositCursorRepository(session).get_or_create("deposits")
        assert cursor.error_count == 0
        assert cursor.last_error is None

    @pytest.mark.asyncio
    async def test_restart_resumes_after_cursor(self, session_maker, ingestor_config):
        """A new ingestor subscribes from the committed cursor."""
        customer_id = await create_customer(session_maker, "cust42")
        events = [make_event(str(i), amount="2") for i in range(1, 4)]
        ledger = FakeLedgerClient(events=events)

        first = build_ingestor(session_maker, ledger, ingestor_config)
        task = asyncio.create_task(first.run())
        await asyncio.wait_for(ledger.drained.wait(), timeout=5)
        await first.stop()
        await asyncio.wait_for(task, timeout=5)

        ledger.events.append(make_event("4", amount="2"))
        ledger.drained.clear()
        second = build_ingestor(session_maker, ledger, ingestor_config)
        task = asyncio.create_task(second.run())
        await asyncio.wait_for(ledger.drained.wait(), timeout=5)
        await second.stop()
        await asyncio.wait_for(task, timeout=5)

        assert ledger.subscriptions == [None, "3"]
        assert await get_balance(session_maker, customer_id) == Decimal("8")

    @pytest.mark.asyncio
    async def test_stop_while_waiting_for_events(self, session_maker, ingestor_config):
        """stop() wakes an idle stream read."""
        ledger = FakeLedgerClient()
        ingestor = build_ingestor(session_maker, ledger, ingestor_config)

        task = asyncio.create_task(ingestor.run())
        await asyncio.wait_for(ledger.drained.wait(), timeout=5)
        await ingestor.stop()
        await asyncio.wait_for(task, timeout=5)

        assert task.done()
        assert task.exception() is None

    @pytest.mark.asyncio
    async def test_no_waiter_tasks_left_after_stop(
        self, session_maker, ingestor_config
    ):
        """Every event read cleans up its stop waiter."""
        await create_customer(session_maker, "cust42")
        ledger = FakeLedgerClient(
            events=[make_event(str(i), amount="1") for i in range(1, 4)]
        )
        ingestor = build_ingestor(session_maker, ledger, ingestor_config)

        task = asyncio.create_task(ingestor.run())
        await asyncio.wait_for(ledger.drained.wait(), timeout=5)
        await ingestor.stop()
        await asyncio.wait_for(task, timeout=5)

        assert asyncio.all_tasks() == {asyncio.current_task()}
