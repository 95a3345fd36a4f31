"""Unit tests for the withdrawal state machine."""

import pytest

from ledger_bridge.models.enums import WithdrawalState
from ledger_bridge.services.withdrawal.query_service import customer_status_label
from ledger_bridge.services.withdrawal.state_machine import (
    assert_transition,
    can_transition,
)
from ledger_bridge.utils.exceptions import InvalidStateTransitionError


PENDING = WithdrawalState.PENDING
SENDING = WithdrawalState.SENDING
DONE = WithdrawalState.DONE
ERROR = WithdrawalState.ERROR


class TestEngineTransitions:
    """Transitions the settlement engine may perform."""

    @pytest.mark.parametrize(
        "old,new", [(PENDING, SENDING), (SENDING, DONE), (SENDING, ERROR)]
    )
    def test_allowed(self, old, new):
        assert can_transition(old, new)
        assert_transition(old, new)

    @pytest.mark.parametrize(
        "old,new",
        [
            (PENDING, DONE),
            (PENDING, ERROR),
            (SENDING, PENDING),
            (ERROR, PENDING),
            (ERROR, SENDING),
            (DONE, PENDING),
            (DONE, ERROR),
        ],
    )
    def test_forbidden(self, old, new):
        """The engine never moves a request backwards or out of a terminal state."""
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            assert_transition(old, new)
        assert exc_info.value.old == old.value
        assert exc_info.value.new == new.value

    def test_accepts_strings(self):
        assert_transition("pending", "sending")
        assert not can_transition("done", "sending")


class TestOperatorTransitions:
    """Transitions reserved for operator reconciliation."""

    @pytest.mark.parametrize(
        "old,new",
        [(SENDING, DONE), (ERROR, DONE), (SENDING, PENDING), (ERROR, PENDING)],
    )
    def test_allowed(self, old, new):
        assert_transition(old, new, operator=True)

    @pytest.mark.parametrize(
        "old,new", [(PENDING, SENDING), (DONE, PENDING), (PENDING, DONE)]
    )
    def test_forbidden(self, old, new):
        with pytest.raises(InvalidStateTransitionError):
            assert_transition(old, new, operator=True)


class TestTerminalStates:
    def test_terminal(self):
        assert DONE.is_terminal
        assert ERROR.is_terminal
        assert not PENDING.is_terminal
        assert not SENDING.is_terminal


class TestCustomerLabels:
    @pytest.mark.parametrize(
        "state,label",
        [
            ("pending", "pending"),
            ("sending", "processing"),
            ("done", "completed"),
            ("error", "pending manual review"),
        ],
    )
    def test_labels(self, state, label):
        assert customer_status_label(state) == label
