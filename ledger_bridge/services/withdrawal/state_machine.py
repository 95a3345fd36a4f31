"""
Withdrawal state machine.

pending -> sending -> {done | error}

The settlement engine only moves requests forward. Moving a request out
of an ambiguous ``sending`` or a terminal ``error`` is an operator
decision taken after checking the public ledger's history.
"""

from ledger_bridge.models.enums import WithdrawalState
from ledger_bridge.utils.exceptions import InvalidStateTransitionError


ENGINE_TRANSITIONS: dict[WithdrawalState, set[WithdrawalState]] = {
    WithdrawalState.PENDING: {WithdrawalState.SENDING},
    WithdrawalState.SENDING: {WithdrawalState.DONE, WithdrawalState.ERROR},
    WithdrawalState.DONE: set(),
    WithdrawalState.ERROR: set(),
}

OPERATOR_TRANSITIONS: dict[WithdrawalState, set[WithdrawalState]] = {
    WithdrawalState.PENDING: set(),
    # Confirmed on the ledger / confirmed absent from the ledger
    WithdrawalState.SENDING: {WithdrawalState.DONE, WithdrawalState.PENDING},
    WithdrawalState.ERROR: {WithdrawalState.DONE, WithdrawalState.PENDING},
    WithdrawalState.DONE: set(),
}


def can_transition(
    old: WithdrawalState | str,
    new: WithdrawalState | str,
    operator: bool = False,
) -> bool:
    """
    Check whether a state transition is allowed.

    Args:
        old: Current state
        new: Target state
        operator: Check the operator table instead of the engine table

    Returns:
        True if allowed
    """
    table = OPERATOR_TRANSITIONS if operator else ENGINE_TRANSITIONS
    return WithdrawalState(new) in table[WithdrawalState(old)]


def assert_transition(
    old: WithdrawalState | str,
    new: WithdrawalState | str,
    operator: bool = False,
) -> None:
    """
    Raise if a state transition is not allowed.

    Raises:
        InvalidStateTransitionError: If the transition is illegal
    """
    if not can_transition(old, new, operator=operator):
        raise InvalidStateTransitionError(
            WithdrawalState(old).value, WithdrawalState(new).value
        )
