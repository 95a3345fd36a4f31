"""Unit tests for exception categorization."""

from decimal import Decimal

from ledger_bridge.utils.exceptions import (
    AccountNotFoundError,
    InsufficientBalanceError,
    InvalidWithdrawalError,
    LedgerStreamError,
    LedgerTimeoutError,
    SubmissionRejectedError,
    is_ambiguous,
    is_transient,
)


class TestExceptionCategories:
    def test_stream_error_is_transient_not_ambiguous(self):
        error = LedgerStreamError("connection reset")
        assert is_transient(error)
        assert not is_ambiguous(error)

    def test_timeout_is_ambiguous(self):
        error = LedgerTimeoutError("504")
        assert is_transient(error)
        assert is_ambiguous(error)

    def test_rejection_is_definitive(self):
        error = SubmissionRejectedError("failed", result_codes={"transaction": "tx_failed"})
        assert not is_transient(error)
        assert not is_ambiguous(error)
        assert error.result_codes == {"transaction": "tx_failed"}

    def test_rejection_without_codes(self):
        assert SubmissionRejectedError("failed").result_codes == {}

    def test_account_not_found_keeps_address(self):
        error = AccountNotFoundError("G" + "B" * 55)
        assert error.address == "G" + "B" * 55
        assert not is_transient(error)

    def test_insufficient_balance(self):
        error = InsufficientBalanceError(42, Decimal("150"), Decimal("100"))
        assert isinstance(error, InvalidWithdrawalError)
        assert error.requested == Decimal("150")
        assert "available 100" in str(error)
