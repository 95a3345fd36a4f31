"""
Horizon client.

aiohttp adapter over a Horizon-style REST API:
- paged payment stream per account, resumable by paging token
- transaction memo lookup
- account lookup (sequence number)
- transaction submission
"""

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import aiohttp
from loguru import logger

from ledger_bridge.config.constants import (
    CORRELATION_MEMO_TYPES,
    NATIVE_ASSET_TYPE,
    REQUEST_TIMEOUT,
    STREAM_PAGE_SIZE,
    STREAM_POLL_INTERVAL,
)
from ledger_bridge.services.ledger_client.types import (
    AccountHandle,
    PaymentEvent,
    SignedTransaction,
    SubmissionResult,
)
from ledger_bridge.utils.exceptions import (
    AccountNotFoundError,
    LedgerStreamError,
    LedgerTimeoutError,
    SubmissionRejectedError,
)
from ledger_bridge.utils.security import mask_address, mask_tx_hash


def payment_record_to_event(record: dict[str, Any]) -> PaymentEvent | None:
    """
    Convert a payment record into a PaymentEvent.

    ``create_account`` records are surfaced as native payments to the
    created account. Records without a paging token have no stream
    position and are dropped.

    Args:
        record: Payment record as returned by the API

    Returns:
        PaymentEvent or None if the record has no paging token
    """
    paging_token = record.get("paging_token")
    if not paging_token:
        return None

    memo = _memo_of(record.get("transaction") or {})

    if record.get("type") == "create_account":
        return PaymentEvent(
            paging_token=str(paging_token),
            to=record.get("account"),
            asset_type=NATIVE_ASSET_TYPE,
            amount=record.get("starting_balance"),
            memo=memo,
            transaction_hash=record.get("transaction_hash"),
            from_address=record.get("funder"),
            record_type="create_account",
        )

    return PaymentEvent(
        paging_token=str(paging_token),
        to=record.get("to"),
        asset_type=record.get("asset_type"),
        amount=record.get("amount"),
        memo=memo,
        transaction_hash=record.get("transaction_hash"),
        from_address=record.get("from"),
        record_type=record.get("type", "payment"),
    )


def _memo_of(transaction: dict[str, Any]) -> str | None:
    """Correlation identifier carried by a transaction, if any."""
    if transaction.get("memo_type") not in CORRELATION_MEMO_TYPES:
        return None
    memo = transaction.get("memo")
    return None if memo is None else str(memo)


class HorizonClient:
    """
    Public ledger client over HTTP.

    One client instance may be shared by the ingestor and the settlement
    engine; it holds no per-account state.
    """

    def __init__(
        self,
        base_url: str,
        request_timeout: float = REQUEST_TIMEOUT,
        page_size: int = STREAM_PAGE_SIZE,
        poll_interval: float = STREAM_POLL_INTERVAL,
    ) -> None:
        """
        Initialize client.

        Args:
            base_url: Horizon base URL
            request_timeout: Timeout per request in seconds
            page_size: Records per payments page
            poll_interval: Delay between polls once the stream is caught up
        """
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.page_size = page_size
        self.poll_interval = poll_interval
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout),
                headers={"Accept": "application/json"},
            )
        return self._session

    async def close(self) -> None:
        """Close underlying HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _get_json(
        self, path: str, params: dict[str, Any] | None = None
    ) -> tuple[int, dict[str, Any]]:
        """
        GET a JSON resource.

        Args:
            path: Path relative to base URL
            params: Query parameters

        Returns:
            Tuple of (status, body)

        Raises:
            LedgerStreamError: On transport failure or unexpected status
        """
        session = await self._get_session()
        try:
            async with session.get(f"{self.base_url}{path}", params=params) as response:
                if response.status == 404:
                    return 404, {}
                if response.status != 200:
                    body = await response.text()
                    raise LedgerStreamError(
                        f"GET {path} failed: HTTP {response.status} {body[:200]}"
                    )
                return 200, await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise LedgerStreamError(f"GET {path} failed: {e!r}") from e

    async def subscribe(
        self, address: str, cursor: str | None = None
    ) -> AsyncIterator[PaymentEvent]:
        """
        Stream payments for address in ascending ledger order.

        Args:
            address: Account to follow
            cursor: Paging token to resume after (None = stream origin)

        Yields:
            PaymentEvent for every payment record

        Raises:
            LedgerStreamError: On transport failure
        """
        position = cursor
        logger.info(
            f"[Horizon] Subscribing to payments of {mask_address(address)} "
            f"from cursor {position or 'origin'}"
        )

        while True:
            params: dict[str, Any] = {
                "order": "asc",
                "limit": self.page_size,
                "join": "transactions",
            }
            if position:
                params["cursor"] = position

            status, body = await self._get_json(
                f"/accounts/{address}/payments", params=params
            )
            if status == 404:
                raise LedgerStreamError(
                    f"Receiving account {mask_address(address)} not found"
                )

            records = body.get("_embedded", {}).get("records", [])
            if not records:
                await asyncio.sleep(self.poll_interval)
                continue

            for record in records:
                event = payment_record_to_event(record)
                if event is None:
                    logger.warning(
                        f"[Horizon] Dropping payment record without paging token: "
                        f"id={record.get('id')}"
                    )
                    continue
                position = event.paging_token
                yield event

    async def get_transaction_memo(self, transaction_hash: str) -> str | None:
        """
        Get the correlation memo of a transaction.

        Args:
            transaction_hash: Transaction hash

        Returns:
            Memo as a string (text, ID or hash memo) or None

        Raises:
            LedgerStreamError: On transport failure or unknown transaction
        """
        status, body = await self._get_json(f"/transactions/{transaction_hash}")
        if status == 404:
            raise LedgerStreamError(
                f"Transaction {mask_tx_hash(transaction_hash)} not found"
            )
        return _memo_of(body)

    async def get_account(self, address: str) -> AccountHandle:
        """
        Load account and its sequence number.

        Args:
            address: Account address

        Returns:
            AccountHandle

        Raises:
            AccountNotFoundError: If the account does not exist
            LedgerStreamError: On transport failure
        """
        status, body = await self._get_json(f"/accounts/{address}")
        if status == 404:
            raise AccountNotFoundError(address)
        return AccountHandle(
            address=body.get("account_id", address),
            sequence=int(body["sequence"]),
        )

    async def submit(self, transaction: SignedTransaction) -> SubmissionResult:
        """
        Submit signed transaction and wait for the result.

        Args:
            transaction: Signed envelope

        Returns:
            SubmissionResult

        Raises:
            SubmissionRejectedError: Ledger rejected the transaction
            LedgerTimeoutError: Outcome unknown (timeout, 5xx, dropped
                connection)
        """
        session = await self._get_session()
        logger.info(
            f"[Horizon] Submitting transaction {mask_tx_hash(transaction.hash)}"
        )

        try:
            async with session.post(
                f"{self.base_url}/transactions",
                data={"tx": transaction.envelope},
            ) as response:
                if response.status not in (200, 400):
                    text = await response.text()
                    raise LedgerTimeoutError(
                        f"Submission returned HTTP {response.status}: {text[:200]}"
                    )

                try:
                    body = await response.json(content_type=None)
                except ValueError as e:
                    raise LedgerTimeoutError(
                        f"Unreadable submission response (HTTP {response.status})"
                    ) from e

                if response.status == 200:
                    return SubmissionResult(
                        hash=body.get("hash", transaction.hash),
                        ledger=body.get("ledger"),
                    )

                extras = body.get("extras") or {}
                raise SubmissionRejectedError(
                    body.get("title", "Transaction Failed"),
                    result_codes=extras.get("result_codes"),
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise LedgerTimeoutError(f"Submission outcome unknown: {e!r}") from e
