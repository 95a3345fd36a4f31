#!/usr/bin/env python3
"""
Operator reconciliation CLI.

Check the public ledger's history BEFORE running any write command.

Usage:
    python scripts/reconcile.py withdrawals
    python scripts/reconcile.py mark-settled 42 <tx_hash>
    python scripts/reconcile.py requeue 42
    python scripts/reconcile.py deposits
    python scripts/reconcile.py credit-deposit <event_id> <customer_id>
    python scripts/reconcile.py dismiss-deposit <event_id> --note "returned"
    python scripts/reconcile.py cursor
    python scripts/reconcile.py reset-cursor <token>
"""

import argparse
import asyncio
import sys

from loguru import logger

from ledger_bridge.config.database import create_engine_and_sessionmaker
from ledger_bridge.config.settings import load_settings
from ledger_bridge.services.reconciliation import ReconciliationService
from ledger_bridge.utils.exceptions import LedgerBridgeError

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def run_command(args: argparse.Namespace) -> int:
    """Execute one operator command. Returns the exit code."""
    # Operator commands never sign anything
    settings = load_settings(environment="operator")
    engine, session_maker = create_engine_and_sessionmaker(settings)
    service = ReconciliationService(session_maker)

    try:
        if args.command == "withdrawals":
            requests = await service.list_attention_required(limit=args.limit)
            if not requests:
                logger.info("No withdrawals need attention")
            for r in requests:
                print(
                    f"#{r.id}\t{r.state}\t{r.amount}\t{r.destination_address}\t"
                    f"memo={r.memo}\tambiguous={r.ambiguous}\t"
                    f"attempted={r.attempted_at}\t{r.last_error or ''}"
                )

        elif args.command == "mark-settled":
            await service.mark_settled(args.request_id, args.tx_hash)

        elif args.command == "requeue":
            await service.requeue(args.request_id)

        elif args.command == "deposits":
            entries = await service.list_unresolved_deposits(limit=args.limit)
            if not entries:
                logger.info("No queued deposits")
            for e in entries:
                print(
                    f"{e.event_id}\t{e.reason}\t{e.amount}\t{e.asset_type}\t"
                    f"memo={e.memo!r}\tfrom={e.from_address}\t"
                    f"tx={e.transaction_hash}"
                )

        elif args.command == "credit-deposit":
            credited = await service.credit_unresolved_deposit(
                args.event_id, args.customer_id
            )
            if not credited:
                logger.warning(f"Deposit {args.event_id} was already credited")

        elif args.command == "dismiss-deposit":
            await service.dismiss_unresolved_deposit(args.event_id, note=args.note)

        elif args.command == "cursor":
            print(await service.get_cursor() or "(origin)")

        elif args.command == "reset-cursor":
            token = None if args.token == "origin" else args.token
            await service.reset_cursor(token)

    except LedgerBridgeError as e:
        logger.error(str(e))
        return 1
    finally:
        await engine.dispose()

    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        description="Ledger Bridge operator reconciliation"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("withdrawals", help="List withdrawals in error/sending")
    p.add_argument("--limit", type=int, default=100)

    p = sub.add_parser("mark-settled", help="Withdrawal IS on the ledger")
    p.add_argument("request_id", type=int)
    p.add_argument("tx_hash")

    p = sub.add_parser("requeue", help="Withdrawal is NOT on the ledger")
    p.add_argument("request_id", type=int)

    p = sub.add_parser("deposits", help="List queued deposits")
    p.add_argument("--limit", type=int, default=100)

    p = sub.add_parser("credit-deposit", help="Credit a queued deposit")
    p.add_argument("event_id")
    p.add_argument("customer_id", type=int)

    p = sub.add_parser("dismiss-deposit", help="Close a queued deposit")
    p.add_argument("event_id")
    p.add_argument("--note", default=None)

    sub.add_parser("cursor", help="Show the deposit cursor")

    p = sub.add_parser("reset-cursor", help="Move the deposit cursor")
    p.add_argument("token", help="Paging token, or 'origin'")

    return parser


def main() -> None:
    """Main entry point."""
    args = build_parser().parse_args()
    sys.exit(asyncio.run(run_command(args)))


if __name__ == "__main__":
    main()
