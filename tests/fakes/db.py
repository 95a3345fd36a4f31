"""Database helpers for tests."""

from decimal import Decimal

from ledger_bridge.models import CustomerAccount


async def create_customer(
    session_maker, correlation_id: str, balance: Decimal = Decimal("0")
) -> int:
    """Insert a customer and return its ID."""
    async with session_maker() as session:
        async with session.begin():
            customer = CustomerAccount(correlation_id=correlation_id, balance=balance)
            session.add(customer)
            await session.flush()
            return customer.id


async def get_balance(session_maker, customer_id: int) -> Decimal:
    """Read current customer balance."""
    async with session_maker() as session:
        customer = await session.get(CustomerAccount, customer_id)
        return customer.balance
