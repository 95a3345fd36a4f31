"""
Ledger Bridge.

Reconciles the exchange's internal customer ledger against a public
payment network: exactly-once deposit crediting and exactly-once
withdrawal settlement.
"""

__version__ = "1.0.0"
