"""
Standard type definitions for database models.

Provides a consistent type for monetary fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for amounts and balances
# Precision: 20 digits total, 7 after decimal point
# Suitable for: native ledger amounts (smallest unit is 0.0000001)
# Range: up to 9,999,999,999,999.9999999
MoneyType = DECIMAL(20, 7)
