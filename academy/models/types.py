"""
Standard type definitions for database models.

Provides consistent types for monetary and rate fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for amounts, balances, commissions
# Precision: 18 digits total, 8 after decimal point
# Suitable for: USDC, POL, USD
MoneyType = DECIMAL(18, 8)

# Commission rate (e.g. 0.1600)
RateType = DECIMAL(5, 4)
