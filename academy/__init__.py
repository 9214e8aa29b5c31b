"""
Academy network back office.

Referral tree, commissions, payouts and USDC treasury sweeps.
"""

__version__ = "1.0.0"
