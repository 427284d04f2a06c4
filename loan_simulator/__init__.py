"""
Bank Loan Simulator

Loan request, amortization and review engine with Decimal-precise payment
calculation, a small record store and a FastAPI front end.
"""

__version__ = "1.0.0"
