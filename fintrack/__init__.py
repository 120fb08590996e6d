"""
Fintrack - Source Package

A personal finance tracking backend: users record income and expense
transactions, browse and filter them, and see their running balance.

DESIGN PRINCIPLES:
1. Validate at the edge, fail visibly
2. Money is Decimal, never float
3. Caller input never becomes SQL text
4. Every write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Fintrack Team"
