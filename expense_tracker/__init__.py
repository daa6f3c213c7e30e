"""
Expense Tracker - Source Package

Backend for a personal finance tracker: users record expenses and incomes
against categories, subcategories, vendors and accounts; admins review and
manage every user's records.

DESIGN PRINCIPLES:
1. Validate at the boundary, store only well-formed records
2. Every handler is the final error boundary
3. Non-critical side effects (mail, audit) never fail a request
4. Every significant step is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
