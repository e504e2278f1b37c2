"""
Kanakku - Source Package

A local-first personal finance tracker: expenses, income, budgets,
with encrypted backup/restore and natural-language entry assist.

DESIGN PRINCIPLES:
1. Every lifecycle transition is explicit and auditable
2. Fail early, fail visibly
3. No partial imports - all or nothing
4. Dates are local calendar dates, never UTC-shifted
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Kanakku Team"
