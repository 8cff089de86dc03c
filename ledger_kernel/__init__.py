"""
Ledger Kernel - double-entry bookkeeping core.

A small-business general ledger with:
- Chart of accounts as a tree with header aggregation
- Draft -> posted -> reversed journal entry lifecycle
- Balances derived from posted lines, never stored
- Per-tenant gap-free entry numbering
- Monthly period control
"""

__version__ = "0.1.0"
