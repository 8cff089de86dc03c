"""
Ledger Modules.

Thin orchestration layers over the ledger kernel and engines.

Modules:
- Reporting: Trial balance, profit and loss, balance sheet, tax summary
"""
