"""
Ledger Modules.

Orchestration layers over the ledger kernel and engines.

Modules:
- Reporting: trial balance, balance sheet, profit and loss, cash flow,
  account balances and aged balances
"""
