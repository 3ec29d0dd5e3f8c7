"""
Ledger Kernel

The posting core of the ledger engine:
- Chart of accounts with hierarchical parents
- Balanced, append-only transaction groups (post, reverse, never edit)
- Voucher approval workflow gating the journal
- Running-balance cache and seq-watermarked read snapshots
"""

__version__ = "0.1.0"
