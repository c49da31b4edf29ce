"""
Pocket Ledger

A personal transaction ledger merged from manually entered expenses and
transactions parsed from payment e-mails, with analytics, budgets and
AI-assisted receipt scanning.

DESIGN PRINCIPLES:
1. AI suggests -> Human reviews -> Ledger records
2. Local state wins: user input is never lost to a remote failure
3. Analytics are recomputed from a snapshot, never maintained incrementally
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Pocket Ledger Team"
