"""
Transaction Ledger Engine

Records income and expense movements against an account and keeps the
account's running balance consistent with the full history of movements,
including movements that recur on a schedule.

PRINCIPLES:
1. A balance only ever moves by an atomic increment
2. Entry write and balance adjustment commit together or not at all
3. Every failure has a kind the caller can branch on
4. AI extraction proposes fields, it never writes to the ledger
"""

__version__ = "1.0.0"
__author__ = "Ledger Engine Team"
