"""
ApexFX - Session and Account-Ledger Engine

The process-wide store behind the ApexFX trading front end: who is signed
in, their balance and transaction history, and the admin surface for
adjusting other users' ledgers.

DESIGN PRINCIPLES:
1. One session, one mode
2. Transaction logs are append-only
3. Balance and log change together or not at all
4. Validate before mutating; refuse loudly
5. Every mutation is auditable
"""

__version__ = "1.0.0"
__author__ = "ApexFX Team"
