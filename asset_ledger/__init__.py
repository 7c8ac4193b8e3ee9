"""
Asset Ledger

Subscriber balances kept in an ordered key-value world state, with an
append-only transaction history for every monetary mutation.
"""

__version__ = "1.0.0"
