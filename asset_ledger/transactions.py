"""
Transaction Log Module

Append-only history of monetary mutations. Each record lives under
``TXN_{id}`` where id is ``{msisdn}-{transType}-{unixSeconds}``, so the key
range ``[TXN_{msisdn}-, TXN_{msisdn}~)`` holds exactly one asset's history.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from enum import Enum
from typing import List
import logging

from .records import LedgerRecord
from .storage import WorldStateInterface


logger = logging.getLogger("asset_ledger.transactions")

# '-' opens and '~' closes an asset's key range; '~' sorts after every
# character used in a transaction type or timestamp.
RANGE_OPEN = "-"
RANGE_CLOSE = "~"


class TransactionType(Enum):
    """Values written to transType"""
    INITIAL = "INITIAL"  # Seeded assets, never logged
    CREATE = "CREATE"
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


@dataclass
class Transaction(LedgerRecord):
    """Immutable history entry for one monetary mutation"""
    id: str
    asset_id: str
    trans_type: str
    amount: Decimal
    prev_balance: Decimal
    new_balance: Decimal
    remarks: str
    timestamp: datetime
    tx_id: str  # Enclosing invocation, for traceability only

    WIRE_NAMES = {
        "asset_id": "assetId",
        "trans_type": "transType",
        "prev_balance": "prevBalance",
        "new_balance": "newBalance",
        "tx_id": "txId",
    }
    DECIMAL_FIELDS = frozenset({"amount", "prev_balance", "new_balance"})
    DATETIME_FIELDS = frozenset({"timestamp"})


class TransactionLog:
    """Appends and queries transaction records in the world state"""

    def __init__(self, world_state: WorldStateInterface, key_prefix: str = "TXN_"):
        self.world_state = world_state
        self.key_prefix = key_prefix

    def key_for(self, transaction_id: str) -> str:
        return f"{self.key_prefix}{transaction_id}"

    def next_id(self, msisdn: str, trans_type: str, when: datetime) -> str:
        """
        Build the id for a new record

        Two mutations of the same type within one second would share an id;
        later ones get a numeric suffix (-2, -3, ...) instead of overwriting.
        """
        base_id = f"{msisdn}-{trans_type}-{int(when.timestamp())}"
        candidate = base_id
        suffix = 1
        while self.world_state.exists(self.key_for(candidate)):
            suffix += 1
            candidate = f"{base_id}-{suffix}"
        if suffix > 1:
            logger.debug(f"Transaction id {base_id} taken, using {candidate}")
        return candidate

    def append(self, transaction: Transaction) -> None:
        """Write a record; the caller supplies every field"""
        self.world_state.put(self.key_for(transaction.id), transaction.to_json())

    def history_for(self, msisdn: str) -> List[Transaction]:
        """
        Get every transaction recorded for an asset, oldest first

        The key order of the timestamp suffix is lexicographic, not numeric,
        so records are sorted by their timestamp field after the scan. The
        sort is stable, leaving key order for equal timestamps.
        """
        start = f"{self.key_prefix}{msisdn}{RANGE_OPEN}"
        end = f"{self.key_prefix}{msisdn}{RANGE_CLOSE}"

        transactions = []
        for _key, raw in self.world_state.range_scan(start, end):
            transaction = Transaction.from_json(raw)
            # An MSISDN containing '-' would otherwise leak into a shorter one's range
            if transaction.asset_id == msisdn:
                transactions.append(transaction)

        transactions.sort(key=lambda t: t.timestamp)
        return transactions
