"""
Asset Module

Subscriber assets keyed by MSISDN. The AssetStore owns every world state key
that does not carry the transaction prefix.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .errors import NotFoundError
from .records import LedgerRecord
from .storage import WorldStateInterface


@dataclass
class Asset(LedgerRecord):
    """
    Subscriber balance record

    msisdn and dealer_id never change after creation. trans_amount,
    trans_type and remarks describe the last mutation only; the full
    history lives in the transaction log.
    """
    msisdn: str
    dealer_id: str
    mpin: str
    balance: Decimal
    status: str
    trans_amount: Decimal
    trans_type: str
    remarks: str
    created_at: datetime
    updated_at: datetime

    WIRE_NAMES = {
        "dealer_id": "dealerId",
        "trans_amount": "transAmount",
        "trans_type": "transType",
        "created_at": "createdAt",
        "updated_at": "updatedAt",
    }
    DECIMAL_FIELDS = frozenset({"balance", "trans_amount"})
    DATETIME_FIELDS = frozenset({"created_at", "updated_at"})

    def is_active(self, active_status: str = "ACTIVE") -> bool:
        """Check if balance mutations are permitted"""
        return self.status == active_status

    def public_dict(self) -> Dict[str, Any]:
        """Wire form without the MPIN, for responses"""
        result = self.to_dict()
        result.pop("mpin", None)
        return result


class AssetStore:
    """
    Reads and writes assets in the world state

    Asset keys are the raw MSISDN; keys starting with the transaction prefix
    belong to the transaction log and are skipped by list_all.
    """

    def __init__(self, world_state: WorldStateInterface, transaction_prefix: str = "TXN_"):
        self.world_state = world_state
        self.transaction_prefix = transaction_prefix

    def load(self, msisdn: str) -> Optional[Asset]:
        """Get asset by MSISDN, None when absent"""
        raw = self.world_state.get(msisdn)
        if raw is None:
            return None
        return Asset.from_json(raw)

    def get(self, msisdn: str) -> Asset:
        """Get asset by MSISDN, raising NotFoundError when absent"""
        asset = self.load(msisdn)
        if asset is None:
            raise NotFoundError(f"the asset {msisdn} does not exist")
        return asset

    def save(self, asset: Asset) -> None:
        self.world_state.put(asset.msisdn, asset.to_json())

    def exists(self, msisdn: str) -> bool:
        return self.world_state.exists(msisdn)

    def remove(self, msisdn: str) -> None:
        self.world_state.delete(msisdn)

    def list_all(self) -> List[Asset]:
        """Scan the whole key space and decode every asset record"""
        assets = []
        for key, raw in self.world_state.range_scan("", ""):
            if key.startswith(self.transaction_prefix):
                continue
            assets.append(Asset.from_json(raw))
        return assets
