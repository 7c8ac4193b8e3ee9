"""
Asset Contract Module

The eight ledger operations: initialize defaults, create, read, list all,
update balance, update status, delete and transaction history. Every
mutation runs inside one world state unit of work, so an asset write and
its transaction record are committed or rolled back together.
"""

from decimal import Decimal, Inexact, localcontext
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union
import logging
import uuid

from .assets import Asset, AssetStore
from .errors import (
    AssetLedgerError, AlreadyExistsError, NotFoundError, UnauthorizedError, InvalidStateError,
    InsufficientFundsError, InvalidArgumentError
)
from .logging_config import log_action
from .records import to_decimal
from .storage import WorldStateInterface
from .transactions import Transaction, TransactionLog, TransactionType


logger = logging.getLogger("asset_ledger.contract")

Number = Union[Decimal, int, float, str]

DEFAULT_ASSETS = [
    # (msisdn, dealer_id, mpin, balance)
    ("1234567890", "DEALER001", "1234", Decimal("1000.00")),
    ("1234567891", "DEALER002", "5678", Decimal("2000.00")),
    ("1234567892", "DEALER003", "9012", Decimal("1500.00")),
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_tx_id() -> str:
    return uuid.uuid4().hex


class AssetContract:
    """
    Asset and transaction management over a world state

    Args:
        world_state: Ordered key-value store holding assets and transactions
        clock: Returns the current time (UTC-aware)
        tx_id_factory: Produces the invocation id recorded as txId
        active_status: The one status value that permits balance mutation
        transaction_key_prefix: Prefix separating transaction keys from asset keys
    """

    def __init__(
        self,
        world_state: WorldStateInterface,
        clock: Optional[Callable[[], datetime]] = None,
        tx_id_factory: Optional[Callable[[], str]] = None,
        active_status: str = "ACTIVE",
        transaction_key_prefix: str = "TXN_"
    ):
        self.world_state = world_state
        self.assets = AssetStore(world_state, transaction_key_prefix)
        self.transactions = TransactionLog(world_state, transaction_key_prefix)
        self.active_status = active_status
        self.transaction_key_prefix = transaction_key_prefix
        self._clock = clock or _utcnow
        self._tx_id_factory = tx_id_factory or _new_tx_id

    def _reject(self, error: AssetLedgerError, action: str, msisdn: str, tx_id: str) -> AssetLedgerError:
        log_action(
            logger, "warning", f"{action} rejected: {error.message}",
            action=action, resource=msisdn, correlation_id=tx_id,
            extra={"error": error.kind}
        )
        return error

    def _load(self, msisdn: str, action: str, tx_id: str) -> Asset:
        asset = self.assets.load(msisdn)
        if asset is None:
            raise self._reject(NotFoundError(f"the asset {msisdn} does not exist"), action, msisdn, tx_id)
        return asset

    def _record(self, asset: Asset, trans_type: str, amount: Decimal,
                prev_balance: Decimal, remarks: str, when: datetime, tx_id: str) -> Transaction:
        transaction = Transaction(
            id=self.transactions.next_id(asset.msisdn, trans_type, when),
            asset_id=asset.msisdn,
            trans_type=trans_type,
            amount=amount,
            prev_balance=prev_balance,
            new_balance=asset.balance,
            remarks=remarks,
            timestamp=when,
            tx_id=tx_id
        )
        self.transactions.append(transaction)
        return transaction

    def initialize_defaults(self) -> List[Asset]:
        """Write the demo seed assets, overwriting any existing ones"""
        now = self._clock()
        seeded = []
        with self.world_state.atomic():
            for msisdn, dealer_id, mpin, balance in DEFAULT_ASSETS:
                asset = Asset(
                    msisdn=msisdn,
                    dealer_id=dealer_id,
                    mpin=mpin,
                    balance=balance,
                    status=self.active_status,
                    trans_amount=Decimal("0"),
                    trans_type=TransactionType.INITIAL.value,
                    remarks="Initial balance",
                    created_at=now,
                    updated_at=now
                )
                self.assets.save(asset)
                seeded.append(asset)

        log_action(logger, "info", f"Seeded {len(seeded)} default assets", action="initialize_defaults")
        return seeded

    def create(
        self,
        msisdn: str,
        dealer_id: str,
        mpin: str,
        balance: Number,
        status: str,
        remarks: str = "",
        tx_id: Optional[str] = None
    ) -> Asset:
        """
        Create a new asset and record its CREATE transaction

        Args:
            msisdn: Subscriber identifier, the asset key
            dealer_id: Assigning dealer
            mpin: Authorization code for later balance mutations
            balance: Opening balance (must not be negative)
            status: Initial status tag
            remarks: Caller annotation
            tx_id: Invocation id (generated if not provided)

        Returns:
            Created Asset
        """
        tx_id = tx_id or self._tx_id_factory()
        opening = to_decimal(balance, "balance")

        if not msisdn:
            raise self._reject(InvalidArgumentError("msisdn must not be empty"), "create", msisdn, tx_id)
        if msisdn.startswith(self.transaction_key_prefix):
            raise self._reject(
                InvalidArgumentError(f"msisdn must not start with reserved prefix {self.transaction_key_prefix}"),
                "create", msisdn, tx_id
            )
        if opening < 0:
            raise self._reject(
                InvalidArgumentError(f"opening balance must not be negative: {opening}"),
                "create", msisdn, tx_id
            )

        with self.world_state.atomic():
            if self.assets.exists(msisdn):
                raise self._reject(AlreadyExistsError(f"the asset {msisdn} already exists"), "create", msisdn, tx_id)

            now = self._clock()
            asset = Asset(
                msisdn=msisdn,
                dealer_id=dealer_id,
                mpin=mpin,
                balance=opening,
                status=status,
                trans_amount=Decimal("0"),
                trans_type=TransactionType.CREATE.value,
                remarks=remarks,
                created_at=now,
                updated_at=now
            )
            self.assets.save(asset)
            self._record(asset, TransactionType.CREATE.value, opening, Decimal("0"), remarks, now, tx_id)

        log_action(
            logger, "info", f"Created asset {msisdn}",
            action="create", resource=msisdn, correlation_id=tx_id,
            extra={"dealer_id": dealer_id, "balance": str(opening), "status": status}
        )
        return asset

    def read(self, msisdn: str) -> Asset:
        """Get asset by MSISDN"""
        return self.assets.get(msisdn)

    def exists(self, msisdn: str) -> bool:
        """Check if an asset is present"""
        return self.assets.exists(msisdn)

    def list_all(self) -> List[Asset]:
        """Get every asset in the world state, in key order"""
        return self.assets.list_all()

    def update_balance(
        self,
        msisdn: str,
        mpin: str,
        amount: Number,
        trans_type: str,
        remarks: str = "",
        tx_id: Optional[str] = None
    ) -> Asset:
        """
        Credit or debit an asset and record the transaction

        The MPIN must match and the asset must be active. A debit may not
        take the balance below zero; a credit has no upper bound.

        Returns:
            Updated Asset
        """
        tx_id = tx_id or self._tx_id_factory()
        value = to_decimal(amount)
        if value < 0:
            raise self._reject(
                InvalidArgumentError(f"amount must not be negative: {value}"),
                "update_balance", msisdn, tx_id
            )

        with self.world_state.atomic():
            asset = self._load(msisdn, "update_balance", tx_id)

            if asset.mpin != mpin:
                raise self._reject(UnauthorizedError(f"invalid MPIN for asset {msisdn}"), "update_balance", msisdn, tx_id)

            if not asset.is_active(self.active_status):
                raise self._reject(InvalidStateError(f"account {msisdn} is not active"), "update_balance", msisdn, tx_id)

            prev_balance = asset.balance
            if trans_type == TransactionType.CREDIT.value:
                delta = value
            elif trans_type == TransactionType.DEBIT.value:
                if value > prev_balance:
                    raise self._reject(
                        InsufficientFundsError(
                            f"insufficient balance. Current balance: {prev_balance:.2f}, Requested: {value:.2f}"
                        ),
                        "update_balance", msisdn, tx_id
                    )
                delta = -value
            else:
                raise self._reject(
                    InvalidArgumentError(f"invalid transaction type: {trans_type}"),
                    "update_balance", msisdn, tx_id
                )

            # Balances are never rounded; a result the context cannot hold exactly is refused
            try:
                with localcontext() as ctx:
                    ctx.traps[Inexact] = True
                    asset.balance = prev_balance + delta
            except Inexact:
                raise self._reject(
                    InvalidArgumentError(
                        f"balance {prev_balance} {trans_type} {value} exceeds the supported precision"
                    ),
                    "update_balance", msisdn, tx_id
                )

            now = self._clock()
            asset.trans_amount = value
            asset.trans_type = trans_type
            asset.remarks = remarks
            asset.updated_at = now

            self.assets.save(asset)
            self._record(asset, trans_type, value, prev_balance, remarks, now, tx_id)

        log_action(
            logger, "info", f"{trans_type} {value} on asset {msisdn}",
            action="update_balance", resource=msisdn, correlation_id=tx_id,
            extra={"prev_balance": str(prev_balance), "new_balance": str(asset.balance)}
        )
        return asset

    def update_status(self, msisdn: str, new_status: str, remarks: str = "",
                      tx_id: Optional[str] = None) -> Asset:
        """Set an asset's status; no MPIN check and no transaction record"""
        tx_id = tx_id or self._tx_id_factory()

        with self.world_state.atomic():
            asset = self._load(msisdn, "update_status", tx_id)
            old_status = asset.status
            asset.status = new_status
            asset.remarks = remarks
            asset.updated_at = self._clock()
            self.assets.save(asset)

        log_action(
            logger, "info", f"Status of asset {msisdn} changed",
            action="update_status", resource=msisdn, correlation_id=tx_id,
            extra={"old_status": old_status, "new_status": new_status}
        )
        return asset

    def delete(self, msisdn: str, tx_id: Optional[str] = None) -> None:
        """Remove an asset; its transaction history stays in the log"""
        tx_id = tx_id or self._tx_id_factory()

        with self.world_state.atomic():
            if not self.assets.exists(msisdn):
                raise self._reject(NotFoundError(f"the asset {msisdn} does not exist"), "delete", msisdn, tx_id)
            self.assets.remove(msisdn)

        log_action(logger, "info", f"Deleted asset {msisdn}",
                   action="delete", resource=msisdn, correlation_id=tx_id)

    def history_for(self, msisdn: str) -> List[Transaction]:
        """Get an asset's transaction history, oldest first"""
        return self.transactions.history_for(msisdn)
