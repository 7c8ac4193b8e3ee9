"""
Error Kinds Module

Typed failures raised by the asset ledger. Every error carries a stable
``kind`` string that the HTTP shell maps to a status code.
"""


class AssetLedgerError(ValueError):
    """Base class for all asset ledger failures"""

    kind = "AssetLedgerError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AlreadyExistsError(AssetLedgerError):
    """Create on a key that is already present"""
    kind = "AlreadyExists"


class NotFoundError(AssetLedgerError):
    """Operation on a key that is absent"""
    kind = "NotFound"


class UnauthorizedError(AssetLedgerError):
    """MPIN mismatch on a balance mutation"""
    kind = "Unauthorized"


class InvalidStateError(AssetLedgerError):
    """Balance mutation attempted on an asset that is not ACTIVE"""
    kind = "InvalidState"


class InsufficientFundsError(AssetLedgerError):
    """Debit amount exceeds the current balance"""
    kind = "InsufficientFunds"


class InvalidArgumentError(AssetLedgerError):
    """Unrecognized transaction type or malformed argument"""
    kind = "InvalidArgument"


class DeserializeError(AssetLedgerError):
    """Stored bytes do not parse into the expected record shape"""
    kind = "Deserialize"


class StoreFailureError(AssetLedgerError):
    """The underlying key-value operation itself failed"""
    kind = "StoreFailure"
