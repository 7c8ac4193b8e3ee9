"""
Record Codec Module

Base class for records kept in the world state. Records are encoded as UTF-8
JSON objects keyed by their wire field names, with Decimals as strings and
datetimes as ISO-8601 strings. Decoding is by field name, never position.
"""

import json
from dataclasses import fields
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Dict, FrozenSet

from .errors import DeserializeError, InvalidArgumentError


def to_decimal(value: Any, name: str = "amount") -> Decimal:
    """Convert a caller-supplied number to a finite Decimal"""
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be a number, got {value!r}")
    try:
        # str() first so floats keep their printed value (0.1 -> Decimal('0.1'))
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidArgumentError(f"{name} must be a number, got {value!r}")
    if not result.is_finite():
        raise InvalidArgumentError(f"{name} must be finite, got {value!r}")
    return result


class LedgerRecord:
    """
    Mixin for dataclass records with a JSON wire form

    Subclasses declare WIRE_NAMES mapping attribute names to wire field
    names, plus which attributes hold Decimals and datetimes.
    """

    WIRE_NAMES: ClassVar[Dict[str, str]] = {}
    DECIMAL_FIELDS: ClassVar[FrozenSet[str]] = frozenset()
    DATETIME_FIELDS: ClassVar[FrozenSet[str]] = frozenset()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a wire-named dictionary for storage"""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in self.DECIMAL_FIELDS:
                value = str(value)
            elif f.name in self.DATETIME_FIELDS:
                value = value.isoformat()
            result[self.WIRE_NAMES.get(f.name, f.name)] = value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LedgerRecord':
        """Create instance from a wire-named dictionary"""
        if not isinstance(data, dict):
            raise DeserializeError(f"expected a JSON object for {cls.__name__}, got {type(data).__name__}")

        kwargs = {}
        for f in fields(cls):
            wire_name = cls.WIRE_NAMES.get(f.name, f.name)
            if wire_name not in data:
                raise DeserializeError(f"{cls.__name__} record is missing field '{wire_name}'")
            value = data[wire_name]
            try:
                if f.name in cls.DECIMAL_FIELDS:
                    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                        raise TypeError(f"not a number: {value!r}")
                    value = Decimal(str(value))
                elif f.name in cls.DATETIME_FIELDS:
                    value = datetime.fromisoformat(value)
                elif not isinstance(value, str):
                    raise TypeError(f"not a string: {value!r}")
            except (InvalidOperation, ValueError, TypeError) as e:
                raise DeserializeError(f"{cls.__name__} field '{wire_name}' is invalid: {e}") from e
            kwargs[f.name] = value

        return cls(**kwargs)

    def to_json(self) -> bytes:
        """Encode as deterministic JSON bytes"""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(',', ':')).encode('utf-8')

    @classmethod
    def from_json(cls, raw: bytes) -> 'LedgerRecord':
        """Decode JSON bytes, raising DeserializeError on any malformed input"""
        try:
            data = json.loads(raw)
        except (UnicodeDecodeError, ValueError) as e:
            raise DeserializeError(f"failed to decode {cls.__name__}: {e}") from e
        return cls.from_dict(data)
