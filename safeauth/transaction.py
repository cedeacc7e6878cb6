"""
Account transaction (the Action being authorized).

The normalized, immutable representation of an operation proposed against
a multi-owner account. Every field participates in the transaction digest.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Union

from .encoding import ZERO_ADDRESS, check_uint256, hex_to_bytes, normalize_address, to_hex


class Operation(IntEnum):
    """Call type of a transaction."""
    CALL = 0
    DELEGATE_CALL = 1


@dataclass(frozen=True)
class SafeTransaction:
    """
    A transaction proposed against a multi-owner account.

    Fields:
    - to: destination address
    - value: native value sent with the call
    - data: opaque call payload
    - operation: CALL or DELEGATE_CALL
    - safe_tx_gas, base_gas, gas_price: gas accounting parameters
    - gas_token: token used for the refund (zero address for native)
    - refund_receiver: recipient of the refund (zero address for executor)
    - nonce: per-account sequence number
    """
    to: str
    value: int = 0
    data: bytes = b""
    operation: Operation = Operation.CALL
    safe_tx_gas: int = 0
    base_gas: int = 0
    gas_price: int = 0
    gas_token: str = ZERO_ADDRESS
    refund_receiver: str = ZERO_ADDRESS
    nonce: int = 0

    def __post_init__(self):
        """Normalize and validate fields."""
        # frozen dataclass: normalized values go through object.__setattr__
        object.__setattr__(self, "to", normalize_address(self.to))
        object.__setattr__(self, "gas_token", normalize_address(self.gas_token))
        object.__setattr__(self, "refund_receiver", normalize_address(self.refund_receiver))
        object.__setattr__(self, "data", hex_to_bytes(self.data))

        try:
            object.__setattr__(self, "operation", Operation(self.operation))
        except ValueError:
            raise ValueError(f"Invalid operation: {self.operation}")

        for name in ("value", "safe_tx_gas", "base_gas", "gas_price", "nonce"):
            check_uint256(name, getattr(self, name))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "to": self.to,
            "value": self.value,
            "data": to_hex(self.data),
            "operation": int(self.operation),
            "safeTxGas": self.safe_tx_gas,
            "baseGas": self.base_gas,
            "gasPrice": self.gas_price,
            "gasToken": self.gas_token,
            "refundReceiver": self.refund_receiver,
            "nonce": self.nonce
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SafeTransaction':
        """Create a transaction from its dictionary form (camelCase keys)."""
        if "to" not in data:
            raise ValueError("Missing required field: to")

        return cls(
            to=data["to"],
            value=_int_field(data, "value"),
            data=data.get("data", "0x"),
            operation=_int_field(data, "operation"),
            safe_tx_gas=_int_field(data, "safeTxGas"),
            base_gas=_int_field(data, "baseGas"),
            gas_price=_int_field(data, "gasPrice"),
            gas_token=data.get("gasToken", ZERO_ADDRESS),
            refund_receiver=data.get("refundReceiver", ZERO_ADDRESS),
            nonce=_int_field(data, "nonce")
        )


def _int_field(data: Dict[str, Any], key: str) -> int:
    value: Union[int, str] = data.get(key, 0)
    if isinstance(value, str):
        return int(value, 0)
    return value


def build_safe_transaction(to: str, nonce: int, **overrides: Any) -> SafeTransaction:
    """
    Factory function to create a transaction with default gas parameters.

    Args:
        to: Destination address
        nonce: Account nonce the transaction is proposed for
        overrides: Any other SafeTransaction field

    Returns:
        SafeTransaction instance
    """
    return SafeTransaction(to=to, nonce=nonce, **overrides)
