"""
Signature Tooling

Produces signature slots and assembles signature bundles.

Used by owners (and tests) to approve digests. The authorization engine
never signs anything; it only consumes bundles built here or elsewhere.
"""

from dataclasses import dataclass
from typing import List, Union

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys import keys

from .encoding import WORD_SIZE, address_to_int, address_to_word, hex_to_bytes, normalize_address, to_bytes32
from .hashing import transaction_hash
from .signatures import APPROVED_HASH_V, CONTRACT_SIGNATURE_V, ETH_SIGN_V_OFFSET, SIGNATURE_SLOT_SIZE
from .transaction import SafeTransaction


PrivateKeyLike = Union[str, bytes, keys.PrivateKey]


@dataclass(frozen=True)
class SafeSignature:
    """
    One signer's contribution to a bundle.

    For static signatures ``data`` is the 65-byte slot. For dynamic (contract)
    signatures ``data`` is the payload handed to the validator; the slot is
    generated when the bundle is built.
    """
    signer: str
    data: bytes
    dynamic: bool = False

    def __post_init__(self):
        object.__setattr__(self, "signer", normalize_address(self.signer))
        object.__setattr__(self, "data", hex_to_bytes(self.data))
        if not self.dynamic and len(self.data) != SIGNATURE_SLOT_SIZE:
            raise ValueError(
                f"Static signature must be {SIGNATURE_SLOT_SIZE} bytes, got {len(self.data)}"
            )


def load_private_key(private_key: PrivateKeyLike) -> keys.PrivateKey:
    """Accept a PrivateKey, 32 raw bytes or a hex string."""
    if isinstance(private_key, keys.PrivateKey):
        return private_key
    return keys.PrivateKey(to_bytes32(private_key))


def private_key_address(private_key: PrivateKeyLike) -> str:
    """Checksum address controlled by ``private_key``."""
    return load_private_key(private_key).public_key.to_checksum_address()


def _pack(r: int, s: int, v: int) -> bytes:
    return r.to_bytes(WORD_SIZE, "big") + s.to_bytes(WORD_SIZE, "big") + bytes([v])


def sign_hash(private_key: PrivateKeyLike, digest: Union[str, bytes]) -> SafeSignature:
    """Sign ``digest`` directly (v = 27 or 28)."""
    key = load_private_key(private_key)
    signature = key.sign_msg_hash(to_bytes32(digest))
    return SafeSignature(
        signer=key.public_key.to_checksum_address(),
        data=_pack(signature.r, signature.s, signature.v + 27)
    )


def eth_sign_hash(private_key: PrivateKeyLike, digest: Union[str, bytes]) -> SafeSignature:
    """Sign ``digest`` through the eth_sign envelope (v = 31 or 32)."""
    key = load_private_key(private_key)
    signed = Account.sign_message(encode_defunct(primitive=to_bytes32(digest)), key.to_bytes())
    return SafeSignature(
        signer=key.public_key.to_checksum_address(),
        data=_pack(signed.r, signed.s, signed.v + ETH_SIGN_V_OFFSET)
    )


def sign_typed_data(
    private_key: PrivateKeyLike,
    account: str,
    chain_id: int,
    tx: SafeTransaction
) -> SafeSignature:
    """Sign the typed transaction digest of ``tx`` for ``account``."""
    return sign_hash(private_key, transaction_hash(account, chain_id, tx))


def sign_message(
    private_key: PrivateKeyLike,
    account: str,
    chain_id: int,
    tx: SafeTransaction
) -> SafeSignature:
    """Sign the transaction digest of ``tx`` the way wallets do for eth_sign."""
    return eth_sign_hash(private_key, transaction_hash(account, chain_id, tx))


def approved_hash_signature(owner: str) -> SafeSignature:
    """Slot claiming a prior on-ledger approval by ``owner``."""
    return SafeSignature(
        signer=owner,
        data=address_to_word(owner) + bytes(WORD_SIZE) + bytes([APPROVED_HASH_V])
    )


def build_contract_signature(validator: str, payload: Union[str, bytes]) -> SafeSignature:
    """Contract signature whose ``payload`` is handed to ``validator``."""
    return SafeSignature(signer=validator, data=hex_to_bytes(payload), dynamic=True)


def build_signature_bytes(signatures: List[SafeSignature]) -> bytes:
    """
    Assemble a bundle.

    Signatures are ordered by signer (as integers). Contract signatures get a
    slot pointing at their length-prefixed payload in the dynamic region
    appended after the static slots.
    """
    ordered = sorted(signatures, key=lambda sig: address_to_int(sig.signer))
    static_length = len(ordered) * SIGNATURE_SLOT_SIZE

    static_part = b""
    dynamic_part = b""
    for sig in ordered:
        if sig.dynamic:
            offset = static_length + len(dynamic_part)
            static_part += _pack(address_to_int(sig.signer), offset, CONTRACT_SIGNATURE_V)
            dynamic_part += len(sig.data).to_bytes(WORD_SIZE, "big") + sig.data
        else:
            static_part += sig.data

    return static_part + dynamic_part
