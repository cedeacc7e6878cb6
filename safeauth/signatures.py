"""
Signature bundle decoding.

Wire format: a sequence of fixed 65-byte static slots, one per signer,
followed by a dynamic region used only by contract (delegated) signatures.

    slot    = r (32 bytes) || s (32 bytes) || v (1 byte)
    dynamic = length (32-byte big-endian word) || payload (length bytes)

The v byte selects how the slot is read:

    v == 0      contract signature: r = validator identity, s = offset of
                its dynamic part, measured from the start of the bundle
    v == 1      pre-approved hash: r = claimed owner identity
    v > 30      ECDSA over the eth_sign envelope, recovery byte is v - 4
    otherwise   ECDSA over the digest, recovery byte is v

Decoding is pure cursor arithmetic over the bundle. It never performs
cryptography and never calls validators; that is the resolver's job.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple

from .encoding import WORD_SIZE, address_from_word
from .errors import AuthorizationError, FailureCode


SIGNATURE_SLOT_SIZE = 65

CONTRACT_SIGNATURE_V = 0
APPROVED_HASH_V = 1
ETH_SIGN_V_OFFSET = 4
ETH_SIGN_V_THRESHOLD = 30


class SignatureKind(str, Enum):
    """Kinds of signature entries."""
    CONTRACT = "CONTRACT"
    APPROVED_HASH = "APPROVED_HASH"
    ETH_SIGN = "ETH_SIGN"
    ECDSA = "ECDSA"


@dataclass(frozen=True)
class SignatureEntry:
    """A single decoded slot of a signature bundle."""
    index: int
    kind: SignatureKind
    v: int
    r: int
    s: int
    signer_hint: Optional[str] = None
    payload: bytes = b""
    next_offset: int = 0

    @property
    def recovery_v(self) -> int:
        """The v value to use for ECDSA recovery."""
        if self.kind == SignatureKind.ETH_SIGN:
            return self.v - ETH_SIGN_V_OFFSET
        return self.v

    def to_dict(self):
        d = {
            "index": self.index,
            "kind": self.kind.value,
            "v": self.v,
            "r": hex(self.r),
            "s": hex(self.s),
        }
        if self.signer_hint:
            d["signer_hint"] = self.signer_hint
        if self.kind == SignatureKind.CONTRACT:
            d["payload"] = "0x" + self.payload.hex()
        return d


def signature_kind(v: int) -> SignatureKind:
    """Classify a slot by its v byte."""
    if v == CONTRACT_SIGNATURE_V:
        return SignatureKind.CONTRACT
    if v == APPROVED_HASH_V:
        return SignatureKind.APPROVED_HASH
    if v > ETH_SIGN_V_THRESHOLD:
        return SignatureKind.ETH_SIGN
    return SignatureKind.ECDSA


def has_slot(signatures: bytes, index: int) -> bool:
    """True if the bundle holds a complete static slot at ``index``."""
    return (index + 1) * SIGNATURE_SLOT_SIZE <= len(signatures)


def split_signature(signatures: bytes, index: int) -> Tuple[int, int, int]:
    """
    Read the raw (v, r, s) values of slot ``index``.

    Raises:
        ValueError: if the slot is not fully present
    """
    if index < 0 or not has_slot(signatures, index):
        raise ValueError(f"Signature slot {index} out of range")

    pos = index * SIGNATURE_SLOT_SIZE
    r = int.from_bytes(signatures[pos:pos + WORD_SIZE], "big")
    s = int.from_bytes(signatures[pos + WORD_SIZE:pos + 2 * WORD_SIZE], "big")
    v = signatures[pos + 2 * WORD_SIZE]
    return v, r, s


def read_dynamic_part(signatures: bytes, offset: int, static_length: int) -> bytes:
    """
    Read the length-prefixed dynamic part at ``offset``.

    Three distinct bounds checks, in order:
    - the offset may not point into the static slots
    - the length word must lie within the bundle
    - the declared length may not run past the end of the bundle
    """
    if offset < static_length:
        raise AuthorizationError(
            FailureCode.OFFSET_IN_STATIC_REGION,
            f"offset {offset} < static length {static_length}"
        )

    length_end = offset + WORD_SIZE
    if length_end > len(signatures):
        raise AuthorizationError(
            FailureCode.DYNAMIC_PART_MISSING,
            f"length word at {offset} past bundle end {len(signatures)}"
        )

    length = int.from_bytes(signatures[offset:length_end], "big")
    if length_end + length > len(signatures):
        raise AuthorizationError(
            FailureCode.DYNAMIC_PART_TOO_SHORT,
            f"declared {length} bytes, {len(signatures) - length_end} available"
        )

    return bytes(signatures[length_end:length_end + length])


def decode_entry(signatures: bytes, index: int, static_length: int) -> SignatureEntry:
    """
    Decode slot ``index`` of a bundle whose static region is ``static_length`` bytes.

    Raises:
        AuthorizationError: on a malformed dynamic part reference
        ValueError: if the slot itself is not present
    """
    v, r, s = split_signature(signatures, index)
    kind = signature_kind(v)
    next_offset = (index + 1) * SIGNATURE_SLOT_SIZE

    if kind == SignatureKind.CONTRACT:
        payload = read_dynamic_part(signatures, s, static_length)
        return SignatureEntry(
            index=index, kind=kind, v=v, r=r, s=s,
            signer_hint=address_from_word(r),
            payload=payload,
            next_offset=next_offset
        )

    if kind == SignatureKind.APPROVED_HASH:
        return SignatureEntry(
            index=index, kind=kind, v=v, r=r, s=s,
            signer_hint=address_from_word(r),
            next_offset=next_offset
        )

    return SignatureEntry(index=index, kind=kind, v=v, r=r, s=s, next_offset=next_offset)


def iter_entries(signatures: bytes, count: Optional[int] = None) -> Iterator[SignatureEntry]:
    """
    Decode the first ``count`` slots (all complete slots by default).

    The static region is taken to be ``count`` slots long, which is how the
    engine reads a bundle checked for ``count`` signatures.
    """
    if count is None:
        count = len(signatures) // SIGNATURE_SLOT_SIZE
    static_length = count * SIGNATURE_SLOT_SIZE
    for index in range(count):
        if not has_slot(signatures, index):
            return
        yield decode_entry(signatures, index, static_length)
