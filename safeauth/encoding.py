"""
Identity and word encoding helpers.

All identities are EIP-55 checksum address strings. Ordering between
identities is the ordering of their 160-bit integer values, never of their
string form. Digests and words are raw 32-byte values.
"""

from typing import Union

from eth_utils import decode_hex, encode_hex, is_address, to_checksum_address


WORD_SIZE = 32
ADDRESS_SIZE = 20
UINT256_MAX = 2 ** 256 - 1

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
SENTINEL_ADDRESS = "0x0000000000000000000000000000000000000001"


def normalize_address(value: Union[str, bytes]) -> str:
    """
    Return the checksum form of an address.

    Accepts a 0x-prefixed hex string (any case that passes EIP-55) or the
    20 raw address bytes.

    Raises:
        ValueError: if the value is not an address
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != ADDRESS_SIZE:
            raise ValueError(f"Address must be {ADDRESS_SIZE} bytes, got {len(value)}")
        return to_checksum_address(bytes(value))
    if not isinstance(value, str) or not is_address(value):
        raise ValueError(f"Invalid address: {value!r}")
    return to_checksum_address(value)


def address_to_int(address: str) -> int:
    """Integer value of an address, used for signer ordering."""
    return int(normalize_address(address), 16)


def address_from_word(word: Union[bytes, int]) -> str:
    """Interpret the low 160 bits of a 32-byte word as an address."""
    if isinstance(word, int):
        value = word
    else:
        value = int.from_bytes(word, "big")
    return to_checksum_address((value & (2 ** 160 - 1)).to_bytes(ADDRESS_SIZE, "big"))


def address_to_word(address: str) -> bytes:
    """Left-pad an address to a 32-byte word."""
    return address_to_int(address).to_bytes(WORD_SIZE, "big")


def to_bytes32(value: Union[str, bytes]) -> bytes:
    """
    Coerce a digest to 32 raw bytes.

    Raises:
        ValueError: if the value is not exactly 32 bytes long
    """
    raw = hex_to_bytes(value)
    if len(raw) != WORD_SIZE:
        raise ValueError(f"Expected {WORD_SIZE} bytes, got {len(raw)}")
    return raw


def hex_to_bytes(value: Union[str, bytes]) -> bytes:
    """Decode a 0x-prefixed (or bare) hex string; bytes pass through."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str):
        raise ValueError(f"Expected hex string or bytes, got {type(value).__name__}")
    text = value.strip()
    if text in ("", "0x", "0X"):
        return b""
    try:
        return decode_hex(text)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Invalid hex: {value!r}") from exc


def to_hex(value: bytes) -> str:
    """0x-prefixed lowercase hex."""
    return encode_hex(value)


def check_uint256(name: str, value: int) -> int:
    """Validate that ``value`` fits an unsigned 256-bit word."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if value < 0 or value > UINT256_MAX:
        raise ValueError(f"{name} out of uint256 range: {value}")
    return value
