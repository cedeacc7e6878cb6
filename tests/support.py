"""
Shared fixtures for the safeauth test suite.

Keys are fixed so that every run sees the same owners and digests.
"""

from typing import List, Tuple

from safeauth import SafeAccount, address_to_int, private_key_address


CHAIN_ID = 31337
ACCOUNT_ADDRESS = "0x" + "5a" * 20

# private keys 1..6, ordered by the integer value of their addresses
KEYS: List[str] = sorted(
    ("0x" + format(i, "064x") for i in range(1, 7)),
    key=lambda k: address_to_int(private_key_address(k))
)
ADDRESSES: List[str] = [private_key_address(k) for k in KEYS]

OUTSIDER = "0x" + "ee" * 20


def make_account(
    owner_count: int = 3,
    threshold: int = 2,
    address: str = ACCOUNT_ADDRESS,
    chain_id: int = CHAIN_ID
) -> Tuple[SafeAccount, List[str], List[str]]:
    """Account owned by the first ``owner_count`` fixed keys."""
    account = SafeAccount(address, chain_id)
    account.setup(ADDRESSES[:owner_count], threshold)
    return account, KEYS[:owner_count], ADDRESSES[:owner_count]


def slot(r: int, s: int, v: int) -> bytes:
    """Raw 65-byte static slot."""
    return r.to_bytes(32, "big") + s.to_bytes(32, "big") + bytes([v])


def word(value: int) -> bytes:
    return value.to_bytes(32, "big")
