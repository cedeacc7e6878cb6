"""
Transaction and message digests.

Digests follow EIP-712 typed structured data hashing with keccak-256:

    digest = keccak256(0x19 || 0x01 || domainSeparator || structHash)
    domainSeparator = keccak256(abi.encode(DOMAIN_TYPEHASH, chainId, account))

Binding the account address and chain id into the domain separator keeps a
signature for one deployment from being replayed on another. The type
hashes identify the versioned struct layout, so independent signers and
verifiers reproduce the same digest bit for bit.
"""

from typing import Union

from eth_abi import encode
from eth_utils import keccak

from .encoding import normalize_address, to_bytes32
from .transaction import SafeTransaction


PROTOCOL_VERSION = "1.3.0"

DOMAIN_SEPARATOR_TYPEHASH = keccak(
    text="EIP712Domain(uint256 chainId,address verifyingContract)"
)

SAFE_TX_TYPEHASH = keccak(
    text="SafeTx(address to,uint256 value,bytes data,uint8 operation,uint256 safeTxGas,"
         "uint256 baseGas,uint256 gasPrice,address gasToken,address refundReceiver,uint256 nonce)"
)

SAFE_MSG_TYPEHASH = keccak(text="SafeMessage(bytes message)")

EIP712_PREFIX = b"\x19\x01"
ETH_SIGNED_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n32"


def domain_separator(account: str, chain_id: int) -> bytes:
    """Compute the EIP-712 domain separator for an account on a chain."""
    return keccak(encode(
        ["bytes32", "uint256", "address"],
        [DOMAIN_SEPARATOR_TYPEHASH, chain_id, normalize_address(account)]
    ))


def transaction_struct_hash(tx: SafeTransaction) -> bytes:
    """Hash of the SafeTx struct (the data is hashed before encoding)."""
    return keccak(encode(
        [
            "bytes32", "address", "uint256", "bytes32", "uint8", "uint256",
            "uint256", "uint256", "address", "address", "uint256",
        ],
        [
            SAFE_TX_TYPEHASH,
            tx.to,
            tx.value,
            keccak(tx.data),
            int(tx.operation),
            tx.safe_tx_gas,
            tx.base_gas,
            tx.gas_price,
            tx.gas_token,
            tx.refund_receiver,
            tx.nonce,
        ]
    ))


def transaction_preimage(account: str, chain_id: int, tx: SafeTransaction) -> bytes:
    """
    Pre-hash encoding of a transaction.

    Delegated signers that want to re-derive the digest from its parts
    receive this instead of trusting the hash alone.
    """
    return EIP712_PREFIX + domain_separator(account, chain_id) + transaction_struct_hash(tx)


def transaction_hash(account: str, chain_id: int, tx: SafeTransaction) -> bytes:
    """Compute the digest owners sign to approve ``tx``."""
    return keccak(transaction_preimage(account, chain_id, tx))


def message_preimage(account: str, chain_id: int, message: bytes) -> bytes:
    """
    Pre-hash encoding of an account message.

    An account acting as the owner of another account approves the outer
    digest by signing this message with ``message`` set to that digest.
    """
    struct_hash = keccak(encode(["bytes32", "bytes32"], [SAFE_MSG_TYPEHASH, keccak(message)]))
    return EIP712_PREFIX + domain_separator(account, chain_id) + struct_hash


def message_hash(account: str, chain_id: int, message: bytes) -> bytes:
    """Compute the digest of an account message."""
    return keccak(message_preimage(account, chain_id, message))


def eth_signed_message_hash(digest: Union[str, bytes]) -> bytes:
    """Wrap a 32-byte digest in the ``eth_sign`` envelope and hash it."""
    return keccak(ETH_SIGNED_MESSAGE_PREFIX + to_bytes32(digest))
