"""
safeauth: threshold authorization for multi-owner accounts

Version: 1.0.0

Decides whether a bundle of signatures authorizes a transaction of a
multi-owner account. A bundle may mix four signature kinds:

- ECDSA signatures over the transaction digest
- ECDSA signatures over the eth_sign envelope of the digest
- approvals recorded earlier on the account's approval ledger
- contract signatures, validated by the signer's own code (including
  another multi-owner account acting as an owner)

Signers must appear in strictly ascending order, must be owners, and must
reach the threshold. Every rejection carries a precise failure code.

Usage:
    from safeauth import (
        SafeAccount,
        build_safe_transaction,
        build_signature_bytes,
        sign_typed_data,
    )

    account = SafeAccount("0x...", chain_id=1)
    account.setup([owner_a, owner_b, owner_c], threshold=2)

    tx = build_safe_transaction(to="0x...", nonce=0, value=10 ** 18)
    bundle = build_signature_bytes([
        sign_typed_data(key_a, account.address, 1, tx),
        sign_typed_data(key_b, account.address, 1, tx),
    ])

    result = account.authorize_transaction(tx, bundle)
    if result.accepted():
        # enough owners approved this exact transaction
        signers = result.signers
    else:
        reason = result.failure_code
"""

__version__ = "1.0.0"

# Core types
from .transaction import Operation, SafeTransaction, build_safe_transaction
from .encoding import (
    SENTINEL_ADDRESS,
    ZERO_ADDRESS,
    address_to_int,
    hex_to_bytes,
    normalize_address,
    to_hex,
)

# Digests
from .hashing import (
    DOMAIN_SEPARATOR_TYPEHASH,
    PROTOCOL_VERSION,
    SAFE_MSG_TYPEHASH,
    SAFE_TX_TYPEHASH,
    domain_separator,
    eth_signed_message_hash,
    message_hash,
    message_preimage,
    transaction_hash,
    transaction_preimage,
)

# Errors
from .errors import AuthorizationError, FailureCode

# Decoding and resolution
from .signatures import SignatureEntry, SignatureKind, decode_entry, iter_entries, split_signature
from .resolver import (
    EIP1271_MAGIC_VALUE,
    KeyValidator,
    SignatureValidator,
    SignerResolver,
    ValidatorRegistry,
    recover_address,
)

# State capabilities
from .ledger import (
    ApprovalLedger,
    InMemoryApprovalLedger,
    InMemoryOwnerStore,
    OwnerSet,
    OwnerStore,
)

# Engine
from .engine import AuthorizationEngine, AuthorizationResult, EngineState

# Account facade
from .account import SafeAccount, SafeValidator

# Signer tooling
from .signing import (
    SafeSignature,
    approved_hash_signature,
    build_contract_signature,
    build_signature_bytes,
    eth_sign_hash,
    private_key_address,
    sign_hash,
    sign_message,
    sign_typed_data,
)

# Logging
from .logging_config import configure_logging, audit_log


__all__ = [
    # Version
    "__version__",

    # Core types
    "Operation",
    "SafeTransaction",
    "build_safe_transaction",
    "SENTINEL_ADDRESS",
    "ZERO_ADDRESS",
    "address_to_int",
    "hex_to_bytes",
    "normalize_address",
    "to_hex",

    # Digests
    "DOMAIN_SEPARATOR_TYPEHASH",
    "PROTOCOL_VERSION",
    "SAFE_MSG_TYPEHASH",
    "SAFE_TX_TYPEHASH",
    "domain_separator",
    "eth_signed_message_hash",
    "message_hash",
    "message_preimage",
    "transaction_hash",
    "transaction_preimage",

    # Errors
    "AuthorizationError",
    "FailureCode",

    # Decoding and resolution
    "SignatureEntry",
    "SignatureKind",
    "decode_entry",
    "iter_entries",
    "split_signature",
    "EIP1271_MAGIC_VALUE",
    "KeyValidator",
    "SignatureValidator",
    "SignerResolver",
    "ValidatorRegistry",
    "recover_address",

    # State capabilities
    "ApprovalLedger",
    "InMemoryApprovalLedger",
    "InMemoryOwnerStore",
    "OwnerSet",
    "OwnerStore",

    # Engine
    "AuthorizationEngine",
    "AuthorizationResult",
    "EngineState",

    # Account facade
    "SafeAccount",
    "SafeValidator",

    # Signer tooling
    "SafeSignature",
    "approved_hash_signature",
    "build_contract_signature",
    "build_signature_bytes",
    "eth_sign_hash",
    "private_key_address",
    "sign_hash",
    "sign_message",
    "sign_typed_data",

    # Logging
    "configure_logging",
    "audit_log",
]
