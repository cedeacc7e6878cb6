"""
Signer resolution.

Turns a decoded signature entry into the identity that claims to have
approved the digest:

- ECDSA entries recover the signer from the digest
- eth_sign entries recover the signer from the eth_sign envelope of the digest
- pre-approved entries name the signer directly (the engine checks the ledger)
- contract entries ask the named identity's registered validator

Contract validation may itself run a nested authorization (an owner that is
another multi-owner account), so the nesting depth is bounded per context.
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextvars import ContextVar
from typing import Dict, Optional

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError

from . import config
from .encoding import WORD_SIZE, ZERO_ADDRESS, normalize_address, to_bytes32
from .errors import CONTRACT_SIGNATURE_REJECTED, AuthorizationError, FailureCode
from .hashing import eth_signed_message_hash
from .logging_config import audit_log
from .signatures import SIGNATURE_SLOT_SIZE, SignatureEntry, SignatureKind


logger = logging.getLogger(__name__)

# bytes4(keccak256("isValidSignature(bytes32,bytes)"))
EIP1271_MAGIC_VALUE = bytes.fromhex("1626ba7e")
EIP1271_INVALID_VALUE = bytes.fromhex("ffffffff")

_validation_depth: ContextVar[int] = ContextVar("safeauth_validation_depth", default=0)


def current_validation_depth() -> int:
    """Nesting depth of contract validation in the current context."""
    return _validation_depth.get()


def recover_address(digest: bytes, v: int, r: int, s: int) -> str:
    """
    Recover the signer address of a secp256k1 signature over ``digest``.

    ``v`` is the Ethereum-style recovery byte (27 or 28).

    Raises:
        AuthorizationError: INVALID_SIGNER on malformed material or a zero result
    """
    if v not in (27, 28):
        raise AuthorizationError(FailureCode.INVALID_SIGNER, f"invalid recovery byte {v}")

    try:
        signature = keys.Signature(vrs=(v - 27, r, s))
        public_key = signature.recover_public_key_from_msg_hash(to_bytes32(digest))
    except (BadSignature, ValidationError, ValueError) as exc:
        raise AuthorizationError(FailureCode.INVALID_SIGNER, f"recovery failed: {exc}") from exc

    address = public_key.to_checksum_address()
    if address == ZERO_ADDRESS:
        raise AuthorizationError(FailureCode.INVALID_SIGNER, "recovered zero address")
    return address


def recover_packed(digest: bytes, signature: bytes) -> str:
    """Recover the signer of a packed 65-byte r || s || v signature."""
    if len(signature) != SIGNATURE_SLOT_SIZE:
        raise AuthorizationError(
            FailureCode.INVALID_SIGNER,
            f"expected {SIGNATURE_SLOT_SIZE} signature bytes, got {len(signature)}"
        )
    r = int.from_bytes(signature[:WORD_SIZE], "big")
    s = int.from_bytes(signature[WORD_SIZE:2 * WORD_SIZE], "big")
    return recover_address(digest, signature[2 * WORD_SIZE], r, s)


class SignatureValidator(ABC):
    """
    Validation routine of an identity that signs through code, not a key.

    Implementations return EIP1271_MAGIC_VALUE when ``signature`` is a valid
    approval of ``data_hash``. Any other return value, or an
    AuthorizationError, is a rejection.
    """

    @abstractmethod
    def is_valid_signature(
        self,
        data_hash: bytes,
        signature: bytes,
        preimage: bytes = b""
    ) -> bytes:
        """Validate ``signature`` for ``data_hash``."""
        pass


class KeyValidator(SignatureValidator):
    """
    Contract wallet controlled by a single ECDSA key.

    The payload is a packed 65-byte signature of the data hash by the key.
    """

    def __init__(self, signer: str):
        self.signer = normalize_address(signer)

    def is_valid_signature(self, data_hash, signature, preimage=b""):
        try:
            recovered = recover_packed(data_hash, signature)
        except AuthorizationError:
            return EIP1271_INVALID_VALUE
        if recovered == self.signer:
            return EIP1271_MAGIC_VALUE
        return EIP1271_INVALID_VALUE


class ValidatorRegistry:
    """Maps identities to their signature validators."""

    def __init__(self):
        self._validators: Dict[str, SignatureValidator] = {}
        self._lock = threading.Lock()

    def register(self, identity: str, validator: SignatureValidator) -> None:
        """Register (or replace) the validator for ``identity``."""
        with self._lock:
            self._validators[normalize_address(identity)] = validator

    def unregister(self, identity: str) -> None:
        with self._lock:
            self._validators.pop(normalize_address(identity), None)

    def get(self, identity: str) -> Optional[SignatureValidator]:
        with self._lock:
            return self._validators.get(normalize_address(identity))

    def __contains__(self, identity: str) -> bool:
        return self.get(identity) is not None


class SignerResolver:
    """
    Resolves decoded entries to signer identities.

    Args:
        registry: Validators for contract signatures
        max_depth: Maximum nesting of contract validation
    """

    def __init__(
        self,
        registry: Optional[ValidatorRegistry] = None,
        max_depth: Optional[int] = None
    ):
        self.registry = registry if registry is not None else ValidatorRegistry()
        self.max_depth = max_depth if max_depth is not None else config.MAX_VALIDATION_DEPTH

    def resolve(self, entry: SignatureEntry, digest: bytes, preimage: bytes = b"") -> str:
        """
        Determine the claimed signer of ``entry``.

        Raises:
            AuthorizationError: INVALID_SIGNER when the entry does not resolve
        """
        if entry.kind == SignatureKind.CONTRACT:
            return self._resolve_contract(entry, digest, preimage)

        if entry.kind == SignatureKind.APPROVED_HASH:
            return entry.signer_hint

        if entry.kind == SignatureKind.ETH_SIGN:
            return recover_address(eth_signed_message_hash(digest), entry.recovery_v, entry.r, entry.s)

        return recover_address(digest, entry.v, entry.r, entry.s)

    def _resolve_contract(self, entry: SignatureEntry, digest: bytes, preimage: bytes) -> str:
        signer = entry.signer_hint
        validator = self.registry.get(signer)
        if validator is None:
            raise AuthorizationError(
                FailureCode.INVALID_SIGNER,
                f"no validator registered for {signer}",
                legacy_code=CONTRACT_SIGNATURE_REJECTED
            )

        depth = _validation_depth.get()
        if depth >= self.max_depth:
            audit_log.security_event(
                "validation_depth_exceeded",
                severity="high",
                signer=signer,
                depth=depth
            )
            raise AuthorizationError(
                FailureCode.INVALID_SIGNER,
                f"contract validation nested deeper than {self.max_depth}",
                legacy_code=CONTRACT_SIGNATURE_REJECTED
            )

        logger.debug("validating contract signature of %s at depth %d", signer, depth)
        token = _validation_depth.set(depth + 1)
        try:
            result = validator.is_valid_signature(digest, entry.payload, preimage)
        except AuthorizationError as exc:
            raise AuthorizationError(
                FailureCode.INVALID_SIGNER,
                f"validator {signer} rejected: {exc}",
                legacy_code=CONTRACT_SIGNATURE_REJECTED
            ) from exc
        except Exception as exc:
            raise AuthorizationError(
                FailureCode.INVALID_SIGNER,
                f"validator {signer} failed: {type(exc).__name__}: {exc}",
                legacy_code=CONTRACT_SIGNATURE_REJECTED
            ) from exc
        finally:
            _validation_depth.reset(token)

        if result != EIP1271_MAGIC_VALUE:
            raise AuthorizationError(
                FailureCode.INVALID_SIGNER,
                f"validator {signer} returned {bytes(result).hex() if result else 'nothing'}",
                legacy_code=CONTRACT_SIGNATURE_REJECTED
            )
        return signer
