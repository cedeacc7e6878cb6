"""
Authorization Engine

Decides whether a signature bundle authorizes a digest.

State machine:

    START -> DECODING -> PER_ENTRY_CHECK -> COUNTED -> ACCEPTED | REJECTED

Each entry is decoded, resolved to a signer, then checked:

- a pre-approved entry needs the caller to be the signer or a ledger record
- signers must be strictly ascending as 160-bit integers (no duplicates)
- signers must be owners, unless the owner check is disabled

The first failing check rejects the whole bundle. The engine never writes
state; the owner set and approval ledger are read-only capabilities.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .encoding import ADDRESS_SIZE, ZERO_ADDRESS, address_to_int, hex_to_bytes, normalize_address, to_bytes32, to_hex
from .errors import AuthorizationError, FailureCode
from .ledger import ApprovalLedger, OwnerSet, OwnerStore
from .logging_config import audit_log, correlation_scope
from .resolver import SignerResolver
from .signatures import SIGNATURE_SLOT_SIZE, SignatureEntry, SignatureKind, decode_entry, has_slot


logger = logging.getLogger(__name__)


class EngineState(str, Enum):
    """
    Engine states.

    START: request received, owner set not yet consulted
    DECODING: reading the static slot (and dynamic part) of an entry
    PER_ENTRY_CHECK: resolving and checking the signer of an entry
    COUNTED: scan finished, comparing the count against the requirement
    ACCEPTED: enough valid signers (terminal)
    REJECTED: a check failed (terminal)
    """
    START = "START"
    DECODING = "DECODING"
    PER_ENTRY_CHECK = "PER_ENTRY_CHECK"
    COUNTED = "COUNTED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


@dataclass
class AuthorizationResult:
    """Result of an authorization decision."""
    state: EngineState
    signers: List[str] = field(default_factory=list)
    failure_code: Optional[FailureCode] = None
    detail: Optional[str] = None
    legacy_code: Optional[str] = None
    failed_stage: Optional[EngineState] = None
    failed_index: Optional[int] = None

    def accepted(self) -> bool:
        return self.state == EngineState.ACCEPTED

    def raise_for_failure(self) -> None:
        """Raise the rejection as an AuthorizationError (no-op when accepted)."""
        if self.accepted():
            return
        raise AuthorizationError(self.failure_code, self.detail, legacy_code=self.legacy_code)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "decision": self.state.value,
            "signers": list(self.signers),
        }
        if not self.accepted():
            d["failure_code"] = self.failure_code.value
            d["legacy_code"] = self.legacy_code
            if self.detail:
                d["detail"] = self.detail
            if self.failed_stage:
                d["failed_stage"] = self.failed_stage.value
            if self.failed_index is not None:
                d["failed_index"] = self.failed_index
        return d

    @classmethod
    def accept(cls, signers: List[str]) -> 'AuthorizationResult':
        return cls(state=EngineState.ACCEPTED, signers=list(signers))

    @classmethod
    def reject(
        cls,
        code: FailureCode,
        detail: Optional[str] = None,
        legacy_code: Optional[str] = None,
        signers: Optional[List[str]] = None,
        stage: Optional[EngineState] = None,
        index: Optional[int] = None
    ) -> 'AuthorizationResult':
        return cls(
            state=EngineState.REJECTED,
            signers=list(signers or []),
            failure_code=code,
            detail=detail,
            legacy_code=legacy_code or code.legacy_code,
            failed_stage=stage,
            failed_index=index
        )

    @classmethod
    def from_error(
        cls,
        error: AuthorizationError,
        signers: Optional[List[str]] = None,
        stage: Optional[EngineState] = None,
        index: Optional[int] = None
    ) -> 'AuthorizationResult':
        return cls.reject(
            error.code,
            detail=error.detail,
            legacy_code=error.legacy_code,
            signers=signers,
            stage=stage,
            index=index
        )


class AuthorizationEngine:
    """
    Threshold authorization over signature bundles.

    Args:
        owner_store: Supplies the owner set and threshold
        ledger: Approval records consulted for pre-approved entries
        resolver: Turns entries into signer identities
        account: Label used in audit events (usually the account address)
    """

    def __init__(
        self,
        owner_store: OwnerStore,
        ledger: ApprovalLedger,
        resolver: Optional[SignerResolver] = None,
        account: str = ""
    ):
        self.owner_store = owner_store
        self.ledger = ledger
        self.resolver = resolver or SignerResolver()
        self.account = account

    def authorize(
        self,
        digest: Union[str, bytes],
        preimage: Union[str, bytes],
        signatures: Union[str, bytes],
        required_count: int,
        caller: str = ZERO_ADDRESS,
        check_owners: bool = True
    ) -> AuthorizationResult:
        """
        Run the authorization state machine.

        Args:
            digest: 32-byte digest being authorized
            preimage: Encoding the digest was hashed from (may be empty)
            signatures: The signature bundle
            required_count: Number of valid signers needed
            caller: Identity submitting the bundle
            check_owners: Require every signer to be an owner

        Returns:
            AuthorizationResult, ACCEPTED or REJECTED with a failure code

        Raises:
            ValueError: on malformed inputs (not on malformed bundles)
        """
        digest = to_bytes32(digest)
        preimage = hex_to_bytes(preimage) if preimage else b""
        signatures = hex_to_bytes(signatures)
        caller = normalize_address(caller)
        if isinstance(required_count, bool) or not isinstance(required_count, int) or required_count < 0:
            raise ValueError(f"required_count must be a non-negative integer, got {required_count!r}")

        digest_hex = to_hex(digest)
        with correlation_scope():
            audit_log.authorization_request(self.account, digest_hex, required_count, len(signatures))

            result = self._evaluate(digest, preimage, signatures, required_count, caller, check_owners)

            audit_log.authorization_decision(
                account=self.account,
                digest=digest_hex,
                accepted=result.accepted(),
                failure_code=result.failure_code.value if result.failure_code else None,
                signers=result.signers,
                detail=result.detail
            )
        return result

    def check_signatures(
        self,
        digest: Union[str, bytes],
        preimage: Union[str, bytes],
        signatures: Union[str, bytes],
        caller: str = ZERO_ADDRESS
    ) -> AuthorizationResult:
        """Full check: the account threshold, with the owner check."""
        threshold = self.owner_store.get_owner_set().threshold
        return self.authorize(digest, preimage, signatures, threshold, caller, check_owners=True)

    def check_n_signatures(
        self,
        digest: Union[str, bytes],
        preimage: Union[str, bytes],
        signatures: Union[str, bytes],
        required_count: int,
        caller: str = ZERO_ADDRESS,
        check_owners: bool = True
    ) -> AuthorizationResult:
        """Partial check: ``required_count`` signers, independent of the threshold."""
        return self.authorize(digest, preimage, signatures, required_count, caller, check_owners)

    def _evaluate(
        self,
        digest: bytes,
        preimage: bytes,
        signatures: bytes,
        required_count: int,
        caller: str,
        check_owners: bool
    ) -> AuthorizationResult:
        state = EngineState.START

        owner_set = self.owner_store.get_owner_set()
        if not owner_set.is_configured():
            return AuthorizationResult.reject(
                FailureCode.NOT_CONFIGURED,
                "owner set has not been configured",
                stage=state
            )

        static_length = required_count * SIGNATURE_SLOT_SIZE
        signers: List[str] = []
        last_signer = 0
        index = 0

        while len(signers) < required_count:
            if not has_slot(signatures, index):
                break

            try:
                state = EngineState.DECODING
                entry = decode_entry(signatures, index, static_length)

                state = EngineState.PER_ENTRY_CHECK
                signer = self.resolver.resolve(entry, digest, preimage)
                self._check_entry(entry, signer, digest, caller, last_signer, owner_set, check_owners)
            except AuthorizationError as exc:
                logger.debug("entry %d rejected in %s: %s", index, state.value, exc)
                return AuthorizationResult.from_error(exc, signers=signers, stage=state, index=index)

            last_signer = address_to_int(signer)
            signers.append(signer)
            index += 1

        state = EngineState.COUNTED
        if len(signers) < required_count:
            return AuthorizationResult.reject(
                FailureCode.INSUFFICIENT_SIGNATURES,
                f"{len(signers)} valid signatures, {required_count} required",
                signers=signers,
                stage=state
            )

        return AuthorizationResult.accept(signers)

    def _check_entry(
        self,
        entry: SignatureEntry,
        signer: str,
        digest: bytes,
        caller: str,
        last_signer: int,
        owner_set: OwnerSet,
        check_owners: bool
    ) -> None:
        if entry.kind == SignatureKind.APPROVED_HASH:
            if signer != caller and not self.ledger.is_approved(signer, digest):
                raise AuthorizationError(
                    FailureCode.APPROVAL_NOT_FOUND,
                    f"{signer} has not approved {to_hex(digest)}"
                )

        if address_to_int(signer) <= last_signer:
            raise AuthorizationError(
                FailureCode.SIGNER_NOT_ASCENDING,
                f"signer {signer} does not follow {normalize_address(last_signer.to_bytes(ADDRESS_SIZE, 'big'))}"
            )

        if check_owners and not owner_set.is_owner(signer):
            # recovered identities that are not owners come from a wrong key or a wrong digest
            # (another chain or account) and count as invalid; claimed identities stay SIGNER_NOT_OWNER.
            # Both carry GS026.
            if entry.kind in (SignatureKind.ECDSA, SignatureKind.ETH_SIGN):
                raise AuthorizationError(
                    FailureCode.INVALID_SIGNER,
                    f"recovered {signer}, which is not an owner"
                )
            raise AuthorizationError(FailureCode.SIGNER_NOT_OWNER, f"{signer} is not an owner")
