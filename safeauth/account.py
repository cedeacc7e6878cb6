"""
Multi-owner account facade.

SafeAccount wires the digest builder, the authorization engine and the
stores of one account deployment together, and exposes the surface callers
of a deployed account expect (transaction hashing, hash approval, signature
checks).

SafeValidator lets one account act as an owner of another: the outer digest
is wrapped in a SafeMessage typed hash of the inner account, and the inner
account's own owners must authorize that message.
"""

import logging
import threading
from typing import Dict, Iterable, Optional, Union

from eth_utils import keccak

from . import hashing
from .encoding import ZERO_ADDRESS, check_uint256, hex_to_bytes, normalize_address, to_bytes32, to_hex
from .engine import AuthorizationEngine, AuthorizationResult
from .errors import AuthorizationError, FailureCode
from .ledger import ApprovalLedger, InMemoryApprovalLedger, InMemoryOwnerStore, OwnerSet, OwnerStore
from .logging_config import audit_log
from .resolver import EIP1271_MAGIC_VALUE, SignatureValidator, SignerResolver, ValidatorRegistry
from .transaction import SafeTransaction


logger = logging.getLogger(__name__)


class SafeAccount:
    """
    One multi-owner account on one chain.

    Args:
        address: Account address (part of every digest)
        chain_id: Chain the account lives on (part of every digest)
        owner_store: Owner set capability (in-memory by default)
        ledger: Approval ledger capability (in-memory by default)
        registry: Validators for contract signatures
        max_depth: Maximum nesting of contract validation
    """

    def __init__(
        self,
        address: str,
        chain_id: int,
        owner_store: Optional[OwnerStore] = None,
        ledger: Optional[ApprovalLedger] = None,
        registry: Optional[ValidatorRegistry] = None,
        max_depth: Optional[int] = None
    ):
        self.address = normalize_address(address)
        self.chain_id = check_uint256("chain_id", chain_id)
        self.owner_store = owner_store or InMemoryOwnerStore()
        self.ledger = ledger or InMemoryApprovalLedger()
        self.registry = registry if registry is not None else ValidatorRegistry()
        self.engine = AuthorizationEngine(
            self.owner_store,
            self.ledger,
            SignerResolver(self.registry, max_depth),
            account=self.address
        )
        self._signed_messages: Dict[bytes, bool] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Owners
    # ------------------------------------------------------------------

    def setup(self, owners: Iterable[str], threshold: int) -> None:
        """
        Configure the initial owner set.

        Raises:
            ValueError: if already configured or the owner set is invalid
            TypeError: if the owner store cannot be written
        """
        if self.owner_store.get_owner_set().is_configured():
            raise ValueError("GS200: account has already been set up")
        if not isinstance(self.owner_store, InMemoryOwnerStore):
            raise TypeError(f"{type(self.owner_store).__name__} does not support setup")

        owner_set = OwnerSet.create(owners, threshold)
        self.owner_store.set_owner_set(owner_set)
        logger.info("account %s set up with %d owners, threshold %d",
                    self.address, len(owner_set.owners), owner_set.threshold)

    def get_owners(self):
        return list(self.owner_store.get_owner_set().owners)

    def get_threshold(self) -> int:
        return self.owner_store.get_owner_set().threshold

    def is_owner(self, address: str) -> bool:
        return self.owner_store.get_owner_set().is_owner(address)

    # ------------------------------------------------------------------
    # Digests
    # ------------------------------------------------------------------

    def domain_separator(self) -> bytes:
        return hashing.domain_separator(self.address, self.chain_id)

    def encode_transaction_data(self, tx: SafeTransaction) -> bytes:
        """Pre-hash encoding of ``tx`` for this account."""
        return hashing.transaction_preimage(self.address, self.chain_id, tx)

    def get_transaction_hash(self, tx: SafeTransaction) -> bytes:
        return hashing.transaction_hash(self.address, self.chain_id, tx)

    def encode_message_data(self, message: Union[str, bytes]) -> bytes:
        """Pre-hash encoding of an account message."""
        return hashing.message_preimage(self.address, self.chain_id, hex_to_bytes(message))

    def get_message_hash(self, message: Union[str, bytes]) -> bytes:
        return hashing.message_hash(self.address, self.chain_id, hex_to_bytes(message))

    # ------------------------------------------------------------------
    # Approvals
    # ------------------------------------------------------------------

    def approve_hash(self, caller: str, digest: Union[str, bytes]) -> None:
        """
        Record that ``caller`` approves ``digest``.

        Raises:
            AuthorizationError: NOT_AUTHORIZED if caller is not an owner
        """
        caller = normalize_address(caller)
        digest = to_bytes32(digest)
        if not self.is_owner(caller):
            audit_log.security_event(
                "approval_by_non_owner",
                account=self.address,
                caller=caller,
                digest=to_hex(digest)
            )
            raise AuthorizationError(FailureCode.NOT_AUTHORIZED, f"{caller} is not an owner")

        self.ledger.set_approved(caller, digest, caller)
        audit_log.approval_recorded(self.address, caller, to_hex(digest))

    def approved_hashes(self, owner: str, digest: Union[str, bytes]) -> int:
        """1 if ``owner`` has approved ``digest``, else 0."""
        return 1 if self.ledger.is_approved(owner, to_bytes32(digest)) else 0

    def sign_message(self, caller: str, message: Union[str, bytes]) -> bytes:
        """
        Mark a message as signed by the account itself.

        Only the account may do this (i.e. through one of its own authorized
        transactions). A signed message validates with an empty contract
        signature payload.

        Returns:
            The message hash that was recorded
        """
        if normalize_address(caller) != self.address:
            raise AuthorizationError(
                FailureCode.NOT_AUTHORIZED,
                f"{caller} cannot sign messages for {self.address}"
            )
        msg_hash = self.get_message_hash(message)
        with self._lock:
            self._signed_messages[msg_hash] = True
        logger.info("account %s signed message %s", self.address, to_hex(msg_hash))
        return msg_hash

    def signed_messages(self, msg_hash: Union[str, bytes]) -> int:
        with self._lock:
            return 1 if self._signed_messages.get(to_bytes32(msg_hash)) else 0

    # ------------------------------------------------------------------
    # Signature checks
    # ------------------------------------------------------------------

    def check_signatures(
        self,
        digest: Union[str, bytes],
        preimage: Union[str, bytes],
        signatures: Union[str, bytes],
        caller: str = ZERO_ADDRESS
    ) -> AuthorizationResult:
        """
        Check that ``signatures`` meet the threshold for ``digest``.

        Raises:
            AuthorizationError: if the bundle is rejected
        """
        result = self.engine.check_signatures(digest, preimage, signatures, caller)
        result.raise_for_failure()
        return result

    def check_n_signatures(
        self,
        digest: Union[str, bytes],
        preimage: Union[str, bytes],
        signatures: Union[str, bytes],
        required_count: int,
        caller: str = ZERO_ADDRESS,
        check_owners: bool = True
    ) -> AuthorizationResult:
        """
        Check that ``signatures`` hold ``required_count`` valid signers.

        Raises:
            AuthorizationError: if the bundle is rejected
        """
        result = self.engine.check_n_signatures(
            digest, preimage, signatures, required_count, caller, check_owners
        )
        result.raise_for_failure()
        return result

    def authorize_transaction(
        self,
        tx: SafeTransaction,
        signatures: Union[str, bytes],
        caller: str = ZERO_ADDRESS
    ) -> AuthorizationResult:
        """
        Decide whether ``signatures`` authorize ``tx``.

        Nothing is executed; the caller acts on the returned decision.
        """
        preimage = self.encode_transaction_data(tx)
        return self.engine.check_signatures(keccak(preimage), preimage, signatures, caller)

    def validator(self) -> 'SafeValidator':
        """A validator through which this account signs for other accounts."""
        return SafeValidator(self)


class SafeValidator(SignatureValidator):
    """
    Contract signature validator backed by a nested account.

    The payload is a signature bundle of the nested account's owners over
    ``account.get_message_hash(data_hash)``. An empty payload is accepted if
    the nested account has signed that message itself.
    """

    def __init__(self, account: SafeAccount):
        self.account = account

    def is_valid_signature(self, data_hash, signature, preimage=b""):
        data_hash = to_bytes32(data_hash)
        if preimage and keccak(hex_to_bytes(preimage)) != data_hash:
            raise AuthorizationError(
                FailureCode.INVALID_SIGNER,
                "preimage does not hash to the signed digest"
            )

        msg_data = self.account.encode_message_data(data_hash)
        msg_hash = keccak(msg_data)

        if not signature:
            if self.account.signed_messages(msg_hash):
                return EIP1271_MAGIC_VALUE
            raise AuthorizationError(
                FailureCode.INVALID_SIGNER,
                f"{self.account.address} has not signed {to_hex(msg_hash)}"
            )

        # nested owners sign for the account, not for whoever submitted the outer bundle
        self.account.check_signatures(msg_hash, msg_data, signature, caller=ZERO_ADDRESS)
        return EIP1271_MAGIC_VALUE
