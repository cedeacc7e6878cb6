"""
Owner set and approval ledger capabilities.

The engine never reads ambient state. The owner set and the approval ledger
are handed to it as capabilities, so any backing store (a chain node, a
database, an in-memory fake) can sit behind them.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple, Union

from .encoding import SENTINEL_ADDRESS, ZERO_ADDRESS, normalize_address, to_bytes32
from .errors import AuthorizationError, FailureCode


@dataclass(frozen=True)
class OwnerSet:
    """
    Owners of an account and the number of approvals required.

    An empty owner set with threshold 0 means the account is not configured.
    """
    owners: Tuple[str, ...] = ()
    threshold: int = 0

    def __post_init__(self):
        normalized = tuple(normalize_address(o) for o in self.owners)
        object.__setattr__(self, "owners", normalized)
        self._validate()

    def _validate(self):
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, int):
            raise ValueError("threshold must be an integer")

        if not self.owners:
            if self.threshold != 0:
                raise ValueError("threshold must be 0 when no owners are set")
            return

        if self.threshold > len(self.owners):
            raise ValueError(
                f"GS201: threshold {self.threshold} exceeds owner count {len(self.owners)}"
            )
        if self.threshold < 1:
            raise ValueError("GS202: threshold must be at least 1")

        seen = set()
        for owner in self.owners:
            if owner in (ZERO_ADDRESS, SENTINEL_ADDRESS):
                raise ValueError(f"GS203: invalid owner address {owner}")
            if owner in seen:
                raise ValueError(f"GS204: duplicate owner {owner}")
            seen.add(owner)

    @classmethod
    def create(cls, owners: Iterable[str], threshold: int) -> 'OwnerSet':
        """Factory accepting any iterable of owner addresses."""
        return cls(owners=tuple(owners), threshold=threshold)

    def is_configured(self) -> bool:
        return self.threshold > 0

    def is_owner(self, address: str) -> bool:
        try:
            return normalize_address(address) in self.owners
        except ValueError:
            return False

    def to_dict(self):
        return {"owners": list(self.owners), "threshold": self.threshold}


class OwnerStore(ABC):
    """Read access to the owner set of one account."""

    @abstractmethod
    def get_owner_set(self) -> OwnerSet:
        """Return the current owner set."""
        pass


class InMemoryOwnerStore(OwnerStore):
    """
    In-memory owner store for development/testing.

    Owner management (add/remove/swap) is an account-governance concern;
    this store only supports replacing the whole set.
    """

    def __init__(self, owner_set: Optional[OwnerSet] = None):
        self._owner_set = owner_set or OwnerSet()
        self._lock = threading.Lock()

    def get_owner_set(self) -> OwnerSet:
        with self._lock:
            return self._owner_set

    def set_owner_set(self, owner_set: OwnerSet) -> None:
        with self._lock:
            self._owner_set = owner_set


class ApprovalLedger(ABC):
    """
    Per-owner, per-digest approval records.

    Records are never cleared by a successful authorization. A record stops
    being useful when the digest itself can no longer be produced (for
    example after the nonce it commits to has been used).
    """

    @abstractmethod
    def is_approved(self, owner: str, digest: bytes) -> bool:
        """Check whether ``owner`` has approved ``digest``."""
        pass

    @abstractmethod
    def set_approved(self, owner: str, digest: bytes, caller: str) -> None:
        """
        Record that ``owner`` approved ``digest``.

        Idempotent. Only the owner itself may write its own record.

        Raises:
            AuthorizationError: NOT_AUTHORIZED if caller is not owner
        """
        pass


class InMemoryApprovalLedger(ApprovalLedger):
    """
    In-memory approval ledger for development/testing.

    WARNING: Not persistent across restarts.
    """

    def __init__(self):
        self._approved: Dict[Tuple[str, bytes], bool] = {}
        self._lock = threading.Lock()

    def is_approved(self, owner: str, digest: Union[str, bytes]) -> bool:
        key = (normalize_address(owner), to_bytes32(digest))
        with self._lock:
            return self._approved.get(key, False)

    def set_approved(self, owner: str, digest: Union[str, bytes], caller: str) -> None:
        owner = normalize_address(owner)
        if normalize_address(caller) != owner:
            raise AuthorizationError(
                FailureCode.NOT_AUTHORIZED,
                f"{caller} cannot approve on behalf of {owner}"
            )
        with self._lock:
            self._approved[(owner, to_bytes32(digest))] = True
