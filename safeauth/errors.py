"""
Authorization failure codes.

Every rejection the engine can produce maps to exactly one FailureCode.
Codes are decision outcomes, not transient faults: re-submitting the same
bundle against the same state yields the same code.
"""

from enum import Enum
from typing import Optional


class FailureCode(str, Enum):
    """Reasons an authorization is rejected."""
    NOT_CONFIGURED = "NOT_CONFIGURED"
    INSUFFICIENT_SIGNATURES = "INSUFFICIENT_SIGNATURES"
    OFFSET_IN_STATIC_REGION = "OFFSET_IN_STATIC_REGION"
    DYNAMIC_PART_MISSING = "DYNAMIC_PART_MISSING"
    DYNAMIC_PART_TOO_SHORT = "DYNAMIC_PART_TOO_SHORT"
    APPROVAL_NOT_FOUND = "APPROVAL_NOT_FOUND"
    SIGNER_NOT_ASCENDING = "SIGNER_NOT_ASCENDING"
    SIGNER_NOT_OWNER = "SIGNER_NOT_OWNER"
    INVALID_SIGNER = "INVALID_SIGNER"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"

    @property
    def legacy_code(self) -> str:
        """Revert code used by deployed accounts for the same failure."""
        return LEGACY_CODES[self]


# Deployed accounts collapse the three signer checks into GS026.
LEGACY_CODES = {
    FailureCode.NOT_CONFIGURED: "GS001",
    FailureCode.INSUFFICIENT_SIGNATURES: "GS020",
    FailureCode.OFFSET_IN_STATIC_REGION: "GS021",
    FailureCode.DYNAMIC_PART_MISSING: "GS022",
    FailureCode.DYNAMIC_PART_TOO_SHORT: "GS023",
    FailureCode.APPROVAL_NOT_FOUND: "GS025",
    FailureCode.SIGNER_NOT_ASCENDING: "GS026",
    FailureCode.SIGNER_NOT_OWNER: "GS026",
    FailureCode.INVALID_SIGNER: "GS026",
    FailureCode.NOT_AUTHORIZED: "GS030",
}

# Contract validators that reject a payload revert with GS024 on-chain.
CONTRACT_SIGNATURE_REJECTED = "GS024"


class AuthorizationError(Exception):
    """
    Raised when an authorization step fails.

    The decoder and resolver raise it; the engine turns it into a rejected
    AuthorizationResult, and the account facade raises it again for callers
    that prefer exceptions.
    """

    def __init__(
        self,
        code: FailureCode,
        detail: Optional[str] = None,
        legacy_code: Optional[str] = None
    ):
        self.code = code
        self.detail = detail
        self.legacy_code = legacy_code or code.legacy_code
        message = f"{code.value} ({self.legacy_code})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
