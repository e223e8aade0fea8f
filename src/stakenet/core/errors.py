"""
StakeNet Errors

Every failure in the staking/consensus state machine is a precondition
violation. Operations check all preconditions before their first mutation,
so raising one of these exceptions always leaves the network unchanged.

Each exception carries:
- a stable integer ``code`` (see ErrorCode) so the CLI and HTTP API can
  classify failures without string matching
- a human-readable message
- a small ``context`` dict (addresses, amounts, ids) safe to log

Categories:
=====================
- Unauthorized            : caller lacks the required role (owner, validator)
- InvalidAmount           : zero, below-minimum or unaffordable value
- InvalidParameter        : malformed argument (threshold, name, proposal id)
- UnknownEntity           : subnet/validator missing or inactive
- AlreadyExists           : idempotency violations (double join, double vote)
- BelowMinimumValidators  : leave would breach a subnet's floor
- ProposalAlreadyDecided  : vote on a decided proposal (when late votes are off)
- InsufficientDelegation  : withdrawal larger than what is recorded
"""

from enum import IntEnum
from typing import Any, Dict, Mapping, Optional


class ErrorCode(IntEnum):
    """Stable error codes for state machine failures."""
    GENERIC = 1000
    UNAUTHORIZED = 1001
    INVALID_AMOUNT = 1002
    INVALID_PARAMETER = 1003
    UNKNOWN_ENTITY = 1004
    ALREADY_EXISTS = 1005
    BELOW_MINIMUM_VALIDATORS = 1006
    PROPOSAL_ALREADY_DECIDED = 1007
    INSUFFICIENT_DELEGATION = 1008


class StakeNetError(Exception):
    """
    Base class for all StakeNet failures.

    Args:
        message: Human-readable description
        context: Optional structured fields (addresses, amounts, ids)
    """

    code: ErrorCode = ErrorCode.GENERIC

    def __init__(self, message: str, context: Optional[Mapping[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context) if context else {}

    def __str__(self) -> str:
        tail = f" context={self.context}" if self.context else ""
        return f"[{int(self.code)}] {self.message}{tail}"

    @property
    def category(self) -> str:
        return self.code.name

    def to_dict(self) -> dict:
        return {
            "code": int(self.code),
            "category": self.category,
            "error": type(self).__name__,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# UNAUTHORIZED
# =============================================================================

class Unauthorized(StakeNetError):
    """Caller is not allowed to invoke the operation (e.g. not the owner)."""
    code = ErrorCode.UNAUTHORIZED


class NotAValidator(Unauthorized):
    """Caller must be an active validator."""


# =============================================================================
# AMOUNTS AND PARAMETERS
# =============================================================================

class InvalidAmount(StakeNetError):
    """Zero or below-minimum amount."""
    code = ErrorCode.INVALID_AMOUNT


class InsufficientBalance(InvalidAmount):
    """Ledger balance cannot cover the payment."""


class InvalidParameter(StakeNetError):
    """Malformed or out-of-range argument."""
    code = ErrorCode.INVALID_PARAMETER


class InvalidProposalId(InvalidParameter):
    """Proposal ids are 32 bytes (or 64 hex digits)."""


# =============================================================================
# UNKNOWN ENTITIES
# =============================================================================

class UnknownEntity(StakeNetError):
    code = ErrorCode.UNKNOWN_ENTITY


class UnknownSubnet(UnknownEntity):
    pass


class InactiveSubnet(UnknownEntity):
    pass


class UnknownValidator(UnknownEntity):
    pass


class InactiveValidator(UnknownEntity):
    pass


# =============================================================================
# IDEMPOTENCY / STATE
# =============================================================================

class AlreadyExists(StakeNetError):
    code = ErrorCode.ALREADY_EXISTS


class AlreadyValidator(AlreadyExists):
    """Account is already an active validator."""


class DuplicateVote(AlreadyExists):
    """Voter already has a vote recorded for this proposal."""


class BelowMinimumValidators(StakeNetError):
    code = ErrorCode.BELOW_MINIMUM_VALIDATORS


class ProposalAlreadyDecided(StakeNetError):
    code = ErrorCode.PROPOSAL_ALREADY_DECIDED


class InsufficientDelegation(StakeNetError):
    code = ErrorCode.INSUFFICIENT_DELEGATION
