from pydantic import BaseModel, Field
from typing import Optional, List, Any, Dict


# =============================================================================
# REQUESTS
# =============================================================================

class CreateSubnetRequest(BaseModel):
    name: str
    min_validators: int
    value: int = Field(..., description="Payment; becomes the founding stake")

class JoinSubnetRequest(BaseModel):
    value: int

class DelegateRequest(BaseModel):
    validator: str
    value: int

class WithdrawDelegationRequest(BaseModel):
    validator: str
    amount: int

class VoteRequest(BaseModel):
    vote: bool

class ThresholdUpdate(BaseModel):
    threshold: int

class MinStakeUpdate(BaseModel):
    amount: int


# =============================================================================
# RESPONSES
# =============================================================================

class SubnetCreated(BaseModel):
    subnet_id: int

class SubnetInfo(BaseModel):
    subnet_id: int
    name: str
    creator: str
    is_active: bool
    created_at: int
    min_validators: int
    validator_count: int

class ValidatorInfo(BaseModel):
    address: str
    staked_amount: int
    delegated_amount: int
    vote_weight: int
    is_active: bool
    state: str
    joined_at: int
    left_at: Optional[int] = None
    subnet_id: int

class DelegationResult(BaseModel):
    validator: str
    delegated_amount: int  # Validator's delegated total after the operation

class LeaveResult(BaseModel):
    released: int

class VoteResult(BaseModel):
    proposal_id: str
    weight: int
    state: str

class ProposalVoteInfo(BaseModel):
    proposal_id: str
    voter: str
    vote: bool
    weight: int
    timestamp: int

class ProposalTally(BaseModel):
    proposal_id: str
    state: str
    total_votes: int
    yes_votes: int
    no_votes: int
    total_vote_weight: int
    yes_weight: int
    no_weight: int
    total_staked: int
    quorum_reached: bool
    yes_percentage: int
    outcome: Optional[bool] = None
    decided_at: Optional[int] = None

class ValidatorCount(BaseModel):
    count: int

class BalanceInfo(BaseModel):
    contract_balance: int
    total_staked: int

class EventInfo(BaseModel):
    name: str
    data: Dict[str, Any]
    timestamp: int

class ErrorResponse(BaseModel):
    code: int
    category: str
    error: str
    message: str
    context: Dict[str, Any] = {}

class InvariantReport(BaseModel):
    ok: bool
    problems: List[str]
