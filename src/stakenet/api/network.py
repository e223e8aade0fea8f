"""
Network API Endpoints

HTTP rendition of the StakeNetwork operation surface. The caller identity of
every state-changing call is the X-Caller header; it is taken as given
(authenticating it is the job of whatever sits in front of this API).

StakeNetError failures are turned into JSON error bodies by the handler
installed in stakenet.api.main.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request

from stakenet.core.network import StakeNetwork
from . import schemas

router = APIRouter(
    prefix="/api/network",
    tags=["network"],
    responses={status: {"model": schemas.ErrorResponse} for status in (400, 403, 404, 409)},
)


def get_network(request: Request) -> StakeNetwork:
    return request.app.state.network


# =============================================================================
# SUBNETS
# =============================================================================

@router.post("/subnets", response_model=schemas.SubnetCreated)
def create_subnet(
    body: schemas.CreateSubnetRequest,
    x_caller: str = Header(...),
    network: StakeNetwork = Depends(get_network),
):
    """Create a subnet; the caller becomes its first validator."""
    subnet_id = network.create_subnet(x_caller, body.name, body.min_validators, body.value)
    return {"subnet_id": subnet_id}


@router.get("/subnets", response_model=List[int])
def list_subnets(network: StakeNetwork = Depends(get_network)):
    return network.get_all_subnets()


@router.get("/subnets/{subnet_id}", response_model=schemas.SubnetInfo)
def get_subnet(subnet_id: int, network: StakeNetwork = Depends(get_network)):
    return network.get_subnet_info(subnet_id)


@router.post("/subnets/{subnet_id}/join", response_model=schemas.ValidatorInfo)
def join_subnet(
    subnet_id: int,
    body: schemas.JoinSubnetRequest,
    x_caller: str = Header(...),
    network: StakeNetwork = Depends(get_network),
):
    network.join_subnet(x_caller, subnet_id, body.value)
    return network.get_validator_info(x_caller)


@router.post("/subnets/{subnet_id}/pause", response_model=schemas.SubnetInfo)
def pause_subnet(
    subnet_id: int,
    x_caller: str = Header(...),
    network: StakeNetwork = Depends(get_network),
):
    """Owner only: block future joins."""
    network.pause_subnet(x_caller, subnet_id)
    return network.get_subnet_info(subnet_id)


# =============================================================================
# VALIDATORS & DELEGATION
# =============================================================================

@router.get("/validators/count", response_model=schemas.ValidatorCount)
def validator_count(network: StakeNetwork = Depends(get_network)):
    return {"count": network.get_validator_count()}


@router.get("/validators/{address}", response_model=schemas.ValidatorInfo)
def get_validator(address: str, network: StakeNetwork = Depends(get_network)):
    info = network.get_validator_info(address)
    if info is None:
        raise HTTPException(status_code=404, detail=f"Validator {address} not found")
    return info


@router.post("/validators/leave", response_model=schemas.LeaveResult)
def leave_validator_set(
    x_caller: str = Header(...),
    network: StakeNetwork = Depends(get_network),
):
    return {"released": network.leave_validator_set(x_caller)}


@router.post("/delegations", response_model=schemas.DelegationResult)
def delegate_stake(
    body: schemas.DelegateRequest,
    x_caller: str = Header(...),
    network: StakeNetwork = Depends(get_network),
):
    delegated = network.delegate_stake(x_caller, body.validator, body.value)
    return {"validator": body.validator, "delegated_amount": delegated}


@router.post("/delegations/withdraw", response_model=schemas.DelegationResult)
def withdraw_delegation(
    body: schemas.WithdrawDelegationRequest,
    x_caller: str = Header(...),
    network: StakeNetwork = Depends(get_network),
):
    remaining = network.withdraw_delegation(x_caller, body.validator, body.amount)
    return {"validator": body.validator, "delegated_amount": remaining}


# =============================================================================
# PROPOSALS
# =============================================================================

@router.post("/proposals/{proposal_id}/votes", response_model=schemas.VoteResult)
def cast_vote(
    proposal_id: str,
    body: schemas.VoteRequest,
    x_caller: str = Header(...),
    network: StakeNetwork = Depends(get_network),
):
    weight = network.cast_consensus_vote(x_caller, proposal_id, body.vote)
    tally = network.get_proposal_tally(proposal_id)
    return {"proposal_id": tally["proposal_id"], "weight": weight, "state": tally["state"]}


@router.get("/proposals/{proposal_id}/votes", response_model=List[schemas.ProposalVoteInfo])
def get_votes(proposal_id: str, network: StakeNetwork = Depends(get_network)):
    return network.get_proposal_votes(proposal_id)


@router.get("/proposals/{proposal_id}", response_model=schemas.ProposalTally)
def get_tally(proposal_id: str, network: StakeNetwork = Depends(get_network)):
    return network.get_proposal_tally(proposal_id)


# =============================================================================
# PARAMETERS (owner only)
# =============================================================================

@router.put("/params/consensus-threshold")
def update_consensus_threshold(
    body: schemas.ThresholdUpdate,
    x_caller: str = Header(...),
    network: StakeNetwork = Depends(get_network),
):
    network.update_consensus_threshold(x_caller, body.threshold)
    return {"consensus_threshold": network.consensus_threshold}


@router.put("/params/min-stake")
def update_min_stake(
    body: schemas.MinStakeUpdate,
    x_caller: str = Header(...),
    network: StakeNetwork = Depends(get_network),
):
    network.update_min_stake_amount(x_caller, body.amount)
    return {"min_stake_amount": network.min_stake_amount}


# =============================================================================
# REPORTING
# =============================================================================

@router.get("/balance", response_model=schemas.BalanceInfo)
def get_balance(network: StakeNetwork = Depends(get_network)):
    return {"contract_balance": network.contract_balance(),
            "total_staked": network.total_staked}


@router.get("/events", response_model=List[schemas.EventInfo])
def get_events(
    name: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    network: StakeNetwork = Depends(get_network),
):
    return [e.to_dict() for e in network.get_events(name)[-limit:]]


@router.get("/stats")
def get_stats(network: StakeNetwork = Depends(get_network)):
    return network.get_stats()


@router.get("/invariants", response_model=schemas.InvariantReport)
def get_invariants(network: StakeNetwork = Depends(get_network)):
    problems = network.check_invariants()
    return {"ok": not problems, "problems": problems}
