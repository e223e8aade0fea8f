"""
Stake-Weighted Consensus Engine

Single-round weighted-majority voting on opaque 32-byte proposal ids.

VOTING FLOW:
============
1. An active validator casts a YES/NO vote on a proposal id
2. The vote's weight (own stake + delegated stake) is captured at cast time
   and frozen into the vote record; later stake changes never touch it
3. After every cast the proposal is evaluated:
   - QUORUM: total_vote_weight * 100 >= total_staked * 51
     (against the CURRENT global stake, not the stake when voting opened)
   - yes_pct = yes_weight * 100 // total_vote_weight
   - yes_pct >= threshold       -> ACCEPTED
   - yes_pct <= 100 - threshold -> REJECTED
   - otherwise                  -> still OPEN (dead zone)
4. OPEN -> ACCEPTED/REJECTED happens at most once. The decision callback
   fires exactly once per proposal; later evaluations are no-ops.

Late votes on a decided proposal are recorded by default (they cannot change
the outcome). Construct with accept_votes_after_decision=False to reject
them with ProposalAlreadyDecided instead.

Duplicate detection scans the proposal's vote list: O(votes) per cast.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

from stakenet.core.economics.constants import (
    ACCEPT_VOTES_AFTER_DECISION,
    DEFAULT_CONSENSUS_THRESHOLD,
    PROPOSAL_ID_BYTES,
    QUORUM_PERCENT,
    decide_outcome,
    is_valid_consensus_threshold,
    quorum_reached,
    yes_percentage,
)
from stakenet.core.errors import (
    DuplicateVote,
    InvalidParameter,
    InvalidProposalId,
    NotAValidator,
    ProposalAlreadyDecided,
)
from stakenet.core.staking.registry import StakeRegistry
from stakenet.core.validators.lifecycle import ValidatorLifecycle

logger = logging.getLogger(__name__)

ProposalId = Union[bytes, str]


def normalize_proposal_id(proposal_id: ProposalId) -> bytes:
    """
    Accept 32 raw bytes or 64 hex digits (optionally 0x-prefixed).

    Examples:
        >>> normalize_proposal_id("0x" + "ab" * 32) == bytes.fromhex("ab" * 32)
        True
    """
    if isinstance(proposal_id, (bytes, bytearray)):
        raw = bytes(proposal_id)
    elif isinstance(proposal_id, str):
        text = proposal_id[2:] if proposal_id[:2] in ("0x", "0X") else proposal_id
        if len(text) != PROPOSAL_ID_BYTES * 2:
            raise InvalidProposalId(
                f"Proposal id must be {PROPOSAL_ID_BYTES * 2} hex digits",
                {"proposal_id": proposal_id})
        try:
            raw = bytes.fromhex(text)
        except ValueError:
            raise InvalidProposalId("Proposal id is not valid hex",
                                    {"proposal_id": proposal_id})
    else:
        raise InvalidProposalId("Proposal id must be bytes or a hex string",
                                {"type": type(proposal_id).__name__})

    if len(raw) != PROPOSAL_ID_BYTES:
        raise InvalidProposalId(f"Proposal id must be {PROPOSAL_ID_BYTES} bytes",
                                {"length": len(raw)})
    return raw


def format_proposal_id(proposal_id: bytes) -> str:
    return "0x" + proposal_id.hex()


class ProposalState(Enum):
    """State of a proposal in the consensus process."""
    OPEN = "open"             # Collecting votes, no decision yet
    ACCEPTED = "accepted"     # Decided YES
    REJECTED = "rejected"     # Decided NO


@dataclass
class ProposalVote:
    """A validator's vote on a proposal. Weight is frozen at cast time."""
    proposal_id: bytes
    voter: str
    vote: bool
    weight: int
    timestamp: int = field(default_factory=lambda: int(time.time()))

    def to_dict(self) -> dict:
        return {
            "proposal_id": format_proposal_id(self.proposal_id),
            "voter": self.voter,
            "vote": self.vote,
            "weight": self.weight,
            "timestamp": self.timestamp,
        }


@dataclass
class ConsensusResult:
    """Decision state and tally of a proposal."""
    proposal_id: bytes
    state: ProposalState = ProposalState.OPEN
    total_votes: int = 0
    yes_votes: int = 0
    no_votes: int = 0
    total_vote_weight: int = 0
    yes_weight: int = 0
    no_weight: int = 0
    total_staked: int = 0
    quorum_reached: bool = False
    yes_percentage: int = 0
    outcome: Optional[bool] = None  # True=accepted, False=rejected, None=undecided
    decided_at: Optional[int] = None

    @property
    def is_decided(self) -> bool:
        return self.state != ProposalState.OPEN

    def to_dict(self) -> dict:
        return {
            "proposal_id": format_proposal_id(self.proposal_id),
            "state": self.state.value,
            "total_votes": self.total_votes,
            "yes_votes": self.yes_votes,
            "no_votes": self.no_votes,
            "total_vote_weight": self.total_vote_weight,
            "yes_weight": self.yes_weight,
            "no_weight": self.no_weight,
            "total_staked": self.total_staked,
            "quorum_reached": self.quorum_reached,
            "yes_percentage": self.yes_percentage,
            "outcome": self.outcome,
            "decided_at": self.decided_at,
        }


class ConsensusEngine:
    """
    Records votes per proposal and decides outcomes.

    Usage:
        engine = ConsensusEngine(registry, lifecycle, threshold=80)
        engine.set_consensus_callback(lambda result: print(result.outcome))

        engine.cast_vote(proposal_id, "alice", True)
        engine.get_result(proposal_id).state
    """

    def __init__(
        self,
        registry: StakeRegistry,
        lifecycle: ValidatorLifecycle,
        threshold: int = DEFAULT_CONSENSUS_THRESHOLD,
        quorum_percent: int = QUORUM_PERCENT,
        accept_votes_after_decision: bool = ACCEPT_VOTES_AFTER_DECISION,
    ):
        """
        Args:
            registry: StakeRegistry used for vote weight and total_staked
            lifecycle: ValidatorLifecycle, only active validators may vote
            threshold: YES percentage needed to accept (50 < t <= 100)
            quorum_percent: share of total_staked that must have voted
            accept_votes_after_decision: record late votes on decided proposals
        """
        self._check_threshold(threshold)
        self.registry = registry
        self.lifecycle = lifecycle
        self.threshold = threshold
        self.quorum_percent = quorum_percent
        self.accept_votes_after_decision = accept_votes_after_decision

        # proposal_id -> votes in cast order
        self._votes: Dict[bytes, List[ProposalVote]] = {}
        # proposal_id -> ConsensusResult
        self._results: Dict[bytes, ConsensusResult] = {}

        self._on_consensus_reached: Optional[Callable[[ConsensusResult], None]] = None

        logger.info(f"ConsensusEngine initialized: threshold={threshold}%, "
                    f"quorum={quorum_percent}%")

    # =========================================================================
    # PARAMETERS
    # =========================================================================

    @staticmethod
    def _check_threshold(threshold: int):
        ok, reason = is_valid_consensus_threshold(threshold)
        if not ok:
            raise InvalidParameter(reason, {"threshold": threshold})

    def update_consensus_threshold(self, new_threshold: int) -> int:
        """Set a new threshold; returns the previous one."""
        self._check_threshold(new_threshold)
        previous, self.threshold = self.threshold, new_threshold
        logger.info(f"Consensus threshold updated: {previous}% -> {new_threshold}%")
        return previous

    # =========================================================================
    # VOTING
    # =========================================================================

    def check_vote(self, proposal_id: bytes, voter: str):
        """Raise if ``voter`` may not vote on ``proposal_id``; no mutation."""
        result = self._results.get(proposal_id)
        if result is not None and result.is_decided and not self.accept_votes_after_decision:
            raise ProposalAlreadyDecided(
                f"Proposal {format_proposal_id(proposal_id)[:18]}... already "
                f"{result.state.value}",
                {"proposal_id": format_proposal_id(proposal_id),
                 "state": result.state.value})

        if not self.lifecycle.is_active_validator(voter):
            raise NotAValidator(f"{voter[:16]}... is not an active validator",
                                {"voter": voter})

        if any(v.voter == voter for v in self._votes.get(proposal_id, [])):
            raise DuplicateVote(
                f"{voter[:16]}... already voted on "
                f"{format_proposal_id(proposal_id)[:18]}...",
                {"voter": voter, "proposal_id": format_proposal_id(proposal_id)})

    def cast_vote(self, proposal_id: ProposalId, voter: str, vote: bool,
                  now: int = None) -> ProposalVote:
        """
        Record ``voter``'s vote and evaluate the proposal.

        Returns the recorded ProposalVote (with its frozen weight).
        """
        pid = normalize_proposal_id(proposal_id)
        self.check_vote(pid, voter)

        weight = self.registry.compute_vote_weight(voter)
        record = ProposalVote(
            proposal_id=pid,
            voter=voter,
            vote=bool(vote),
            weight=weight,
            timestamp=int(time.time()) if now is None else now,
        )
        self._votes.setdefault(pid, []).append(record)
        self._results.setdefault(pid, ConsensusResult(proposal_id=pid))

        logger.info(f"Vote recorded: {voter[:16]}... voted "
                    f"{'YES' if vote else 'NO'} on {format_proposal_id(pid)[:18]}... "
                    f"(weight={weight})")

        self._check_consensus(pid, now)
        return record

    def _tally(self, proposal_id: bytes, result: ConsensusResult) -> ConsensusResult:
        votes = self._votes.get(proposal_id, [])
        result.total_votes = len(votes)
        result.yes_votes = sum(1 for v in votes if v.vote)
        result.no_votes = result.total_votes - result.yes_votes
        result.yes_weight = sum(v.weight for v in votes if v.vote)
        result.no_weight = sum(v.weight for v in votes if not v.vote)
        result.total_vote_weight = result.yes_weight + result.no_weight
        result.total_staked = self.registry.total_staked
        result.quorum_reached = result.total_vote_weight > 0 and quorum_reached(
            result.total_vote_weight, result.total_staked, self.quorum_percent)
        result.yes_percentage = yes_percentage(result.yes_weight, result.total_vote_weight)
        return result

    def _check_consensus(self, proposal_id: bytes, now: int = None) -> ConsensusResult:
        """
        Evaluate a proposal against quorum and threshold.

        Once decided the stored result is frozen: this returns it unchanged
        and never fires the callback again.
        """
        result = self._results[proposal_id]
        if result.is_decided:
            logger.debug(f"Proposal {format_proposal_id(proposal_id)[:18]}... already "
                         f"{result.state.value}, skipping evaluation")
            return result

        self._tally(proposal_id, result)
        logger.debug(f"Tally {format_proposal_id(proposal_id)[:18]}...: "
                     f"voted={result.total_vote_weight}/{result.total_staked} "
                     f"yes={result.yes_percentage}% quorum={result.quorum_reached}")

        if not result.quorum_reached:
            return result

        outcome = decide_outcome(result.yes_percentage, self.threshold)
        if outcome is None:
            return result

        result.outcome = outcome
        result.state = ProposalState.ACCEPTED if outcome else ProposalState.REJECTED
        result.decided_at = int(time.time()) if now is None else now
        logger.info(f"Consensus REACHED for {format_proposal_id(proposal_id)[:18]}...: "
                    f"{result.state.value.upper()} ({result.yes_percentage}% yes weight, "
                    f"threshold={self.threshold}%)")

        if self._on_consensus_reached:
            try:
                self._on_consensus_reached(result)
            except Exception as e:
                logger.error(f"Consensus callback error: {e}")

        return result

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_votes(self, proposal_id: ProposalId) -> List[ProposalVote]:
        return list(self._votes.get(normalize_proposal_id(proposal_id), []))

    def get_result(self, proposal_id: ProposalId) -> Optional[ConsensusResult]:
        """Stored decision state (None if nobody voted yet)."""
        return self._results.get(normalize_proposal_id(proposal_id))

    def is_decided(self, proposal_id: ProposalId) -> bool:
        result = self.get_result(proposal_id)
        return result.is_decided if result else False

    def tally(self, proposal_id: ProposalId) -> ConsensusResult:
        """
        Live tally for reporting.

        Counts every recorded vote (late ones included) against the current
        total_staked. Decision fields come from the stored result.
        """
        pid = normalize_proposal_id(proposal_id)
        stored = self._results.get(pid)
        live = self._tally(pid, ConsensusResult(proposal_id=pid))
        if stored is not None and stored.is_decided:
            live.state = stored.state
            live.outcome = stored.outcome
            live.decided_at = stored.decided_at
        return live

    def set_consensus_callback(self, callback: Callable[[ConsensusResult], None]):
        """
        Set callback for when a proposal is decided.

        The callback receives the ConsensusResult, once per proposal.
        """
        self._on_consensus_reached = callback

    def get_stats(self) -> dict:
        results = list(self._results.values())
        return {
            "proposals": len(results),
            "proposals_open": sum(1 for r in results if r.state == ProposalState.OPEN),
            "proposals_accepted": sum(1 for r in results if r.state == ProposalState.ACCEPTED),
            "proposals_rejected": sum(1 for r in results if r.state == ProposalState.REJECTED),
            "votes": sum(len(v) for v in self._votes.values()),
            "consensus_threshold": self.threshold,
            "quorum_percent": self.quorum_percent,
        }
