"""
StakeNet Network

The single owner of all staking/consensus state and the operation surface
callers use. Every operation takes an explicit caller identity; payable
operations also take the value paid with the call.

    network = StakeNetwork(ledger=InMemoryLedger({"alice": 100}),
                           config=NetworkConfig(owner="admin"))

    subnet_id = network.create_subnet("alice", "Alpha", min_validators=1, value=10)
    network.join_subnet("bob", subnet_id, value=20)
    network.delegate_stake("carol", validator="bob", value=5)
    network.cast_consensus_vote("bob", proposal_id, True)
    network.withdraw_delegation("carol", validator="bob", amount=5)
    network.leave_validator_set("alice")

SERIALIZED EXECUTION:
=====================
One re-entrant lock wraps every public operation, so concurrent callers
(e.g. API worker threads) run one at a time. Each operation checks all of
its preconditions before the first mutation. Payouts through the ledger
are the very last step, after the bookkeeping and the event record. A
receiver that calls back into the network during a payout runs on the same
thread, re-acquires the lock and sees finished state.

EVENTS:
=======
Every state change appends a NetworkEvent to the event log in commit order:
an operation started by a receiver during a payout logs after the operation
that paid. Subscribers are notified after the operation completed; their
failures are logged only.
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from stakenet.config import NetworkConfig
from stakenet.core.consensus.engine import (
    ConsensusEngine,
    ConsensusResult,
    ProposalId,
    format_proposal_id,
)
from stakenet.core.errors import InvalidAmount, Unauthorized
from stakenet.core.ledger import BalanceLedger, InMemoryLedger
from stakenet.core.staking.registry import StakeRegistry
from stakenet.core.subnets.manager import SubnetManager
from stakenet.core.validators.lifecycle import ValidatorLifecycle

logger = logging.getLogger(__name__)


@dataclass
class NetworkEvent:
    """A state change notification."""
    name: str
    data: Dict[str, Any]
    timestamp: int = field(default_factory=lambda: int(time.time()))

    def to_dict(self) -> dict:
        return {"name": self.name, "data": dict(self.data), "timestamp": self.timestamp}


class StakeNetwork:
    """Staking, subnet membership, delegation and proposal voting."""

    def __init__(
        self,
        ledger: Optional[BalanceLedger] = None,
        config: Optional[NetworkConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            ledger: BalanceLedger for payments/payouts (default: empty InMemoryLedger)
            config: NetworkConfig (default: built-in constants)
            clock: returns unix seconds; injectable for tests
        """
        self.config = config or NetworkConfig()
        self.ledger = ledger if ledger is not None else InMemoryLedger()
        self.clock = clock

        self.owner = self.config.owner
        self.min_stake_amount = self.config.min_stake_amount

        self.registry = StakeRegistry(ledger=self.ledger)
        self.subnets = SubnetManager()
        self.validators = ValidatorLifecycle(self.registry, self.subnets, self.ledger)
        self.consensus = ConsensusEngine(
            self.registry,
            self.validators,
            threshold=self.config.consensus_threshold,
            quorum_percent=self.config.quorum_percent,
            accept_votes_after_decision=self.config.accept_votes_after_decision,
        )
        self.consensus.set_consensus_callback(self._on_consensus_reached)

        self._lock = threading.RLock()
        self._events: List[NetworkEvent] = []
        self._pending_events: List[NetworkEvent] = []
        self._decisions: List[ConsensusResult] = []
        self._subscribers: List[Callable[[NetworkEvent], None]] = []

        logger.info(f"StakeNetwork initialized: owner={self.owner[:16]}..., "
                    f"min_stake={self.min_stake_amount}, "
                    f"threshold={self.consensus.threshold}%")

    # =========================================================================
    # EVENTS
    # =========================================================================

    def _now(self) -> int:
        return int(self.clock())

    @contextmanager
    def _operation(self):
        """Serialize one operation; deliver its events once it succeeded."""
        with self._lock:
            yield
            self._flush_events()

    def _emit(self, event_name: str, /, **data):
        event = NetworkEvent(name=event_name, data=data, timestamp=self._now())
        self._events.append(event)
        self._pending_events.append(event)

    def _flush_events(self):
        pending, self._pending_events = self._pending_events, []
        for event in pending:
            for subscriber in list(self._subscribers):
                try:
                    subscriber(event)
                except Exception as e:
                    logger.warning(f"Event subscriber error on {event.name}: {e}")

    def _pay_out(self, account: str, amount: int):
        """Credit ``account`` through the ledger; always the last step of an operation."""
        if amount:
            self.ledger.credit(account, amount)

    def _on_consensus_reached(self, result: ConsensusResult):
        self._decisions.append(result)

    def subscribe(self, callback: Callable[[NetworkEvent], None]):
        """Receive every NetworkEvent after its operation completed."""
        with self._lock:
            self._subscribers.append(callback)

    def get_events(self, name: Optional[str] = None) -> List[NetworkEvent]:
        with self._lock:
            return [e for e in self._events if name is None or e.name == name]

    def _require_owner(self, caller: str):
        if caller != self.owner:
            raise Unauthorized(f"{caller[:16]}... is not the network owner",
                               {"caller": caller})

    # =========================================================================
    # SUBNETS & VALIDATORS
    # =========================================================================

    def create_subnet(self, caller: str, name: str, min_validators: int, value: int) -> int:
        """Create a subnet; the payment becomes the caller's founding stake."""
        with self._operation():
            subnet_id = self.validators.found_subnet(
                caller, value, name, min_validators, self.min_stake_amount, now=self._now())
            self._emit("SubnetCreated", subnet_id=subnet_id, name=name,
                       creator=caller, min_validators=min_validators)
            self._emit("ValidatorJoined", validator=caller, subnet_id=subnet_id,
                       stake=value)
        return subnet_id

    def join_subnet(self, caller: str, subnet_id: int, value: int):
        """Join an active subnet as a validator staking ``value``."""
        with self._operation():
            self.validators.join(caller, value, subnet_id, self.min_stake_amount,
                                 now=self._now())
            self._emit("ValidatorJoined", validator=caller, subnet_id=subnet_id,
                       stake=value)

    def leave_validator_set(self, caller: str) -> int:
        """Leave the validator set; own stake is credited back. Returns it."""
        with self._operation():
            validator = self.validators.get_validator(caller)
            subnet_id = validator.subnet_id if validator else None
            released = self.validators.leave(caller, now=self._now(), pay_out=False)
            self._emit("ValidatorLeft", validator=caller, subnet_id=subnet_id,
                       stake=released)
            self._pay_out(caller, released)
        return released

    # =========================================================================
    # DELEGATION
    # =========================================================================

    def delegate_stake(self, caller: str, validator: str, value: int) -> int:
        """Delegate the whole payment to an active validator."""
        with self._operation():
            delegated = self.registry.add_delegation(caller, validator, value)
            self._emit("StakeDelegated", delegator=caller, validator=validator,
                       amount=value)
        return delegated

    def withdraw_delegation(self, caller: str, validator: str, amount: int) -> int:
        """Withdraw ``amount`` of delegation from ``validator``; credited back."""
        with self._operation():
            remaining = self.registry.remove_delegation(caller, validator, amount,
                                                        pay_out=False)
            self._emit("DelegationWithdrawn", delegator=caller, validator=validator,
                       amount=amount)
            self._pay_out(caller, amount)
        return remaining

    # =========================================================================
    # CONSENSUS
    # =========================================================================

    def cast_consensus_vote(self, caller: str, proposal_id: ProposalId, vote: bool) -> int:
        """Vote on a proposal. Returns the weight frozen into the vote."""
        with self._operation():
            record = self.consensus.cast_vote(proposal_id, caller, vote, now=self._now())
            self._emit("VoteCast", proposal_id=format_proposal_id(record.proposal_id),
                       voter=caller, vote=record.vote, weight=record.weight)

            decisions, self._decisions = self._decisions, []
            for result in decisions:
                self._emit("ConsensusReached",
                           proposal_id=format_proposal_id(result.proposal_id),
                           outcome=result.outcome,
                           yes_percentage=result.yes_percentage,
                           total_vote_weight=result.total_vote_weight)
        return record.weight

    # =========================================================================
    # OWNER
    # =========================================================================

    def update_consensus_threshold(self, caller: str, new_threshold: int):
        with self._operation():
            self._require_owner(caller)
            previous = self.consensus.update_consensus_threshold(new_threshold)
            self._emit("ConsensusThresholdUpdated", previous=previous,
                       threshold=new_threshold)

    def update_min_stake_amount(self, caller: str, new_min: int):
        with self._operation():
            self._require_owner(caller)
            if new_min <= 0:
                raise InvalidAmount("Minimum stake must be positive", {"amount": new_min})
            previous, self.min_stake_amount = self.min_stake_amount, new_min
            logger.info(f"Minimum stake updated: {previous} -> {new_min}")
            self._emit("MinStakeAmountUpdated", previous=previous, amount=new_min)

    def pause_subnet(self, caller: str, subnet_id: int):
        with self._operation():
            self._require_owner(caller)
            self.subnets.deactivate(subnet_id)
            self._emit("SubnetPaused", subnet_id=subnet_id)

    # =========================================================================
    # READ-ONLY PROJECTIONS
    # =========================================================================

    @property
    def total_staked(self) -> int:
        return self.registry.total_staked

    @property
    def consensus_threshold(self) -> int:
        return self.consensus.threshold

    def get_subnet_info(self, subnet_id: int) -> dict:
        with self._lock:
            return self.subnets.get_subnet(subnet_id).to_dict()

    def get_validator_info(self, address: str) -> Optional[dict]:
        with self._lock:
            return self.validators.get_validator_info(address)

    def get_proposal_votes(self, proposal_id: ProposalId) -> List[dict]:
        with self._lock:
            return [v.to_dict() for v in self.consensus.get_votes(proposal_id)]

    def get_proposal_tally(self, proposal_id: ProposalId) -> dict:
        with self._lock:
            return self.consensus.tally(proposal_id).to_dict()

    def get_validator_count(self) -> int:
        """Number of currently active validators."""
        with self._lock:
            return self.validators.active_count()

    def get_all_subnets(self) -> List[int]:
        with self._lock:
            return self.subnets.subnet_ids()

    def contract_balance(self) -> int:
        return self.ledger.escrow_balance

    def compute_vote_weight(self, address: str) -> int:
        with self._lock:
            return self.registry.compute_vote_weight(address)

    def check_invariants(self) -> List[str]:
        """
        Verify global bookkeeping. Returns a list of violations (empty = OK).

        - total_staked == active own stake + per-validator delegations
        - every subnet has validator_count >= 0 and matches its active members
        """
        with self._lock:
            problems = []

            active_stake = self.validators.total_active_stake()
            delegated = self.registry.total_delegated()
            if self.registry.total_staked != active_stake + delegated:
                problems.append(
                    f"total_staked={self.registry.total_staked} != "
                    f"active_stake={active_stake} + delegated={delegated}")

            members: Dict[int, int] = {}
            for v in self.validators.active_validators():
                members[v.subnet_id] = members.get(v.subnet_id, 0) + 1
            for subnet_id in self.subnets.subnet_ids():
                subnet = self.subnets.get_subnet(subnet_id)
                if subnet.validator_count < 0:
                    problems.append(f"subnet {subnet_id} validator_count < 0")
                if subnet.validator_count != members.get(subnet_id, 0):
                    problems.append(
                        f"subnet {subnet_id} validator_count={subnet.validator_count} "
                        f"but {members.get(subnet_id, 0)} active members")

            for problem in problems:
                logger.error(f"Invariant violated: {problem}")
            return problems

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "owner": self.owner,
                "min_stake_amount": self.min_stake_amount,
                "subnets": len(self.subnets),
                "active_subnets": sum(
                    1 for sid in self.subnets.subnet_ids()
                    if self.subnets.get_subnet(sid).is_active),
                "validators_registered": len(self.validators.roster()),
                "validators_active": self.validators.active_count(),
                "contract_balance": self.contract_balance(),
                "events": len(self._events),
                **self.registry.get_stats(),
                **self.consensus.get_stats(),
            }
