"""
Scenario replay.

A scenario is a JSON document describing a network and a sequence of
operations to apply to it:

    {
      "config":   {"owner": "admin", "min_stake_amount": 1, "consensus_threshold": 80},
      "balances": {"alice": 100, "bob": 100},
      "clock":    1700000000,
      "operations": [
        {"op": "create_subnet", "caller": "alice", "name": "Alpha",
         "min_validators": 1, "value": 10},
        {"op": "join_subnet", "caller": "bob", "subnet_id": 1, "value": 20},
        {"op": "cast_consensus_vote", "caller": "bob", "proposal": "upgrade-1",
         "vote": true}
      ]
    }

Proposals are given either as "proposal_id" (64 hex digits) or as a
human-readable "proposal" label, which is hashed with SHA-256 into a 32-byte id.
"clock" (optional) starts a deterministic clock that advances one second per
operation.
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from stakenet.config import NetworkConfig
from stakenet.core.errors import InvalidParameter, StakeNetError
from stakenet.core.ledger import InMemoryLedger
from stakenet.core.network import StakeNetwork

logger = logging.getLogger(__name__)


def proposal_id_from_label(label: str) -> str:
    """Deterministic 32-byte proposal id for a label, as 0x-prefixed hex."""
    return "0x" + hashlib.sha256(label.encode()).hexdigest()


def resolve_proposal_id(op: Dict[str, Any]) -> str:
    if op.get("proposal_id"):
        return op["proposal_id"]
    if op.get("proposal"):
        return proposal_id_from_label(op["proposal"])
    raise InvalidParameter("Operation needs 'proposal_id' or 'proposal'", {"op": op.get("op")})


class _StepClock:
    """Starts at ``start`` and advances one second per tick()."""

    def __init__(self, start: int):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def tick(self):
        self.now += 1


# op name -> (network method, argument names after caller)
OPERATIONS = {
    "create_subnet": ("create_subnet", ("name", "min_validators", "value")),
    "join_subnet": ("join_subnet", ("subnet_id", "value")),
    "delegate_stake": ("delegate_stake", ("validator", "value")),
    "withdraw_delegation": ("withdraw_delegation", ("validator", "amount")),
    "leave_validator_set": ("leave_validator_set", ()),
    "cast_consensus_vote": ("cast_consensus_vote", ("proposal_id", "vote")),
    "update_consensus_threshold": ("update_consensus_threshold", ("threshold",)),
    "update_min_stake_amount": ("update_min_stake_amount", ("amount",)),
    "pause_subnet": ("pause_subnet", ("subnet_id",)),
}

INTEGER_ARGS = {"min_validators", "value", "subnet_id", "amount", "threshold"}


@dataclass
class OperationFailure:
    index: int
    op: Dict[str, Any]
    error: StakeNetError

    def to_dict(self) -> dict:
        return {"index": self.index, "op": self.op, "error": self.error.to_dict()}


@dataclass
class ReplayReport:
    network: StakeNetwork
    applied: int = 0
    results: List[Any] = field(default_factory=list)
    failures: List[OperationFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def check_scenario(scenario: Any, source: str = "scenario"):
    """Raise InvalidParameter unless ``scenario`` has the expected shape."""
    if not isinstance(scenario, dict) or not isinstance(scenario.get("operations", []), list):
        raise InvalidParameter(f"{source}: scenario must be an object with an 'operations' list")
    for index, op in enumerate(scenario.get("operations", [])):
        if not isinstance(op, dict):
            raise InvalidParameter(f"{source}: operation #{index} must be an object",
                                   {"index": index})
    for key in ("config", "balances"):
        if not isinstance(scenario.get(key, {}), dict):
            raise InvalidParameter(f"{source}: '{key}' must be an object")


def load_scenario(path: str) -> dict:
    with open(path) as f:
        scenario = json.load(f)
    check_scenario(scenario, path)
    return scenario


def build_network(scenario: dict, config: Optional[NetworkConfig] = None) -> StakeNetwork:
    """Fresh network with the scenario's config, balances and clock."""
    check_scenario(scenario)
    try:
        if config is None:
            config = NetworkConfig.from_mapping(scenario.get("config", {}))
        ledger = InMemoryLedger({k: int(v) for k, v in scenario.get("balances", {}).items()})
        clock = _StepClock(int(scenario["clock"])) if scenario.get("clock") is not None else None
    except (TypeError, ValueError) as e:
        raise InvalidParameter(f"Malformed scenario: {e}")

    if clock is not None:
        return StakeNetwork(ledger=ledger, config=config, clock=clock)
    return StakeNetwork(ledger=ledger, config=config)


def apply_operation(network: StakeNetwork, op: Dict[str, Any]) -> Any:
    """Apply one scenario operation and return the network method's result."""
    if not isinstance(op, dict):
        raise InvalidParameter("Operation must be an object",
                               {"type": type(op).__name__})
    name = op.get("op")
    if name not in OPERATIONS:
        raise InvalidParameter(f"Unknown operation: {name}",
                               {"known": sorted(OPERATIONS)})
    if not op.get("caller"):
        raise InvalidParameter(f"Operation {name} needs a 'caller'")

    method_name, arg_names = OPERATIONS[name]
    args = []
    for arg in arg_names:
        if arg == "proposal_id":
            args.append(resolve_proposal_id(op))
        elif arg not in op:
            raise InvalidParameter(f"Operation {name} is missing '{arg}'")
        elif arg in INTEGER_ARGS and (not isinstance(op[arg], int) or isinstance(op[arg], bool)):
            raise InvalidParameter(f"Operation {name}: '{arg}' must be an integer",
                                   {arg: op[arg]})
        else:
            args.append(op[arg])

    return getattr(network, method_name)(op["caller"], *args)


def replay(scenario: dict, keep_going: bool = False,
           config: Optional[NetworkConfig] = None) -> ReplayReport:
    """
    Apply every operation of ``scenario`` to a fresh network.

    Stops at the first failure unless ``keep_going``; a failed operation
    leaves the network unchanged either way.
    """
    network = build_network(scenario, config)
    report = ReplayReport(network=network)

    for index, op in enumerate(scenario.get("operations", [])):
        try:
            report.results.append(apply_operation(network, op))
            report.applied += 1
        except StakeNetError as e:
            logger.warning(f"Operation #{index} ({op.get('op')}) failed: {e}")
            report.failures.append(OperationFailure(index=index, op=op, error=e))
            if not keep_going:
                break
        finally:
            if isinstance(network.clock, _StepClock):
                network.clock.tick()

    return report
