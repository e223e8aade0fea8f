"""
StakeNet - a simplified proof-of-stake network.

Validators stake into subnets, accept delegations and vote on proposals
through a single-round stake-weighted tally.
"""

from stakenet.version import __version__
from stakenet.config import NetworkConfig
from stakenet.core.network import NetworkEvent, StakeNetwork
from stakenet.core.ledger import BalanceLedger, InMemoryLedger

__all__ = [
    "__version__",
    "NetworkConfig",
    "NetworkEvent",
    "StakeNetwork",
    "BalanceLedger",
    "InMemoryLedger",
]
