"""
Shared pytest fixtures for test suite.

Provides:
- Deterministic clock
- Funded in-memory ledger
- Network factory (owner, min stake, threshold overrides)
- Ready-made two-validator network (weights 60 / 40)
"""

import logging
import os
import sys
from typing import Dict

import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from stakenet.config import NetworkConfig
from stakenet.core.ledger import InMemoryLedger
from stakenet.core.network import StakeNetwork


OWNER = "owner"
START_TIME = 1_700_000_000

PROPOSAL_A = "0x" + "aa" * 32
PROPOSAL_B = "0x" + "bb" * 32

FUNDED_ACCOUNTS: Dict[str, int] = {
    "alice": 1_000,
    "bob": 1_000,
    "carol": 1_000,
    "dave": 1_000,
    "X": 100,
    "Y": 100,
    "Z": 100,
    "V": 100,
}


# =============================================================================
# CLOCK
# =============================================================================

class FakeClock:
    """Manually advanced unix-seconds clock."""

    def __init__(self, start: int = START_TIME):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: int = 1):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# =============================================================================
# LEDGER & NETWORK
# =============================================================================

@pytest.fixture
def ledger():
    return InMemoryLedger(FUNDED_ACCOUNTS)


@pytest.fixture
def make_network(ledger, clock):
    """Factory: make_network(consensus_threshold=80, ...) -> StakeNetwork."""

    def create_network(**overrides) -> StakeNetwork:
        overrides.setdefault("owner", OWNER)
        overrides.setdefault("min_stake_amount", 1)
        return StakeNetwork(ledger=ledger, config=NetworkConfig(**overrides), clock=clock)

    return create_network


@pytest.fixture
def network(make_network):
    return make_network()


@pytest.fixture
def weighted_network(make_network):
    """
    Threshold 80, two validators on subnet 1:
    X with weight 60 (founder), Y with weight 40. total_staked = 100.
    """
    net = make_network(consensus_threshold=80)
    net.create_subnet("X", "S", min_validators=1, value=60)
    net.join_subnet("Y", 1, value=40)
    return net


@pytest.fixture
def restore_logging():
    """Put root logger handlers back after a test reconfigured logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
