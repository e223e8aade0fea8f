"""
StakeNet protocol parameters.

See constants.py for the documented values.
"""

from stakenet.core.economics.constants import (
    MIN_STAKE_AMOUNT,
    DEFAULT_CONSENSUS_THRESHOLD,
    MIN_CONSENSUS_THRESHOLD,
    MAX_CONSENSUS_THRESHOLD,
    QUORUM_PERCENT,
    ACCEPT_VOTES_AFTER_DECISION,
    PROPOSAL_ID_BYTES,
    FIRST_SUBNET_ID,
    is_valid_stake_amount,
    is_valid_consensus_threshold,
    quorum_reached,
    yes_percentage,
    decide_outcome,
)

__all__ = [
    "MIN_STAKE_AMOUNT",
    "DEFAULT_CONSENSUS_THRESHOLD",
    "MIN_CONSENSUS_THRESHOLD",
    "MAX_CONSENSUS_THRESHOLD",
    "QUORUM_PERCENT",
    "ACCEPT_VOTES_AFTER_DECISION",
    "PROPOSAL_ID_BYTES",
    "FIRST_SUBNET_ID",
    "is_valid_stake_amount",
    "is_valid_consensus_threshold",
    "quorum_reached",
    "yes_percentage",
    "decide_outcome",
]
