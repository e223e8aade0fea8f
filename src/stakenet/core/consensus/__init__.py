"""
StakeNet Consensus Module

Single-round stake-weighted voting on proposals:

1. **ConsensusEngine**: records votes, freezes weights, decides outcomes
2. **ConsensusResult**: decision state and tally of one proposal

Architecture:
=============
- Only active validators vote
- Weight = own stake + stake delegated to the voter, captured at cast time
- Quorum: 51% of the current total stake must have voted
- Accept at >= threshold% YES weight, reject at <= (100 - threshold)%
- A proposal is decided at most once
"""

from stakenet.core.consensus.engine import (
    ConsensusEngine,
    ConsensusResult,
    ProposalState,
    ProposalVote,
    format_proposal_id,
    normalize_proposal_id,
)

__all__ = [
    "ConsensusEngine",
    "ConsensusResult",
    "ProposalState",
    "ProposalVote",
    "format_proposal_id",
    "normalize_proposal_id",
]
