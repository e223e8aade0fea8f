"""
StakeNet Staking & Consensus Parameters - Centralized Configuration

This module defines ALL protocol constants for the StakeNet network.
All values are documented and should be referenced from here, not hardcoded
elsewhere. Runtime overrides (owner updates, environment) start from these
defaults, see stakenet.config.NetworkConfig.

=============================================================================
DESIGN PRINCIPLES
=============================================================================

1. INTEGER ARITHMETIC: Amounts are indivisible base units (int). Percentages
   are whole numbers and every ratio is computed with floor division, so a
   tally evaluates identically on every node.

2. STAKE IS WEIGHT: Vote weight is own stake + stake delegated to the voter.
   It is captured at cast time and never recomputed.

3. FLOORS PROTECT SUBNETS: A subnet can never be drained below its
   min_validators floor by leaves.

=============================================================================
"""

# =============================================================================
# STAKING
# =============================================================================

# Minimum payment to create or join a subnet (owner may change it at runtime)
MIN_STAKE_AMOUNT = 1                # 1 base unit

# =============================================================================
# CONSENSUS
# =============================================================================

# Share of the weight tallied on a proposal that must vote YES to accept it.
# A proposal is rejected once YES share <= 100 - threshold; anything in
# between stays undecided (threshold 80 leaves 21-79% undecided).
DEFAULT_CONSENSUS_THRESHOLD = 67    # 67% yes-weight to accept

# Owner updates must satisfy MIN < threshold <= MAX
MIN_CONSENSUS_THRESHOLD = 50        # Exclusive: a simple majority is not enough
MAX_CONSENSUS_THRESHOLD = 100       # Inclusive: unanimity

# Quorum: weight voted must reach this share of the CURRENT global stake
QUORUM_PERCENT = 51                 # 51% of total_staked

# By default a decided proposal still records late votes (the decision itself
# never changes). Set False to reject them with ProposalAlreadyDecided.
ACCEPT_VOTES_AFTER_DECISION = True

# =============================================================================
# IDENTIFIERS
# =============================================================================

PROPOSAL_ID_BYTES = 32              # Fixed-size proposal identifier
FIRST_SUBNET_ID = 1                 # Subnet id 0 is never allocated


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def is_valid_stake_amount(amount: int, min_stake: int = MIN_STAKE_AMOUNT) -> tuple:
    """
    Validate a stake payment against the network minimum.

    Returns: (is_valid, error_message)
    """
    if amount <= 0:
        return False, "Stake must be positive"
    if amount < min_stake:
        return False, f"Minimum stake is {min_stake}"
    return True, ""


def is_valid_consensus_threshold(threshold: int) -> tuple:
    """
    Validate a consensus threshold (percent).

    Returns: (is_valid, error_message)
    """
    if not MIN_CONSENSUS_THRESHOLD < threshold <= MAX_CONSENSUS_THRESHOLD:
        return False, (f"Threshold must be > {MIN_CONSENSUS_THRESHOLD} "
                       f"and <= {MAX_CONSENSUS_THRESHOLD}")
    return True, ""


def quorum_reached(total_vote_weight: int, total_staked: int,
                   quorum_percent: int = QUORUM_PERCENT) -> bool:
    """
    Check whether the weight voted on a proposal reaches quorum.

    Formula: total_vote_weight * 100 >= total_staked * quorum_percent

    Examples:
        >>> quorum_reached(51, 100)
        True
        >>> quorum_reached(50, 100)
        False
    """
    return total_vote_weight * 100 >= total_staked * quorum_percent


def yes_percentage(yes_weight: int, total_vote_weight: int) -> int:
    """
    Whole-number share of YES weight, truncated toward zero.

    Examples:
        >>> yes_percentage(60, 100)
        60
        >>> yes_percentage(2, 3)
        66
    """
    if total_vote_weight <= 0:
        return 0
    return yes_weight * 100 // total_vote_weight


def decide_outcome(yes_pct: int, threshold: int):
    """
    Map a YES percentage to an outcome.

    Returns True (accepted), False (rejected) or None (dead zone, undecided).
    """
    if yes_pct >= threshold:
        return True
    if yes_pct <= 100 - threshold:
        return False
    return None
