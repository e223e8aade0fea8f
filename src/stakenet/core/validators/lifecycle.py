"""
Validator Lifecycle

Join/leave operations that keep the Stake Registry and the Subnet Manager in
step. Every operation runs all of its checks first, then mutates, then (for
leave) pays out through the ledger as the very last step.

STATE MACHINE (per validator record):
=====================================
    NonValidator --join--> Active --leave--> Inactive

Inactive is terminal for that record. An address keeps a single record:
joining again overwrites it with a fresh one (new stake, new subnet, new
join time, delegated amount back to 0). Delegations recorded against the old
membership are dropped from the validator and from total_staked at that
point; delegator aggregates are not touched.

LEAVING:
========
Only the validator's own stake is released and paid back. Delegations made
to a validator that left stay recorded against it; they still count toward
total_staked and can still be withdrawn by delegators.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from stakenet.core.economics.constants import is_valid_stake_amount
from stakenet.core.errors import AlreadyValidator, InvalidAmount, NotAValidator
from stakenet.core.ledger import BalanceLedger
from stakenet.core.staking.registry import StakeRegistry
from stakenet.core.subnets.manager import SubnetManager

logger = logging.getLogger(__name__)


@dataclass
class Validator:
    """
    A validator record.

    delegated_amount is not stored here: the Stake Registry owns that number.
    Use ValidatorLifecycle.get_validator_info() for a full projection.
    """
    address: str
    staked_amount: int
    subnet_id: int
    is_active: bool = True
    joined_at: int = field(default_factory=lambda: int(time.time()))
    left_at: Optional[int] = None

    @property
    def state(self) -> str:
        return "active" if self.is_active else "inactive"


class ValidatorLifecycle:
    """
    Owns validator records and the validator roster.

    Usage:
        lifecycle = ValidatorLifecycle(registry, subnets, ledger)

        subnet_id = lifecycle.found_subnet("alice", 10, "Alpha", 1, min_stake=1)
        lifecycle.join("bob", 20, subnet_id, min_stake=1)
        lifecycle.leave("alice")
    """

    def __init__(self, registry: StakeRegistry, subnets: SubnetManager, ledger: BalanceLedger):
        self.registry = registry
        self.subnets = subnets
        self.ledger = ledger

        self._validators: Dict[str, Validator] = {}
        # Every address that ever joined, in first-join order
        self._roster: List[str] = []

        self.registry.set_validator_lookup(self.get_validator)

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def get_validator(self, address: str) -> Optional[Validator]:
        return self._validators.get(address)

    def is_active_validator(self, address: str) -> bool:
        v = self._validators.get(address)
        return v.is_active if v else False

    def roster(self) -> List[str]:
        return list(self._roster)

    def active_validators(self) -> List[Validator]:
        return [self._validators[a] for a in self._roster if self._validators[a].is_active]

    def active_count(self) -> int:
        return len(self.active_validators())

    def total_active_stake(self) -> int:
        return sum(v.staked_amount for v in self.active_validators())

    def get_validator_info(self, address: str) -> Optional[dict]:
        v = self._validators.get(address)
        if v is None:
            return None
        return {
            "address": v.address,
            "staked_amount": v.staked_amount,
            "delegated_amount": self.registry.delegated_to(address),
            "vote_weight": self.registry.compute_vote_weight(address),
            "is_active": v.is_active,
            "state": v.state,
            "joined_at": v.joined_at,
            "left_at": v.left_at,
            "subnet_id": v.subnet_id,
        }

    # =========================================================================
    # JOIN
    # =========================================================================

    def check_candidate(self, account: str, stake_amount: int, min_stake: int):
        """Raise unless ``account`` may become a validator with ``stake_amount``."""
        ok, reason = is_valid_stake_amount(stake_amount, min_stake)
        if not ok:
            raise InvalidAmount(reason, {"account": account, "amount": stake_amount,
                                         "min_stake": min_stake})
        if self.is_active_validator(account):
            raise AlreadyValidator(f"{account[:16]}... is already an active validator",
                                   {"account": account,
                                    "subnet_id": self._validators[account].subnet_id})

    def join(self, account: str, stake_amount: int, subnet_id: int,
             min_stake: int, now: int = None) -> Validator:
        """
        Stake ``stake_amount`` and join ``subnet_id`` as an active validator.

        Checks (no mutation on failure):
        1. stake_amount >= min_stake
        2. account is not an active validator
        3. subnet exists and is active
        4. ledger balance covers the stake
        """
        self.check_candidate(account, stake_amount, min_stake)
        self.subnets.check_join(subnet_id)

        self.ledger.debit(account, stake_amount)
        return self._admit(account, stake_amount, subnet_id, now)

    def found_subnet(self, account: str, stake_amount: int, name: str,
                     min_validators: int, min_stake: int, now: int = None) -> int:
        """
        Create a subnet and make ``account`` its first validator.

        The founding join takes the new subnet from 0 to 1 validators
        regardless of min_validators. Returns the new subnet id.
        """
        self.subnets.validate_subnet_params(name, min_validators)
        self.check_candidate(account, stake_amount, min_stake)

        self.ledger.debit(account, stake_amount)
        subnet_id = self.subnets.create_subnet(name, min_validators, account, now)
        self._admit(account, stake_amount, subnet_id, now)
        return subnet_id

    def _admit(self, account: str, stake_amount: int, subnet_id: int, now: int = None) -> Validator:
        previous = self._validators.get(account)
        if previous is not None:
            dropped = self.registry.reset_delegated(account)
            logger.info(f"Validator record for {account[:16]}... overwritten "
                        f"(previous subnet={previous.subnet_id}, dropped delegations={dropped})")
        else:
            self._roster.append(account)

        validator = Validator(
            address=account,
            staked_amount=stake_amount,
            subnet_id=subnet_id,
            is_active=True,
            joined_at=int(time.time()) if now is None else now,
        )
        self._validators[account] = validator

        count = self.subnets.register_validator_join(subnet_id)
        self.registry.record_stake(account, stake_amount)

        logger.info(f"Validator joined: {account[:16]}... subnet={subnet_id} "
                    f"(stake={stake_amount}, subnet_validators={count}, "
                    f"total_staked={self.registry.total_staked})")
        return validator

    # =========================================================================
    # LEAVE
    # =========================================================================

    def leave(self, account: str, now: int = None, pay_out: bool = True) -> int:
        """
        Leave the validator set and receive the own stake back.

        Fails with NotAValidator or BelowMinimumValidators before any change.
        The ledger credit is the last step; with pay_out=False the caller
        makes it. Returns the released amount.
        """
        validator = self._validators.get(account)
        if validator is None or not validator.is_active:
            raise NotAValidator(f"{account[:16]}... is not an active validator",
                                {"account": account})
        self.subnets.check_leave(validator.subnet_id)

        validator.is_active = False
        validator.left_at = int(time.time()) if now is None else now
        count = self.subnets.register_validator_leave(validator.subnet_id)
        released = self.registry.release_stake(account)

        logger.info(f"Validator left: {account[:16]}... subnet={validator.subnet_id} "
                    f"(released={released}, subnet_validators={count}, "
                    f"delegations_kept={self.registry.delegated_to(account)})")

        if released and pay_out:
            self.ledger.credit(account, released)
        return released
