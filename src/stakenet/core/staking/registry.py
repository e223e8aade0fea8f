"""
Stake Registry

The arithmetic substrate of the network. Owns every stake number:

- own stake per account (what a validator paid in when joining)
- delegated amount per validator (sum of everyone's delegations to it)
- aggregate delegation per delegator (summed across all validators they
  delegated to; there is no per-(delegator, validator) breakdown)
- total_staked = sum of active own stake + sum of per-validator delegations

ORDERING RULE:
==============
Every operation that pays currency back out (remove_delegation) finishes all
bookkeeping BEFORE calling ledger.credit(). The credit is the last statement,
so a receiver that calls back into the registry sees final state.

Vote weight = own stake + delegated amount. Delegations made to a validator
that later left keep counting until withdrawn.
"""

import logging
from typing import Any, Callable, Dict, Optional

from stakenet.core.errors import (
    InactiveValidator,
    InsufficientDelegation,
    InvalidAmount,
    UnknownValidator,
)
from stakenet.core.ledger import BalanceLedger

logger = logging.getLogger(__name__)


class StakeRegistry:
    """
    Tracks own stake, delegations and the global stake total.

    Usage:
        registry = StakeRegistry(ledger=ledger)
        registry.set_validator_lookup(lifecycle.get_validator)

        registry.record_stake("alice", 10)
        registry.add_delegation("bob", "alice", 5)
        registry.compute_vote_weight("alice")   # 15
    """

    def __init__(
        self,
        ledger: BalanceLedger,
        validator_lookup: Optional[Callable[[str], Any]] = None,
    ):
        """
        Args:
            ledger: BalanceLedger used to collect delegation payments and
                    pay out withdrawals
            validator_lookup: address -> Validator record (or None); read-only
        """
        self.ledger = ledger
        self._validator_lookup = validator_lookup

        self._stakes: Dict[str, int] = {}
        self._delegated: Dict[str, int] = {}
        self._delegations: Dict[str, int] = {}
        self._total_staked = 0

    def set_validator_lookup(self, lookup: Callable[[str], Any]):
        self._validator_lookup = lookup

    # =========================================================================
    # READS
    # =========================================================================

    @property
    def total_staked(self) -> int:
        return self._total_staked

    def stake_of(self, account: str) -> int:
        return self._stakes.get(account, 0)

    def delegated_to(self, validator: str) -> int:
        return self._delegated.get(validator, 0)

    def delegation_of(self, delegator: str) -> int:
        return self._delegations.get(delegator, 0)

    def total_delegated(self) -> int:
        return sum(self._delegated.values())

    def compute_vote_weight(self, account: str) -> int:
        """Own stake plus everything delegated to ``account``. Pure read."""
        return self.stake_of(account) + self.delegated_to(account)

    # =========================================================================
    # OWN STAKE
    # =========================================================================

    def record_stake(self, account: str, amount: int) -> int:
        """
        Add ``amount`` to the account's own stake and to the global total.

        Returns the account's new own stake.
        """
        if amount <= 0:
            raise InvalidAmount("Stake amount must be positive",
                                {"account": account, "amount": amount})

        self._stakes[account] = self.stake_of(account) + amount
        self._total_staked += amount

        logger.debug(f"Stake recorded: {account[:16]}... +{amount} "
                     f"(own={self._stakes[account]}, total={self._total_staked})")
        return self._stakes[account]

    def release_stake(self, account: str) -> int:
        """
        Zero the account's own stake and remove it from the global total.

        Returns the released amount. Delegations to the account are untouched.
        """
        amount = self._stakes.pop(account, 0)
        self._total_staked -= amount

        logger.debug(f"Stake released: {account[:16]}... -{amount} "
                     f"(total={self._total_staked})")
        return amount

    def reset_delegated(self, validator: str) -> int:
        """
        Drop everything recorded as delegated to ``validator``.

        Used when a validator record is overwritten on rejoin. Delegator
        aggregates are left as they are. Returns the dropped amount.
        """
        amount = self._delegated.pop(validator, 0)
        self._total_staked -= amount
        if amount:
            logger.warning(f"Delegations reset for {validator[:16]}...: {amount} "
                           f"no longer attributed to any validator")
        return amount

    # =========================================================================
    # DELEGATION
    # =========================================================================

    def check_delegation_target(self, validator: str):
        """Raise unless ``validator`` is a known, active validator."""
        record = self._validator_lookup(validator) if self._validator_lookup else None
        if record is None:
            raise UnknownValidator(f"Validator {validator[:16]}... does not exist",
                                   {"validator": validator})
        if not record.is_active:
            raise InactiveValidator(f"Validator {validator[:16]}... is not active",
                                    {"validator": validator})

    def add_delegation(self, delegator: str, validator: str, amount: int) -> int:
        """
        Delegate ``amount`` from ``delegator`` to an active ``validator``.

        The payment is collected through the ledger before any bookkeeping,
        so an unaffordable delegation changes nothing.

        Returns the validator's new delegated amount.
        """
        if amount <= 0:
            raise InvalidAmount("Delegation amount must be positive",
                                {"delegator": delegator, "amount": amount})
        self.check_delegation_target(validator)

        self.ledger.debit(delegator, amount)

        self._delegations[delegator] = self.delegation_of(delegator) + amount
        self._delegated[validator] = self.delegated_to(validator) + amount
        self._total_staked += amount

        logger.info(f"Delegation: {delegator[:16]}... -> {validator[:16]}... "
                    f"+{amount} (delegated={self._delegated[validator]}, "
                    f"total={self._total_staked})")
        return self._delegated[validator]

    def check_withdrawal(self, delegator: str, validator: str, amount: int):
        """Raise unless ``amount`` can be withdrawn; no mutation."""
        if amount <= 0:
            raise InvalidAmount("Withdrawal amount must be positive",
                                {"delegator": delegator, "amount": amount})

        context = {
            "delegator": delegator,
            "validator": validator,
            "amount": amount,
            "delegator_total": self.delegation_of(delegator),
            "validator_delegated": self.delegated_to(validator),
        }
        if self.delegation_of(delegator) < amount:
            raise InsufficientDelegation(
                f"Delegator {delegator[:16]}... has only "
                f"{self.delegation_of(delegator)} delegated", context)
        if self.delegated_to(validator) < amount:
            raise InsufficientDelegation(
                f"Validator {validator[:16]}... holds only "
                f"{self.delegated_to(validator)} in delegations", context)

    def remove_delegation(self, delegator: str, validator: str, amount: int,
                          pay_out: bool = True) -> int:
        """
        Withdraw ``amount`` of delegation and pay it back to the delegator.

        Works against inactive validators. The ledger credit is the final
        step, after all three counters have been decremented; with
        pay_out=False the caller makes it.

        Returns the validator's remaining delegated amount.
        """
        self.check_withdrawal(delegator, validator, amount)

        self._delegations[delegator] -= amount
        self._delegated[validator] -= amount
        self._total_staked -= amount
        remaining = self._delegated[validator]

        logger.info(f"Delegation withdrawn: {delegator[:16]}... <- {validator[:16]}... "
                    f"-{amount} (delegated={remaining}, total={self._total_staked})")

        if pay_out:
            self.ledger.credit(delegator, amount)
        return remaining

    def get_stats(self) -> dict:
        return {
            "total_staked": self._total_staked,
            "total_own_stake": sum(self._stakes.values()),
            "total_delegated": self.total_delegated(),
            "delegators": sum(1 for v in self._delegations.values() if v > 0),
        }
