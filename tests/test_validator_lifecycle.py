"""
Tests for ValidatorLifecycle: join, found, leave and rejoin.
"""
import pytest

from stakenet.core.errors import (
    AlreadyValidator,
    BelowMinimumValidators,
    InactiveSubnet,
    InsufficientBalance,
    InvalidAmount,
    InvalidParameter,
    NotAValidator,
    UnknownSubnet,
)
from stakenet.core.ledger import InMemoryLedger
from stakenet.core.staking.registry import StakeRegistry
from stakenet.core.subnets.manager import SubnetManager
from stakenet.core.validators.lifecycle import ValidatorLifecycle


@pytest.fixture
def parts():
    ledger = InMemoryLedger({"alice": 100, "bob": 100, "carol": 100})
    registry = StakeRegistry(ledger=ledger)
    subnets = SubnetManager()
    lifecycle = ValidatorLifecycle(registry, subnets, ledger)
    return lifecycle, registry, subnets, ledger


class TestFoundSubnet:

    def test_founder_becomes_first_validator(self, parts):
        lifecycle, registry, subnets, ledger = parts

        subnet_id = lifecycle.found_subnet("alice", 10, "Alpha", 3, min_stake=1, now=5)

        assert subnet_id == 1
        # Founding join ignores the floor
        assert subnets.get_subnet(1).validator_count == 1
        v = lifecycle.get_validator("alice")
        assert v.is_active and v.subnet_id == 1 and v.joined_at == 5
        assert registry.total_staked == 10
        assert ledger.balance_of("alice") == 90

    def test_bad_params_leave_no_trace(self, parts):
        lifecycle, registry, subnets, ledger = parts
        with pytest.raises(InvalidParameter):
            lifecycle.found_subnet("alice", 10, "", 1, min_stake=1)

        assert len(subnets) == 0
        assert ledger.balance_of("alice") == 100
        assert lifecycle.roster() == []

    def test_unaffordable_founding_allocates_no_id(self, parts):
        lifecycle, _, subnets, _ = parts
        with pytest.raises(InsufficientBalance):
            lifecycle.found_subnet("alice", 500, "Alpha", 1, min_stake=1)

        assert len(subnets) == 0
        assert lifecycle.found_subnet("alice", 5, "Alpha", 1, min_stake=1) == 1


class TestJoin:

    def test_join_existing_subnet(self, parts):
        lifecycle, registry, subnets, _ = parts
        lifecycle.found_subnet("alice", 10, "Alpha", 1, min_stake=1)

        lifecycle.join("bob", 20, 1, min_stake=1)

        assert subnets.get_subnet(1).validator_count == 2
        assert registry.total_staked == 30
        assert lifecycle.active_count() == 2
        assert lifecycle.roster() == ["alice", "bob"]

    def test_below_min_stake(self, parts):
        lifecycle, _, _, _ = parts
        lifecycle.found_subnet("alice", 10, "Alpha", 1, min_stake=1)
        with pytest.raises(InvalidAmount):
            lifecycle.join("bob", 4, 1, min_stake=5)

    def test_already_active(self, parts):
        lifecycle, _, _, ledger = parts
        lifecycle.found_subnet("alice", 10, "Alpha", 1, min_stake=1)
        with pytest.raises(AlreadyValidator):
            lifecycle.join("alice", 10, 1, min_stake=1)
        assert ledger.balance_of("alice") == 90

    def test_unknown_and_paused_subnets(self, parts):
        lifecycle, _, subnets, ledger = parts
        with pytest.raises(UnknownSubnet):
            lifecycle.join("bob", 10, 1, min_stake=1)

        lifecycle.found_subnet("alice", 10, "Alpha", 1, min_stake=1)
        subnets.deactivate(1)
        with pytest.raises(InactiveSubnet):
            lifecycle.join("bob", 10, 1, min_stake=1)
        assert ledger.balance_of("bob") == 100

    def test_info_projection(self, parts):
        lifecycle, registry, _, _ = parts
        lifecycle.found_subnet("alice", 10, "Alpha", 1, min_stake=1)
        registry.add_delegation("carol", "alice", 5)

        info = lifecycle.get_validator_info("alice")
        assert info["staked_amount"] == 10
        assert info["delegated_amount"] == 5
        assert info["vote_weight"] == 15
        assert info["state"] == "active"
        assert lifecycle.get_validator_info("nobody") is None


class TestLeave:

    def test_leave_pays_back_own_stake(self, parts):
        lifecycle, registry, subnets, ledger = parts
        lifecycle.found_subnet("alice", 10, "Alpha", 1, min_stake=1)
        lifecycle.join("bob", 20, 1, min_stake=1)

        assert lifecycle.leave("alice", now=9) == 10

        v = lifecycle.get_validator("alice")
        assert not v.is_active and v.left_at == 9
        assert subnets.get_subnet(1).validator_count == 1
        assert registry.total_staked == 20
        assert ledger.balance_of("alice") == 100

    def test_last_validator_cannot_leave(self, parts):
        lifecycle, registry, _, ledger = parts
        lifecycle.found_subnet("alice", 10, "Alpha", 1, min_stake=1)

        with pytest.raises(BelowMinimumValidators):
            lifecycle.leave("alice")

        assert lifecycle.is_active_validator("alice")
        assert registry.total_staked == 10
        assert ledger.balance_of("alice") == 90

    def test_non_validator(self, parts):
        lifecycle, _, _, _ = parts
        with pytest.raises(NotAValidator):
            lifecycle.leave("bob")

    def test_leave_twice(self, parts):
        lifecycle, _, _, _ = parts
        lifecycle.found_subnet("alice", 10, "Alpha", 1, min_stake=1)
        lifecycle.join("bob", 20, 1, min_stake=1)
        lifecycle.leave("bob")
        with pytest.raises(NotAValidator):
            lifecycle.leave("bob")

    def test_delegations_survive_leave(self, parts):
        lifecycle, registry, _, _ = parts
        lifecycle.found_subnet("alice", 10, "Alpha", 1, min_stake=1)
        lifecycle.join("bob", 20, 1, min_stake=1)
        registry.add_delegation("carol", "bob", 5)

        lifecycle.leave("bob")

        assert registry.delegated_to("bob") == 5
        assert registry.total_staked == 15
        registry.remove_delegation("carol", "bob", 5)
        assert registry.total_staked == 10

    def test_leave_without_payout(self, parts):
        lifecycle, registry, _, ledger = parts
        lifecycle.found_subnet("alice", 10, "Alpha", 1, min_stake=1)
        lifecycle.join("bob", 20, 1, min_stake=1)

        assert lifecycle.leave("bob", pay_out=False) == 20

        assert registry.total_staked == 10
        assert ledger.balance_of("bob") == 80
        assert ledger.escrow_balance == 30


class TestRejoin:

    def test_rejoin_overwrites_record(self, parts):
        lifecycle, registry, subnets, _ = parts
        lifecycle.found_subnet("alice", 10, "Alpha", 1, min_stake=1)
        lifecycle.join("bob", 20, 1, min_stake=1)
        lifecycle.found_subnet("carol", 10, "Beta", 1, min_stake=1)
        registry.add_delegation("carol", "bob", 5)
        lifecycle.leave("bob")

        lifecycle.join("bob", 7, 2, min_stake=1, now=42)

        v = lifecycle.get_validator("bob")
        assert v.subnet_id == 2 and v.staked_amount == 7 and v.joined_at == 42
        assert v.left_at is None
        assert registry.delegated_to("bob") == 0
        assert registry.total_staked == 10 + 10 + 7
        assert lifecycle.roster() == ["alice", "bob", "carol"]
        assert subnets.get_subnet(2).validator_count == 2
