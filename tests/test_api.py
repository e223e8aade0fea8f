"""
Tests for the HTTP API (FastAPI TestClient against an in-process network).
"""
import pytest
from fastapi.testclient import TestClient

from stakenet.api.main import create_app, status_for
from stakenet.core.errors import (
    BelowMinimumValidators,
    DuplicateVote,
    NotAValidator,
    UnknownSubnet,
)

from conftest import OWNER, PROPOSAL_A


@pytest.fixture
def client(network):
    return TestClient(create_app(network=network))


@pytest.fixture
def seeded_client(weighted_network):
    return TestClient(create_app(network=weighted_network))


def as_caller(caller):
    return {"X-Caller": caller}


class TestStatusMapping:

    @pytest.mark.parametrize("error,status", [
        (NotAValidator("x"), 403),
        (UnknownSubnet("x"), 404),
        (DuplicateVote("x"), 409),
        (BelowMinimumValidators("x"), 400),
    ])
    def test_status_for(self, error, status):
        assert status_for(error) == status


class TestSubnetRoutes:

    def test_create_and_read_subnet(self, client):
        response = client.post("/api/network/subnets",
                               json={"name": "S", "min_validators": 1, "value": 10},
                               headers=as_caller("X"))
        assert response.status_code == 200
        assert response.json() == {"subnet_id": 1}

        subnet = client.get("/api/network/subnets/1").json()
        assert subnet["name"] == "S"
        assert subnet["validator_count"] == 1
        assert client.get("/api/network/subnets").json() == [1]

    def test_create_subnet_events(self, client):
        client.post("/api/network/subnets",
                    json={"name": "S", "min_validators": 1, "value": 1},
                    headers=as_caller("X"))

        events = client.get("/api/network/events").json()
        assert [e["name"] for e in events] == ["SubnetCreated", "ValidatorJoined"]
        assert events[0]["data"] == {"subnet_id": 1, "name": "S", "creator": "X",
                                     "min_validators": 1}
        assert client.get("/api/network/balance").json() == {
            "contract_balance": 1, "total_staked": 1}

    def test_caller_header_required(self, client):
        response = client.post("/api/network/subnets",
                               json={"name": "S", "min_validators": 1, "value": 10})
        assert response.status_code == 422

    def test_unknown_subnet_is_404(self, client):
        response = client.post("/api/network/subnets/9/join", json={"value": 5},
                               headers=as_caller("Y"))
        assert response.status_code == 404
        body = response.json()
        assert body["category"] == "UNKNOWN_ENTITY"
        assert body["error"] == "UnknownSubnet"

    def test_join_returns_validator(self, seeded_client):
        response = seeded_client.post("/api/network/subnets/1/join", json={"value": 10},
                                      headers=as_caller("Z"))
        assert response.status_code == 200
        assert response.json()["vote_weight"] == 10
        assert seeded_client.get("/api/network/validators/count").json() == {"count": 3}

    def test_pause_is_owner_only(self, seeded_client):
        response = seeded_client.post("/api/network/subnets/1/pause", headers=as_caller("X"))
        assert response.status_code == 403

        response = seeded_client.post("/api/network/subnets/1/pause", headers=as_caller(OWNER))
        assert response.status_code == 200
        assert response.json()["is_active"] is False


class TestValidatorRoutes:

    def test_unknown_validator(self, client):
        assert client.get("/api/network/validators/nobody").status_code == 404

    def test_leave_and_floor(self, seeded_client):
        response = seeded_client.post("/api/network/validators/leave", headers=as_caller("Y"))
        assert response.json() == {"released": 40}

        response = seeded_client.post("/api/network/validators/leave", headers=as_caller("X"))
        assert response.status_code == 400
        assert response.json()["category"] == "BELOW_MINIMUM_VALIDATORS"

    def test_delegation_round_trip(self, seeded_client):
        response = seeded_client.post("/api/network/delegations",
                                      json={"validator": "Y", "value": 20},
                                      headers=as_caller("alice"))
        assert response.json() == {"validator": "Y", "delegated_amount": 20}

        response = seeded_client.post("/api/network/delegations/withdraw",
                                      json={"validator": "Y", "amount": 25},
                                      headers=as_caller("alice"))
        assert response.status_code == 400
        assert response.json()["category"] == "INSUFFICIENT_DELEGATION"

        balance = seeded_client.get("/api/network/balance").json()
        assert balance == {"contract_balance": 120, "total_staked": 120}


class TestProposalRoutes:

    def test_vote_and_tally(self, seeded_client):
        url = f"/api/network/proposals/{PROPOSAL_A}"

        response = seeded_client.post(url + "/votes", json={"vote": True},
                                      headers=as_caller("Y"))
        assert response.json() == {"proposal_id": PROPOSAL_A, "weight": 40, "state": "open"}

        response = seeded_client.post(url + "/votes", json={"vote": True},
                                      headers=as_caller("X"))
        assert response.json()["state"] == "accepted"

        tally = seeded_client.get(url).json()
        assert tally["yes_percentage"] == 100
        assert tally["outcome"] is True
        assert [v["voter"] for v in seeded_client.get(url + "/votes").json()] == ["Y", "X"]

    def test_duplicate_vote_conflict(self, seeded_client):
        url = f"/api/network/proposals/{PROPOSAL_A}/votes"
        seeded_client.post(url, json={"vote": False}, headers=as_caller("Y"))
        response = seeded_client.post(url, json={"vote": False}, headers=as_caller("Y"))
        assert response.status_code == 409

    def test_outsider_vote_forbidden(self, seeded_client):
        response = seeded_client.post(f"/api/network/proposals/{PROPOSAL_A}/votes",
                                      json={"vote": True}, headers=as_caller("alice"))
        assert response.status_code == 403

    def test_malformed_proposal_id(self, seeded_client):
        response = seeded_client.get("/api/network/proposals/0x1234")
        assert response.status_code == 400
        assert response.json()["category"] == "INVALID_PARAMETER"


class TestParamsAndReporting:

    def test_threshold_update(self, client):
        response = client.put("/api/network/params/consensus-threshold",
                              json={"threshold": 75}, headers=as_caller(OWNER))
        assert response.json() == {"consensus_threshold": 75}

        response = client.put("/api/network/params/consensus-threshold",
                              json={"threshold": 40}, headers=as_caller(OWNER))
        assert response.status_code == 400

    def test_min_stake_update_forbidden(self, client):
        response = client.put("/api/network/params/min-stake",
                              json={"amount": 5}, headers=as_caller("alice"))
        assert response.status_code == 403

    def test_events_filter_and_invariants(self, seeded_client):
        events = seeded_client.get("/api/network/events",
                                   params={"name": "ValidatorJoined"}).json()
        assert [e["data"]["validator"] for e in events] == ["X", "Y"]

        assert seeded_client.get("/api/network/invariants").json() == {
            "ok": True, "problems": []}
        assert seeded_client.get("/api/network/stats").json()["total_staked"] == 100

    def test_health(self, client):
        assert client.get("/api/health").json()["status"] == "ok"
