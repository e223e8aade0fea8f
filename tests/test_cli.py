"""
Tests for scenario replay and the stakenet CLI.
"""
import json

import pytest

from stakenet.cli import main
from stakenet.core.errors import InvalidParameter
from stakenet.scenario import (
    apply_operation,
    build_network,
    proposal_id_from_label,
    replay,
)


SCENARIO = {
    "config": {"owner": "admin", "min_stake_amount": 1, "consensus_threshold": 80},
    "balances": {"X": 100, "Y": 100, "carol": 50},
    "clock": 1700000000,
    "operations": [
        {"op": "create_subnet", "caller": "X", "name": "S", "min_validators": 1, "value": 60},
        {"op": "join_subnet", "caller": "Y", "subnet_id": 1, "value": 40},
        {"op": "cast_consensus_vote", "caller": "Y", "proposal": "upgrade-1", "vote": True},
        {"op": "cast_consensus_vote", "caller": "X", "proposal": "upgrade-1", "vote": True},
        {"op": "delegate_stake", "caller": "carol", "validator": "Y", "value": 5},
    ],
}


@pytest.fixture
def scenario_file(tmp_path):
    def write(data=SCENARIO):
        path = tmp_path / "scenario.json"
        path.write_text(json.dumps(data))
        return str(path)
    return write


def with_ops(*extra):
    data = dict(SCENARIO)
    data["operations"] = SCENARIO["operations"] + list(extra)
    return data


class TestReplay:

    def test_full_replay(self):
        report = replay(SCENARIO)

        assert report.ok
        assert report.applied == 5
        assert report.results[0] == 1
        assert report.network.total_staked == 105
        tally = report.network.get_proposal_tally(proposal_id_from_label("upgrade-1"))
        assert tally["state"] == "accepted"

    def test_step_clock(self):
        report = replay(SCENARIO)
        stamps = [e.timestamp for e in report.network.get_events()]
        assert stamps[0] == 1700000000
        assert stamps[-1] == 1700000004

    def test_stops_at_first_failure(self):
        bad = {"op": "leave_validator_set", "caller": "nobody"}
        report = replay(with_ops(bad, {"op": "leave_validator_set", "caller": "Y"}))

        assert not report.ok
        assert report.applied == 5
        assert report.failures[0].index == 5
        assert report.network.get_validator_info("Y")["is_active"] is True

    def test_keep_going(self):
        bad = {"op": "leave_validator_set", "caller": "nobody"}
        report = replay(with_ops(bad, {"op": "leave_validator_set", "caller": "Y"}),
                        keep_going=True)

        assert report.applied == 6
        assert len(report.failures) == 1
        assert report.network.get_validator_info("Y")["is_active"] is False

    @pytest.mark.parametrize("op", [
        "create_subnet",
        {"op": "join_subnet", "caller": "Z", "subnet_id": 1, "value": "10"},
        {"op": "teleport", "caller": "X"},
        {"op": "join_subnet", "subnet_id": 1, "value": 1},
        {"op": "join_subnet", "caller": "Z", "value": 1},
        {"op": "cast_consensus_vote", "caller": "X", "vote": True},
    ])
    def test_malformed_operations(self, op):
        network = build_network(SCENARIO)
        with pytest.raises(InvalidParameter):
            apply_operation(network, op)


class TestCommands:

    def test_replay_summary(self, scenario_file, capsys, restore_logging):
        assert main(["replay", scenario_file()]) == 0
        out = capsys.readouterr().out
        assert "Total staked:       105" in out
        assert "SUBNETS" in out and "VALIDATORS" in out

    def test_replay_json(self, scenario_file, capsys, restore_logging):
        assert main(["replay", scenario_file(), "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["applied"] == 5
        assert data["stats"]["total_staked"] == 105
        assert data["events"][0]["name"] == "SubnetCreated"

    def test_replay_failure_exit_code(self, scenario_file, capsys, restore_logging):
        path = scenario_file(with_ops({"op": "leave_validator_set", "caller": "carol"}))
        assert main(["replay", path]) == 1
        assert "leave_validator_set" in capsys.readouterr().out

    def test_results_by_label(self, scenario_file, capsys, restore_logging):
        assert main(["results", scenario_file(), "upgrade-1"]) == 0
        out = capsys.readouterr().out
        assert "VOTING RESULTS" in out
        assert "ACCEPTED" in out

    def test_audit(self, scenario_file, capsys, restore_logging):
        assert main(["audit", scenario_file()]) == 0
        assert "Invariants hold" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys, restore_logging):
        assert main(["replay", str(tmp_path / "nope.json")]) == 1
        assert "Cannot read scenario" in capsys.readouterr().out

    def test_bad_config_in_scenario(self, scenario_file, capsys, restore_logging):
        data = dict(SCENARIO, config={"consensus_threshold": 40})
        assert main(["replay", scenario_file(data)]) == 1
        assert "Failed" in capsys.readouterr().out

    @pytest.mark.parametrize("data", [
        dict(SCENARIO, balances={"X": "lots"}),
        dict(SCENARIO, balances=["X", 100]),
        dict(SCENARIO, clock="noon"),
        dict(SCENARIO, config={"consensus_threshold": "80"}),
        dict(SCENARIO, operations=["create_subnet"]),
        [SCENARIO],
    ])
    def test_malformed_scenario(self, data, scenario_file, capsys, restore_logging):
        assert main(["replay", scenario_file(data)]) == 1
        assert "Failed" in capsys.readouterr().out

    def test_params(self, monkeypatch, capsys, restore_logging):
        monkeypatch.setenv("STAKENET_OWNER", "admin")
        monkeypatch.setenv("STAKENET_CONSENSUS_THRESHOLD", "90")
        assert main(["params"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["owner"] == "admin"
        assert data["consensus_threshold"] == 90

    def test_no_command(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()
