"""
Tests for NetworkConfig and logging setup.
"""
import logging

import pytest

from stakenet.config import NetworkConfig
from stakenet.core.errors import InvalidParameter
from stakenet.logging_setup import clear_log_buffer, get_recent_logs, setup_logging


class TestNetworkConfig:

    def test_defaults(self):
        config = NetworkConfig()
        assert config.min_stake_amount == 1
        assert config.consensus_threshold == 67
        assert config.quorum_percent == 51
        assert config.accept_votes_after_decision is True

    @pytest.mark.parametrize("kwargs", [
        {"owner": ""},
        {"min_stake_amount": 0},
        {"consensus_threshold": 50},
        {"consensus_threshold": 101},
        {"quorum_percent": 0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(InvalidParameter):
            NetworkConfig(**kwargs)

    def test_from_mapping_ignores_unknown_keys(self):
        config = NetworkConfig.from_mapping({"owner": "admin", "colour": "blue"})
        assert config.owner == "admin"

    def test_from_env(self):
        config = NetworkConfig.from_env({
            "STAKENET_OWNER": "admin",
            "STAKENET_MIN_STAKE_AMOUNT": "10",
            "STAKENET_CONSENSUS_THRESHOLD": "80",
            "STAKENET_ACCEPT_VOTES_AFTER_DECISION": "no",
            "STAKENET_LOG_LEVEL": "debug",
            "STAKENET_LOG_FILE": "",
        })
        assert config.owner == "admin"
        assert config.min_stake_amount == 10
        assert config.consensus_threshold == 80
        assert config.accept_votes_after_decision is False
        assert config.log_level == "DEBUG"
        assert config.log_file is None

    @pytest.mark.parametrize("environ", [
        {"STAKENET_MIN_STAKE_AMOUNT": "ten"},
        {"STAKENET_ACCEPT_VOTES_AFTER_DECISION": "maybe"},
        {"STAKENET_CONSENSUS_THRESHOLD": "30"},
    ])
    def test_from_env_invalid(self, environ):
        with pytest.raises(InvalidParameter):
            NetworkConfig.from_env(environ)


class TestLogging:

    def test_memory_buffer(self, restore_logging):
        setup_logging("INFO")
        clear_log_buffer()

        logging.getLogger("stakenet.test").info("Vote recorded for test")
        logging.getLogger("stakenet.test").debug("not buffered")

        logs = get_recent_logs()
        assert [e["message"] for e in logs] == ["Vote recorded for test"]
        assert logs[0]["type"] == "consensus"

        last_id = logs[-1]["id"]
        logging.getLogger("stakenet.test").warning("stake warning")
        newer = get_recent_logs(since_id=last_id)
        assert len(newer) == 1 and newer[0]["type"] == "warning"

    def test_repeated_setup_does_not_stack_handlers(self, restore_logging):
        setup_logging("INFO")
        setup_logging("WARNING")
        root = logging.getLogger()
        assert len(root.handlers) == 2
        assert root.level == logging.WARNING

    def test_log_file(self, tmp_path, restore_logging):
        path = tmp_path / "stakenet.log"
        setup_logging("INFO", log_file=str(path))
        logging.getLogger("stakenet.test").info("to file")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "[STAKENET] to file" in path.read_text()
