"""
Network configuration.

Defaults come from stakenet.core.economics.constants. Deployments override
them through environment variables (a .env file is loaded first):

    STAKENET_OWNER                      owner identity (required for admin ops)
    STAKENET_MIN_STAKE_AMOUNT           minimum stake to create/join a subnet
    STAKENET_CONSENSUS_THRESHOLD        YES percentage to accept (50 < t <= 100)
    STAKENET_QUORUM_PERCENT             share of total stake that must vote
    STAKENET_ACCEPT_VOTES_AFTER_DECISION  "true"/"false"
    STAKENET_LOG_LEVEL                  DEBUG / INFO / WARNING / ERROR
    STAKENET_LOG_FILE                   optional rotating log file
"""

import os
from dataclasses import asdict, dataclass, field
from typing import Mapping, Optional

from dotenv import load_dotenv

from stakenet.core.economics.constants import (
    ACCEPT_VOTES_AFTER_DECISION,
    DEFAULT_CONSENSUS_THRESHOLD,
    MIN_STAKE_AMOUNT,
    QUORUM_PERCENT,
    is_valid_consensus_threshold,
)
from stakenet.core.errors import InvalidParameter

ENV_PREFIX = "STAKENET_"
DEFAULT_OWNER = "owner"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class NetworkConfig:
    owner: str = DEFAULT_OWNER
    min_stake_amount: int = MIN_STAKE_AMOUNT
    consensus_threshold: int = DEFAULT_CONSENSUS_THRESHOLD
    quorum_percent: int = QUORUM_PERCENT
    accept_votes_after_decision: bool = ACCEPT_VOTES_AFTER_DECISION
    log_level: str = "INFO"
    log_file: Optional[str] = field(default=None)

    def __post_init__(self):
        self.validate()

    def validate(self):
        if not self.owner:
            raise InvalidParameter("Owner identity must not be empty")
        if self.min_stake_amount <= 0:
            raise InvalidParameter("min_stake_amount must be positive",
                                   {"min_stake_amount": self.min_stake_amount})
        ok, reason = is_valid_consensus_threshold(self.consensus_threshold)
        if not ok:
            raise InvalidParameter(reason, {"consensus_threshold": self.consensus_threshold})
        if not 0 < self.quorum_percent <= 100:
            raise InvalidParameter("quorum_percent must be in (0, 100]",
                                   {"quorum_percent": self.quorum_percent})

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_mapping(cls, data: Mapping) -> "NetworkConfig":
        """Build from a plain dict (e.g. a scenario file), ignoring unknown keys."""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 dotenv: bool = True) -> "NetworkConfig":
        """
        Build from STAKENET_* environment variables.

        Args:
            environ: mapping to read instead of os.environ (tests)
            dotenv: load a .env file into os.environ first
        """
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        def get(name: str) -> Optional[str]:
            value = environ.get(ENV_PREFIX + name)
            return value if value not in (None, "") else None

        kwargs = {}
        if get("OWNER"):
            kwargs["owner"] = get("OWNER")
        for key, name in (("min_stake_amount", "MIN_STAKE_AMOUNT"),
                          ("consensus_threshold", "CONSENSUS_THRESHOLD"),
                          ("quorum_percent", "QUORUM_PERCENT")):
            raw = get(name)
            if raw is not None:
                try:
                    kwargs[key] = int(raw)
                except ValueError:
                    raise InvalidParameter(f"{ENV_PREFIX}{name} must be an integer",
                                           {name: raw})
        raw = get("ACCEPT_VOTES_AFTER_DECISION")
        if raw is not None:
            if raw.lower() in _TRUE:
                kwargs["accept_votes_after_decision"] = True
            elif raw.lower() in _FALSE:
                kwargs["accept_votes_after_decision"] = False
            else:
                raise InvalidParameter(
                    f"{ENV_PREFIX}ACCEPT_VOTES_AFTER_DECISION must be true/false",
                    {"ACCEPT_VOTES_AFTER_DECISION": raw})
        if get("LOG_LEVEL"):
            kwargs["log_level"] = get("LOG_LEVEL").upper()
        if get("LOG_FILE"):
            kwargs["log_file"] = get("LOG_FILE")

        return cls(**kwargs)
