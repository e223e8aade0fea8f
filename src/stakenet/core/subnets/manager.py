"""
Subnet Manager

Owns subnet records. Subnet ids are allocated sequentially starting at 1
(0 is the "does not exist" sentinel) and are never reused, even after a
subnet is paused.

VALIDATOR FLOOR:
================
Each subnet has a min_validators floor. Leaving is only allowed while
validator_count > min_validators, so once a subnet has grown to its floor
it can never be drained below it. Joining is never floor-checked: the
creator's founding join takes a brand new subnet from 0 to 1 whatever the
floor is.

Pausing (deactivate) only blocks future joins. Existing validators stay and
counts are untouched.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List

from stakenet.core.economics.constants import FIRST_SUBNET_ID
from stakenet.core.errors import (
    BelowMinimumValidators,
    InactiveSubnet,
    InvalidParameter,
    UnknownSubnet,
)

logger = logging.getLogger(__name__)


@dataclass
class Subnet:
    """A subnet record."""
    subnet_id: int
    name: str
    creator: str
    min_validators: int
    is_active: bool = True
    created_at: int = field(default_factory=lambda: int(time.time()))
    validator_count: int = 0

    def to_dict(self) -> dict:
        return {
            "subnet_id": self.subnet_id,
            "name": self.name,
            "creator": self.creator,
            "is_active": self.is_active,
            "created_at": self.created_at,
            "min_validators": self.min_validators,
            "validator_count": self.validator_count,
        }


class SubnetManager:
    """Allocates subnet ids and enforces validator-count floors."""

    def __init__(self):
        self._subnets: Dict[int, Subnet] = {}
        self._subnet_ids: List[int] = []
        self._next_id = FIRST_SUBNET_ID

    def __len__(self) -> int:
        return len(self._subnets)

    # =========================================================================
    # CREATION
    # =========================================================================

    @staticmethod
    def validate_subnet_params(name: str, min_validators: int):
        if not name or not name.strip():
            raise InvalidParameter("Subnet name must not be empty", {"name": name})
        if min_validators <= 0:
            raise InvalidParameter("min_validators must be positive",
                                   {"min_validators": min_validators})

    def create_subnet(self, name: str, min_validators: int, creator: str,
                      now: int = None) -> int:
        """Store a new active subnet with zero validators and return its id."""
        self.validate_subnet_params(name, min_validators)

        subnet_id = self._next_id
        self._next_id += 1

        self._subnets[subnet_id] = Subnet(
            subnet_id=subnet_id,
            name=name,
            creator=creator,
            min_validators=min_validators,
            created_at=int(time.time()) if now is None else now,
        )
        self._subnet_ids.append(subnet_id)

        logger.info(f"Subnet {subnet_id} created: '{name}' by {creator[:16]}... "
                    f"(min_validators={min_validators})")
        return subnet_id

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def get_subnet(self, subnet_id: int) -> Subnet:
        subnet = self._subnets.get(subnet_id)
        if subnet is None:
            raise UnknownSubnet(f"Subnet {subnet_id} does not exist",
                                {"subnet_id": subnet_id})
        return subnet

    def exists(self, subnet_id: int) -> bool:
        return subnet_id in self._subnets

    def subnet_ids(self) -> List[int]:
        return list(self._subnet_ids)

    # =========================================================================
    # MEMBERSHIP COUNTS
    # =========================================================================

    def check_join(self, subnet_id: int) -> Subnet:
        subnet = self.get_subnet(subnet_id)
        if not subnet.is_active:
            raise InactiveSubnet(f"Subnet {subnet_id} is not active",
                                 {"subnet_id": subnet_id})
        return subnet

    def register_validator_join(self, subnet_id: int) -> int:
        subnet = self.check_join(subnet_id)
        subnet.validator_count += 1
        return subnet.validator_count

    def check_leave(self, subnet_id: int) -> Subnet:
        subnet = self.get_subnet(subnet_id)
        if subnet.validator_count <= subnet.min_validators:
            raise BelowMinimumValidators(
                f"Subnet {subnet_id} has {subnet.validator_count} validators, "
                f"floor is {subnet.min_validators}",
                {
                    "subnet_id": subnet_id,
                    "validator_count": subnet.validator_count,
                    "min_validators": subnet.min_validators,
                },
            )
        return subnet

    def register_validator_leave(self, subnet_id: int) -> int:
        subnet = self.check_leave(subnet_id)
        subnet.validator_count -= 1
        return subnet.validator_count

    # =========================================================================
    # ADMIN
    # =========================================================================

    def deactivate(self, subnet_id: int) -> Subnet:
        subnet = self.get_subnet(subnet_id)
        subnet.is_active = False
        logger.info(f"Subnet {subnet_id} paused ({subnet.validator_count} validators remain)")
        return subnet
