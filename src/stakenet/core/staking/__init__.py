from stakenet.core.staking.registry import StakeRegistry

__all__ = ["StakeRegistry"]
