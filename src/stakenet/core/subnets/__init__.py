from stakenet.core.subnets.manager import Subnet, SubnetManager

__all__ = ["Subnet", "SubnetManager"]
