import ipaddress
import math
import string

from pmstack.errors import ConfigurationError
from pmstack.models import Network, Subnet, SubnetKind


def zone_names(region: str, zone_count: int) -> list[str]:
    """us-east-1 -> us-east-1a, us-east-1b, ..."""
    if zone_count > len(string.ascii_lowercase):
        raise ConfigurationError(f"Too many availability zones: {zone_count}")
    return [f"{region}{letter}" for letter in string.ascii_lowercase[:zone_count]]


def create_network(
    logical_id: str,
    name: str,
    zone_count: int = 2,
    cidr: str = "10.0.0.0/16",
    region: str = "us-east-1",
) -> Network:
    """Create a network with one public and one private subnet per zone.

    The network CIDR is split into equal blocks, public subnets first.
    """
    if zone_count < 1:
        raise ConfigurationError(
            f"availability zone count must be >= 1, got {zone_count}",
            logical_id=logical_id,
        )

    try:
        block = ipaddress.ip_network(cidr)
    except ValueError as e:
        raise ConfigurationError(f"Invalid network CIDR {cidr!r}: {e}", logical_id=logical_id) from e

    subnet_count = zone_count * 2
    new_prefix = block.prefixlen + math.ceil(math.log2(subnet_count))
    if new_prefix > block.max_prefixlen:
        raise ConfigurationError(
            f"CIDR {cidr} is too small for {subnet_count} subnets",
            logical_id=logical_id,
        )
    blocks = list(block.subnets(new_prefix=new_prefix))[:subnet_count]
    zones = zone_names(region, zone_count)

    subnets = []
    for i, kind in enumerate((SubnetKind.PUBLIC, SubnetKind.PRIVATE)):
        for z, zone in enumerate(zones):
            subnets.append(
                Subnet(
                    subnet_id=f"{logical_id}-{kind.value}-{z + 1}",
                    zone=zone,
                    cidr=str(blocks[i * zone_count + z]),
                    kind=kind,
                )
            )

    return Network(
        logical_id=logical_id,
        name=name,
        cidr=str(block),
        region=region,
        zone_count=zone_count,
        subnets=tuple(subnets),
    )
