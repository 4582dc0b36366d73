"""
Role classification for subnets and security groups.

Subnets are classified by the suffix of their ``Name`` tag
(``<prefix>-App`` / ``-Web`` / ``-Data``), security groups by their exact
group name (``App`` / ``Web`` / ``Data``). Both comparisons ignore case.
Anything that does not match is ignored: a shared VPC may hold unrelated
subnets and groups.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Optional

from .errors import IncompleteTopology
from .models import (
    NetworkHandle,
    ResolvedTopology,
    Role,
    SecurityGroupRecord,
    SubnetRecord,
)

_ROLES_BY_NAME = {role.value.casefold(): role for role in Role}


def classify_subnet(name: Optional[str]) -> Optional[Role]:
    if not name:
        return None
    prefix, sep, suffix = name.rpartition("-")
    if not sep or not prefix:
        return None
    return _ROLES_BY_NAME.get(suffix.strip().casefold())


def classify_security_group(name: Optional[str]) -> Optional[Role]:
    if not name:
        return None
    return _ROLES_BY_NAME.get(name.strip().casefold())


def build_topology(
    network: NetworkHandle,
    subnets: Iterable[SubnetRecord],
    security_groups: Iterable[SecurityGroupRecord],
) -> ResolvedTopology:
    """Group records by role, validate every role and assemble the topology.

    Subnet ids keep the order the provider returned them in.

    Raises:
        IncompleteTopology: a role has no subnet, no security group, or more
            than one security group.
    """
    subnet_ids: dict[Role, list[str]] = {role: [] for role in Role}
    group_ids: dict[Role, list[str]] = {role: [] for role in Role}

    for subnet in subnets:
        role = classify_subnet(subnet.name)
        if role is not None and subnet.vpc_id == network.vpc_id:
            subnet_ids[role].append(subnet.subnet_id)

    for group in security_groups:
        role = classify_security_group(group.group_name)
        if role is not None and group.vpc_id == network.vpc_id:
            group_ids[role].append(group.group_id)

    for role in Role:
        if not subnet_ids[role]:
            raise IncompleteTopology(
                role, f"no subnet tagged '*-{role.value}' in {network.vpc_id}"
            )
        matches = group_ids[role]
        if not matches:
            raise IncompleteTopology(
                role, f"no security group named '{role.value}' in {network.vpc_id}"
            )
        if len(matches) > 1:
            raise IncompleteTopology(
                role,
                f"ambiguous: {len(matches)} security groups named "
                f"'{role.value}' ({', '.join(matches)})",
            )

    return ResolvedTopology(
        network=network,
        app_subnet_ids=tuple(subnet_ids[Role.APPLICATION]),
        web_subnet_ids=tuple(subnet_ids[Role.WEB]),
        data_subnet_ids=tuple(subnet_ids[Role.DATA]),
        app_security_group_id=group_ids[Role.APPLICATION][0],
        web_security_group_id=group_ids[Role.WEB][0],
        data_security_group_id=group_ids[Role.DATA][0],
    )
