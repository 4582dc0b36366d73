"""
EC2 control plane: read-only access to VPCs, subnets and security groups.

``ControlPlane`` is the interface the resolver talks to; ``Ec2ControlPlane``
implements it with aioboto3. Every listing uses ``Filters`` rather than ids,
so an unknown VPC yields an empty page instead of an ``InvalidVpcID`` error.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, runtime_checkable

import aioboto3

from .models import NetworkHandle, NetworkSelector, SecurityGroupRecord, SubnetRecord

_logger = logging.getLogger("discovery.ec2")


@runtime_checkable
class ControlPlane(Protocol):
    """Read API consumed by discovery."""

    async def describe_networks(
        self, selector: NetworkSelector, account: str
    ) -> list[NetworkHandle]: ...

    async def list_subnets(self, vpc_id: str) -> list[SubnetRecord]: ...

    async def list_security_groups(self, vpc_id: str) -> list[SecurityGroupRecord]: ...


class Ec2ControlPlane:
    """aioboto3 implementation of ``ControlPlane`` for a single region."""

    def __init__(
        self,
        region: str,
        session: Optional[aioboto3.Session] = None,
        subnet_tag_key: str = "Name",
    ) -> None:
        self._region = region
        self._session = session
        self._subnet_tag_key = subnet_tag_key

    def _get_session(self) -> aioboto3.Session:
        if self._session is None:
            self._session = aioboto3.Session(region_name=self._region)
        return self._session

    async def _paginate(self, operation: str, result_key: str, **kwargs) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        async with self._get_session().client("ec2", region_name=self._region) as ec2:
            paginator = ec2.get_paginator(operation)
            async for page in paginator.paginate(**kwargs):
                items.extend(page.get(result_key, []))
        _logger.debug("%s returned %d item(s)", operation, len(items))
        return items

    async def describe_networks(
        self, selector: NetworkSelector, account: str
    ) -> list[NetworkHandle]:
        filters = [{"Name": "owner-id", "Values": [account]}]
        if selector.vpc_id:
            filters.append({"Name": "vpc-id", "Values": [selector.vpc_id]})
        for key, value in selector.tags.items():
            filters.append({"Name": f"tag:{key}", "Values": [value]})

        vpcs = await self._paginate("describe_vpcs", "Vpcs", Filters=filters)
        return [NetworkHandle.from_api(vpc, self._region, account) for vpc in vpcs]

    async def list_subnets(self, vpc_id: str) -> list[SubnetRecord]:
        subnets = await self._paginate(
            "describe_subnets",
            "Subnets",
            Filters=[{"Name": "vpc-id", "Values": [vpc_id]}],
        )
        return [SubnetRecord.from_api(s, self._subnet_tag_key) for s in subnets]

    async def list_security_groups(self, vpc_id: str) -> list[SecurityGroupRecord]:
        groups = await self._paginate(
            "describe_security_groups",
            "SecurityGroups",
            Filters=[{"Name": "vpc-id", "Values": [vpc_id]}],
        )
        return [SecurityGroupRecord.from_api(g) for g in groups]
