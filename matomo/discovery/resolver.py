"""
Network discovery: resolve a VPC and classify its subnets and security groups.

One pass per provisioning run:

    describe VPC ──► list subnets ─────────┐
                 └─► list security groups ─┴─► classify + validate ──► topology

The two listings run concurrently once the VPC is known. Any call failure,
timeout or cancellation aborts the pass; there is no retry and no partial
result.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, Optional, TypeVar

from .classifier import build_topology
from .control_plane import ControlPlane, Ec2ControlPlane
from .errors import DiscoveryCallFailed, DiscoveryCancelled, NetworkNotFound
from .models import NetworkSelector, ResolvedTopology

_logger = logging.getLogger("discovery")

T = TypeVar("T")


async def _gather_fail_fast(*aws: Awaitable[Any]) -> list[Any]:
    """``asyncio.gather`` that cancels the siblings of the first failure."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()


class NetworkDiscovery:
    """Resolves one environment's topology against the EC2 control plane."""

    def __init__(
        self,
        region: str,
        account: str,
        control_plane: Optional[ControlPlane] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._region = region
        self._account = account
        self._control_plane = control_plane or Ec2ControlPlane(region=region)
        self._timeout = timeout

    async def _call(self, operation: str, aw: Awaitable[T]) -> T:
        try:
            return await aw
        except Exception as exc:
            _logger.error("%s failed: %s", operation, exc)
            raise DiscoveryCallFailed(exc, operation=operation) from exc

    async def _discover(self, selector: NetworkSelector) -> ResolvedTopology:
        networks = await self._call(
            "describe_networks",
            self._control_plane.describe_networks(selector, self._account),
        )
        if len(networks) != 1:
            raise NetworkNotFound(selector, len(networks))
        network = networks[0]

        subnets, groups = await _gather_fail_fast(
            self._call("list_subnets", self._control_plane.list_subnets(network.vpc_id)),
            self._call(
                "list_security_groups",
                self._control_plane.list_security_groups(network.vpc_id),
            ),
        )
        _logger.debug(
            "%s: %d subnet(s), %d security group(s)",
            network.vpc_id,
            len(subnets),
            len(groups),
        )
        return build_topology(network, subnets, groups)

    async def resolve(self, selector: NetworkSelector) -> ResolvedTopology:
        """Resolve ``selector`` to a fully validated topology.

        Raises:
            NetworkNotFound: zero or several VPCs match.
            IncompleteTopology: a role is missing or ambiguous.
            DiscoveryCallFailed: an EC2 call failed or the timeout expired.
            DiscoveryCancelled: the caller was cancelled.
        """
        _logger.info(
            "Discovering %s in %s/%s", selector.describe(), self._account, self._region
        )
        try:
            if self._timeout:
                topology = await asyncio.wait_for(self._discover(selector), self._timeout)
            else:
                topology = await self._discover(selector)
        except asyncio.TimeoutError as exc:
            cause = TimeoutError(
                f"discovery of {selector.describe()} did not complete "
                f"within {self._timeout}s"
            )
            raise DiscoveryCallFailed(cause, operation="resolve") from exc
        except DiscoveryCancelled:
            raise
        except asyncio.CancelledError as exc:
            raise DiscoveryCancelled(selector) from exc

        _logger.info(
            "Resolved %s: app=%s web=%s data=%s sg=%s/%s/%s",
            topology.vpc_id,
            list(topology.app_subnet_ids),
            list(topology.web_subnet_ids),
            list(topology.data_subnet_ids),
            topology.app_security_group_id,
            topology.web_security_group_id,
            topology.data_security_group_id,
        )
        return topology


async def resolve(
    selector: NetworkSelector,
    region: str,
    account: str,
    control_plane: Optional[ControlPlane] = None,
    timeout: Optional[float] = None,
) -> ResolvedTopology:
    """Shortcut for ``NetworkDiscovery(...).resolve(selector)``."""
    discovery = NetworkDiscovery(
        region=region,
        account=account,
        control_plane=control_plane,
        timeout=timeout,
    )
    return await discovery.resolve(selector)
