"""Shared fixtures: an in-memory EC2 control plane and the default scenario."""

from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from matomo.config import EnvironmentConfig
from matomo.discovery import (
    NetworkHandle,
    NetworkSelector,
    SecurityGroupRecord,
    SubnetRecord,
)

ACCOUNT = "123456789012"
REGION = "us-west-2"
VPC_ID = "vpc-12345"


def subnet(subnet_id: str, name: Optional[str], vpc_id: str = VPC_ID) -> SubnetRecord:
    return SubnetRecord(subnet_id=subnet_id, vpc_id=vpc_id, name=name)


def group(group_id: str, name: str, vpc_id: str = VPC_ID) -> SecurityGroupRecord:
    return SecurityGroupRecord(group_id=group_id, group_name=name, vpc_id=vpc_id)


def network(vpc_id: str = VPC_ID) -> NetworkHandle:
    return NetworkHandle(vpc_id=vpc_id, region=REGION, account=ACCOUNT)


class FakeControlPlane:
    """In-memory ``ControlPlane``.

    ``failures`` maps an operation name to the exception it raises;
    ``blocking`` holds operations that wait until cancelled.
    """

    def __init__(
        self,
        networks: Optional[list[NetworkHandle]] = None,
        subnets: Optional[list[SubnetRecord]] = None,
        security_groups: Optional[list[SecurityGroupRecord]] = None,
        failures: Optional[dict[str, BaseException]] = None,
        blocking: frozenset = frozenset(),
    ) -> None:
        self.networks = [network()] if networks is None else networks
        self.subnets = subnets or []
        self.security_groups = security_groups or []
        self.failures = failures or {}
        self.blocking = blocking
        self.calls: list[str] = []
        self.cancelled: list[str] = []
        self.started = asyncio.Event()

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.failures:
            raise self.failures[operation]
        if operation in self.blocking:
            self.started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled.append(operation)
                raise

    async def describe_networks(self, selector, account):
        await self._enter("describe_networks")
        return list(self.networks)

    async def list_subnets(self, vpc_id):
        await self._enter("list_subnets")
        return [s for s in self.subnets if s.vpc_id == vpc_id]

    async def list_security_groups(self, vpc_id):
        await self._enter("list_security_groups")
        return [g for g in self.security_groups if g.vpc_id == vpc_id]


def standard_subnets() -> list[SubnetRecord]:
    return [
        subnet("subnet-12345", "Test-App"),
        subnet("subnet-67890", "Test-Web"),
        subnet("subnet-abcde", "Test-Data"),
    ]


def standard_groups() -> list[SecurityGroupRecord]:
    return [
        group("sg-12345", "App"),
        group("sg-67890", "Web"),
        group("sg-abcde", "Data"),
    ]


@pytest.fixture
def selector() -> NetworkSelector:
    return NetworkSelector(vpc_id=VPC_ID)


@pytest.fixture
def control_plane() -> FakeControlPlane:
    return FakeControlPlane(
        subnets=standard_subnets(),
        security_groups=standard_groups(),
    )


@pytest.fixture
def env_config() -> EnvironmentConfig:
    return EnvironmentConfig(
        account=ACCOUNT,
        region=REGION,
        stage_tag_name="Test",
        notification_emails=["test@example.com"],
        allowed_origins=["https://example.com"],
    )
