"""
Discovery models: immutable records read from EC2 and the resolved topology.

The resolved topology is the only thing downstream stacks see: a VPC handle,
one non-empty subnet id list per role and one security group id per role.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Role(str, Enum):
    """Functional tier. The value is the subnet tag suffix and the group name."""
    APPLICATION = "App"
    WEB = "Web"
    DATA = "Data"


def _tag_value(tags: Optional[list[dict]], key: str) -> Optional[str]:
    for tag in tags or []:
        if tag.get("Key") == key:
            return tag.get("Value")
    return None


class NetworkSelector(BaseModel):
    """Identifies exactly one existing VPC, by id or by tags."""

    model_config = ConfigDict(frozen=True)

    vpc_id: Optional[str] = None
    tags: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _one_criterion(self) -> "NetworkSelector":
        if bool(self.vpc_id) == bool(self.tags):
            raise ValueError("NetworkSelector needs either vpc_id or tags, not both")
        return self

    def describe(self) -> str:
        if self.vpc_id:
            return f"vpc-id={self.vpc_id}"
        return ",".join(f"tag:{k}={v}" for k, v in sorted(self.tags.items()))


class NetworkHandle(BaseModel):
    model_config = ConfigDict(frozen=True)

    vpc_id: str
    region: str
    account: str
    cidr_block: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_api(cls, vpc: dict[str, Any], region: str, account: str) -> "NetworkHandle":
        return cls(
            vpc_id=vpc["VpcId"],
            region=region,
            account=vpc.get("OwnerId") or account,
            cidr_block=vpc.get("CidrBlock"),
            name=_tag_value(vpc.get("Tags"), "Name"),
        )


class SubnetRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    subnet_id: str
    vpc_id: str
    name: Optional[str] = None
    availability_zone: Optional[str] = None

    @classmethod
    def from_api(cls, subnet: dict[str, Any], tag_key: str = "Name") -> "SubnetRecord":
        return cls(
            subnet_id=subnet["SubnetId"],
            vpc_id=subnet["VpcId"],
            name=_tag_value(subnet.get("Tags"), tag_key),
            availability_zone=subnet.get("AvailabilityZone"),
        )


class SecurityGroupRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    group_id: str
    group_name: str
    vpc_id: str

    @classmethod
    def from_api(cls, group: dict[str, Any]) -> "SecurityGroupRecord":
        return cls(
            group_id=group["GroupId"],
            group_name=group.get("GroupName", ""),
            vpc_id=group["VpcId"],
        )


class ResolvedTopology(BaseModel):
    """Validated output of discovery. Never partially populated."""

    model_config = ConfigDict(frozen=True)

    network: NetworkHandle
    app_subnet_ids: tuple[str, ...]
    web_subnet_ids: tuple[str, ...]
    data_subnet_ids: tuple[str, ...]
    app_security_group_id: str
    web_security_group_id: str
    data_security_group_id: str

    @field_validator("app_subnet_ids", "web_subnet_ids", "data_subnet_ids")
    @classmethod
    def _non_empty(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("subnet id list must not be empty")
        return value

    @property
    def vpc_id(self) -> str:
        return self.network.vpc_id

    def subnet_ids(self, role: Role) -> tuple[str, ...]:
        return {
            Role.APPLICATION: self.app_subnet_ids,
            Role.WEB: self.web_subnet_ids,
            Role.DATA: self.data_subnet_ids,
        }[role]

    def security_group_id(self, role: Role) -> str:
        return {
            Role.APPLICATION: self.app_security_group_id,
            Role.WEB: self.web_security_group_id,
            Role.DATA: self.data_security_group_id,
        }[role]

    def role_map(self) -> dict[Role, tuple[frozenset[str], str]]:
        """Role -> (subnet id set, group id). Ignores subnet ordering."""
        return {
            role: (frozenset(self.subnet_ids(role)), self.security_group_id(role))
            for role in Role
        }
