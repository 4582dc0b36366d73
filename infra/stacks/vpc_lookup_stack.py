from __future__ import annotations

from typing import Optional

from aws_cdk import (
    Stack,
    aws_ec2 as ec2,
    CfnOutput,
)
from constructs import Construct

from matomo.config import EnvironmentConfig
from matomo.discovery import ControlPlane, NetworkSelector, ResolvedTopology, resolve


class VpcLookupStack(Stack):
    """Existing VPC plus its App/Web/Data subnets and security groups.

    Nothing is created here: the VPC, subnets and security groups are
    discovered before the stack exists (see ``create``) and exposed to the
    database and service stacks.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        topology: ResolvedTopology,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.topology = topology
        self.vpc = ec2.Vpc.from_lookup(self, "Vpc", vpc_id=topology.vpc_id)

        self.app_subnet_ids = list(topology.app_subnet_ids)
        self.web_subnet_ids = list(topology.web_subnet_ids)
        self.data_subnet_ids = list(topology.data_subnet_ids)
        self.app_security_group_id = topology.app_security_group_id
        self.web_security_group_id = topology.web_security_group_id
        self.data_security_group_id = topology.data_security_group_id

        # --- Outputs ---
        CfnOutput(self, "VpcId", value=topology.vpc_id)
        CfnOutput(self, "AppSubnets", value=",".join(self.app_subnet_ids))
        CfnOutput(self, "WebSubnets", value=",".join(self.web_subnet_ids))
        CfnOutput(self, "DataSubnets", value=",".join(self.data_subnet_ids))
        CfnOutput(self, "AppSecurityGroupId", value=self.app_security_group_id)
        CfnOutput(self, "WebSecurityGroupId", value=self.web_security_group_id)
        CfnOutput(self, "DataSecurityGroupId", value=self.data_security_group_id)

    @classmethod
    async def create(
        cls,
        scope: Construct,
        construct_id: str,
        env_config: EnvironmentConfig,
        selector: NetworkSelector,
        control_plane: Optional[ControlPlane] = None,
        timeout: Optional[float] = None,
        **kwargs,
    ) -> VpcLookupStack:
        """Discover the topology, then declare the stack.

        Discovery errors propagate before any construct is added to ``scope``.
        """
        topology = await resolve(
            selector,
            region=env_config.region,
            account=env_config.account,
            control_plane=control_plane,
            timeout=timeout,
        )
        return cls(scope, construct_id, topology=topology, **kwargs)
