from __future__ import annotations

from typing import Optional

from aws_cdk import (
    Stack,
    RemovalPolicy,
    aws_ec2 as ec2,
    aws_rds as rds,
    CfnOutput,
)
from constructs import Construct


class DatabaseStack(Stack):
    """MySQL instance for Matomo in the data-tier subnets.

    Credentials are generated into Secrets Manager; the service stack reads
    them by secret name.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc: ec2.IVpc,
        data_subnet_ids: list[str],
        data_security_group_id: Optional[str] = None,
        rds_security_group: Optional[ec2.ISecurityGroup] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        if not data_subnet_ids:
            raise ValueError("No data subnets provided")

        data_subnets = [
            ec2.Subnet.from_subnet_id(self, f"DataSubnet-{subnet_id}", subnet_id)
            for subnet_id in data_subnet_ids
        ]

        if rds_security_group is None:
            if not data_security_group_id:
                raise ValueError("No data security group provided")
            rds_security_group = ec2.SecurityGroup.from_security_group_id(
                self,
                "ExistingDataSecurityGroup",
                data_security_group_id,
                mutable=False,
            )

        # --- RDS MySQL ---
        self.db_instance = rds.DatabaseInstance(
            self,
            "MatomoDatabase",
            engine=rds.DatabaseInstanceEngine.mysql(
                version=rds.MysqlEngineVersion.of("8.4.4", "8.4"),
            ),
            instance_type=ec2.InstanceType.of(
                ec2.InstanceClass.BURSTABLE3, ec2.InstanceSize.SMALL
            ),
            vpc=vpc,
            vpc_subnets=ec2.SubnetSelection(subnets=data_subnets),
            security_groups=[rds_security_group],
            credentials=rds.Credentials.from_generated_secret("matomo"),
            database_name="matomo",
            allocated_storage=20,
            storage_encrypted=True,
            deletion_protection=False,
            removal_policy=RemovalPolicy.SNAPSHOT,
        )
        self.db_secret = self.db_instance.secret

        # --- Outputs ---
        CfnOutput(
            self,
            "DbEndpoint",
            value=self.db_instance.db_instance_endpoint_address,
        )
        CfnOutput(self, "DbSecretName", value=self.db_secret.secret_name)
