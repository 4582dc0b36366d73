#!/usr/bin/env python3
"""
CDK entry point: discover the environment, then declare every stack.

Discovery runs first and must succeed; any failure ends the run with exit
status 1 before a single stack is added to the app.
"""

import asyncio
import logging
import sys
from typing import Optional

import aws_cdk as cdk

from infra.stacks import (
    DatabaseStack,
    MonitoringStack,
    ServiceStack,
    VpcLookupStack,
    WafStack,
)
from matomo.config import LOG_LEVEL, ConfigError, Settings, load_settings
from matomo.discovery import ControlPlane, DiscoveryCancelled, DiscoveryError

_logger = logging.getLogger("infra.app")


async def synthesize_app(
    settings: Optional[Settings] = None,
    app: Optional[cdk.App] = None,
    control_plane: Optional[ControlPlane] = None,
) -> cdk.App:
    settings = settings or load_settings()
    app = app or cdk.App()
    env_config = settings.env_config
    prefix = settings.stack_prefix

    env = cdk.Environment(
        account=env_config.account,
        region=env_config.region,
    )

    # --- Stacks ---

    vpc_stack = await VpcLookupStack.create(
        app,
        f"{prefix}-vpc",
        env_config=env_config,
        selector=settings.selector,
        control_plane=control_plane,
        timeout=settings.discovery_timeout,
        env=env,
    )

    rds_stack = DatabaseStack(
        app,
        f"{prefix}-rds",
        vpc=vpc_stack.vpc,
        data_subnet_ids=vpc_stack.data_subnet_ids,
        data_security_group_id=vpc_stack.data_security_group_id,
        env=env,
    )

    service_stack = ServiceStack(
        app,
        f"{prefix}-service",
        vpc=vpc_stack.vpc,
        app_subnet_ids=vpc_stack.app_subnet_ids,
        web_subnet_ids=vpc_stack.web_subnet_ids,
        app_security_group_id=vpc_stack.app_security_group_id,
        web_security_group_id=vpc_stack.web_security_group_id,
        rds_endpoint_address=rds_stack.db_instance.db_instance_endpoint_address,
        rds_endpoint_port=rds_stack.db_instance.db_instance_endpoint_port,
        rds_secret_name=rds_stack.db_secret.secret_name,
        env_config=env_config,
        env=env,
    )
    service_stack.add_dependency(rds_stack)

    WafStack(
        app,
        f"{prefix}-waf",
        alb_arn=service_stack.alb_arn,
        env=env,
    )

    MonitoringStack(
        app,
        f"{prefix}-monitoring",
        fargate_service=service_stack.fargate_service,
        target_group=service_stack.target_group,
        env_config=env_config,
        env=env,
    )

    tags = {
        "Environment": settings.env_id,
        "Stage": settings.stage,
        "Project": "Matomo",
        "ManagedBy": "CDK",
    }
    for key, value in tags.items():
        cdk.Tags.of(app).add(key, value)

    return app


def main() -> int:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        app = asyncio.run(synthesize_app())
    except (ConfigError, DiscoveryError, DiscoveryCancelled) as e:
        _logger.error("Error synthesizing CDK app: %s", e)
        return 1
    app.synth()
    return 0


if __name__ == "__main__":
    sys.exit(main())
