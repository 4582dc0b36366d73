import os
from collections.abc import Mapping
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .discovery.models import NetworkSelector

load_dotenv()

# Stage -> tag prefix used on subnets ("<StageTag>-App") and the VPC name
STAGE_TAG_NAMES = {
    "dev": "Dev",
    "test": "Test",
    "prod": "Prod",
}

DEFAULT_STAGE = "dev"
DEFAULT_ENV_ID = "dev-lza"
DEFAULT_REGION = "ca-central-1"
DEFAULT_DISCOVERY_TIMEOUT = 60.0

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


class ConfigError(ValueError):
    """Missing or invalid environment configuration."""


class EnvironmentConfig(BaseModel):
    """Pass-through settings consumed by the service and monitoring stacks."""
    account: str
    region: str
    stage_tag_name: str
    notification_emails: list[str] = Field(default_factory=list)
    allowed_origins: list[str] = Field(default_factory=list)


class Settings(BaseModel):
    stage: str
    env_id: str
    env_config: EnvironmentConfig
    selector: NetworkSelector
    discovery_timeout: Optional[float] = None

    @property
    def stack_prefix(self) -> str:
        return f"matomo-{self.env_id}"


def _split_list(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build the run settings from MATOMO_* environment variables.

    Raises:
        ConfigError: account missing, unknown stage, or bad timeout.
    """
    env = os.environ if environ is None else environ

    stage = env.get("MATOMO_STAGE") or DEFAULT_STAGE
    env_id = env.get("MATOMO_ENV_ID") or DEFAULT_ENV_ID
    account = env.get("MATOMO_AWS_ACCOUNT")
    region = env.get("MATOMO_AWS_REGION") or DEFAULT_REGION

    if not account:
        raise ConfigError(
            "AWS account must be provided via the MATOMO_AWS_ACCOUNT environment variable"
        )

    stage_tag_name = STAGE_TAG_NAMES.get(stage)
    if not stage_tag_name:
        raise ConfigError(f"Invalid stage: {stage}")

    raw_timeout = env.get("MATOMO_DISCOVERY_TIMEOUT")
    try:
        timeout = float(raw_timeout) if raw_timeout else DEFAULT_DISCOVERY_TIMEOUT
    except ValueError:
        raise ConfigError(f"Invalid MATOMO_DISCOVERY_TIMEOUT: {raw_timeout}") from None

    vpc_id = env.get("MATOMO_VPC_ID")
    if vpc_id:
        selector = NetworkSelector(vpc_id=vpc_id)
    else:
        vpc_name = env.get("MATOMO_VPC_NAME") or f"{stage_tag_name}_vpc"
        selector = NetworkSelector(tags={"Name": vpc_name})

    return Settings(
        stage=stage,
        env_id=env_id,
        env_config=EnvironmentConfig(
            account=account,
            region=region,
            stage_tag_name=stage_tag_name,
            notification_emails=_split_list(env.get("MATOMO_NOTIFICATION_EMAILS")),
            allowed_origins=_split_list(env.get("MATOMO_ALLOWED_ORIGINS")),
        ),
        selector=selector,
        discovery_timeout=timeout if timeout > 0 else None,
    )
