"""
Discovery errors.

None of these are recovered locally: any of them aborts the provisioning run
before a single stack is declared.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import NetworkSelector, Role


class DiscoveryError(Exception):
    """Base class for every discovery failure."""


class NetworkNotFound(DiscoveryError):
    """The selector matched zero or several VPCs."""

    def __init__(self, selector: NetworkSelector, match_count: int) -> None:
        self.selector = selector
        self.match_count = match_count
        if match_count == 0:
            detail = "no VPC matches"
        else:
            detail = f"{match_count} VPCs match, expected exactly one"
        super().__init__(f"{detail} selector {selector.describe()}")


class IncompleteTopology(DiscoveryError):
    """A role has no subnet, or zero or several security groups."""

    def __init__(self, role: Role, reason: str) -> None:
        self.role = role
        self.reason = reason
        super().__init__(f"role {role.name.lower()} ({role.value}): {reason}")


class DiscoveryCallFailed(DiscoveryError):
    """An EC2 call raised. The message is the cause's message, unchanged."""

    def __init__(self, cause: BaseException, operation: Optional[str] = None) -> None:
        self.cause = cause
        self.operation = operation
        super().__init__(str(cause) or type(cause).__name__)


class DiscoveryCancelled(asyncio.CancelledError):
    """The caller was cancelled before discovery completed."""

    def __init__(self, selector: NetworkSelector) -> None:
        self.selector = selector
        super().__init__(f"discovery cancelled for selector {selector.describe()}")
