from .classifier import build_topology, classify_security_group, classify_subnet
from .control_plane import ControlPlane, Ec2ControlPlane
from .errors import (
    DiscoveryCallFailed,
    DiscoveryCancelled,
    DiscoveryError,
    IncompleteTopology,
    NetworkNotFound,
)
from .models import (
    NetworkHandle,
    NetworkSelector,
    ResolvedTopology,
    Role,
    SecurityGroupRecord,
    SubnetRecord,
)
from .resolver import NetworkDiscovery, resolve

__all__ = [
    "ControlPlane",
    "DiscoveryCallFailed",
    "DiscoveryCancelled",
    "DiscoveryError",
    "Ec2ControlPlane",
    "IncompleteTopology",
    "NetworkDiscovery",
    "NetworkHandle",
    "NetworkNotFound",
    "NetworkSelector",
    "ResolvedTopology",
    "Role",
    "SecurityGroupRecord",
    "SubnetRecord",
    "build_topology",
    "classify_security_group",
    "classify_subnet",
    "resolve",
]
