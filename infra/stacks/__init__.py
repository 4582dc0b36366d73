from .vpc_lookup_stack import VpcLookupStack
from .database_stack import DatabaseStack
from .service_stack import ServiceStack
from .waf_stack import WafStack
from .monitoring_stack import MonitoringStack

__all__ = [
    "VpcLookupStack",
    "DatabaseStack",
    "ServiceStack",
    "WafStack",
    "MonitoringStack",
]
