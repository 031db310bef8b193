"""
Tenant Broker

Opens authenticated sessions against an OpenStack identity endpoint under
configurable transport-security policies and aggregates read accessors
across every tenant a credential can reach.
"""

from .address import SslPolicy, resolve_address
from .connection_options import ConnectionOptions, build_connection_options
from .credentials import validate_password
from .exceptions import (
    ApiRequestError,
    CredentialRejectedError,
    TenantBrokerError,
    is_not_found,
)
from .handle import Handle
from .services import ImageService, TenantAccessEnumerator, TenantAggregator

__all__ = [
    "ApiRequestError",
    "ConnectionOptions",
    "CredentialRejectedError",
    "Handle",
    "ImageService",
    "SslPolicy",
    "TenantAccessEnumerator",
    "TenantAggregator",
    "TenantBrokerError",
    "build_connection_options",
    "is_not_found",
    "resolve_address",
    "validate_password",
]
