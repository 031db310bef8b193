"""
Connection Options Module

Assembles the per-service options handed to the OpenStack client library:
tenant selection, identity API version, region and the SSL sub-options that
follow from the handle's transport-security policy.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from .address import SslPolicy, policy_value

DEFAULT_TENANT = "admin"

# Accepted spellings of the CA material, mapped to the option names.
SSL_EXTRA_KEYS = {
    "ssl_ca_file": "ssl_ca_file",
    "ca_file": "ssl_ca_file",
    "ssl_ca_path": "ssl_ca_path",
    "ca_path": "ssl_ca_path",
    "ssl_cert_store": "ssl_cert_store",
    "cert_store": "ssl_cert_store",
}


@dataclass(frozen=True)
class ConnectionOptions:
    """
    Options for a single raw connect call.

    Attributes:
        tenant: Tenant (project) name the session is scoped to
        identity_api_version: Normalized identity API version ("v2.0", "v3")
        region: Region name or None
        connection_options: SSL sub-options (ssl_verify_peer, ssl_ca_file, ...)
        domain_id: Project domain, only used with identity v3
    """

    tenant: str
    identity_api_version: str
    region: Optional[str] = None
    connection_options: Dict[str, Any] = field(default_factory=dict)
    domain_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Render the options the way the raw connect boundary expects them."""
        opts: Dict[str, Any] = {
            "openstack_tenant": self.tenant,
            "openstack_identity_api_version": self.identity_api_version,
            "openstack_region": self.region,
            "connection_options": dict(self.connection_options),
        }
        if self.domain_id:
            opts["openstack_project_domain_id"] = self.domain_id
        return opts


def normalize_api_version(api_version: Optional[str]) -> str:
    """Map the short ``v2`` tag to ``v2.0``; other values pass through."""
    if api_version is None or api_version == "v2":
        return "v2.0"
    return api_version


def select_tenant(tenant_selector: Optional[Mapping[str, Any]]) -> str:
    """Pick the tenant name from project-name or legacy tenant-name keys."""
    selector = tenant_selector or {}
    return (
        selector.get("openstack_project_name")
        or selector.get("tenant_name")
        or DEFAULT_TENANT
    )


def build_ssl_options(
    ssl_policy: Optional[Union[SslPolicy, str]],
    extra_ssl_params: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build the SSL sub-options for a policy.

    Plain policies produce an empty mapping. ``ssl`` disables peer
    verification. ``ssl-with-validation`` enables it and carries whichever CA
    file, CA path and cert store were supplied. Any other value, known or
    not, is treated as plain transport.
    """
    policy = policy_value(ssl_policy)
    if policy == SslPolicy.SSL.value:
        return {"ssl_verify_peer": False}
    if policy != SslPolicy.SSL_WITH_VALIDATION.value:
        return {}

    options: Dict[str, Any] = {"ssl_verify_peer": True}
    for key, value in (extra_ssl_params or {}).items():
        target = SSL_EXTRA_KEYS.get(key)
        if target and value is not None:
            options[target] = value
    return options


def build_connection_options(
    tenant_selector: Optional[Mapping[str, Any]] = None,
    api_version: Optional[str] = "v2",
    region: Optional[str] = None,
    ssl_policy: Optional[Union[SslPolicy, str]] = SslPolicy.NON_SSL,
    extra_ssl_params: Optional[Mapping[str, Any]] = None,
    domain_id: Optional[str] = None,
) -> ConnectionOptions:
    """
    Assemble connection options for one raw connect call.

    Args:
        tenant_selector: Mapping holding ``openstack_project_name`` or
            ``tenant_name``; defaults to the ``admin`` tenant
        api_version: Identity API version tag ("v2" or "v3")
        region: Region name, passed through verbatim
        ssl_policy: One of the SslPolicy values
        extra_ssl_params: CA file, CA path and cert store
        domain_id: Project domain for identity v3

    Returns:
        ConnectionOptions: Immutable options value
    """
    version = normalize_api_version(api_version)
    return ConnectionOptions(
        tenant=select_tenant(tenant_selector),
        identity_api_version=version,
        region=region,
        connection_options=build_ssl_options(ssl_policy, extra_ssl_params),
        domain_id=domain_id if version == "v3" else None,
    )
