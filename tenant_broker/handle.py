"""
OpenStack Handle Module

A Handle represents one identity (username/password) against one cloud
endpoint. It validates credentials, resolves the identity endpoint, assembles
connection options for the handle's SSL policy and delegates the actual
session setup to openstacksdk. Service connections are cached per service
type until the cache is reset.

Usage:
    ```python
    from tenant_broker.handle import Handle

    handle = Handle("admin", "secret", "keystone.example.com", 5000, "v3", "ssl")
    compute = handle.connect("Compute", openstack_project_name="demo")

    groups = handle.accessor_for_accessible_tenants("Network", "security_groups", "id")
    ```
"""

from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

import structlog
from keystoneauth1 import exceptions as ks_exceptions
from openstack import connection as os_connection
from openstack import exceptions as os_exceptions

from .address import DEFAULT_PORT, SslPolicy, resolve_address
from .connection_options import build_connection_options
from .credentials import validate_password
from .exceptions import InvalidConfigurationError, wrap_api_exception
from .services.tenant_aggregator import TenantAggregator
from .services.tenant_enumerator import TenantAccessEnumerator
from .timeout_config import Timeouts

logger = structlog.get_logger(__name__)

# Service type name -> attribute of openstack.connection.Connection
SERVICE_PROXIES: Dict[str, str] = {
    "Compute": "compute",
    "Network": "network",
    "Image": "image",
    "Volume": "block_storage",
    "Identity": "identity",
    "Orchestration": "orchestration",
    "Storage": "object_store",
    "Baremetal": "baremetal",
}

# Failures coming out of openstacksdk/keystoneauth while setting up a session.
CONNECT_ERRORS = (
    os_exceptions.SDKException,
    ks_exceptions.ClientException,
    ValueError,
    TypeError,
)

TenantScope = Tuple[Any, Any]


class Handle:
    """
    Authenticated identity against one OpenStack endpoint.

    Attributes:
        username: User name used for every connection
        password: Password (never logged)
        address: Host name or IP literal of the identity endpoint
        port: Identity endpoint port
        api_version: Identity API version tag ("v2" or "v3")
        security_protocol: SslPolicy governing scheme and peer verification
        extra_options: region, ssl_ca_file, ssl_ca_path, ssl_cert_store, domain_id
        connection_cache: Live service handles keyed by service type
    """

    def __init__(
        self,
        username: str,
        password: str,
        address: str,
        port: int = DEFAULT_PORT,
        api_version: str = "v2",
        security_protocol: Optional[Union[SslPolicy, str]] = SslPolicy.NON_SSL,
        extra_options: Optional[Mapping[str, Any]] = None,
        logger: Optional[Any] = None,
        tenant_enumerator: Optional[Any] = None,
    ) -> None:
        """
        Initialize the handle.

        Args:
            username: User name
            password: Password
            address: Identity endpoint host
            port: Identity endpoint port (positive integer)
            api_version: "v2" or "v3"
            security_protocol: "none", "non-ssl", "ssl" or "ssl-with-validation"
            extra_options: Region, CA material and domain id
            logger: Optional structlog-style logger, defaults to the module logger
            tenant_enumerator: Optional replacement for TenantAccessEnumerator

        Raises:
            InvalidConfigurationError: If the port is not a positive integer
            ValueError: If the security protocol is unknown
        """
        if isinstance(port, bool) or not isinstance(port, int) or port <= 0:
            raise InvalidConfigurationError(
                f"Port must be a positive integer, got {port!r}",
                config_section="connection",
            )

        self.username = username
        self.password = password
        self.address = address
        self.port = port
        self.api_version = api_version
        self.security_protocol = SslPolicy(security_protocol or SslPolicy.NON_SSL)
        self.extra_options: Dict[str, Any] = dict(extra_options or {})
        self.connection_cache: Dict[str, Any] = {}
        self.logger = logger or structlog.get_logger(__name__)
        self.tenant_enumerator = tenant_enumerator or TenantAccessEnumerator(self)

    def __repr__(self) -> str:
        return (
            f"Handle(username={self.username!r}, address={self.address!r}, "
            f"port={self.port}, security_protocol={self.security_protocol.value!r})"
        )

    @property
    def region(self) -> Optional[str]:
        return self.extra_options.get("region")

    @staticmethod
    def auth_url(
        address: str,
        port: int = DEFAULT_PORT,
        security_protocol: Optional[Union[SslPolicy, str]] = SslPolicy.NON_SSL,
    ) -> str:
        """Identity endpoint URL; usable without a Handle instance."""
        return resolve_address(address, port, security_protocol)

    @classmethod
    def raw_connect(
        cls,
        username: str,
        password: str,
        auth_url: str,
        service: str = "Compute",
        extra_opts: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """
        Open a session with openstacksdk and return the proxy for a service.

        Args:
            username: User name
            password: Password
            auth_url: Identity endpoint URL
            service: Service type name (see SERVICE_PROXIES)
            extra_opts: Options rendered by ConnectionOptions.to_dict()

        Returns:
            The openstacksdk service proxy

        Raises:
            InvalidConfigurationError: If the service type is unknown
            ApiRequestError: If the session cannot be established
        """
        proxy_name = SERVICE_PROXIES.get(service)
        if proxy_name is None:
            raise InvalidConfigurationError(
                f"Unknown service type: {service}",
                context={"known_services": sorted(SERVICE_PROXIES)},
            )

        kwargs = cls.connection_kwargs(username, password, auth_url, extra_opts or {})
        try:
            conn = os_connection.Connection(**kwargs)
            conn.authorize()
            return getattr(conn, proxy_name)
        except CONNECT_ERRORS as exc:
            logger.warning(
                "raw_connect_failed", service=service, auth_url=auth_url, error=str(exc)
            )
            raise wrap_api_exception(exc, service=service) from exc

    @staticmethod
    def connection_kwargs(
        username: str, password: str, auth_url: str, opts: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """Translate rendered connection options into Connection keyword arguments."""
        version = str(opts.get("openstack_identity_api_version") or "v2.0").lstrip("v")
        kwargs: Dict[str, Any] = {
            "auth_url": auth_url,
            "username": username,
            "password": password,
            "project_name": opts.get("openstack_tenant"),
            "region_name": opts.get("openstack_region"),
            "identity_api_version": version,
            "api_timeout": Timeouts.API,
        }

        if version.startswith("3"):
            domain_id = opts.get("openstack_project_domain_id") or "default"
            kwargs["user_domain_id"] = domain_id
            kwargs["project_domain_id"] = domain_id

        ssl_options = opts.get("connection_options") or {}
        if "ssl_verify_peer" in ssl_options:
            kwargs["verify"] = bool(ssl_options["ssl_verify_peer"])
            ca_bundle = ssl_options.get("ssl_ca_file") or ssl_options.get("ssl_ca_path")
            if kwargs["verify"] and ca_bundle:
                kwargs["cacert"] = ca_bundle
            if ssl_options.get("ssl_cert_store") is not None:
                logger.debug("ssl_cert_store_ignored", auth_url=auth_url)
        return kwargs

    @classmethod
    def connect_once(
        cls,
        username: str,
        password: str,
        address: str,
        port: int = DEFAULT_PORT,
        api_version: str = "v2",
        security_protocol: Optional[Union[SslPolicy, str]] = SslPolicy.NON_SSL,
        service: str = "Compute",
        extra_options: Optional[Mapping[str, Any]] = None,
        **connect_options: Any,
    ) -> Any:
        """Connect without keeping a Handle around, e.g. to verify credentials."""
        handle = cls(
            username,
            password,
            address,
            port,
            api_version,
            security_protocol,
            extra_options,
        )
        return handle.connect(service, **connect_options)

    def connect(self, service: str = "Compute", **connect_options: Any) -> Any:
        """
        Connect to a service.

        Args:
            service: Service type name
            **connect_options: Tenant selector, ``openstack_project_name`` or
                ``tenant_name``

        Returns:
            Live service handle

        Raises:
            CredentialRejectedError: If the password is numeric only
            ApiRequestError: If the connection fails
        """
        validate_password(self.password)

        url = self.auth_url(self.address, self.port, self.security_protocol)
        options = build_connection_options(
            connect_options,
            self.api_version,
            self.region,
            self.security_protocol,
            self.extra_options,
            self.extra_options.get("domain_id"),
        )
        self.logger.debug(
            "connecting",
            service=service,
            auth_url=url,
            tenant=options.tenant,
            region=options.region,
        )
        return type(self).raw_connect(
            self.username, self.password, url, service, options.to_dict()
        )

    def service(self, service_type: str) -> Any:
        """Return the cached handle for a service type, connecting on first use."""
        handle = self.connection_cache.get(service_type)
        if handle is None:
            handle = self.connect(service_type)
            self.connection_cache[service_type] = handle
        return handle

    def reset_connection_cache(self) -> None:
        """Drop every cached service handle."""
        self.logger.debug(
            "reset_connection_cache", cached=sorted(self.connection_cache)
        )
        self.connection_cache.clear()

    @property
    def compute_service(self) -> Any:
        return self.service("Compute")

    @property
    def network_service(self) -> Any:
        return self.service("Network")

    @property
    def image_service(self) -> Any:
        return self.service("Image")

    @property
    def volume_service(self) -> Any:
        return self.service("Volume")

    @property
    def identity_service(self) -> Any:
        return self.service("Identity")

    def service_for_each_accessible_tenant(
        self, service_type: str
    ) -> List[TenantScope]:
        """(service handle, project) pairs for every tenant the user can reach."""
        return self.tenant_enumerator.for_service(service_type)

    def _aggregator(self) -> TenantAggregator:
        enumerate_tenants: Callable[[str], Iterable[TenantScope]] = (
            self.service_for_each_accessible_tenant
        )
        return TenantAggregator(enumerate_tenants, logger=self.logger)

    def accessor_for_accessible_tenants(
        self, service_type: str, accessor: str, key: str
    ) -> Dict[Any, Any]:
        """Call ``accessor`` in every accessible tenant and merge results by ``key``."""
        return self._aggregator().collect(service_type, accessor, key)

    async def accessor_for_accessible_tenants_async(
        self, service_type: str, accessor: str, key: str, concurrency: int = 5
    ) -> Dict[Any, Any]:
        """Concurrent variant of accessor_for_accessible_tenants."""
        return await self._aggregator().collect_async(
            service_type, accessor, key, concurrency=concurrency
        )
