"""
Tenant Access Enumerator

Discovers the projects (tenants) visible to a handle's user and opens a
project-scoped service connection for each of them.
"""

import logging
from typing import Any, List, Tuple

from .tenant_aggregator import resource_attribute

logger = logging.getLogger(__name__)


class TenantAccessEnumerator:
    """
    Lists (service handle, project) pairs for a handle.

    Project-scoped connections are opened directly through ``handle.connect``
    and never stored in the handle's connection cache, which only holds
    connections for the handle's default tenant.
    """

    def __init__(self, handle: Any) -> None:
        self.handle = handle

    def accessible_tenants(self) -> List[Any]:
        """
        Projects the user holds a role on.

        Identity v3 exposes them per user; identity v2 lists the tenants of
        the current token.
        """
        identity = self.handle.service("Identity")
        if hasattr(identity, "user_projects"):
            projects = identity.user_projects(identity.get_user_id())
        else:
            projects = identity.tenants()
        tenants = list(projects)
        logger.debug(f"Found {len(tenants)} accessible tenants for {self.handle}")
        return tenants

    def for_service(self, service_type: str) -> List[Tuple[Any, Any]]:
        """Connect ``service_type`` once per accessible tenant."""
        scopes: List[Tuple[Any, Any]] = []
        for project in self.accessible_tenants():
            name = resource_attribute(project, "name")
            service = self.handle.connect(service_type, openstack_project_name=name)
            scopes.append((service, project))
        logger.info(
            f"Connected {service_type} in {len(scopes)} tenants for {self.handle}"
        )
        return scopes
