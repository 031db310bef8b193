"""
Tenant Aggregator Service

Runs one read accessor against every accessible tenant and merges the
entities into a single mapping keyed by a caller-chosen attribute.

Failure policy:
- A not-found error from a tenant (raised by the accessor or while realizing
  a lazily fetched result) makes that tenant's contribution empty and is
  logged as a warning.
- Any other error aborts the aggregation and propagates to the caller.
- Enumeration failures propagate unchanged.

Merge policy: entities are merged in enumeration order and a later tenant
overwrites an earlier one reporting the same key.
"""

import asyncio
from collections.abc import Iterable as IterableABC
from collections.abc import Mapping as MappingABC
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import structlog

from ..exceptions import is_not_found

logger = structlog.get_logger(__name__)

TenantScope = Tuple[Any, Any]


def resource_attribute(entity: Any, name: str) -> Any:
    """Read ``name`` from a mapping or from an SDK resource object."""
    if isinstance(entity, MappingABC):
        return entity[name]
    return getattr(entity, name)


def _realize(result: Any) -> List[Any]:
    if result is None:
        return []
    if isinstance(result, (MappingABC, str, bytes)):
        return [result]
    if isinstance(result, IterableABC):
        return list(result)
    return [result]


class TenantAggregator:
    """
    Collects accessor results across every tenant a credential can reach.

    Attributes:
        enumerate_tenants: Callable returning (service handle, project) pairs
            for a service type
        logger: structlog-style logger
    """

    def __init__(
        self,
        enumerate_tenants: Callable[[str], Iterable[TenantScope]],
        logger: Optional[Any] = None,
    ) -> None:
        self.enumerate_tenants = enumerate_tenants
        self.logger = logger or structlog.get_logger(__name__)

    def collect(self, service_type: str, accessor: str, key: str) -> Dict[Any, Any]:
        """
        Invoke ``accessor`` on each tenant's service handle and merge by ``key``.

        Args:
            service_type: Service type name (e.g. "Network")
            accessor: Name of the read method on the service handle
            key: Attribute of each entity used as the result key

        Returns:
            Mapping of key value -> entity; empty when no tenant had data

        Note:
            Key collisions keep the entity of the last tenant processed. This
            mirrors long-standing behaviour and is a candidate for first-wins
            or explicit conflict reporting.
        """
        scopes = list(self.enumerate_tenants(service_type))
        results = [
            self._invoke(service, project, service_type, accessor)
            for service, project in scopes
        ]
        return self._merge(results, service_type, accessor, key)

    async def collect_async(
        self, service_type: str, accessor: str, key: str, concurrency: int = 5
    ) -> Dict[Any, Any]:
        """
        Concurrent variant of :meth:`collect`.

        At most ``concurrency`` tenant calls run at once, each in a worker
        thread. Results are merged in enumeration order, so the outcome
        (including collisions) matches :meth:`collect`.
        """
        if concurrency <= 0:
            concurrency = 1

        scopes = list(await asyncio.to_thread(self.enumerate_tenants, service_type))
        semaphore = asyncio.Semaphore(concurrency)

        async def _bounded_invoke(service: Any, project: Any) -> List[Any]:
            async with semaphore:
                return await asyncio.to_thread(
                    self._invoke, service, project, service_type, accessor
                )

        results: List[List[Any]] = await asyncio.gather(
            *[_bounded_invoke(service, project) for service, project in scopes]
        )
        return self._merge(results, service_type, accessor, key)

    def _invoke(
        self, service: Any, project: Any, service_type: str, accessor: str
    ) -> List[Any]:
        try:
            # Lazy collections only hit the API once iterated.
            return _realize(getattr(service, accessor)())
        except Exception as exc:
            if not is_not_found(exc):
                raise
            self.logger.warning(
                "tenant_accessor_not_found",
                service=service_type,
                accessor=accessor,
                project=getattr(project, "id", None),
                error=str(exc),
            )
            return []

    def _merge(
        self,
        results: Iterable[List[Any]],
        service_type: str,
        accessor: str,
        key: str,
    ) -> Dict[Any, Any]:
        merged: Dict[Any, Any] = {}
        tenants = 0
        for entities in results:
            tenants += 1
            for entity in entities:
                merged[resource_attribute(entity, key)] = entity
        self.logger.info(
            "tenant_accessor_collected",
            service=service_type,
            accessor=accessor,
            tenants=tenants,
            entities=len(merged),
        )
        return merged
