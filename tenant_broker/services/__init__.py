"""
Service Layer Module

Tenant-wide services built on top of a Handle: tenant enumeration, accessor
aggregation and image management.
"""

from .image_service import ImageService
from .tenant_aggregator import TenantAggregator, resource_attribute
from .tenant_enumerator import TenantAccessEnumerator

__all__ = [
    "ImageService",
    "TenantAccessEnumerator",
    "TenantAggregator",
    "resource_attribute",
]
