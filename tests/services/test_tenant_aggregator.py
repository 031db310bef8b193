"""
Tests for the Tenant Aggregator Service

Covers not-found suppression (at call time and while realizing lazy
results), propagation of real failures, merge order and the concurrent
variant.
"""

import threading
import time
from unittest.mock import MagicMock, Mock

import pytest
from openstack import exceptions as os_exceptions

from tenant_broker.handle import Handle
from tenant_broker.services.tenant_aggregator import (
    TenantAggregator,
    resource_attribute,
)


def not_found():
    return os_exceptions.NotFoundException(message="Not found")


def aggregator_for(*scopes):
    return TenantAggregator(lambda service_type: list(scopes), logger=Mock())


class TestHandleErrorsFromServices:
    """Error handling through Handle.accessor_for_accessible_tenants."""

    @pytest.fixture
    def openstack_svc(self):
        return Mock(name="network_service")

    @pytest.fixture
    def handle(self, openstack_svc):
        handle = Handle("dummy", "dummy", "dummy", logger=Mock())
        handle.service_for_each_accessible_tenant = Mock(
            return_value=[(openstack_svc, Mock(name="project"))]
        )
        return handle

    def test_ignores_404_errors_from_services(self, handle, openstack_svc):
        openstack_svc.security_groups.side_effect = not_found()

        data = handle.accessor_for_accessible_tenants("Network", "security_groups", "id")

        assert data == {}
        openstack_svc.security_groups.assert_called_once_with()

    def test_ignores_404_errors_from_services_returning_arrays(
        self, handle, openstack_svc
    ):
        security_groups = MagicMock(name="security_groups")
        security_groups.__iter__.side_effect = not_found()
        openstack_svc.security_groups.return_value = security_groups

        data = handle.accessor_for_accessible_tenants("Network", "security_groups", "id")

        assert data == {}
        security_groups.__iter__.assert_called_once()


class TestTenantAggregatorCollect:
    """Tests for TenantAggregator.collect."""

    def test_not_found_tenant_contributes_nothing(self):
        missing, present = Mock(), Mock()
        missing.servers.side_effect = not_found()
        present.servers.return_value = [{"id": "vm-1", "name": "web"}]

        data = aggregator_for((missing, Mock()), (present, Mock())).collect(
            "Compute", "servers", "id"
        )

        assert data == {"vm-1": {"id": "vm-1", "name": "web"}}

    def test_skipped_tenant_is_logged_as_warning(self):
        missing = Mock()
        missing.servers.side_effect = not_found()
        project = Mock(id="p-1")
        logger = Mock()
        aggregator = TenantAggregator(lambda service_type: [(missing, project)], logger)

        assert aggregator.collect("Compute", "servers", "id") == {}

        logger.warning.assert_called_once()
        warning = logger.warning.call_args
        assert warning.args == ("tenant_accessor_not_found",)
        fields = warning.kwargs
        assert fields["project"] == "p-1"
        assert fields["accessor"] == "servers"
        logger.debug.assert_not_called()

    def test_real_failures_propagate(self):
        healthy, broken = Mock(), Mock()
        healthy.servers.return_value = [{"id": "vm-1"}]
        broken.servers.side_effect = os_exceptions.HttpException(
            message="Internal error", http_status=500
        )

        with pytest.raises(os_exceptions.HttpException, match="Internal error"):
            aggregator_for((healthy, Mock()), (broken, Mock())).collect(
                "Compute", "servers", "id"
            )

    def test_real_failures_during_realization_propagate(self):
        lazy = MagicMock()
        lazy.__iter__.side_effect = RuntimeError("connection reset")
        service = Mock()
        service.servers.return_value = lazy

        with pytest.raises(RuntimeError, match="connection reset"):
            aggregator_for((service, Mock())).collect("Compute", "servers", "id")

    def test_any_404_status_counts_as_not_found(self):
        error = Exception("gone")
        error.status_code = 404
        service = Mock()
        service.volumes.side_effect = error

        assert aggregator_for((service, Mock())).collect("Volume", "volumes", "id") == {}

    def test_enumeration_failure_propagates_unwrapped(self):
        failure = os_exceptions.SDKException("identity unavailable")

        def enumerate_tenants(service_type):
            raise failure

        aggregator = TenantAggregator(enumerate_tenants, logger=Mock())

        with pytest.raises(os_exceptions.SDKException) as exc_info:
            aggregator.collect("Network", "networks", "id")

        assert exc_info.value is failure

    def test_no_tenants_yields_empty_mapping(self):
        assert aggregator_for().collect("Network", "networks", "id") == {}

    def test_generators_are_realized(self):
        service = Mock()
        service.networks.return_value = (n for n in [{"id": "n1"}, {"id": "n2"}])

        data = aggregator_for((service, Mock())).collect("Network", "networks", "id")

        assert list(data) == ["n1", "n2"]

    def test_single_mapping_result(self):
        service = Mock()
        service.quota.return_value = {"id": "quota-1", "cores": 20}

        data = aggregator_for((service, Mock())).collect("Compute", "quota", "id")

        assert data == {"quota-1": {"id": "quota-1", "cores": 20}}

    def test_last_tenant_wins_on_key_collision(self):
        first, second = Mock(), Mock()
        first.networks.return_value = [{"id": "shared", "tenant": "first"}]
        second.networks.return_value = [{"id": "shared", "tenant": "second"}]

        data = aggregator_for((first, Mock()), (second, Mock())).collect(
            "Network", "networks", "id"
        )

        assert data == {"shared": {"id": "shared", "tenant": "second"}}

    def test_attribute_keys_on_resource_objects(self):
        server = Mock(id="vm-9")
        service = Mock()
        service.servers.return_value = [server]

        data = aggregator_for((service, Mock())).collect("Compute", "servers", "id")

        assert data == {"vm-9": server}


class TestTenantAggregatorCollectAsync:
    """Tests for TenantAggregator.collect_async."""

    @pytest.mark.asyncio
    async def test_merges_in_enumeration_order(self):
        slow, fast = Mock(), Mock()

        def slow_networks():
            time.sleep(0.05)
            return [{"id": "shared", "tenant": "slow"}]

        slow.networks.side_effect = slow_networks
        fast.networks.return_value = [{"id": "shared", "tenant": "fast"}]

        data = await aggregator_for((slow, Mock()), (fast, Mock())).collect_async(
            "Network", "networks", "id", concurrency=2
        )

        assert data == {"shared": {"id": "shared", "tenant": "fast"}}

    @pytest.mark.asyncio
    async def test_respects_concurrency_limit(self):
        lock = threading.Lock()
        running = 0
        max_running = 0

        def fake_servers():
            nonlocal running, max_running
            with lock:
                running += 1
                max_running = max(max_running, running)
            time.sleep(0.01)
            with lock:
                running -= 1
            return []

        scopes = []
        for _ in range(8):
            service = Mock()
            service.servers.side_effect = fake_servers
            scopes.append((service, Mock()))

        await aggregator_for(*scopes).collect_async(
            "Compute", "servers", "id", concurrency=3
        )

        assert max_running <= 3

    @pytest.mark.asyncio
    async def test_suppresses_not_found_and_propagates_real_errors(self):
        missing, present, broken = Mock(), Mock(), Mock()
        missing.servers.side_effect = not_found()
        present.servers.return_value = [{"id": "vm-1"}]
        broken.servers.side_effect = RuntimeError("boom")

        data = await aggregator_for(
            (missing, Mock()), (present, Mock())
        ).collect_async("Compute", "servers", "id")
        assert data == {"vm-1": {"id": "vm-1"}}

        with pytest.raises(RuntimeError, match="boom"):
            await aggregator_for(
                (present, Mock()), (broken, Mock())
            ).collect_async("Compute", "servers", "id")

    @pytest.mark.asyncio
    async def test_invalid_concurrency_falls_back_to_one(self):
        service = Mock()
        service.servers.return_value = [{"id": "vm-1"}]

        data = await aggregator_for((service, Mock())).collect_async(
            "Compute", "servers", "id", concurrency=0
        )

        assert data == {"vm-1": {"id": "vm-1"}}

    @pytest.mark.asyncio
    async def test_handle_async_variant(self):
        service = Mock()
        service.networks.return_value = [{"id": "n1"}]
        handle = Handle("dummy", "dummy", "dummy", logger=Mock())
        handle.service_for_each_accessible_tenant = Mock(
            return_value=[(service, Mock())]
        )

        data = await handle.accessor_for_accessible_tenants_async(
            "Network", "networks", "id", concurrency=2
        )

        assert data == {"n1": {"id": "n1"}}


def test_resource_attribute_reads_mappings_and_objects():
    assert resource_attribute({"id": 1}, "id") == 1
    assert resource_attribute(Mock(id=2), "id") == 2
    with pytest.raises(KeyError):
        resource_attribute({}, "id")
