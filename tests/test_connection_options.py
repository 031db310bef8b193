"""
Tests for the Connection Options Module

Tests tenant selection, API version normalization and SSL sub-options for
every security protocol.
"""

import dataclasses

import pytest

from tenant_broker.connection_options import (
    ConnectionOptions,
    build_connection_options,
    build_ssl_options,
    normalize_api_version,
    select_tenant,
)


class TestSelectTenant:
    """Tests for tenant selection."""

    def test_defaults_to_admin(self):
        assert select_tenant(None) == "admin"
        assert select_tenant({}) == "admin"

    def test_project_name(self):
        assert select_tenant({"openstack_project_name": "demo"}) == "demo"

    def test_legacy_tenant_name(self):
        assert select_tenant({"tenant_name": "legacy"}) == "legacy"

    def test_project_name_wins_over_tenant_name(self):
        selector = {"openstack_project_name": "demo", "tenant_name": "legacy"}
        assert select_tenant(selector) == "demo"


class TestNormalizeApiVersion:
    """Tests for API version normalization."""

    def test_v2_is_expanded(self):
        assert normalize_api_version("v2") == "v2.0"

    @pytest.mark.parametrize("version", ["v3", "v2.0", "v4"])
    def test_other_versions_pass_through(self, version):
        assert normalize_api_version(version) == version


class TestBuildSslOptions:
    """Tests for SSL sub-options."""

    extra = {"ca_file": "file", "ca_path": "path", "cert_store": "store_obj"}

    @pytest.mark.parametrize("policy", ["none", "non-ssl", None])
    def test_plain_policies_produce_no_ssl_options(self, policy):
        assert build_ssl_options(policy, self.extra) == {}

    def test_ssl_disables_peer_verification_only(self):
        assert build_ssl_options("ssl", self.extra) == {"ssl_verify_peer": False}

    def test_ssl_with_validation_merges_extra_params(self):
        assert build_ssl_options("ssl-with-validation", self.extra) == {
            "ssl_verify_peer": True,
            "ssl_ca_file": "file",
            "ssl_ca_path": "path",
            "ssl_cert_store": "store_obj",
        }

    def test_ssl_with_validation_includes_only_supplied_params(self):
        options = build_ssl_options(
            "ssl-with-validation", {"ssl_ca_file": "file", "region": "RegionOne"}
        )
        assert options == {"ssl_verify_peer": True, "ssl_ca_file": "file"}

    @pytest.mark.parametrize("policy", ["tls-maybe", "http", "https", ""])
    def test_other_values_produce_plain_options(self, policy):
        assert build_ssl_options(policy, self.extra) == {}

    @pytest.mark.parametrize("policy", ["https", "tls-maybe"])
    def test_connection_options_accept_any_policy_value(self, policy):
        options = build_connection_options(ssl_policy=policy)

        assert options.connection_options == {}
        assert options.to_dict()["openstack_tenant"] == "admin"


class TestBuildConnectionOptions:
    """Tests for build_connection_options."""

    def test_defaults(self):
        options = build_connection_options()

        assert options.to_dict() == {
            "openstack_tenant": "admin",
            "openstack_identity_api_version": "v2.0",
            "openstack_region": None,
            "connection_options": {},
        }

    def test_region_passes_through(self):
        options = build_connection_options(region="RegionOne")
        assert options.region == "RegionOne"

    def test_domain_only_applies_to_v3(self):
        v2 = build_connection_options(api_version="v2", domain_id="corp")
        v3 = build_connection_options(api_version="v3", domain_id="corp")

        assert "openstack_project_domain_id" not in v2.to_dict()
        assert v3.to_dict()["openstack_project_domain_id"] == "corp"

    def test_options_are_immutable(self):
        options = build_connection_options({"tenant_name": "demo"})

        assert isinstance(options, ConnectionOptions)
        with pytest.raises(dataclasses.FrozenInstanceError):
            options.tenant = "other"

    def test_to_dict_copies_ssl_options(self):
        options = build_connection_options(ssl_policy="ssl")
        rendered = options.to_dict()
        rendered["connection_options"]["ssl_verify_peer"] = True

        assert options.connection_options == {"ssl_verify_peer": False}
