"""Tests for resource id parsing."""

import pytest

from adb_vnet_injector.errors import MalformedIdentifierError
from adb_vnet_injector.resource_id import (
    ParsedResourceId,
    SubnetRef,
    parse_resource_id,
    parse_vnet_id,
    parse_workspace_id,
)
from tests.fakes import SUBSCRIPTION, VNET_ID, WORKSPACE_ID


class TestParseResourceId:
    """Tests for parse_resource_id."""

    def test_workspace_id(self):
        """Test splitting a workspace id into its parts."""
        parsed = parse_workspace_id(WORKSPACE_ID)

        assert parsed.subscription_id == SUBSCRIPTION
        assert parsed.resource_group == "rg-databricks"
        assert parsed.resource_type == "Microsoft.Databricks/workspaces"
        assert parsed.name == "adb-analytics"
        assert parsed.id == WORKSPACE_ID

    def test_keywords_are_case_insensitive(self):
        """Test lower-case keyword segments as returned by some tools."""
        value = WORKSPACE_ID.replace("resourceGroups", "resourcegroups").replace(
            "Microsoft.Databricks", "microsoft.databricks"
        )
        parsed = parse_workspace_id(value)

        assert parsed.resource_group == "rg-databricks"
        assert parsed.resource_type == "Microsoft.Databricks/workspaces"

    def test_trailing_slash(self):
        """Test that a trailing slash is tolerated."""
        assert parse_vnet_id(VNET_ID + "/").name == "vnet-databricks"

    def test_untyped_parse(self):
        """Test parsing without an expected type keeps the type from the id."""
        parsed = parse_resource_id(VNET_ID)
        assert parsed.resource_type == "Microsoft.Network/virtualNetworks"

    @pytest.mark.parametrize("value", [
        "",
        "   ",
        "adb-analytics",
        "/subscriptions/abc/resourceGroups/rg/providers/Microsoft.Databricks/workspaces",
        "/subscriptions//resourceGroups/rg/providers/Microsoft.Databricks/workspaces/ws",
        "/subscriptions/abc/resourceGroups//providers/Microsoft.Databricks/workspaces/ws",
        "/subscriptions/abc/resourceGroups/rg/providers/Microsoft.Databricks/workspaces/ws/extra",
    ])
    def test_malformed(self, value):
        """Test that incomplete ids are rejected."""
        with pytest.raises(MalformedIdentifierError):
            parse_workspace_id(value)

    def test_unexpected_type(self):
        """Test that a VNet id is not accepted as a workspace id."""
        with pytest.raises(MalformedIdentifierError) as exc_info:
            parse_workspace_id(VNET_ID)

        assert "Microsoft.Network/virtualNetworks" in str(exc_info.value)
        assert exc_info.value.role == "workspace"
        assert exc_info.value.kind == "MalformedIdentifier"


class TestSubnetRef:
    """Tests for SubnetRef."""

    def test_id(self):
        """Test the subnet id is built from the VNet id."""
        subnet = SubnetRef(parse_vnet_id(VNET_ID), "snet-host")
        assert subnet.id == f"{VNET_ID}/subnets/snet-host"

    def test_parsed_id_is_immutable(self):
        """Test that parsed ids cannot be modified."""
        parsed = ParsedResourceId("sub", "rg", "Microsoft.Network/virtualNetworks", "vnet")
        with pytest.raises(AttributeError):
            parsed.name = "other"
