"""Tests for the ARM template transformer."""

import copy
import json

import pytest

from adb_vnet_injector.errors import MalformedTemplateError, ResourceNotFoundError
from adb_vnet_injector.template_transformer import (
    LEGACY_WORKSPACE_PARAMETERS,
    WORKSPACE_API_VERSION,
    TemplateTransformer,
    build_parameters_file,
)
from tests.fakes import VNET_ID

WORKSPACE_NAME = "adb-analytics"


def transform(template):
    return TemplateTransformer(template).transform(
        VNET_ID, "snet-host", "snet-container", WORKSPACE_NAME
    )


def workspace_of(template):
    return next(r for r in template["resources"] if r["type"] == "Microsoft.Databricks/workspaces")


class TestTemplateTransformer:
    """Tests for TemplateTransformer.transform."""

    def test_api_version_overwritten(self, exported_template):
        """Test the workspace api version is pinned."""
        result = transform(exported_template)
        assert workspace_of(result.template)["apiVersion"] == WORKSPACE_API_VERSION

    def test_legacy_parameters_removed(self, exported_template):
        """Test managed network parameters are dropped."""
        parameters = workspace_of(transform(exported_template).template)["properties"]["parameters"]

        for key in LEGACY_WORKSPACE_PARAMETERS:
            assert key not in parameters
        assert parameters["enableNoPublicIp"] == {"value": True}

    def test_custom_network_parameters(self, exported_template):
        """Test the VNet and subnet names are set in the value envelope."""
        parameters = workspace_of(transform(exported_template).template)["properties"]["parameters"]

        assert parameters["customVirtualNetworkId"] == {"value": VNET_ID}
        assert parameters["customPublicSubnetName"] == {"value": "snet-host"}
        assert parameters["customPrivateSubnetName"] == {"value": "snet-container"}

    def test_partial_legacy_parameters(self):
        """Test a workspace with only some legacy keys and no custom network."""
        template = {
            "parameters": {},
            "resources": [{
                "type": "Microsoft.Databricks/workspaces",
                "apiVersion": "2024-05-01",
                "properties": {
                    "parameters": {
                        "vnetAddressPrefix": {"value": "10.139"},
                        "storageAccountName": {"value": "dbstorage"},
                    },
                },
            }],
        }
        parameters = workspace_of(transform(template).template)["properties"]["parameters"]

        assert set(parameters) == {
            "customVirtualNetworkId",
            "customPublicSubnetName",
            "customPrivateSubnetName",
        }

    def test_provisioning_state_removed(self, exported_template):
        """Test the read-only provisioning state is dropped from the workspace."""
        result = transform(exported_template)
        assert "provisioningState" not in workspace_of(result.template)["properties"]

    def test_missing_properties_created(self):
        """Test a workspace resource without properties."""
        template = {"resources": [{"type": "Microsoft.Databricks/workspaces", "apiVersion": "x"}]}
        result = transform(template)

        parameters = workspace_of(result.template)["properties"]["parameters"]
        assert parameters["customPublicSubnetName"] == {"value": "snet-host"}
        assert "parameters" not in result.template

    def test_other_resources_untouched(self, exported_template):
        """Test that resources other than the workspace are preserved."""
        original = copy.deepcopy(exported_template["resources"][0])
        result = transform(exported_template)

        assert result.template["resources"][0] == original
        assert result.template["resources"][0]["properties"]["provisioningState"] == "Succeeded"

    def test_top_level_keys_preserved(self, exported_template):
        """Test that the output keeps every top-level key and remains valid JSON."""
        result = transform(exported_template)
        reparsed = json.loads(result.to_json())

        assert list(reparsed) == list(exported_template)
        assert reparsed["parameters"] == exported_template["parameters"]

    def test_input_not_mutated(self, exported_template):
        """Test that a mapping passed in is copied, not modified."""
        snapshot = copy.deepcopy(exported_template)
        transform(exported_template)
        assert exported_template == snapshot

    def test_idempotent(self, exported_template):
        """Test that transforming twice yields the same template."""
        first = transform(exported_template)
        second = transform(first.template)

        assert second.template == first.template
        assert second.parameters == first.parameters

    def test_existing_custom_values_overwritten(self, exported_template):
        """Test that earlier custom network values are replaced, not duplicated."""
        parameters = workspace_of(exported_template)["properties"]["parameters"]
        parameters["customVirtualNetworkId"] = {"value": "/old/vnet"}

        result = transform(exported_template)
        parameters = workspace_of(result.template)["properties"]["parameters"]
        assert parameters["customVirtualNetworkId"] == {"value": VNET_ID}

    def test_first_workspace_wins(self, exported_template):
        """Test that only the first workspace resource is patched."""
        second = copy.deepcopy(workspace_of(exported_template))
        second["name"] = "second"
        exported_template["resources"].append(second)

        result = transform(exported_template)

        assert result.template["resources"][1]["apiVersion"] == WORKSPACE_API_VERSION
        assert result.template["resources"][2]["apiVersion"] == "2024-05-01"

    def test_accepts_json_text(self, exported_template):
        """Test that the template can be given as JSON text."""
        result = transform(json.dumps(exported_template))
        assert workspace_of(result.template)["apiVersion"] == WORKSPACE_API_VERSION


class TestDeploymentParameters:
    """Tests for the parameter values supplied at deployment."""

    def test_name_heuristic(self, exported_template):
        """Test parameters without default matching 'name' get the workspace name."""
        result = transform(exported_template)

        assert result.parameters == {"workspaces_name_name": WORKSPACE_NAME}

    def test_workspace_heuristic(self):
        """Test parameters mentioning 'workspace' get the workspace name."""
        template = {
            "parameters": {
                "workspaceRef": {"type": "String"},
                "WorkspaceLabel": {"type": "String"},
                "sku": {"type": "String"},
                "workspace_with_default": {"type": "String", "defaultValue": "x"},
            },
            "resources": [{"type": "Microsoft.Databricks/workspaces", "properties": {}}],
        }
        result = transform(template)

        assert result.parameters == {"workspaceRef": WORKSPACE_NAME}

    def test_parameters_file(self):
        """Test the ARM parameters document wrapping."""
        document = build_parameters_file({"workspaces_name_name": WORKSPACE_NAME})

        assert document["contentVersion"] == "1.0.0.0"
        assert document["parameters"] == {"workspaces_name_name": {"value": WORKSPACE_NAME}}
        assert "deploymentParameters.json" in document["$schema"]


class TestMalformedTemplates:
    """Tests for templates that cannot be transformed."""

    def test_invalid_json(self):
        """Test text that is not JSON."""
        with pytest.raises(MalformedTemplateError):
            TemplateTransformer("{not json")

    def test_not_an_object(self):
        """Test a JSON document that is not an object."""
        with pytest.raises(MalformedTemplateError):
            TemplateTransformer("[]")

    def test_no_resources(self):
        """Test a template without a resources list."""
        with pytest.raises(MalformedTemplateError) as exc_info:
            TemplateTransformer({"parameters": {}})
        assert "resources" in str(exc_info.value)

    def test_no_workspace_resource(self, exported_template):
        """Test a template without a Databricks workspace."""
        exported_template["resources"] = exported_template["resources"][:1]

        with pytest.raises(ResourceNotFoundError) as exc_info:
            transform(exported_template)

        assert exc_info.value.phase == "transform"
        assert "Microsoft.Databricks/workspaces" in str(exc_info.value)

    def test_properties_not_object(self):
        """Test workspace properties of the wrong type."""
        template = {"resources": [{"type": "Microsoft.Databricks/workspaces", "properties": []}]}

        with pytest.raises(MalformedTemplateError) as exc_info:
            transform(template)
        assert "'properties'" in str(exc_info.value)

    def test_parameters_not_object(self):
        """Test workspace properties.parameters of the wrong type."""
        template = {
            "resources": [{
                "type": "Microsoft.Databricks/workspaces",
                "properties": {"parameters": "x"},
            }],
        }
        with pytest.raises(MalformedTemplateError):
            transform(template)


class TestFileIO:
    """Tests for loading and saving templates."""

    def test_round_trip_through_files(self, tmp_path, exported_template):
        """Test loading an exported file and saving the result."""
        source = tmp_path / "exported.json"
        source.write_text(json.dumps(exported_template), encoding="utf-8")
        target = tmp_path / "injected.json"

        transformer = TemplateTransformer.from_file(source)
        transformer.transform(VNET_ID, "snet-host", "snet-container", WORKSPACE_NAME)
        transformer.save_template(target)

        saved = json.loads(target.read_text(encoding="utf-8"))
        assert workspace_of(saved)["properties"]["parameters"]["customVirtualNetworkId"] == {
            "value": VNET_ID
        }

    def test_missing_file(self, tmp_path):
        """Test loading a template that does not exist."""
        with pytest.raises(FileNotFoundError):
            TemplateTransformer.from_file(tmp_path / "missing.json")

    def test_non_utf8_file(self, tmp_path):
        """Test a file that is not valid UTF-8 is reported as a malformed template."""
        source = tmp_path / "exported.json"
        source.write_bytes(b'{"resources": ["\xff\xfe"]}')

        with pytest.raises(MalformedTemplateError):
            TemplateTransformer.from_file(source)
