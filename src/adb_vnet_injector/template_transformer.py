"""
Template Transformer Module

Rewrites an exported Databricks workspace ARM template so that redeploying it
moves the workspace into a customer-managed virtual network.
"""

import copy
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Union

from .errors import MalformedTemplateError, ResourceNotFoundError
from .resource_id import WORKSPACE_TYPE

logger = logging.getLogger(__name__)

WORKSPACE_API_VERSION = "2025-08-01-preview"

# Parameters of the managed network that conflict with a custom VNet
LEGACY_WORKSPACE_PARAMETERS = (
    "vnetAddressPrefix",
    "natGatewayName",
    "publicIpName",
    "storageAccountName",
    "storageAccountSkuName",
)

READ_ONLY_PROPERTIES = ("provisioningState",)

WORKSPACE_NAME_HINTS = ("workspace", "name")

PARAMETERS_SCHEMA = "https://schema.management.azure.com/schemas/2019-04-01/deploymentParameters.json#"


@dataclass
class TransformResult:
    """Modified template plus the parameter values its deployment needs."""

    template: Dict[str, Any]
    parameters: Dict[str, str]

    def to_json(self) -> str:
        return json.dumps(self.template, indent=2)


class TemplateTransformer:
    """Patch an exported workspace template for VNet injection."""

    def __init__(self, template: Union[str, bytes, Dict[str, Any]]):
        """
        Initialize the TemplateTransformer.

        Args:
            template: Exported ARM template, as JSON text or an already parsed mapping

        Raises:
            MalformedTemplateError: If the template does not parse or has no resources list
        """
        if isinstance(template, (str, bytes)):
            try:
                template = json.loads(template)
            except ValueError as e:
                raise MalformedTemplateError(f"Exported template is not valid JSON: {e}") from e
        else:
            template = copy.deepcopy(template)

        if not isinstance(template, dict):
            raise MalformedTemplateError(
                f"Exported template must be a JSON object, got {type(template).__name__}"
            )
        if not isinstance(template.get('resources'), list):
            raise MalformedTemplateError("Exported template has no 'resources' list")

        self.template: Dict[str, Any] = template

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'TemplateTransformer':
        """Load an exported template from disk."""
        template_path = Path(path)
        if not template_path.exists():
            raise FileNotFoundError(f"Template file not found: {path}")

        with open(template_path, 'rb') as f:
            return cls(f.read())

    def transform(
        self,
        vnet_id: str,
        public_subnet_name: str,
        private_subnet_name: str,
        workspace_name: str,
    ) -> TransformResult:
        """
        Apply the VNet injection edits to the workspace resource.

        Args:
            vnet_id: Resource id of the target virtual network
            public_subnet_name: Host subnet name
            private_subnet_name: Container subnet name
            workspace_name: Value used for template parameters that lack a default

        Returns:
            TransformResult with the modified template and deployment parameters

        Raises:
            ResourceNotFoundError: If the template has no workspace resource
            MalformedTemplateError: If the workspace resource has the wrong shape
        """
        workspace = self._find_workspace_resource()

        workspace['apiVersion'] = WORKSPACE_API_VERSION

        properties = workspace.setdefault('properties', {})
        if not isinstance(properties, dict):
            raise MalformedTemplateError(
                f"'properties' of {WORKSPACE_TYPE} resource must be an object"
            )

        parameters = properties.setdefault('parameters', {})
        if not isinstance(parameters, dict):
            raise MalformedTemplateError(
                f"'properties.parameters' of {WORKSPACE_TYPE} resource must be an object"
            )

        self._remove_legacy_parameters(parameters)
        self._remove_read_only_properties(properties)
        self._set_custom_network(parameters, vnet_id, public_subnet_name, private_subnet_name)

        return TransformResult(
            template=self.template,
            parameters=self._build_deployment_parameters(workspace_name),
        )

    def _find_workspace_resource(self) -> Dict[str, Any]:
        """Return the first Databricks workspace resource in the template."""
        matches: List[Dict[str, Any]] = [
            resource for resource in self.template['resources']
            if isinstance(resource, dict) and resource.get('type') == WORKSPACE_TYPE
        ]

        if not matches:
            raise ResourceNotFoundError(
                'template resource', WORKSPACE_TYPE,
                detail="the exported template contains no workspace",
                phase='transform',
            )
        if len(matches) > 1:
            logger.warning(
                "Template contains %d %s resources, patching the first (%s)",
                len(matches), WORKSPACE_TYPE, matches[0].get('name', '<unnamed>'),
            )
        return matches[0]

    def _remove_legacy_parameters(self, parameters: Dict[str, Any]):
        for key in LEGACY_WORKSPACE_PARAMETERS:
            if parameters.pop(key, None) is not None:
                logger.debug("Removed workspace parameter %s", key)

    def _remove_read_only_properties(self, properties: Dict[str, Any]):
        for key in READ_ONLY_PROPERTIES:
            properties.pop(key, None)

    def _set_custom_network(
        self,
        parameters: Dict[str, Any],
        vnet_id: str,
        public_subnet_name: str,
        private_subnet_name: str,
    ):
        parameters['customVirtualNetworkId'] = {"value": vnet_id}
        parameters['customPublicSubnetName'] = {"value": public_subnet_name}
        parameters['customPrivateSubnetName'] = {"value": private_subnet_name}

    def _build_deployment_parameters(self, workspace_name: str) -> Dict[str, str]:
        """
        Fill template parameters the export left without a default.

        Exported templates parameterize the workspace name without a usable
        default, so any such parameter whose name mentions 'workspace' or
        'name' receives the workspace name.
        """
        declared = self.template.get('parameters', {})
        if not isinstance(declared, dict):
            raise MalformedTemplateError("Template 'parameters' must be an object")

        values: Dict[str, str] = {}
        for name, definition in declared.items():
            if not isinstance(definition, dict):
                raise MalformedTemplateError(f"Template parameter '{name}' must be an object")
            if 'defaultValue' in definition:
                continue
            if any(hint in name for hint in WORKSPACE_NAME_HINTS):
                values[name] = workspace_name
            else:
                logger.warning("Template parameter %s has no default and no value will be supplied", name)

        return values

    def to_json(self) -> str:
        return json.dumps(self.template, indent=2)

    def save_template(self, output_path: Union[str, Path]):
        """
        Save the template to a file.

        Args:
            output_path: Path to save the template
        """
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(self.template, f, indent=2)


def build_parameters_file(parameters: Dict[str, str]) -> Dict[str, Any]:
    """
    Wrap deployment parameter values in an ARM parameters document.

    Args:
        parameters: Parameter name to value

    Returns:
        Parameters dictionary
    """
    return {
        "$schema": PARAMETERS_SCHEMA,
        "contentVersion": "1.0.0.0",
        "parameters": {
            name: {"value": value} for name, value in parameters.items()
        },
    }
