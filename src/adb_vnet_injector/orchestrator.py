"""
Orchestrator Module

Runs the validate, export, transform and deploy steps in sequence.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import AzureCliError, MalformedTemplateError
from .models import ValidatedInputs
from .template_transformer import TemplateTransformer, build_parameters_file
from .validator import InjectionValidator

logger = logging.getLogger(__name__)

DEPLOYMENT_NAME_SUFFIX = "-vnet-injection"
MAX_DEPLOYMENT_NAME_LENGTH = 64


@dataclass
class MigrationResult:
    """Outcome of a run."""

    inputs: ValidatedInputs
    deployment_name: str
    exported_template_path: Path
    modified_template_path: Path
    parameters: Dict[str, str] = field(default_factory=dict)
    parameters_path: Optional[Path] = None
    deployed: bool = False
    deployment: Dict[str, Any] = field(default_factory=dict)


class Orchestrator:
    """Orchestrate the reconfiguration of a workspace for VNet injection."""

    def __init__(
        self,
        client,
        output_dir: str = ".",
        deployment_name: Optional[str] = None,
    ):
        """
        Initialize the Orchestrator.

        Args:
            client: Azure collaborator providing lookups, export and deploy (see AzureCli)
            output_dir: Directory receiving the exported and modified templates
            deployment_name: Name of the group deployment (defaults to '<workspace>-vnet-injection')
        """
        self.client = client
        self.output_dir = Path(output_dir)
        self.deployment_name = deployment_name
        self.validator = InjectionValidator(client)

    def validate(
        self,
        workspace_id: str,
        vnet_id: str,
        public_subnet: str,
        private_subnet: str,
    ) -> ValidatedInputs:
        return self.validator.validate(workspace_id, vnet_id, public_subnet, private_subnet)

    def run(
        self,
        workspace_id: str,
        vnet_id: str,
        public_subnet: str,
        private_subnet: str,
        dry_run: bool = False,
    ) -> MigrationResult:
        """
        Reconfigure the workspace to use the given virtual network.

        Args:
            workspace_id: Databricks workspace resource id
            vnet_id: Virtual network resource id
            public_subnet: Host subnet name
            private_subnet: Container subnet name
            dry_run: Stop after writing the modified template

        Returns:
            MigrationResult

        Raises:
            InjectionError: On the first failed step
        """
        inputs = self.validate(workspace_id, vnet_id, public_subnet, private_subnet)
        return self.apply(inputs, dry_run=dry_run)

    def apply(self, inputs: ValidatedInputs, dry_run: bool = False) -> MigrationResult:
        """Export, transform and deploy for already validated inputs."""
        workspace = inputs.workspace
        deployment_name = self.deployment_name or default_deployment_name(workspace.name)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        logger.info("Exporting template of workspace %s", workspace.name)
        exported = self._export(inputs)
        exported_path = self.output_dir / f"{workspace.name}-exported.json"
        self._write_json(exported_path, exported)

        transformer = TemplateTransformer(exported)
        transformed = transformer.transform(
            inputs.vnet.id,
            inputs.public_subnet.name,
            inputs.private_subnet.name,
            workspace.name,
        )

        modified_path = self.output_dir / f"{workspace.name}-vnet-injected.json"
        transformer.save_template(modified_path)

        result = MigrationResult(
            inputs=inputs,
            deployment_name=deployment_name,
            exported_template_path=exported_path,
            modified_template_path=modified_path,
            parameters=transformed.parameters,
        )

        if transformed.parameters:
            result.parameters_path = self.output_dir / f"{workspace.name}-vnet-injected.parameters.json"
            self._write_json(result.parameters_path, build_parameters_file(transformed.parameters))

        if dry_run:
            logger.info("Dry run, skipping deployment %s", deployment_name)
            return result

        logger.info("Starting deployment %s", deployment_name)
        result.deployment = self.client.deploy(
            workspace.resource_group,
            deployment_name,
            transformed.template,
            transformed.parameters,
            subscription_id=workspace.subscription_id,
        )
        result.deployed = True
        return result

    def _export(self, inputs: ValidatedInputs) -> Dict[str, Any]:
        workspace = inputs.workspace
        try:
            exported = self.client.export_template(
                workspace.resource_group,
                [workspace.id],
                subscription_id=workspace.subscription_id,
            )
        except AzureCliError as e:
            raise MalformedTemplateError(
                f"Could not export template of workspace '{workspace.name}': {e}"
            ) from e

        if not exported:
            raise MalformedTemplateError(
                f"Export of workspace '{workspace.name}' returned an empty template"
            )
        return exported

    @staticmethod
    def _write_json(path: Path, document: Dict[str, Any]):
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(document, f, indent=2)


def default_deployment_name(workspace_name: str) -> str:
    """Derive a deployment name from the workspace, within the 64 character limit."""
    keep = MAX_DEPLOYMENT_NAME_LENGTH - len(DEPLOYMENT_NAME_SUFFIX)
    return f"{workspace_name[:keep]}{DEPLOYMENT_NAME_SUFFIX}"
