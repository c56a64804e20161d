"""
Azure CLI Module

Resource lookups, template export and deployment through the Azure CLI.
"""

import json
import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import AzureCliError, DeploymentFailedError
from .template_transformer import build_parameters_file

logger = logging.getLogger(__name__)

NOT_FOUND_MARKERS = ("ResourceNotFound", "NotFound", "was not found", "could not be found")


class AzureCli:
    """Thin wrapper around the `az` executable."""

    def __init__(self, subscription_id: Optional[str] = None, timeout: int = 300):
        """
        Initialize the AzureCli wrapper.

        Args:
            subscription_id: Subscription passed to commands that accept one
            timeout: Timeout in seconds for each command
        """
        self.subscription_id = subscription_id
        self.timeout = timeout

    def is_installed(self) -> bool:
        """Check if Azure CLI is installed."""
        # On Windows, try both 'az' and 'az.cmd'
        commands = ['az', 'az.cmd'] if os.name == 'nt' else ['az']

        for cmd in commands:
            try:
                result = subprocess.run(
                    [cmd, '--version'],
                    capture_output=True,
                    text=True,
                    timeout=5,
                    shell=(os.name == 'nt'),
                )
                if result.returncode == 0:
                    return True
            except (subprocess.TimeoutExpired, FileNotFoundError):
                continue

        return False

    def get_resource(self, resource_id: str) -> Optional[Dict[str, Any]]:
        """
        Look up a resource by id.

        Returns:
            Resource JSON, or None if it does not exist
        """
        return self._run_json(['resource', 'show', '--ids', resource_id], allow_missing=True)

    def get_subnet(
        self,
        resource_group: str,
        vnet_name: str,
        subnet_name: str,
        subscription_id: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Look up a subnet of a virtual network.

        Returns:
            Subnet JSON, or None if it does not exist
        """
        args = [
            'network', 'vnet', 'subnet', 'show',
            '--resource-group', resource_group,
            '--vnet-name', vnet_name,
            '--name', subnet_name,
        ]
        return self._run_json(args, allow_missing=True, subscription_id=subscription_id)

    def export_template(
        self,
        resource_group: str,
        resource_ids: List[str],
        subscription_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Export the ARM template of the given resources.

        Returns:
            Template JSON

        Raises:
            AzureCliError: If the export fails
        """
        args = ['group', 'export', '--resource-group', resource_group, '--resource-ids']
        args.extend(resource_ids)
        return self._run_json(args, subscription_id=subscription_id)

    def deploy(
        self,
        resource_group: str,
        deployment_name: str,
        template: Dict[str, Any],
        parameters: Dict[str, str],
        subscription_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Submit a template as an incremental group deployment.

        Args:
            resource_group: Target resource group
            deployment_name: Name of the deployment
            template: ARM template
            parameters: Parameter name to value

        Returns:
            Deployment JSON reported by the CLI

        Raises:
            DeploymentFailedError: If the deployment is rejected or fails
        """
        temp_dir = Path(tempfile.mkdtemp(prefix='adb-vnet-'))
        template_path = temp_dir / f"{deployment_name}.json"
        params_path = temp_dir / f"{deployment_name}-params.json"

        try:
            with open(template_path, 'w', encoding='utf-8') as f:
                json.dump(template, f, indent=2)

            args = [
                'deployment', 'group', 'create',
                '--resource-group', resource_group,
                '--name', deployment_name,
                '--template-file', str(template_path),
                '--mode', 'Incremental',
            ]

            if parameters:
                with open(params_path, 'w', encoding='utf-8') as f:
                    json.dump(build_parameters_file(parameters), f, indent=2)
                args.extend(['--parameters', f"@{params_path}"])

            try:
                result = self._run_json(args, subscription_id=subscription_id)
            except AzureCliError as e:
                raise DeploymentFailedError(deployment_name, e.stderr.strip() or str(e)) from e
        finally:
            for path in (template_path, params_path):
                try:
                    path.unlink()
                except FileNotFoundError:
                    pass
            temp_dir.rmdir()

        state = ((result or {}).get('properties') or {}).get('provisioningState')
        if state and state not in ('Succeeded', 'Accepted', 'Running'):
            raise DeploymentFailedError(deployment_name, f"provisioning state {state}")

        return result or {}

    def _run_json(
        self,
        args: List[str],
        allow_missing: bool = False,
        subscription_id: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Run a command and parse its JSON output."""
        subscription = subscription_id or self.subscription_id
        if subscription:
            args = args + ['--subscription', subscription]

        result = self._run_az_command(args + ['--output', 'json'])
        command = ' '.join(args)

        if result.returncode != 0:
            if allow_missing and any(marker in result.stderr for marker in NOT_FOUND_MARKERS):
                logger.debug("az %s: not found", command)
                return None
            raise AzureCliError(command, result.stderr, result.returncode)

        if not result.stdout.strip():
            return None

        try:
            return json.loads(result.stdout)
        except ValueError as e:
            raise AzureCliError(command, f"unexpected non-JSON output: {e}") from e

    def _run_az_command(self, args: List[str]) -> subprocess.CompletedProcess:
        """
        Run an Azure CLI command.

        Args:
            args: Command arguments

        Returns:
            CompletedProcess instance with captured text output
        """
        # On Windows, use 'az.cmd' or shell=True
        if os.name == 'nt':
            cmd = ['az.cmd'] + args
        else:
            cmd = ['az'] + args

        logger.debug("Executing command: %s", ' '.join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                shell=(os.name == 'nt'),
            )
        except FileNotFoundError as e:
            raise AzureCliError(' '.join(args), "Azure CLI is not installed or not in PATH") from e
        except subprocess.TimeoutExpired as e:
            raise AzureCliError(' '.join(args), f"timed out after {self.timeout}s") from e

        logger.debug("Exited command with code %s", result.returncode)
        if result.stderr:
            logger.debug("Stderr: %s", result.stderr)
        return result
