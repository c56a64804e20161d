"""
Validator Module

Checks that a workspace, virtual network and subnet pair can be used for
VNet injection, and validates run configuration files against the schema.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from jsonschema import validate, ValidationError

from .errors import (
    AzureCliError,
    MalformedIdentifierError,
    MissingDelegationError,
    MissingNetworkSecurityGroupError,
    RegionMismatchError,
    ResourceNotFoundError,
)
from .models import SubnetInfo, ValidatedInputs, VNetInfo, WorkspaceInfo, regions_match
from .resource_id import ParsedResourceId, SubnetRef, parse_vnet_id, parse_workspace_id

logger = logging.getLogger(__name__)

SCHEMA_FILE = "injection-config.schema.yaml"


class InjectionValidator:
    """Validate injection inputs against live resource state."""

    def __init__(self, lookup):
        """
        Initialize the InjectionValidator.

        Args:
            lookup: Object exposing get_resource(resource_id) and
                get_subnet(resource_group, vnet_name, subnet_name, subscription_id=None),
                each returning the resource JSON or None
        """
        self.lookup = lookup

    def validate(
        self,
        workspace_id: str,
        vnet_id: str,
        public_subnet_name: str,
        private_subnet_name: str,
    ) -> ValidatedInputs:
        """
        Run every precondition in order, stopping at the first failure.

        Returns:
            ValidatedInputs

        Raises:
            MalformedIdentifierError, ResourceNotFoundError, RegionMismatchError,
            MissingDelegationError, MissingNetworkSecurityGroupError
        """
        workspace = parse_workspace_id(workspace_id)
        workspace_info = WorkspaceInfo.from_az(
            self._get_resource(workspace, 'workspace')
        )
        logger.debug("Workspace %s is in %s", workspace.name, workspace_info.region)

        vnet = parse_vnet_id(vnet_id)
        vnet_info = VNetInfo.from_az(self._get_resource(vnet, 'virtual network'))
        logger.debug("Virtual network %s is in %s", vnet.name, vnet_info.region)

        if not regions_match(workspace_info.region, vnet_info.region):
            raise RegionMismatchError(workspace_info.region, vnet_info.region)

        public_subnet = self.check_subnet(SubnetRef(vnet, public_subnet_name), 'public')
        private_subnet = self.check_subnet(SubnetRef(vnet, private_subnet_name), 'private')

        return ValidatedInputs(
            workspace=workspace,
            vnet=vnet,
            public_subnet=public_subnet,
            private_subnet=private_subnet,
            workspace_info=workspace_info,
            vnet_info=vnet_info,
        )

    def check_subnet(self, subnet: SubnetRef, role: str) -> SubnetInfo:
        """
        Resolve a subnet and check its delegation and NSG.

        Args:
            subnet: Subnet reference
            role: 'public' or 'private'
        """
        if not subnet.name or not subnet.name.strip():
            raise ResourceNotFoundError('subnet', '', role=role, detail="no subnet name given")

        try:
            payload = self.lookup.get_subnet(
                subnet.vnet.resource_group,
                subnet.vnet.name,
                subnet.name,
                subscription_id=subnet.vnet.subscription_id,
            )
        except AzureCliError as e:
            raise ResourceNotFoundError('subnet', subnet.name, role=role, detail=str(e)) from e

        if not payload:
            raise ResourceNotFoundError(
                'subnet', subnet.name, role=role,
                detail=f"not present in virtual network '{subnet.vnet.name}'",
            )

        info = SubnetInfo.from_az(payload)
        if not info.is_delegated:
            raise MissingDelegationError(subnet.name, role, info.delegations)
        if not info.has_network_security_group:
            raise MissingNetworkSecurityGroupError(subnet.name, role)

        logger.debug("The %s subnet %s is valid for injection", role, subnet.name)
        return info

    def _get_resource(self, resource: ParsedResourceId, kind: str) -> Dict[str, Any]:
        try:
            payload = self.lookup.get_resource(resource.id)
        except AzureCliError as e:
            raise ResourceNotFoundError(kind, resource.id, detail=str(e)) from e

        if not payload:
            raise ResourceNotFoundError(kind, resource.id)
        return payload


class ConfigValidator:
    """Validate run configuration files against schema and business rules."""

    def __init__(self, schema_path: Optional[str] = None):
        """
        Initialize the ConfigValidator.

        Args:
            schema_path: Path to the schema file (defaults to the bundled one)
        """
        self.schema_path = Path(schema_path) if schema_path else self._find_schema_file()
        self.schema = self._load_schema()
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def _find_schema_file(self) -> Path:
        """Locate the schema bundled with the package."""
        import importlib.resources as pkg_resources

        schema_path = pkg_resources.files('adb_vnet_injector') / 'schemas' / SCHEMA_FILE
        return Path(str(schema_path))

    def _load_schema(self) -> Dict[str, Any]:
        """Load the JSON schema from file."""
        if not self.schema_path.exists():
            raise FileNotFoundError(f"Schema file not found: {self.schema_path}")

        with open(self.schema_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)

    def validate(self, config: Dict[str, Any]) -> Tuple[bool, List[str], List[str]]:
        """
        Validate configuration against schema and business rules.

        Args:
            config: Configuration dictionary to validate

        Returns:
            Tuple of (is_valid, errors, warnings)
        """
        self.errors = []
        self.warnings = []

        try:
            validate(instance=config, schema=self.schema)
        except ValidationError as e:
            location = '.'.join(str(p) for p in e.absolute_path)
            prefix = f"{location}: " if location else ""
            self.errors.append(f"Schema validation error: {prefix}{e.message}")
            return False, self.errors, self.warnings

        self._validate_identifiers(config)
        self._validate_subnets(config)
        self._validate_output_dir(config)

        is_valid = len(self.errors) == 0
        return is_valid, self.errors, self.warnings

    def _validate_identifiers(self, config: Dict[str, Any]):
        """Validate resource id structure."""
        for key, parser in (('workspace_id', parse_workspace_id), ('vnet_id', parse_vnet_id)):
            try:
                parsed = parser(config[key])
            except MalformedIdentifierError as e:
                self.errors.append(str(e))
                continue

            subscription_id = config.get('subscription_id')
            if subscription_id and parsed.subscription_id.lower() != subscription_id.lower():
                self.warnings.append(
                    f"{key} belongs to subscription {parsed.subscription_id}, "
                    f"not the configured {subscription_id}"
                )

    def _validate_subnets(self, config: Dict[str, Any]):
        """Validate the public/private subnet pair."""
        public = config['public_subnet'].strip()
        private = config['private_subnet'].strip()
        if public.lower() == private.lower():
            self.errors.append(
                f"Public and private subnet must differ (both are '{public}')"
            )

    def _validate_output_dir(self, config: Dict[str, Any]):
        output_dir = config.get('output_dir')
        if output_dir and not Path(output_dir).exists():
            self.warnings.append(f"Output directory {output_dir} does not exist and will be created")
