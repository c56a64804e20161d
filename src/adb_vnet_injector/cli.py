"""
Command Line Interface Module

Provides CLI commands for moving an Azure Databricks workspace into a
customer-managed virtual network.
"""

import sys
import json
import logging
import argparse
from typing import Any, Dict, Optional

from .config_loader import ConfigLoader
from .errors import (
    InjectionError,
    MissingDelegationError,
    MissingNetworkSecurityGroupError,
    ResourceNotFoundError,
)
from .azure_cli import AzureCli
from .models import ValidatedInputs
from .orchestrator import Orchestrator
from .resource_id import parse_vnet_id
from .template_transformer import TemplateTransformer, build_parameters_file
from .validator import ConfigValidator, InjectionValidator

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

INPUT_PROMPTS = {
    'workspace_id': "Workspace resource id",
    'vnet_id': "Virtual network resource id",
    'public_subnet': "Public subnet name",
    'private_subnet': "Private subnet name",
}


class InjectorCLI:
    """Command-line interface for adb-vnet-injector."""

    def __init__(self):
        """Initialize the CLI."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the argument parser."""
        parser = argparse.ArgumentParser(
            prog='adb-vnet-injector',
            description='Reconfigure an Azure Databricks workspace to use VNet injection',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Move a workspace into a customer-managed VNet
  adb-vnet-injector migrate --workspace-id <id> --vnet-id <id> \\
      --public-subnet snet-host --private-subnet snet-container

  # Same, reading the inputs from a file and stopping before deployment
  adb-vnet-injector migrate --config config/examples/vnet-injection.yaml --dry-run

  # Only check the VNet and subnets
  adb-vnet-injector validate --config config/examples/vnet-injection.yaml

  # Patch an already exported template offline
  adb-vnet-injector transform --template exported.json --output injected.json \\
      --vnet-id <id> --public-subnet snet-host --private-subnet snet-container \\
      --workspace-name adb-analytics
            """
        )

        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        # Migrate command
        migrate_parser = subparsers.add_parser(
            'migrate',
            help='Validate, export, patch and redeploy the workspace'
        )
        self._add_input_arguments(migrate_parser)
        migrate_parser.add_argument(
            '--output-dir', '-o',
            help='Directory for the exported and modified templates (default: current directory)'
        )
        migrate_parser.add_argument(
            '--deployment-name',
            help='Name of the group deployment'
        )
        migrate_parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Write the modified template without deploying it'
        )

        # Validate command
        validate_parser = subparsers.add_parser(
            'validate',
            help='Check the workspace, VNet and subnets'
        )
        self._add_input_arguments(validate_parser)

        # Transform command
        transform_parser = subparsers.add_parser(
            'transform',
            help='Patch an exported template file without contacting Azure'
        )
        transform_parser.add_argument(
            '--template', '-t',
            required=True,
            help='Path to the exported ARM template'
        )
        transform_parser.add_argument(
            '--output', '-o',
            required=True,
            help='Output path for the modified ARM template'
        )
        transform_parser.add_argument('--vnet-id', required=True, help='Virtual network resource id')
        transform_parser.add_argument('--public-subnet', required=True, help='Public subnet name')
        transform_parser.add_argument('--private-subnet', required=True, help='Private subnet name')
        transform_parser.add_argument(
            '--workspace-name',
            required=True,
            help='Value for template parameters exported without a default'
        )
        transform_parser.add_argument(
            '--parameters-output',
            help='Output path for the deployment parameters file'
        )
        transform_parser.add_argument(
            '--verbose', '-v',
            action='store_true',
            help='Enable verbose output'
        )

        # Version command
        subparsers.add_parser('version', help='Show version information')

        return parser

    def _add_input_arguments(self, parser: argparse.ArgumentParser):
        parser.add_argument(
            '--config', '-c',
            help='Path to YAML configuration file'
        )
        parser.add_argument('--workspace-id', help='Databricks workspace resource id')
        parser.add_argument('--vnet-id', help='Virtual network resource id')
        parser.add_argument('--public-subnet', help='Public (host) subnet name')
        parser.add_argument('--private-subnet', help='Private (container) subnet name')
        parser.add_argument('--subscription-id', help='Azure subscription ID')
        parser.add_argument(
            '--interactive', '-i',
            action='store_true',
            help='Prompt for missing or rejected VNet and subnet values'
        )
        parser.add_argument(
            '--verbose', '-v',
            action='store_true',
            help='Enable verbose output'
        )

    def run(self, args: Optional[list] = None):
        """
        Run the CLI with the given arguments.

        Args:
            args: Command-line arguments (defaults to sys.argv[1:])
        """
        parsed_args = self.parser.parse_args(args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        verbose = getattr(parsed_args, 'verbose', False)
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.WARNING,
            format=LOG_FORMAT,
        )

        try:
            if parsed_args.command == 'migrate':
                return self._migrate(parsed_args)
            elif parsed_args.command == 'validate':
                return self._validate(parsed_args)
            elif parsed_args.command == 'transform':
                return self._transform(parsed_args)
            elif parsed_args.command == 'version':
                return self._version()
        except InjectionError as e:
            print(f"\n❌ Error [{e.kind}]: {e}", file=sys.stderr)
            return 1
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            if verbose:
                import traceback
                traceback.print_exc()
            return 1

        return 0

    def _migrate(self, args) -> int:
        """Handle migrate command."""
        config = self._load_config(args)
        if config is None:
            return 1

        client = AzureCli(subscription_id=config.get('subscription_id'))
        if not client.is_installed():
            print("❌ Azure CLI is not installed or not in PATH")
            print("   Install from: https://docs.microsoft.com/en-us/cli/azure/install-azure-cli")
            return 1

        orchestrator = Orchestrator(
            client,
            output_dir=config.get('output_dir') or '.',
            deployment_name=config.get('deployment_name'),
        )

        print("Validating workspace, virtual network and subnets...")
        inputs = self._validate_inputs(orchestrator.validator, config, args.interactive)
        print("✅ Inputs are valid for VNet injection")

        print(f"\nExporting and patching template of '{inputs.workspace_name}'...")
        result = orchestrator.apply(inputs, dry_run=args.dry_run)

        print(f"  Exported template: {result.exported_template_path}")
        print(f"  Modified template: {result.modified_template_path}")
        if result.parameters_path:
            print(f"  Parameters file:   {result.parameters_path}")

        if args.dry_run:
            print("\n✅ Dry run completed successfully")
            print(f"Deployment '{result.deployment_name}' would redeploy the workspace "
                  f"into '{inputs.vnet.name}'")
            return 0

        print(f"\n✅ Deployment '{result.deployment_name}' completed successfully")
        return 0

    def _validate(self, args) -> int:
        """Handle validate command."""
        config = self._load_config(args)
        if config is None:
            return 1

        validator = InjectionValidator(AzureCli(subscription_id=config.get('subscription_id')))

        print("Validating workspace, virtual network and subnets...")
        inputs = self._validate_inputs(validator, config, args.interactive)

        print(f"\n  Workspace:      {inputs.workspace_name} ({inputs.workspace_info.region})")
        print(f"  VNet:           {inputs.vnet.name} ({inputs.vnet_info.region})")
        print(f"  Public subnet:  {inputs.public_subnet.name}")
        print(f"  Private subnet: {inputs.private_subnet.name}")
        print("\n✅ Inputs are valid for VNet injection")
        return 0

    def _transform(self, args) -> int:
        """Handle transform command."""
        vnet = parse_vnet_id(args.vnet_id)

        print(f"Loading exported template from {args.template}...")
        transformer = TemplateTransformer.from_file(args.template)
        result = transformer.transform(
            vnet.id,
            args.public_subnet,
            args.private_subnet,
            args.workspace_name,
        )

        transformer.save_template(args.output)
        print(f"\n✅ Template generated: {args.output}")

        if result.parameters:
            print("\nParameters without a default:")
            for name, value in result.parameters.items():
                print(f"  {name} = {value}")

            if args.parameters_output:
                with open(args.parameters_output, 'w', encoding='utf-8') as f:
                    json.dump(build_parameters_file(result.parameters), f, indent=2)
                print(f"✅ Parameters file generated: {args.parameters_output}")

        return 0

    def _version(self) -> int:
        """Handle version command."""
        from . import __version__, __author__
        print(f"adb-vnet-injector version {__version__}")
        print(f"Author: {__author__}")
        return 0

    def _load_config(self, args) -> Optional[Dict[str, Any]]:
        """
        Merge the configuration file with command-line values and validate it.

        Returns:
            The configuration, or None if it is invalid
        """
        loader = ConfigLoader(args.config)
        if args.config:
            print(f"Loading configuration from {args.config}...")
            loader.load()

        loader.merge_overrides({
            'workspace_id': args.workspace_id,
            'vnet_id': args.vnet_id,
            'public_subnet': args.public_subnet,
            'private_subnet': args.private_subnet,
            'subscription_id': args.subscription_id,
            'output_dir': getattr(args, 'output_dir', None),
            'deployment_name': getattr(args, 'deployment_name', None),
        })

        missing = loader.missing_inputs()
        if missing and args.interactive:
            for key in missing:
                loader.config[key] = self._prompt(INPUT_PROMPTS[key])
        elif missing:
            flags = ', '.join('--' + key.replace('_', '-') for key in missing)
            print(f"❌ Missing required inputs: {flags}")
            return None

        config = loader.to_dict()
        is_valid, errors, warnings = ConfigValidator().validate(config)

        if warnings:
            print("\nWarnings:")
            for warning in warnings:
                print(f"  ⚠️  {warning}")

        if not is_valid:
            print("\nValidation failed:")
            for error in errors:
                print(f"  ❌ {error}")
            return None

        return config

    def _validate_inputs(
        self,
        validator: InjectionValidator,
        config: Dict[str, Any],
        interactive: bool,
    ) -> ValidatedInputs:
        """
        Validate the inputs, re-prompting for a rejected VNet or subnet when interactive.
        """
        while True:
            try:
                return validator.validate(
                    config['workspace_id'],
                    config['vnet_id'],
                    config['public_subnet'],
                    config['private_subnet'],
                )
            except (
                ResourceNotFoundError,
                MissingDelegationError,
                MissingNetworkSecurityGroupError,
            ) as e:
                key = self._correctable_input(e)
                if not interactive or key is None:
                    raise

                print(f"  ❌ {e}")
                value = self._prompt(f"{INPUT_PROMPTS[key]} (leave empty to abort)", required=False)
                if not value:
                    raise
                config[key] = value

    @staticmethod
    def _correctable_input(error: InjectionError) -> Optional[str]:
        """Map a validation error to the input the user can correct."""
        role = getattr(error, 'role', None)
        if role in ('public', 'private'):
            return f"{role}_subnet"
        if isinstance(error, ResourceNotFoundError) and error.resource_kind == 'virtual network':
            return 'vnet_id'
        return None

    @staticmethod
    def _prompt(label: str, required: bool = True) -> str:
        while True:
            value = input(f"{label}: ").strip()
            if value or not required:
                return value


def main():
    """Main entry point for the CLI."""
    cli = InjectorCLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()
