"""
Error Module

Exception types raised while validating inputs, transforming the exported
template and deploying it back. Every error is terminal for a run.
"""

from typing import Optional


class InjectionError(Exception):
    """Base class for all VNet injection failures."""

    kind = "InjectionError"

    def __init__(self, message: str, phase: str = "validate"):
        super().__init__(message)
        self.message = message
        self.phase = phase

    def __str__(self) -> str:
        return self.message


class MalformedIdentifierError(InjectionError):
    """An input resource id does not match the expected structure."""

    kind = "MalformedIdentifier"

    def __init__(self, value: str, reason: str, role: Optional[str] = None):
        label = f"{role} resource id" if role else "resource id"
        super().__init__(f"Malformed {label} '{value}': {reason}")
        self.value = value
        self.reason = reason
        self.role = role


class ResourceNotFoundError(InjectionError):
    """A referenced workspace, VNet, subnet or template resource does not exist."""

    kind = "ResourceNotFound"

    def __init__(
        self,
        resource_kind: str,
        identifier: str,
        role: Optional[str] = None,
        detail: Optional[str] = None,
        phase: str = "validate",
    ):
        subject = f"{role} {resource_kind}" if role else resource_kind
        message = f"{subject.capitalize()} '{identifier}' not found"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, phase=phase)
        self.resource_kind = resource_kind
        self.identifier = identifier
        self.role = role
        self.detail = detail


class RegionMismatchError(InjectionError):
    """The virtual network lives in a different region than the workspace."""

    kind = "RegionMismatch"

    def __init__(self, workspace_region: str, vnet_region: str):
        super().__init__(
            f"Virtual network region '{vnet_region}' does not match "
            f"workspace region '{workspace_region}'"
        )
        self.workspace_region = workspace_region
        self.vnet_region = vnet_region


class MissingDelegationError(InjectionError):
    """A subnet is not delegated to Microsoft.Databricks/workspaces."""

    kind = "MissingDelegation"

    def __init__(self, subnet_name: str, role: str, delegations=()):
        found = ", ".join(sorted(delegations)) or "none"
        super().__init__(
            f"The {role} subnet '{subnet_name}' is not delegated to "
            f"Microsoft.Databricks/workspaces (delegations: {found})"
        )
        self.subnet_name = subnet_name
        self.role = role


class MissingNetworkSecurityGroupError(InjectionError):
    """A subnet has no network security group associated."""

    kind = "MissingNetworkSecurityGroup"

    def __init__(self, subnet_name: str, role: str):
        super().__init__(
            f"The {role} subnet '{subnet_name}' has no network security group associated"
        )
        self.subnet_name = subnet_name
        self.role = role


class MalformedTemplateError(InjectionError):
    """The exported template does not parse or lacks the expected structure."""

    kind = "MalformedTemplate"

    def __init__(self, message: str):
        super().__init__(message, phase="transform")


class DeploymentFailedError(InjectionError):
    """The deployment of the modified template was rejected."""

    kind = "DeploymentFailed"

    def __init__(self, deployment_name: str, reason: str):
        super().__init__(
            f"Deployment '{deployment_name}' failed: {reason}", phase="deploy"
        )
        self.deployment_name = deployment_name
        self.reason = reason


class AzureCliError(Exception):
    """Exception raised when an Azure CLI command fails."""

    def __init__(self, command: str, stderr: str, returncode: Optional[int] = None):
        detail = stderr.strip() or f"exit code {returncode}"
        super().__init__(f"az {command}: {detail}")
        self.command = command
        self.stderr = stderr
        self.returncode = returncode
