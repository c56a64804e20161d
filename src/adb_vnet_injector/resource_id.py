"""
Resource Id Module

Parses Azure resource ids into their structural parts.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .errors import MalformedIdentifierError

WORKSPACE_TYPE = "Microsoft.Databricks/workspaces"
VNET_TYPE = "Microsoft.Network/virtualNetworks"

_RESOURCE_ID_PATTERN = re.compile(
    r'^/subscriptions/(?P<subscription>[^/]*)'
    r'/resourceGroups/(?P<group>[^/]*)'
    r'/providers/(?P<namespace>[^/]*)/(?P<type>[^/]*)/(?P<name>[^/]*)$',
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ParsedResourceId:
    """A top-level Azure resource id split into its parts."""

    subscription_id: str
    resource_group: str
    resource_type: str
    name: str

    @property
    def id(self) -> str:
        return (
            f"/subscriptions/{self.subscription_id}"
            f"/resourceGroups/{self.resource_group}"
            f"/providers/{self.resource_type}/{self.name}"
        )

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class SubnetRef:
    """A subnet addressed through its parent virtual network."""

    vnet: ParsedResourceId
    name: str

    @property
    def id(self) -> str:
        return f"{self.vnet.id}/subnets/{self.name}"

    def __str__(self) -> str:
        return self.id


def parse_resource_id(
    value: str,
    expected_type: Optional[str] = None,
    role: Optional[str] = None,
) -> ParsedResourceId:
    """
    Split an ARM resource id into subscription, resource group, type and name.

    Args:
        value: Resource id, e.g. /subscriptions/<id>/resourceGroups/<rg>/providers/<ns>/<type>/<name>
        expected_type: Provider type the id must carry (compared case-insensitively)
        role: Label used in error messages (e.g. 'workspace')

    Returns:
        ParsedResourceId

    Raises:
        MalformedIdentifierError: If any part is missing or the type is unexpected
    """
    if not isinstance(value, str) or not value.strip():
        raise MalformedIdentifierError(str(value or ''), "value is empty", role)

    candidate = value.strip().rstrip('/')
    match = _RESOURCE_ID_PATTERN.match(candidate)
    if not match:
        raise MalformedIdentifierError(
            value,
            "expected /subscriptions/<id>/resourceGroups/<group>/providers/<namespace>/<type>/<name>",
            role,
        )

    parts = match.groupdict()
    for field in ('subscription', 'group', 'namespace', 'type', 'name'):
        if not parts[field]:
            raise MalformedIdentifierError(value, f"'{field}' segment is empty", role)

    resource_type = f"{parts['namespace']}/{parts['type']}"
    if expected_type and resource_type.lower() != expected_type.lower():
        raise MalformedIdentifierError(
            value, f"expected a {expected_type} resource, got {resource_type}", role
        )

    return ParsedResourceId(
        subscription_id=parts['subscription'],
        resource_group=parts['group'],
        resource_type=expected_type or resource_type,
        name=parts['name'],
    )


def parse_workspace_id(value: str) -> ParsedResourceId:
    """Parse a Databricks workspace resource id."""
    return parse_resource_id(value, WORKSPACE_TYPE, role='workspace')


def parse_vnet_id(value: str) -> ParsedResourceId:
    """Parse a virtual network resource id."""
    return parse_resource_id(value, VNET_TYPE, role='virtual network')
