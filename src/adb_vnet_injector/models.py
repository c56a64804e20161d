"""
Models Module

Lookup results consumed by the validator.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet

from .resource_id import WORKSPACE_TYPE, ParsedResourceId


def regions_match(first: str, second: str) -> bool:
    """Compare two region codes case-insensitively."""
    return (first or '').strip().lower() == (second or '').strip().lower()


@dataclass(frozen=True)
class WorkspaceInfo:
    id: str
    name: str
    region: str

    @classmethod
    def from_az(cls, payload: Dict[str, Any]) -> 'WorkspaceInfo':
        return cls(
            id=payload.get('id', ''),
            name=payload.get('name', ''),
            region=payload.get('location', ''),
        )


@dataclass(frozen=True)
class VNetInfo:
    id: str
    name: str
    region: str

    @classmethod
    def from_az(cls, payload: Dict[str, Any]) -> 'VNetInfo':
        return cls(
            id=payload.get('id', ''),
            name=payload.get('name', ''),
            region=payload.get('location', ''),
        )


@dataclass(frozen=True)
class SubnetInfo:
    """Delegation and NSG state of a subnet."""

    name: str
    delegations: FrozenSet[str] = field(default_factory=frozenset)
    has_network_security_group: bool = False

    @property
    def is_delegated(self) -> bool:
        return WORKSPACE_TYPE in self.delegations

    @property
    def valid_for_injection(self) -> bool:
        return self.is_delegated and self.has_network_security_group

    @classmethod
    def from_az(cls, payload: Dict[str, Any]) -> 'SubnetInfo':
        """
        Build from `az network vnet subnet show` output.

        Delegations may come flattened (serviceName at the top level) or
        nested under properties, depending on the CLI version.
        """
        delegations = set()
        for delegation in payload.get('delegations') or []:
            service = delegation.get('serviceName') or \
                (delegation.get('properties') or {}).get('serviceName')
            if service:
                delegations.add(service)

        nsg = payload.get('networkSecurityGroup') or {}
        return cls(
            name=payload.get('name', ''),
            delegations=frozenset(delegations),
            has_network_security_group=bool(nsg.get('id')),
        )


@dataclass(frozen=True)
class ValidatedInputs:
    """Inputs that passed every injection precondition."""

    workspace: ParsedResourceId
    vnet: ParsedResourceId
    public_subnet: SubnetInfo
    private_subnet: SubnetInfo
    workspace_info: WorkspaceInfo
    vnet_info: VNetInfo

    @property
    def workspace_name(self) -> str:
        return self.workspace.name
