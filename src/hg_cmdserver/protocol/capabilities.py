"""Capability names advertised in the command server hello."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Union


class Capability(Enum):
    """Capabilities this client knows about."""

    RUNCOMMAND = "runcommand"
    GETENCODING = "getencoding"


@dataclass(frozen=True)
class UnknownCapability:
    """A capability token this client does not recognize."""

    name: str

    def __str__(self) -> str:
        return self.name


AnyCapability = Union[Capability, UnknownCapability]

CAPABILITIES: MappingProxyType[str, Capability] = MappingProxyType(
    {cap.value: cap for cap in Capability}
)


def resolve_capability(name: str) -> AnyCapability:
    """Resolve a capability token; unknown tokens keep their original text."""
    return CAPABILITIES.get(name) or UnknownCapability(name)


def capability_name(capability: AnyCapability) -> str:
    """Wire name of a resolved capability."""
    if isinstance(capability, Capability):
        return capability.value
    return capability.name
