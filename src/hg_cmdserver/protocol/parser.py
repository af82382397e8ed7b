"""Parsing of the hello frame the server sends right after it starts.

The hello is an Output frame whose payload is a block of ``key: value``
lines, for example::

    capabilities: getencoding runcommand
    encoding: UTF-8
    pid: 12345
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import (
    HelloDecodeError,
    InvalidHelloChannelError,
    MissingRunCommandError,
    NoCapabilitiesError,
    NoEncodingError,
)
from .capabilities import AnyCapability, Capability, resolve_capability
from .framing import Channel, Chunk


@dataclass(frozen=True)
class Hello:
    """Values negotiated during the handshake."""

    encoding: str
    capabilities: frozenset[AnyCapability]


def parse_hello_fields(text: str) -> dict[str, str]:
    """Split hello text into a dict of fields.

    Lines without a ``": "`` separator are skipped.
    """
    fields: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition(": ")
        if sep:
            fields[key] = value
    return fields


def parse_hello(chunk: Chunk) -> Hello:
    """Validate the hello chunk and extract encoding and capabilities.

    Unrecognized fields are ignored so newer servers remain usable.

    Raises:
        InvalidHelloChannelError: The chunk is not on the output channel.
        HelloDecodeError: The payload is not UTF-8.
        NoEncodingError: There is no ``encoding`` field.
        NoCapabilitiesError: There is no ``capabilities`` field.
        MissingRunCommandError: ``runcommand`` is not among the capabilities.
    """
    if chunk.channel is not Channel.OUTPUT:
        raise InvalidHelloChannelError(chunk.channel)

    try:
        text = chunk.data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise HelloDecodeError(f"Could not decode hello from Mercurial: {e}") from e

    fields = parse_hello_fields(text)

    if "encoding" not in fields:
        raise NoEncodingError()
    if "capabilities" not in fields:
        raise NoCapabilitiesError()

    capabilities = frozenset(
        resolve_capability(token) for token in fields["capabilities"].split(" ") if token
    )
    if Capability.RUNCOMMAND not in capabilities:
        raise MissingRunCommandError()

    return Hello(encoding=fields["encoding"], capabilities=capabilities)
