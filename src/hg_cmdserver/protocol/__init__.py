"""Protocol layer: frame reading, capabilities, hello parsing, and command framing."""

from .framing import Channel, Chunk, read_chunk
from .capabilities import Capability, UnknownCapability, resolve_capability
from .parser import Hello, parse_hello
from .commands import CommandIterator, build_runcommand
