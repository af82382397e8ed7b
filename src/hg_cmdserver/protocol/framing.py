"""Channel-multiplexed frame reader for the Mercurial command server.

Every frame the server writes to its stdout has the same header::

    +---------+-----------------+----------------------------+
    | Channel |   Length/Size   |            Data            |
    | 1 byte  | 4 bytes, BE u32 | ``Length`` bytes, or none  |
    +---------+-----------------+----------------------------+

- Output, Error, Debug: ``Length`` bytes of raw data follow
- Result: ``Length`` bytes follow, holding the exit status as a
  big-endian unsigned integer (4 bytes from real servers)
- Input, LineInput: no data; the field is the number of bytes the server
  wants to read from stdin
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import BinaryIO

from ..errors import (
    InvalidChannelError,
    ReadChannelError,
    ReadChunkError,
    ReadDataError,
    ReadLengthError,
)

logger = logging.getLogger(__name__)

LENGTH_FIELD = struct.Struct(">I")


class Channel(IntEnum):
    """Channel tags; each value is the byte sent on the wire."""

    OUTPUT = ord("o")
    ERROR = ord("e")
    DEBUG = ord("d")
    RESULT = ord("r")
    INPUT = ord("I")
    LINE_INPUT = ord("L")

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def carries_data(self) -> bool:
        """True for channels whose frames carry a byte payload."""
        return self in DATA_CHANNELS


DATA_CHANNELS = frozenset({Channel.OUTPUT, Channel.ERROR, Channel.DEBUG})


@dataclass(frozen=True)
class Chunk:
    """One decoded frame.

    Output/Error/Debug chunks carry ``data``; Result/Input/LineInput chunks
    carry ``value`` (exit status or requested byte count).
    """

    channel: Channel
    data: bytes = b""
    value: int | None = None

    @classmethod
    def output(cls, data: bytes) -> Chunk:
        return cls(Channel.OUTPUT, data=data)

    @classmethod
    def error(cls, data: bytes) -> Chunk:
        return cls(Channel.ERROR, data=data)

    @classmethod
    def debug(cls, data: bytes) -> Chunk:
        return cls(Channel.DEBUG, data=data)

    @classmethod
    def result(cls, value: int) -> Chunk:
        return cls(Channel.RESULT, value=value)

    @classmethod
    def input(cls, size: int) -> Chunk:
        return cls(Channel.INPUT, value=size)

    @classmethod
    def line_input(cls, size: int) -> Chunk:
        return cls(Channel.LINE_INPUT, value=size)

    @property
    def is_result(self) -> bool:
        return self.channel is Channel.RESULT

    @property
    def is_input_request(self) -> bool:
        return self.channel in (Channel.INPUT, Channel.LINE_INPUT)

    def __repr__(self) -> str:
        if self.channel.carries_data:
            return f"Chunk({self.channel.name}, data={self.data!r})"
        return f"Chunk({self.channel.name}, value={self.value})"


def read_exact(
    stream: BinaryIO, size: int, error_cls: type[ReadChunkError] = ReadDataError
) -> bytes:
    """Read exactly ``size`` bytes, raising ``error_cls`` on a short read.

    Pipes may return fewer bytes than asked for, so keep reading until the
    request is satisfied or the stream reports end-of-file.
    """
    buf = bytearray()
    while len(buf) < size:
        try:
            part = stream.read(size - len(buf))
        except OSError as e:
            raise error_cls(
                f"Could not read chunk {error_cls.stage}: {e}", size, len(buf)
            ) from e
        if not part:
            raise error_cls(
                f"Could not read chunk {error_cls.stage}: "
                f"unexpected end of stream after {len(buf)} of {size} bytes",
                size,
                len(buf),
            )
        buf += part
    return bytes(buf)


def parse_channel(tag: int) -> Channel:
    """Map a tag byte to its Channel."""
    try:
        return Channel(tag)
    except ValueError:
        raise InvalidChannelError(tag) from None


def read_chunk(stream: BinaryIO) -> Chunk:
    """Read one frame from ``stream``.

    Raises:
        ReadChannelError: The tag byte could not be read.
        InvalidChannelError: The tag byte is unknown.
        ReadLengthError: The 4-byte length/size field was cut short.
        ReadDataError: The payload was cut short.
    """
    channel = parse_channel(read_exact(stream, 1, ReadChannelError)[0])
    (length,) = LENGTH_FIELD.unpack(read_exact(stream, LENGTH_FIELD.size, ReadLengthError))

    if channel.carries_data:
        chunk = Chunk(channel, data=read_exact(stream, length, ReadDataError))
    elif channel is Channel.RESULT:
        payload = read_exact(stream, length, ReadDataError)
        chunk = Chunk.result(int.from_bytes(payload, "big"))
    else:
        chunk = Chunk(channel, value=length)

    logger.debug("Read %r", chunk)
    return chunk
