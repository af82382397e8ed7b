"""Exception hierarchy for the command server client.

Everything raised on purpose derives from :class:`CommandServerError`, so
callers can catch the whole family at the configuration layer and decide
whether to build a fresh connection.
"""

from __future__ import annotations


class CommandServerError(Exception):
    """Base class for all command server failures."""


# ─── FRAME READING ───────────────────────────────────────────────────


class ReadChunkError(CommandServerError):
    """A frame could not be read from the server's stdout.

    Attributes:
        stage: Which sub-read failed ("channel", "length" or "data").
        expected: Number of bytes the sub-read needed.
        got: Number of bytes actually received before the stream ended.
    """

    stage = "chunk"

    def __init__(self, message: str, expected: int = 0, got: int = 0) -> None:
        super().__init__(message)
        self.expected = expected
        self.got = got


class ReadChannelError(ReadChunkError):
    stage = "channel"


class ReadLengthError(ReadChunkError):
    stage = "length"


class ReadDataError(ReadChunkError):
    stage = "data"


class InvalidChannelError(ReadChunkError):
    """The channel tag byte is not one the protocol defines.

    The stream is left desynchronized; the connection should be discarded.
    """

    stage = "channel"

    def __init__(self, channel: int) -> None:
        super().__init__(f'Unknown channel "{chr(channel)}" (0x{channel:02X})', 1, 1)
        self.channel = channel


# ─── HANDSHAKE ───────────────────────────────────────────────────────


class HelloError(CommandServerError):
    """The server's hello frame was missing or malformed."""


class HelloReadError(HelloError):
    """The hello frame itself could not be read."""


class InvalidHelloChannelError(HelloError):
    def __init__(self, channel) -> None:
        super().__init__(
            f"hello from Mercurial on invalid channel; "
            f"got {channel.label} but expected output"
        )
        self.channel = channel


class HelloDecodeError(HelloError):
    """The hello payload is not valid UTF-8."""


class NoEncodingError(HelloError):
    def __init__(self) -> None:
        super().__init__("hello from Mercurial missing encoding")


class NoCapabilitiesError(HelloError):
    def __init__(self) -> None:
        super().__init__("hello from Mercurial missing capabilities")


class MissingRunCommandError(HelloError):
    def __init__(self) -> None:
        super().__init__("Mercurial lacks runcommand capability")


# ─── PROCESS / COMMANDS ──────────────────────────────────────────────


class SpawnError(CommandServerError):
    """The hg executable could not be started."""


class MissingPipeError(CommandServerError, RuntimeError):
    """A spawned process has no stdin or stdout pipe.

    This only happens when the process was configured without pipes, so it
    indicates a programming error rather than a transient condition.
    """


class CommandWriteError(CommandServerError):
    """Writing a command frame to the server's stdin failed."""


class ConnectionClosedError(CommandServerError):
    """The connection was used after it had been closed."""


class InputRequestedError(CommandServerError):
    """The server asked for stdin data, which this client never supplies."""

    def __init__(self, chunk) -> None:
        super().__init__(
            f"Mercurial requested {chunk.value} bytes of {chunk.channel.label}; "
            f"interactive commands are not supported"
        )
        self.chunk = chunk
