"""Collected outcome of one command."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ..errors import InputRequestedError
from ..protocol.framing import Channel, Chunk


@dataclass
class CommandResult:
    """Everything a command wrote, plus its exit status."""

    output: bytes = b""
    error: bytes = b""
    debug: bytes = b""
    exit_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @classmethod
    def collect(cls, chunks: Iterable[Chunk]) -> CommandResult:
        """Drain a response sequence into a CommandResult.

        Raises:
            InputRequestedError: The command asked for stdin data.
        """
        streams: dict[Channel, list[bytes]] = {
            Channel.OUTPUT: [],
            Channel.ERROR: [],
            Channel.DEBUG: [],
        }
        exit_code = None
        for chunk in chunks:
            if chunk.is_input_request:
                raise InputRequestedError(chunk)
            if chunk.is_result:
                exit_code = chunk.value
            else:
                streams[chunk.channel].append(chunk.data)

        return cls(
            output=b"".join(streams[Channel.OUTPUT]),
            error=b"".join(streams[Channel.ERROR]),
            debug=b"".join(streams[Channel.DEBUG]),
            exit_code=exit_code,
        )

    def text(self, encoding: str = "utf-8") -> str:
        return self.output.decode(encoding, errors="replace")

    def error_text(self, encoding: str = "utf-8") -> str:
        return self.error.decode(encoding, errors="replace")

    def to_dict(self, encoding: str = "utf-8") -> dict:
        return {
            "exit_code": self.exit_code,
            "output": self.text(encoding),
            "error": self.error_text(encoding),
        }
