"""Pipe connection to a Mercurial command server process.

The server is started as ``hg serve --cmdserver pipe``; requests go to its
stdin and framed responses come back on its stdout. Its stderr is left
attached to ours and is not part of the protocol.
"""

from __future__ import annotations

import logging
import subprocess
import weakref
from collections.abc import Sequence
from typing import BinaryIO

from ..config import ConnectionConfig
from ..errors import (
    CommandWriteError,
    ConnectionClosedError,
    HelloReadError,
    MissingPipeError,
    ReadChunkError,
    SpawnError,
)
from ..models.result import CommandResult
from ..protocol.capabilities import AnyCapability, capability_name, resolve_capability
from ..protocol.commands import Argument, CommandIterator, build_runcommand
from ..protocol.framing import Chunk, read_chunk
from ..protocol.parser import Hello, parse_hello

logger = logging.getLogger(__name__)


def _terminate(process: subprocess.Popen) -> None:
    """Kill the server and reap it. Best-effort; the process may be gone."""
    try:
        process.kill()
    except OSError as e:
        logger.debug("Kill of hg pid %s failed: %s", process.pid, e)

    for pipe in (process.stdin, process.stdout):
        if pipe is None:
            continue
        try:
            pipe.close()
        except OSError as e:
            logger.debug("Error closing pipe of hg pid %s: %s", process.pid, e)

    process.wait()
    logger.info("Command server pid %s stopped", process.pid)


class PipeConnection:
    """Owns one command server process for its whole lifetime.

    The handshake happens in the constructor, so an instance is always
    ready for commands. The process is killed by :meth:`close`, on leaving
    a ``with`` block, when the object is garbage collected, or at
    interpreter exit, whichever comes first.

    Usage::

        with PipeConnection(cwd="/path/to/repo") as conn:
            for chunk in conn.run_command(["status"]):
                ...
    """

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        *,
        hg: str | None = None,
        cwd: str | None = None,
    ) -> None:
        config = config or ConnectionConfig()
        if hg is not None:
            config = config.with_hg(hg)
        if cwd is not None:
            config = config.with_cwd(cwd)
        self._config = config
        self._active: CommandIterator | None = None

        self._process = self._spawn(config)
        self._finalizer = weakref.finalize(self, _terminate, self._process)

        try:
            self._stdin, self._stdout = self._pipes(self._process)
            hello = self._handshake()
        except BaseException:
            self.close()
            raise

        self._encoding = hello.encoding
        self._capabilities = hello.capabilities

        logger.info(
            "Connected to command server pid %s (encoding %s, capabilities: %s)",
            self._process.pid,
            self._encoding,
            " ".join(sorted(map(capability_name, self._capabilities))),
        )

    @staticmethod
    def _spawn(config: ConnectionConfig) -> subprocess.Popen:
        args = config.command_line()
        logger.debug("Starting %s in %s", " ".join(args), config.cwd or ".")
        try:
            return subprocess.Popen(
                args,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                cwd=config.cwd,
                env=config.environment(),
            )
        except OSError as e:
            raise SpawnError(f"Could not launch {args[0]}: {e}") from e

    @staticmethod
    def _pipes(process: subprocess.Popen) -> tuple[BinaryIO, BinaryIO]:
        if process.stdin is None:
            raise MissingPipeError("No stdin handle")
        if process.stdout is None:
            raise MissingPipeError("No stdout handle")
        return process.stdin, process.stdout

    def _handshake(self) -> Hello:
        try:
            chunk = read_chunk(self._stdout)
        except ReadChunkError as e:
            raise HelloReadError(f"Failed to read hello chunk: {e}") from e
        return parse_hello(chunk)

    # ─── PROPERTIES ──────────────────────────────────────────────────

    @property
    def encoding(self) -> str:
        """Encoding the server announced in its hello."""
        return self._encoding

    @property
    def capabilities(self) -> frozenset[AnyCapability]:
        """Capabilities the server announced in its hello."""
        return self._capabilities

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def has_capability(self, capability: AnyCapability | str) -> bool:
        if isinstance(capability, str):
            capability = resolve_capability(capability)
        return capability in self._capabilities

    # ─── PROTOCOL ────────────────────────────────────────────────────

    def read_chunk(self) -> Chunk:
        """Read one raw frame from the server, below the command layer."""
        if self.closed:
            raise ConnectionClosedError("Connection is closed")
        return read_chunk(self._stdout)

    def run_command(self, args: Sequence[Argument]) -> CommandIterator:
        """Send a command and return an iterator over its response chunks.

        Only one command may be in flight: drain the returned iterator
        before sending the next command.

        Args:
            args: hg arguments, e.g. ``["log", "-l", "1"]``.

        Raises:
            CommandWriteError: The request could not be written.
            ConnectionClosedError: The connection was closed.
        """
        if self.closed:
            raise ConnectionClosedError("Connection is closed")
        if self._active is not None and not self._active.finished:
            logger.warning(
                "Sending %r while the previous command is still being read; "
                "responses will be interleaved",
                list(args),
            )

        frame = build_runcommand(args)
        logger.debug("runcommand %r (%d bytes)", list(args), len(frame))
        try:
            self._stdin.write(frame)
            self._stdin.flush()
        except OSError as e:
            raise CommandWriteError(f"Could not write command: {e}") from e

        self._active = CommandIterator(self.read_chunk)
        return self._active

    def run(self, args: Sequence[Argument]) -> CommandResult:
        """Run a command to completion and collect its output."""
        return CommandResult.collect(self.run_command(args))

    # ─── LIFECYCLE ───────────────────────────────────────────────────

    def close(self) -> None:
        """Kill the server process. Safe to call more than once."""
        self._finalizer()

    def __enter__(self) -> PipeConnection:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<PipeConnection pid={self._process.pid} {state}>"


def connect(config: ConnectionConfig | None = None, **kwargs) -> PipeConnection:
    """Start a command server and perform the handshake."""
    return PipeConnection(config, **kwargs)
