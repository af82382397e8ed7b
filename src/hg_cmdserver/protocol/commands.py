"""Command frame builder and the per-command response iterator.

A ``runcommand`` request is written as::

    runcommand\\n <u32 BE length> arg0 \\0 arg1 \\0 ... argN

where ``length`` covers the NUL-joined arguments (no trailing NUL).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence

from .framing import LENGTH_FIELD, Chunk

logger = logging.getLogger(__name__)

RUNCOMMAND = b"runcommand\n"
ARG_SEPARATOR = b"\0"

Argument = str | bytes


def encode_args(args: Sequence[Argument], encoding: str = "utf-8") -> bytes:
    """Join arguments with NUL separators; ``str`` args are encoded first."""
    return ARG_SEPARATOR.join(
        arg if isinstance(arg, bytes) else arg.encode(encoding) for arg in args
    )


def build_runcommand(args: Sequence[Argument], encoding: str = "utf-8") -> bytes:
    """Build the bytes of a ``runcommand`` request.

    Args:
        args: Command line for hg, without the executable,
              e.g. ``["status", "-v"]``.
        encoding: Encoding for ``str`` arguments.
    """
    if isinstance(args, (str, bytes)):
        raise TypeError("args must be a sequence of arguments, not a single string")
    blob = encode_args(args, encoding)
    return RUNCOMMAND + LENGTH_FIELD.pack(len(blob)) + blob


class CommandIterator(Iterator[Chunk]):
    """Lazily yields the chunks answering one command.

    Each ``next()`` blocks until a full frame has been read. Iteration stops
    right after the Result chunk without touching any further bytes. A read
    error is raised from ``next()`` and ends the iteration; the iterator
    cannot be restarted.
    """

    def __init__(self, read_chunk: Callable[[], Chunk]) -> None:
        self._read_chunk = read_chunk
        self._finished = False
        self.result: int | None = None

    @property
    def finished(self) -> bool:
        return self._finished

    def __iter__(self) -> CommandIterator:
        return self

    def __next__(self) -> Chunk:
        if self._finished:
            raise StopIteration

        try:
            chunk = self._read_chunk()
        except BaseException:
            self._finished = True
            raise

        if chunk.is_result:
            self._finished = True
            self.result = chunk.value
            logger.debug("Command finished with status %d", chunk.value)

        return chunk
