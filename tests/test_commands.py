"""Tests for command framing and response iteration."""

import io
import struct

import pytest

from hg_cmdserver.errors import ReadDataError
from hg_cmdserver.protocol.commands import (
    RUNCOMMAND,
    CommandIterator,
    build_runcommand,
    encode_args,
)
from hg_cmdserver.protocol.framing import Chunk, read_chunk


def _frame(tag: bytes, payload: bytes) -> bytes:
    return tag + struct.pack(">I", len(payload)) + payload


def test_build_runcommand_status():
    """status -v -> header, length 9 (6 + 1 + 2), NUL-joined args."""
    frame = build_runcommand(["status", "-v"])
    assert frame == b"runcommand\n" + b"\x00\x00\x00\x09" + b"status\x00-v"


def test_build_runcommand_single_arg():
    frame = build_runcommand(["init"])
    assert frame == RUNCOMMAND + b"\x00\x00\x00\x04init"


def test_build_runcommand_no_trailing_separator():
    frame = build_runcommand(["log", "-l", "1"])
    assert frame.endswith(b"log\x00-l\x001")
    assert not frame.endswith(b"\x00")


def test_build_runcommand_counts_bytes_not_characters():
    frame = build_runcommand(["commit", "-m", "café"])
    blob = "commit\x00-m\x00café".encode("utf-8")
    assert frame[len(RUNCOMMAND):len(RUNCOMMAND) + 4] == struct.pack(">I", len(blob))
    assert frame.endswith(blob)


def test_encode_args_accepts_bytes():
    assert encode_args([b"cat", "-r", b"\xff"]) == b"cat\x00-r\x00\xff"


def test_build_runcommand_rejects_bare_string():
    with pytest.raises(TypeError):
        build_runcommand("status")


def test_iterator_stops_after_result():
    """Output(a), Output(b), Result(0) then stop; later bytes stay unread."""
    trailing = _frame(b"o", b"next command")
    stream = io.BytesIO(
        _frame(b"o", b"a") + _frame(b"o", b"b") + _frame(b"r", b"\x00\x00\x00\x00") + trailing
    )
    it = CommandIterator(lambda: read_chunk(stream))

    assert list(it) == [Chunk.output(b"a"), Chunk.output(b"b"), Chunk.result(0)]
    assert it.finished
    assert it.result == 0
    assert stream.read() == trailing


def test_iterator_is_not_restartable():
    stream = io.BytesIO(_frame(b"r", b"\x00\x00\x00\x01") + _frame(b"o", b"x"))
    it = CommandIterator(lambda: read_chunk(stream))
    assert list(it) == [Chunk.result(1)]
    assert list(it) == []
    with pytest.raises(StopIteration):
        next(it)


def test_iterator_error_is_terminal():
    """A read error is raised once; afterwards the iterator is exhausted."""
    stream = io.BytesIO(_frame(b"o", b"a") + b"o\x00\x00\x00\x09trunc")
    reads = []

    def reader():
        reads.append(1)
        return read_chunk(stream)

    it = CommandIterator(reader)
    assert next(it) == Chunk.output(b"a")
    with pytest.raises(ReadDataError):
        next(it)
    assert it.finished
    assert it.result is None
    assert list(it) == []
    assert len(reads) == 2


def test_iterator_is_lazy():
    calls = []

    def reader():
        calls.append(1)
        return Chunk.result(0)

    it = CommandIterator(reader)
    assert calls == []
    next(it)
    assert calls == [1]


def test_iterator_passes_input_requests_through():
    stream = io.BytesIO(b"L\x00\x00\x10\x00")
    it = CommandIterator(lambda: read_chunk(stream))
    chunk = next(it)
    assert chunk == Chunk.line_input(4096)
    assert chunk.is_input_request
    assert not it.finished
