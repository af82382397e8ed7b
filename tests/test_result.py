"""Tests for collecting command output."""

import pytest

from hg_cmdserver.errors import InputRequestedError
from hg_cmdserver.models.result import CommandResult
from hg_cmdserver.protocol.framing import Chunk


def test_collect_streams():
    result = CommandResult.collect([
        Chunk.output(b"M a.txt\n"),
        Chunk.debug(b"dbg"),
        Chunk.output(b"A b.txt\n"),
        Chunk.error(b"warning\n"),
        Chunk.result(0),
    ])
    assert result.output == b"M a.txt\nA b.txt\n"
    assert result.error == b"warning\n"
    assert result.debug == b"dbg"
    assert result.exit_code == 0
    assert result.ok


def test_collect_failure():
    result = CommandResult.collect([Chunk.error(b"abort: no repository found\n"), Chunk.result(255)])
    assert not result.ok
    assert result.exit_code == 255
    assert result.error_text() == "abort: no repository found\n"


def test_collect_input_request_raises():
    with pytest.raises(InputRequestedError) as excinfo:
        CommandResult.collect([Chunk.output(b"prompt? "), Chunk.line_input(4096)])
    assert excinfo.value.chunk == Chunk.line_input(4096)
    assert "line input" in str(excinfo.value)


def test_to_dict_decodes_text():
    result = CommandResult(output="café\n".encode("utf-8"), error=b"", exit_code=0)
    assert result.to_dict("UTF-8") == {"exit_code": 0, "output": "café\n", "error": ""}


def test_text_replaces_undecodable_bytes():
    assert CommandResult(output=b"\xff").text() == "�"
