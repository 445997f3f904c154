import io
import os

import pytest

from minitls.stdio import StdioChannel


@pytest.fixture
def pipe():
    read_fd, write_fd = os.pipe()
    reader = os.fdopen(read_fd, "rb", buffering=0)
    state = {"write_fd": write_fd}
    yield reader, state
    reader.close()
    if state["write_fd"] is not None:
        os.close(state["write_fd"])


@pytest.fixture
def out_pipe():
    read_fd, write_fd = os.pipe()
    reader = os.fdopen(read_fd, "rb", buffering=0)
    writer = os.fdopen(write_fd, "wb", buffering=0)
    yield reader, writer
    writer.close()
    reader.close()


def test_read_nonblocking_pipe(pipe):
    reader, state = pipe
    channel = StdioChannel(stdin=reader, stdout=io.BytesIO())
    assert channel.read(10) is None
    os.write(state["write_fd"], b"hello")
    assert channel.read(3) == b"hel"
    assert channel.read(10) == b"lo"
    assert channel.read(10) is None


def test_read_eof(pipe):
    reader, state = pipe
    channel = StdioChannel(stdin=reader, stdout=io.BytesIO())
    os.close(state["write_fd"])
    state["write_fd"] = None
    assert channel.read(10) == b""


def test_read_from_plain_stream():
    channel = StdioChannel(stdin=io.BytesIO(b"abcdef"), stdout=io.BytesIO())
    assert channel.read(4) == b"abcd"
    assert channel.read(4) == b"ef"
    assert channel.read(4) == b""


def test_write_to_plain_stream():
    out = io.BytesIO()
    channel = StdioChannel(stdin=io.BytesIO(), stdout=out)
    channel.write(b"one ")
    channel.write(b"two")
    assert out.getvalue() == b"one two"


def test_write_to_fd_is_read_back_through_channel(out_pipe):
    reader, writer = out_pipe
    writing = StdioChannel(stdin=io.BytesIO(), stdout=writer)
    reading = StdioChannel(stdin=reader, stdout=io.BytesIO())
    writing.write(b"payload")
    assert reading.read(100) == b"payload"
    assert reading.read(100) is None