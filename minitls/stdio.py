"""Non-blocking access to standard input and output."""

from __future__ import annotations

import os
import sys
from typing import BinaryIO


def _fileno(stream) -> int | None:
    try:
        return stream.fileno()
    except (OSError, ValueError, AttributeError):
        return None


class StdioChannel:
    """Reads without blocking from an input stream and writes to an output stream."""

    def __init__(self, stdin: BinaryIO | None = None, stdout: BinaryIO | None = None):
        self._stdin = stdin if stdin is not None else sys.stdin.buffer
        self._stdout = stdout if stdout is not None else sys.stdout.buffer
        self._in_fd = _fileno(self._stdin)
        self._out_fd = _fileno(self._stdout)
        if self._in_fd is not None:
            os.set_blocking(self._in_fd, False)

    def read(self, max_length: int) -> bytes | None:
        """Return up to ``max_length`` bytes, ``None`` if none are ready, ``b""`` at EOF."""
        if self._in_fd is None:
            return self._stdin.read(max_length)
        try:
            return os.read(self._in_fd, max_length)
        except BlockingIOError:
            return None

    def write(self, data: bytes) -> None:
        """Write all of ``data`` to the output."""
        if self._out_fd is None:
            self._stdout.write(data)
            self._stdout.flush()
            return
        view = memoryview(data)
        while view:
            written = os.write(self._out_fd, view)
            view = view[written:]