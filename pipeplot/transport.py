from __future__ import annotations

import logging
import subprocess
from typing import Protocol, TextIO


LOGGER = logging.getLogger(__name__)
PERSIST_FLAG = "--persist"


class CommandTransport(Protocol):
    def write_line(self, text: str) -> None:
        ...

    def close(self) -> None:
        ...

    @property
    def closed(self) -> bool:
        ...


class PipeTransport:
    """Writes commands to the stdin of a spawned plotting process."""

    def __init__(self, command: list[str], *, exit_timeout_s: float = 5.0) -> None:
        if not command:
            raise ValueError("process command must not be empty")
        if exit_timeout_s <= 0:
            raise ValueError("exit_timeout_s must be > 0")
        self._command = list(command)
        self._exit_timeout_s = float(exit_timeout_s)
        self._proc: subprocess.Popen[str] | None = None

    @classmethod
    def spawn(cls, executable: str, *, persist: bool = True) -> "PipeTransport":
        command = [executable]
        if persist:
            command.append(PERSIST_FLAG)
        transport = cls(command)
        transport.start()
        return transport

    @property
    def command(self) -> list[str]:
        return list(self._command)

    @property
    def closed(self) -> bool:
        return self._proc is None

    def start(self) -> None:
        if self._proc is not None:
            return
        self._proc = subprocess.Popen(
            self._command,
            stdin=subprocess.PIPE,
            text=True,
            encoding="utf-8",
        )
        LOGGER.debug("spawned %s (pid=%s)", " ".join(self._command), self._proc.pid)

    def write_line(self, text: str) -> None:
        proc = self._require_proc()
        if proc.stdin is None:
            raise RuntimeError("process stdin unavailable")
        proc.stdin.write(text + "\n")
        proc.stdin.flush()

    def close(self) -> None:
        if self._proc is None:
            return
        proc = self._proc
        self._proc = None
        if proc.stdin is not None:
            try:
                proc.stdin.close()
            except BrokenPipeError:
                pass
        # gnuplot exits on stdin EOF; with --persist the window lives on in a child process.
        try:
            proc.wait(timeout=self._exit_timeout_s)
        except subprocess.TimeoutExpired:
            LOGGER.warning("plotting process %s did not exit after %.1fs; terminating", proc.pid, self._exit_timeout_s)
            proc.terminate()
            try:
                proc.wait(timeout=2.0)
            except subprocess.TimeoutExpired:
                proc.kill()

    def _require_proc(self) -> subprocess.Popen[str]:
        if self._proc is None:
            raise RuntimeError("plotting process is not running")
        return self._proc


class StreamTransport:
    """Writes commands to an already-open text stream, e.g. a script file or stdout."""

    def __init__(self, stream: TextIO, *, close_stream: bool = False) -> None:
        self._stream: TextIO | None = stream
        self._close_stream = close_stream

    @property
    def closed(self) -> bool:
        return self._stream is None

    def write_line(self, text: str) -> None:
        if self._stream is None:
            raise RuntimeError("stream transport is closed")
        self._stream.write(text + "\n")
        self._stream.flush()

    def close(self) -> None:
        if self._stream is None:
            return
        stream = self._stream
        self._stream = None
        if self._close_stream:
            stream.close()
