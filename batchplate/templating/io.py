"""Output sinks for rendered templates."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class OutputSink(Protocol):
    """Anything rendered text can be written to."""

    def write(self, text: str) -> object: ...


@runtime_checkable
class Closeable(Protocol):
    """Sinks holding a resource that must be released after rendering."""

    def close(self) -> None: ...


def atomic_write_text(path: Path, text: str, mode: int = 0o644) -> None:
    """Replace ``path`` with ``text`` in one step.

    The text lands in a sibling temporary file that is chmod'ed and then
    renamed over ``path``, so readers never see a partial output and a
    failed write leaves any previous file in place. Missing parent
    directories are created first.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(text)
        tmp.chmod(mode)
        tmp.replace(path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


class FileSink:
    """Buffers rendered text and writes it to ``path`` on close.

    A sink closed without any write leaves the destination untouched.
    """

    def __init__(self, path: Path, mode: int = 0o644) -> None:
        self.path = path
        self.mode = mode
        self._chunks: list[str] = []
        self._written = False
        self.closed = False

    def __repr__(self) -> str:
        return f"FileSink({str(self.path)!r}, mode={oct(self.mode)})"

    def write(self, text: str) -> int:
        if self.closed:
            raise ValueError(f"Write to closed sink: {self.path}")
        self._chunks.append(text)
        self._written = True
        return len(text)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._written:
            atomic_write_text(self.path, "".join(self._chunks), mode=self.mode)
        self._chunks.clear()


class StdoutSink:
    """Writes straight to the process's standard output."""

    def __repr__(self) -> str:
        return "StdoutSink()"

    def write(self, text: str) -> int:
        written = sys.stdout.write(text)
        sys.stdout.flush()
        return written

    def close(self) -> None:
        sys.stdout.flush()


STDOUT = StdoutSink()
