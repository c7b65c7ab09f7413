"""Unpacking log archives streamed from cluster nodes."""

from __future__ import annotations

import logging
import os
import tarfile
from typing import IO, Any

__all__ = ["untar"]

logger = logging.getLogger(__name__)

_BLOCK_SIZE = tarfile.BLOCKSIZE
_CHUNK_SIZE = 64 * 1024
_REGULAR_TYPES = (tarfile.REGTYPE, tarfile.AREGTYPE)


class _PrefixedReader:
    """A reader that yields already-read bytes before the rest of a stream."""

    def __init__(self, prefix: bytes, stream: IO[bytes]) -> None:
        self._prefix = prefix
        self._stream = stream

    def read(self, size: int = -1) -> bytes:
        if not self._prefix:
            return self._stream.read(size)
        if size is None or size < 0:
            data, self._prefix = self._prefix + self._stream.read(), b""
            return data
        data, self._prefix = self._prefix[:size], self._prefix[size:]
        return data


def _target(directory: str | os.PathLike[str], name: str) -> str:
    return os.path.normpath(os.path.join(os.fspath(directory), *name.split("/")))


def _write_file(archive: tarfile.TarFile, member: tarfile.TarInfo, target: str) -> None:
    source: Any = archive.extractfile(member)
    fd = os.open(target, os.O_CREAT | os.O_RDWR, member.mode & 0o7777)
    written = 0
    with os.fdopen(fd, "r+b") as handle:
        while chunk := source.read(_CHUNK_SIZE):
            try:
                handle.write(chunk)
            except OSError as exc:
                raise OSError(f"error writing to {target}: {exc}") from exc
            written += len(chunk)
    if written != member.size:
        raise OSError(f"only wrote {written} bytes to {target}; expected {member.size}")


def untar(stream: IO[bytes], directory: str | os.PathLike[str]) -> None:
    """Unpack the tar archive read from stream into directory.

    Regular files and directories are written; other entry types are
    skipped with a warning. The stream is drained to its end afterwards.
    """
    first = stream.read(_BLOCK_SIZE)
    if not first:
        return
    reader = _PrefixedReader(first, stream)
    try:
        with tarfile.open(fileobj=reader, mode="r|") as archive:  # type: ignore[call-overload]
            for member in archive:
                target = _target(directory, member.name)
                if member.type in _REGULAR_TYPES:
                    _write_file(archive, member, target)
                elif member.isdir():
                    if not os.path.exists(target):
                        os.makedirs(target, mode=0o755, exist_ok=True)
                else:
                    logger.warning(
                        "tar file entry %s contained unsupported file type %s",
                        member.name,
                        member.type.decode("ascii", "replace"),
                    )
    except tarfile.TarError as exc:
        raise tarfile.ReadError(f"tar reading error: {exc}") from exc
    # trailing padding may follow the archive; do not leave the writer hanging
    while stream.read(_CHUNK_SIZE):
        pass