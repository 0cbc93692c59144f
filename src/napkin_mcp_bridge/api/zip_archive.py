from __future__ import annotations

import io
import zipfile
from collections.abc import Iterable, Iterator
from pathlib import PurePosixPath

_CHUNK_SIZE = 64 * 1024


def unique_member_names(filenames: Iterable[str]) -> list[str]:
    """Suffix repeated names with -2, -3, ... so no zip member shadows another."""
    used: set[str] = set()
    names: list[str] = []
    for filename in filenames:
        base = filename or "visual"
        name = base
        count = 1
        while name in used:
            count += 1
            path = PurePosixPath(base)
            name = f"{path.stem}-{count}{path.suffix}"
        used.add(name)
        names.append(name)
    return names


def build_zip(entries: list[tuple[str, bytes]]) -> bytes:
    buffer = io.BytesIO()
    names = unique_member_names(filename for filename, _ in entries)
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, (_, data) in zip(names, entries):
            archive.writestr(name, data)
    return buffer.getvalue()


def iter_chunks(data: bytes, chunk_size: int = _CHUNK_SIZE) -> Iterator[bytes]:
    for offset in range(0, len(data), chunk_size):
        yield data[offset:offset + chunk_size]
