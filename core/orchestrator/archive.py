"""In-memory zip accumulator owned by one batch run."""

from __future__ import annotations

import io
import zipfile

from core.utils.errors import DuplicateEntryError


class ZipAccumulator:
    """Collect named byte blobs; ``finalize`` produces the archive bytes."""

    def __init__(self) -> None:
        self._buffer = io.BytesIO()
        self._archive: zipfile.ZipFile | None = zipfile.ZipFile(
            self._buffer, "w", compression=zipfile.ZIP_DEFLATED
        )
        self._names: list[str] = []

    @property
    def names(self) -> list[str]:
        return list(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def add(self, name: str, content: bytes) -> None:
        archive = self._require_open()
        if name in self._names:
            raise DuplicateEntryError(name)
        archive.writestr(name, content)
        self._names.append(name)

    def finalize(self) -> bytes:
        archive = self._require_open()
        archive.close()
        self._archive = None
        return self._buffer.getvalue()

    def discard(self) -> None:
        if self._archive is not None:
            self._archive.close()
            self._archive = None
        self._buffer = io.BytesIO()
        self._names.clear()

    def _require_open(self) -> zipfile.ZipFile:
        if self._archive is None:
            raise RuntimeError("Archive is already finalized or discarded")
        return self._archive
