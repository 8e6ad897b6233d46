"""Filesystem storage for document PDF artifacts.

``file_path`` values stored on documents are relative to ``root``.
Superseded and rejected artifacts go to ``root/archive``.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from core.common.errors import ArtifactError

logger = logging.getLogger(__name__)

ARCHIVE_DIR = "archive"
OLD_SUFFIX = ".old"
REJECTED_SUFFIX = ".rejected"

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


class FilesystemArtifactStore:
    """Local filesystem store with atomic writes."""

    def __init__(self, root_path: str | Path) -> None:
        self._root = Path(root_path)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def path_of(self, rel: str) -> Path:
        p = (self._root / rel).resolve()
        if self._root.resolve() not in p.parents:
            raise ArtifactError(f"Artifact path {rel!r} is outside the storage root.")
        return p

    def exists(self, rel: str) -> bool:
        return self.path_of(rel).is_file()

    # ---- read/write -----------------------------------------------------
    def read(self, rel: str) -> bytes:
        try:
            return self.path_of(rel).read_bytes()
        except OSError as ex:
            raise ArtifactError(f"Document file {rel!r} could not be read: {ex.strerror or ex}") from ex

    def _write(self, name: str, data: bytes) -> str:
        dest = self.path_of(name)
        dest.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(dest.parent), prefix=".tmp_", suffix=".pdf")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, dest)
        except OSError as ex:
            Path(tmp).unlink(missing_ok=True)
            raise ArtifactError(f"Document file {name!r} could not be written: {ex.strerror or ex}") from ex
        return name

    def store_original(self, doc_id: str, data: bytes, filename: Optional[str] = None) -> str:
        stem = _UNSAFE.sub("_", Path(filename).stem) if filename else "document"
        return self._write(f"doc_{doc_id}_{stem}.pdf", data)

    def write_signed(self, doc_id: str, step_order: int, data: bytes) -> str:
        return self._write(f"signed_doc_{doc_id}_step{step_order}.pdf", data)

    def discard(self, rel: str) -> None:
        """Remove an artifact that never got committed."""
        try:
            self.path_of(rel).unlink(missing_ok=True)
        except OSError:
            logger.exception("Could not remove uncommitted artifact %s", rel)

    # ---- archive --------------------------------------------------------
    def _archive_target(self, rel: str, suffix: str) -> Path:
        target = self._root / ARCHIVE_DIR / f"{Path(rel).name}{suffix}"
        target.parent.mkdir(parents=True, exist_ok=True)
        return target

    def archive(self, rel: str, suffix: str = OLD_SUFFIX) -> str:
        """Move a superseded artifact into the archive."""
        target = self._archive_target(rel, suffix)
        try:
            shutil.move(str(self.path_of(rel)), str(target))
        except OSError as ex:
            raise ArtifactError(f"Could not archive {rel!r}: {ex}") from ex
        return str(target.relative_to(self._root))

    def archive_copy(self, rel: str, suffix: str = REJECTED_SUFFIX) -> str:
        """Copy the current artifact into the archive, leaving it in place."""
        target = self._archive_target(rel, suffix)
        try:
            shutil.copy2(str(self.path_of(rel)), str(target))
        except OSError as ex:
            raise ArtifactError(f"Could not archive {rel!r}: {ex}") from ex
        return str(target.relative_to(self._root))
