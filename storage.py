"""Blob storage for client documents.

Supports GridFS (production, same MongoDB as the metadata) and a local
directory (development and tests). Blobs are addressed by their storage
path, e.g. ``clients/<client_id>/documents/<unique>_<name>``.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Protocol

import gridfs

logger = logging.getLogger(__name__)

STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "gridfs")
STORAGE_DIR = os.getenv("STORAGE_DIR", "./data/blobs")


class BlobNotFound(Exception):
    pass


class BlobStore(Protocol):
    """Storage backend protocol."""

    def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> None:
        ...

    def get(self, path: str) -> bytes:
        """Return the blob content, raise ``BlobNotFound`` when absent."""
        ...

    def delete(self, path: str) -> None:
        """Remove the blob, raise ``BlobNotFound`` when absent."""
        ...


class GridFSStore:
    def __init__(self, database):
        self.fs = gridfs.GridFS(database, collection="blobs")

    def put(self, path, data, content_type=None):
        self.fs.put(data, filename=path, content_type=content_type)

    def get(self, path):
        try:
            return self.fs.get_last_version(filename=path).read()
        except gridfs.NoFile:
            raise BlobNotFound(path)

    def delete(self, path):
        found = False
        for f in self.fs.find({"filename": path}):
            self.fs.delete(f._id)
            found = True
        if not found:
            raise BlobNotFound(path)


class LocalFileStore:
    """Blobs as plain files under a root directory."""

    def __init__(self, root: str = STORAGE_DIR):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise BlobNotFound(path)
        return target

    def put(self, path, data, content_type=None):
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def get(self, path):
        target = self._resolve(path)
        if not target.is_file():
            raise BlobNotFound(path)
        return target.read_bytes()

    def delete(self, path):
        target = self._resolve(path)
        if not target.is_file():
            raise BlobNotFound(path)
        target.unlink()


def create_store(database=None) -> Optional[BlobStore]:
    if STORAGE_BACKEND == "local":
        logger.info("Using local blob storage in %s", STORAGE_DIR)
        return LocalFileStore(STORAGE_DIR)
    if database is None:
        logger.warning("GridFS storage requested but no database configured")
        return None
    return GridFSStore(database)


def format_size(size: int) -> str:
    """Human readable size: ``0 B``, ``512 B``, ``1.5 KB``, ``2 MB``."""
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    i = 0
    value = float(size)
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 1):g} {units[i]}"
