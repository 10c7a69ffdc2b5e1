from __future__ import annotations

"""Receipt blob storage.

Defines a minimal interface so the receipts endpoint does not care where
files live. `LocalBlobStore` writes under a directory served as static files;
any failure surfaces as `UploadFailedError` and never touches expense rows.
"""
import logging
import re
import time
from abc import ABC, abstractmethod
from pathlib import Path

from field_expenses.core.errors import UploadFailedError

logger = logging.getLogger("field_expenses.receipts")

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: str) -> str:
    name = Path(filename or "").name
    name = _UNSAFE.sub("_", name).strip("._")
    return name or "receipt"


def owner_scoped_key(owner_id: str, filename: str) -> str:
    """`<owner>/<epoch millis>_<filename>`."""
    return f"{safe_filename(owner_id)}/{int(time.time() * 1000)}_{safe_filename(filename)}"


class BlobStore(ABC):
    @abstractmethod
    def put(self, owner_id: str, filename: str, data: bytes) -> str:
        """Store the bytes and return a publicly resolvable reference."""
        raise NotImplementedError


class LocalBlobStore(BlobStore):
    def __init__(self, root: Path, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def put(self, owner_id: str, filename: str, data: bytes) -> str:
        key = owner_scoped_key(owner_id, filename)
        target = self.root / key
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            logger.warning(
                "receipt upload failed",
                extra={"fields": {"owner_id": owner_id, "key": key}},
            )
            raise UploadFailedError(f"could not store receipt: {exc.strerror}") from exc
        return f"{self.base_url}/{key}"
