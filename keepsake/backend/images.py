"""ImageStore — sandboxed local object storage for memory images."""

from __future__ import annotations

import logging
import random
import re
import shutil
import time
from typing import TYPE_CHECKING
from urllib.parse import quote

from keepsake.config import settings

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE = 20 * 1024 * 1024  # 20 MB per image
ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "heic", "webp", "gif"}
DEFAULT_EXTENSION = "jpg"
_NAME_ATTEMPTS = 5

_SAFE_COMPONENT_RE = re.compile(r"[^a-zA-Z0-9._\-]")


def image_extension(filename: str) -> str:
    """Lower-cased extension of *filename*, or ``jpg`` when missing/unknown."""
    _, dot, ext = filename.rpartition(".")
    ext = ext.lower()
    if not dot or ext not in ALLOWED_EXTENSIONS:
        return DEFAULT_EXTENSION
    return ext


def content_type(storage_path: str) -> str:
    return "image/png" if image_extension(storage_path) == "png" else "image/jpeg"


def make_storage_path(couple_id: str, filename: str) -> str:
    """Build ``{couple_id}/{millis}_{rand}.{ext}`` for a new upload."""
    millis = int(time.time() * 1000)
    suffix = random.randint(0, 999)  # noqa: S311
    return f"{couple_id}/{millis}_{suffix}.{image_extension(filename)}"


class ImageStore:
    """Stores images under a root directory, keyed by storage path.

    Pass an explicit *root* for test isolation (e.g. ``tmp_path / "images"``).
    """

    def __init__(self, root: Path | None = None, public_base_url: str | None = None) -> None:
        self._root = (root or settings.image_dir).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._public_base = (
            public_base_url or settings.public_image_base_url or self._root.as_uri()
        ).rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    # -- Path helpers ----------------------------------------------------------

    @staticmethod
    def sanitize_component(name: str) -> str:
        """Replace unsafe characters and strip leading dots.

        Raises ``ValueError`` if the result is empty.
        """
        sanitized = _SAFE_COMPONENT_RE.sub("_", name).lstrip(".")
        if not sanitized:
            msg = f"Path component is empty after sanitization: {name!r}"
            raise ValueError(msg)
        return sanitized

    def resolve(self, storage_path: str) -> Path:
        """Map a storage path to a file inside the root (no traversal)."""
        parts = [self.sanitize_component(p) for p in storage_path.split("/") if p]
        if not parts:
            msg = f"Storage path is empty: {storage_path!r}"
            raise ValueError(msg)
        target = self._root.joinpath(*parts).resolve()
        if not target.is_relative_to(self._root):
            msg = f"Path traversal detected: {storage_path!r}"
            raise ValueError(msg)
        return target

    # -- File operations -------------------------------------------------------

    def store(self, couple_id: str, source: Path) -> str:
        """Copy *source* into the store. Returns the new storage path."""
        if not source.is_file():
            msg = f"Image not found: {source}"
            raise FileNotFoundError(msg)
        size = source.stat().st_size
        if size > MAX_IMAGE_SIZE:
            msg = f"Image too large: {size} bytes (max {MAX_IMAGE_SIZE})"
            raise ValueError(msg)

        couple_dir = self.sanitize_component(couple_id)
        for _ in range(_NAME_ATTEMPTS):
            storage_path = make_storage_path(couple_dir, source.name)
            target = self.resolve(storage_path)
            if not target.exists():
                break
        else:
            msg = f"Storage path already taken: {storage_path}"
            raise FileExistsError(msg)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
        logger.info("Stored image %s (%d bytes)", storage_path, size)
        return storage_path

    def delete(self, storage_path: str) -> bool:
        """Delete an image. Returns True if deleted, False if not found."""
        target = self.resolve(storage_path)
        if not target.exists():
            return False
        target.unlink()
        logger.info("Deleted image %s", storage_path)
        return True

    def exists(self, storage_path: str) -> bool:
        return self.resolve(storage_path).exists()

    def public_url(self, storage_path: str) -> str:
        return f"{self._public_base}/{quote(storage_path.lstrip('/'))}"
