"""
Blob storage for uploaded news images.

The rest of the application only relies on ``BlobStore.upload`` returning a
public URL and ``BlobStore.delete`` accepting that URL back. The bundled
``LocalBlobStore`` writes files under ``MEDIA_ROOT`` in date folders and
serves them from ``MEDIA_URL``::

    media/
    └── 2026/
        └── 10/
            └── 17/
                └── news-3f9c2a1b-front-page.jpg
"""
import logging
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"[^a-z0-9_-]+")


class BlobStore:
    """Interface for image storage backends."""

    async def upload(self, data: bytes, filename: str, content_type: str | None = None) -> str:
        raise NotImplementedError

    async def delete(self, url: str) -> bool:
        raise NotImplementedError


class LocalBlobStore(BlobStore):
    """Filesystem-backed blob store."""

    def __init__(self, root: str, base_url: str = "/media") -> None:
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")

    def _object_name(self, filename: str) -> str:
        path = Path(filename)
        stem = _NAME_RE.sub("-", path.stem.lower()).strip("-") or "image"
        return f"news-{uuid.uuid4().hex[:8]}-{stem}{path.suffix.lower()}"

    def path_for(self, url: str) -> Path | None:
        """Map a URL produced by this store back to its file, or None."""
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            return None
        candidate = (self.root / url[len(prefix):]).resolve()
        if self.root not in candidate.parents:
            return None
        return candidate

    async def upload(self, data: bytes, filename: str, content_type: str | None = None) -> str:
        now = datetime.now(timezone.utc)
        relative = Path(f"{now:%Y}") / f"{now:%m}" / f"{now:%d}" / self._object_name(filename)
        target = self.root / relative
        await aiofiles.os.makedirs(target.parent, exist_ok=True)
        async with aiofiles.open(target, "wb") as fh:
            await fh.write(data)
        url = f"{self.base_url}/{relative.as_posix()}"
        logger.info("Stored %d bytes at %s", len(data), url)
        return url

    async def delete(self, url: str) -> bool:
        path = self.path_for(url)
        if path is None or not path.exists():
            logger.warning("Blob %s is not managed by this store", url)
            return False
        await aiofiles.os.remove(path)
        logger.info("Deleted blob %s", url)
        return True
