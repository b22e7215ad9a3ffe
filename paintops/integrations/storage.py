"""Object storage integration client.

Files live under ``STORAGE_LOCAL_PATH`` and are served by the API at
``/storage``. Preview URLs are HMAC signed and expire after
``STORAGE_URL_TTL_SECONDS``.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from pathlib import Path
from typing import Any
from urllib.parse import quote

from paintops.config import settings
from paintops.integrations.base import BaseIntegration


def sign_path(file_key: str, expires: int) -> str:
    message = f"{file_key}:{expires}".encode()
    return hmac.new(settings.SECRET_KEY.encode(), message, hashlib.sha256).hexdigest()


def verify_signature(file_key: str, expires: int, signature: str, now: float | None = None) -> bool:
    now = time.time() if now is None else now
    if expires < now:
        return False
    return hmac.compare_digest(sign_path(file_key, expires), signature)


class StorageClient(BaseIntegration):
    """Local object storage with signed preview URLs."""

    def __init__(self, root: str | Path | None = None) -> None:
        super().__init__("storage")
        self._local_path = Path(root or settings.STORAGE_LOCAL_PATH)

    async def health_check(self) -> bool:
        self.logger.info("Storage: local mode at %s", self._local_path)
        return True

    def resolve(self, file_key: str) -> Path:
        path = (self._local_path / file_key).resolve()
        if self._local_path.resolve() not in path.parents and path != self._local_path.resolve():
            raise ValueError(f"Invalid storage key: {file_key}")
        return path

    async def upload_file(self, file_content: bytes | str, file_key: str) -> dict[str, Any]:
        data = file_content.encode() if isinstance(file_content, str) else file_content
        local_file = self.resolve(file_key)
        local_file.parent.mkdir(parents=True, exist_ok=True)
        local_file.write_bytes(data)
        self.logger.info("Local upload: %s (%d bytes)", file_key, len(data))
        return {"file_key": file_key, "size_bytes": len(data), "storage_backend": "local"}

    async def list_files(self, prefix: str = "") -> list[str]:
        """Return every object key under ``prefix``."""
        base = self._local_path
        folder = self.resolve(prefix) if prefix else base.resolve()
        if not folder.exists():
            return []
        if folder.is_file():
            return [prefix]
        return sorted(
            p.relative_to(base.resolve()).as_posix() for p in folder.rglob("*") if p.is_file()
        )

    async def delete_file(self, file_key: str) -> bool:
        path = self.resolve(file_key)
        existed = path.is_file()
        if existed:
            path.unlink()
        self.logger.info("File deleted | key=%s | existed=%s", file_key, existed)
        return existed

    async def get_preview_url(self, file_key: str, ttl_seconds: int | None = None) -> str:
        """URL under the API's ``/storage`` route, verified by ``verify_signature``."""
        ttl = settings.STORAGE_URL_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        expires = int(time.time()) + ttl
        base = f"{settings.APP_URL.rstrip('/')}/storage"
        return f"{base}/{quote(file_key)}?expires={expires}&signature={sign_path(file_key, expires)}"
