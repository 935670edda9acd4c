from __future__ import annotations

import secrets
import time
from pathlib import Path
from typing import Optional

from werkzeug.utils import secure_filename

from ..common.app_logger import get_logger
from ..core.constants import MAX_MEDIA_BYTES, MEDIA_BUCKET, MEDIA_EXTENSIONS
from ..core.enums import ReportKind
from ..core.exceptions import StorageError
from .model import UploadedFile

log = get_logger("reports.media")

_FOLDERS = {ReportKind.DAILY: "daily-reports", ReportKind.WEEKLY: "weekly-reports"}


class MediaStorage:
    """Report photos and videos stored under `<root>/<bucket>/` and served from `url_prefix`."""

    def __init__(
        self,
        root: str | Path,
        *,
        url_prefix: str = "/media",
        bucket: str = MEDIA_BUCKET,
        max_bytes: int = MAX_MEDIA_BYTES,
    ):
        self._root = Path(root)
        self._bucket = bucket
        self._url_prefix = url_prefix.rstrip("/")
        self._max_bytes = int(max_bytes)

    @property
    def bucket_dir(self) -> Path:
        return self._root / self._bucket

    def _extension(self, upload: UploadedFile) -> str:
        name = secure_filename(upload.filename or "")
        ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
        if ext not in MEDIA_EXTENSIONS:
            raise StorageError(f"{upload.filename}: format non supporté")
        return ext

    def check(self, upload: UploadedFile) -> str:
        content_type = (upload.content_type or "").lower()
        if not (content_type.startswith("image/") or content_type.startswith("video/")):
            raise StorageError(f"{upload.filename}: seules les images et vidéos sont acceptées")
        if len(upload.data) > self._max_bytes:
            raise StorageError(f"{upload.filename}: fichier trop volumineux")
        if not upload.data:
            raise StorageError(f"{upload.filename}: fichier vide")
        return self._extension(upload)

    def store(self, kind: ReportKind, report_id: str, upload: UploadedFile, *, now_ms: Optional[int] = None) -> str:
        """Write one file and return its public URL."""
        ext = self.check(upload)
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        relative = f"{_FOLDERS[kind]}/{secure_filename(report_id)}/{now_ms}_{secrets.token_hex(4)}.{ext}"

        target = self.bucket_dir / relative
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(upload.data)
        except OSError as exc:
            raise StorageError(f"{upload.filename}: échec de l'enregistrement") from exc

        log.info("stored %s (%d bytes)", relative, len(upload.data))
        return f"{self._url_prefix}/{self._bucket}/{relative}"

    def resolve(self, relative: str) -> Optional[Path]:
        """Filesystem path for a served URL tail, or None if it escapes the bucket."""
        base = self.bucket_dir.resolve()
        path = (base / relative).resolve()
        if base not in path.parents or not path.is_file():
            return None
        return path
