"""Local object storage for audio blobs.

Objects live under ``STORAGE_DIR/<bucket>/<name>`` and messages reference them by the
storage path ``<bucket>/<name>``, where ``<name>`` is ``<epoch-millis>-<recipientId>.<ext>``.
"""

import logging
import os
import re
import time
from pathlib import Path

from fastapi import UploadFile

from murmur.config import get_settings
from murmur.exceptions import ObjectNotFoundError, StorageError, UploadTooLargeError

logger = logging.getLogger("murmur")

DEFAULT_AUDIO_MIME = "audio/webm"
DEFAULT_AUDIO_EXTENSION = "webm"
AUDIO_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/webm;codecs=opus": "webm",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/mp4": "m4a",
    "audio/aac": "m4a",
    "audio/wav": "wav",
    "audio/ogg": "ogg",
    "audio/ogg;codecs=opus": "ogg",
}
EXTENSION_MEDIA_TYPES = {
    "webm": "audio/webm",
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
}
OBJECT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def extension_for_mime(mime_type: str | None) -> str:
    """Pick the stored file extension for an upload MIME type. Unknown types fall back to webm."""
    if not mime_type:
        return DEFAULT_AUDIO_EXTENSION
    normalized = mime_type.lower().replace(" ", "")
    if normalized in AUDIO_EXTENSIONS:
        return AUDIO_EXTENSIONS[normalized]
    return AUDIO_EXTENSIONS.get(normalized.split(";", 1)[0], DEFAULT_AUDIO_EXTENSION)


class StorageService:
    """Stores, resolves and reads audio objects."""

    def __init__(self, root: str | None = None, bucket: str | None = None) -> None:
        settings = get_settings()
        self.root = Path(root or settings.STORAGE_DIR)
        self.bucket = bucket or settings.AUDIO_BUCKET
        self.max_bytes = settings.MAX_AUDIO_UPLOAD_MB * 1024 * 1024

    @property
    def bucket_dir(self) -> Path:
        return self.root / self.bucket

    def validate_audio_type(self, content_type: str | None) -> str | None:
        """Validate an upload MIME type. Returns error message or None if valid."""
        if not content_type:
            return None
        base = content_type.split(";", 1)[0].strip().lower()
        if base.startswith("audio/") or base == "video/webm":
            return None
        return f"Invalid content type '{content_type}'. Must be an audio file."

    def build_object_name(self, recipient_id: str, mime_type: str | None, now_ms: int | None = None) -> str:
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return f"{now_ms}-{recipient_id}.{extension_for_mime(mime_type)}"

    def storage_path(self, object_name: str) -> str:
        return f"{self.bucket}/{object_name}"

    def object_name(self, storage_path: str) -> str:
        """Strip the bucket prefix from a storage path and reject anything that is not a plain name."""
        name = storage_path
        prefix = f"{self.bucket}/"
        if name.startswith(prefix):
            name = name[len(prefix) :]
        if not OBJECT_NAME_PATTERN.match(name):
            raise ObjectNotFoundError(f"Invalid object name '{storage_path}'")
        return name

    async def upload_audio(self, recipient_id: str, upload: UploadFile) -> str:
        """Stream an uploaded audio blob into the bucket. Returns the storage path.

        Raises UploadTooLargeError if the blob exceeds the configured limit and ValueError if it is empty.
        """
        content_type = upload.content_type or DEFAULT_AUDIO_MIME
        name = self.build_object_name(recipient_id, content_type)
        self.bucket_dir.mkdir(parents=True, exist_ok=True)

        file_path = self.bucket_dir / name
        file_size = 0
        chunk_size = 1024 * 64  # 64KB chunks

        try:
            with open(file_path, "xb") as f:
                while True:
                    chunk = await upload.read(chunk_size)
                    if not chunk:
                        break
                    file_size += len(chunk)
                    if file_size > self.max_bytes:
                        raise UploadTooLargeError(
                            f"Audio too large. Maximum: {self.max_bytes // (1024 * 1024)}MB"
                        )
                    f.write(chunk)
        except FileExistsError as e:
            raise StorageError(f"Audio object {name} already exists") from e
        except UploadTooLargeError:
            if file_path.exists():
                os.remove(file_path)
            raise
        except OSError as e:
            if file_path.exists():
                os.remove(file_path)
            raise StorageError(f"Could not store audio: {e}") from e

        if file_size == 0:
            os.remove(file_path)
            raise ValueError("Audio upload is empty")

        logger.info("Stored audio object %s (%d bytes, %s)", name, file_size, content_type)
        return self.storage_path(name)

    def resolve_public_url(self, storage_path: str, base_url: str) -> str:
        """Public URL the browser can fetch the object from."""
        return f"{base_url.rstrip('/')}/storage/{self.bucket}/{self.object_name(storage_path)}"

    def local_path(self, storage_path: str) -> Path:
        """Filesystem location of an existing object."""
        file_path = self.bucket_dir / self.object_name(storage_path)
        if not file_path.is_file():
            raise ObjectNotFoundError(f"Audio object '{storage_path}' not found")
        return file_path

    def read_bytes(self, storage_path: str) -> bytes:
        file_path = self.local_path(storage_path)
        try:
            return file_path.read_bytes()
        except OSError as e:
            raise StorageError(f"Could not read audio: {e}") from e

    def media_type(self, storage_path: str) -> str:
        ext = self.object_name(storage_path).rsplit(".", 1)[-1].lower()
        return EXTENSION_MEDIA_TYPES.get(ext, DEFAULT_AUDIO_MIME)


_storage_service: StorageService | None = None


def get_storage_service() -> StorageService:
    """Get singleton storage service instance."""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
