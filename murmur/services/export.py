"""Export service: turns a stored message into a downloadable artifact."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from murmur.config import get_settings
from murmur.exceptions import ExportBusyError, PlaybackError
from murmur.export import Theme, export_image, export_video
from murmur.export.layout import audio_filename
from murmur.models.message import Message
from murmur.services.storage import get_storage_service

logger = logging.getLogger("murmur")


@dataclass
class Artifact:
    """Bytes ready to be sent as a download."""

    filename: str
    content: bytes
    media_type: str


class ArtifactCollector:
    """``save_artifact`` capability that keeps the artifact in memory for the response."""

    def __init__(self, media_type: str) -> None:
        self.media_type = media_type
        self.artifact: Artifact | None = None

    def __call__(self, content: bytes, filename: str) -> None:
        self.artifact = Artifact(filename=filename, content=content, media_type=self.media_type)


class ExportService:
    """Runs image, audio and video exports for recipients."""

    def __init__(self) -> None:
        self._busy: set[str] = set()
        self._lock = threading.Lock()

    def build_theme(self) -> Theme:
        return Theme.from_settings(get_settings())

    @contextmanager
    def busy_guard(self, message_id: str) -> Iterator[None]:
        """Allow one video export per message at a time."""
        with self._lock:
            if message_id in self._busy:
                raise ExportBusyError("A video for this message is already being created")
            self._busy.add(message_id)
        try:
            yield
        finally:
            with self._lock:
                self._busy.discard(message_id)

    def is_busy(self, message_id: str) -> bool:
        with self._lock:
            return message_id in self._busy

    def export_image(self, message: Message) -> Artifact:
        collector = ArtifactCollector("image/jpeg")
        export_image(message, self.build_theme(), collector)
        return collector.artifact

    def export_audio(self, message: Message) -> Artifact:
        """Original audio bytes, unchanged."""
        if not message.audio_url:
            raise PlaybackError("Message has no audio")
        storage = get_storage_service()
        content = storage.read_bytes(message.audio_url)
        return Artifact(
            filename=audio_filename(message.created_at),
            content=content,
            media_type=storage.media_type(message.audio_url),
        )

    def export_video(self, message: Message) -> Artifact:
        if not message.audio_url:
            raise PlaybackError("Only audio messages can be exported as video")
        settings = get_settings()
        audio_path = get_storage_service().local_path(message.audio_url)
        collector = ArtifactCollector("video/webm")

        with self.busy_guard(message.id):
            logger.info("Starting video export for message %s", message.id)
            export_video(
                message,
                audio_path,
                self.build_theme(),
                collector,
                fps=settings.VIDEO_FPS,
                ffmpeg_binary=settings.FFMPEG_BINARY,
                ffprobe_binary=settings.FFPROBE_BINARY,
                max_seconds=settings.VIDEO_MAX_SECONDS,
                timeout_seconds=settings.VIDEO_TIMEOUT_SECONDS,
            )
        return collector.artifact


_export_service: ExportService | None = None


def get_export_service() -> ExportService:
    """Get singleton export service instance."""
    global _export_service
    if _export_service is None:
        _export_service = ExportService()
    return _export_service
