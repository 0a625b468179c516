"""Animated video export for audio messages.

Frames of the card are generated on an explicit clock (``elapsed = frame / fps``) and piped
as raw RGB into ffmpeg, which muxes them with the original audio into WebM.
"""

import logging
import math
import shutil
import subprocess
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path

import mutagen
from PIL import Image, ImageDraw

from murmur.exceptions import (
    EncodingUnsupportedError,
    ExportCancelledError,
    ExportError,
    ExportTimeoutError,
    PlaybackError,
)
from murmur.export.canvas import (
    CANVAS_SIZE,
    acquire_surface,
    diagonal_gradient,
    draw_badge,
    hsl,
    rounded_box,
    shadow_layer,
)
from murmur.export.image import CARD_PADDING, CARD_RADIUS, CONTENT_INSET, SaveArtifact, content_text
from murmur.export.layout import (
    StopCondition,
    compute_progress,
    format_clock,
    frame_schedule,
    sanitize_duration,
    video_filename,
    wrap_lines,
)
from murmur.export.theme import Theme

logger = logging.getLogger("murmur")

DEFAULT_FPS = 30
VIDEO_PLACEHOLDER = "Audio message received"
WAVE_BARS = 40
WAVE_MAX_HEIGHT = 80
UNPLAYED_BAR_COLOR = "hsl(220, 20%, 80%)"
PROGRESS_TRACK_COLOR = "hsl(220, 20%, 90%)"


class CancelToken:
    """Cooperative cancellation flag checked once per frame."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ExportCancelledError("Export cancelled")


@dataclass
class VideoResult:
    """Summary of a finished video export."""

    filename: str
    frames: int
    duration: float
    stop_reason: str


def probe_duration(audio_path: Path, ffprobe_binary: str = "ffprobe") -> float | None:
    """Audio length in seconds, or None if it cannot be determined.

    mutagen covers mp3/m4a/ogg/wav; browser WebM recordings need ffprobe.
    """
    try:
        audio = mutagen.File(audio_path)
    except mutagen.MutagenError as e:
        logger.debug("mutagen could not parse %s: %s", audio_path, e)
        audio = None
    if audio is not None and audio.info is not None and getattr(audio.info, "length", 0):
        return float(audio.info.length)

    binary = shutil.which(ffprobe_binary)
    if not binary:
        return None
    try:
        result = subprocess.run(
            [
                binary,
                "-v", "error",
                "-show_entries", "format=duration",
                "-of", "default=noprint_wrappers=1:nokey=1",
                str(audio_path),
            ],
            capture_output=True,
            text=True,
            timeout=30,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("ffprobe failed for %s: %s", audio_path, e)
        return None
    if result.returncode != 0:
        return None
    try:
        return float(result.stdout.strip())
    except ValueError:
        return None


def build_ffmpeg_command(
    binary: str, audio_path: Path, output_path: Path, size: tuple[int, int], fps: int, shortest: bool = False
) -> list[str]:
    """ffmpeg argv muxing raw frames from stdin with the audio file. ``shortest`` trims audio to the video."""
    width, height = size
    command = [
        binary,
        "-hide_banner",
        "-loglevel", "error",
        "-y",
        "-f", "rawvideo",
        "-pix_fmt", "rgb24",
        "-s", f"{width}x{height}",
        "-r", str(fps),
        "-i", "pipe:0",
        "-i", str(audio_path),
        "-map", "0:v:0",
        "-map", "1:a:0?",
        "-c:v", "libvpx",
        "-b:v", "2M",
        "-pix_fmt", "yuv420p",
        "-deadline", "realtime",
        "-cpu-used", "8",
        "-c:a", "libopus",
        "-b:a", "128k",
        "-f", "webm",
    ]
    if shortest:
        command.append("-shortest")
    command.append(str(output_path))
    return command


class AnimatedCard:
    """The audio card, split into pieces drawn once and pieces redrawn every frame."""

    def __init__(self, message, theme: Theme, duration: float) -> None:
        width, height = CANVAS_SIZE
        self.theme = theme
        self.duration = duration
        self.background = diagonal_gradient(CANVAS_SIZE, theme.background_stops)

        self.card_x = CARD_PADDING
        self.card_y = CARD_PADDING + 100
        self.card_w = width - CARD_PADDING * 2
        self.card_h = height - CARD_PADDING * 2 - 200
        self.card_box = (self.card_x, self.card_y, self.card_x + self.card_w, self.card_y + self.card_h)
        self.shadow = shadow_layer(CANVAS_SIZE, self.card_box, CARD_RADIUS)

        self.title_font = theme.font(48, bold=True)
        self.badge_font = theme.font(24, bold=True)
        self.body_font = theme.font(28)
        self.clock_font = theme.font(20)

        self.text_x = self.card_x + CONTENT_INSET
        self.inner_width = self.card_w - CONTENT_INSET * 2
        self.badge_y = self.card_y + 110
        self.badge_h = 36
        measure = ImageDraw.Draw(self.background).textlength
        lines = wrap_lines(
            content_text(message, VIDEO_PLACEHOLDER), self.inner_width, lambda s: measure(s, font=self.body_font)
        )
        self.lines = lines or [""]
        self.line_height = 35

    def draw(self, surface: Image.Image, elapsed: float, progress: float) -> None:
        theme = self.theme
        width, height = CANVAS_SIZE
        surface.paste(self.background)
        draw = ImageDraw.Draw(surface)

        dot_color = hsl(340, 82, 85 + math.sin(elapsed * 2) * 10)
        for i in range(30):
            x = (width / 6) * (i % 6) + 90
            y = (height / 5) * (i // 6) + 90
            radius = 12 + math.sin(elapsed * 3 + i * 0.5) * 6
            draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=dot_color)

        surface.paste(self.shadow, (0, 0), self.shadow)
        draw = ImageDraw.Draw(surface)
        rounded_box(draw, self.card_box, CARD_RADIUS, theme.card_color)

        draw.text(
            (self.text_x, self.card_y + 48), "Anonymous Audio Message", font=self.title_font, fill=theme.foreground_color
        )
        draw_badge(
            draw, "AUDIO", self.text_x, self.badge_y, self.badge_font,
            padding=16, height=self.badge_h, radius=8, fill=theme.highlight_color, text_fill=theme.card_color,
        )

        y = self.badge_y + self.badge_h + 24
        for index, line in enumerate(self.lines):
            if index:
                y += self.line_height
            draw.text((self.text_x, y), line, font=self.body_font, fill=theme.foreground_color)

        wave_y = y + 80
        bar_w = self.inner_width / WAVE_BARS
        for i in range(WAVE_BARS):
            frequency = 0.1 + (i / WAVE_BARS) * 0.3
            amplitude = math.sin(elapsed * 4 + i * frequency) * 0.5 + 0.5
            bar_h = 20 + amplitude * WAVE_MAX_HEIGHT
            x = self.text_x + i * bar_w
            bar_y = wave_y + (WAVE_MAX_HEIGHT - bar_h) / 2
            played = progress >= i / WAVE_BARS
            color = hsl(340 + (i / WAVE_BARS) * 60, 82, 70) if played else UNPLAYED_BAR_COLOR
            rounded_box(draw, (x, bar_y, x + bar_w - 2, bar_y + bar_h), 3, color)

        progress_y = wave_y + WAVE_MAX_HEIGHT + 40
        rounded_box(draw, (self.text_x, progress_y, self.text_x + self.inner_width, progress_y + 8), 4,
                    PROGRESS_TRACK_COLOR)
        rounded_box(draw, (self.text_x, progress_y, self.text_x + self.inner_width * progress, progress_y + 8), 4,
                    theme.highlight_color)

        draw.text(
            (self.text_x, progress_y + 30),
            format_clock(elapsed, self.duration),
            font=self.clock_font,
            fill=theme.foreground_color,
        )


def export_video(
    message,
    audio_path: Path,
    theme: Theme,
    save_artifact: SaveArtifact,
    *,
    fps: int = DEFAULT_FPS,
    ffmpeg_binary: str = "ffmpeg",
    ffprobe_binary: str = "ffprobe",
    max_seconds: int = 600,
    timeout_seconds: float = 900,
    cancel_token: CancelToken | None = None,
    duration: float | None = None,
) -> VideoResult:
    """Render the animated card for an audio message and mux it with the audio into WebM.

    The bytes go to ``save_artifact`` only after ffmpeg exits cleanly. Any failure raises an
    ExportError subclass and leaves nothing saved.
    """
    if not message.audio_url:
        raise PlaybackError("Message has no audio")
    audio_path = Path(audio_path)
    if not audio_path.is_file():
        raise PlaybackError(f"Audio file {audio_path.name} is not readable")

    encoder = shutil.which(ffmpeg_binary)
    if not encoder:
        raise EncodingUnsupportedError("WebM encoding is not available: ffmpeg was not found")

    if duration is None:
        duration = probe_duration(audio_path, ffprobe_binary)
        if duration is None:
            logger.warning("Could not read duration of %s; rendering the flush window only", audio_path.name)
    duration = sanitize_duration(duration)

    surface = acquire_surface(CANVAS_SIZE)
    card = AnimatedCard(message, theme, duration)
    stop = StopCondition(duration)
    token = cancel_token or CancelToken()
    deadline = time.monotonic() + timeout_seconds
    frames = 0

    with tempfile.TemporaryDirectory(prefix="murmur-video-") as workdir:
        output_path = Path(workdir) / "export.webm"
        log_path = Path(workdir) / "ffmpeg.log"
        max_frames = max_seconds * fps
        # Audio outlasting the frame cap is cut where the video ends.
        truncated = stop.reason(max_frames / fps) is None
        command = build_ffmpeg_command(encoder, audio_path, output_path, CANVAS_SIZE, fps, shortest=truncated)
        with open(log_path, "wb") as log_file:
            try:
                process = subprocess.Popen(
                    command, stdin=subprocess.PIPE, stdout=subprocess.DEVNULL, stderr=log_file
                )
            except OSError as e:
                raise EncodingUnsupportedError(f"Cannot start ffmpeg: {e}") from e

            try:
                for elapsed in frame_schedule(stop, fps, max_frames=max_frames):
                    token.raise_if_cancelled()
                    if time.monotonic() > deadline:
                        raise ExportTimeoutError(f"Video export exceeded {timeout_seconds}s")
                    card.draw(surface, elapsed, compute_progress(elapsed, duration))
                    process.stdin.write(surface.tobytes())
                    frames += 1
                process.stdin.close()
                returncode = process.wait(timeout=max(deadline - time.monotonic(), 1))
            except BrokenPipeError as e:
                raise ExportError(f"ffmpeg stopped accepting frames: {_tail(log_path)}") from e
            except subprocess.TimeoutExpired as e:
                raise ExportTimeoutError("ffmpeg did not finish in time") from e
            finally:
                if process.poll() is None:
                    process.kill()
                    process.wait()

        if returncode != 0:
            raise ExportError(f"Video encoding failed ({returncode}): {_tail(log_path)}")
        data = output_path.read_bytes()

    last_elapsed = (frames - 1) / fps if frames else 0.0
    reason = stop.reason(frames / fps) or "frame-limit"
    filename = video_filename(message.created_at)
    save_artifact(data, filename)
    logger.info(
        "Rendered video export for message %s: %d frames, %.2fs audio, last frame at %.2fs (%s)",
        message.id, frames, duration, last_elapsed, reason,
    )
    return VideoResult(filename=filename, frames=frames, duration=duration, stop_reason=reason)


def _tail(log_path: Path, limit: int = 500) -> str:
    try:
        return log_path.read_text(errors="replace")[-limit:].strip() or "no output"
    except OSError:
        return "no output"
