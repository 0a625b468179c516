"""Pure layout and timing helpers shared by the image and video renderers."""

import math
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import datetime

AUDIO_END_FLUSH_SECONDS = 0.5
SAFETY_MARGIN_SECONDS = 1.0


def wrap_lines(text: str, max_width: float, measure: Callable[[str], float]) -> list[str]:
    """Greedy word wrap.

    Words are accumulated into the current line until adding the next one would make the
    measured width exceed ``max_width``; the current line is then flushed and the word starts
    a new one. A single word wider than ``max_width`` still gets a line of its own.
    Runs of whitespace collapse to single spaces.
    """
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and measure(candidate) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def sanitize_duration(duration: float | None) -> float:
    """Clamp an audio duration to a finite, non-negative number of seconds.

    Unknown, NaN, infinite or negative durations saturate to 0 so playback is
    treated as already finished.
    """
    if duration is None:
        return 0.0
    try:
        duration = float(duration)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(duration) or duration < 0:
        return 0.0
    return duration


def compute_progress(elapsed: float, duration: float | None) -> float:
    """Playback progress in [0, 1]: ``min(elapsed / duration, 1)``."""
    duration = sanitize_duration(duration)
    if duration == 0:
        return 1.0
    if not math.isfinite(elapsed) or elapsed <= 0:
        return 0.0
    return min(elapsed / duration, 1.0)


@dataclass(frozen=True)
class StopCondition:
    """When an animated export stops recording.

    The audio ends at ``duration``; recording continues for ``flush_delay`` to capture the
    trailing frames. Independently, nothing is recorded past ``duration + safety_margin``.
    """

    duration: float
    flush_delay: float = AUDIO_END_FLUSH_SECONDS
    safety_margin: float = SAFETY_MARGIN_SECONDS

    def reason(self, elapsed: float) -> str | None:
        if elapsed >= self.duration + self.flush_delay:
            return "audio-ended"
        if elapsed > self.duration + self.safety_margin:
            return "safety-margin"
        return None


def frame_schedule(stop: StopCondition, fps: int, max_frames: int | None = None) -> Iterator[float]:
    """Yield the elapsed time of each frame until the stop condition or the frame cap is hit."""
    if fps <= 0:
        raise ValueError(f"fps must be positive, got {fps}")
    index = 0
    while max_frames is None or index < max_frames:
        elapsed = index / fps
        if stop.reason(elapsed):
            return
        yield elapsed
        index += 1


def format_received(created_at: datetime) -> str:
    """Human timestamp for card footers, e.g. ``Oct 18, 2026, 5:44 PM``."""
    hour = created_at.hour % 12 or 12
    meridiem = "AM" if created_at.hour < 12 else "PM"
    return f"{created_at:%b} {created_at.day}, {created_at.year}, {hour}:{created_at:%M} {meridiem}"


def format_clock(elapsed: float, duration: float) -> str:
    return f"{int(elapsed)}s / {int(duration)}s"


def image_filename(created_at: datetime) -> str:
    return f"message-{created_at:%Y-%m-%d}.jpg"


def audio_filename(created_at: datetime) -> str:
    # Fetched bytes are saved verbatim whatever the container; the name keeps the .mp3 suffix.
    return f"audio-message-{created_at:%Y-%m-%d-%H%M}.mp3"


def video_filename(created_at: datetime) -> str:
    return f"audio-message-video-{created_at:%Y-%m-%d-%H%M}.webm"
