"""Tests for the shared layout and timing helpers."""

import math
from datetime import datetime

import pytest

from murmur.export.layout import (
    StopCondition,
    audio_filename,
    compute_progress,
    format_clock,
    format_received,
    frame_schedule,
    image_filename,
    sanitize_duration,
    video_filename,
    wrap_lines,
)


def char_width(text: str) -> float:
    """Monospace measure: one unit per character."""
    return float(len(text))


class TestWrapLines:
    """Tests for greedy word wrapping."""

    def test_short_text_is_one_line(self):
        assert wrap_lines("hello world", 20, char_width) == ["hello world"]

    def test_wraps_at_width(self):
        assert wrap_lines("aaa bbb ccc ddd", 7, char_width) == ["aaa bbb", "ccc ddd"]

    def test_lines_fit_unless_single_word(self):
        text = "the quick brown fox jumps over the extraordinarily lazy dog"
        for width in (5, 8, 12, 20):
            for line in wrap_lines(text, width, char_width):
                assert char_width(line) <= width or " " not in line

    def test_concatenation_preserves_words(self):
        text = "one  two\tthree\nfour five"
        lines = wrap_lines(text, 9, char_width)
        assert " ".join(lines) == " ".join(text.split())

    def test_overlong_word_gets_own_line(self):
        assert wrap_lines("hi supercalifragilistic yo", 6, char_width) == ["hi", "supercalifragilistic", "yo"]

    def test_empty_text(self):
        assert wrap_lines("   ", 10, char_width) == []


class TestProgress:
    """Tests for playback progress."""

    def test_progress_is_ratio(self):
        assert compute_progress(2.5, 10.0) == 0.25

    def test_progress_saturates(self):
        assert compute_progress(15.0, 10.0) == 1.0

    def test_progress_bounds(self):
        for elapsed in (-1.0, 0.0, 0.3, 9.99, 10.0, 1e9, math.nan):
            assert 0.0 <= compute_progress(elapsed, 10.0) <= 1.0

    def test_unknown_duration_counts_as_finished(self):
        for duration in (None, 0.0, math.nan, math.inf, -3.0):
            assert compute_progress(1.0, duration) == 1.0

    def test_sanitize_duration(self):
        assert sanitize_duration(4.2) == 4.2
        assert sanitize_duration("3") == 3.0
        for value in (None, math.nan, math.inf, -1.0, "abc"):
            assert sanitize_duration(value) == 0.0


class TestStopCondition:
    """Tests for when animated exports stop."""

    @pytest.mark.parametrize("duration", [0.0, 0.3, 1.0, 2.5, 7.25])
    @pytest.mark.parametrize("fps", [10, 30])
    def test_frames_bounded_by_duration(self, duration: float, fps: int):
        """The last frame is within the flush window after the audio ends."""
        frames = list(frame_schedule(StopCondition(duration), fps))
        assert frames
        assert frames[-1] < duration + 0.5
        assert frames[-1] <= duration + 1.0
        assert frames[-1] + 1 / fps >= duration + 0.5 - 1e-9

    def test_safety_margin_caps_long_flush(self):
        """A slow audio-ended signal still stops one second past the duration."""
        stop = StopCondition(2.0, flush_delay=5.0)
        frames = list(frame_schedule(stop, 10))
        assert frames[-1] <= 3.0
        assert stop.reason(frames[-1] + 0.1) == "safety-margin"

    def test_reason(self):
        stop = StopCondition(3.0)
        assert stop.reason(1.0) is None
        assert stop.reason(3.5) == "audio-ended"

    def test_frame_cap(self):
        assert len(list(frame_schedule(StopCondition(100.0), 30, max_frames=12))) == 12

    def test_rejects_bad_fps(self):
        with pytest.raises(ValueError):
            list(frame_schedule(StopCondition(1.0), 0))

    def test_frame_clock(self):
        assert list(frame_schedule(StopCondition(0.0), 4)) == [0.0, 0.25]


class TestFormatting:
    """Tests for labels and download names."""

    def test_format_received(self):
        assert format_received(datetime(2026, 10, 18, 17, 44)) == "Oct 18, 2026, 5:44 PM"
        assert format_received(datetime(2026, 1, 2, 0, 5)) == "Jan 2, 2026, 12:05 AM"

    def test_format_clock(self):
        assert format_clock(3.7, 12.2) == "3s / 12s"

    def test_filenames(self):
        created = datetime(2026, 10, 18, 17, 44)
        assert image_filename(created) == "message-2026-10-18.jpg"
        assert audio_filename(created) == "audio-message-2026-10-18-1744.mp3"
        assert video_filename(created) == "audio-message-video-2026-10-18-1744.webm"
