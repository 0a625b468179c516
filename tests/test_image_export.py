"""Tests for the still-image card renderer."""

import io
import random
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from murmur.exceptions import SurfaceUnavailableError
from murmur.export import Theme, export_image, render_card
from murmur.export.canvas import CANVAS_SIZE, acquire_surface
from murmur.export.image import AUDIO_PLACEHOLDER, WAVEFORM_BARS


def make_message(message_type: str = "text", text: str | None = "Thank you for listening", audio_url=None):
    return SimpleNamespace(
        id="msg-1",
        message_type=message_type,
        message_text=text,
        audio_url=audio_url,
        created_at=datetime(2026, 10, 18, 17, 44),
    )


class TestRenderCard:
    """Tests for card layout."""

    def test_text_card(self):
        """Text messages get a TEXT badge and no waveform."""
        image, layout = render_card(make_message(), Theme(), rng=random.Random(1))
        assert image.size == CANVAS_SIZE
        assert layout.title == "Anonymous Message"
        assert layout.badge_text == "TEXT"
        assert layout.lines == ["Thank you for listening"]
        assert layout.waveform_bars == []
        assert layout.footer == "Received: Oct 18, 2026, 5:44 PM"

    def test_audio_card_without_text(self):
        """Audio-only messages show the placeholder and a waveform."""
        message = make_message("audio", text=None, audio_url="audio-messages/1-x.webm")
        _, layout = render_card(message, Theme(), rng=random.Random(1))
        assert layout.title == "Anonymous Audio Message"
        assert layout.badge_text == "AUDIO"
        assert " ".join(layout.lines) == AUDIO_PLACEHOLDER
        assert len(layout.waveform_bars) == WAVEFORM_BARS

    def test_both_card(self):
        """Text plus audio uses the BOTH badge with the text as content."""
        message = make_message("both", text="Listen to this", audio_url="audio-messages/1-x.webm")
        _, layout = render_card(message, Theme(), rng=random.Random(1))
        assert layout.badge_text == "BOTH"
        assert layout.lines == ["Listen to this"]
        assert layout.waveform_bars == []

    def test_long_text_wraps_inside_card(self):
        """Wrapped lines stay within the card's text column."""
        message = make_message(text="word " * 200)
        image, layout = render_card(message, Theme(), rng=random.Random(1))
        assert len(layout.lines) > 1
        assert " ".join(layout.lines) == " ".join(message.message_text.split())


class TestExportImage:
    """Tests for the JPEG export."""

    def test_saves_jpeg(self):
        """The artifact is a 1080x1080 JPEG named after the message date."""
        save = MagicMock()
        export_image(make_message(), Theme(), save, rng=random.Random(1))

        save.assert_called_once()
        data, filename = save.call_args.args
        assert filename == "message-2026-10-18.jpg"
        with Image.open(io.BytesIO(data)) as image:
            assert image.format == "JPEG"
            assert image.size == CANVAS_SIZE

    def test_surface_failure_saves_nothing(self):
        """If no raster can be allocated, nothing is handed to the saver."""
        save = MagicMock()
        with patch("murmur.export.canvas.Image.new", side_effect=MemoryError):
            with pytest.raises(SurfaceUnavailableError):
                export_image(make_message(), Theme(), save)
        save.assert_not_called()

    def test_acquire_surface_wraps_errors(self):
        with patch("murmur.export.canvas.Image.new", side_effect=ValueError("bad size")):
            with pytest.raises(SurfaceUnavailableError):
                acquire_surface((0, 0))

    def test_theme_from_settings_overrides(self):
        settings = SimpleNamespace(
            THEME_PRIMARY_COLOR="#112233",
            THEME_ACCENT_COLOR="",
            THEME_FOREGROUND_COLOR="",
            THEME_CARD_COLOR="",
            EXPORT_FONT_PATH="",
            EXPORT_BOLD_FONT_PATH="",
        )
        theme = Theme.from_settings(settings)
        assert theme.primary_color == "#112233"
        assert theme.card_color == Theme().card_color
