"""Still-image export: one message rendered as a shareable JPEG card."""

import io
import logging
import math
import random
from collections.abc import Callable
from dataclasses import dataclass, field

from PIL import Image, ImageDraw

from murmur.export.canvas import (
    CANVAS_SIZE,
    acquire_surface,
    diagonal_gradient,
    draw_badge,
    draw_note_icon,
    paste_gradient_box,
    rounded_box,
    shadow_layer,
)
from murmur.export.layout import format_received, image_filename, wrap_lines
from murmur.export.theme import Theme

logger = logging.getLogger("murmur")

SaveArtifact = Callable[[bytes, str], None]

JPEG_QUALITY = 92
CARD_PADDING = 72
CARD_RADIUS = 32
CONTENT_INSET = 48
AUDIO_PLACEHOLDER = "Audio message received. Play it from your dashboard."
WAVEFORM_BARS = 48
WAVEFORM_GAP = 6
WAVEFORM_HEIGHT = 64


@dataclass
class CardLayout:
    """What a renderer put on the card."""

    title: str
    badge_text: str
    lines: list[str]
    footer: str = ""
    waveform_bars: list[tuple[float, float, float, float]] = field(default_factory=list)


def card_title(message_type: str) -> str:
    return "Anonymous Audio Message" if message_type == "audio" else "Anonymous Message"


def content_text(message, placeholder: str = AUDIO_PLACEHOLDER) -> str:
    text = message.message_text
    return text if text and text.strip() else placeholder


def _fit_lines(lines: list[str], max_lines: int) -> list[str]:
    if len(lines) <= max_lines:
        return lines
    visible = lines[:max_lines]
    visible[-1] = visible[-1].rstrip(".") + "…"
    return visible


def render_card(message, theme: Theme, rng: random.Random | None = None) -> tuple[Image.Image, CardLayout]:
    """Draw the still card for ``message``. Raises SurfaceUnavailableError if no raster can be allocated."""
    rng = rng or random.Random()
    width, height = CANVAS_SIZE
    surface = acquire_surface(CANVAS_SIZE)

    surface.paste(diagonal_gradient(CANVAS_SIZE, theme.background_stops))
    draw = ImageDraw.Draw(surface)
    for _ in range(50):
        x, y = rng.random() * width, rng.random() * height
        radius = 8 + rng.random() * 12
        draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=theme.dot_color)

    card_x, card_y = CARD_PADDING, CARD_PADDING
    card_w, card_h = width - CARD_PADDING * 2, height - CARD_PADDING * 2
    card_box = (card_x, card_y, card_x + card_w, card_y + card_h)
    shadow = shadow_layer(CANVAS_SIZE, card_box, CARD_RADIUS)
    surface.paste(shadow, (0, 0), shadow)
    draw = ImageDraw.Draw(surface)
    rounded_box(draw, card_box, CARD_RADIUS, theme.card_color)

    text_x = card_x + CONTENT_INSET
    text_width = card_w - CONTENT_INSET * 2

    title = card_title(message.message_type)
    draw.text((text_x, card_y + 48), title, font=theme.font(64, bold=True), fill=theme.foreground_color)

    badge_text = message.message_type.upper()
    badge_y, badge_h = card_y + 130, 44
    draw_badge(
        draw, badge_text, text_x, badge_y, theme.font(28, bold=True),
        padding=20, height=badge_h, radius=12, fill=theme.primary_color, text_fill=theme.primary_foreground_color,
    )

    body_font = theme.font(36)
    line_height = 48
    lines = wrap_lines(content_text(message), text_width, lambda s: draw.textlength(s, font=body_font))
    footer_y = card_y + card_h - 72
    text_y = badge_y + badge_h + 32
    reserved = WAVEFORM_HEIGHT + 64 if message.message_type == "audio" else 0
    max_lines = max(1, int((footer_y - 24 - reserved - text_y) // line_height))
    for index, line in enumerate(_fit_lines(lines, max_lines)):
        draw.text((text_x, text_y + index * line_height), line, font=body_font, fill=theme.foreground_color)
    end_y = text_y + max(1, min(len(lines), max_lines)) * line_height

    bars: list[tuple[float, float, float, float]] = []
    if message.message_type == "audio":
        base_y = end_y + 32
        bar_w = (text_width - (WAVEFORM_BARS - 1) * WAVEFORM_GAP) / WAVEFORM_BARS
        for i in range(WAVEFORM_BARS):
            bar_h = 20 + math.sin(i * 0.5) * 18 + rng.random() * 16
            x = text_x + i * (bar_w + WAVEFORM_GAP)
            y = base_y + (WAVEFORM_HEIGHT - bar_h) / 2
            bars.append((x, y, x + bar_w, y + bar_h))
            paste_gradient_box(surface, bars[-1], 2, theme.waveform_stops)
        draw = ImageDraw.Draw(surface)
        draw_note_icon(draw, text_x + text_width - 60, base_y + 20, 32, theme.accent_color)

    footer = f"Received: {format_received(message.created_at)}"
    draw.text((text_x, footer_y), footer, font=theme.font(24), fill=theme.muted_foreground_color)

    return surface, CardLayout(title=title, badge_text=badge_text, lines=lines, footer=footer, waveform_bars=bars)


def encode_jpeg(image: Image.Image, quality: int = JPEG_QUALITY) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def export_image(message, theme: Theme, save_artifact: SaveArtifact, rng: random.Random | None = None) -> CardLayout:
    """Render ``message`` to JPEG and hand the bytes to ``save_artifact``.

    Nothing is saved when rendering fails.
    """
    image, layout = render_card(message, theme, rng=rng)
    data = encode_jpeg(image)
    save_artifact(data, image_filename(message.created_at))
    logger.info("Rendered image export for message %s (%d bytes)", message.id, len(data))
    return layout
