"""Shareable exports of a single message: still JPEG cards and animated WebM videos."""

from murmur.export.image import CardLayout, export_image, render_card
from murmur.export.theme import Theme
from murmur.export.video import CancelToken, VideoResult, export_video

__all__ = ["CancelToken", "CardLayout", "Theme", "VideoResult", "export_image", "export_video", "render_card"]
