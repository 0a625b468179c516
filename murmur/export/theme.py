"""Visual theme passed explicitly into the renderers."""

from dataclasses import dataclass
from functools import lru_cache

from PIL import ImageFont

from murmur.config import Settings
from murmur.exceptions import ExportError


@lru_cache(maxsize=32)
def load_font(path: str, size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a TrueType font, or Pillow's bundled scalable font when no path is configured."""
    if not path:
        return ImageFont.load_default(size=size)
    try:
        return ImageFont.truetype(path, size)
    except OSError as e:
        raise ExportError(f"Cannot load font '{path}': {e}") from e


@dataclass(frozen=True)
class Theme:
    """Colours and fonts for export cards. Colours are Pillow colour strings."""

    primary_color: str = "hsl(220, 90%, 50%)"
    accent_color: str = "hsl(300, 80%, 60%)"
    foreground_color: str = "hsl(222, 84%, 5%)"
    card_color: str = "hsl(0, 0%, 100%)"
    primary_foreground_color: str = "hsl(210, 40%, 98%)"
    muted_foreground_color: str = "hsl(215, 16%, 47%)"
    highlight_color: str = "hsl(340, 82%, 70%)"
    dot_color: str = "hsl(340, 82%, 95%)"
    background_stops: tuple[tuple[float, str], ...] = (
        (0.0, "hsl(340, 82%, 90%)"),
        (0.3, "hsl(260, 75%, 92%)"),
        (0.7, "hsl(200, 90%, 88%)"),
        (1.0, "hsl(150, 65%, 85%)"),
    )
    waveform_stops: tuple[tuple[float, str], ...] = (
        (0.0, "hsl(340, 82%, 75%)"),
        (0.5, "hsl(260, 75%, 80%)"),
        (1.0, "hsl(200, 90%, 75%)"),
    )
    font_path: str = ""
    bold_font_path: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "Theme":
        """Default theme with any colour or font overrides from settings applied."""
        overrides = {
            "primary_color": settings.THEME_PRIMARY_COLOR,
            "accent_color": settings.THEME_ACCENT_COLOR,
            "foreground_color": settings.THEME_FOREGROUND_COLOR,
            "card_color": settings.THEME_CARD_COLOR,
            "font_path": settings.EXPORT_FONT_PATH,
            "bold_font_path": settings.EXPORT_BOLD_FONT_PATH,
        }
        return cls(**{key: value for key, value in overrides.items() if value})

    def font(self, size: int, bold: bool = False) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        path = (self.bold_font_path or self.font_path) if bold else self.font_path
        return load_font(path, size)
