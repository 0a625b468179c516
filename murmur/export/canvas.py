"""Raster primitives on top of Pillow."""

from collections.abc import Sequence

from PIL import Image, ImageChops, ImageColor, ImageDraw, ImageFilter

from murmur.exceptions import SurfaceUnavailableError

CANVAS_SIZE = (1080, 1080)

Box = tuple[float, float, float, float]


def acquire_surface(size: tuple[int, int] = CANVAS_SIZE) -> Image.Image:
    """Allocate the RGB raster an export draws on."""
    try:
        return Image.new("RGB", size)
    except (MemoryError, ValueError, OSError) as e:
        raise SurfaceUnavailableError(f"Cannot allocate {size[0]}x{size[1]} surface: {e}") from e


def hsl(hue: float, saturation: float, lightness: float) -> str:
    return f"hsl({hue % 360:.1f}, {saturation:.1f}%, {lightness:.1f}%)"


def _palette(stops: Sequence[tuple[float, str]]) -> list[int]:
    """256-entry RGB palette interpolating between colour stops."""
    points = [(offset, ImageColor.getrgb(color)[:3]) for offset, color in stops]
    palette: list[int] = []
    for i in range(256):
        t = i / 255
        lower = points[0]
        upper = points[-1]
        for start, end in zip(points, points[1:]):
            if start[0] <= t <= end[0]:
                lower, upper = start, end
                break
        span = upper[0] - lower[0]
        ratio = 0.0 if span <= 0 else min(max((t - lower[0]) / span, 0.0), 1.0)
        palette.extend(round(a + (b - a) * ratio) for a, b in zip(lower[1], upper[1]))
    return palette


def _colorize(ramp: Image.Image, stops: Sequence[tuple[float, str]]) -> Image.Image:
    ramp.putpalette(_palette(stops))
    return ramp.convert("RGB")


def diagonal_gradient(size: tuple[int, int], stops: Sequence[tuple[float, str]]) -> Image.Image:
    """Top-left to bottom-right linear gradient."""
    vertical = Image.linear_gradient("L").resize(size)
    horizontal = Image.linear_gradient("L").rotate(90).resize(size)
    return _colorize(ImageChops.add(horizontal, vertical, scale=2.0), stops)


def vertical_gradient(size: tuple[int, int], stops: Sequence[tuple[float, str]]) -> Image.Image:
    return _colorize(Image.linear_gradient("L").resize(size), stops)


def shadow_layer(size: tuple[int, int], box: Box, radius: int, offset_y: int = 8, blur: int = 24) -> Image.Image:
    """Blurred translucent silhouette of a rounded box, to be pasted under the card."""
    layer = Image.new("RGBA", size, (0, 0, 0, 0))
    x0, y0, x1, y1 = box
    ImageDraw.Draw(layer).rounded_rectangle((x0, y0 + offset_y, x1, y1 + offset_y), radius, fill=(0, 0, 0, 64))
    return layer.filter(ImageFilter.GaussianBlur(blur / 2))


def rounded_box(draw: ImageDraw.ImageDraw, box: Box, radius: float, fill: str) -> None:
    x0, y0, x1, y1 = box
    if x1 <= x0 or y1 <= y0:
        return
    radius = min(radius, (x1 - x0) / 2, (y1 - y0) / 2)
    draw.rounded_rectangle((x0, y0, x1, y1), radius, fill=fill)


def paste_gradient_box(
    surface: Image.Image, box: Box, radius: float, stops: Sequence[tuple[float, str]]
) -> None:
    """Fill a rounded box with a top-to-bottom gradient."""
    x0, y0, x1, y1 = (round(v) for v in box)
    width, height = x1 - x0, y1 - y0
    if width <= 0 or height <= 0:
        return
    mask = Image.new("L", (width, height), 0)
    rounded_box(ImageDraw.Draw(mask), (0, 0, width - 1, height - 1), radius, fill=255)
    surface.paste(vertical_gradient((width, height), stops), (x0, y0), mask)


def draw_badge(draw: ImageDraw.ImageDraw, text: str, x: float, y: float, font, padding: int, height: int,
               radius: int, fill: str, text_fill: str) -> float:
    """Pill with centred label. Returns the badge width."""
    width = draw.textlength(text, font=font) + padding * 2
    rounded_box(draw, (x, y, x + width, y + height), radius, fill)
    draw.text((x + padding, y + height / 2), text, font=font, fill=text_fill, anchor="lm")
    return width


def draw_note_icon(draw: ImageDraw.ImageDraw, x: float, y: float, size: int, fill: str) -> None:
    """Beamed double eighth note."""
    head_w, head_h = size * 0.38, size * 0.28
    stem_w = max(2, size * 0.08)
    left_x, right_x = x, x + size * 0.6
    base_y = y + size - head_h
    top_y = y
    for head_x in (left_x, right_x):
        draw.ellipse((head_x, base_y, head_x + head_w, base_y + head_h), fill=fill)
        stem_x = head_x + head_w - stem_w
        draw.rectangle((stem_x, top_y, stem_x + stem_w, base_y + head_h / 2), fill=fill)
    draw.rectangle((left_x + head_w - stem_w, top_y, right_x + head_w, top_y + size * 0.16), fill=fill)
