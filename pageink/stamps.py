"""Signature and image stamps prepared for placement."""

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional, Sequence, Union
import logging

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Script-like fonts tried for typed signatures, in order
SIGNATURE_FONTS = ["BrushScriptMT.ttf", "DejaVuSans-Oblique.ttf", "DejaVuSans.ttf", "Arial.ttf"]


@dataclass(frozen=True)
class PreparedStamp:
    """PNG bytes ready to be placed on a page."""
    data: bytes
    width: int
    height: int
    label: str = ""


def _load_font(size: int, font_path: Optional[str]) -> ImageFont.ImageFont:
    candidates = [font_path] if font_path else SIGNATURE_FONTS
    for candidate in candidates:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    logger.debug("No signature font found, using Pillow's default font")
    return ImageFont.load_default(size=size)


def _to_png(image: Image.Image) -> bytes:
    buffer = BytesIO()
    image.save(buffer, "PNG")
    return buffer.getvalue()


def stamp_from_text(text: str, font_size: int = 48, color: str = "#000000",
                    font_path: Optional[str] = None, padding: int = 20) -> PreparedStamp:
    """Render a typed signature onto a transparent PNG."""
    text = text.strip()
    if not text:
        raise ValueError("Signature text is empty")

    font = _load_font(font_size, font_path)
    measure = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    left, top, right, bottom = measure.textbbox((0, 0), text, font=font)
    width = int(right - left) + padding * 2
    height = int(bottom - top) + padding * 2

    image = Image.new("RGBA", (width, height), (255, 255, 255, 0))
    draw = ImageDraw.Draw(image)
    draw.text((padding - left, padding - top), text, font=font, fill=color)
    return PreparedStamp(_to_png(image), width, height, label=text)


def stamp_from_image(source: Union[str, Path, bytes]) -> PreparedStamp:
    """Load an uploaded image (any format Pillow reads) as a PNG stamp."""
    try:
        if isinstance(source, bytes):
            image = Image.open(BytesIO(source))
            label = "image"
        else:
            image = Image.open(source)
            label = Path(source).name
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Not a readable image: {e}") from e

    image = image.convert("RGBA")
    return PreparedStamp(_to_png(image), image.width, image.height, label=label)


def stamp_from_strokes(strokes: Sequence[Sequence[tuple[float, float]]], width: int = 2,
                       color: str = "#000000", padding: int = 10) -> PreparedStamp:
    """Render strokes drawn on a signature pad onto a transparent PNG.

    Points are pad pixels. The image is trimmed to the drawn area plus
    `padding`.
    """
    points = [p for stroke in strokes for p in stroke]
    if not points:
        raise ValueError("Signature pad is empty")

    left = min(x for x, _ in points) - padding
    top = min(y for _, y in points) - padding
    right = max(x for x, _ in points) + padding
    bottom = max(y for _, y in points) + padding
    size = (max(1, round(right - left)), max(1, round(bottom - top)))

    image = Image.new("RGBA", size, (255, 255, 255, 0))
    draw = ImageDraw.Draw(image)
    radius = width / 2
    for stroke in strokes:
        shifted = [(x - left, y - top) for x, y in stroke]
        if not shifted:
            continue
        if len(shifted) > 1:
            draw.line(shifted, fill=color, width=width, joint="curve")
        # round caps, and a dot for single taps
        for x, y in (shifted[0], shifted[-1]):
            draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=color)
    return PreparedStamp(_to_png(image), size[0], size[1], label="drawn signature")
