"""Placeholder card image used when a card is exported without artwork."""

import logging
from io import BytesIO

from PIL import Image, ImageDraw

logger = logging.getLogger(__name__)

_TOP = (31, 41, 55)
_BOTTOM = (17, 24, 39)
_SILHOUETTE_BACK = (55, 65, 81)
_SILHOUETTE = (107, 114, 128)
_CAPTION = (156, 163, 175)


def create_placeholder_image(width: int = 400, height: int = 600) -> bytes:
    """
    Draw a dark portrait placeholder and return it as PNG bytes.

    Args:
        width: Image width in pixels
        height: Image height in pixels
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Placeholder size must be positive, got {width}x{height}")

    img = Image.new('RGB', (width, height), color=_TOP)
    draw = ImageDraw.Draw(img)

    # Vertical gradient
    for y in range(height):
        t = y / max(height - 1, 1)
        color = tuple(round(a + (b - a) * t) for a, b in zip(_TOP, _BOTTOM))
        draw.line([(0, y), (width, y)], fill=color)

    # Faint checker pattern
    overlay = Image.new('RGBA', (width, height), (0, 0, 0, 0))
    overlay_draw = ImageDraw.Draw(overlay)
    cell = 20
    for i in range(0, width, cell):
        for j in range(0, height, cell):
            if (i // cell + j // cell) % 2 == 0:
                overlay_draw.rectangle([i, j, i + cell - 1, j + cell - 1], fill=(255, 255, 255, 5))
    img = Image.alpha_composite(img.convert('RGBA'), overlay).convert('RGB')
    draw = ImageDraw.Draw(img)

    # Head-and-shoulders silhouette, scaled from a 400x600 layout
    sx, sy = width / 400, height / 600
    cx = width / 2

    def box(x, y, rx, ry):
        return [cx + (x - 200 - rx) * sx, (y - ry) * sy, cx + (x - 200 + rx) * sx, (y + ry) * sy]

    draw.ellipse(box(200, 250, 80, 80), fill=_SILHOUETTE_BACK)
    draw.ellipse(box(200, 230, 35, 35), fill=_SILHOUETTE)
    draw.pieslice(box(200, 320, 55, 35), start=180, end=360, fill=_SILHOUETTE)

    caption = "Character Card"
    left, top, right, bottom = draw.textbbox((0, 0), caption)
    draw.text((cx - (right - left) / 2, 420 * sy - (bottom - top) / 2), caption, fill=_CAPTION)

    output = BytesIO()
    img.save(output, format='PNG')
    logger.debug(f"Created {width}x{height} placeholder image")
    return output.getvalue()
