"""Distance label textures drawn with Pillow."""

# PlanMeasure imports
from planmeasure import config
from planmeasure.layer_styles import parse_hex_color

# Standard library imports
from typing import Tuple

# Third-party imports
import numpy as np
from PIL import Image, ImageDraw, ImageFont

LABEL_SIZE: Tuple[int, int] = (256, 128)
LABEL_FONT_SIZE = 40
LABEL_BORDER_WIDTH = 4
LABEL_FILL = (0, 0, 0, 178)  # 70 % opaque black
LABEL_TEXT_COLOR = (255, 255, 255, 255)


def _load_font(font_size: int) -> ImageFont.ImageFont:
    """Load a bold sans font or fallback to default."""
    for name in ("arialbd.ttf", "Arial Bold.ttf", "DejaVuSans-Bold.ttf"):
        try:
            return ImageFont.truetype(name, font_size)
        except (OSError, IOError):
            continue
    return ImageFont.load_default()


def render_label_image(text: str, color: str = config.PREVIEW_COLOR) -> Image.Image:
    """
    Draw a measurement label: dark translucent card, colored border, white text.

    Args:
        text: Label text, e.g. '5.00m'.
        color: Border color as '#rrggbb'.

    Returns:
        Image.Image: RGBA image of LABEL_SIZE.
    """
    width, height = LABEL_SIZE
    image = Image.new("RGBA", LABEL_SIZE, LABEL_FILL)
    draw = ImageDraw.Draw(image)
    border = parse_hex_color(color) + (255,)
    draw.rectangle([0, 0, width - 1, height - 1], outline=border, width=LABEL_BORDER_WIDTH)

    font = _load_font(LABEL_FONT_SIZE)
    bbox = draw.textbbox((0, 0), text, font=font)
    tw, th = bbox[2] - bbox[0], bbox[3] - bbox[1]
    x = (width - tw) / 2 - bbox[0]
    y = (height - th) / 2 - bbox[1]
    draw.text((x, y), text, font=font, fill=LABEL_TEXT_COLOR)
    return image


def label_texture_array(text: str, color: str = config.PREVIEW_COLOR) -> np.ndarray:
    """The label as an (H, W, 4) uint8 array, flipped for bottom-up texture coordinates."""
    return np.flipud(np.asarray(render_label_image(text, color), dtype=np.uint8)).copy()
