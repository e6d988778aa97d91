from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache

from PIL import Image, ImageDraw, ImageFont

from moth_egg_detector.core.types import Detection

_ONE_DECIMAL = Decimal('0.1')


@dataclass(frozen=True)
class OverlayStyle:
    # Fixed per render, independent of image size.
    color: str = '#00ff00'
    stroke_width: int = 3
    font_size: int = 16
    label_margin: int = 5
    font_path: str | None = None


@lru_cache(maxsize=8)
def _load_font(font_path: str | None, size: int):
    if font_path:
        try:
            return ImageFont.truetype(font_path, size)
        except OSError:
            pass
    return ImageFont.load_default(size=size)


def box_corners(detection: Detection) -> tuple[float, float, float, float]:
    half_w = detection.width / 2
    half_h = detection.height / 2
    return detection.x - half_w, detection.y - half_h, detection.x + half_w, detection.y + half_h


def format_confidence(confidence: float) -> str:
    percent = (Decimal(repr(float(confidence))) * 100).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP)
    return f'{percent}%'


def format_label(detection: Detection) -> str:
    return f'{detection.class_name} {format_confidence(detection.confidence)}'


def label_origin(detection: Detection, margin: int = 5) -> tuple[float, float]:
    x0, y0, _, _ = box_corners(detection)
    return x0, y0 - margin


def render_overlay(image: Image.Image, detections: list[Detection], style: OverlayStyle | None = None) -> Image.Image:
    """Draw each detection as a labeled rectangle on a copy of ``image``.

    Boxes are drawn in the given order without clipping to the image
    bounds; the source image is never modified.
    """
    style = style or OverlayStyle()
    canvas = image.copy()
    if not detections:
        return canvas
    if canvas.mode not in ('RGB', 'RGBA'):
        canvas = canvas.convert('RGB')

    draw = ImageDraw.Draw(canvas)
    font = _load_font(style.font_path, style.font_size)
    for detection in detections:
        x0, y0, x1, y1 = box_corners(detection)
        draw.rectangle(
            (min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1)),
            outline=style.color,
            width=style.stroke_width,
        )
        draw.text(
            label_origin(detection, style.label_margin),
            format_label(detection),
            fill=style.color,
            font=font,
            anchor='ls',
        )
    return canvas
