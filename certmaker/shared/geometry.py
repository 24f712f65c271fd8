"""Editor-space to target-surface coordinate mapping for template fields.

Field geometry is authored against the template's declared canvas (top-left
origin).  Each renderer maps it onto the surface it actually draws on:

* raster targets keep the top-left origin,
* PDF targets flip the vertical axis (bottom-left origin).

Scaling is independent per axis and nothing is clamped unless the caller asks
for it, so inconsistent declared/actual sizes yield off-canvas coordinates
rather than errors.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .template_fields import TemplateField

# Pillow text anchors: horizontal (l/m/r) + baseline (s)
RASTER_TEXT_ANCHORS = {"left": "ls", "center": "ms", "right": "rs"}


@dataclass(frozen=True)
class Surface:
    width: float
    height: float


@dataclass(frozen=True)
class ScaledGeometry:
    x: float
    y: float
    width: float
    height: float
    font_size: float
    scale_x: float
    scale_y: float


def _ratio(actual: float, declared: float) -> float:
    if declared <= 0:
        return 1.0
    return actual / declared


def _clamp(value: float, upper: float) -> float:
    return max(0.0, min(value, upper))


def scale_field(
    field: TemplateField,
    declared: Surface,
    actual: Surface,
    *,
    flip_y: bool,
    clamp: bool = False,
) -> ScaledGeometry:
    scale_x = _ratio(actual.width, declared.width)
    scale_y = _ratio(actual.height, declared.height)
    x = field.x * scale_x
    y = field.y * scale_y
    if flip_y:
        y = actual.height - y
    if clamp:
        x = _clamp(x, actual.width)
        y = _clamp(y, actual.height)
    return ScaledGeometry(
        x=x,
        y=y,
        width=field.width * scale_x,
        height=field.height * scale_y,
        font_size=field.font_size * scale_y,
        scale_x=scale_x,
        scale_y=scale_y,
    )


def raster_anchor_x(geometry: ScaledGeometry, align: str) -> float:
    """Anchor point for text whose alignment is applied by the text renderer."""
    if align == "center":
        return geometry.x + geometry.width / 2
    if align == "right":
        return geometry.x + geometry.width
    return geometry.x


def vector_pen_x(geometry: ScaledGeometry, align: str, text_width: float) -> float:
    """Absolute left edge for text drawn from a fixed origin."""
    if align == "center":
        return geometry.x + geometry.width / 2 - text_width / 2
    if align == "right":
        return geometry.x + geometry.width - text_width
    return geometry.x


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
