"""Template field schema shared by the editor API and the renderers.

Fields are persisted as a JSON list of camelCase objects.  Keys this module
does not know about are carried through untouched so that newer editors can
store extra attributes without older servers dropping them.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable

FIELD_TYPES = ("text", "date", "number")
TEXT_ALIGNS = ("left", "center", "right")
FONT_WEIGHTS = ("normal", "bold")
FONT_STYLES = ("normal", "italic")

DEFAULT_FONT_FAMILY = "Helvetica"
DEFAULT_FONT_COLOR = "#000000"
DEFAULT_FONT_SIZE = 16.0

_GEOMETRY_KEYS = ("x", "y", "width", "height", "fontSize")
_KNOWN_KEYS = {
    "id",
    "name",
    "type",
    "x",
    "y",
    "width",
    "height",
    "fontSize",
    "fontFamily",
    "fontColor",
    "textAlign",
    "fontWeight",
    "fontStyle",
}


@dataclass
class TemplateField:
    id: str
    name: str
    type: str = "text"
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    font_size: float = DEFAULT_FONT_SIZE
    font_family: str = DEFAULT_FONT_FAMILY
    font_color: str = DEFAULT_FONT_COLOR
    text_align: str = "left"
    font_weight: str = "normal"
    font_style: str = "normal"
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_bold(self) -> bool:
        return self.font_weight == "bold"

    @property
    def is_italic(self) -> bool:
        return self.font_style == "italic"

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "TemplateField":
        if not isinstance(raw, dict):
            raise ValueError("Template field must be an object")
        geometry: dict[str, float] = {}
        for key in _GEOMETRY_KEYS:
            value = raw.get(key, DEFAULT_FONT_SIZE if key == "fontSize" else 0)
            try:
                number = float(value)
            except (TypeError, ValueError):
                raise ValueError(f"Field {key} must be a number") from None
            if number < 0:
                raise ValueError(f"Field {key} must not be negative")
            geometry[key] = number
        return cls(
            id=str(raw.get("id") or uuid.uuid4()),
            name=str(raw.get("name") or ""),
            type=_choice(raw.get("type"), FIELD_TYPES),
            x=geometry["x"],
            y=geometry["y"],
            width=geometry["width"],
            height=geometry["height"],
            font_size=geometry["fontSize"],
            font_family=str(raw.get("fontFamily") or DEFAULT_FONT_FAMILY),
            font_color=str(raw.get("fontColor") or DEFAULT_FONT_COLOR),
            text_align=_choice(raw.get("textAlign"), TEXT_ALIGNS),
            font_weight=_choice(raw.get("fontWeight"), FONT_WEIGHTS),
            font_style=_choice(raw.get("fontStyle"), FONT_STYLES),
            extra={k: v for k, v in raw.items() if k not in _KNOWN_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "name": self.name,
                "type": self.type,
                "x": self.x,
                "y": self.y,
                "width": self.width,
                "height": self.height,
                "fontSize": self.font_size,
                "fontFamily": self.font_family,
                "fontColor": self.font_color,
                "textAlign": self.text_align,
                "fontWeight": self.font_weight,
                "fontStyle": self.font_style,
            }
        )
        return data


def _choice(value: Any, allowed: tuple[str, ...]) -> str:
    cleaned = str(value or "").strip().lower()
    return cleaned if cleaned in allowed else allowed[0]


def parse_fields(raw: Any) -> list[TemplateField]:
    """Parse a persisted or submitted field list, preserving order."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError("Template fields must be a list")
    return [TemplateField.from_dict(item) for item in raw]


def serialize_fields(fields: Iterable[TemplateField]) -> list[dict[str, Any]]:
    return [f.to_dict() for f in fields]


def parse_hex_color(value: str | None) -> tuple[int, int, int]:
    """``"#1a2b3c"`` → ``(26, 43, 60)``; unparsable input is black."""
    cleaned = (value or "").strip().lstrip("#")
    try:
        number = int(cleaned, 16)
    except ValueError:
        return (0, 0, 0)
    return ((number >> 16) & 255, (number >> 8) & 255, number & 255)
