from __future__ import annotations

# Pixel to point conversion for raster templates (96 DPI source, 72 DPI page).
RASTER_PX_TO_PT = 0.75

SAFE_FALLBACK_FONT = "Helvetica"

# (family, bold) -> standard PDF font name
VECTOR_FONT_VARIANTS: dict[tuple[str, bool], str] = {
    ("Helvetica", False): "Helvetica",
    ("Helvetica", True): "Helvetica-Bold",
    ("Times-Roman", False): "Times-Roman",
    ("Times-Roman", True): "Times-Bold",
    ("Courier", False): "Courier",
    ("Courier", True): "Courier-Bold",
}

_DEJAVU = "/usr/share/fonts/truetype/dejavu"

# (family, bold, italic) -> TrueType file used when drawing onto raster templates
RASTER_FONT_PATHS: dict[tuple[str, bool, bool], str] = {
    ("Helvetica", False, False): f"{_DEJAVU}/DejaVuSans.ttf",
    ("Helvetica", True, False): f"{_DEJAVU}/DejaVuSans-Bold.ttf",
    ("Helvetica", False, True): f"{_DEJAVU}/DejaVuSans-Oblique.ttf",
    ("Helvetica", True, True): f"{_DEJAVU}/DejaVuSans-BoldOblique.ttf",
    ("Times-Roman", False, False): f"{_DEJAVU}/DejaVuSerif.ttf",
    ("Times-Roman", True, False): f"{_DEJAVU}/DejaVuSerif-Bold.ttf",
    ("Times-Roman", False, True): f"{_DEJAVU}/DejaVuSerif-Italic.ttf",
    ("Times-Roman", True, True): f"{_DEJAVU}/DejaVuSerif-BoldItalic.ttf",
    ("Courier", False, False): f"{_DEJAVU}/DejaVuSansMono.ttf",
    ("Courier", True, False): f"{_DEJAVU}/DejaVuSansMono-Bold.ttf",
    ("Courier", False, True): f"{_DEJAVU}/DejaVuSansMono-Oblique.ttf",
    ("Courier", True, True): f"{_DEJAVU}/DejaVuSansMono-BoldOblique.ttf",
}


def font_family_key(font_family: str | None) -> str:
    """Map a free-form family (``"Times New Roman"``, ``"helvetica"``) to a standard family."""
    lowered = (font_family or "").lower()
    if "times" in lowered or ("serif" in lowered and "sans" not in lowered):
        return "Times-Roman"
    if "courier" in lowered or "mono" in lowered:
        return "Courier"
    return SAFE_FALLBACK_FONT


# Programmatic certificate layout (A4 landscape, points, top-left origin).
PROGRAMMATIC_PAGE_SIZE = (842.0, 595.0)
PROGRAMMATIC_PRIMARY = "#2C5F2D"
PROGRAMMATIC_ACCENT = "#97BC62"
PROGRAMMATIC_MUTED = "#666666"
PROGRAMMATIC_FOOTER = "#999999"
