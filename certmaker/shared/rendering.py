from __future__ import annotations

from .errors import UnsupportedTemplateFormatError
from .render_base import RenderRequest, TemplateRenderer
from .render_raster import RasterTemplateRenderer
from .render_vector import VectorTemplateRenderer

TEMPLATE_TYPES = ("image", "pdf")

_RENDERERS: dict[str, TemplateRenderer] = {
    "image": RasterTemplateRenderer(),
    "pdf": VectorTemplateRenderer(),
}


def get_renderer(template_type: str) -> TemplateRenderer:
    renderer = _RENDERERS.get((template_type or "").strip().lower())
    if renderer is None:
        raise UnsupportedTemplateFormatError(
            f"Unsupported template type: {template_type!r}"
        )
    return renderer


def template_type_for_filename(filename: str) -> str:
    lowered = (filename or "").lower()
    if lowered.endswith(".pdf"):
        return "pdf"
    if lowered.endswith((".png", ".jpg", ".jpeg")):
        return "image"
    raise UnsupportedTemplateFormatError(
        "Only image files (JPG, PNG) and PDF files are allowed"
    )


def render_template_certificate(request: RenderRequest) -> str:
    """Render ``request`` with the renderer for its template type; returns the output path."""
    return get_renderer(request.template_type).write(request)


def measure_template(path: str, template_type: str) -> tuple[float, float]:
    return get_renderer(template_type).measure(path)
