from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO

from PyPDF2 import PdfReader, PdfWriter
from PyPDF2.errors import PdfReadError
from PyPDF2.generic import ContentStream, DictionaryObject, NameObject
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from .certificates_layout import (
    SAFE_FALLBACK_FONT,
    VECTOR_FONT_VARIANTS,
    font_family_key,
)
from .errors import UnsupportedTemplateFormatError
from .geometry import Surface, scale_field, vector_pen_x
from .qr import annotate_qr
from .render_base import (
    RenderRequest,
    TemplateRenderer,
    drawable_fields,
    logger,
    require_asset,
)
from .template_fields import TemplateField, parse_hex_color


@dataclass(frozen=True)
class VectorPlacement:
    text: str
    x: float
    y: float
    font_name: str
    font_size: float
    text_width: float
    color: tuple[int, int, int]


def build_font_table() -> dict[tuple[str, bool], pdfmetrics.Font]:
    """Standard fonts for a single render call, keyed by (family, bold)."""
    return {
        key: pdfmetrics.getFont(name) for key, name in VECTOR_FONT_VARIANTS.items()
    }


def select_font(
    fonts: dict[tuple[str, bool], pdfmetrics.Font], field: TemplateField
) -> pdfmetrics.Font:
    bold = field.is_bold or "bold" in (field.font_family or "").lower()
    family = font_family_key(field.font_family)
    return fonts.get((family, bold)) or fonts[(SAFE_FALLBACK_FONT, False)]


def plan_text(
    field: TemplateField,
    value: str,
    declared: Surface,
    actual: Surface,
    fonts: dict[tuple[str, bool], pdfmetrics.Font],
    clamp: bool = False,
) -> VectorPlacement:
    geometry = scale_field(field, declared, actual, flip_y=True, clamp=clamp)
    font = select_font(fonts, field)
    text_width = font.stringWidth(value, geometry.font_size)
    return VectorPlacement(
        text=value,
        x=vector_pen_x(geometry, field.text_align, text_width),
        y=geometry.y,
        font_name=font.fontName,
        font_size=geometry.font_size,
        text_width=text_width,
        color=parse_hex_color(field.font_color),
    )


def _load_pdf(path: str) -> PdfReader:
    require_asset(path)
    try:
        reader = PdfReader(path)
        page_count = len(reader.pages)
    except PdfReadError as exc:
        raise UnsupportedTemplateFormatError(f"Unreadable PDF template: {exc}") from exc
    if not page_count:
        raise UnsupportedTemplateFormatError("PDF template has no pages")
    return reader


def _first_page_box(reader: PdfReader) -> tuple[float, float, float, float]:
    """(left, bottom, width, height) of page 1, or UnsupportedTemplateFormatError."""
    try:
        box = reader.pages[0].mediabox
        left, bottom = float(box.left), float(box.bottom)
        width, height = float(box.width), float(box.height)
    except (
        PdfReadError, AssertionError, KeyError, IndexError, TypeError, ValueError
    ) as exc:
        raise UnsupportedTemplateFormatError(
            f"PDF template has no usable page size: {exc}"
        ) from exc
    if width <= 0 or height <= 0:
        raise UnsupportedTemplateFormatError("PDF template has an empty page size")
    return left, bottom, width, height


# overlay resource names get this prefix so they never collide with the template's
OVERLAY_RESOURCE_PREFIX = "Cm"


def _namespace_overlay_resources(page, pdf: PdfReader) -> None:
    resources = page.get("/Resources")
    if resources is None:
        return
    resources = resources.get_object()
    rename = {}
    for category in list(resources.keys()):
        entries = resources[category].get_object()
        if not isinstance(entries, DictionaryObject):
            continue
        renamed = DictionaryObject()
        for key in list(entries.keys()):
            new_key = NameObject(f"/{OVERLAY_RESOURCE_PREFIX}{key[1:]}")
            rename[key] = new_key
            renamed[new_key] = entries.raw_get(key)
        resources[NameObject(category)] = renamed
    if not rename or page.get_contents() is None:
        return
    content = ContentStream(page.get_contents(), pdf)
    for operands, _operator in content.operations:
        if isinstance(operands, list):
            operands[:] = [
                rename.get(op, op) if isinstance(op, NameObject) else op for op in operands
            ]
    page[NameObject("/Contents")] = content


class VectorTemplateRenderer(TemplateRenderer):
    """Draws text directly onto the first page of a PDF template."""

    template_type = "pdf"

    def measure(self, path: str) -> tuple[float, float]:
        _, _, width, height = _first_page_box(_load_pdf(path))
        return width, height

    def render(self, request: RenderRequest) -> bytes:
        reader = _load_pdf(request.template_path)
        left, bottom, page_width, page_height = _first_page_box(reader)
        actual = Surface(page_width, page_height)

        fonts = build_font_table()
        placements = [
            plan_text(field, value, request.declared, actual, fonts, request.clamp)
            for field, value in drawable_fields(request)
        ]

        if placements or request.qr_code_data:
            buffer = BytesIO()
            c = canvas.Canvas(
                buffer, pagesize=(page_width, page_height), invariant=request.invariant
            )
            for placement in placements:
                red, green, blue = placement.color
                c.setFont(placement.font_name, placement.font_size)
                c.setFillColorRGB(red / 255, green / 255, blue / 255)
                c.drawString(placement.x, placement.y, placement.text)
                logger.info(
                    "[CERT-FIELD] vector text=%r at (%.2f, %.2f) font=%s size=%.2f",
                    placement.text,
                    placement.x,
                    placement.y,
                    placement.font_name,
                    placement.font_size,
                )
            if request.qr_code_data:
                annotate_qr(c, request.qr_code_data, page_width, page_height)
            c.showPage()
            c.save()
            buffer.seek(0)
            overlay_reader = PdfReader(buffer)
            overlay_page = overlay_reader.pages[0]
            _namespace_overlay_resources(overlay_page, overlay_reader)
            # overlay coordinates start at 0,0; shift them onto an offset mediabox
            if left or bottom:
                overlay_page.add_transformation((1, 0, 0, 1, left, bottom))
            reader.pages[0].merge_page(overlay_page)

        writer = PdfWriter()
        for page in reader.pages:
            writer.add_page(page)
        out_buffer = BytesIO()
        writer.write(out_buffer)
        return out_buffer.getvalue()
