from __future__ import annotations

from dataclasses import replace
from io import BytesIO

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .certificates_layout import RASTER_FONT_PATHS, RASTER_PX_TO_PT, font_family_key
from .errors import UnsupportedTemplateFormatError
from .geometry import (
    RASTER_TEXT_ANCHORS,
    Surface,
    raster_anchor_x,
    round_half_up,
    scale_field,
)
from .qr import annotate_qr
from .render_base import (
    RenderRequest,
    TemplateRenderer,
    drawable_fields,
    logger,
    require_asset,
)
from .template_fields import TemplateField, parse_hex_color

SUPPORTED_IMAGE_FORMATS = {"PNG", "JPEG"}


def load_raster_font(field: TemplateField, size_px: int) -> ImageFont.FreeTypeFont:
    family = font_family_key(field.font_family)
    path = RASTER_FONT_PATHS[(family, field.is_bold, field.is_italic)]
    size_px = max(size_px, 1)
    try:
        return ImageFont.truetype(path, size_px)
    except OSError:
        logger.warning(
            "[CERT-FONT] raster font %s unavailable; using default font", path
        )
        return ImageFont.load_default(size=size_px)


def _open_template_image(path: str) -> Image.Image:
    require_asset(path)
    try:
        img = Image.open(path)
    except UnidentifiedImageError as exc:
        raise UnsupportedTemplateFormatError(
            "Unsupported image format. Use PNG or JPG."
        ) from exc
    with img:
        if img.format not in SUPPORTED_IMAGE_FORMATS:
            raise UnsupportedTemplateFormatError(
                f"Unsupported image format {img.format!r}. Use PNG or JPG."
            )
        return img.convert("RGBA")


class RasterTemplateRenderer(TemplateRenderer):
    """Draws text onto an image template and wraps the result in a one-page PDF."""

    template_type = "image"

    def measure(self, path: str) -> tuple[float, float]:
        require_asset(path)
        try:
            with Image.open(path) as img:
                if img.format not in SUPPORTED_IMAGE_FORMATS:
                    raise UnsupportedTemplateFormatError(
                        f"Unsupported image format {img.format!r}. Use PNG or JPG."
                    )
                return float(img.width), float(img.height)
        except UnidentifiedImageError as exc:
            raise UnsupportedTemplateFormatError(
                "Unsupported image format. Use PNG or JPG."
            ) from exc

    def text_overlay(
        self,
        field: TemplateField,
        value: str,
        declared: Surface,
        actual: Surface,
        clamp: bool = False,
    ) -> Image.Image:
        geometry = scale_field(field, declared, actual, flip_y=False, clamp=clamp)
        x = round_half_up(geometry.x)
        y = round_half_up(geometry.y)
        size = round_half_up(geometry.font_size)
        anchor_x = raster_anchor_x(replace(geometry, x=float(x)), field.text_align)
        overlay = Image.new(
            "RGBA", (int(actual.width), int(actual.height)), (0, 0, 0, 0)
        )
        draw = ImageDraw.Draw(overlay)
        red, green, blue = parse_hex_color(field.font_color)
        draw.text(
            (anchor_x, y + size),
            value,
            font=load_raster_font(field, size),
            fill=(red, green, blue, 255),
            anchor=RASTER_TEXT_ANCHORS.get(field.text_align, "ls"),
        )
        logger.info(
            "[CERT-FIELD] raster field=%r at (%s, %s) size=%s align=%s",
            field.name,
            x,
            y,
            size,
            field.text_align,
        )
        return overlay

    def compose(self, request: RenderRequest) -> Image.Image:
        composite = _open_template_image(request.template_path)
        actual = Surface(float(composite.width), float(composite.height))
        for field, value in drawable_fields(request):
            overlay = self.text_overlay(
                field, value, request.declared, actual, request.clamp
            )
            composite = Image.alpha_composite(composite, overlay)
        # transparent template pixels flatten onto white paper, not black
        paper = Image.new("RGBA", composite.size, (255, 255, 255, 255))
        return Image.alpha_composite(paper, composite).convert("RGB")

    def render(self, request: RenderRequest) -> bytes:
        image = self.compose(request)
        page_width = image.width * RASTER_PX_TO_PT
        page_height = image.height * RASTER_PX_TO_PT
        buffer = BytesIO()
        c = canvas.Canvas(
            buffer, pagesize=(page_width, page_height), invariant=request.invariant
        )
        c.drawImage(ImageReader(image), 0, 0, page_width, page_height)
        if request.qr_code_data:
            annotate_qr(c, request.qr_code_data, page_width, page_height)
        c.showPage()
        c.save()
        return buffer.getvalue()
