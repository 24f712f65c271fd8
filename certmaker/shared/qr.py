from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO

import qrcode
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

logger = logging.getLogger("certmaker.render")

QR_SIZE = 60.0
QR_MARGIN = 30.0
QR_BOX_SIZE = 10
QR_BORDER = 1
QR_CAPTION = "Scan to verify"
QR_CAPTION_FONT = "Helvetica"
QR_CAPTION_SIZE = 8
QR_CAPTION_GAP = 12.0
QR_CAPTION_GRAY = 0.4


@dataclass(frozen=True)
class QRPlacement:
    x: float
    y: float
    size: float
    caption_x: float
    caption_y: float


def qr_placement(page_width: float) -> QRPlacement:
    """Bottom-right corner of a PDF page (origin bottom-left)."""
    x = page_width - QR_SIZE - QR_MARGIN
    caption_width = stringWidth(QR_CAPTION, QR_CAPTION_FONT, QR_CAPTION_SIZE)
    return QRPlacement(
        x=x,
        y=QR_MARGIN,
        size=QR_SIZE,
        caption_x=x + (QR_SIZE - caption_width) / 2,
        caption_y=QR_MARGIN - QR_CAPTION_GAP,
    )


def make_qr_png(data: str) -> bytes:
    qr = qrcode.QRCode(box_size=QR_BOX_SIZE, border=QR_BORDER)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def annotate_qr(
    c: canvas.Canvas, data: str, page_width: float, page_height: float
) -> bool:
    """Draw the verification QR code and caption; never raises.

    Returns ``False`` when the code could not be produced, in which case the
    certificate is still written without it.
    """
    try:
        png = make_qr_png(data)
        placement = qr_placement(page_width)
        c.saveState()
        try:
            c.drawImage(
                ImageReader(BytesIO(png)),
                placement.x,
                placement.y,
                placement.size,
                placement.size,
            )
            c.setFont(QR_CAPTION_FONT, QR_CAPTION_SIZE)
            c.setFillGray(QR_CAPTION_GRAY)
            c.drawString(placement.caption_x, placement.caption_y, QR_CAPTION)
        finally:
            c.restoreState()
    except Exception:
        logger.exception(
            "[CERT-QR] could not add QR code page=%sx%s; continuing without it",
            page_width,
            page_height,
        )
        return False
    return True
