from __future__ import annotations

import hashlib
from io import BytesIO

from reportlab.lib.colors import HexColor
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from .shared.certificates_layout import (
    PROGRAMMATIC_ACCENT,
    PROGRAMMATIC_FOOTER,
    PROGRAMMATIC_MUTED,
    PROGRAMMATIC_PAGE_SIZE,
    PROGRAMMATIC_PRIMARY,
)
from .shared.qr import annotate_qr
from .shared.storage import write_atomic

FOOTER_TEXT = (
    "This certificate can be verified online using the QR code or by visiting our website."
)


def make_certificate_pdf(
    output_path: str,
    *,
    student_name: str,
    course_name: str,
    issue_date: str,
    certificate_number: str,
    verification_url: str | None = None,
    invariant: bool = False,
) -> str:
    """Generate the built-in certificate layout and return its sha256 hash."""
    width, height = PROGRAMMATIC_PAGE_SIZE
    primary = HexColor(PROGRAMMATIC_PRIMARY)
    accent = HexColor(PROGRAMMATIC_ACCENT)
    muted = HexColor(PROGRAMMATIC_MUTED)

    # layout is specified from the top edge; reportlab draws from the bottom
    def top(y: float, size: float = 0) -> float:
        return height - y - size

    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=(width, height), invariant=invariant)

    c.setLineWidth(3)
    c.setStrokeColor(primary)
    c.rect(30, 30, width - 60, height - 60)
    c.setLineWidth(1)
    c.setStrokeColor(accent)
    c.rect(40, 40, width - 80, height - 80)

    c.setFillColor(primary)
    c.circle(width / 2, top(100), 25, stroke=0, fill=1)

    c.setFont("Helvetica-Bold", 36)
    c.drawCentredString(width / 2, top(140, 36), "CERTIFICATE OF COMPLETION")

    c.setLineWidth(2)
    c.setStrokeColor(accent)
    c.line(200, top(190), width - 200, top(190))

    c.setFillColor(muted)
    c.setFont("Helvetica", 16)
    c.drawCentredString(width / 2, top(220, 16), "This is to certify that")

    # Name with autoshrink
    name_pt = 32
    while name_pt > 20 and stringWidth(student_name, "Helvetica-Bold", name_pt) > width - 120:
        name_pt -= 1
    c.setFillColor(primary)
    c.setFont("Helvetica-Bold", name_pt)
    c.drawCentredString(width / 2, top(260, name_pt), student_name)
    name_width = stringWidth(student_name, "Helvetica-Bold", name_pt)
    name_x = (width - name_width) / 2
    c.setLineWidth(1)
    c.setStrokeColor(accent)
    c.line(name_x, top(300), name_x + name_width, top(300))

    c.setFillColor(muted)
    c.setFont("Helvetica", 16)
    c.drawCentredString(width / 2, top(320, 16), "has successfully completed the course")

    c.setFillColor(primary)
    c.setFont("Helvetica-Bold", 24)
    c.drawCentredString(width / 2, top(355, 24), course_name)

    left_x = 150
    right_x = width - 250
    bottom_y = 450
    for x, label, value in (
        (left_x, "Date of Issue:", issue_date),
        (right_x, "Certificate No:", certificate_number),
    ):
        c.setFillColor(muted)
        c.setFont("Helvetica", 12)
        c.drawString(x, top(bottom_y, 12), label)
        c.setFillColor(primary)
        c.setFont("Helvetica-Bold", 14)
        c.drawString(x, top(bottom_y + 15, 14), value)

    c.setStrokeColor(primary)
    c.line(left_x, top(bottom_y + 50), left_x + 150, top(bottom_y + 50))
    c.setFillColor(muted)
    c.setFont("Helvetica", 12)
    c.drawString(left_x, top(bottom_y + 60, 12), "Authorized Signature")

    c.setFillColor(HexColor(PROGRAMMATIC_FOOTER))
    c.setFont("Helvetica", 10)
    c.drawCentredString(width / 2, top(height - 80, 10), FOOTER_TEXT)

    if verification_url:
        annotate_qr(c, verification_url, width, height)

    c.showPage()
    c.save()
    pdf_bytes = buffer.getvalue()

    write_atomic(output_path, pdf_bytes)

    return hashlib.sha256(pdf_bytes).hexdigest()
