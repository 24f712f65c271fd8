from io import BytesIO

import pytest
from PyPDF2 import PdfReader
from reportlab.pdfgen import canvas

from conftest import pdf_bytes
from certmaker.shared.errors import TemplateAssetMissingError, UnsupportedTemplateFormatError
from certmaker.shared.geometry import Surface
from certmaker.shared.render_base import RenderRequest
from certmaker.shared.render_vector import build_font_table, plan_text, select_font
from certmaker.shared.rendering import get_renderer, measure_template, render_template_certificate
from certmaker.shared.template_fields import TemplateField


@pytest.fixture
def pdf_path(tmp_path):
    path = tmp_path / "template.pdf"
    path.write_bytes(pdf_bytes(842, 595, pages=2))
    return str(path)


def _mixed_size_pdf():
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=(842, 595), invariant=True)
    for size in [(842, 595), (595, 842), (612, 792)]:
        c.setPageSize(size)
        c.setFont("Helvetica", 10)
        c.drawString(20, 20, f"{size[0]}x{size[1]}")
        c.showPage()
    c.save()
    return buf.getvalue()


def _boxes(path):
    return [
        (
            float(p.mediabox.left),
            float(p.mediabox.bottom),
            float(p.mediabox.width),
            float(p.mediabox.height),
        )
        for p in PdfReader(str(path)).pages
    ]


def _field(**kw):
    base = dict(id="f1", name="studentName", x=100, y=200, width=400, height=40, font_size=24)
    base.update(kw)
    return TemplateField(**base)


def _request(path, out, fields, data, **kw):
    return RenderRequest(
        template_path=path,
        template_type="pdf",
        fields=fields,
        data=data,
        output_path=str(out),
        template_width=842,
        template_height=595,
        invariant=True,
        **kw,
    )


def test_all_pages_and_size_preserved(pdf_path, tmp_path):
    out = tmp_path / "out.pdf"
    render_template_certificate(
        _request(pdf_path, out, [_field()], {"studentName": "Ada Lovelace"})
    )
    reader = PdfReader(str(out))
    assert len(reader.pages) == 2
    box = reader.pages[0].mediabox
    assert (float(box.width), float(box.height)) == (842, 595)
    first = reader.pages[0].extract_text()
    assert "Ada Lovelace" in first
    assert "page 1" in first
    assert "Ada Lovelace" not in reader.pages[1].extract_text()


def test_flipped_coordinates():
    fonts = build_font_table()
    placement = plan_text(
        _field(), "Ada", Surface(842, 595), Surface(842, 595), fonts
    )
    assert placement.x == 100
    assert placement.y == 595 - 200
    assert placement.font_size == 24


@pytest.mark.parametrize("align", ["center", "right"])
def test_alignment_from_measured_width(align):
    fonts = build_font_table()
    placement = plan_text(
        _field(text_align=align), "Ada Lovelace", Surface(842, 595), Surface(842, 595), fonts
    )
    width = fonts[("Helvetica", False)].stringWidth("Ada Lovelace", 24)
    assert placement.text_width == pytest.approx(width)
    if align == "center":
        assert placement.x == pytest.approx(300 - width / 2)
    else:
        assert placement.x == pytest.approx(500 - width)


def test_scaled_into_smaller_page():
    fonts = build_font_table()
    placement = plan_text(
        _field(), "Ada", Surface(1684, 1190), Surface(842, 595), fonts
    )
    assert placement.x == 50
    assert placement.y == pytest.approx(595 - 100)
    assert placement.font_size == 12


@pytest.mark.parametrize(
    "family,weight,expected",
    [
        ("Helvetica", "normal", "Helvetica"),
        ("Helvetica", "bold", "Helvetica-Bold"),
        ("Times New Roman", "normal", "Times-Roman"),
        ("Times-Roman", "bold", "Times-Bold"),
        ("Courier", "bold", "Courier-Bold"),
        ("Helvetica-Bold", "normal", "Helvetica-Bold"),
        ("Comic Sans", "normal", "Helvetica"),
    ],
)
def test_font_selection(family, weight, expected):
    font = select_font(build_font_table(), _field(font_family=family, font_weight=weight))
    assert font.fontName == expected


def test_italic_is_ignored_for_pdf_templates():
    font = select_font(build_font_table(), _field(font_style="italic"))
    assert font.fontName == "Helvetica"


def test_qr_block_on_first_page(pdf_path, tmp_path):
    out = tmp_path / "qr.pdf"
    render_template_certificate(
        _request(pdf_path, out, [], {}, qr_code_data="https://certs.example.org/verify/9")
    )
    reader = PdfReader(str(out))
    assert "Scan to verify" in reader.pages[0].extract_text()
    assert "/XObject" in reader.pages[0]["/Resources"]


def test_empty_values_leave_template_untouched(pdf_path, tmp_path):
    out = tmp_path / "same.pdf"
    render_template_certificate(_request(pdf_path, out, [_field()], {"studentName": ""}))
    reader = PdfReader(str(out))
    assert "Ada" not in reader.pages[0].extract_text()
    assert len(reader.pages) == 2


def test_unreadable_pdf(tmp_path):
    bad = tmp_path / "bad.pdf"
    bad.write_bytes(b"not a pdf at all")
    out = tmp_path / "o.pdf"
    with pytest.raises(UnsupportedTemplateFormatError):
        render_template_certificate(_request(str(bad), out, [], {}))
    assert not out.exists()


def test_missing_pdf(tmp_path):
    with pytest.raises(TemplateAssetMissingError):
        render_template_certificate(_request(str(tmp_path / "x.pdf"), tmp_path / "o.pdf", [], {}))


def test_measure_and_dispatch(pdf_path):
    assert measure_template(pdf_path, "pdf") == (842, 595)
    with pytest.raises(UnsupportedTemplateFormatError):
        get_renderer("docx")


def test_no_fields_round_trips_every_page_box(tmp_path):
    source = tmp_path / "mixed.pdf"
    source.write_bytes(_mixed_size_pdf())
    out = tmp_path / "copy.pdf"
    render_template_certificate(_request(str(source), out, [], {}))
    assert _boxes(out) == _boxes(source)
    assert _boxes(out)[1] == (0, 0, 595, 842)
    texts = [p.extract_text() for p in PdfReader(str(out)).pages]
    assert ["612x792" in t for t in texts] == [False, False, True]


def test_rendering_is_repeatable(pdf_path, tmp_path):
    fields = [_field(), _field(id="f2", name="courseName", y=300)]
    data = {"studentName": "Ada Lovelace", "courseName": "Analytical Engines"}
    qr = "https://certs.example.org/verify/3"
    renderer = get_renderer("pdf")
    first = renderer.render(_request(pdf_path, tmp_path / "1.pdf", fields, data, qr_code_data=qr))
    second = renderer.render(_request(pdf_path, tmp_path / "2.pdf", fields, data, qr_code_data=qr))
    assert first == second

    # template and overlay both use /F1; merged names stay predictable
    page = PdfReader(BytesIO(first)).pages[0]
    fonts = sorted(page["/Resources"]["/Font"].keys())
    assert "/F1" in fonts
    assert all(name == "/F1" or name.startswith("/Cm") for name in fonts)


def test_missing_media_box_is_unsupported(tmp_path):
    broken = tmp_path / "broken.pdf"
    broken.write_bytes(pdf_bytes().replace(b"/MediaBox", b"/MediaBoz"))
    out = tmp_path / "o.pdf"
    with pytest.raises(UnsupportedTemplateFormatError):
        measure_template(str(broken), "pdf")
    with pytest.raises(UnsupportedTemplateFormatError):
        render_template_certificate(
            _request(str(broken), out, [_field()], {"studentName": "Ada"})
        )
    assert not out.exists()
