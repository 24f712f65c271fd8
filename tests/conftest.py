import os
import pathlib
import sys
from io import BytesIO

import pytest
from PIL import Image
from reportlab.pdfgen import canvas

PROJECT_ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from certmaker.app import create_app, db
from certmaker.models import CertificateTemplate, Student
from certmaker.shared.storage import templates_dir


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "slow" in item.keywords or "quarantine" in item.keywords:
            continue
        item.add_marker("full")
        if "no_smoke" in item.keywords:
            continue
        item.add_marker("smoke")


@pytest.fixture
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("SITE_ROOT", str(tmp_path))
    monkeypatch.setenv("BASE_URL", "https://certs.example.org")
    monkeypatch.delenv("CERT_CLAMP_TO_PAGE", raising=False)
    monkeypatch.delenv("STRICT_TEMPLATE_DIMENSIONS", raising=False)
    application = create_app()
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def png_bytes(width=842, height=595, color=(255, 255, 255)):
    buf = BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def pdf_bytes(width=842, height=595, pages=1):
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=(width, height), invariant=True)
    for number in range(pages):
        c.setFont("Helvetica", 10)
        c.drawString(20, 20, f"page {number + 1}")
        c.showPage()
    c.save()
    return buf.getvalue()


def write_asset(name, data):
    os.makedirs(templates_dir(), exist_ok=True)
    path = os.path.join(templates_dir(), name)
    with open(path, "wb") as fh:
        fh.write(data)
    return path


NAME_FIELD = {
    "id": "f1",
    "name": "studentName",
    "type": "text",
    "x": 100,
    "y": 200,
    "width": 400,
    "height": 40,
    "fontSize": 24,
    "fontFamily": "Helvetica",
    "fontColor": "#1a2b3c",
    "textAlign": "center",
    "fontWeight": "bold",
    "fontStyle": "normal",
}


@pytest.fixture
def student(app):
    s = Student(first_name="Ada", last_name="Lovelace", email="Ada@Example.com")
    db.session.add(s)
    db.session.commit()
    return s


@pytest.fixture
def make_template(app):
    def _make(template_type="pdf", fields=None, width=842, height=595, asset=None, **kwargs):
        if asset is None:
            if template_type == "pdf":
                asset = ("tpl.pdf", pdf_bytes(width, height))
            else:
                asset = ("tpl.png", png_bytes(int(width), int(height)))
        name, data = asset
        write_asset(name, data)
        template = CertificateTemplate(
            name=kwargs.get("name", "Template"),
            template_type=template_type,
            file_path=name,
            fields=fields if fields is not None else [dict(NAME_FIELD)],
            width=width,
            height=height,
            is_active=kwargs.get("is_active", True),
        )
        db.session.add(template)
        db.session.commit()
        return template

    return _make
