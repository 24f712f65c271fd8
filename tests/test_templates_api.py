import io
import os

import pytest
from PIL import Image

from conftest import NAME_FIELD, pdf_bytes, png_bytes
from certmaker.app import db
from certmaker.models import CertificateTemplate
from certmaker.shared.storage import templates_dir, thumbnails_dir


def _upload(client, name, data):
    return client.post(
        "/api/templates/upload",
        data={"template": (io.BytesIO(data), name)},
        content_type="multipart/form-data",
    )


def _create(client, upload, **overrides):
    payload = {
        "name": "Completion",
        "templateType": upload["templateType"],
        "filePath": upload["filePath"],
        "thumbnailPath": upload["thumbnailPath"],
        "fields": [NAME_FIELD],
        "width": upload["width"],
        "height": upload["height"],
    }
    payload.update(overrides)
    return client.post("/api/templates", json=payload)


def test_upload_image_reports_pixels_and_thumbnail(client, caplog):
    caplog.set_level("INFO")
    resp = _upload(client, "My Template.PNG", png_bytes(1200, 900))
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["templateType"] == "image"
    assert (data["width"], data["height"]) == (1200, 900)
    assert data["filePath"].startswith("template-") and data["filePath"].endswith(".png")
    assert os.path.isfile(os.path.join(templates_dir(), data["filePath"]))
    thumb = os.path.join(thumbnails_dir(), data["thumbnailPath"])
    with Image.open(thumb) as img:
        assert img.width <= 400 and img.height <= 300
    assert "[TEMPLATE-UPLOAD]" in caplog.text


def test_upload_pdf_reads_true_page_size(client):
    resp = _upload(client, "letter.pdf", pdf_bytes(612, 792))
    data = resp.get_json()["data"]
    assert data["templateType"] == "pdf"
    assert (data["width"], data["height"]) == (612, 792)
    assert data["thumbnailPath"] is None


def test_upload_rejects_other_extensions(client):
    resp = _upload(client, "template.gif", b"GIF89a")
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_upload_rejects_corrupt_image(client):
    resp = _upload(client, "broken.png", b"definitely not a png")
    assert resp.status_code == 400
    assert os.listdir(templates_dir()) == []


def test_upload_rejects_pdf_without_page_size(client, caplog):
    broken = pdf_bytes().replace(b"/MediaBox", b"/MediaBoz")
    resp = _upload(client, "broken.pdf", broken)
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False
    assert os.listdir(templates_dir()) == []
    assert "[TEMPLATE-UPLOAD] rejected" in caplog.text


def test_create_list_get_update_delete(client):
    upload = _upload(client, "cert.png", png_bytes(842, 595)).get_json()["data"]
    resp = _create(client, upload)
    assert resp.status_code == 201
    created = resp.get_json()["data"]
    assert created["fields"][0]["name"] == "studentName"
    template_id = created["id"]

    listed = client.get("/api/templates").get_json()["data"]
    assert [t["id"] for t in listed] == [template_id]

    resp = client.put(
        f"/api/templates/{template_id}",
        json={"name": "Renamed", "isActive": False, "fields": []},
    )
    updated = resp.get_json()["data"]
    assert updated["name"] == "Renamed"
    assert updated["isActive"] is False
    assert updated["fields"] == []
    assert client.get("/api/templates?active=1").get_json()["data"] == []

    resp = client.put(f"/api/templates/{template_id}", json={"templateType": "pdf"})
    assert resp.status_code == 400
    resp = client.put(f"/api/templates/{template_id}", json={"templateType": "IMAGE"})
    assert resp.status_code == 200

    resp = client.delete(f"/api/templates/{template_id}")
    assert resp.status_code == 200
    assert db.session.get(CertificateTemplate, template_id) is None
    assert not os.path.exists(os.path.join(templates_dir(), upload["filePath"]))
    assert not os.path.exists(os.path.join(thumbnails_dir(), upload["thumbnailPath"]))
    assert client.get(f"/api/templates/{template_id}").status_code == 404


def test_create_requires_fields(client):
    resp = client.post("/api/templates", json={"name": "x"})
    assert resp.status_code == 400


def test_create_missing_asset(client):
    resp = client.post(
        "/api/templates",
        json={
            "name": "x",
            "templateType": "pdf",
            "filePath": "nope.pdf",
            "fields": [],
            "width": 842,
            "height": 595,
        },
    )
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Template file not found"


def test_create_rejects_path_escape(client):
    resp = client.post(
        "/api/templates",
        json={
            "name": "x",
            "templateType": "pdf",
            "filePath": "../../etc/passwd",
            "fields": [],
            "width": 842,
            "height": 595,
        },
    )
    assert resp.status_code == 404


def test_dimension_mismatch_warns_by_default(client, caplog):
    upload = _upload(client, "letter.pdf", pdf_bytes(612, 792)).get_json()["data"]
    resp = _create(client, upload, width=842, height=595)
    assert resp.status_code == 201
    assert "[TEMPLATE-DIMS]" in caplog.text


def test_dimension_mismatch_rejected_in_strict_mode(app, client):
    app.config["STRICT_TEMPLATE_DIMENSIONS"] = True
    upload = _upload(client, "letter.pdf", pdf_bytes(612, 792)).get_json()["data"]
    resp = _create(client, upload, width=842, height=595)
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["actual"] == [612, 792]
    assert CertificateTemplate.query.count() == 0


def test_invalid_field_geometry(client):
    upload = _upload(client, "cert.png", png_bytes(842, 595)).get_json()["data"]
    resp = _create(client, upload, fields=[{"name": "studentName", "x": "left"}])
    assert resp.status_code == 400


def test_serves_files(client):
    upload = _upload(client, "cert.png", png_bytes(842, 595)).get_json()["data"]
    resp = client.get(f"/api/templates/file/{upload['filePath']}")
    assert resp.status_code == 200
    assert resp.data[:8] == b"\x89PNG\r\n\x1a\n"
    resp = client.get(f"/api/templates/thumbnail/{upload['thumbnailPath']}")
    assert resp.status_code == 200
    assert client.get("/api/templates/file/missing.png").status_code == 404


def test_template_type_change_is_case_insensitive(client):
    upload = _upload(client, "letter.pdf", pdf_bytes(842, 595)).get_json()["data"]
    template_id = _create(client, upload).get_json()["data"]["id"]
    for same in ["pdf", "PDF", " Pdf "]:
        resp = client.put(
            f"/api/templates/{template_id}", json={"templateType": same, "name": "Kept"}
        )
        assert resp.status_code == 200
    for other in ["image", "IMAGE"]:
        resp = client.put(f"/api/templates/{template_id}", json={"templateType": other})
        assert resp.status_code == 400
    assert db.session.get(CertificateTemplate, template_id).template_type == "pdf"


@pytest.mark.parametrize(
    "value,expected",
    [
        (False, False),
        ("false", False),
        ("0", False),
        (0, False),
        ("no", False),
        (True, True),
        ("true", True),
        ("1", True),
        ("Yes", True),
    ],
)
def test_is_active_string_values(client, value, expected):
    upload = _upload(client, "cert.png", png_bytes(842, 595)).get_json()["data"]
    created = _create(client, upload, isActive=value).get_json()["data"]
    assert created["isActive"] is expected

    resp = client.put(f"/api/templates/{created['id']}", json={"isActive": not expected})
    assert resp.get_json()["data"]["isActive"] is (not expected)
    resp = client.put(f"/api/templates/{created['id']}", json={"isActive": value})
    assert resp.get_json()["data"]["isActive"] is expected


def test_is_active_rejects_unrecognised_values(client):
    upload = _upload(client, "cert.png", png_bytes(842, 595)).get_json()["data"]
    assert _create(client, upload, isActive="maybe").status_code == 400
    assert CertificateTemplate.query.count() == 0

    template_id = _create(client, upload).get_json()["data"]["id"]
    resp = client.put(f"/api/templates/{template_id}", json={"isActive": [1]})
    assert resp.status_code == 400
    assert db.session.get(CertificateTemplate, template_id).is_active is True
