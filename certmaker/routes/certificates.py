from __future__ import annotations

import os
from datetime import date

from flask import Blueprint, jsonify, request, send_file

from ..app import db
from ..models import Certificate, CertificateTemplate, Student
from ..shared.certificates import (
    certificate_file_path,
    generate_bulk,
    generate_from_template,
    generate_programmatic,
    remove_certificate,
)
from ..shared.errors import (
    CertificateError,
    TemplateAssetMissingError,
    TemplateInactiveError,
)

bp = Blueprint("certificates", __name__, url_prefix="/api/certificates")


def _error(message: str, status: int = 400, details: str | None = None):
    body = {"success": False, "error": message}
    if details:
        body["details"] = details
    return jsonify(body), status


def _issue_date(payload: dict) -> date | None:
    raw = payload.get("issueDate")
    if not raw:
        return None
    return date.fromisoformat(str(raw)[:10])


@bp.get("")
def list_certificates():
    certs = Certificate.query.order_by(Certificate.created_at.desc()).all()
    return jsonify({"success": True, "data": [c.to_dict() for c in certs]})


@bp.get("/<cert_id>")
def get_certificate(cert_id: str):
    cert = db.session.get(Certificate, cert_id)
    if not cert:
        return _error("Certificate not found", 404)
    data = cert.to_dict()
    data["student"] = cert.student.to_dict() if cert.student else None
    data["course"] = cert.course.to_dict() if cert.course else None
    data["template"] = cert.template.to_dict() if cert.template else None
    return jsonify({"success": True, "data": data})


@bp.post("/generate")
def generate():
    payload = request.get_json(silent=True) or {}
    student_id = payload.get("studentId")
    course_name = (payload.get("courseName") or "").strip()
    if not student_id or not course_name:
        return _error("Student ID and course name are required")
    try:
        issue_date = _issue_date(payload)
    except ValueError:
        return _error("issueDate must be an ISO date")
    student = db.session.get(Student, student_id)
    if not student:
        return _error("Student not found", 404)
    try:
        cert = generate_programmatic(student, course_name, issue_date)
    except CertificateError as exc:
        return _error("Failed to generate certificate", 500, str(exc))
    return jsonify({"success": True, "data": cert.to_dict()}), 201


@bp.post("/generate-from-template")
def generate_with_template():
    payload = request.get_json(silent=True) or {}
    student_id = payload.get("studentId")
    template_id = payload.get("templateId")
    course_name = (payload.get("courseName") or "").strip()
    if not student_id or not template_id or not course_name:
        return _error("Student ID, template ID, and course name are required")
    try:
        issue_date = _issue_date(payload)
    except ValueError:
        return _error("issueDate must be an ISO date")
    student = db.session.get(Student, student_id)
    if not student:
        return _error("Student not found", 404)
    template = db.session.get(CertificateTemplate, template_id)
    if not template:
        return _error("Template not found", 404)
    try:
        cert = generate_from_template(template, student, course_name, issue_date)
    except TemplateInactiveError as exc:
        return _error("Template is not active", 400, str(exc))
    except TemplateAssetMissingError:
        return _error("Template file not found", 404)
    except CertificateError as exc:
        return _error("Failed to generate certificate from template", 500, str(exc))
    return jsonify({"success": True, "data": cert.to_dict()}), 201


@bp.post("/generate-bulk")
def generate_many():
    payload = request.get_json(silent=True) or {}
    student_ids = payload.get("studentIds")
    course_name = (payload.get("courseName") or "").strip()
    if not isinstance(student_ids, list) or not student_ids or not course_name:
        return _error("studentIds (non-empty list) and courseName are required")
    try:
        issue_date = _issue_date(payload)
    except ValueError:
        return _error("issueDate must be an ISO date")
    template = None
    if payload.get("templateId"):
        template = db.session.get(CertificateTemplate, payload["templateId"])
        if not template:
            return _error("Template not found", 404)
    results = generate_bulk(student_ids, course_name, template, issue_date)
    succeeded = sum(1 for r in results if r["success"])
    return jsonify(
        {
            "success": True,
            "data": {
                "generated": succeeded,
                "failed": len(results) - succeeded,
                "results": results,
            },
        }
    )


@bp.get("/<cert_id>/download")
def download(cert_id: str):
    cert = db.session.get(Certificate, cert_id)
    if not cert:
        return _error("Certificate not found", 404)
    path = certificate_file_path(cert)
    if not path or not os.path.isfile(path):
        return _error("Certificate file not found", 404)
    return send_file(
        path,
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"certificate-{cert.certificate_number}.pdf",
    )


@bp.delete("/<cert_id>")
def delete(cert_id: str):
    cert = db.session.get(Certificate, cert_id)
    if not cert:
        return _error("Certificate not found", 404)
    remove_certificate(cert)
    return jsonify({"success": True, "message": "Certificate deleted successfully"})


@bp.get("/verify/<cert_id>")
def verify(cert_id: str):
    cert = db.session.get(Certificate, cert_id)
    if not cert:
        return _error("Certificate not found", 404)
    return jsonify({"success": True, "data": cert.verification_payload()})
