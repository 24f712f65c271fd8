from __future__ import annotations

import os
import secrets
import string
from datetime import date
from typing import Iterable

from flask import current_app

from ..app import db
from ..certgen import make_certificate_pdf
from ..models import (
    CERT_PENDING,
    Certificate,
    CertificateTemplate,
    Course,
    Student,
)
from .errors import CertificateError, TemplateAssetMissingError, TemplateInactiveError
from .field_values import CertificateSubject, format_issue_date, map_fields
from .render_base import RenderRequest
from .rendering import render_template_certificate
from .storage import certificates_dir, remove_quietly, safe_join, templates_dir

_NUMBER_ALPHABET = string.ascii_uppercase + string.digits
_NUMBER_ATTEMPTS = 5


def generate_certificate_number(today: date | None = None) -> str:
    """``CERT-YYYYMM-XXXXXX`` with six random upper-case base-36 characters."""
    today = today or date.today()
    suffix = "".join(secrets.choice(_NUMBER_ALPHABET) for _ in range(6))
    return f"CERT-{today.year}{today.month:02d}-{suffix}"


def _unused_certificate_number(today: date) -> str:
    for _ in range(_NUMBER_ATTEMPTS):
        number = generate_certificate_number(today)
        taken = (
            db.session.query(Certificate.id)
            .filter(Certificate.certificate_number == number)
            .first()
        )
        if taken is None:
            return number
    raise CertificateError("Could not allocate a unique certificate number")


def verification_url_for(cert: Certificate) -> str:
    base = current_app.config.get("BASE_URL", "http://localhost:5000").rstrip("/")
    return f"{base}/verify/{cert.id}"


def certificate_file_path(cert: Certificate) -> str | None:
    if not cert.pdf_path:
        return None
    return safe_join(certificates_dir(), cert.pdf_path)


def template_asset_path(template: CertificateTemplate) -> str:
    path = safe_join(templates_dir(), template.file_path)
    if not path or not os.path.isfile(path):
        raise TemplateAssetMissingError(
            f"Template file not found for template {template.id}"
        )
    return path


def find_or_create_course(name: str) -> Course:
    name = (name or "").strip()
    if not name:
        raise ValueError("Course name is required")
    course = Course.query.filter(db.func.lower(Course.name) == name.lower()).first()
    if course is None:
        course = Course(name=name, description=f"Course: {name}")
        db.session.add(course)
        db.session.flush()
    return course


def build_subject(cert: Certificate, student: Student, course: Course) -> CertificateSubject:
    return CertificateSubject(
        first_name=student.first_name,
        last_name=student.last_name,
        email=student.email,
        course_name=course.name,
        certificate_number=cert.certificate_number,
        issue_date=format_issue_date(cert.issue_date),
        national_id=student.national_id,
        passport_no=student.passport_no,
    )


def _open_certificate(
    student: Student,
    course: Course,
    issue_date: date,
    method: str,
    template: CertificateTemplate | None = None,
) -> Certificate:
    cert = Certificate(
        student_id=student.id,
        course_id=course.id,
        template_id=template.id if template else None,
        certificate_number=_unused_certificate_number(issue_date),
        issue_date=issue_date,
        generation_method=method,
        status=CERT_PENDING,
    )
    db.session.add(cert)
    db.session.commit()
    return cert


def _fail(cert: Certificate, exc: Exception) -> None:
    db.session.rollback()
    cert.mark_failed(str(exc))
    db.session.commit()
    current_app.logger.exception(
        "[CERT-FAIL] cert=%s number=%s", cert.id, cert.certificate_number
    )


def generate_from_template(
    template: CertificateTemplate,
    student: Student,
    course_name: str,
    issue_date: date | None = None,
) -> Certificate:
    """Render a certificate onto an uploaded template.

    The certificate row is committed as PENDING before anything is drawn so the
    verification URL can embed its id; it ends up RENDERED or FAILED.
    """
    if not template.is_active:
        raise TemplateInactiveError(f"Template {template.id} is not active")
    template_path = template_asset_path(template)
    course = find_or_create_course(course_name)
    cert = _open_certificate(
        student, course, issue_date or date.today(), "template", template
    )
    verification_url = verification_url_for(cert)
    filename = f"certificate-{cert.certificate_number}.pdf"
    output_path = os.path.join(certificates_dir(), filename)

    try:
        fields = template.template_fields
        mappings = map_fields(fields, build_subject(cert, student, course))
        for mapping in mappings:
            current_app.logger.info(
                "[CERT-FIELD] cert=%s field=%r key=%s value=%r",
                cert.certificate_number,
                mapping.name,
                mapping.key.value,
                mapping.value,
            )
        render_template_certificate(
            RenderRequest(
                template_path=template_path,
                template_type=template.template_type,
                fields=fields,
                data={m.name: m.value for m in mappings},
                output_path=output_path,
                template_width=template.width,
                template_height=template.height,
                qr_code_data=verification_url,
                clamp=current_app.config.get("CERT_CLAMP_TO_PAGE", False),
            )
        )
    except Exception as exc:
        _fail(cert, exc)
        raise CertificateError(str(exc)) from exc

    cert.mark_rendered(filename, verification_url, verification_url)
    db.session.commit()
    current_app.logger.info(
        "[CERT] number=%s student=%s template=%s path=%s",
        cert.certificate_number,
        student.email,
        template.id,
        output_path,
    )
    return cert


def generate_programmatic(
    student: Student, course_name: str, issue_date: date | None = None
) -> Certificate:
    """Render the built-in certificate layout."""
    course = find_or_create_course(course_name)
    cert = _open_certificate(student, course, issue_date or date.today(), "programmatic")
    verification_url = verification_url_for(cert)
    filename = f"certificate-{cert.certificate_number}.pdf"
    output_path = os.path.join(certificates_dir(), filename)

    try:
        digest = make_certificate_pdf(
            output_path,
            student_name=student.full_name,
            course_name=course.name,
            issue_date=format_issue_date(cert.issue_date),
            certificate_number=cert.certificate_number,
            verification_url=verification_url,
        )
    except Exception as exc:
        _fail(cert, exc)
        raise CertificateError(str(exc)) from exc

    cert.mark_rendered(filename, verification_url, verification_url)
    db.session.commit()
    current_app.logger.info(
        "[CERT] number=%s student=%s path=%s sha256=%s",
        cert.certificate_number,
        student.email,
        output_path,
        digest,
    )
    return cert


def generate_bulk(
    student_ids: Iterable[str],
    course_name: str,
    template: CertificateTemplate | None = None,
    issue_date: date | None = None,
) -> list[dict]:
    """Generate one certificate per student; a failure is recorded and the loop continues."""
    results: list[dict] = []
    for student_id in student_ids:
        student = db.session.get(Student, student_id)
        if student is None:
            results.append(
                {"studentId": student_id, "success": False, "error": "Student not found"}
            )
            continue
        try:
            if template is not None:
                cert = generate_from_template(template, student, course_name, issue_date)
            else:
                cert = generate_programmatic(student, course_name, issue_date)
        except Exception as exc:
            db.session.rollback()
            current_app.logger.exception(
                "[CERT-FAIL] bulk email=%s course=%s", student.email, course_name
            )
            results.append({"studentId": student_id, "success": False, "error": str(exc)})
            continue
        results.append(
            {"studentId": student_id, "success": True, "certificate": cert.to_dict()}
        )
    return results


def remove_certificate(cert: Certificate) -> bool:
    """Delete the certificate row and its PDF; returns whether a file was removed."""
    removed = remove_quietly(certificate_file_path(cert))
    db.session.delete(cert)
    db.session.commit()
    current_app.logger.info(
        "[CERT-DELETE] number=%s file_removed=%s", cert.certificate_number, removed
    )
    return removed


def find_orphan_certificates() -> list[Certificate]:
    """PENDING certificates with no PDF on disk."""
    orphans = []
    for cert in Certificate.query.filter(Certificate.status == CERT_PENDING).all():
        path = certificate_file_path(cert)
        if not path or not os.path.isfile(path):
            orphans.append(cert)
    return orphans


def find_unreferenced_pdfs() -> list[str]:
    """PDF files in the certificates directory that no certificate row points at."""
    root = certificates_dir()
    if not os.path.isdir(root):
        return []
    referenced = {
        os.path.normpath(p)
        for (p,) in db.session.query(Certificate.pdf_path)
        .filter(Certificate.pdf_path.isnot(None))
        .all()
    }
    orphans = []
    for name in sorted(os.listdir(root)):
        if name.lower().endswith(".pdf") and os.path.normpath(name) not in referenced:
            orphans.append(os.path.join(root, name))
    return orphans
