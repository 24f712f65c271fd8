from __future__ import annotations

import uuid

from sqlalchemy.orm import validates

from .app import db
from .shared.errors import InvalidTransitionError
from .shared.template_fields import TemplateField, parse_fields, serialize_fields

CERT_PENDING = "PENDING"
CERT_RENDERED = "RENDERED"
CERT_FAILED = "FAILED"

# status -> statuses it may move to
CERT_TRANSITIONS = {
    CERT_PENDING: {CERT_RENDERED, CERT_FAILED},
    CERT_RENDERED: set(),
    CERT_FAILED: set(),
}


def _new_id() -> str:
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


class Student(db.Model):
    __tablename__ = "students"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    national_id = db.Column(db.String(100))
    passport_no = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime, server_default=db.func.now(), onupdate=db.func.now()
    )

    certificates = db.relationship(
        "Certificate", back_populates="student", cascade="all, delete-orphan"
    )

    @validates("email")
    def lower_email(self, key, value):  # pragma: no cover - simple normalizer
        return (value or "").strip().lower()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "nationalId": self.national_id,
            "passportNo": self.passport_no,
            "createdAt": _iso(self.created_at),
        }


class Course(db.Model):
    __tablename__ = "courses"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(255), nullable=False, unique=True)
    description = db.Column(db.Text)
    duration_hours = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "durationHours": self.duration_hours,
            "createdAt": _iso(self.created_at),
        }


class CertificateTemplate(db.Model):
    __tablename__ = "certificate_templates"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    template_type = db.Column(db.String(10), nullable=False)
    file_path = db.Column(db.String(500), nullable=False)
    thumbnail_path = db.Column(db.String(500))
    fields = db.Column(db.JSON, nullable=False, default=list)
    width = db.Column(db.Float, nullable=False)
    height = db.Column(db.Float, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime, server_default=db.func.now(), onupdate=db.func.now()
    )

    @property
    def template_fields(self) -> list[TemplateField]:
        return parse_fields(self.fields or [])

    @template_fields.setter
    def template_fields(self, value: list[TemplateField]) -> None:
        self.fields = serialize_fields(value)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "templateType": self.template_type,
            "filePath": self.file_path,
            "thumbnailPath": self.thumbnail_path,
            "fields": self.fields or [],
            "width": self.width,
            "height": self.height,
            "isActive": bool(self.is_active),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class Certificate(db.Model):
    __tablename__ = "certificates"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    student_id = db.Column(
        db.String(36), db.ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    course_id = db.Column(
        db.String(36), db.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    template_id = db.Column(
        db.String(36), db.ForeignKey("certificate_templates.id", ondelete="SET NULL")
    )
    certificate_number = db.Column(db.String(32), nullable=False, unique=True)
    issue_date = db.Column(db.Date, nullable=False)
    pdf_path = db.Column(db.String(500))
    verification_url = db.Column(db.String(500))
    qr_code_data = db.Column(db.String(500))
    generation_method = db.Column(db.String(20), nullable=False, default="programmatic")
    status = db.Column(db.String(10), nullable=False, default=CERT_PENDING, index=True)
    error = db.Column(db.Text)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    student = db.relationship("Student", back_populates="certificates")
    course = db.relationship("Course")
    template = db.relationship("CertificateTemplate")

    def _move_to(self, status: str) -> None:
        current = self.status or CERT_PENDING
        if status not in CERT_TRANSITIONS.get(current, set()):
            raise InvalidTransitionError(
                f"Certificate {self.certificate_number} cannot move from {current} to {status}"
            )
        self.status = status

    def mark_rendered(self, pdf_path: str, verification_url: str, qr_code_data: str) -> None:
        self._move_to(CERT_RENDERED)
        self.pdf_path = pdf_path
        self.verification_url = verification_url
        self.qr_code_data = qr_code_data
        self.error = None

    def mark_failed(self, error: str) -> None:
        self._move_to(CERT_FAILED)
        self.error = (error or "")[:2000]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "studentId": self.student_id,
            "courseId": self.course_id,
            "templateId": self.template_id,
            "certificateNumber": self.certificate_number,
            "issueDate": _iso(self.issue_date),
            "pdfPath": self.pdf_path,
            "verificationUrl": self.verification_url,
            "qrCodeData": self.qr_code_data,
            "generationMethod": self.generation_method,
            "status": self.status,
            "error": self.error,
            "createdAt": _iso(self.created_at),
            "studentName": self.student.full_name if self.student else None,
            "studentEmail": self.student.email if self.student else None,
            "courseName": self.course.name if self.course else None,
        }

    def verification_payload(self) -> dict:
        return {
            "certificateNumber": self.certificate_number,
            "studentName": self.student.full_name if self.student else None,
            "courseName": self.course.name if self.course else None,
            "issueDate": _iso(self.issue_date),
            "isValid": self.status == CERT_RENDERED,
        }
