from __future__ import annotations

import csv
import io

from flask import Blueprint, current_app, jsonify, request

from ..app import db
from ..models import Student
from ..shared.certificates import find_or_create_course

bp = Blueprint("students", __name__, url_prefix="/api/students")

# normalised CSV header -> student attribute
CSV_COLUMNS = {
    "firstname": "first_name",
    "first_name": "first_name",
    "lastname": "last_name",
    "last_name": "last_name",
    "email": "email",
    "nationalid": "national_id",
    "national_id": "national_id",
    "passportno": "passport_no",
    "passport_no": "passport_no",
    "coursename": "course_name",
    "course_name": "course_name",
}


def _error(message: str, status: int = 400):
    return jsonify({"success": False, "error": message}), status


def _email_taken(email: str) -> bool:
    return (
        db.session.query(Student.id)
        .filter(db.func.lower(Student.email) == email.lower())
        .first()
        is not None
    )


@bp.get("")
def list_students():
    students = Student.query.order_by(Student.created_at.desc()).all()
    return jsonify({"success": True, "data": [s.to_dict() for s in students]})


@bp.get("/<student_id>")
def get_student(student_id: str):
    student = db.session.get(Student, student_id)
    if not student:
        return _error("Student not found", 404)
    return jsonify({"success": True, "data": student.to_dict()})


@bp.post("")
def create_student():
    payload = request.get_json(silent=True) or {}
    first_name = (payload.get("firstName") or "").strip()
    last_name = (payload.get("lastName") or "").strip()
    email = (payload.get("email") or "").strip().lower()
    if not first_name or not last_name or not email:
        return _error("First name, last name, and email are required")
    if _email_taken(email):
        return _error("Student with this email already exists")
    student = Student(
        first_name=first_name,
        last_name=last_name,
        email=email,
        national_id=(payload.get("nationalId") or "").strip() or None,
        passport_no=(payload.get("passportNo") or "").strip() or None,
    )
    db.session.add(student)
    db.session.commit()
    current_app.logger.info("[STUDENT] created email=%s", email)
    return jsonify({"success": True, "data": student.to_dict()}), 201


@bp.delete("/<student_id>")
def delete_student(student_id: str):
    student = db.session.get(Student, student_id)
    if not student:
        return _error("Student not found", 404)
    db.session.delete(student)
    db.session.commit()
    return jsonify({"success": True, "message": "Student deleted successfully"})


def _normalise_row(row: dict) -> dict:
    record: dict[str, str] = {}
    for header, value in row.items():
        if header is None:
            continue
        key = CSV_COLUMNS.get("".join(header.split()).lower())
        if key and key not in record:
            record[key] = (value or "").strip()
    return record


@bp.post("/bulk-upload")
def bulk_upload():
    upload = request.files.get("csvFile")
    if upload is None or not upload.filename:
        return _error("No file uploaded")
    try:
        text = upload.stream.read().decode("utf-8-sig")
    except UnicodeDecodeError:
        return _error("CSV file must be UTF-8 encoded")

    created: list[dict] = []
    errors: list[dict] = []
    # header is row 1
    for row_number, row in enumerate(csv.DictReader(io.StringIO(text)), start=2):
        record = _normalise_row(row)
        email = record.get("email", "").lower()
        if not record.get("first_name") or not record.get("last_name") or not email:
            errors.append({"row": row_number, "error": "Missing required fields"})
            continue
        if _email_taken(email):
            errors.append(
                {"row": row_number, "email": email, "error": "Student already exists"}
            )
            continue
        if record.get("course_name"):
            find_or_create_course(record["course_name"])
        student = Student(
            first_name=record["first_name"],
            last_name=record["last_name"],
            email=email,
            national_id=record.get("national_id") or None,
            passport_no=record.get("passport_no") or None,
        )
        db.session.add(student)
        db.session.flush()
        created.append(student.to_dict())

    db.session.commit()
    current_app.logger.info(
        "[STUDENT-IMPORT] file=%s created=%d errors=%d",
        upload.filename,
        len(created),
        len(errors),
    )
    return jsonify(
        {
            "success": True,
            "data": {
                "created": len(created),
                "errors": len(errors),
                "students": created,
                "errorDetails": errors,
            },
        }
    )
