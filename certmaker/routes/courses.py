from flask import Blueprint, jsonify, request

from ..app import db
from ..models import Course

bp = Blueprint("courses", __name__, url_prefix="/api/courses")


@bp.get("")
def list_courses():
    courses = Course.query.order_by(Course.name).all()
    return jsonify({"success": True, "data": [c.to_dict() for c in courses]})


@bp.post("")
def create_course():
    payload = request.get_json(silent=True) or {}
    name = (payload.get("name") or "").strip()
    if not name:
        return jsonify({"success": False, "error": "Course name is required"}), 400
    existing = Course.query.filter(db.func.lower(Course.name) == name.lower()).first()
    if existing:
        return jsonify({"success": False, "error": "Course already exists"}), 400
    duration = payload.get("durationHours")
    try:
        duration = int(duration) if duration not in (None, "") else None
    except (TypeError, ValueError):
        return jsonify({"success": False, "error": "durationHours must be a number"}), 400
    course = Course(
        name=name,
        description=(payload.get("description") or "").strip() or None,
        duration_hours=duration,
    )
    db.session.add(course)
    db.session.commit()
    return jsonify({"success": True, "data": course.to_dict()}), 201
