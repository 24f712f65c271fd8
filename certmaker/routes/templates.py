from __future__ import annotations

import os
import secrets
import time

from flask import Blueprint, current_app, jsonify, request, send_from_directory
from PIL import Image
from werkzeug.utils import secure_filename

from ..app import db
from ..models import Certificate, CertificateTemplate
from ..shared.certificates import template_asset_path
from ..shared.errors import (
    TemplateAssetMissingError,
    TemplateDimensionMismatchError,
    UnsupportedTemplateFormatError,
)
from ..shared.rendering import TEMPLATE_TYPES, measure_template, template_type_for_filename
from ..shared.storage import ensure_dir, remove_quietly, safe_join, templates_dir, thumbnails_dir
from ..shared.template_fields import parse_fields, serialize_fields

bp = Blueprint("templates", __name__, url_prefix="/api/templates")

THUMBNAIL_SIZE = (400, 300)
# tolerance when comparing declared and measured sizes
DIMENSION_TOLERANCE = 0.5
TRUE_STRINGS = {"1", "true", "yes", "on"}
FALSE_STRINGS = {"0", "false", "no", "off", ""}


def _error(message: str, status: int = 400, **extra):
    body = {"success": False, "error": message}
    body.update(extra)
    return jsonify(body), status


def _make_thumbnail(source: str, stored_name: str) -> str:
    thumb_name = f"thumb-{os.path.splitext(stored_name)[0]}.png"
    ensure_dir(thumbnails_dir())
    with Image.open(source) as img:
        img = img.convert("RGB")
        img.thumbnail(THUMBNAIL_SIZE)
        img.save(os.path.join(thumbnails_dir(), thumb_name), format="PNG")
    return thumb_name


def _positive_number(value) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _as_bool(value):
    """Strict flag parsing: None means the value is not a recognisable boolean."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
    return None


def check_dimensions(
    template_path: str, template_type: str, width: float, height: float
) -> tuple[float, float]:
    """Compare the declared canvas with the asset; raise only in strict mode."""
    actual = measure_template(template_path, template_type)
    if (
        abs(actual[0] - width) > DIMENSION_TOLERANCE
        or abs(actual[1] - height) > DIMENSION_TOLERANCE
    ):
        current_app.logger.warning(
            "[TEMPLATE-DIMS] declared=%sx%s actual=%sx%s file=%s",
            width,
            height,
            actual[0],
            actual[1],
            os.path.basename(template_path),
        )
        if current_app.config.get("STRICT_TEMPLATE_DIMENSIONS"):
            raise TemplateDimensionMismatchError((width, height), actual)
    return actual


@bp.post("/upload")
def upload_template():
    upload = request.files.get("template")
    if upload is None or not upload.filename:
        return _error("No file uploaded")
    original = secure_filename(upload.filename)
    try:
        template_type = template_type_for_filename(original)
    except UnsupportedTemplateFormatError as exc:
        return _error(str(exc))

    ext = os.path.splitext(original)[1].lower()
    stored_name = f"template-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"
    ensure_dir(templates_dir())
    dest = os.path.join(templates_dir(), stored_name)
    upload.save(dest)

    try:
        width, height = measure_template(dest, template_type)
        thumbnail = _make_thumbnail(dest, stored_name) if template_type == "image" else None
    except (UnsupportedTemplateFormatError, OSError) as exc:
        remove_quietly(dest)
        current_app.logger.warning(
            "[TEMPLATE-UPLOAD] rejected file=%s reason=%s", original, exc
        )
        return _error(f"Invalid template file: {exc}")

    current_app.logger.info(
        "[TEMPLATE-UPLOAD] file=%s stored=%s type=%s size=%sx%s",
        original,
        stored_name,
        template_type,
        width,
        height,
    )
    return jsonify(
        {
            "success": True,
            "data": {
                "filePath": stored_name,
                "thumbnailPath": thumbnail,
                "templateType": template_type,
                "width": width,
                "height": height,
            },
        }
    )


@bp.post("")
def create_template():
    payload = request.get_json(silent=True) or {}
    name = (payload.get("name") or "").strip()
    template_type = (payload.get("templateType") or "").strip().lower()
    file_path = (payload.get("filePath") or "").strip()
    width = _positive_number(payload.get("width"))
    height = _positive_number(payload.get("height"))
    if not name or not template_type or not file_path or "fields" not in payload:
        return _error("name, templateType, filePath, fields, width and height are required")
    if width is None or height is None:
        return _error("width and height must be positive numbers")
    if template_type not in TEMPLATE_TYPES:
        return _error("templateType must be 'image' or 'pdf'")
    is_active = _as_bool(payload.get("isActive", True))
    if is_active is None:
        return _error("isActive must be a boolean")
    try:
        fields = parse_fields(payload.get("fields"))
    except ValueError as exc:
        return _error(str(exc))

    asset = safe_join(templates_dir(), file_path)
    if not asset or not os.path.isfile(asset):
        return _error("Template file not found", 404)
    try:
        check_dimensions(asset, template_type, width, height)
    except TemplateDimensionMismatchError as exc:
        return _error(str(exc), declared=list(exc.declared), actual=list(exc.actual))
    except UnsupportedTemplateFormatError as exc:
        return _error(str(exc))

    template = CertificateTemplate(
        name=name,
        description=(payload.get("description") or "").strip() or None,
        template_type=template_type,
        file_path=file_path,
        thumbnail_path=payload.get("thumbnailPath") or None,
        fields=serialize_fields(fields),
        width=width,
        height=height,
        is_active=is_active,
    )
    db.session.add(template)
    db.session.commit()
    current_app.logger.info(
        "[TEMPLATE] created id=%s type=%s fields=%d", template.id, template_type, len(fields)
    )
    return jsonify({"success": True, "data": template.to_dict()}), 201


@bp.get("")
def list_templates():
    query = CertificateTemplate.query
    if (request.args.get("active") or "").lower() in TRUE_STRINGS:
        query = query.filter(CertificateTemplate.is_active.is_(True))
    templates = query.order_by(CertificateTemplate.created_at.desc()).all()
    return jsonify({"success": True, "data": [t.to_dict() for t in templates]})


@bp.get("/<template_id>")
def get_template(template_id: str):
    template = db.session.get(CertificateTemplate, template_id)
    if not template:
        return _error("Template not found", 404)
    return jsonify({"success": True, "data": template.to_dict()})


@bp.put("/<template_id>")
def update_template(template_id: str):
    template = db.session.get(CertificateTemplate, template_id)
    if not template:
        return _error("Template not found", 404)
    payload = request.get_json(silent=True) or {}
    requested_type = str(payload.get("templateType") or "").strip().lower()
    if requested_type and requested_type != template.template_type:
        return _error("templateType cannot be changed")
    if "name" in payload:
        name = (payload.get("name") or "").strip()
        if not name:
            return _error("name cannot be empty")
        template.name = name
    if "description" in payload:
        template.description = (payload.get("description") or "").strip() or None
    if "fields" in payload:
        try:
            template.template_fields = parse_fields(payload.get("fields"))
        except ValueError as exc:
            return _error(str(exc))
    if "isActive" in payload:
        is_active = _as_bool(payload.get("isActive"))
        if is_active is None:
            return _error("isActive must be a boolean")
        template.is_active = is_active
    db.session.commit()
    return jsonify({"success": True, "data": template.to_dict()})


@bp.delete("/<template_id>")
def delete_template(template_id: str):
    template = db.session.get(CertificateTemplate, template_id)
    if not template:
        return _error("Template not found", 404)
    try:
        asset = template_asset_path(template)
    except TemplateAssetMissingError:
        asset = None
    remove_quietly(asset)
    if template.thumbnail_path:
        remove_quietly(safe_join(thumbnails_dir(), template.thumbnail_path))
    Certificate.query.filter(Certificate.template_id == template.id).update(
        {Certificate.template_id: None}
    )
    db.session.delete(template)
    db.session.commit()
    current_app.logger.info("[TEMPLATE] deleted id=%s", template_id)
    return jsonify({"success": True, "message": "Template deleted successfully"})


@bp.get("/file/<path:filename>")
def template_file(filename: str):
    return send_from_directory(templates_dir(), filename)


@bp.get("/thumbnail/<path:filename>")
def template_thumbnail(filename: str):
    return send_from_directory(thumbnails_dir(), filename)
