import os

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import HTTPException

db = SQLAlchemy()

from .models import Certificate  # noqa: E402
from .shared.storage import certificates_dir, ensure_dir, templates_dir, thumbnails_dir  # noqa: E402


def _flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def create_app():
    app = Flask(__name__)
    app.secret_key = os.getenv("SECRET_KEY", "dev")

    site_root = os.getenv("SITE_ROOT", "/srv")
    app.config["SITE_ROOT"] = site_root

    DATABASE_URL = os.getenv(
        "DATABASE_URL", f"sqlite:///{os.path.join(site_root, 'certmaker.db')}"
    )
    app.config["SQLALCHEMY_DATABASE_URI"] = DATABASE_URL
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["MAX_CONTENT_LENGTH"] = 50 * 1024 * 1024

    app.config["BASE_URL"] = os.getenv("BASE_URL", "http://localhost:5000").rstrip("/")
    app.config["CERT_CLAMP_TO_PAGE"] = _flag("CERT_CLAMP_TO_PAGE")
    app.config["STRICT_TEMPLATE_DIMENSIONS"] = _flag("STRICT_TEMPLATE_DIMENSIONS")

    db.init_app(app)

    with app.app_context():
        for path in (certificates_dir(), templates_dir(), thumbnails_dir()):
            ensure_dir(path)

    @app.get("/health")
    def health():
        return jsonify({"status": "OK", "message": "Certificate service is running"})

    @app.get("/verify/<cert_id>")
    def verify(cert_id: str):
        cert = db.session.get(Certificate, cert_id)
        if not cert:
            return jsonify({"success": False, "error": "Certificate not found"}), 404
        return jsonify({"success": True, "data": cert.verification_payload()})

    @app.errorhandler(404)
    def not_found(err):
        return jsonify({"success": False, "error": "Not found"}), 404

    @app.errorhandler(413)
    def too_large(err):
        return jsonify({"success": False, "error": "File too large"}), 413

    @app.errorhandler(500)
    def server_error(err):
        original = getattr(err, "original_exception", None)
        if original is not None and not isinstance(original, HTTPException):
            app.logger.error("[APP-ERROR] %s", original)
        return jsonify({"success": False, "error": "Internal server error"}), 500

    from .routes.students import bp as students_bp
    from .routes.courses import bp as courses_bp
    from .routes.templates import bp as templates_bp
    from .routes.certificates import bp as certificates_bp

    app.register_blueprint(students_bp)
    app.register_blueprint(courses_bp)
    app.register_blueprint(templates_bp)
    app.register_blueprint(certificates_bp)

    return app
