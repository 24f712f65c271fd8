import os
import tempfile

from flask import current_app


def ensure_dir(path: str) -> None:
    """Create directory if missing (mkdir -p equivalent)."""
    os.makedirs(path, exist_ok=True)


def write_atomic(path: str, data, mode: str = "wb") -> None:
    """Write data to a temporary file then atomically rename to target path."""
    dir_path = os.path.dirname(path)
    ensure_dir(dir_path)
    fd, tmp_path = tempfile.mkstemp(dir=dir_path)
    try:
        with os.fdopen(fd, mode) as f:
            f.write(data)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def safe_join(root: str, candidate: str | None) -> str | None:
    """Resolve ``candidate`` below ``root``; ``None`` when it escapes the root."""
    raw = (candidate or "").strip()
    if not raw:
        return None
    root_real = os.path.realpath(root)
    resolved = os.path.realpath(os.path.join(root_real, raw))
    if resolved == root_real or resolved.startswith(f"{root_real}{os.sep}"):
        return resolved
    return None


def remove_quietly(path: str | None) -> bool:
    if not path:
        return False
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    return True


def _site_root() -> str:
    return current_app.config.get("SITE_ROOT", "/srv")


def certificates_dir() -> str:
    return os.path.join(_site_root(), "certificates")


def templates_dir() -> str:
    return os.path.join(_site_root(), "uploads", "templates")


def thumbnails_dir() -> str:
    return os.path.join(_site_root(), "uploads", "thumbnails")
