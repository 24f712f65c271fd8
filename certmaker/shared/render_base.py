from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import Iterator, Mapping, Sequence

from .errors import TemplateAssetMissingError
from .geometry import Surface
from .storage import write_atomic
from .template_fields import TemplateField

logger = logging.getLogger("certmaker.render")
if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    logger.addHandler(handler)
logger.setLevel(logging.INFO)


@dataclass
class RenderRequest:
    template_path: str
    template_type: str
    fields: Sequence[TemplateField]
    data: Mapping[str, str]
    output_path: str
    template_width: float
    template_height: float
    qr_code_data: str | None = None
    clamp: bool = False
    # reportlab invariant mode: no timestamps or random ids in the output
    invariant: bool = False

    @property
    def declared(self) -> Surface:
        return Surface(float(self.template_width), float(self.template_height))


class TemplateRenderer:
    """One output format for uploaded certificate templates."""

    template_type: str = ""

    def measure(self, path: str) -> tuple[float, float]:
        raise NotImplementedError

    def render(self, request: RenderRequest) -> bytes:
        raise NotImplementedError

    def write(self, request: RenderRequest) -> str:
        pdf_bytes = self.render(request)
        write_atomic(request.output_path, pdf_bytes)
        logger.info(
            "[CERT-RENDER] type=%s fields=%d out=%s bytes=%d",
            self.template_type,
            len(request.fields),
            request.output_path,
            len(pdf_bytes),
        )
        return request.output_path


def require_asset(path: str) -> None:
    if not path or not os.path.isfile(path):
        raise TemplateAssetMissingError(f"Template file does not exist: {path}")


def drawable_fields(request: RenderRequest) -> Iterator[tuple[TemplateField, str]]:
    """Fields with a non-empty resolved value, in template order."""
    for template_field in request.fields:
        value = request.data.get(template_field.name) or ""
        if not value:
            logger.info(
                "[CERT-FIELD] skipping field=%r (no value)", template_field.name
            )
            continue
        yield template_field, value
