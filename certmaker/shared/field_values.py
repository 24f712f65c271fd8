"""Map free-text template field names onto certificate data.

Field names are typed by whoever designed the template ("studentName",
"student_name", "Student Name", ...).  They are normalised to a canonical key
and looked up in a fixed alias table; names that do not match anything
resolve to an empty string, which the renderers treat as "nothing to draw".
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable

from .template_fields import TemplateField

_SEPARATORS_RE = re.compile(r"[_\s-]")


class FieldKey(enum.Enum):
    STUDENT_NAME = "student_name"
    COURSE_NAME = "course_name"
    ISSUE_DATE = "issue_date"
    CERTIFICATE_NUMBER = "certificate_number"
    EMAIL = "email"
    NATIONAL_ID = "national_id"
    PASSPORT_NO = "passport_no"
    UNKNOWN = "unknown"


FIELD_ALIASES: dict[str, FieldKey] = {
    "studentname": FieldKey.STUDENT_NAME,
    "name": FieldKey.STUDENT_NAME,
    "coursename": FieldKey.COURSE_NAME,
    "course": FieldKey.COURSE_NAME,
    "date": FieldKey.ISSUE_DATE,
    "issuedate": FieldKey.ISSUE_DATE,
    "certificatenumber": FieldKey.CERTIFICATE_NUMBER,
    "certificateno": FieldKey.CERTIFICATE_NUMBER,
    "email": FieldKey.EMAIL,
    "nationalid": FieldKey.NATIONAL_ID,
    "passportno": FieldKey.PASSPORT_NO,
    "passportnumber": FieldKey.PASSPORT_NO,
}


@dataclass(frozen=True)
class CertificateSubject:
    """Everything a template field can be filled with."""

    first_name: str
    last_name: str
    email: str
    course_name: str
    certificate_number: str
    issue_date: str
    national_id: str | None = None
    passport_no: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


_ACCESSORS: dict[FieldKey, Callable[[CertificateSubject], str]] = {
    FieldKey.STUDENT_NAME: lambda s: s.full_name,
    FieldKey.COURSE_NAME: lambda s: s.course_name,
    FieldKey.ISSUE_DATE: lambda s: s.issue_date,
    FieldKey.CERTIFICATE_NUMBER: lambda s: s.certificate_number,
    FieldKey.EMAIL: lambda s: s.email,
    FieldKey.NATIONAL_ID: lambda s: s.national_id or "",
    FieldKey.PASSPORT_NO: lambda s: s.passport_no or "",
    FieldKey.UNKNOWN: lambda s: "",
}


@dataclass(frozen=True)
class FieldMapping:
    name: str
    canonical: str
    key: FieldKey
    value: str


def normalize_field_name(name: str | None) -> str:
    return _SEPARATORS_RE.sub("", (name or "").lower())


def classify_field_name(name: str | None) -> FieldKey:
    return FIELD_ALIASES.get(normalize_field_name(name), FieldKey.UNKNOWN)


def resolve_field_value(name: str | None, subject: CertificateSubject) -> str:
    return _ACCESSORS[classify_field_name(name)](subject)


def map_fields(
    fields: Iterable[TemplateField], subject: CertificateSubject
) -> list[FieldMapping]:
    mappings: list[FieldMapping] = []
    for field in fields:
        canonical = normalize_field_name(field.name)
        key = FIELD_ALIASES.get(canonical, FieldKey.UNKNOWN)
        mappings.append(
            FieldMapping(
                name=field.name,
                canonical=canonical,
                key=key,
                value=_ACCESSORS[key](subject),
            )
        )
    return mappings


def resolve_field_values(
    fields: Iterable[TemplateField], subject: CertificateSubject
) -> dict[str, str]:
    return {m.name: m.value for m in map_fields(fields, subject)}


def format_issue_date(value: date) -> str:
    """Long US form used on certificates, e.g. ``January 5, 2025``."""
    return f"{value.strftime('%B')} {value.day}, {value.year}"
