"""
View models handed to templates. Templates never see raw database rows.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

CATEGORY_LABELS = {"completion": "Completion", "participation": "Participation"}
ORIENTATION_LABELS = {"portrait": "Portrait", "landscape": "Landscape"}


def format_timestamp(value, fmt="%B %d, %Y %H:%M UTC"):
    if not value:
        return "N/A"
    try:
        return datetime.fromisoformat(value).strftime(fmt)
    except (TypeError, ValueError):
        return str(value)


@dataclass
class CertificateView:
    cert_id: str
    program_name: str
    student_name: str
    category: str
    category_label: str
    orientation_label: str
    created_at: str
    file_url: str
    verify_url: str
    owner: str

    @classmethod
    def from_record(cls, rec):
        return cls(
            cert_id=rec["cert_id"],
            program_name=rec.get("program_name") or "N/A",
            student_name=rec.get("student_name") or "Unknown Student",
            category=rec.get("category") or "",
            category_label=CATEGORY_LABELS.get(rec.get("category"), "N/A"),
            orientation_label=ORIENTATION_LABELS.get(rec.get("orientation"), "N/A"),
            created_at=format_timestamp(rec.get("created_at")),
            file_url=rec.get("file_url") or "",
            verify_url=rec.get("verify_url") or "",
            owner=rec.get("owner_name") or rec.get("owner_email") or "Unknown User",
        )


@dataclass
class ProgramGroup:
    program_name: str
    certificates: List[CertificateView] = field(default_factory=list)


@dataclass
class CertificateStats:
    total: int
    completion: int
    participation: int
    programs: int
    owners: int


def group_by_program(records):
    """Group records by program, keeping the order programs first appear in."""
    groups = {}
    for rec in records:
        name = rec.get("program_name") or "Unknown Program"
        groups.setdefault(name, ProgramGroup(name)).certificates.append(CertificateView.from_record(rec))
    return list(groups.values())


def certificate_stats(records):
    return CertificateStats(
        total=len(records),
        completion=sum(1 for r in records if r.get("category") == "completion"),
        participation=sum(1 for r in records if r.get("category") == "participation"),
        programs=len({r.get("program_name") for r in records}),
        owners=len({r.get("user_id") for r in records}),
    )


def verification_view(record) -> Optional[CertificateView]:
    return CertificateView.from_record(record) if record else None


def public_record(record):
    """The JSON shape of a certificate record: stored columns only, no owner PII."""
    keys = (
        "cert_id", "user_id", "program_name", "student_name", "orientation",
        "category", "original_filename", "file_url", "verify_url", "created_at",
    )
    return {k: record.get(k) for k in keys}
