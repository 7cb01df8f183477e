"""
Certificate issuing for the Training Portal.

Eligibility is always re-derived from the progress engine; a stored
Certificate row only records that a PDF was rendered.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional
import logging

from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from training_portal.core.config import settings
from training_portal.models.progress import Certificate
from training_portal.models.user import User
from training_portal.services.errors import NotEligibleError, NotFoundError, PersistenceError
from training_portal.services.progress_engine import (
    ModuleStatus,
    ProgressSnapshot,
    compute_progress,
    mean_half_up,
)


logger = logging.getLogger(__name__)

GLOBAL_CERTIFICATE_TITLE = "All Main Modules"


@dataclass
class CertificateStatus:
    eligible: bool
    url: Optional[str] = None
    total_score: Optional[int] = None
    issued_at: Optional[datetime] = None


@dataclass
class Eligibility:
    eligible: bool
    score: int
    title: str


def download_url(main_module_id: Optional[int] = None) -> str:
    if main_module_id is None:
        return f"{settings.API_V1_STR}/certificate/download"
    return f"{settings.API_V1_STR}/main-modules/{main_module_id}/certificate/download"


def global_eligibility(snapshot: ProgressSnapshot) -> Eligibility:
    """
    Grouped mode: every main module completed. Legacy mode: every module
    passed. Either way at least one unit has to exist.
    """
    if snapshot.legacy:
        modules = snapshot.modules
        eligible = bool(modules) and all(m.status == ModuleStatus.PASSED for m in modules)
        score = mean_half_up([m.best_score or 0 for m in modules]) or 0
    else:
        nodes = snapshot.main_modules
        eligible = bool(nodes) and all(node.completed for node in nodes)
        score = mean_half_up([node.average_for_certificate for node in nodes]) or 0
    return Eligibility(eligible=eligible, score=score, title=GLOBAL_CERTIFICATE_TITLE)


def main_module_eligibility(snapshot: ProgressSnapshot, main_module_id: int) -> Eligibility:
    node = snapshot.find_main_module(main_module_id)
    if node is None:
        raise NotFoundError("Main module not found")
    return Eligibility(eligible=node.completed, score=node.average_for_certificate, title=node.title)


def evaluate_eligibility(db: Session, user_id: int, main_module_id: Optional[int] = None) -> Eligibility:
    snapshot = compute_progress(db, user_id)
    if main_module_id is None:
        return global_eligibility(snapshot)
    return main_module_eligibility(snapshot, main_module_id)


def find_certificate(db: Session, user_id: int, main_module_id: Optional[int] = None) -> Optional[Certificate]:
    query = db.query(Certificate).filter(Certificate.user_id == user_id)
    if main_module_id is None:
        query = query.filter(Certificate.main_module_id.is_(None))
    else:
        query = query.filter(Certificate.main_module_id == main_module_id)
    return query.first()


def certificate_path(user_id: int, main_module_id: Optional[int] = None) -> Path:
    scope = "global" if main_module_id is None else f"main_{main_module_id}"
    return Path(settings.CERTIFICATES_DIR) / f"user_{user_id}_{scope}.pdf"


def render_certificate_pdf(path: Path, user_name: str, score: int, title: str, issued_on: datetime) -> Path:
    """Draw a single-page landscape certificate."""
    path.parent.mkdir(parents=True, exist_ok=True)
    pdf_canvas = canvas.Canvas(str(path), pagesize=landscape(A4))
    width, height = landscape(A4)

    pdf_canvas.setStrokeColorRGB(0.2, 0.3, 0.5)
    pdf_canvas.setLineWidth(4)
    pdf_canvas.rect(30, 30, width - 60, height - 60)

    pdf_canvas.setFont("Helvetica-Bold", 32)
    pdf_canvas.drawCentredString(width / 2, height - 140, "Certificate of Completion")

    pdf_canvas.setFont("Helvetica", 16)
    pdf_canvas.drawCentredString(width / 2, height - 200, "This certifies that")
    pdf_canvas.setFont("Helvetica-Bold", 24)
    pdf_canvas.drawCentredString(width / 2, height - 240, user_name)

    pdf_canvas.setFont("Helvetica", 16)
    pdf_canvas.drawCentredString(width / 2, height - 290, f"has completed {title}")
    pdf_canvas.drawCentredString(width / 2, height - 320, f"Overall Score: {score}%")

    pdf_canvas.setFont("Helvetica", 12)
    pdf_canvas.drawCentredString(width / 2, 80, f"Date: {issued_on.strftime('%d %B %Y')}")

    pdf_canvas.showPage()
    pdf_canvas.save()
    return path


def get_certificate_status(db: Session, user_id: int, main_module_id: Optional[int] = None) -> CertificateStatus:
    """Current eligibility plus the stored record, exposed only while eligible."""
    eligibility = evaluate_eligibility(db, user_id, main_module_id)
    record = find_certificate(db, user_id, main_module_id)
    if not (eligibility.eligible and record):
        return CertificateStatus(eligible=eligibility.eligible)
    return CertificateStatus(
        eligible=True,
        url=download_url(main_module_id),
        total_score=record.total_score,
        issued_at=record.issued_at,
    )


def issue_certificate(db: Session, user: User, main_module_id: Optional[int] = None) -> Certificate:
    """Render the PDF and upsert the certificate record."""
    eligibility = evaluate_eligibility(db, user.id, main_module_id)
    if not eligibility.eligible:
        raise NotEligibleError("Not eligible")

    issued_on = datetime.now(timezone.utc)
    path = render_certificate_pdf(
        certificate_path(user.id, main_module_id),
        user_name=user.name or user.email,
        score=eligibility.score,
        title=eligibility.title,
        issued_on=issued_on,
    )

    record = _upsert_record(db, user.id, main_module_id, str(path), eligibility.score, issued_on)
    logger.info(
        "Certificate issued: user=%s main_module=%s score=%s",
        user.id, main_module_id if main_module_id is not None else "global", eligibility.score
    )
    return record


def _upsert_record(
    db: Session,
    user_id: int,
    main_module_id: Optional[int],
    file_path: str,
    score: int,
    issued_on: datetime
) -> Certificate:
    for _ in range(2):
        record = find_certificate(db, user_id, main_module_id)
        if record is None:
            record = Certificate(user_id=user_id, main_module_id=main_module_id)
            db.add(record)
        record.file_path = file_path
        record.total_score = score
        record.issued_at = issued_on
        try:
            db.commit()
        except IntegrityError:
            # A concurrent request inserted the same key; update theirs instead
            db.rollback()
            continue
        db.refresh(record)
        return record
    raise PersistenceError("Could not store certificate")


def ensure_certificate_file(db: Session, user: User, main_module_id: Optional[int] = None) -> Path:
    """
    Path of a downloadable PDF. Requires current eligibility and renders
    the certificate again when the record or its file is missing.
    """
    eligibility = evaluate_eligibility(db, user.id, main_module_id)
    if not eligibility.eligible:
        raise NotFoundError("Certificate not found")

    record = find_certificate(db, user.id, main_module_id)
    if record and Path(record.file_path).exists():
        return Path(record.file_path)
    return Path(issue_certificate(db, user, main_module_id).file_path)


def invalidate_certificates(
    db: Session,
    user_id: int,
    main_module_ids: Optional[Iterable[int]] = None
) -> List[str]:
    """
    Delete the user's global certificate plus the per-main-module ones
    listed. ``None`` deletes every certificate of the user.

    Does not commit. Returns the file paths to unlink after the commit.
    """
    query = db.query(Certificate).filter(Certificate.user_id == user_id)
    if main_module_ids is not None:
        ids = list(main_module_ids)
        scope = Certificate.main_module_id.is_(None)
        if ids:
            scope = scope | Certificate.main_module_id.in_(ids)
        query = query.filter(scope)

    paths = []
    for record in query.all():
        paths.append(record.file_path)
        db.delete(record)
    return paths


def remove_certificate_files(paths: Iterable[str]) -> None:
    for file_path in paths:
        try:
            Path(file_path).unlink()
        except FileNotFoundError:
            continue
        except OSError:
            logger.warning("Could not remove certificate file %s", file_path)


def list_certificates(db: Session) -> List[dict]:
    """Stored certificates with eligibility recomputed for each owner."""
    rows = []
    snapshots = {}
    records = db.query(Certificate).join(User).order_by(User.email, Certificate.main_module_id).all()
    for record in records:
        if record.user_id not in snapshots:
            snapshots[record.user_id] = compute_progress(db, record.user_id)
        snapshot = snapshots[record.user_id]
        if record.is_global:
            eligible = global_eligibility(snapshot).eligible
        else:
            node = snapshot.find_main_module(record.main_module_id)
            eligible = bool(node and node.completed)
        rows.append({
            "user_id": record.user_id,
            "email": record.user.email,
            "name": record.user.name,
            "main_module_id": record.main_module_id,
            "total_score": record.total_score,
            "issued_at": record.issued_at,
            "eligible": eligible,
        })
    return rows
