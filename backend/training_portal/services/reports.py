"""
CSV report exports for administrators.
"""

import csv
import io
from typing import List

from sqlalchemy.orm import Session, joinedload

from training_portal.models.module import Module, Quiz
from training_portal.models.progress import Attempt
from training_portal.services.errors import ServiceError


REPORT_TYPES = ("completions", "attempts")


def _isoformat(value) -> str:
    return value.isoformat() if value else ""


def _attempts(db: Session) -> List[Attempt]:
    return db.query(Attempt).options(
        joinedload(Attempt.user),
        joinedload(Attempt.quiz).joinedload(Quiz.module),
    ).order_by(Attempt.submitted_at, Attempt.id).all()


def completions_report(db: Session) -> str:
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL)
    writer.writerow(["User Email", "User Name", "Module", "Score", "Passed", "Attempt #", "Submitted At"])
    for attempt in _attempts(db):
        module: Module = attempt.quiz.module
        writer.writerow([
            attempt.user.email,
            attempt.user.name,
            f"{module.order}. {module.title}",
            attempt.score,
            "yes" if attempt.passed else "no",
            attempt.attempt_no,
            _isoformat(attempt.submitted_at),
        ])
    return output.getvalue()


def attempts_report(db: Session) -> str:
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL)
    writer.writerow(["Attempt ID", "User Email", "Quiz ID", "Attempt #", "Score", "Passed", "Submitted At"])
    for attempt in _attempts(db):
        writer.writerow([
            attempt.id,
            attempt.user.email,
            attempt.quiz_id,
            attempt.attempt_no,
            attempt.score,
            "yes" if attempt.passed else "no",
            _isoformat(attempt.submitted_at),
        ])
    return output.getvalue()


def build_report(db: Session, report_type: str) -> str:
    if report_type == "completions":
        return completions_report(db)
    if report_type == "attempts":
        return attempts_report(db)
    raise ServiceError("Unknown report")
