"""
Bulk question import from CSV.

Expected header::

    question_type,question_text,option_a,option_b,option_c,option_d,correct_answer,module_id

``question_type`` is one of MCQ_4, MCQ_2 or TRUE_FALSE. ``sub_module_id``
is accepted in place of ``module_id``. Rows are imported independently;
a bad row is reported and skipped.
"""

import csv
import io
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from training_portal.models.admin import QuestionImport
from training_portal.models.module import Module, Question, QuestionType
from training_portal.services.errors import ServiceError
from training_portal.services.quiz_evaluator import ensure_quiz


logger = logging.getLogger(__name__)

# Errors echoed back to the client; the full list goes to the import record
MAX_REPORTED_ERRORS = 10
MAX_ERROR_LOG_CHARS = 8000

LETTER_INDEX = {"A": 0, "B": 1, "C": 2, "D": 3}
TRUE_FALSE_ALIASES = {"TRUE_FALSE", "TRUEFALSE", "TRUE/FALSE"}


class RowError(Exception):
    """A single CSV row could not be imported."""


@dataclass
class ParsedQuestion:
    module_id: int
    question_type: QuestionType
    text: str
    options: List[str]
    correct_index: int
    correct_answer: str
    labeled: Dict[str, str] = field(default_factory=dict)


@dataclass
class ImportSummary:
    total: int = 0
    imported: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    created_ids: List[int] = field(default_factory=list)
    import_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "imported": self.imported,
            "failed": self.failed,
            "errors": self.errors[:MAX_REPORTED_ERRORS],
            "has_more_errors": len(self.errors) > MAX_REPORTED_ERRORS,
            "total_errors": len(self.errors),
            "created_ids": self.created_ids,
            "import_id": self.import_id,
        }


def read_rows(content: bytes) -> Iterator[Tuple[int, Dict[str, str]]]:
    """Yield (row_number, row) pairs; row numbers count the header as 1."""
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ServiceError(f"File must be UTF-8 encoded: {exc}") from exc

    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise ServiceError("Empty CSV")
    reader.fieldnames = [name.strip().lower() for name in reader.fieldnames]

    try:
        for row_number, row in enumerate(reader, start=2):
            cleaned = {k: (v or "").strip() for k, v in row.items() if k is not None}
            if not any(cleaned.values()):
                continue
            yield row_number, cleaned
    except csv.Error as exc:
        raise ServiceError(f"CSV parsing error: {exc}") from exc


def _require(row: Dict[str, str], key: str, label: str) -> str:
    value = row.get(key, "")
    if not value:
        raise RowError(f"{label} requires {key}")
    return value


def parse_row(row: Dict[str, str]) -> ParsedQuestion:
    """Validate one CSV row and map its answer to an option index."""
    raw_type = row.get("question_type", "").upper()
    if not raw_type:
        raise RowError("question_type is required")
    text = row.get("question_text", "")
    if not text:
        raise RowError("question_text is required")

    module_ref = row.get("module_id") or row.get("sub_module_id") or ""
    if not module_ref:
        raise RowError("module_id/sub_module_id is required")
    try:
        module_id = int(module_ref)
    except ValueError:
        raise RowError(f"module id '{module_ref}' is not a number")

    answer = row.get("correct_answer", "").upper()

    if raw_type == QuestionType.MCQ_4.value:
        letters = ["a", "b", "c", "d"]
        labeled = {letter: _require(row, f"option_{letter}", "MCQ_4") for letter in letters}
        if answer not in ("A", "B", "C", "D"):
            raise RowError(f"correct_answer must be A, B, C, or D (received: {answer or 'empty'})")
        return ParsedQuestion(
            module_id=module_id,
            question_type=QuestionType.MCQ_4,
            text=text,
            options=[labeled[letter] for letter in letters],
            correct_index=LETTER_INDEX[answer],
            correct_answer=answer,
            labeled=labeled,
        )

    if raw_type == QuestionType.MCQ_2.value:
        letters = ["a", "b"]
        labeled = {letter: _require(row, f"option_{letter}", "MCQ_2") for letter in letters}
        if answer not in ("A", "B"):
            raise RowError(f"correct_answer for MCQ_2 must be A or B (received: {answer or 'empty'})")
        return ParsedQuestion(
            module_id=module_id,
            question_type=QuestionType.MCQ_2,
            text=text,
            options=[labeled[letter] for letter in letters],
            correct_index=LETTER_INDEX[answer],
            correct_answer=answer,
            labeled=labeled,
        )

    if raw_type in TRUE_FALSE_ALIASES:
        if answer not in ("TRUE", "FALSE"):
            raise RowError(f"correct_answer for TRUE_FALSE must be TRUE or FALSE (received: {answer or 'empty'})")
        return ParsedQuestion(
            module_id=module_id,
            question_type=QuestionType.TRUE_FALSE,
            text=text,
            options=["TRUE", "FALSE"],
            correct_index=0 if answer == "TRUE" else 1,
            correct_answer=answer,
        )

    raise RowError(
        f"unsupported question_type '{row.get('question_type', '')}'. Must be MCQ_4, MCQ_2, or TRUE_FALSE."
    )


def import_questions(db: Session, content: bytes, file_name: str, uploaded_by_id: int) -> ImportSummary:
    """Import every valid row and record a QuestionImport summary."""
    summary = ImportSummary()

    for row_number, row in read_rows(content):
        summary.total += 1
        try:
            parsed = parse_row(row)
            module = db.get(Module, parsed.module_id)
            if module is None:
                raise RowError(f"module {parsed.module_id} not found")
            quiz = ensure_quiz(db, module)

            question = Question(
                quiz_id=quiz.id,
                text=parsed.text,
                options=parsed.options,
                correct_index=parsed.correct_index,
                question_type=parsed.question_type.value,
                option_a=parsed.labeled.get("a"),
                option_b=parsed.labeled.get("b"),
                option_c=parsed.labeled.get("c"),
                option_d=parsed.labeled.get("d"),
                correct_answer=parsed.correct_answer,
            )
            db.add(question)
            db.commit()
            summary.imported += 1
            summary.created_ids.append(question.id)
        except RowError as exc:
            summary.failed += 1
            summary.errors.append(f"Row {row_number}: {exc}")

    if summary.total == 0:
        raise ServiceError("Empty CSV")

    record = QuestionImport(
        uploaded_by_id=uploaded_by_id,
        file_name=file_name or "upload.csv",
        total_questions=summary.total,
        successful_imports=summary.imported,
        failed_imports=summary.failed,
        error_log="\n".join(summary.errors)[:MAX_ERROR_LOG_CHARS] or None,
    )
    db.add(record)
    db.commit()
    summary.import_id = record.id

    logger.info(
        "Question import %s: total=%s imported=%s failed=%s",
        file_name, summary.total, summary.imported, summary.failed
    )
    return summary
