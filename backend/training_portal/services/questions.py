"""
Question bank management for module quizzes.
"""

from typing import List, Optional, Sequence
import logging

from sqlalchemy.orm import Session

from training_portal.models.module import Module, Question
from training_portal.services.errors import InvalidQuizError, NotFoundError
from training_portal.services.quiz_evaluator import ensure_quiz


logger = logging.getLogger(__name__)


def validate_options(options: Sequence[str], correct_index: int) -> List[str]:
    """Strip options and check the answer key points into them."""
    cleaned = [option.strip() for option in options]
    if len(cleaned) < 2:
        raise InvalidQuizError("At least two options are required")
    if any(not option for option in cleaned):
        raise InvalidQuizError("Options must not be empty")
    if not 0 <= correct_index < len(cleaned):
        raise InvalidQuizError("correctIndex out of range")
    return cleaned


def _get_question(db: Session, question_id: int) -> Question:
    question = db.get(Question, question_id)
    if question is None:
        raise NotFoundError("Question not found")
    return question


def list_questions(db: Session, module_id: int) -> List[Question]:
    module = db.get(Module, module_id)
    if module is None:
        raise NotFoundError("Module not found")
    if module.quiz is None:
        raise NotFoundError("Quiz not found")
    return list(module.quiz.questions)


def create_question(
    db: Session,
    module_id: int,
    text: str,
    options: Sequence[str],
    correct_index: int,
    is_active: bool = True
) -> Question:
    module = db.get(Module, module_id)
    if module is None:
        raise NotFoundError("Module not found")
    cleaned = validate_options(options, correct_index)
    quiz = ensure_quiz(db, module)

    question = Question(
        quiz_id=quiz.id,
        text=text.strip(),
        options=cleaned,
        correct_index=correct_index,
        is_active=is_active,
    )
    db.add(question)
    db.commit()
    db.refresh(question)
    return question


def update_question(
    db: Session,
    question_id: int,
    text: Optional[str] = None,
    options: Optional[Sequence[str]] = None,
    correct_index: Optional[int] = None,
    is_active: Optional[bool] = None
) -> Question:
    question = _get_question(db, question_id)

    if options is not None or correct_index is not None:
        new_options = options if options is not None else question.options
        new_index = correct_index if correct_index is not None else question.correct_index
        question.options = validate_options(new_options, new_index)
        question.correct_index = new_index
    if text is not None:
        question.text = text.strip()
    if is_active is not None:
        question.is_active = is_active

    db.commit()
    db.refresh(question)
    return question


def toggle_question(db: Session, question_id: int) -> Question:
    question = _get_question(db, question_id)
    question.is_active = not question.is_active
    db.commit()
    db.refresh(question)
    logger.info("Question %s active=%s", question.id, question.is_active)
    return question


def delete_question(db: Session, question_id: int) -> None:
    question = _get_question(db, question_id)
    db.delete(question)
    db.commit()
