"""
Quiz evaluator for the Training Portal.

Scores a submission against a module's active questions and records the
attempt. Gating is always re-checked here, whatever the client saw when
the quiz was loaded.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from training_portal.core.config import settings
from training_portal.models.module import Module, Quiz, Question
from training_portal.models.progress import Attempt, MAX_ATTEMPTS
from training_portal.services.errors import (
    AttemptLimitError,
    GatingError,
    InvalidQuizError,
    NotFoundError,
    PersistenceError,
)
from training_portal.services.progress_engine import (
    QuizGate,
    REASON_NOT_FOUND,
    can_attempt_quiz,
    round_half_up,
)


logger = logging.getLogger(__name__)

# (question_id, chosen option index or None)
SubmittedAnswer = Tuple[int, Optional[int]]


@dataclass
class ScoreTally:
    total_questions: int
    total_answered: int
    total_correct: int
    graded: List[Dict]

    @property
    def total_wrong(self) -> int:
        return self.total_answered - self.total_correct

    @property
    def score(self) -> int:
        return round_half_up(100 * self.total_correct, self.total_questions)


@dataclass
class AttemptResult:
    score: int
    passed: bool
    attempt_no: int
    attempts_remaining: int
    total_questions: int
    total_answered: int
    total_correct: int
    total_wrong: int
    pass_score: int

    def to_dict(self) -> dict:
        return asdict(self)


def raise_for_gate(gate: QuizGate) -> None:
    """Turn a denied gate into the matching service error."""
    if gate.allowed:
        return
    if gate.reason == REASON_NOT_FOUND:
        raise NotFoundError(gate.reason)
    raise GatingError(gate.reason)


def require_attempt_allowed(db: Session, user_id: int, module_id: int) -> Module:
    gate = can_attempt_quiz(db, user_id, module_id)
    raise_for_gate(gate)
    return db.get(Module, module_id)


def ensure_quiz(db: Session, module: Module) -> Quiz:
    """Return the module's quiz, creating it with the default pass score if missing."""
    if module.quiz is not None:
        return module.quiz

    db.add(Quiz(module_id=module.id, pass_score=settings.DEFAULT_PASS_SCORE))
    try:
        db.commit()
    except IntegrityError as exc:
        # Another request created it first; quizzes.module_id is unique
        db.rollback()
        db.refresh(module)
        if module.quiz is None:
            logger.exception("Failed to create quiz for module %s", module.id)
            raise PersistenceError("Could not create quiz") from exc
        logger.warning("Quiz for module %s was created concurrently", module.id)
        return module.quiz

    db.refresh(module)
    logger.info("Created missing quiz for module %s", module.id)
    return module.quiz


def score_answers(questions: Sequence[Question], answers: Iterable[SubmittedAnswer]) -> ScoreTally:
    """
    Grade answers against active questions.

    Answers to unknown or inactive questions are ignored, only the first
    answer per question counts, and unanswered questions still count in
    the denominator.
    """
    chosen: Dict[int, Optional[int]] = {}
    active_ids = {q.id for q in questions}
    for question_id, option_key in answers:
        if question_id in active_ids and question_id not in chosen:
            chosen[question_id] = option_key

    answered = correct = 0
    graded = []
    for question in questions:
        option_key = chosen.get(question.id)
        is_correct = question.is_correct(option_key)
        if option_key is not None:
            answered += 1
        if is_correct:
            correct += 1
        graded.append({"question_id": question.id, "option_key": option_key, "correct": is_correct})

    return ScoreTally(
        total_questions=len(questions),
        total_answered=answered,
        total_correct=correct,
        graded=graded,
    )


def _next_attempt_no(db: Session, user_id: int, quiz_id: int) -> int:
    highest = db.query(func.max(Attempt.attempt_no)).filter(
        Attempt.user_id == user_id,
        Attempt.quiz_id == quiz_id
    ).scalar()
    return (highest or 0) + 1


def submit_attempt(db: Session, user_id: int, module_id: int, answers: Sequence[SubmittedAnswer]) -> AttemptResult:
    """
    Grade and record one quiz attempt.

    Attempt numbers are serialised by the unique (user, quiz, attempt_no)
    constraint. When a concurrent submission takes the number first the
    whole check is re-run, so the loser ends in an ordinary gating or
    attempt-limit rejection.
    """
    answers = list(answers)

    for round_no in range(settings.ATTEMPT_WRITE_RETRIES + 1):
        module = require_attempt_allowed(db, user_id, module_id)
        quiz = ensure_quiz(db, module)

        questions = quiz.active_questions
        if not questions:
            raise InvalidQuizError("No active questions")

        tally = score_answers(questions, answers)
        score = tally.score
        passed = score >= quiz.pass_score

        attempt_no = _next_attempt_no(db, user_id, quiz.id)
        if attempt_no > MAX_ATTEMPTS:
            raise AttemptLimitError()

        db.add(Attempt(
            user_id=user_id,
            quiz_id=quiz.id,
            attempt_no=attempt_no,
            score=score,
            passed=passed,
            answers=tally.graded,
        ))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(
                "Attempt number collision: user=%s quiz=%s attempt_no=%s (round %s)",
                user_id, quiz.id, attempt_no, round_no + 1
            )
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to record attempt: user=%s quiz=%s", user_id, quiz.id)
            raise PersistenceError("Could not record attempt") from exc

        logger.info(
            "Attempt recorded: user=%s quiz=%s attempt_no=%s score=%s passed=%s",
            user_id, quiz.id, attempt_no, score, passed
        )
        return AttemptResult(
            score=score,
            passed=passed,
            attempt_no=attempt_no,
            attempts_remaining=max(0, MAX_ATTEMPTS - attempt_no),
            total_questions=tally.total_questions,
            total_answered=tally.total_answered,
            total_correct=tally.total_correct,
            total_wrong=tally.total_wrong,
            pass_score=quiz.pass_score,
        )

    logger.error("Giving up on attempt after repeated collisions: user=%s module=%s", user_id, module_id)
    raise PersistenceError("Could not record attempt")
