"""
Quiz router for the Training Portal.

Delivers a module's quiz without its answer key and accepts submissions.
"""

import random
from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from training_portal.core.database import get_db
from training_portal.models.progress import Attempt, MAX_ATTEMPTS
from training_portal.models.user import User
from training_portal.routers.auth import get_current_user
from training_portal.schemas.quiz import (
    AttemptResultResponse,
    AttemptSubmit,
    QuizDelivery,
    QuizOption,
    QuizQuestion,
)
from training_portal.services.errors import NotFoundError
from training_portal.services.quiz_evaluator import (
    ensure_quiz,
    require_attempt_allowed,
    submit_attempt,
)


router = APIRouter()


@router.get("/quiz/{module_id}", response_model=QuizDelivery)
async def get_quiz(
    module_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    """
    Active questions of the module's quiz. Options come as ``{key, text}``
    in shuffled order; ``key`` is the value to submit back.
    """
    module = require_attempt_allowed(db, current_user.id, module_id)
    quiz = ensure_quiz(db, module)

    questions = quiz.active_questions
    if not questions:
        raise NotFoundError("No active questions")

    delivered = []
    for question in questions:
        options = [QuizOption(key=key, text=text) for key, text in enumerate(question.options)]
        random.shuffle(options)
        delivered.append(QuizQuestion(id=question.id, text=question.text, options=options))

    attempts_used = db.query(Attempt).filter(
        Attempt.user_id == current_user.id,
        Attempt.quiz_id == quiz.id
    ).count()

    return QuizDelivery(
        module_id=module.id,
        module_title=module.title,
        video_id=module.video_id,
        pass_score=quiz.pass_score,
        attempts_used=attempts_used,
        attempts_remaining=max(0, MAX_ATTEMPTS - attempts_used),
        questions=delivered,
    )


@router.post("/attempt", response_model=AttemptResultResponse)
async def post_attempt(
    submission: AttemptSubmit,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    """
    Grade and record an attempt. Gating is re-validated here.
    """
    answers = [(answer.question_id, answer.option_key) for answer in submission.answers]
    result = submit_attempt(db, current_user.id, submission.module_id, answers)
    return AttemptResultResponse.model_validate(result)
