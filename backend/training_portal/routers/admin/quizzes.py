"""
Admin quizzes router for the Training Portal.
"""

from typing import Any, List
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from training_portal.core.database import get_db
from training_portal.models.admin import AdminAction
from training_portal.models.module import Quiz
from training_portal.models.user import User
from training_portal.routers.auth import get_current_admin_user
from training_portal.routers.admin.audit import record_admin_action
from training_portal.schemas.admin import QuizResponse, QuizUpsert
from training_portal.services import curation


router = APIRouter()


def _quiz_response(quiz: Quiz) -> QuizResponse:
    return QuizResponse(
        id=quiz.id,
        module_id=quiz.module_id,
        pass_score=quiz.pass_score,
        question_count=len(quiz.questions),
    )


@router.get("/", response_model=List[QuizResponse])
async def list_quizzes(
    db: Session = Depends(get_db)
) -> Any:
    return [_quiz_response(quiz) for quiz in curation.list_quizzes(db)]


@router.put("/", response_model=QuizResponse)
async def upsert_quiz(
    data: QuizUpsert,
    request: Request,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Any:
    """
    Set the pass score of a module's quiz, creating the quiz if needed.
    """
    quiz = curation.upsert_quiz(db, data.module_id, data.pass_score)
    record_admin_action(
        db, request, current_admin, AdminAction.UPDATE, "quiz", quiz.id,
        {"module_id": data.module_id, "pass_score": data.pass_score}
    )
    db.refresh(quiz)
    return _quiz_response(quiz)
