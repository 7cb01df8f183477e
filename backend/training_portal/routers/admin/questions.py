"""
Admin questions router for the Training Portal.

Question CRUD per module plus bulk CSV import.
"""

from typing import Any, Dict, List
from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from sqlalchemy.orm import Session

from training_portal.core.config import settings
from training_portal.core.database import get_db
from training_portal.models.admin import AdminAction
from training_portal.models.user import User
from training_portal.routers.auth import get_current_admin_user
from training_portal.routers.admin.audit import record_admin_action
from training_portal.schemas.admin import (
    ImportSummaryResponse,
    QuestionCreate,
    QuestionResponse,
    QuestionUpdate,
)
from training_portal.services import questions as question_service
from training_portal.services.question_import import import_questions


router = APIRouter()


@router.get("/", response_model=List[QuestionResponse])
async def list_questions(
    module_id: int = Query(..., alias="moduleId"),
    db: Session = Depends(get_db)
) -> Any:
    return question_service.list_questions(db, module_id)


@router.post("/", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
async def create_question(
    data: QuestionCreate,
    request: Request,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Any:
    question = question_service.create_question(
        db,
        module_id=data.module_id,
        text=data.text,
        options=data.options,
        correct_index=data.correct_index,
        is_active=data.is_active,
    )
    record_admin_action(
        db, request, current_admin, AdminAction.CREATE, "question", question.id,
        {"module_id": data.module_id}
    )
    db.refresh(question)
    return question


@router.post("/import", response_model=ImportSummaryResponse)
async def import_question_csv(
    request: Request,
    file: UploadFile = File(...),
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Any:
    """
    Bulk import questions from CSV. Bad rows are reported, good rows are kept.
    """
    content = await file.read()
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="CSV file required"
        )
    if len(content) > settings.QUESTION_IMPORT_MAX_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="CSV file too large"
        )

    summary = import_questions(db, content, file.filename or "upload.csv", current_admin.id)
    record_admin_action(
        db, request, current_admin, AdminAction.IMPORT, "question_import", summary.import_id,
        {"file_name": file.filename, "imported": summary.imported, "failed": summary.failed}
    )
    return summary.to_dict()


@router.patch("/{question_id}", response_model=QuestionResponse)
async def update_question(
    question_id: int,
    data: QuestionUpdate,
    request: Request,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Any:
    changes = data.model_dump(exclude_unset=True)
    question = question_service.update_question(db, question_id, **changes)
    record_admin_action(db, request, current_admin, AdminAction.UPDATE, "question", question_id, {"changes": changes})
    db.refresh(question)
    return question


@router.post("/{question_id}/toggle", response_model=QuestionResponse)
async def toggle_question(
    question_id: int,
    request: Request,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Any:
    question = question_service.toggle_question(db, question_id)
    record_admin_action(
        db, request, current_admin, AdminAction.UPDATE, "question", question_id,
        {"is_active": question.is_active}
    )
    db.refresh(question)
    return question


@router.delete("/{question_id}")
async def delete_question(
    question_id: int,
    request: Request,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Dict[str, bool]:
    question_service.delete_question(db, question_id)
    record_admin_action(db, request, current_admin, AdminAction.DELETE, "question", question_id)
    return {"ok": True}
