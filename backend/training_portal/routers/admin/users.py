"""
Admin users router for the Training Portal.

User listing and attempt resets.
"""

from typing import Any, List
from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from training_portal.core.database import get_db
from training_portal.models.progress import Attempt
from training_portal.models.user import User
from training_portal.routers.auth import get_current_admin_user
from training_portal.schemas.admin import (
    AdminUserResponse,
    ResetAttemptsRequest,
    ResetAttemptsResponse,
)
from training_portal.services.attempt_reset import reset_attempts


router = APIRouter()


@router.get("/", response_model=List[AdminUserResponse])
async def list_users(
    db: Session = Depends(get_db)
) -> Any:
    counts = dict(
        db.query(Attempt.user_id, func.count(Attempt.id)).group_by(Attempt.user_id).all()
    )
    return [
        AdminUserResponse(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            is_disabled=user.is_disabled,
            attempt_count=counts.get(user.id, 0),
        )
        for user in db.query(User).order_by(User.email).all()
    ]


@router.post("/reset-attempts", response_model=ResetAttemptsResponse)
async def reset_user_attempts(
    data: ResetAttemptsRequest,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Any:
    """
    Delete a user's attempts for one module, one main module or all of
    them. Certificates that depended on those attempts are removed too.
    """
    result = reset_attempts(
        db,
        user_id=data.user_id,
        module_id=data.module_id,
        main_module_id=data.main_module_id,
        reset_all=data.reset_all,
        admin_id=current_admin.id,
    )
    return ResetAttemptsResponse(
        deleted_attempts=result.deleted_attempts,
        deleted_certificates=result.deleted_certificates,
    )
