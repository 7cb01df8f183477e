"""
Progress router for the Training Portal.

Exposes the derived progress tree and the gating checks the client uses
before playing a video or starting a quiz.
"""

from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from training_portal.core.database import get_db
from training_portal.models.user import User
from training_portal.routers.auth import get_current_user
from training_portal.schemas.progress import (
    MainModuleProgressResponse,
    ModuleAccessResponse,
    ProgressResponse,
    QuizGateResponse,
)
from training_portal.services.errors import NotFoundError
from training_portal.services.progress_engine import (
    can_attempt_quiz,
    compute_progress,
    get_main_module_progress,
    is_module_accessible,
)


router = APIRouter()


@router.get("/progress", response_model=ProgressResponse)
async def get_progress(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    """
    Progress of the current user: the main module tree, or the flat
    module sequence while no main module exists.
    """
    snapshot = compute_progress(db, current_user.id)
    return ProgressResponse.model_validate(snapshot)


@router.get("/main-modules/{main_module_id}/progress", response_model=MainModuleProgressResponse)
async def get_main_module_progress_detail(
    main_module_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    node = get_main_module_progress(db, current_user.id, main_module_id)
    if node is None:
        raise NotFoundError("Main module not found")
    return MainModuleProgressResponse.model_validate(node)


@router.get("/modules/{module_id}/access", response_model=ModuleAccessResponse)
async def check_module_access(
    module_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    """Whether the module's video may be played."""
    return ModuleAccessResponse(
        module_id=module_id,
        accessible=is_module_accessible(db, current_user.id, module_id)
    )


@router.get("/modules/{module_id}/can-attempt", response_model=QuizGateResponse)
async def check_can_attempt(
    module_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    gate = can_attempt_quiz(db, current_user.id, module_id)
    return QuizGateResponse(allowed=gate.allowed, reason=gate.reason)
