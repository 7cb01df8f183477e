"""
Admin sub-modules router for the Training Portal.
"""

from typing import Any, Dict, List
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from training_portal.core.database import get_db
from training_portal.models.admin import AdminAction
from training_portal.models.user import User
from training_portal.routers.auth import get_current_admin_user
from training_portal.routers.admin.audit import record_admin_action
from training_portal.schemas.admin import (
    ModuleCreate,
    ModuleReorder,
    ModuleResponse,
    ModuleUpdate,
)
from training_portal.services import curation


router = APIRouter()


@router.get("/", response_model=List[ModuleResponse])
async def list_modules(
    db: Session = Depends(get_db)
) -> Any:
    """
    List modules in legacy order. Repairs ordering gaps, bare video URLs
    and missing quizzes on the way.
    """
    return curation.list_modules(db)


@router.post("/", response_model=ModuleResponse, status_code=status.HTTP_201_CREATED)
async def create_module(
    data: ModuleCreate,
    request: Request,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Any:
    module = curation.create_module(
        db,
        title=data.title,
        video_id=data.video_id,
        description=data.description,
        order=data.order,
    )
    record_admin_action(
        db, request, current_admin, AdminAction.CREATE, "module", module.id,
        {"title": module.title, "order": module.order}
    )
    db.refresh(module)
    return module


@router.post("/reorder", response_model=List[ModuleResponse])
async def reorder_modules(
    data: ModuleReorder,
    request: Request,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Any:
    curation.reorder_modules(db, [(item.id, item.order) for item in data.items])
    record_admin_action(
        db, request, current_admin, AdminAction.REORDER, "module", None,
        {"items": [item.model_dump() for item in data.items]}
    )
    return curation.list_modules(db)


@router.patch("/{module_id}", response_model=ModuleResponse)
async def update_module(
    module_id: int,
    data: ModuleUpdate,
    request: Request,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Any:
    changes = data.model_dump(exclude_unset=True)
    module = curation.update_module(db, module_id, **changes)
    record_admin_action(db, request, current_admin, AdminAction.UPDATE, "module", module_id, {"changes": changes})
    db.refresh(module)
    return module


@router.delete("/{module_id}")
async def delete_module(
    module_id: int,
    request: Request,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Dict[str, bool]:
    """
    Delete a module together with its quiz, questions and attempts.
    """
    curation.delete_module(db, module_id)
    record_admin_action(db, request, current_admin, AdminAction.DELETE, "module", module_id)
    return {"ok": True}
