"""
Admin main modules router for the Training Portal.

Handles main module ordering and sub-module assignment.
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
    AssignmentResponse,
    AssignRequest,
    MainModuleCreate,
    MainModuleMove,
    MainModuleResponse,
)
from training_portal.services import curation


router = APIRouter()


@router.get("/", response_model=List[MainModuleResponse])
async def list_main_modules(
    db: Session = Depends(get_db)
) -> Any:
    return curation.list_main_modules(db)


@router.post("/", response_model=MainModuleResponse, status_code=status.HTTP_201_CREATED)
async def create_main_module(
    data: MainModuleCreate,
    request: Request,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Any:
    """
    Create a main module. Without ``orderIndex`` it is appended; with it,
    the main modules at and after that position move down one.
    """
    main_module = curation.create_main_module(
        db,
        title=data.title,
        video_id=data.video_id,
        description=data.description,
        order_index=data.order_index,
        is_active=data.is_active,
    )
    record_admin_action(
        db, request, current_admin, AdminAction.CREATE, "main_module", main_module.id,
        {"title": main_module.title, "order_index": main_module.order_index}
    )
    db.refresh(main_module)
    return main_module


@router.patch("/{main_module_id}", response_model=MainModuleResponse)
async def move_main_module(
    main_module_id: int,
    data: MainModuleMove,
    request: Request,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Any:
    main_module = curation.move_main_module(db, main_module_id, data.order_index)
    record_admin_action(
        db, request, current_admin, AdminAction.REORDER, "main_module", main_module_id,
        {"order_index": main_module.order_index}
    )
    db.refresh(main_module)
    return main_module


@router.delete("/{main_module_id}")
async def delete_main_module(
    main_module_id: int,
    request: Request,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Dict[str, bool]:
    """
    Delete a main module. Its sub-modules become unassigned.
    """
    curation.delete_main_module(db, main_module_id)
    record_admin_action(db, request, current_admin, AdminAction.DELETE, "main_module", main_module_id)
    return {"ok": True}


@router.get("/{main_module_id}/assign", response_model=AssignmentResponse)
async def get_assignment(
    main_module_id: int,
    db: Session = Depends(get_db)
) -> Any:
    assigned, available = curation.get_assignment(db, main_module_id)
    return {"assigned": assigned, "available": available}


@router.put("/{main_module_id}/assign", response_model=AssignmentResponse)
async def assign_modules(
    main_module_id: int,
    data: AssignRequest,
    request: Request,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Any:
    """
    Replace the ordered membership of a main module with ``moduleIds``.
    """
    curation.assign_modules(db, main_module_id, data.module_ids)
    record_admin_action(
        db, request, current_admin, AdminAction.ASSIGN, "main_module", main_module_id,
        {"module_ids": data.module_ids}
    )
    assigned, available = curation.get_assignment(db, main_module_id)
    return {"assigned": assigned, "available": available}
