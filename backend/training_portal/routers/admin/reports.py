"""
Admin reports router for the Training Portal.
"""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from training_portal.core.database import get_db
from training_portal.models.admin import AdminAction
from training_portal.models.user import User
from training_portal.routers.auth import get_current_admin_user
from training_portal.routers.admin.audit import record_admin_action
from training_portal.services.reports import build_report


router = APIRouter()


@router.get("/")
async def export_report(
    request: Request,
    report_type: str = Query("completions", alias="type"),
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Response:
    """
    Export attempts as CSV. ``type`` is ``completions`` or ``attempts``.
    """
    content = build_report(db, report_type)
    record_admin_action(db, request, current_admin, AdminAction.EXPORT, "report", None, {"type": report_type})
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{report_type}.csv"'}
    )
