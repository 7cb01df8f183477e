"""
Admin certificates router for the Training Portal.
"""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from training_portal.core.database import get_db
from training_portal.models.admin import AdminAction
from training_portal.models.user import User
from training_portal.routers.auth import get_current_admin_user
from training_portal.routers.admin.audit import record_admin_action
from training_portal.routers.certificates import issued_response, pdf_response
from training_portal.schemas.certificate import (
    CertificateIssuedResponse,
    CertificateReissue,
    CertificateRow,
)
from training_portal.services.certificates import list_certificates
from training_portal.services.errors import NotFoundError


router = APIRouter()


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


@router.get("/", response_model=List[CertificateRow])
async def get_certificates(
    db: Session = Depends(get_db)
) -> Any:
    """Stored certificates with each owner's eligibility recomputed."""
    return list_certificates(db)


@router.post("/reissue", response_model=CertificateIssuedResponse)
async def reissue_certificate(
    data: CertificateReissue,
    request: Request,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Any:
    """
    Render a user's certificate again. The user still has to be eligible.
    """
    user = _get_user(db, data.user_id)
    response = issued_response(db, user, data.main_module_id)
    record_admin_action(
        db, request, current_admin, AdminAction.REISSUE_CERTIFICATE, "user", user.id,
        {"main_module_id": data.main_module_id, "total_score": response.total_score}
    )
    return response


@router.get("/{user_id}/download")
async def download_user_certificate(
    user_id: int,
    main_module_id: Optional[int] = None,
    db: Session = Depends(get_db)
) -> FileResponse:
    return pdf_response(db, _get_user(db, user_id), main_module_id)
