"""
Certificate router for the Training Portal.

Global certificate under ``/certificate``; per-main-module certificates
under ``/main-modules/{id}/certificate``.
"""

from typing import Any, Optional
from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from training_portal.core.database import get_db
from training_portal.models.user import User
from training_portal.routers.auth import get_current_user
from training_portal.schemas.certificate import CertificateIssuedResponse, CertificateStatusResponse
from training_portal.services.certificates import (
    download_url,
    ensure_certificate_file,
    get_certificate_status,
    issue_certificate,
)


router = APIRouter()


def pdf_response(db: Session, user: User, main_module_id: Optional[int] = None) -> FileResponse:
    path = ensure_certificate_file(db, user, main_module_id)
    return FileResponse(
        path,
        media_type="application/pdf",
        filename=path.name,
        content_disposition_type="inline",
        headers={"Cache-Control": "no-store"},
    )


def issued_response(db: Session, user: User, main_module_id: Optional[int] = None) -> CertificateIssuedResponse:
    record = issue_certificate(db, user, main_module_id)
    return CertificateIssuedResponse(
        url=download_url(main_module_id),
        total_score=record.total_score,
        issued_at=record.issued_at,
    )


@router.get("/certificate", response_model=CertificateStatusResponse)
async def get_global_certificate(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    """Eligibility is recomputed; the URL is only returned while eligible."""
    return CertificateStatusResponse.model_validate(get_certificate_status(db, current_user.id))


@router.post("/certificate", response_model=CertificateIssuedResponse)
async def post_global_certificate(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    return issued_response(db, current_user)


@router.get("/certificate/download")
async def download_global_certificate(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> FileResponse:
    return pdf_response(db, current_user)


@router.get("/main-modules/{main_module_id}/certificate", response_model=CertificateStatusResponse)
async def get_main_module_certificate(
    main_module_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    status = get_certificate_status(db, current_user.id, main_module_id)
    return CertificateStatusResponse.model_validate(status)


@router.post("/main-modules/{main_module_id}/certificate", response_model=CertificateIssuedResponse)
async def post_main_module_certificate(
    main_module_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    return issued_response(db, current_user, main_module_id)


@router.get("/main-modules/{main_module_id}/certificate/download")
async def download_main_module_certificate(
    main_module_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> FileResponse:
    return pdf_response(db, current_user, main_module_id)
