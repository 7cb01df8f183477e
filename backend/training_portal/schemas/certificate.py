"""Schemas for certificates."""

from datetime import datetime
from typing import Optional

from training_portal.schemas.base import CamelModel


class CertificateStatusResponse(CamelModel):
    eligible: bool
    url: Optional[str] = None
    total_score: Optional[int] = None
    issued_at: Optional[datetime] = None


class CertificateIssuedResponse(CamelModel):
    url: str
    total_score: int
    issued_at: datetime


class CertificateReissue(CamelModel):
    user_id: int
    # Omitted for the global certificate
    main_module_id: Optional[int] = None


class CertificateRow(CamelModel):
    user_id: int
    email: str
    name: str
    main_module_id: Optional[int] = None
    total_score: int
    issued_at: datetime
    eligible: bool
