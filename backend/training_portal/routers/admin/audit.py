"""
Audit trail helper shared by the admin routers.
"""

from typing import Any, Dict, Optional
from fastapi import Request
from sqlalchemy.orm import Session

from training_portal.models.admin import AdminLog, AdminAction
from training_portal.models.user import User


def record_admin_action(
    db: Session,
    request: Request,
    admin: User,
    action: AdminAction,
    entity_type: str,
    entity_id: Optional[int] = None,
    details: Optional[Dict[str, Any]] = None
) -> None:
    """Write one AdminLog row and commit it."""
    admin_log = AdminLog.log_action(
        user_id=admin.id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
        ip_address=request.client.host if request.client else None
    )
    db.add(admin_log)
    db.commit()
