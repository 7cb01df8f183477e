"""
Admin routers for the Training Portal.

This module contains all admin-specific API endpoints:
- main_modules: main module ordering and sub-module assignment
- modules: sub-module CRUD and legacy ordering
- quizzes: pass score management
- questions: question CRUD and CSV import
- users: user listing and attempt resets
- certificates: certificate listing and reissue
- reports: CSV exports
"""

from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from training_portal.core.database import get_db
from training_portal.models.user import User
from training_portal.routers.auth import get_current_admin_user

# Import admin sub-routers
from .main_modules import router as main_modules_router
from .modules import router as modules_router
from .quizzes import router as quizzes_router
from .questions import router as questions_router
from .users import router as users_router
from .certificates import router as certificates_router
from .reports import router as reports_router


# Create admin router
admin_router = APIRouter(dependencies=[Depends(get_current_admin_user)])

# Include all admin sub-routers
admin_router.include_router(main_modules_router, prefix="/main-modules", tags=["admin-main-modules"])
admin_router.include_router(modules_router, prefix="/modules", tags=["admin-modules"])
admin_router.include_router(quizzes_router, prefix="/quizzes", tags=["admin-quizzes"])
admin_router.include_router(questions_router, prefix="/questions", tags=["admin-questions"])
admin_router.include_router(users_router, prefix="/users", tags=["admin-users"])
admin_router.include_router(certificates_router, prefix="/certificates", tags=["admin-certificates"])
admin_router.include_router(reports_router, prefix="/reports", tags=["admin-reports"])


# Admin dashboard endpoint
@admin_router.get("/dashboard")
async def get_admin_dashboard(
    admin_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> dict:
    """
    Get admin dashboard overview with statistics.
    """
    from training_portal.models.module import MainModule, Module, Question
    from training_portal.models.progress import Attempt, Certificate

    total_attempts = db.query(Attempt).count()
    passed_attempts = db.query(Attempt).filter(Attempt.passed.is_(True)).count()

    return {
        "statistics": {
            "users": {
                "total": db.query(User).count(),
                "disabled": db.query(User).filter(User.is_disabled.is_(True)).count()
            },
            "content": {
                "main_modules": db.query(MainModule).count(),
                "modules": db.query(Module).count(),
                "unassigned_modules": db.query(Module).filter(Module.main_module_id.is_(None)).count(),
                "active_questions": db.query(Question).filter(Question.is_active.is_(True)).count()
            },
            "attempts": {
                "total": total_attempts,
                "passed": passed_attempts,
                "pass_rate": (passed_attempts / total_attempts * 100) if total_attempts > 0 else 0
            },
            "certificates": db.query(Certificate).count()
        },
        "recent_activity": {
            "last_login": admin_user.last_login_at.isoformat() if admin_user.last_login_at else None
        }
    }


# Admin logs endpoint
@admin_router.get("/logs")
async def get_admin_logs(
    skip: int = 0,
    limit: int = 50,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    db: Session = Depends(get_db)
) -> dict:
    """
    Get admin action logs with filtering.
    """
    from training_portal.models.admin import AdminLog

    query = db.query(AdminLog)

    # Apply filters
    if action:
        query = query.filter(AdminLog.action == action)
    if entity_type:
        query = query.filter(AdminLog.entity_type == entity_type)

    # Get total count
    total = query.count()

    # Get logs with pagination
    logs = query.order_by(
        AdminLog.created_at.desc(), AdminLog.id.desc()
    ).offset(skip).limit(limit).all()

    return {
        "total": total,
        "skip": skip,
        "limit": limit,
        "logs": [
            {
                "id": log.id,
                "user_id": log.user_id,
                "action": log.action,
                "entity_type": log.entity_type,
                "entity_id": log.entity_id,
                "details": log.details,
                "success": log.success,
                "error_message": log.error_message,
                "ip_address": log.ip_address,
                "created_at": log.created_at.isoformat() if log.created_at else None
            }
            for log in logs
        ]
    }


# Export all routers
__all__ = ["admin_router", "get_current_admin_user"]
