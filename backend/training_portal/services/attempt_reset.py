"""
Administrative attempt resets.

Deleting attempts can only ever lower progress, so every reset also
removes the certificates whose eligibility depended on those attempts.
"""

from dataclasses import dataclass
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from training_portal.models.admin import AdminLog, AdminAction
from training_portal.models.module import MainModule, Module, Quiz
from training_portal.models.progress import Attempt
from training_portal.models.user import User
from training_portal.services.certificates import invalidate_certificates, remove_certificate_files
from training_portal.services.errors import NotFoundError, ServiceError


logger = logging.getLogger(__name__)


@dataclass
class ResetResult:
    deleted_attempts: int
    deleted_certificates: int


def _dependent_main_module_ids(db: Session, main_module: Optional[MainModule]) -> List[int]:
    """The main module itself and every one gated behind it."""
    if main_module is None:
        return []
    rows = db.query(MainModule.id).filter(MainModule.order_index >= main_module.order_index).all()
    return [row.id for row in rows]


def reset_attempts(
    db: Session,
    user_id: int,
    module_id: Optional[int] = None,
    main_module_id: Optional[int] = None,
    reset_all: bool = False,
    admin_id: Optional[int] = None
) -> ResetResult:
    """
    Delete a user's attempts for one module, one main module or
    everything, then invalidate the dependent certificates.
    """
    scopes = [module_id is not None, main_module_id is not None, bool(reset_all)]
    if sum(scopes) != 1:
        raise ServiceError("Specify exactly one of moduleId, mainModuleId or all")

    if db.get(User, user_id) is None:
        raise NotFoundError("User not found")

    attempts = db.query(Attempt).filter(Attempt.user_id == user_id)

    if reset_all:
        affected_main_ids = None
    elif module_id is not None:
        module = db.get(Module, module_id)
        if module is None:
            raise NotFoundError("Module not found")
        if module.quiz is None:
            raise NotFoundError("Quiz not found for module")
        attempts = attempts.filter(Attempt.quiz_id == module.quiz.id)
        affected_main_ids = _dependent_main_module_ids(db, module.main_module)
    else:
        main_module = db.get(MainModule, main_module_id)
        if main_module is None:
            raise NotFoundError("Main module not found")
        quiz_ids = [
            row.id for row in
            db.query(Quiz.id).join(Module).filter(Module.main_module_id == main_module.id).all()
        ]
        attempts = attempts.filter(Attempt.quiz_id.in_(quiz_ids))
        affected_main_ids = _dependent_main_module_ids(db, main_module)

    deleted_attempts = attempts.delete(synchronize_session=False)
    paths = invalidate_certificates(db, user_id, affected_main_ids)

    if admin_id is not None:
        db.add(AdminLog.log_action(
            user_id=admin_id,
            action=AdminAction.RESET_ATTEMPTS,
            entity_type="user",
            entity_id=user_id,
            details={
                "module_id": module_id,
                "main_module_id": main_module_id,
                "all": bool(reset_all),
                "deleted_attempts": deleted_attempts,
                "deleted_certificates": len(paths),
            }
        ))

    db.commit()
    remove_certificate_files(paths)

    logger.info(
        "Attempts reset: user=%s module=%s main_module=%s all=%s attempts=%s certificates=%s",
        user_id, module_id, main_module_id, bool(reset_all), deleted_attempts, len(paths)
    )
    return ResetResult(deleted_attempts=deleted_attempts, deleted_certificates=len(paths))
