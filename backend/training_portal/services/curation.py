"""
Admin curation of the curriculum structure.

Keeps the three ordering fields dense and 1-based:

- ``MainModule.order_index`` across all main modules
- ``Module.order`` across all modules (legacy sequence)
- ``Module.order_within_main`` inside each main module
"""

from typing import Dict, List, Optional, Sequence, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from training_portal.core.config import settings
from training_portal.models.module import MainModule, Module, Quiz
from training_portal.services.certificates import remove_certificate_files
from training_portal.services.errors import InvalidQuizError, NotFoundError, ServiceError
from training_portal.services.youtube import extract_youtube_id


logger = logging.getLogger(__name__)


def _clamp(position: Optional[int], upper: int) -> int:
    """Clamp a requested 1-based position into 1..upper, defaulting to the end."""
    if position is None:
        return upper
    return max(1, min(position, upper))


def _get_main_module(db: Session, main_module_id: int) -> MainModule:
    main_module = db.get(MainModule, main_module_id)
    if main_module is None:
        raise NotFoundError("Main module not found")
    return main_module


def _get_module(db: Session, module_id: int) -> Module:
    module = db.get(Module, module_id)
    if module is None:
        raise NotFoundError("Module not found")
    return module


# Main modules

def list_main_modules(db: Session) -> List[MainModule]:
    return db.query(MainModule).order_by(MainModule.order_index, MainModule.id).all()


def create_main_module(
    db: Session,
    title: str,
    video_id: str,
    description: Optional[str] = None,
    order_index: Optional[int] = None,
    is_active: bool = True
) -> MainModule:
    """Append, or insert at ``order_index`` shifting the ones at or after it."""
    count = db.query(func.count(MainModule.id)).scalar() or 0
    position = _clamp(order_index, count + 1)

    db.query(MainModule).filter(MainModule.order_index >= position).update(
        {MainModule.order_index: MainModule.order_index + 1}
    )
    main_module = MainModule(
        title=title,
        description=description or None,
        video_id=extract_youtube_id(video_id),
        order_index=position,
        is_active=is_active,
    )
    db.add(main_module)
    db.commit()
    db.refresh(main_module)
    logger.info("Main module %s created at position %s", main_module.id, position)
    return main_module


def move_main_module(db: Session, main_module_id: int, new_index: int) -> MainModule:
    """Move a main module, shifting every one between the old and new slot."""
    main_module = _get_main_module(db, main_module_id)
    count = db.query(func.count(MainModule.id)).scalar() or 0
    new_index = _clamp(new_index, count)
    old_index = main_module.order_index

    if new_index < old_index:
        db.query(MainModule).filter(
            MainModule.order_index >= new_index,
            MainModule.order_index < old_index
        ).update({MainModule.order_index: MainModule.order_index + 1})
    elif new_index > old_index:
        db.query(MainModule).filter(
            MainModule.order_index > old_index,
            MainModule.order_index <= new_index
        ).update({MainModule.order_index: MainModule.order_index - 1})

    main_module.order_index = new_index
    db.commit()
    db.refresh(main_module)
    return main_module


def delete_main_module(db: Session, main_module_id: int) -> None:
    """Unassign its sub-modules, delete it and close the gap."""
    main_module = _get_main_module(db, main_module_id)
    old_index = main_module.order_index
    certificate_files = [record.file_path for record in main_module.certificates]

    db.query(Module).filter(Module.main_module_id == main_module.id).update(
        {Module.main_module_id: None, Module.order_within_main: None}
    )
    db.expire(main_module, ["sub_modules"])
    db.delete(main_module)
    db.flush()
    db.query(MainModule).filter(MainModule.order_index > old_index).update(
        {MainModule.order_index: MainModule.order_index - 1}
    )
    db.commit()
    remove_certificate_files(certificate_files)
    logger.info("Main module %s deleted", main_module_id)


# Sub-modules

def _attach_quiz(db: Session, module: Module) -> None:
    if module.quiz is None:
        db.add(Quiz(module_id=module.id, pass_score=settings.DEFAULT_PASS_SCORE))


def list_modules(db: Session) -> List[Module]:
    """
    All modules in legacy order, self-healing as a side effect: video
    references are normalised, ``order`` is rewritten to 1..n and missing
    quizzes are created.
    """
    modules = db.query(Module).options(joinedload(Module.quiz)).order_by(Module.order, Module.id).all()
    changed = False
    for position, module in enumerate(modules, start=1):
        video_id = extract_youtube_id(module.video_id)
        if video_id != module.video_id:
            module.video_id = video_id
            changed = True
        if module.order != position:
            module.order = position
            changed = True
        if module.quiz is None:
            _attach_quiz(db, module)
            changed = True

    if changed:
        db.commit()
        logger.info("Module list self-healed")
        modules = db.query(Module).options(joinedload(Module.quiz)).order_by(Module.order, Module.id).all()
    return modules


def create_module(
    db: Session,
    title: str,
    video_id: str,
    description: Optional[str] = None,
    order: Optional[int] = None
) -> Module:
    count = db.query(func.count(Module.id)).scalar() or 0
    position = _clamp(order, count + 1)

    db.query(Module).filter(Module.order >= position).update({Module.order: Module.order + 1})
    module = Module(
        title=title,
        description=description or None,
        video_id=extract_youtube_id(video_id),
        order=position,
    )
    db.add(module)
    db.flush()
    _attach_quiz(db, module)
    db.commit()
    db.refresh(module)
    logger.info("Module %s created at position %s", module.id, position)
    return module


_UNSET = object()


def update_module(
    db: Session,
    module_id: int,
    title: Optional[str] = None,
    description=_UNSET,
    video_id: Optional[str] = None,
    order: Optional[int] = None
) -> Module:
    module = _get_module(db, module_id)

    if title is not None:
        module.title = title
    if description is not _UNSET:
        module.description = description or None
    if video_id is not None:
        module.video_id = extract_youtube_id(video_id)

    if order is not None:
        count = db.query(func.count(Module.id)).scalar() or 0
        new_order = _clamp(order, count)
        old_order = module.order
        if new_order > old_order:
            db.query(Module).filter(Module.order > old_order, Module.order <= new_order).update(
                {Module.order: Module.order - 1}
            )
        elif new_order < old_order:
            db.query(Module).filter(Module.order >= new_order, Module.order < old_order).update(
                {Module.order: Module.order + 1}
            )
        module.order = new_order

    db.commit()
    db.refresh(module)
    return module


def reorder_modules(db: Session, items: Sequence[Tuple[int, int]]) -> List[Module]:
    """
    Apply (module_id, order) pairs, then renumber everything densely so
    collisions and gaps resolve by requested order, then id.
    """
    requested: Dict[int, int] = dict(items)
    modules = db.query(Module).filter(Module.id.in_(list(requested))).all() if requested else []
    missing = set(requested) - {module.id for module in modules}
    if missing:
        raise NotFoundError("Module not found")

    for module in modules:
        module.order = requested[module.id]
    db.flush()

    everything = db.query(Module).all()
    everything.sort(key=lambda m: (m.order, m.id))
    for position, module in enumerate(everything, start=1):
        module.order = position
    db.commit()
    return everything


def delete_module(db: Session, module_id: int) -> None:
    module = _get_module(db, module_id)
    old_order = module.order
    old_group = module.main_module_id

    db.delete(module)
    db.flush()
    db.query(Module).filter(Module.order > old_order).update({Module.order: Module.order - 1})
    if old_group is not None:
        _renumber_group(db, old_group)
    db.commit()
    logger.info("Module %s deleted", module_id)


# Assignment

def _renumber_group(db: Session, main_module_id: int) -> None:
    members = db.query(Module).filter(Module.main_module_id == main_module_id).order_by(
        Module.order_within_main, Module.id
    ).all()
    for position, member in enumerate(members, start=1):
        member.order_within_main = position


def get_assignment(db: Session, main_module_id: int) -> Tuple[List[Module], List[Module]]:
    """Modules assigned to the main module, and modules not assigned anywhere."""
    _get_main_module(db, main_module_id)
    assigned = db.query(Module).filter(Module.main_module_id == main_module_id).order_by(
        Module.order_within_main, Module.id
    ).all()
    available = db.query(Module).filter(Module.main_module_id.is_(None)).order_by(
        Module.order, Module.id
    ).all()
    return assigned, available


def assign_modules(db: Session, main_module_id: int, module_ids: Sequence[int]) -> List[Module]:
    """
    Make ``module_ids`` the exact ordered membership of the main module.

    Modules dropped from the list are unassigned; modules taken from
    another main module leave that group renumbered.
    """
    _get_main_module(db, main_module_id)
    if len(set(module_ids)) != len(module_ids):
        raise ServiceError("Duplicate module ids")

    modules = {m.id: m for m in db.query(Module).filter(Module.id.in_(module_ids)).all()} if module_ids else {}
    if len(modules) != len(module_ids):
        raise NotFoundError("Module not found")

    db.query(Module).filter(
        Module.main_module_id == main_module_id,
        Module.id.notin_(module_ids)
    ).update({Module.main_module_id: None, Module.order_within_main: None}, synchronize_session="fetch")

    other_groups = set()
    for position, module_id in enumerate(module_ids, start=1):
        module = modules[module_id]
        if module.is_assigned and module.main_module_id != main_module_id:
            other_groups.add(module.main_module_id)
        module.main_module_id = main_module_id
        module.order_within_main = position
    db.flush()

    for group_id in other_groups:
        _renumber_group(db, group_id)
    db.commit()

    assigned, _ = get_assignment(db, main_module_id)
    return assigned


# Quizzes

def list_quizzes(db: Session) -> List[Quiz]:
    return db.query(Quiz).join(Module).options(joinedload(Quiz.module)).order_by(Module.order, Module.id).all()


def upsert_quiz(db: Session, module_id: int, pass_score: int) -> Quiz:
    if not 1 <= pass_score <= 100:
        raise InvalidQuizError("Pass score must be between 1 and 100")
    module = _get_module(db, module_id)
    if module.quiz is None:
        db.add(Quiz(module_id=module.id, pass_score=pass_score))
        try:
            db.commit()
        except IntegrityError:
            # Created concurrently; update that row instead
            db.rollback()
            db.refresh(module)
            if module.quiz is None:
                raise
            module.quiz.pass_score = pass_score
            db.commit()
        db.refresh(module)
    else:
        module.quiz.pass_score = pass_score
        db.commit()
    quiz = module.quiz
    db.refresh(quiz)
    return quiz
