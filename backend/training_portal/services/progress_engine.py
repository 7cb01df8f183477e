"""
Progress engine for the Training Portal.

Derives, for one user, the status of every sub-module, the completion of
every main module, the next open sub-module and the two score aggregates.
Nothing computed here is stored: every call rebuilds the picture from the
current main modules, modules, quizzes and the user's attempts.

Two sequencing modes exist:

- grouped: at least one main module exists. Sub-modules are sequenced
  inside their main module by ``order_within_main`` and main modules gate
  each other by ``order_index``. Unassigned sub-modules belong to no
  sequence.
- legacy: no main module exists. All modules form one flat sequence by
  their global ``order``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence
import logging

from sqlalchemy.orm import Session, joinedload

from training_portal.core.config import settings
from training_portal.models.module import MainModule, Module
from training_portal.models.progress import Attempt, MAX_ATTEMPTS


logger = logging.getLogger(__name__)


class ModuleStatus(str, Enum):
    """Per-user state of a sub-module."""
    LOCKED = "LOCKED"
    PENDING = "PENDING"
    PASSED = "PASSED"
    FAILED = "FAILED"


# Gate denial reasons, surfaced verbatim to the client
REASON_NOT_FOUND = "Module not found"
REASON_NOT_IN_SEQUENCE = "Module not in sequence"
REASON_LOCKED = "Module is locked"
REASON_ALREADY_PASSED = "Already passed"
REASON_NO_ATTEMPTS_LEFT = "No attempts left"

_DENIAL_REASONS = {
    ModuleStatus.LOCKED: REASON_LOCKED,
    ModuleStatus.PASSED: REASON_ALREADY_PASSED,
    ModuleStatus.FAILED: REASON_NO_ATTEMPTS_LEFT,
}


def round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half up, for non-negative operands."""
    return (2 * numerator + denominator) // (2 * denominator)


def mean_half_up(values: Sequence[int]) -> Optional[int]:
    if not values:
        return None
    return round_half_up(sum(values), len(values))


# Engine inputs

@dataclass(frozen=True)
class MainModuleRecord:
    id: int
    order_index: int
    title: str
    description: Optional[str] = None
    video_id: str = ""
    is_active: bool = True


@dataclass(frozen=True)
class ModuleRecord:
    id: int
    order: int
    title: str
    main_module_id: Optional[int] = None
    order_within_main: Optional[int] = None
    pass_score: int = 70
    description: Optional[str] = None
    video_id: str = ""


@dataclass(frozen=True)
class AttemptRecord:
    module_id: int
    attempt_no: int
    score: int
    passed: bool


# Engine outputs

@dataclass
class SubModuleProgress:
    id: int
    title: str
    order: int
    status: ModuleStatus
    attempts_used: int
    last_score: Optional[int]
    best_score: Optional[int]
    pass_score: int
    description: Optional[str] = None
    video_id: str = ""
    main_module_id: Optional[int] = None
    order_within_main: Optional[int] = None


@dataclass
class MainModuleProgress:
    main_module_id: int
    order_index: int
    title: str
    description: Optional[str]
    video_id: str
    is_active: bool
    completed: bool
    sub_modules: List[SubModuleProgress]
    next_open_sub_module_id: Optional[int]
    next_open_sub_module_title: Optional[str]
    dashboard_average: Optional[int]
    average_for_certificate: int


@dataclass
class ProgressSnapshot:
    """Full derived progress of one user."""
    legacy: bool
    main_modules: List[MainModuleProgress] = field(default_factory=list)
    # Flat sequence, only populated in legacy mode
    modules: List[SubModuleProgress] = field(default_factory=list)
    # Every module id the snapshot was built from
    known_module_ids: frozenset = frozenset()

    @property
    def mode(self) -> str:
        return "legacy" if self.legacy else "grouped"

    def find_module(self, module_id: int) -> Optional[SubModuleProgress]:
        """Locate a sub-module inside whichever sequence holds it."""
        if self.legacy:
            sequences: Iterable[List[SubModuleProgress]] = [self.modules]
        else:
            sequences = (node.sub_modules for node in self.main_modules)
        for sequence in sequences:
            for item in sequence:
                if item.id == module_id:
                    return item
        return None

    def find_main_module(self, main_module_id: int) -> Optional[MainModuleProgress]:
        for node in self.main_modules:
            if node.main_module_id == main_module_id:
                return node
        return None


@dataclass(frozen=True)
class QuizGate:
    allowed: bool
    reason: Optional[str] = None


@dataclass
class _AttemptStats:
    attempts_used: int = 0
    last_score: Optional[int] = None
    best_score: Optional[int] = None
    passed: bool = False


def _collect_stats(attempts: Iterable[AttemptRecord]) -> Dict[int, _AttemptStats]:
    stats: Dict[int, _AttemptStats] = {}
    latest_no: Dict[int, int] = {}
    for attempt in attempts:
        s = stats.setdefault(attempt.module_id, _AttemptStats())
        s.attempts_used += 1
        s.passed = s.passed or attempt.passed
        s.best_score = attempt.score if s.best_score is None else max(s.best_score, attempt.score)
        if attempt.attempt_no >= latest_no.get(attempt.module_id, 0):
            latest_no[attempt.module_id] = attempt.attempt_no
            s.last_score = attempt.score
    return stats


def _status_for(gate_open: bool, stats: _AttemptStats) -> ModuleStatus:
    if not gate_open:
        return ModuleStatus.LOCKED
    if stats.passed:
        return ModuleStatus.PASSED
    if stats.attempts_used >= MAX_ATTEMPTS:
        return ModuleStatus.FAILED
    return ModuleStatus.PENDING


def _walk_sequence(
    modules: Sequence[ModuleRecord],
    stats: Dict[int, _AttemptStats],
    gate_open: bool
) -> List[SubModuleProgress]:
    """Apply sequential unlock: any non-passed module closes the gate behind it."""
    items = []
    for module in modules:
        s = stats.get(module.id) or _AttemptStats()
        status = _status_for(gate_open, s)
        items.append(SubModuleProgress(
            id=module.id,
            title=module.title,
            order=module.order,
            status=status,
            attempts_used=s.attempts_used,
            last_score=s.last_score,
            best_score=s.best_score,
            pass_score=module.pass_score,
            description=module.description,
            video_id=module.video_id,
            main_module_id=module.main_module_id,
            order_within_main=module.order_within_main,
        ))
        if status != ModuleStatus.PASSED:
            gate_open = False
    return items


def _summarise_group(
    main_module: MainModuleRecord,
    items: List[SubModuleProgress]
) -> MainModuleProgress:
    next_open = next((item for item in items if item.status == ModuleStatus.PENDING), None)
    attempted_scores = [item.last_score for item in items if item.last_score is not None]
    all_scores = [item.last_score or 0 for item in items]

    return MainModuleProgress(
        main_module_id=main_module.id,
        order_index=main_module.order_index,
        title=main_module.title,
        description=main_module.description,
        video_id=main_module.video_id,
        is_active=main_module.is_active,
        completed=bool(items) and all(item.status == ModuleStatus.PASSED for item in items),
        sub_modules=items,
        next_open_sub_module_id=next_open.id if next_open else None,
        next_open_sub_module_title=next_open.title if next_open else None,
        dashboard_average=mean_half_up(attempted_scores),
        average_for_certificate=mean_half_up(all_scores) or 0,
    )


def build_progress(
    main_modules: Sequence[MainModuleRecord],
    modules: Sequence[ModuleRecord],
    attempts: Iterable[AttemptRecord]
) -> ProgressSnapshot:
    """
    Pure progress computation.

    Ties in ordering fields are broken by id so identical inputs always
    produce identical output.
    """
    stats = _collect_stats(attempts)
    known_ids = frozenset(module.id for module in modules)

    if not main_modules:
        flat = sorted(modules, key=lambda m: (m.order, m.id))
        return ProgressSnapshot(
            legacy=True,
            modules=_walk_sequence(flat, stats, gate_open=True),
            known_module_ids=known_ids,
        )

    groups: Dict[int, List[ModuleRecord]] = {}
    for module in modules:
        if module.main_module_id is not None:
            groups.setdefault(module.main_module_id, []).append(module)

    nodes = []
    gate_open = True
    for main_module in sorted(main_modules, key=lambda mm: (mm.order_index, mm.id)):
        members = sorted(
            groups.get(main_module.id, []),
            key=lambda m: (m.order_within_main or 0, m.id)
        )
        node = _summarise_group(main_module, _walk_sequence(members, stats, gate_open))
        nodes.append(node)
        # Empty main modules never complete but do not block the ones after them
        if members and not node.completed:
            gate_open = False

    return ProgressSnapshot(legacy=False, main_modules=nodes, known_module_ids=known_ids)


# Store-backed operations

def load_inputs(db: Session, user_id: int):
    """Read the engine inputs for one user from the database."""
    main_modules = [
        MainModuleRecord(
            id=mm.id,
            order_index=mm.order_index,
            title=mm.title,
            description=mm.description,
            video_id=mm.video_id,
            is_active=mm.is_active,
        )
        for mm in db.query(MainModule).order_by(MainModule.order_index, MainModule.id).all()
    ]

    quiz_to_module: Dict[int, int] = {}
    modules = []
    for module in db.query(Module).options(joinedload(Module.quiz)).order_by(Module.order, Module.id).all():
        if module.quiz is not None:
            quiz_to_module[module.quiz.id] = module.id
        modules.append(ModuleRecord(
            id=module.id,
            order=module.order,
            title=module.title,
            main_module_id=module.main_module_id,
            order_within_main=module.order_within_main,
            pass_score=module.quiz.pass_score if module.quiz else settings.DEFAULT_PASS_SCORE,
            description=module.description,
            video_id=module.video_id,
        ))

    attempts = [
        AttemptRecord(
            module_id=quiz_to_module[attempt.quiz_id],
            attempt_no=attempt.attempt_no,
            score=attempt.score,
            passed=attempt.passed,
        )
        for attempt in db.query(Attempt).filter(Attempt.user_id == user_id).all()
        if attempt.quiz_id in quiz_to_module
    ]
    return main_modules, modules, attempts


def compute_progress(db: Session, user_id: int) -> ProgressSnapshot:
    """Derive the full progress snapshot for a user."""
    return build_progress(*load_inputs(db, user_id))


def get_main_module_progress(db: Session, user_id: int, main_module_id: int) -> Optional[MainModuleProgress]:
    return compute_progress(db, user_id).find_main_module(main_module_id)


def gate_for(snapshot: ProgressSnapshot, module_id: int) -> QuizGate:
    """Decide whether a quiz may be attempted, from an existing snapshot."""
    if module_id not in snapshot.known_module_ids:
        return QuizGate(False, REASON_NOT_FOUND)

    item = snapshot.find_module(module_id)
    if item is None:
        return QuizGate(False, REASON_NOT_IN_SEQUENCE)

    reason = _DENIAL_REASONS.get(item.status)
    if reason:
        return QuizGate(False, reason)
    return QuizGate(True)


def can_attempt_quiz(db: Session, user_id: int, module_id: int) -> QuizGate:
    gate = gate_for(compute_progress(db, user_id), module_id)
    if not gate.allowed:
        logger.info("Quiz attempt denied: user=%s module=%s reason=%s", user_id, module_id, gate.reason)
    return gate


def is_module_accessible(db: Session, user_id: int, module_id: int) -> bool:
    """
    Video access check. FAILED modules stay viewable; only LOCKED modules
    and modules outside every sequence are hidden.
    """
    # FAILED is deliberately accessible so the video can be rewatched while
    # waiting for an admin reset. Do not narrow this to PENDING/PASSED.
    item = compute_progress(db, user_id).find_module(module_id)
    return item is not None and item.status in (
        ModuleStatus.PENDING, ModuleStatus.PASSED, ModuleStatus.FAILED
    )
