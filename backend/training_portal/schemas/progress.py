"""Schemas for derived progress."""

from typing import List, Optional

from training_portal.schemas.base import CamelModel
from training_portal.services.progress_engine import ModuleStatus


class SubModuleProgressResponse(CamelModel):
    id: int
    title: str
    order: int
    status: ModuleStatus
    attempts_used: int
    last_score: Optional[int] = None
    best_score: Optional[int] = None
    pass_score: int
    description: Optional[str] = None
    video_id: str = ""
    main_module_id: Optional[int] = None
    order_within_main: Optional[int] = None


class MainModuleProgressResponse(CamelModel):
    main_module_id: int
    order_index: int
    title: str
    description: Optional[str] = None
    video_id: str = ""
    is_active: bool
    completed: bool
    sub_modules: List[SubModuleProgressResponse]
    next_open_sub_module_id: Optional[int] = None
    next_open_sub_module_title: Optional[str] = None
    dashboard_average: Optional[int] = None
    average_for_certificate: int


class ProgressResponse(CamelModel):
    """Grouped tree, or the flat legacy sequence when no main module exists."""
    mode: str
    main_modules: List[MainModuleProgressResponse] = []
    modules: List[SubModuleProgressResponse] = []


class ModuleAccessResponse(CamelModel):
    module_id: int
    accessible: bool


class QuizGateResponse(CamelModel):
    allowed: bool
    reason: Optional[str] = None
