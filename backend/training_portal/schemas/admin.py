"""Schemas for admin curation endpoints."""

from typing import List, Optional

from pydantic import Field, model_validator

from training_portal.schemas.base import CamelModel


# ============================================================================
# Main modules
# ============================================================================


class MainModuleCreate(CamelModel):
    title: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = None
    video_id: str = Field(..., min_length=3, max_length=255)
    order_index: Optional[int] = Field(None, ge=1)
    is_active: bool = True


class MainModuleMove(CamelModel):
    order_index: int = Field(..., ge=1)


class MainModuleResponse(CamelModel):
    id: int
    order_index: int
    title: str
    description: Optional[str] = None
    video_id: str
    is_active: bool


# ============================================================================
# Sub-modules
# ============================================================================


class ModuleCreate(CamelModel):
    title: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = None
    video_id: str = Field(..., min_length=3, max_length=255)
    order: Optional[int] = Field(None, ge=1)


class ModuleUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = None
    video_id: Optional[str] = Field(None, min_length=3, max_length=255)
    order: Optional[int] = Field(None, ge=1)


class ModuleResponse(CamelModel):
    id: int
    order: int
    title: str
    description: Optional[str] = None
    video_id: str
    main_module_id: Optional[int] = None
    order_within_main: Optional[int] = None


class ReorderItem(CamelModel):
    id: int
    order: int = Field(..., ge=1)


class ModuleReorder(CamelModel):
    items: List[ReorderItem]


class AssignRequest(CamelModel):
    module_ids: List[int]


class AssignmentResponse(CamelModel):
    assigned: List[ModuleResponse]
    available: List[ModuleResponse]


# ============================================================================
# Quizzes and questions
# ============================================================================


class QuizUpsert(CamelModel):
    module_id: int
    pass_score: int = Field(..., ge=1, le=100)


class QuizResponse(CamelModel):
    id: int
    module_id: int
    pass_score: int
    question_count: int = 0


class QuestionCreate(CamelModel):
    module_id: int
    text: str = Field(..., min_length=4)
    options: List[str] = Field(..., min_length=2)
    correct_index: int = Field(..., ge=0)
    is_active: bool = True


class QuestionUpdate(CamelModel):
    text: Optional[str] = Field(None, min_length=4)
    options: Optional[List[str]] = Field(None, min_length=2)
    correct_index: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class QuestionResponse(CamelModel):
    id: int
    quiz_id: int
    text: str
    options: List[str]
    correct_index: int
    is_active: bool
    question_type: Optional[str] = None
    correct_answer: Optional[str] = None


class ImportSummaryResponse(CamelModel):
    total: int
    imported: int
    failed: int
    errors: List[str]
    has_more_errors: bool
    total_errors: int
    created_ids: List[int]
    import_id: Optional[int] = None


# ============================================================================
# Users
# ============================================================================


class ResetAttemptsRequest(CamelModel):
    user_id: int
    module_id: Optional[int] = None
    main_module_id: Optional[int] = None
    reset_all: bool = Field(False, alias="all")

    @model_validator(mode="after")
    def check_single_scope(self) -> "ResetAttemptsRequest":
        scopes = [self.module_id is not None, self.main_module_id is not None, self.reset_all]
        if sum(scopes) != 1:
            raise ValueError("Specify exactly one of moduleId, mainModuleId or all")
        return self


class ResetAttemptsResponse(CamelModel):
    deleted_attempts: int
    deleted_certificates: int


class AdminUserResponse(CamelModel):
    id: int
    email: str
    name: str
    role: str
    is_disabled: bool
    attempt_count: int = 0
