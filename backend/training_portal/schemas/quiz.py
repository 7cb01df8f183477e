"""Schemas for quiz delivery and submission."""

from typing import List, Optional

from pydantic import Field

from training_portal.schemas.base import CamelModel


class AnswerIn(CamelModel):
    question_id: int
    # Original option index as delivered in ``QuizOption.key``; null when unanswered
    option_key: Optional[int] = None


class AttemptSubmit(CamelModel):
    module_id: int
    answers: List[AnswerIn] = Field(default_factory=list)


class AttemptResultResponse(CamelModel):
    score: int
    passed: bool
    attempt_no: int
    attempts_remaining: int
    total_questions: int
    total_answered: int
    total_correct: int
    total_wrong: int
    pass_score: int


class QuizOption(CamelModel):
    key: int
    text: str


class QuizQuestion(CamelModel):
    id: int
    text: str
    options: List[QuizOption]


class QuizDelivery(CamelModel):
    module_id: int
    module_title: str
    video_id: str
    pass_score: int
    attempts_used: int
    attempts_remaining: int
    questions: List[QuizQuestion]
