"""
Curriculum models for the Training Portal.

Defines MainModule, Module (sub-module), Quiz and Question: the content
structure that the progress engine sequences.
"""

from datetime import datetime
from typing import Optional, List
from enum import Enum
from sqlalchemy import (
    Boolean, Integer, String, DateTime, Text,
    ForeignKey, Index, CheckConstraint, JSON
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from training_portal.core.database import Base


class QuestionType(str, Enum):
    """Question layouts understood by the bulk importer."""
    MCQ_4 = "MCQ_4"
    MCQ_2 = "MCQ_2"
    TRUE_FALSE = "TRUE_FALSE"


class MainModule(Base):
    """
    Top-level curriculum unit holding an ordered group of sub-modules.
    """
    __tablename__ = "main_modules"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # 1-based, contiguous across all main modules
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)

    # Basic information
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    video_id: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    # Relationships
    sub_modules = relationship(
        "Module",
        back_populates="main_module",
        order_by="Module.order_within_main"
    )
    certificates = relationship("Certificate", back_populates="main_module", cascade="all, delete-orphan")

    # Table constraints
    __table_args__ = (
        CheckConstraint("order_index >= 1", name="check_main_module_order_positive"),
        Index("idx_main_module_order", "order_index"),
    )

    def __repr__(self) -> str:
        return f"<MainModule(id={self.id}, order_index={self.order_index}, title='{self.title}')>"


class Module(Base):
    """
    Sub-module: a single video plus its quiz.

    ``order`` is the legacy global sequence, consulted only while no main
    module exists. ``order_within_main`` is the position inside the owning
    main module and is null whenever ``main_module_id`` is null.
    """
    __tablename__ = "modules"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Legacy global ordering
    order: Mapped[int] = mapped_column(Integer, nullable=False)

    # Basic information
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    video_id: Mapped[str] = mapped_column(String(255), nullable=False)

    # Main module assignment
    main_module_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("main_modules.id", ondelete="SET NULL"),
        nullable=True
    )
    order_within_main: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    # Relationships
    main_module = relationship("MainModule", back_populates="sub_modules")
    quiz = relationship("Quiz", back_populates="module", uselist=False, cascade="all, delete-orphan")

    # Table constraints
    __table_args__ = (
        CheckConstraint('"order" >= 1', name="check_module_order_positive"),
        CheckConstraint(
            "(main_module_id IS NULL AND order_within_main IS NULL) OR "
            "(main_module_id IS NOT NULL AND order_within_main >= 1)",
            name="check_module_assignment"
        ),
        Index("idx_module_order", "order"),
        Index("idx_module_main_order", "main_module_id", "order_within_main"),
    )

    def __repr__(self) -> str:
        return f"<Module(id={self.id}, title='{self.title}', main_module_id={self.main_module_id})>"

    @property
    def is_assigned(self) -> bool:
        return self.main_module_id is not None


class Quiz(Base):
    """
    Quiz owned by exactly one module.
    """
    __tablename__ = "quizzes"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    module_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("modules.id", ondelete="CASCADE"),
        unique=True,
        nullable=False
    )

    # Percentage threshold
    pass_score: Mapped[int] = mapped_column(Integer, default=70, nullable=False)
    # Legacy, no longer enforced
    time_limit_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    # Relationships
    module = relationship("Module", back_populates="quiz")
    questions = relationship("Question", back_populates="quiz", cascade="all, delete-orphan", order_by="Question.id")
    attempts = relationship("Attempt", back_populates="quiz", cascade="all, delete-orphan")

    # Table constraints
    __table_args__ = (
        CheckConstraint("pass_score >= 1 AND pass_score <= 100", name="check_quiz_pass_score_range"),
    )

    def __repr__(self) -> str:
        return f"<Quiz(id={self.id}, module_id={self.module_id}, pass_score={self.pass_score})>"

    @property
    def active_questions(self) -> List["Question"]:
        return [q for q in self.questions if q.is_active]


class Question(Base):
    """
    Multiple choice question. ``options`` is the ordered list of option
    texts and ``correct_index`` points into it.
    """
    __tablename__ = "questions"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    quiz_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        nullable=False
    )

    # Content
    text: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[List[str]] = mapped_column(JSON, nullable=False)
    correct_index: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Fields filled by the bulk importer
    question_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    option_a: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    option_b: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    option_c: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    option_d: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    correct_answer: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    # Relationships
    quiz = relationship("Quiz", back_populates="questions")

    # Table constraints
    __table_args__ = (
        CheckConstraint("correct_index >= 0", name="check_question_correct_index"),
        Index("idx_question_quiz_active", "quiz_id", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<Question(id={self.id}, quiz_id={self.quiz_id}, active={self.is_active})>"

    def is_correct(self, option_index: Optional[int]) -> bool:
        """Unknown or missing indices simply do not match."""
        return option_index is not None and option_index == self.correct_index
