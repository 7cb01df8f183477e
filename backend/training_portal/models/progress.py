"""
Progress tracking models for the Training Portal.

Defines Attempt, the immutable ledger every derived progress state is
computed from, and Certificate, the issued-PDF record.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any
from sqlalchemy import (
    Boolean, Integer, String, DateTime,
    ForeignKey, UniqueConstraint, Index, CheckConstraint, JSON, text
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from training_portal.core.database import Base


# Hard ceiling on attempts per (user, quiz); mirrored by a check constraint
MAX_ATTEMPTS = 2


class Attempt(Base):
    """
    One scored quiz submission. Never updated, only deleted by an
    administrative reset.
    """
    __tablename__ = "attempts"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Relationships
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )
    quiz_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        nullable=False
    )

    # Attempt details
    attempt_no: Mapped[int] = mapped_column(Integer, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False)

    # [{"question_id": int, "option_key": int | None}, ...]
    answers: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    # Relationships
    user = relationship("User", back_populates="attempts")
    quiz = relationship("Quiz", back_populates="attempts")

    # Table constraints
    __table_args__ = (
        # Serialises attempt numbering: the loser of a concurrent insert fails here
        UniqueConstraint("user_id", "quiz_id", "attempt_no", name="uq_attempt_user_quiz_no"),
        CheckConstraint(f"attempt_no >= 1 AND attempt_no <= {MAX_ATTEMPTS}", name="check_attempt_no_range"),
        CheckConstraint("score >= 0 AND score <= 100", name="check_attempt_score"),
        Index("idx_attempt_user_submitted", "user_id", "submitted_at"),
    )

    def __repr__(self) -> str:
        return f"<Attempt(id={self.id}, user_id={self.user_id}, quiz_id={self.quiz_id}, attempt_no={self.attempt_no})>"


class Certificate(Base):
    """
    Issued certificate. ``main_module_id`` null means the global
    certificate; otherwise it certifies one main module.

    A stored row says a PDF was rendered, not that the user is still
    eligible; callers re-derive eligibility before exposing it.
    """
    __tablename__ = "certificates"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )
    main_module_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("main_modules.id", ondelete="CASCADE"),
        nullable=True
    )

    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    total_score: Mapped[int] = mapped_column(Integer, nullable=False)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    # Relationships
    user = relationship("User", back_populates="certificates")
    main_module = relationship("MainModule", back_populates="certificates")

    # Table constraints
    __table_args__ = (
        UniqueConstraint("user_id", "main_module_id", name="uq_certificate_user_main_module"),
        # NULLs never collide in a unique constraint, so the global one needs its own index
        Index(
            "uq_certificate_user_global",
            "user_id",
            unique=True,
            sqlite_where=text("main_module_id IS NULL"),
            postgresql_where=text("main_module_id IS NULL"),
        ),
        CheckConstraint("total_score >= 0 AND total_score <= 100", name="check_certificate_score"),
    )

    def __repr__(self) -> str:
        scope = f"main_module_id={self.main_module_id}" if self.main_module_id else "global"
        return f"<Certificate(user_id={self.user_id}, {scope}, score={self.total_score})>"

    @property
    def is_global(self) -> bool:
        return self.main_module_id is None
