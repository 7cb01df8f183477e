"""
Service layer for the Training Portal.

- progress_engine: derived per-user module status, gating and score aggregates
- quiz_evaluator: scoring and recording quiz attempts
- certificates: eligibility, PDF rendering and certificate records
- attempt_reset: administrative attempt resets and certificate invalidation
- curation, question_import, reports, youtube: admin content helpers
"""

from .errors import (
    ServiceError,
    NotFoundError,
    GatingError,
    AttemptLimitError,
    InvalidQuizError,
    NotEligibleError,
    PersistenceError,
)

__all__ = [
    "ServiceError",
    "NotFoundError",
    "GatingError",
    "AttemptLimitError",
    "InvalidQuizError",
    "NotEligibleError",
    "PersistenceError",
]
