"""
Database models for the Training Portal.

This module contains all SQLAlchemy models for the application:
- User model for authentication and roles
- Curriculum models (main modules, sub-modules, quizzes, questions)
- Progress models (attempts, certificates)
- Admin models for auditing and imports
"""

from training_portal.core.database import Base

# Import all models to ensure they're registered with SQLAlchemy
from .user import User, UserRole
from .module import MainModule, Module, Quiz, Question, QuestionType
from .progress import Attempt, Certificate, MAX_ATTEMPTS
from .admin import AdminLog, AdminAction, QuestionImport

# Export all models
__all__ = [
    "Base",
    "User",
    "UserRole",
    "MainModule",
    "Module",
    "Quiz",
    "Question",
    "QuestionType",
    "Attempt",
    "Certificate",
    "MAX_ATTEMPTS",
    "AdminLog",
    "AdminAction",
    "QuestionImport"
]
