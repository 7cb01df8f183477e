"""Pytest configuration and shared fixtures."""

import os

# Must be set before the package is imported: selects in-memory SQLite
os.environ["TESTING"] = "True"

from typing import Callable, Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from training_portal.core.config import settings
from training_portal.core.database import DatabaseManager, SessionLocal
from training_portal.core.security import create_access_token, get_password_hash
from training_portal.main import app
from training_portal.models import (
    Attempt,
    MainModule,
    Module,
    Question,
    Quiz,
    User,
    UserRole,
)


@pytest.fixture(autouse=True)
def certificates_dir(tmp_path, monkeypatch):
    """Keep rendered PDFs inside the test's temporary directory."""
    directory = tmp_path / "certificates"
    monkeypatch.setattr(settings, "CERTIFICATES_DIR", str(directory))
    return directory


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema for every test."""
    DatabaseManager.drop_all_tables()
    DatabaseManager.create_all_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        DatabaseManager.drop_all_tables()


@pytest.fixture
def client(db) -> TestClient:
    return TestClient(app)


def _create_user(db: Session, email: str, name: str, role: UserRole) -> User:
    user = User(
        email=email,
        name=name,
        hashed_password=get_password_hash("Secret123!"),
        role=role.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def employee(db) -> User:
    return _create_user(db, "employee@example.com", "Test Employee", UserRole.EMPLOYEE)


@pytest.fixture
def other_employee(db) -> User:
    return _create_user(db, "second@example.com", "Second Employee", UserRole.EMPLOYEE)


@pytest.fixture
def admin(db) -> User:
    return _create_user(db, "admin@example.com", "Test Admin", UserRole.ADMIN)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(subject=str(user.id))}"}


@pytest.fixture
def employee_headers(employee) -> dict:
    return auth_headers(employee)


@pytest.fixture
def admin_headers(admin) -> dict:
    return auth_headers(admin)


@pytest.fixture
def make_main_module(db) -> Callable[..., MainModule]:
    """Create a main module at the given position."""
    def factory(order_index: int, title: Optional[str] = None) -> MainModule:
        main_module = MainModule(
            order_index=order_index,
            title=title or f"Main {order_index}",
            video_id="dQw4w9WgXcQ",
        )
        db.add(main_module)
        db.commit()
        db.refresh(main_module)
        return main_module
    return factory


@pytest.fixture
def make_module(db) -> Callable[..., Module]:
    """
    Create a module with a quiz and ``questions`` active questions whose
    correct option is always index 0.
    """
    def factory(
        order: int,
        main_module: Optional[MainModule] = None,
        position: Optional[int] = None,
        pass_score: int = 70,
        questions: int = 4,
        title: Optional[str] = None
    ) -> Module:
        module = Module(
            order=order,
            title=title or f"Module {order}",
            video_id="dQw4w9WgXcQ",
            main_module_id=main_module.id if main_module else None,
            order_within_main=(position or order) if main_module else None,
        )
        db.add(module)
        db.flush()
        quiz = Quiz(module_id=module.id, pass_score=pass_score)
        db.add(quiz)
        db.flush()
        for number in range(questions):
            db.add(Question(
                quiz_id=quiz.id,
                text=f"Question {number + 1} of {module.title}",
                options=["Right", "Wrong", "Also wrong", "Still wrong"],
                correct_index=0,
            ))
        db.commit()
        db.refresh(module)
        return module
    return factory


@pytest.fixture
def record_attempt(db) -> Callable[..., Attempt]:
    """Insert an attempt row directly, bypassing the evaluator."""
    def factory(user: User, module: Module, score: int, passed: Optional[bool] = None) -> Attempt:
        quiz = module.quiz
        attempt_no = db.query(Attempt).filter(
            Attempt.user_id == user.id,
            Attempt.quiz_id == quiz.id
        ).count() + 1
        attempt = Attempt(
            user_id=user.id,
            quiz_id=quiz.id,
            attempt_no=attempt_no,
            score=score,
            passed=score >= quiz.pass_score if passed is None else passed,
            answers=[],
        )
        db.add(attempt)
        db.commit()
        db.refresh(attempt)
        return attempt
    return factory


def all_right(module: Module) -> list:
    """Answers picking the correct option for every active question."""
    return [(question.id, 0) for question in module.quiz.active_questions]


def answers_with_correct(module: Module, correct: int) -> list:
    """Answer the first ``correct`` active questions right and the rest wrong."""
    return [
        (question.id, 0 if index < correct else 1)
        for index, question in enumerate(module.quiz.active_questions)
    ]
