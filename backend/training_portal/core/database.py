"""
Database engine, session factory and declarative base for the Training Portal.

Production runs on PostgreSQL. With ``TESTING`` set the engine is a single
shared in-memory SQLite connection so every session in a test sees the
same data.
"""

from typing import Generator
from sqlalchemy import create_engine, event, MetaData, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
import logging

from .config import settings


logger = logging.getLogger(__name__)


# Constraint names must be stable: the attempt numbering retry and the
# certificate upsert both rely on the database rejecting duplicates
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}

Base = declarative_base(metadata=MetaData(naming_convention=convention))


def _build_engine() -> Engine:
    if settings.TESTING:
        return create_engine(
            "sqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        settings.DATABASE_URL,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        echo=settings.DEBUG,
    )


engine = _build_engine()


if engine.dialect.name == "sqlite":
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # SQLite ignores ON DELETE clauses unless asked per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding one session per request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(db: Session) -> None:
    """
    Seed the first administrator from settings unless that email is
    already registered.
    """
    from training_portal.models.user import User, UserRole
    from training_portal.core.security import get_password_hash

    exists = db.query(User.id).filter(User.email == settings.FIRST_ADMIN_EMAIL).first()
    if exists:
        return

    db.add(User(
        email=settings.FIRST_ADMIN_EMAIL,
        name=settings.FIRST_ADMIN_NAME,
        hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
        role=UserRole.ADMIN.value,
    ))
    db.commit()
    logger.info("Seeded administrator %s", settings.FIRST_ADMIN_EMAIL)


def check_database_connection() -> bool:
    """Round-trip a trivial query; used by the health endpoint."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


class DatabaseManager:
    """
    Schema lifecycle. Migrations are out of scope; tables are created
    from the ORM metadata at start-up.
    """

    @staticmethod
    def create_all_tables():
        import training_portal.models  # noqa: F401  (registers mappers)

        Base.metadata.create_all(bind=engine)
        logger.info("Database schema ready (%s)", engine.dialect.name)

    @staticmethod
    def drop_all_tables():
        """Drop every table. Only the test suite calls this."""
        Base.metadata.drop_all(bind=engine)
        logger.warning("All database tables dropped")
