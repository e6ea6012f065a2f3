"""Database connection and operations."""
import logging
from datetime import datetime, UTC
from typing import List
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from config import config
from models import Base, Feedback
from schemas import AnalysisResult, FeedbackRequest

logger = logging.getLogger(__name__)


def build_engine(database_url: str):
    """Create the async engine.

    StaticPool for SQLite to avoid threading issues (and to keep a single
    shared in-memory database).
    """
    if database_url.startswith("sqlite"):
        return create_async_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False
        )
    return create_async_engine(database_url, pool_pre_ping=True, echo=False)


def as_utc(value: datetime) -> datetime:
    """Express a timestamp in UTC; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


engine = build_engine(config.DATABASE_URL)

# Create session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def init_db():
    """Initialize database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    """Dependency to get database session."""
    async with AsyncSessionLocal() as session:
        yield session


def get_db_session():
    """Get database session as context manager (for CLI usage).

    Returns:
        Async context manager for database session
    """
    return AsyncSessionLocal()


async def check_connection() -> bool:
    """Return True when the database answers a trivial query."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Database connectivity check failed: {e}")
        return False


async def save_feedback(
    db: AsyncSession,
    request: FeedbackRequest,
    result: AnalysisResult
) -> Feedback:
    """Save feedback and analysis to database.

    Args:
        db: Database session
        request: Validated feedback submission
        result: Analysis result (live or fallback)

    Returns:
        Saved Feedback model

    Raises:
        SQLAlchemyError: If the insert fails; the session is rolled back
    """
    analysis = result.analysis
    feedback = Feedback(
        institution_name=request.institution_name,
        timestamp=as_utc(request.timestamp),
        text=request.text,
        corruption_score=analysis.corruption_score,
        fairness_score=analysis.fairness_score,
        nepotism_score=analysis.nepotism_score,
        service_quality=analysis.service_quality,
        sentiment=analysis.sentiment,
        main_issue=analysis.main_issue,
        keywords=list(analysis.keywords),
        confidence=analysis.confidence,
        processing_method=result.processing_method
    )

    db.add(feedback)
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
    await db.refresh(feedback)

    return feedback


async def list_feedback(db: AsyncSession) -> List[Feedback]:
    """All feedback rows, oldest first."""
    result = await db.execute(
        select(Feedback).order_by(Feedback.created_at, Feedback.id)
    )
    return list(result.scalars().all())


async def list_institution_feedback(db: AsyncSession, institution_name: str) -> List[Feedback]:
    """Feedback rows for one institution (exact name match), newest first."""
    result = await db.execute(
        select(Feedback)
        .where(Feedback.institution_name == institution_name)
        .order_by(Feedback.created_at.desc(), Feedback.id.desc())
    )
    return list(result.scalars().all())
