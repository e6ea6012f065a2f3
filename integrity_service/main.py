"""Main FastAPI application for institutional integrity feedback."""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, UTC
from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import config
from database import (
    init_db,
    get_db,
    check_connection,
    list_feedback,
    list_institution_feedback,
)
from schemas import (
    AnalyticsOverview,
    FeedbackRequest,
    FeedbackResponse,
    HealthResponse,
    InstitutionPriorityList,
    InstitutionReport,
    LoginRequest,
    LoginResponse,
)
from aggregator import InstitutionAggregator
from ingestion import FeedbackIngestionService
from auth import admin_profile, authenticate_admin, create_admin_token, verify_admin_token

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize services
ingestion_service = FeedbackIngestionService.from_config(config)
aggregator = InstitutionAggregator()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Initializing database...")
    await init_db()
    logger.info(f"AI analysis: {'ENABLED' if ingestion_service.ai_enabled else 'DISABLED'}")
    logger.info("Application started successfully")
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title="Institutional Integrity Feedback API",
    description="Citizen feedback about public institutions with AI integrity scoring",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    """Report invalid submissions as 400 with field-level details."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Missing or invalid fields",
            "details": jsonable_encoder(
                [{"field": ".".join(str(p) for p in e["loc"][1:]), "message": e["msg"]}
                 for e in exc.errors()]
            )
        }
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None)
    )


@app.post("/api/feedback", response_model=FeedbackResponse)
async def submit_feedback(
    request: FeedbackRequest,
    db: AsyncSession = Depends(get_db)
):
    """Analyze citizen feedback and store it.

    The analysis falls back to neutral scores if the analyzer fails, so a
    valid submission is always stored.
    """
    outcome = await ingestion_service.ingest(db, request)

    return FeedbackResponse(
        id=outcome.feedback.id,
        analysis=outcome.result.analysis,
        integrity_score=outcome.integrity_score,
        processing_method=outcome.result.processing_method,
        message=f"Your feedback was analyzed. Integrity score: {outcome.integrity_score}%"
    )


@app.get("/api/analytics/overview", response_model=AnalyticsOverview)
async def analytics_overview(db: AsyncSession = Depends(get_db)):
    """Integrity overview across all institutions, best first."""
    feedbacks = await list_feedback(db)
    return aggregator.overview(feedbacks)


@app.post("/api/admin/login", response_model=LoginResponse)
async def admin_login(credentials: LoginRequest):
    """Exchange admin credentials for a bearer token."""
    if not authenticate_admin(credentials.username, credentials.password, config):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    logger.info(f"Admin {credentials.username} logged in")
    return LoginResponse(token=create_admin_token(config), admin=admin_profile(config))


@app.get("/api/admin/institution/{name}/summary", response_model=InstitutionReport)
async def institution_summary(
    name: str,
    db: AsyncSession = Depends(get_db),
    _: dict = Depends(verify_admin_token)
):
    """Full integrity report for one institution."""
    logger.info(f"Report requested for: {name}")
    feedbacks = await list_institution_feedback(db, name)
    return aggregator.institution_report(name, feedbacks)


@app.get("/api/admin/institutions", response_model=InstitutionPriorityList)
async def institution_priorities(
    db: AsyncSession = Depends(get_db),
    _: dict = Depends(verify_admin_token)
):
    """Institutions ordered worst integrity first, with priority buckets."""
    feedbacks = await list_feedback(db)
    return aggregator.priority_list(feedbacks)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness probe with AI and storage status."""
    return HealthResponse(
        ok=True,
        timestamp=datetime.now(UTC),
        ai_enabled=ingestion_service.ai_enabled,
        storage_connected=await check_connection()
    )


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Institutional Integrity Feedback API",
        "version": "1.0.0",
        "endpoints": {
            "submit": "POST /api/feedback",
            "overview": "GET /api/analytics/overview",
            "login": "POST /api/admin/login",
            "institutions": "GET /api/admin/institutions",
            "institution_summary": "GET /api/admin/institution/{name}/summary",
            "health": "GET /health"
        }
    }


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unexpected errors."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Server error"}
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
