"""Feedback ingestion: analyze, persist, score and alert."""
import asyncio
import logging
from dataclasses import dataclass
from sqlalchemy.ext.asyncio import AsyncSession

from config import config as default_config, FALLBACK_ANALYSIS
from database import save_feedback
from models import Feedback
from schemas import AnalysisResult, FeedbackRequest, IntegrityAnalysis
from ai_analyzer import IntegrityAnalyzer
from rule_based_analyzer import RuleBasedAnalyzer
from alerting import AlertService, is_critical_feedback
from scoring import integrity_score

logger = logging.getLogger(__name__)


def fallback_result() -> AnalysisResult:
    """Neutral analysis stored when no analyzer result is available."""
    return AnalysisResult(
        analysis=IntegrityAnalysis(**FALLBACK_ANALYSIS),
        processing_method="fallback"
    )


def select_analyzer(app_config):
    """Pick the analyzer for this process.

    OpenAI when configured, else the rule-based analyzer when enabled,
    else None (every submission gets the fallback analysis).
    """
    if app_config.ai_configured:
        return IntegrityAnalyzer(app_config)
    if app_config.RULE_BASED_ANALYSIS_ENABLED:
        return RuleBasedAnalyzer(app_config)
    return None


@dataclass
class IngestionResult:
    feedback: Feedback
    result: AnalysisResult
    integrity_score: int
    alert_triggered: bool = False


class FeedbackIngestionService:
    """Turns a validated submission into one persisted, scored record."""

    def __init__(self, analyzer=None, alert_service=None, app_config=None):
        self.config = app_config or default_config
        self.analyzer = analyzer
        self.alert_service = alert_service or AlertService(self.config)

    @classmethod
    def from_config(cls, app_config):
        return cls(
            analyzer=select_analyzer(app_config),
            alert_service=AlertService(app_config),
            app_config=app_config
        )

    @property
    def ai_enabled(self) -> bool:
        return isinstance(self.analyzer, IntegrityAnalyzer) and self.analyzer.client is not None

    async def analyze(self, text: str, institution_name: str) -> AnalysisResult:
        """Run the analyzer, substituting the fallback on any failure.

        Never raises: feedback capture must not depend on the analyzer.
        """
        if self.analyzer is None:
            logger.info("No analyzer configured. Using fallback analysis")
            return fallback_result()

        try:
            async with asyncio.timeout(self.config.AI_TIMEOUT_SECONDS):
                result = await self.analyzer.analyze(text, institution_name)
            logger.info(
                f"{result.processing_method} analysis successful: "
                f"{result.analysis.sentiment}/{result.analysis.main_issue}"
            )
            return result
        except Exception as e:
            logger.warning(f"Analysis failed: {e}. Using fallback analysis")
            return fallback_result()

    async def ingest(self, db: AsyncSession, request: FeedbackRequest) -> IngestionResult:
        """Analyze and store one feedback submission.

        Args:
            db: Database session
            request: Validated submission (all required fields present)

        Returns:
            IngestionResult with the saved row and its integrity score

        Raises:
            SQLAlchemyError: If the record cannot be saved
        """
        logger.info(f"Analyzing feedback about {request.institution_name}...")
        result = await self.analyze(request.text, request.institution_name)

        feedback = await save_feedback(db, request, result)

        analysis = result.analysis
        score = integrity_score(
            analysis.fairness_score,
            analysis.service_quality,
            analysis.corruption_score,
            analysis.nepotism_score
        )

        alert_triggered = is_critical_feedback(analysis, score)
        if alert_triggered:
            await self.alert_service.send_alert(
                feedback.id,
                request.institution_name,
                request.text,
                analysis,
                score
            )

        return IngestionResult(
            feedback=feedback,
            result=result,
            integrity_score=score,
            alert_triggered=alert_triggered
        )
