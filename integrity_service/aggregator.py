"""Institution-level aggregation of feedback integrity scores.

Feedback rows are grouped by institution name (exact, case-sensitive),
their normalized scores averaged, and the composite integrity score is
computed from those averages. Averaging per-feedback integrity scores
gives a different number and is not used here.

Everything is recomputed from the rows passed in; nothing is cached.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from config import (
    CRITICAL_INTEGRITY_BELOW,
    CRITICAL_CORRUPTION_ABOVE,
    CRITICAL_NEPOTISM_ABOVE,
    DEFAULT_CORRUPTION_SCORE,
    DEFAULT_FAIRNESS_SCORE,
    DEFAULT_NEPOTISM_SCORE,
    DEFAULT_SERVICE_QUALITY,
    EXCERPT_LENGTH,
    HIGH_PRIORITY_BELOW,
    MEDIUM_PRIORITY_BELOW,
    NEEDS_ATTENTION_BELOW,
    RECENT_FEEDBACK_LIMIT,
    TOP_ISSUES_LIMIT,
    TOP_PERFORMING_LIMIT,
)
from scoring import (
    RiskAssessment,
    classify_risk,
    integrity_score,
    normalize_scores,
    round_half_up,
    safe_percentage,
    summarize_issues,
)
from schemas import (
    AnalyticsOverview,
    DateRange,
    InstitutionPriorityList,
    InstitutionRanking,
    InstitutionReport,
    PriorityInstitution,
    PrioritySummary,
    RecentFeedback,
    ScoreLevels,
    SentimentCounts,
)

logger = logging.getLogger(__name__)


class SortDirection(str, Enum):
    """Ranking order for institutions by integrity score."""

    BEST_FIRST = "best_first"    # public overview
    WORST_FIRST = "worst_first"  # admin priority list


@dataclass
class InstitutionSummary:
    """Aggregate view over every feedback row of one institution."""

    name: str
    total_feedbacks: int
    avg_corruption: float
    avg_fairness: float
    avg_nepotism: float
    avg_service: float
    integrity_score: int
    risk: RiskAssessment
    sentiment: SentimentCounts = field(default_factory=SentimentCounts)
    last_update: Optional[datetime] = None

    @property
    def corruption_level(self) -> int:
        return round_half_up(self.avg_corruption)

    @property
    def fairness_level(self) -> int:
        return round_half_up(self.avg_fairness)

    @property
    def nepotism_level(self) -> int:
        return round_half_up(self.avg_nepotism)

    @property
    def service_level(self) -> int:
        return round_half_up(self.avg_service)


def _mean(values: Sequence[float], default: float) -> float:
    return sum(values) / len(values) if values else default


def group_by_institution(feedbacks: Iterable[Any]) -> Dict[str, List[Any]]:
    """Group feedback rows by institution name, in first-seen order."""
    groups: Dict[str, List[Any]] = {}
    for feedback in feedbacks:
        groups.setdefault(feedback.institution_name, []).append(feedback)
    return groups


def count_sentiments(analyses: Iterable[Optional[dict]]) -> SentimentCounts:
    """Tally positive/negative/neutral; anything else is ignored."""
    counts = SentimentCounts()
    for analysis in analyses:
        sentiment = (analysis or {}).get("sentiment")
        if sentiment in ("positive", "negative", "neutral"):
            setattr(counts, sentiment, getattr(counts, sentiment) + 1)
    return counts


def summarize_institution(name: str, feedbacks: Sequence[Any]) -> InstitutionSummary:
    """Build the aggregate for one institution's feedback rows.

    An empty group yields zero counts and neutral-default averages.
    """
    analyses = [feedback.ai_analysis for feedback in feedbacks]
    scores = [normalize_scores(analysis) for analysis in analyses]

    avg_corruption = _mean([s.corruption for s in scores], DEFAULT_CORRUPTION_SCORE)
    avg_fairness = _mean([s.fairness for s in scores], DEFAULT_FAIRNESS_SCORE)
    avg_nepotism = _mean([s.nepotism for s in scores], DEFAULT_NEPOTISM_SCORE)
    avg_service = _mean([s.service for s in scores], DEFAULT_SERVICE_QUALITY)

    score = integrity_score(avg_fairness, avg_service, avg_corruption, avg_nepotism)
    created = [f.created_at for f in feedbacks if f.created_at is not None]

    return InstitutionSummary(
        name=name,
        total_feedbacks=len(feedbacks),
        avg_corruption=avg_corruption,
        avg_fairness=avg_fairness,
        avg_nepotism=avg_nepotism,
        avg_service=avg_service,
        integrity_score=score,
        risk=classify_risk(score, round_half_up(avg_corruption)),
        sentiment=count_sentiments(analyses),
        last_update=max(created) if created else None,
    )


def rank(summaries: Iterable[InstitutionSummary], direction: SortDirection) -> List[InstitutionSummary]:
    """Order institutions by integrity score.

    Both directions are stable: equal scores keep their group order.
    """
    if direction is SortDirection.BEST_FIRST:
        return sorted(summaries, key=lambda s: -s.integrity_score)
    if direction is SortDirection.WORST_FIRST:
        return sorted(summaries, key=lambda s: s.integrity_score)
    raise ValueError(f"Unknown sort direction: {direction}")


def is_critical(summary: InstitutionSummary) -> bool:
    """Whether an institution counts towards the overview alert total.

    Thresholds are independent of the risk tiers.
    """
    return (
        summary.integrity_score < CRITICAL_INTEGRITY_BELOW
        or summary.corruption_level > CRITICAL_CORRUPTION_ABOVE
        or summary.nepotism_level > CRITICAL_NEPOTISM_ABOVE
    )


def priority_bucket(score: int) -> str:
    if score < HIGH_PRIORITY_BELOW:
        return "high"
    if score < MEDIUM_PRIORITY_BELOW:
        return "medium"
    return "low"


def _excerpt(text: str) -> str:
    if len(text) <= EXCERPT_LENGTH:
        return text
    return text[:EXCERPT_LENGTH] + "..."


class InstitutionAggregator:
    """Builds the analytics payloads served to the dashboard."""

    def __init__(self, issue_limit: int = TOP_ISSUES_LIMIT,
                 top_performing_limit: int = TOP_PERFORMING_LIMIT):
        self.issue_limit = issue_limit
        self.top_performing_limit = top_performing_limit

    def summarize(self, feedbacks: Iterable[Any]) -> List[InstitutionSummary]:
        """One summary per institution, in first-seen order."""
        return [
            summarize_institution(name, rows)
            for name, rows in group_by_institution(feedbacks).items()
        ]

    def _to_ranking(self, summary: InstitutionSummary) -> InstitutionRanking:
        total = summary.total_feedbacks
        return InstitutionRanking(
            name=summary.name,
            total_feedbacks=total,
            integrity_score=summary.integrity_score,
            risk_level=summary.risk.tier,
            risk_color=summary.risk.color,
            corruption_level=summary.corruption_level,
            fairness_level=summary.fairness_level,
            nepotism_level=summary.nepotism_level,
            service_quality=summary.service_level,
            positive_ratio=safe_percentage(summary.sentiment.positive, total),
            negative_ratio=safe_percentage(summary.sentiment.negative, total),
            neutral_ratio=safe_percentage(summary.sentiment.neutral, total),
            last_update=summary.last_update,
        )

    def overview(self, feedbacks: Iterable[Any]) -> AnalyticsOverview:
        """Public overview across all institutions, best integrity first."""
        summaries = self.summarize(feedbacks)
        ranked = [self._to_ranking(s) for s in rank(summaries, SortDirection.BEST_FIRST)]

        total_feedbacks = sum(s.total_feedbacks for s in summaries)
        avg_integrity = (
            round_half_up(sum(s.integrity_score for s in summaries) / len(summaries))
            if summaries else 0
        )
        sentiment = SentimentCounts(
            positive=sum(s.sentiment.positive for s in summaries),
            negative=sum(s.sentiment.negative for s in summaries),
            neutral=sum(s.sentiment.neutral for s in summaries),
        )

        logger.info(
            f"Aggregated {len(summaries)} institutions from {total_feedbacks} feedback records"
        )

        return AnalyticsOverview(
            total_feedbacks=total_feedbacks,
            total_institutions=len(summaries),
            avg_integrity=avg_integrity,
            alerts_count=sum(1 for s in summaries if is_critical(s)),
            ranked_institutions=ranked,
            top_performing=ranked[:self.top_performing_limit],
            needs_attention=[r for r in ranked if r.integrity_score < NEEDS_ATTENTION_BELOW],
            sentiment_data=sentiment,
        )

    def priority_list(self, feedbacks: Iterable[Any]) -> InstitutionPriorityList:
        """Admin work queue, worst integrity first."""
        institutions = [
            PriorityInstitution(
                name=s.name,
                total_feedbacks=s.total_feedbacks,
                integrity_score=s.integrity_score,
                last_activity=s.last_update,
                priority=priority_bucket(s.integrity_score),
            )
            for s in rank(self.summarize(feedbacks), SortDirection.WORST_FIRST)
        ]

        return InstitutionPriorityList(
            institutions=institutions,
            summary=PrioritySummary(
                total=len(institutions),
                high_priority=sum(1 for i in institutions if i.priority == "high"),
                medium_priority=sum(1 for i in institutions if i.priority == "medium"),
                low_priority=sum(1 for i in institutions if i.priority == "low"),
            ),
        )

    def institution_report(self, name: str, feedbacks: Sequence[Any],
                           report_date: Optional[datetime] = None) -> InstitutionReport:
        """Detailed report for one institution.

        Args:
            name: Institution name
            feedbacks: That institution's feedback rows, newest first
            report_date: Timestamp stamped on the report (defaults to now)

        Returns:
            InstitutionReport; with no feedback only the counts and summary are set
        """
        report_date = report_date or datetime.now(UTC)

        if not feedbacks:
            return InstitutionReport(
                institution=name,
                report_date=report_date,
                total_feedbacks=0,
                summary="No data available for this institution",
            )

        summary = summarize_institution(name, feedbacks)
        # the report shows rounded levels and scores from those same levels
        score = integrity_score(
            summary.fairness_level,
            summary.service_level,
            summary.corruption_level,
            summary.nepotism_level,
        )
        risk = classify_risk(score, summary.corruption_level)
        top_issues = summarize_issues((f.ai_analysis for f in feedbacks), limit=self.issue_limit)
        issue_names = ", ".join(issue.issue for issue in top_issues)

        recent = [
            RecentFeedback(
                text=_excerpt(f.text),
                sentiment=(f.ai_analysis or {}).get("sentiment") or "neutral",
                date=f.created_at,
            )
            for f in feedbacks[:RECENT_FEEDBACK_LIMIT]
        ]

        logger.info(f"Built report for {name} - integrity score: {score}%")

        return InstitutionReport(
            institution=name,
            report_date=report_date,
            total_feedbacks=summary.total_feedbacks,
            summary=(
                f"Automatic analysis of {summary.total_feedbacks} reviews. "
                f"Integrity score: {score}%. "
                f"Main issues: {issue_names}."
            ),
            date_range=DateRange(from_=feedbacks[-1].created_at, to=feedbacks[0].created_at),
            integrity_score=score,
            risk_level=risk.tier,
            risk_color=risk.color,
            scores=ScoreLevels(
                corruption=summary.corruption_level,
                fairness=summary.fairness_level,
                nepotism=summary.nepotism_level,
                service=summary.service_level,
            ),
            sentiment=summary.sentiment,
            top_issues=top_issues,
            recent_feedbacks=recent,
        )
