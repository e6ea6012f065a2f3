"""Integrity scoring primitives.

Pure functions shared by ingestion and the institution aggregator:
score normalization, the composite integrity score, risk tiers and
issue frequency summaries.
"""
import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

from config import (
    DEFAULT_CORRUPTION_SCORE,
    DEFAULT_FAIRNESS_SCORE,
    DEFAULT_NEPOTISM_SCORE,
    DEFAULT_SERVICE_QUALITY,
    RISK_VERY_HIGH,
    RISK_HIGH,
    RISK_MEDIUM,
    RISK_LOW,
    TOP_ISSUES_LIMIT,
    UNSPECIFIED_ISSUE,
)
from schemas import IssueFrequency


@dataclass(frozen=True)
class NormalizedScores:
    corruption: float
    fairness: float
    nepotism: float
    service: float


@dataclass(frozen=True)
class RiskAssessment:
    tier: str
    color: str


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (2.5 -> 3).

    Python's round() uses banker's rounding; every score and percentage
    in the service goes through this instead.
    """
    return int(math.floor(value + 0.5))


def safe_percentage(count: float, total: float) -> int:
    """count/total as a rounded percentage, 0 when total is 0."""
    if not total:
        return 0
    return round_half_up(count / total * 100)


def _value_or_default(analysis: Optional[Mapping[str, Any]], field: str, default: float) -> float:
    if not analysis:
        return default
    value = analysis.get(field)
    return default if value is None else value


def normalize_scores(analysis: Optional[Mapping[str, Any]]) -> NormalizedScores:
    """Fill in missing analysis scores with their neutral defaults.

    Values are not clamped; a present 0 is kept as 0.
    """
    return NormalizedScores(
        corruption=_value_or_default(analysis, "corruption_score", DEFAULT_CORRUPTION_SCORE),
        fairness=_value_or_default(analysis, "fairness_score", DEFAULT_FAIRNESS_SCORE),
        nepotism=_value_or_default(analysis, "nepotism_score", DEFAULT_NEPOTISM_SCORE),
        service=_value_or_default(analysis, "service_quality", DEFAULT_SERVICE_QUALITY),
    )


def integrity_score(fairness: float, service: float, corruption: float, nepotism: float) -> int:
    """Composite integrity score in [0, 100].

    Mean of fairness and service minus mean of corruption and nepotism,
    so neutral inputs (50, 50, 0, 0) score exactly 50. The raw value is
    rounded first and clamped afterwards.
    """
    raw = (fairness + service) / 2 - (corruption + nepotism) / 2
    return max(0, min(100, round_half_up(raw)))


def score_from(scores: NormalizedScores) -> int:
    return integrity_score(scores.fairness, scores.service, scores.corruption, scores.nepotism)


def classify_risk(integrity: float, corruption: float) -> RiskAssessment:
    """Map an integrity score and corruption level to a risk tier.

    Conditions overlap, so order matters: the first match wins.
    """
    if integrity < 30 or corruption > 70:
        tier = RISK_VERY_HIGH
    elif integrity < 50 or corruption > 50:
        tier = RISK_HIGH
    elif integrity < 70:
        tier = RISK_MEDIUM
    else:
        tier = RISK_LOW
    return RiskAssessment(tier=tier[0], color=tier[1])


def summarize_issues(analyses: Iterable[Optional[Mapping[str, Any]]],
                     limit: int = TOP_ISSUES_LIMIT) -> List[IssueFrequency]:
    """Rank main issues by how often they were reported.

    Args:
        analyses: Per-feedback analysis mappings (None for unanalyzed feedback)
        limit: Maximum number of issues returned

    Returns:
        Top issues, most frequent first; equal counts keep first-seen order
    """
    counts: dict = {}
    total = 0
    for analysis in analyses:
        total += 1
        issue = (analysis or {}).get("main_issue") or UNSPECIFIED_ISSUE
        counts[issue] = counts.get(issue, 0) + 1

    # dicts keep insertion order and sorted() is stable
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return [
        IssueFrequency(issue=issue, count=count, percentage=safe_percentage(count, total))
        for issue, count in ranked[:limit]
    ]
