"""Pydantic schemas for request/response validation."""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional
from datetime import datetime


class CamelModel(BaseModel):
    """Base for API payloads, serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FeedbackRequest(CamelModel):
    """Request schema for feedback submission."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "institutionName": "Ministry of Health",
                "timestamp": "2025-03-01T09:15:00Z",
                "text": "I had to pay a bribe to get my permit processed."
            }
        }
    )

    institution_name: str = Field(..., min_length=1, description="Institution the feedback is about")
    timestamp: datetime = Field(..., description="When the citizen wrote the feedback")
    text: str = Field(..., min_length=1, description="Citizen feedback text")

    @field_validator("institution_name", "text")
    @classmethod
    def reject_blank(cls, value: str) -> str:
        # stored exactly as sent; whitespace-only counts as missing
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class IntegrityAnalysis(BaseModel):
    """Structured integrity assessment of one feedback text.

    Strict: the AI response must match this shape exactly or it is rejected.
    """

    corruption_score: float
    fairness_score: float
    nepotism_score: float
    service_quality: float
    sentiment: Literal["positive", "neutral", "negative"]
    main_issue: str
    keywords: List[str]
    confidence: float

    @field_validator(
        "corruption_score", "fairness_score", "nepotism_score", "service_quality", "confidence",
        mode="before"
    )
    @classmethod
    def require_number(cls, value):
        # numeric strings and booleans are shape errors, not numbers
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("must be a number")
        return value


class AnalysisResult(BaseModel):
    """Internal schema for analysis results."""

    analysis: IntegrityAnalysis
    processing_method: str = "ai"


class FeedbackResponse(CamelModel):
    """Response schema for feedback ingestion."""

    success: bool = True
    id: int
    analysis: IntegrityAnalysis
    integrity_score: int = Field(..., ge=0, le=100)
    processing_method: str
    message: str


class LoginRequest(BaseModel):
    username: str
    password: str


class AdminProfile(BaseModel):
    username: str
    role: str
    organization: str


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    admin: AdminProfile


class IssueFrequency(BaseModel):
    """How often one main issue was reported."""

    issue: str
    count: int
    percentage: int


class SentimentCounts(BaseModel):
    positive: int = 0
    negative: int = 0
    neutral: int = 0


class InstitutionRanking(CamelModel):
    """One institution in the public overview."""

    name: str
    total_feedbacks: int
    integrity_score: int
    risk_level: str
    risk_color: str
    corruption_level: int
    fairness_level: int
    nepotism_level: int
    service_quality: int
    positive_ratio: int
    negative_ratio: int
    neutral_ratio: int
    last_update: Optional[datetime] = None


class AnalyticsOverview(CamelModel):
    total_feedbacks: int
    total_institutions: int
    avg_integrity: int
    alerts_count: int
    ranked_institutions: List[InstitutionRanking]
    top_performing: List[InstitutionRanking]
    needs_attention: List[InstitutionRanking]
    sentiment_data: SentimentCounts


class PriorityInstitution(CamelModel):
    """One institution in the admin priority list."""

    name: str
    total_feedbacks: int
    integrity_score: int
    last_activity: Optional[datetime] = None
    priority: Literal["high", "medium", "low"]


class PrioritySummary(CamelModel):
    total: int
    high_priority: int
    medium_priority: int
    low_priority: int


class InstitutionPriorityList(CamelModel):
    institutions: List[PriorityInstitution]
    summary: PrioritySummary


class ScoreLevels(BaseModel):
    corruption: int
    fairness: int
    nepotism: int
    service: int


class DateRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: Optional[datetime] = Field(None, alias="from")
    to: Optional[datetime] = None


class RecentFeedback(BaseModel):
    text: str
    sentiment: str
    date: Optional[datetime] = None


class InstitutionReport(CamelModel):
    """Full per-institution report for administrators."""

    institution: str
    report_date: datetime
    total_feedbacks: int
    summary: str
    date_range: Optional[DateRange] = None
    integrity_score: Optional[int] = None
    risk_level: Optional[str] = None
    risk_color: Optional[str] = None
    scores: Optional[ScoreLevels] = None
    sentiment: Optional[SentimentCounts] = None
    top_issues: List[IssueFrequency] = Field(default_factory=list)
    recent_feedbacks: List[RecentFeedback] = Field(default_factory=list)


class HealthResponse(CamelModel):
    ok: bool
    timestamp: datetime
    ai_enabled: bool
    storage_connected: bool
