"""Database models for feedback storage."""
from datetime import datetime, UTC
from sqlalchemy import Column, Integer, String, DateTime, Text, Float, JSON
from sqlalchemy.orm import declarative_base

Base = declarative_base()

ANALYSIS_FIELDS = [
    "corruption_score",
    "fairness_score",
    "nepotism_score",
    "service_quality",
    "sentiment",
    "main_issue",
    "keywords",
    "confidence",
]


class Feedback(Base):
    """Citizen feedback about one institution, with its integrity analysis.

    Rows are written once on ingestion and never updated.
    """

    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, index=True)
    institution_name = Column(String, nullable=False, index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False)  # client-supplied
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    # AI analysis, best-effort
    corruption_score = Column(Float, nullable=True)
    fairness_score = Column(Float, nullable=True)
    nepotism_score = Column(Float, nullable=True)
    service_quality = Column(Float, nullable=True)
    sentiment = Column(String(20), nullable=True)  # positive, neutral, negative
    main_issue = Column(String, nullable=True)
    keywords = Column(JSON, nullable=True)
    confidence = Column(Float, nullable=True)
    processing_method = Column(String(20), nullable=True)  # ai, rule_based or fallback

    @property
    def ai_analysis(self):
        """Analysis columns as a dict, or None when nothing was recorded."""
        analysis = {field: getattr(self, field) for field in ANALYSIS_FIELDS}
        if all(value is None for value in analysis.values()):
            return None
        return analysis

    def to_dict(self):
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "institution_name": self.institution_name,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "text": self.text,
            "ai_analysis": self.ai_analysis,
            "processing_method": self.processing_method,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }
