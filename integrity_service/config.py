"""Configuration management for the integrity feedback service."""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Config:
    """Application configuration.

    Built once per process and handed to the services that need it.
    """

    def __init__(self):
        # OpenAI Configuration
        self.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
        self.AI_MODEL = os.getenv("AI_MODEL", "gpt-4o-mini")
        self.AI_TIMEOUT_SECONDS = int(os.getenv("AI_TIMEOUT_SECONDS", "5"))
        self.AI_PROVIDER_ENABLED = _env_flag("AI_PROVIDER_ENABLED", "true")

        # Offline analysis
        self.RULE_BASED_ANALYSIS_ENABLED = _env_flag("RULE_BASED_ANALYSIS_ENABLED", "true")
        self.ML_SENTIMENT_ENABLED = _env_flag("ML_SENTIMENT_ENABLED", "false")
        self.ML_SENTIMENT_MODEL = os.getenv(
            "ML_SENTIMENT_MODEL", "siebert/sentiment-roberta-large-english"
        )

        # Database Configuration
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./feedback.db")

        # Admin Authentication
        self.ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
        self.ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "integrity2025")
        self.ADMIN_ORGANIZATION = os.getenv("ADMIN_ORGANIZATION", "Integrity Commission")
        self.SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
        self.ADMIN_TOKEN_EXPIRE_MINUTES = int(os.getenv("ADMIN_TOKEN_EXPIRE_MINUTES", "480"))

        # Alert Configuration
        self.ALERT_WEBHOOK_URL = os.getenv("ALERT_WEBHOOK_URL", "")
        self.ALERT_ENABLED = _env_flag("ALERT_ENABLED", "false")

        # Server
        self.PORT = int(os.getenv("PORT", "3000"))

    @property
    def ai_configured(self) -> bool:
        """True when the OpenAI analyzer can be used."""
        return self.AI_PROVIDER_ENABLED and bool(self.OPENAI_API_KEY)


# Score defaults applied when an analysis field is missing
DEFAULT_CORRUPTION_SCORE = 0
DEFAULT_FAIRNESS_SCORE = 50
DEFAULT_NEPOTISM_SCORE = 0
DEFAULT_SERVICE_QUALITY = 50

# Result stored when the analyzer fails or none is configured
FALLBACK_ANALYSIS = {
    "corruption_score": 0,
    "fairness_score": 50,
    "nepotism_score": 0,
    "service_quality": 50,
    "sentiment": "neutral",
    "main_issue": "analysis failed",
    "keywords": [],
    "confidence": 0,
}

SENTIMENTS = ["positive", "neutral", "negative"]

# Risk tiers: (label, color)
RISK_VERY_HIGH = ("very high", "#e74c3c")
RISK_HIGH = ("high", "#f39c12")
RISK_MEDIUM = ("medium", "#f39c12")
RISK_LOW = ("low", "#27ae60")

# Institution-level alerting thresholds
CRITICAL_INTEGRITY_BELOW = 30
CRITICAL_CORRUPTION_ABOVE = 70
CRITICAL_NEPOTISM_ABOVE = 70

# Admin priority buckets
HIGH_PRIORITY_BELOW = 40
MEDIUM_PRIORITY_BELOW = 70
NEEDS_ATTENTION_BELOW = 40

TOP_ISSUES_LIMIT = 5
TOP_PERFORMING_LIMIT = 5
RECENT_FEEDBACK_LIMIT = 3
EXCERPT_LENGTH = 100
UNSPECIFIED_ISSUE = "unspecified"


config = Config()
