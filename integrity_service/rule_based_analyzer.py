"""Rule-based integrity analyzer used when no AI provider is configured.

Scores come from keyword matching (English and Arabic). Sentiment can
optionally be refined with a pre-trained RoBERTa sentiment model.
"""
import logging
from typing import Dict, List
from config import config as default_config
from schemas import AnalysisResult, IntegrityAnalysis

logger = logging.getLogger(__name__)


# category -> keywords; first match order decides the main issue on ties
CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    "nepotism": [
        "nepotism", "favoritism", "favouritism", "connections", "relative",
        "cousin", "wasta", "واسطة", "محسوبية"
    ],
    "bribery": [
        "bribe", "bribery", "kickback", "under the table", "pay extra",
        "corrupt", "رشوة", "فساد"
    ],
    "poor service": [
        "slow", "rude", "waited", "waiting", "delay", "ignored", "bad",
        "terrible", "awful", "سيء", "تأخير"
    ],
}

FAIRNESS_KEYWORDS = ["fair", "fairly", "equal", "justice", "عدالة", "عادل"]

MAIN_ISSUE_LABELS = {
    "nepotism": "nepotism request",
    "bribery": "bribery",
    "poor service": "poor service",
}
GENERAL_ISSUE = "general assessment"


class RuleBasedAnalyzer:
    """Keyword-based integrity analyzer.

    Mirrors the shape of the AI analyzer so the ingestion service can use
    either one.
    """

    processing_method = "rule_based"

    def __init__(self, app_config=None, load_model=None):
        """Initialize the analyzer.

        Args:
            app_config: Config instance (process-wide config by default)
            load_model: Load the RoBERTa sentiment model; defaults to
                ML_SENTIMENT_ENABLED
        """
        self.config = app_config or default_config
        if load_model is None:
            load_model = self.config.ML_SENTIMENT_ENABLED

        self.tokenizer = None
        self.model = None
        self.model_available = False
        if load_model:
            self._load_sentiment_model()

    def _load_sentiment_model(self) -> None:
        try:
            from transformers import AutoTokenizer, AutoModelForSequenceClassification

            logger.info("Loading RoBERTa sentiment model...")
            self.tokenizer = AutoTokenizer.from_pretrained(self.config.ML_SENTIMENT_MODEL)
            self.model = AutoModelForSequenceClassification.from_pretrained(
                self.config.ML_SENTIMENT_MODEL
            )
            self.model.eval()
            self.model_available = True
            logger.info("RoBERTa model loaded successfully")

        except Exception as e:
            logger.error(f"Failed to load ML model: {e}")
            self.model_available = False

    async def analyze(self, feedback_text: str, institution_name: str) -> AnalysisResult:
        """Analyze feedback with keyword rules.

        Args:
            feedback_text: The citizen feedback to analyze
            institution_name: Institution the feedback is about (unused by the rules)

        Returns:
            AnalysisResult with processing_method "rule_based"
        """
        return AnalysisResult(
            analysis=self.analyze_text(feedback_text),
            processing_method=self.processing_method
        )

    def analyze_text(self, feedback_text: str) -> IntegrityAnalysis:
        text = feedback_text.lower()
        matches = self._match_categories(text)

        nepotism = "nepotism" in matches
        bribery = "bribery" in matches
        poor_service = "poor service" in matches

        corruption_score = 80 if bribery else 70 if nepotism else 0
        sentiment = "negative" if matches else "positive"
        if self.model_available:
            sentiment = self._analyze_sentiment_ml(feedback_text, sentiment)

        keywords = [kw for kws in matches.values() for kw in kws]

        return IntegrityAnalysis(
            corruption_score=corruption_score,
            fairness_score=80 if any(kw in text for kw in FAIRNESS_KEYWORDS) else 50,
            nepotism_score=80 if nepotism else 0,
            service_quality=30 if poor_service else 50,
            sentiment=sentiment,
            main_issue=self._main_issue(matches),
            keywords=keywords,
            confidence=75
        )

    def _match_categories(self, text: str) -> Dict[str, List[str]]:
        """Matched keywords per category, categories without a match omitted."""
        matches: Dict[str, List[str]] = {}
        for category, keywords in CATEGORY_KEYWORDS.items():
            found = [keyword for keyword in keywords if keyword in text]
            if found:
                matches[category] = found
        return matches

    def _main_issue(self, matches: Dict[str, List[str]]) -> str:
        if not matches:
            return GENERAL_ISSUE
        # max() keeps the first category on equal counts
        category = max(matches.items(), key=lambda item: len(item[1]))[0]
        return MAIN_ISSUE_LABELS[category]

    def _analyze_sentiment_ml(self, text: str, default: str) -> str:
        """Analyze sentiment using RoBERTa model.

        Args:
            text: Text to analyze
            default: Sentiment returned if inference fails or is uncertain

        Returns:
            Sentiment: positive, negative, or neutral
        """
        try:
            import torch

            inputs = self.tokenizer(
                text,
                return_tensors="pt",
                truncation=True,
                max_length=512,
                padding=True
            )

            with torch.no_grad():
                outputs = self.model(**inputs)
                predictions = torch.nn.functional.softmax(outputs.logits, dim=-1)

            # Model outputs: 0=NEGATIVE, 1=POSITIVE
            predicted_class = torch.argmax(predictions, dim=-1).item()
            confidence = predictions[0][predicted_class].item()

            # Low confidence on either class reads as neutral
            if confidence < 0.65:
                return "neutral"
            sentiment = "positive" if predicted_class == 1 else "negative"

            logger.debug(f"ML Sentiment: {sentiment} (confidence: {confidence:.2f})")
            return sentiment

        except Exception as e:
            logger.error(f"ML sentiment analysis failed: {e}")
            return default
