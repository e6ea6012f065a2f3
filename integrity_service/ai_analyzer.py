"""AI-powered integrity analyzer using OpenAI."""
import asyncio
from openai import AsyncOpenAI
from pydantic import ValidationError
from config import config as default_config
from schemas import AnalysisResult, IntegrityAnalysis


class AIAnalysisError(Exception):
    """Raised when an analyzer cannot produce a valid integrity analysis."""


class IntegrityAnalyzer:
    """Scores feedback for corruption, fairness, nepotism and service quality."""

    processing_method = "ai"

    def __init__(self, app_config=None, client=None):
        """Initialize the AI analyzer.

        Args:
            app_config: Config instance (process-wide config by default)
            client: Pre-built AsyncOpenAI client, mainly for tests
        """
        self.config = app_config or default_config
        if client is None and self.config.OPENAI_API_KEY:
            client = AsyncOpenAI(api_key=self.config.OPENAI_API_KEY)
        self.client = client
        self.model = self.config.AI_MODEL
        self.timeout = self.config.AI_TIMEOUT_SECONDS

    def _build_prompt(self, feedback_text: str, institution_name: str) -> str:
        """Build the prompt for AI analysis.

        The model is asked for a single JSON object with fixed keys so the
        response can be validated against IntegrityAnalysis as-is.
        """
        return f"""You are an integrity analyst reviewing citizen feedback about a public institution.

INSTITUTION: "{institution_name}"
FEEDBACK: "{feedback_text}"

Return ONLY a valid JSON object with exactly these fields:
- corruption_score: number 0-100, signs of bribery, embezzlement or abuse of office
- fairness_score: number 0-100, how fairly and equally citizens were treated
- nepotism_score: number 0-100, signs of favoritism, connections or "wasta"
- service_quality: number 0-100, quality and timeliness of the service
- sentiment: one of ["positive", "neutral", "negative"]
- main_issue: short label for the dominant complaint (e.g. "bribery", "slow service")
- keywords: list of up to 5 short keywords from the feedback
- confidence: number 0-100, how confident you are in this assessment

Rules:
1. Score only what the feedback supports; use 0 for corruption/nepotism and 50 for fairness/service when nothing is said.
2. The feedback may be in any language; answer in the same language for main_issue and keywords.
3. For gibberish or non-feedback text use neutral values and confidence below 20.

Example:
- "They asked me for money before stamping my form" → {{"corruption_score": 85, "fairness_score": 20, "nepotism_score": 10, "service_quality": 30, "sentiment": "negative", "main_issue": "bribery", "keywords": ["money", "form"], "confidence": 85}}

Return ONLY the JSON object, no additional text:"""

    async def analyze(self, feedback_text: str, institution_name: str) -> AnalysisResult:
        """Analyze feedback using OpenAI API.

        Args:
            feedback_text: The citizen feedback to analyze
            institution_name: Institution the feedback is about

        Returns:
            AnalysisResult with the validated integrity analysis

        Raises:
            AIAnalysisError: If the provider fails, times out or returns an
                invalid payload (caller should handle with fallback)
        """
        if not self.client:
            raise AIAnalysisError("OpenAI client not configured")

        prompt = self._build_prompt(feedback_text, institution_name)

        try:
            async with asyncio.timeout(self.timeout):
                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {
                            "role": "system",
                            "content": "You are an institutional integrity analyzer. Always respond with valid JSON only."
                        },
                        {"role": "user", "content": prompt}
                    ],
                    response_format={"type": "json_object"},
                    temperature=0.2,
                    max_tokens=300
                )
        except TimeoutError:
            raise AIAnalysisError(f"AI provider timeout after {self.timeout}s")
        except Exception as e:
            raise AIAnalysisError(f"AI provider error: {e}") from e

        try:
            result_text = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise AIAnalysisError(f"Unexpected AI response shape: {e}") from e

        return AnalysisResult(
            analysis=self._parse_ai_response(result_text),
            processing_method=self.processing_method
        )

    def _parse_ai_response(self, response_text) -> IntegrityAnalysis:
        """Parse and validate AI response.

        Only a markdown code fence is stripped. Anything that is not exactly
        an IntegrityAnalysis object is rejected.
        """
        if not isinstance(response_text, str) or not response_text.strip():
            raise AIAnalysisError("Empty AI response")

        response_text = response_text.strip()
        if response_text.startswith("```"):
            response_text = response_text.removeprefix("```json").removeprefix("```")
            response_text = response_text.removesuffix("```").strip()

        try:
            return IntegrityAnalysis.model_validate_json(response_text)
        except ValidationError as e:
            raise AIAnalysisError(f"Invalid AI response: {e.error_count()} validation error(s)") from e
