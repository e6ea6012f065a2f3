"""Alerting system for critical integrity feedback."""
import logging
import httpx
from config import (
    config as default_config,
    CRITICAL_INTEGRITY_BELOW,
    CRITICAL_CORRUPTION_ABOVE,
    CRITICAL_NEPOTISM_ABOVE,
)
from schemas import IntegrityAnalysis

logger = logging.getLogger(__name__)


def is_critical_feedback(analysis: IntegrityAnalysis, integrity: int) -> bool:
    """Whether a single submission warrants an immediate alert."""
    return (
        integrity < CRITICAL_INTEGRITY_BELOW
        or analysis.corruption_score > CRITICAL_CORRUPTION_ABOVE
        or analysis.nepotism_score > CRITICAL_NEPOTISM_ABOVE
    )


class AlertService:
    """Service to send alerts for critical feedback.

    Posts Slack-compatible messages to a webhook; logs the alert when no
    webhook is configured.
    """

    def __init__(self, app_config=None):
        """Initialize alert service."""
        app_config = app_config or default_config
        self.webhook_url = app_config.ALERT_WEBHOOK_URL
        self.enabled = app_config.ALERT_ENABLED

    async def send_alert(
        self,
        feedback_id: int,
        institution_name: str,
        feedback_text: str,
        analysis: IntegrityAnalysis,
        integrity: int
    ) -> bool:
        """Send alert for critical feedback.

        Args:
            feedback_id: Database ID of the feedback
            institution_name: Institution the feedback is about
            feedback_text: Original feedback text
            analysis: Integrity analysis of the feedback
            integrity: Single-record integrity score

        Returns:
            True if alert sent (or logged) successfully, False otherwise
        """
        if not self.enabled:
            logger.info(
                f"Alert would be sent for feedback {feedback_id} "
                f"(alerting disabled in config)"
            )
            return True

        alert_payload = self._build_alert_payload(
            feedback_id,
            institution_name,
            feedback_text,
            analysis,
            integrity
        )

        try:
            if self.webhook_url:
                await self._send_webhook(alert_payload)
            else:
                logger.warning(
                    f"ALERT: Feedback #{feedback_id} about {institution_name} requires attention - "
                    f"Integrity: {integrity}%, Issue: {analysis.main_issue}"
                )

            return True

        except httpx.HTTPError as e:
            logger.error(f"Failed to send alert for feedback {feedback_id}: {e}")
            return False

    def _build_alert_payload(
        self,
        feedback_id: int,
        institution_name: str,
        feedback_text: str,
        analysis: IntegrityAnalysis,
        integrity: int
    ) -> dict:
        """Build alert payload for webhook (Slack block format)."""
        return {
            "text": f"🚨 Integrity alert: {institution_name}",
            "blocks": [
                {
                    "type": "header",
                    "text": {
                        "type": "plain_text",
                        "text": "🚨 Critical Integrity Feedback"
                    }
                },
                {
                    "type": "section",
                    "fields": [
                        {
                            "type": "mrkdwn",
                            "text": f"*Institution:*\n{institution_name}"
                        },
                        {
                            "type": "mrkdwn",
                            "text": f"*Feedback ID:*\n{feedback_id}"
                        },
                        {
                            "type": "mrkdwn",
                            "text": f"*Integrity score:*\n{integrity}%"
                        },
                        {
                            "type": "mrkdwn",
                            "text": f"*Main issue:*\n{analysis.main_issue}"
                        },
                        {
                            "type": "mrkdwn",
                            "text": (
                                f"*Corruption / Nepotism:*\n"
                                f"{analysis.corruption_score:g} / {analysis.nepotism_score:g}"
                            )
                        }
                    ]
                },
                {
                    "type": "section",
                    "text": {
                        "type": "mrkdwn",
                        "text": f"*Feedback:*\n{feedback_text[:500]}"
                    }
                }
            ]
        }

    async def _send_webhook(self, payload: dict) -> None:
        """Send webhook notification.

        Raises:
            httpx.HTTPError: If webhook delivery fails
        """
        async with httpx.AsyncClient(timeout=5.0) as client:
            response = await client.post(
                self.webhook_url,
                json=payload
            )
            response.raise_for_status()
            logger.info(f"Alert sent successfully to {self.webhook_url}")
