"""
Slack webhook notifications client.

Alerts the migration channel about shadow-comparison mismatches and posts
routing summaries.
"""

from __future__ import annotations

import json
import os
import time
from typing import Any, Dict, Optional

import requests

from personality_migration.utils.logger import StructuredLogger, get_logger


class SlackServiceError(Exception):
    """Raised when the Slack service fails to deliver a message."""


class SlackWebhookClient:
    """
    Client for sending notifications through Slack webhooks.

    Attributes:
        webhook_url: Slack incoming webhook URL
        logger: Structured logger instance
        max_retries: Number of retry attempts
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        http_client: Optional[requests.Session] = None,
        logger: Optional[StructuredLogger] = None,
        max_retries: int = 3,
        retry_delay_seconds: float = 0.5,
    ) -> None:
        """
        Initialize the Slack webhook client.

        Args:
            webhook_url: Slack incoming webhook URL (from environment if None)
            http_client: Optional requests-like session (useful for testing)
            logger: Optional structured logger instance
            max_retries: Number of attempts when sending messages
            retry_delay_seconds: Base delay between retries (linear backoff)
        """
        self.logger = logger or get_logger(__name__)
        self.http_client = http_client or requests.Session()
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds

        self.webhook_url = webhook_url or os.getenv("SLACK_WEBHOOK_URL")
        if not self.webhook_url:
            self.logger.warning("Slack webhook URL not configured; Slack notifications disabled")
            self.webhook_url = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def send_mismatch_alert(self, result: Any) -> None:
        """Send alert for a shadow-comparison mismatch (payload values omitted)."""
        if not self.webhook_url:
            return

        errored = result.legacy_error is not None or result.new_error is not None
        severity_emoji = "🚨" if errored else "⚠️"
        paths = [d.path or "<root>" for d in result.discrepancies][:10]

        lines = [
            f"{severity_emoji} *Shadow Comparison Mismatch*",
            f"Operation: `{result.operation_name}`",
            f"Discrepancies: `{len(result.discrepancies)}`",
        ]
        if paths:
            lines.append(f"Paths: `{', '.join(paths)}`")
        if result.legacy_error is not None:
            lines.append(f"Legacy error: `{result.legacy_error['type']}`")
        if result.new_error is not None:
            lines.append(f"New system error: `{result.new_error['type']}`")

        payload = {
            "blocks": [
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": "\n".join(lines)},
                }
            ]
        }
        self._dispatch(payload, action="send_mismatch_alert")

    def send_migration_summary(
        self, routing_stats: Dict[str, Any], comparison_stats: Dict[str, Any]
    ) -> None:
        """Post routing counters and the comparison success rate."""
        if not self.webhook_url:
            return

        status_emoji = "✅" if comparison_stats.get("mismatches", 0) == 0 else "⚠️"
        payload = {
            "blocks": [
                {
                    "type": "section",
                    "text": {
                        "type": "mrkdwn",
                        "text": f"{status_emoji} *Personality Migration Summary*\n"
                        f"Reads: legacy `{routing_stats.get('legacy_reads', 0)}` / "
                        f"new `{routing_stats.get('new_reads', 0)}`\n"
                        f"Writes: legacy `{routing_stats.get('legacy_writes', 0)}` / "
                        f"new `{routing_stats.get('new_writes', 0)}` / "
                        f"dual `{routing_stats.get('dual_writes', 0)}`\n"
                        f"Comparisons: `{comparison_stats.get('total_comparisons', 0)}` "
                        f"({comparison_stats.get('overall_success_rate', '0%')} matching)",
                    },
                }
            ]
        }
        self._dispatch(payload, action="send_migration_summary")

    def send_text(self, text: str, channel: Optional[str] = None) -> None:
        """Send a simple plaintext message via Slack webhook."""
        if not self.webhook_url:
            return

        payload: Dict[str, Any] = {"text": text}
        if channel:
            payload["channel"] = channel

        self._dispatch(payload, action="send_text")

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _dispatch(
        self,
        payload: Dict[str, Any],
        action: str,
        max_retries: Optional[int] = None,
    ) -> None:
        """Send payload to Slack webhook with retry handling."""
        if not self.webhook_url:
            self.logger.debug(
                "Slack webhook not configured; skipping notification",
                operation=action,
            )
            return

        max_retries = max_retries or self.max_retries
        body = json.dumps(payload)

        for attempt in range(1, max_retries + 1):
            try:
                response = self.http_client.post(
                    self.webhook_url,
                    headers={"Content-Type": "application/json"},
                    data=body,
                    timeout=10,
                )

                if response.status_code == 429:
                    retry_after = int(response.headers.get("Retry-After", 60))
                    self.logger.warning(
                        "Slack rate limited",
                        operation=action,
                        context={"attempt": attempt, "retry_after": retry_after},
                    )
                    if attempt < max_retries:
                        time.sleep(min(retry_after, self.retry_delay_seconds * attempt))
                        continue
                    raise SlackServiceError(f"Rate limited; retry after {retry_after}s")

                if response.status_code >= 400:
                    raise SlackServiceError(
                        f"Slack responded with {response.status_code}: {response.text}"
                    )

                self.logger.debug(
                    "Slack notification delivered",
                    operation=action,
                    context={"attempt": attempt},
                )
                return

            except Exception as exc:  # noqa: BLE001
                if attempt >= max_retries:
                    self.logger.error(
                        "Slack delivery failed",
                        operation=action,
                        context={"attempt": attempt},
                        error=str(exc),
                    )
                    return

                self.logger.warning(
                    "Retrying Slack delivery",
                    operation=action,
                    context={"attempt": attempt},
                    error=str(exc),
                )
                time.sleep(self.retry_delay_seconds * attempt)

    def get_webhook_status(self) -> Dict[str, Any]:
        """Return webhook configuration status."""
        return {
            "webhook_configured": self.webhook_url is not None,
            "webhook_url_masked": (self._mask_url(self.webhook_url) if self.webhook_url else None),
            "max_retries": self.max_retries,
        }

    @staticmethod
    def _mask_url(url: str) -> str:
        """Mask webhook URL for logging."""
        if not url or len(url) < 20:
            return url
        return f"{url[:30]}...{url[-10:]}"
