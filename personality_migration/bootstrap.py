"""
Composition root for the personality migration layer.

Builds exactly one flag evaluator, comparator and router per call and hands
them back together. There are no module-level instances: each process (or
test) calls build_migration_layer() once and keeps the result.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Tuple

from personality_migration.comparison.comparator import ComparisonResult, ShadowComparator
from personality_migration.comparison.diff_reporter import DiffReporter
from personality_migration.config.settings import Settings
from personality_migration.flags.feature_flags import FeatureFlags, create_feature_flags
from personality_migration.monitoring.comparison import ComparisonLogger, MigrationMetricsPublisher
from personality_migration.notifications.slack_service import SlackWebhookClient
from personality_migration.routing.backends import (
    LegacyPersonalityBackend,
    TargetPersonalityBackend,
)
from personality_migration.routing.personality_router import PersonalityRouter
from personality_migration.utils.logger import get_logger, log_operation

logger = get_logger(__name__)


@dataclass
class MigrationLayer:
    """The wired routing/comparison layer for one process."""

    settings: Settings
    flags: FeatureFlags
    comparator: ShadowComparator
    router: PersonalityRouter
    comparison_logger: ComparisonLogger
    metrics_publisher: Optional[MigrationMetricsPublisher] = None
    slack_client: Optional[SlackWebhookClient] = None

    def reset(self) -> None:
        """Zero routing counters and drop comparison history."""
        self.router.reset()
        self.comparator.clear()

    @log_operation("publish_migration_metrics")
    def publish_metrics(self, deployment: str = "default") -> bool:
        if self.metrics_publisher is None:
            return False
        return self.metrics_publisher.publish(
            self.router.get_routing_statistics(),
            self.comparator.get_statistics(),
            deployment=deployment,
        )

    def log_summary(self) -> None:
        self.comparison_logger.log_summary(
            self.router.get_routing_statistics(), self.comparator.get_statistics()
        )

    def send_summary(self) -> None:
        if self.slack_client is None:
            return
        self.slack_client.send_migration_summary(
            self.router.get_routing_statistics(), self.comparator.get_statistics()
        )

    @log_operation("write_comparison_reports")
    def write_reports(self, report_name: str = "comparison") -> Tuple[Path, Path]:
        reporter = DiffReporter(self.settings.reports_dir)
        return reporter.write_reports(
            self.comparator, self.router.get_routing_statistics(), report_name=report_name
        )


def _log_alert_failure(operation_name: str):
    def callback(future: "asyncio.Future[Any]") -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(
                "Slack mismatch alert failed",
                operation=operation_name,
                error=str(error),
                context={"error_type": type(error).__name__},
            )

    return callback


def _slack_mismatch_hook(client: SlackWebhookClient):
    """Send mismatch alerts on the default executor without awaiting delivery."""

    def hook(result: ComparisonResult) -> None:
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, client.send_mismatch_alert, result)
        future.add_done_callback(_log_alert_failure(result.operation_name))

    return hook


def build_migration_layer(
    legacy_manager: Any,
    target_service: Any,
    settings: Optional[Settings] = None,
    flags: Optional[FeatureFlags] = None,
    cloudwatch_client: Optional[Any] = None,
    http_client: Optional[Any] = None,
) -> MigrationLayer:
    """
    Wire the routing/comparison layer.

    Args:
        legacy_manager: Legacy personality manager (sync or async functions)
        target_service: Target personality application service (async)
        settings: Settings (default: read from environment)
        flags: Flag evaluator (default: built from settings)
        cloudwatch_client: Pre-built CloudWatch client for metrics
        http_client: requests-like session for Slack

    Returns:
        MigrationLayer holding one router and one comparator
    """
    settings = settings or Settings()
    settings.setup_redaction_filter(logging.getLogger())
    flags = flags or create_feature_flags(settings)

    slack_client = None
    if settings.slack_enabled:
        slack_client = SlackWebhookClient(
            webhook_url=settings.slack_webhook_url, http_client=http_client
        )

    comparison_logger = ComparisonLogger(run_id=settings.comparison_run_id)
    comparator = ShadowComparator(
        log_discrepancies=settings.log_discrepancies,
        throw_on_mismatch=settings.throw_on_mismatch,
        on_mismatch=_slack_mismatch_hook(slack_client) if slack_client else None,
        on_result=comparison_logger.log_comparison,
    )

    router = PersonalityRouter(
        flags=flags,
        comparator=comparator,
        legacy=LegacyPersonalityBackend(legacy_manager),
        target=TargetPersonalityBackend(target_service),
        concurrent_dual_write=settings.concurrent_dual_write,
    )

    metrics_publisher = None
    if settings.metrics_enabled:
        metrics_publisher = MigrationMetricsPublisher(
            namespace=settings.metrics_namespace,
            region_name=settings.region_name,
            cloudwatch_client=cloudwatch_client,
        )

    logger.info(
        "Migration layer initialised",
        operation="build_migration_layer",
        context={
            "flags": flags.get_all_flags(),
            "metrics_enabled": metrics_publisher is not None,
            "slack_enabled": slack_client is not None,
            "comparison_run_id": settings.comparison_run_id,
            "concurrent_dual_write": settings.concurrent_dual_write,
        },
    )

    return MigrationLayer(
        settings=settings,
        flags=flags,
        comparator=comparator,
        router=router,
        comparison_logger=comparison_logger,
        metrics_publisher=metrics_publisher,
        slack_client=slack_client,
    )
