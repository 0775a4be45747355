"""
Migration Telemetry Module

Structured logging and CloudWatch metrics publishing for the routing and
shadow-comparison layer:
- Routing counters (legacy/new reads and writes, dual writes, comparison tests)
- Comparator match statistics, overall and per operation
- One structured log line per comparison result
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import boto3

from personality_migration.comparison.comparator import ComparisonResult
from personality_migration.config.settings import DEFAULT_METRICS_NAMESPACE, DEFAULT_REGION

ROUTING_COUNTERS = (
    "legacy_reads",
    "new_reads",
    "legacy_writes",
    "new_writes",
    "dual_writes",
    "comparison_tests",
)


def _parse_rate(rate: str) -> float:
    """Convert a "97.50%" style rate string to a float."""
    return float(rate.rstrip("%") or 0)


class MigrationMetricsPublisher:
    """
    Publishes migration metrics to CloudWatch.

    Metrics:
    - Routing counters per backend
    - Comparison totals, mismatches and success rate
    - Per-operation success rate
    """

    def __init__(
        self,
        namespace: str = DEFAULT_METRICS_NAMESPACE,
        region_name: str = DEFAULT_REGION,
        cloudwatch_client: Optional[Any] = None,
    ):
        """
        Initialize metrics publisher.

        Args:
            namespace: CloudWatch namespace
            region_name: AWS region for CloudWatch
            cloudwatch_client: Pre-built client (default: created with boto3)
        """
        self.namespace = namespace
        self.region_name = region_name
        self.cloudwatch_client = cloudwatch_client or boto3.client(
            "cloudwatch", region_name=region_name
        )
        self.logger = logging.getLogger(__name__)

    def build_metric_data(
        self,
        routing_stats: Dict[str, Any],
        comparison_stats: Dict[str, Any],
        deployment: str = "default",
    ) -> List[Dict[str, Any]]:
        """Translate router and comparator statistics into CloudWatch datums."""
        timestamp = datetime.now(timezone.utc)
        base_dimensions = [{"Name": "Deployment", "Value": deployment}]

        metric_data: List[Dict[str, Any]] = [
            {
                "MetricName": counter,
                "Value": routing_stats.get(counter, 0),
                "Unit": "Count",
                "Timestamp": timestamp,
                "Dimensions": base_dimensions,
            }
            for counter in ROUTING_COUNTERS
        ]

        metric_data.extend(
            [
                {
                    "MetricName": "total_comparisons",
                    "Value": comparison_stats.get("total_comparisons", 0),
                    "Unit": "Count",
                    "Timestamp": timestamp,
                    "Dimensions": base_dimensions,
                },
                {
                    "MetricName": "mismatches",
                    "Value": comparison_stats.get("mismatches", 0),
                    "Unit": "Count",
                    "Timestamp": timestamp,
                    "Dimensions": base_dimensions,
                },
                {
                    "MetricName": "overall_success_rate",
                    "Value": _parse_rate(comparison_stats.get("overall_success_rate", "0%")),
                    "Unit": "Percent",
                    "Timestamp": timestamp,
                    "Dimensions": base_dimensions,
                },
            ]
        )

        for name, op_stats in comparison_stats.get("operation_stats", {}).items():
            metric_data.append(
                {
                    "MetricName": "operation_success_rate",
                    "Value": _parse_rate(op_stats["success_rate"]),
                    "Unit": "Percent",
                    "Timestamp": timestamp,
                    "Dimensions": base_dimensions + [{"Name": "Operation", "Value": name}],
                }
            )

        return metric_data

    def publish(
        self,
        routing_stats: Dict[str, Any],
        comparison_stats: Dict[str, Any],
        deployment: str = "default",
    ) -> bool:
        """
        Publish migration metrics to CloudWatch.

        Returns:
            True when every batch was accepted; failures are logged, not raised
        """
        try:
            metric_data = self.build_metric_data(routing_stats, comparison_stats, deployment)

            # CloudWatch limit: 20 metrics per request
            for i in range(0, len(metric_data), 20):
                batch = metric_data[i : i + 20]
                self.cloudwatch_client.put_metric_data(Namespace=self.namespace, MetricData=batch)
                self.logger.debug(f"Published {len(batch)} metrics to CloudWatch")

            self.logger.info(
                f"Migration metrics published: "
                f"success_rate={comparison_stats.get('overall_success_rate', '0%')}, "
                f"mismatches={comparison_stats.get('mismatches', 0)}"
            )
            return True

        except Exception as e:
            self.logger.error(f"Failed to publish migration metrics: {e}")
            # Metrics publishing must not fail the caller
            return False


class ComparisonLogger:
    """
    Structured logger for comparison telemetry.

    Log lines are JSON so they can be queried through CloudWatch Logs Insights.
    """

    def __init__(self, run_id: str):
        self.run_id = run_id
        self.logger = logging.getLogger(__name__)

    def log_comparison(self, result: ComparisonResult) -> None:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": "INFO" if result.match else "WARNING",
            "run_id": self.run_id,
            "event_type": "shadow_comparison",
            "operation_name": result.operation_name,
            "match": result.match,
            "discrepancy_count": len(result.discrepancies),
            "discrepancy_paths": [d.path for d in result.discrepancies],
            "legacy_error": result.legacy_error,
            "new_error": result.new_error,
            "diff_error": result.diff_error,
            "duration_ms": round(result.duration_ms, 2),
        }
        self.logger.info(json.dumps(log_entry, ensure_ascii=False))

    def log_summary(self, routing_stats: Dict[str, Any], comparison_stats: Dict[str, Any]) -> None:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": "INFO",
            "run_id": self.run_id,
            "event_type": "migration_summary",
            "routing": routing_stats,
            "total_comparisons": comparison_stats.get("total_comparisons", 0),
            "mismatches": comparison_stats.get("mismatches", 0),
            "overall_success_rate": comparison_stats.get("overall_success_rate", "0%"),
        }
        self.logger.info(json.dumps(log_entry, ensure_ascii=False))
