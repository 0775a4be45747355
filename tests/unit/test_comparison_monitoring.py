"""
Unit tests for migration telemetry (personality_migration/monitoring/comparison.py)

Tests covering:
- CloudWatch metric construction from routing and comparison statistics
- Batched publishing and failure handling
- Structured comparison log lines
"""

import json
import logging
import os
from unittest.mock import MagicMock, Mock, patch

import boto3
import pytest
from moto import mock_aws

from personality_migration.comparison.comparator import ComparisonResult
from personality_migration.comparison.differ import Discrepancy, DiscrepancyType
from personality_migration.monitoring.comparison import (
    ROUTING_COUNTERS,
    ComparisonLogger,
    MigrationMetricsPublisher,
)

ROUTING_STATS = {
    "legacy_reads": 10,
    "new_reads": 2,
    "legacy_writes": 4,
    "new_writes": 0,
    "dual_writes": 3,
    "comparison_tests": 8,
    "target_system_active": True,
    "comparison_testing_active": True,
    "dual_write_active": True,
}

COMPARISON_STATS = {
    "total_operations": 2,
    "total_comparisons": 8,
    "matches": 7,
    "mismatches": 1,
    "operation_stats": {
        "get_personality": {"count": 6, "matches": 5, "mismatches": 1, "success_rate": "83.33%"},
        "list_personalities": {
            "count": 2,
            "matches": 2,
            "mismatches": 0,
            "success_rate": "100.00%",
        },
    },
    "overall_success_rate": "87.50%",
}


@pytest.fixture
def aws_credentials():
    """Fixture for AWS credentials."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "ap-northeast-2"


class TestMigrationMetricsPublisher:
    """Test CloudWatch metrics publishing."""

    @patch("boto3.client")
    def test_publisher_initialization(self, mock_boto_client):
        """Test metrics publisher creation."""
        publisher = MigrationMetricsPublisher(region_name="ap-northeast-2")

        assert publisher.region_name == "ap-northeast-2"
        assert publisher.namespace == "personality-migration/routing"
        mock_boto_client.assert_called_once_with("cloudwatch", region_name="ap-northeast-2")

    def test_build_metric_data(self):
        """Test statistics are translated into CloudWatch datums."""
        publisher = MigrationMetricsPublisher(cloudwatch_client=MagicMock())

        metrics = publisher.build_metric_data(ROUTING_STATS, COMPARISON_STATS, deployment="blue")
        by_name = {}
        for metric in metrics:
            by_name.setdefault(metric["MetricName"], []).append(metric)

        for counter in ROUTING_COUNTERS:
            assert by_name[counter][0]["Value"] == ROUTING_STATS[counter]
            assert by_name[counter][0]["Unit"] == "Count"
        assert "target_system_active" not in by_name
        assert by_name["overall_success_rate"][0]["Value"] == 87.5
        assert by_name["overall_success_rate"][0]["Unit"] == "Percent"

        per_operation = {
            m["Dimensions"][1]["Value"]: m["Value"] for m in by_name["operation_success_rate"]
        }
        assert per_operation == {"get_personality": 83.33, "list_personalities": 100.0}
        assert metrics[0]["Dimensions"][0] == {"Name": "Deployment", "Value": "blue"}

    def test_empty_statistics(self):
        """Test a comparator with no history publishes a zero success rate."""
        publisher = MigrationMetricsPublisher(cloudwatch_client=MagicMock())

        metrics = publisher.build_metric_data({}, {"overall_success_rate": "0%"})
        rate = next(m for m in metrics if m["MetricName"] == "overall_success_rate")
        assert rate["Value"] == 0.0
        assert len(metrics) == len(ROUTING_COUNTERS) + 3

    def test_publish_batches_metrics(self):
        """Test metrics are published in batches of 20."""
        mock_cw = MagicMock()
        publisher = MigrationMetricsPublisher(namespace="test/ns", cloudwatch_client=mock_cw)
        comparison_stats = dict(COMPARISON_STATS)
        comparison_stats["operation_stats"] = {
            f"op_{i}": {"count": 1, "matches": 1, "mismatches": 0, "success_rate": "100.00%"}
            for i in range(15)
        }

        assert publisher.publish(ROUTING_STATS, comparison_stats) is True

        # 6 counters + 3 totals + 15 operations = 24 metrics
        assert mock_cw.put_metric_data.call_count == 2
        batches = [c[1]["MetricData"] for c in mock_cw.put_metric_data.call_args_list]
        assert [len(b) for b in batches] == [20, 4]
        assert mock_cw.put_metric_data.call_args[1]["Namespace"] == "test/ns"

    def test_publish_handles_errors(self):
        """Test metrics publishing handles CloudWatch errors gracefully."""
        mock_cw = MagicMock()
        mock_cw.put_metric_data.side_effect = Exception("CloudWatch error")
        publisher = MigrationMetricsPublisher(cloudwatch_client=mock_cw)

        # Should not raise exception
        assert publisher.publish(ROUTING_STATS, COMPARISON_STATS) is False

    def test_publish_to_cloudwatch(self, aws_credentials):
        """Test metrics land in CloudWatch under the configured namespace."""
        with mock_aws():
            publisher = MigrationMetricsPublisher(region_name="ap-northeast-2")

            assert publisher.publish(ROUTING_STATS, COMPARISON_STATS, deployment="canary") is True

            client = boto3.client("cloudwatch", region_name="ap-northeast-2")
            listed = client.list_metrics(Namespace="personality-migration/routing")["Metrics"]
        names = {metric["MetricName"] for metric in listed}
        assert set(ROUTING_COUNTERS) <= names
        assert "operation_success_rate" in names


class TestComparisonLogger:
    """Test structured comparison logging."""

    @pytest.fixture
    def comparison_logger(self):
        logger = ComparisonLogger(run_id="run_001")
        logger.logger = Mock(spec=logging.Logger)
        return logger

    def test_log_mismatch(self, comparison_logger):
        """Test a mismatch is logged as one JSON line without payload values."""
        result = ComparisonResult(
            operation_name="get_personality",
            match=False,
            legacy_result={"temperature": 0.7},
            new_result={"temperature": 0.9},
            discrepancies=[
                Discrepancy("temperature", DiscrepancyType.VALUE_MISMATCH, 0.7, 0.9)
            ],
            duration_ms=12.3456,
        )

        comparison_logger.log_comparison(result)

        line = comparison_logger.logger.info.call_args[0][0]
        entry = json.loads(line)
        assert entry["run_id"] == "run_001"
        assert entry["event_type"] == "shadow_comparison"
        assert entry["level"] == "WARNING"
        assert entry["discrepancy_paths"] == ["temperature"]
        assert entry["duration_ms"] == 12.35
        assert entry["diff_error"] is None
        assert "new_result" not in entry

    def test_log_summary(self, comparison_logger):
        """Test the summary line carries routing counters and the success rate."""
        comparison_logger.log_summary(ROUTING_STATS, COMPARISON_STATS)

        entry = json.loads(comparison_logger.logger.info.call_args[0][0])
        assert entry["event_type"] == "migration_summary"
        assert entry["routing"]["dual_writes"] == 3
        assert entry["overall_success_rate"] == "87.50%"
