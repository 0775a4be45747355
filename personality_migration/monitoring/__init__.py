"""Monitoring and telemetry for the migration layer."""

from personality_migration.monitoring.comparison import (
    ComparisonLogger,
    MigrationMetricsPublisher,
)

__all__ = [
    "ComparisonLogger",
    "MigrationMetricsPublisher",
]
