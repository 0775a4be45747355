"""
Configuration loader for the personality migration layer

Reads routing, comparison and telemetry options from environment variables,
loads the feature flag file, and installs log redaction for webhook secrets.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema
import yaml

from personality_migration.errors import ConfigurationError

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_FLAGS_FILE = PROJECT_ROOT / "config" / "feature_flags.yaml"
DEFAULT_FLAGS_SCHEMA = PROJECT_ROOT / "config" / "feature_flags.schema.json"
DEFAULT_REPORTS_DIR = PROJECT_ROOT / "reports" / "comparison"

DEFAULT_REGION = "ap-northeast-2"
DEFAULT_METRICS_NAMESPACE = "personality-migration/routing"


def _env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean environment variable ("true" enables, case-insensitive)."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() == "true"


class SecretRedactionFilter(logging.Filter):
    """
    Logging filter that redacts secret values from log records.
    Replaces secret substrings with ***REDACTED*** to prevent accidental leakage.
    """

    def __init__(self, secrets: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.secrets = secrets or {}
        self.redacted_values: set[str] = set()
        if self.secrets:
            self._extract_secret_values(self.secrets)

    def _extract_secret_values(self, obj: Any, max_depth: int = 5) -> None:
        """Recursively extract all secret values from nested structures."""
        if max_depth <= 0:
            return

        if isinstance(obj, dict):
            for value in obj.values():
                self._extract_secret_values(value, max_depth - 1)
        elif isinstance(obj, (list, tuple)):
            for item in obj:
                self._extract_secret_values(item, max_depth - 1)
        elif isinstance(obj, str) and len(obj) > 3:
            self.redacted_values.add(obj)

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and redact log record."""
        record.msg = self._redact_string(str(record.msg))
        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._redact_string(str(v)) for k, v in record.args.items()}
            elif isinstance(record.args, (list, tuple)):
                record.args = tuple(self._redact_string(str(arg)) for arg in record.args)
        return True

    def _redact_string(self, text: str) -> str:
        """Redact all secret values from string."""
        for secret in self.redacted_values:
            if secret in text:
                text = text.replace(secret, "***REDACTED***")
        return text


class Settings:
    """
    Runtime configuration for the routing/comparison layer.

    Values are read from the environment when the instance is created, so a
    fresh Settings picks up changes made between tests or redeploys.
    """

    def __init__(self, region_name: Optional[str] = None):
        self.region_name = region_name or os.getenv("AWS_REGION", DEFAULT_REGION)

        # Feature flag sources
        self.flags_file = Path(os.getenv("FEATURE_FLAGS_FILE", str(DEFAULT_FLAGS_FILE)))
        self.flags_schema = Path(os.getenv("FEATURE_FLAGS_SCHEMA", str(DEFAULT_FLAGS_SCHEMA)))

        # Comparator behaviour
        self.log_discrepancies = _env_flag("COMPARISON_LOG_DISCREPANCIES", default=True)
        self.throw_on_mismatch = _env_flag("COMPARISON_THROW_ON_MISMATCH")
        self.reports_dir = Path(os.getenv("COMPARISON_REPORTS_DIR", str(DEFAULT_REPORTS_DIR)))
        self.comparison_run_id = os.getenv("COMPARISON_RUN_ID") or datetime.now(
            timezone.utc
        ).strftime("%Y%m%dT%H%M%SZ")

        # Router behaviour
        self.concurrent_dual_write = _env_flag("DUAL_WRITE_CONCURRENT")

        # Telemetry
        self.metrics_enabled = _env_flag("METRICS_ENABLED")
        self.metrics_namespace = os.getenv("METRICS_NAMESPACE", DEFAULT_METRICS_NAMESPACE)
        self.slack_enabled = _env_flag("SLACK_ENABLED")
        self.slack_webhook_url = os.getenv("SLACK_WEBHOOK_URL") or None

    def load_flag_file(self) -> Dict[str, bool]:
        """
        Load flag defaults from the YAML flag file and validate against schema.

        A missing flag file is not an error; built-in defaults apply.

        Returns:
            Mapping of flag key to boolean value

        Raises:
            ConfigurationError: If the file is unreadable or fails validation
        """
        if not self.flags_file.exists():
            logger.debug(f"Feature flag file not found, using defaults: {self.flags_file}")
            return {}

        try:
            with open(self.flags_schema, "r", encoding="utf-8") as f:
                schema = json.load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Feature flag schema not found: {self.flags_schema}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {self.flags_schema}: {e}") from e

        try:
            with open(self.flags_file, "r", encoding="utf-8") as f:
                content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {self.flags_file}: {e}") from e

        if not content:
            logger.warning(f"Empty feature flag file: {self.flags_file}")
            return {}

        try:
            jsonschema.validate(instance=content, schema=schema)
        except jsonschema.ValidationError as e:
            raise ConfigurationError(f"Feature flag file validation failed: {e.message}") from e
        except jsonschema.SchemaError as e:
            raise ConfigurationError(f"Feature flag schema is invalid: {e.message}") from e

        flags = dict(content.get("flags", {}))
        logger.info(f"Loaded {len(flags)} feature flags from {self.flags_file}")
        return flags

    def setup_redaction_filter(self, logger_instance: logging.Logger) -> None:
        """Attach a redaction filter masking the Slack webhook URL."""
        if not self.slack_webhook_url:
            return
        logger_instance.addFilter(
            SecretRedactionFilter({"slack_webhook_url": self.slack_webhook_url})
        )
