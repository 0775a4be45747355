"""Diff Reporter - Write comparator history as JSON and Markdown reports."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Tuple

from personality_migration.comparison.comparator import ShadowComparator
from personality_migration.config.settings import DEFAULT_REPORTS_DIR

logger = logging.getLogger(__name__)


class DiffReporter:
    """Generate structured comparison artifacts (JSON + Markdown)."""

    def __init__(self, output_dir: Path | None = None) -> None:
        self.output_dir = Path(output_dir) if output_dir is not None else DEFAULT_REPORTS_DIR
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def generate_json_report(
        self,
        comparator: ShadowComparator,
        routing_stats: Dict[str, Any] | None = None,
    ) -> str:
        report: Dict[str, Any] = {
            "metadata": {"generated_at": datetime.now().isoformat()},
            "statistics": comparator.get_statistics(),
            "discrepancies": comparator.get_discrepancies(),
            "mismatches": [
                result.to_dict() for result in comparator.get_history() if not result.match
            ],
        }
        if routing_stats is not None:
            report["routing"] = routing_stats
        return json.dumps(report, indent=2, default=str)

    def generate_markdown_summary(
        self,
        comparator: ShadowComparator,
        routing_stats: Dict[str, Any] | None = None,
    ) -> str:
        stats = comparator.get_statistics()
        md_lines = [
            "# Migration Comparison Report",
            f"**Generated:** {datetime.now().isoformat()}",
            "",
            "## Summary",
            f"- **Operations:** {stats['total_operations']}",
            f"- **Comparisons:** {stats['total_comparisons']}",
            f"- **Matches:** {stats['matches']}",
            f"- **Mismatches:** {stats['mismatches']}",
            f"- **Success Rate:** {stats['overall_success_rate']}",
            "",
        ]

        if stats["operation_stats"]:
            md_lines.extend(
                [
                    "## Per Operation",
                    "",
                    "| Operation | Count | Matches | Mismatches | Success Rate |",
                    "|---|---|---|---|---|",
                ]
            )
            for name, op_stats in sorted(stats["operation_stats"].items()):
                md_lines.append(
                    f"| {name} | {op_stats['count']} | {op_stats['matches']} | "
                    f"{op_stats['mismatches']} | {op_stats['success_rate']} |"
                )
            md_lines.append("")

        discrepancies = comparator.get_discrepancies()
        if discrepancies:
            md_lines.append("## Discrepancies")
            md_lines.append("")
            for entry in discrepancies:
                location = entry["path"] or "<root>"
                md_lines.append(f"- **{entry['operation_name']}** `{location}`: {entry['type']}")
        elif stats["total_comparisons"]:
            md_lines.append("Perfect Parity")

        if routing_stats is not None:
            md_lines.extend(["", "## Routing", ""])
            for key, value in routing_stats.items():
                md_lines.append(f"- {key}: {value}")

        return "\n".join(md_lines)

    def write_reports(
        self,
        comparator: ShadowComparator,
        routing_stats: Dict[str, Any] | None = None,
        report_name: str = "comparison",
    ) -> Tuple[Path, Path]:
        safe_name = report_name.replace("/", "_")
        json_path = self.output_dir / f"{safe_name}.json"
        md_path = self.output_dir / f"{safe_name}.md"

        json_path.write_text(self.generate_json_report(comparator, routing_stats), encoding="utf-8")
        md_path.write_text(
            self.generate_markdown_summary(comparator, routing_stats), encoding="utf-8"
        )

        logger.info("Wrote comparison reports for %s", report_name)
        logger.info("  JSON: %s", json_path)
        logger.info("  Markdown: %s", md_path)

        return json_path, md_path

    def summarize_operations(self, comparator: ShadowComparator) -> List[Dict[str, Any]]:
        """Per-operation rows sorted by mismatch count, worst first."""
        stats = comparator.get_statistics()["operation_stats"]
        rows = [{"operation_name": name, **values} for name, values in stats.items()]
        return sorted(rows, key=lambda row: (-row["mismatches"], row["operation_name"]))
