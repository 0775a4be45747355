#!/usr/bin/env python3
"""
Verification script to print the resolved migration flags.

Usage:
    python scripts/print_flags.py [--flags-file config/feature_flags.yaml]

Output:
    - Every known feature flag and its resolved value
    - The dispatch mode reads and writes would use right now
"""

import argparse
import logging
import os
import sys

from personality_migration.config.settings import Settings
from personality_migration.errors import ConfigurationError
from personality_migration.flags.feature_flags import create_feature_flags, env_var_for
from personality_migration.routing.dispatch import OperationKind, select_dispatch_mode

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def print_flags_summary(flags) -> None:
    """Print resolved flags and the dispatch modes they produce."""
    print("\n" + "=" * 80)
    print("MIGRATION FLAGS")
    print("=" * 80)

    for key, enabled in flags.get_all_flags().items():
        status = "ON " if enabled else "off"
        source = " (env override)" if env_var_for(key) in os.environ else ""
        print(f"  [{status}] {key}{source}")

    print("\n" + "-" * 80)
    print("DISPATCH MODES")
    print("-" * 80)
    for kind in OperationKind:
        mode = select_dispatch_mode(flags, kind)
        print(f"  {kind.value:<6} -> {mode.value}")
    print()


def main() -> int:
    parser = argparse.ArgumentParser(description="Print resolved migration feature flags")
    parser.add_argument("--flags-file", help="Override FEATURE_FLAGS_FILE")
    args = parser.parse_args()

    if args.flags_file:
        os.environ["FEATURE_FLAGS_FILE"] = args.flags_file

    try:
        flags = create_feature_flags(Settings())
    except ConfigurationError as e:
        logger.error(f"Failed to load feature flags: {e}")
        return 1

    print_flags_summary(flags)
    return 0


if __name__ == "__main__":
    sys.exit(main())
