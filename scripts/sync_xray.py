#!/usr/bin/env python
"""
Xray Sync Script.

Command-line entry point for the two sync flows:
- create-tests: create Xray Test issues from the scenarios of feature files.
- upload-results: upload a Cucumber JSON report and create a Test Execution.

Credentials are read from XRAY_CLIENT_ID / XRAY_CLIENT_SECRET.

Usage:
    python scripts/sync_xray.py --action create-tests --features src/test/resources/features
    python scripts/sync_xray.py --action upload-results --report build/reports/cucumber/cucumber.json
    python scripts/sync_xray.py --action upload-results --report cucumber.json \\
        --summary "Nightly run" --test-key XSP-12 --test-key XSP-13
"""

import argparse
import sys

from loguru import logger

from xray_sync.config.loader import ConfigurationError, SettingsLoader
from xray_sync.jira_client.xray_client import XrayClient
from xray_sync.sync.orchestrator import SyncOrchestrator


def parse_args(argv=None):
    """Parse command-line arguments for the sync flows."""
    parser = argparse.ArgumentParser(
        description="Xray Sync — test creation and result upload"
    )
    parser.add_argument(
        "--action",
        choices=["create-tests", "upload-results"],
        required=True,
        help="Sync flow to run",
    )
    parser.add_argument(
        "--features",
        type=str,
        default="src/test/resources/features/",
        help="Directory of feature files (create-tests)",
    )
    parser.add_argument(
        "--report",
        type=str,
        default="build/reports/cucumber/cucumber.json",
        help="Cucumber JSON report path (upload-results)",
    )
    parser.add_argument(
        "--summary",
        type=str,
        default=None,
        help="Custom Test Execution summary (upload-results)",
    )
    parser.add_argument(
        "--test-key",
        dest="test_keys",
        action="append",
        default=None,
        help="Test issue key to link to the Test Execution; repeatable. "
             "Defaults to the keys tagged in the report.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Optional YAML/JSON settings file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for the Xray sync script."""
    args = parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "INFO")

    try:
        settings = SettingsLoader().load(args.config)
    except ConfigurationError as e:
        logger.error(f"[Sync] {e}")
        return 2

    logger.info(f"[Sync] Action: {args.action}")

    with XrayClient(settings) as client:
        orchestrator = SyncOrchestrator(settings, client)

        if args.action == "create-tests":
            outcomes = orchestrator.create_tests_from_directory(args.features)
        else:
            outcomes = [
                orchestrator.upload_results(
                    args.report, summary=args.summary, test_keys=args.test_keys
                )
            ]

    for outcome in outcomes:
        logger.debug(f"[Sync] {outcome.to_dict()}")

    failed = [o for o in outcomes if o.is_failure]
    exit_code = 1 if failed else 0
    logger.info(f"[Sync] Finished with exit code: {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
