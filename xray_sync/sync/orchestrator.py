"""
Sync Orchestrator Module.

Composes the parser and the Xray client into the two flows of a run:
- Test creation: walk a directory of feature files and create (or update)
  one Test issue per scenario.
- Result upload: upload a Cucumber JSON report and optionally create a
  Test Execution issue linking the tests that were run.

Both flows are best effort. Every scenario (or report) yields a SyncOutcome,
and one failure never stops the rest of the batch.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger

from xray_sync.config.loader import XraySettings
from xray_sync.gherkin.parser import ScenarioParser, TestCaseDefinition
from xray_sync.jira_client.models import TestIssueRecord
from xray_sync.jira_client.report_reader import CucumberReport, ReportError
from xray_sync.jira_client.xray_client import XrayClient


class OutcomeStatus(Enum):
    """Status of one synchronized item."""

    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


@dataclass
class SyncOutcome:
    """
    Result of synchronizing one item (a scenario, a file or a report).

    Attributes:
        item: Identifier of the item, e.g. "login.feature::Valid login".
        status: Outcome status.
        key: Remote key created or linked, if any.
        message: Human-readable result description.
    """

    item: str
    status: OutcomeStatus
    key: Optional[str] = None
    message: str = ""

    @property
    def is_success(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    @property
    def is_failure(self) -> bool:
        return self.status == OutcomeStatus.FAILURE

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the outcome for reporting."""
        return {
            "item": self.item,
            "status": self.status.value,
            "key": self.key,
            "message": self.message,
        }


class SyncOrchestrator:
    """
    Drives test creation and result upload against Xray.

    Usage::

        settings = SettingsLoader().load()
        with XrayClient(settings) as client:
            orchestrator = SyncOrchestrator(settings, client)
            outcomes = orchestrator.create_tests_from_directory("features/")
            report = orchestrator.upload_results("build/cucumber.json")
    """

    def __init__(
        self,
        settings: XraySettings,
        client: XrayClient,
        parser: Optional[ScenarioParser] = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._parser = parser or ScenarioParser()

    # ------------------------------------------------------------------
    # Test creation
    # ------------------------------------------------------------------

    def create_tests_from_directory(self, path: str | Path) -> List[SyncOutcome]:
        """
        Create Test issues for every scenario under a directory.

        Args:
            path: Root directory, searched recursively for feature files.

        Returns:
            One outcome per scenario (or per unreadable file). A missing
            directory or failed authentication yields a single failure
            outcome for the directory. Empty if creation is disabled or
            no scenarios were found.
        """
        if not self._settings.create_tests_enabled:
            logger.info("Test creation disabled in settings — nothing to do")
            return []

        root = Path(path)
        if not root.is_dir():
            logger.error(f"Features directory does not exist: {root}")
            return [
                SyncOutcome(
                    item=str(root),
                    status=OutcomeStatus.FAILURE,
                    message="features directory not found",
                )
            ]

        if not self._client.authenticate():
            logger.error("Failed to authenticate with Xray. Check your credentials.")
            return [
                SyncOutcome(
                    item=str(root),
                    status=OutcomeStatus.FAILURE,
                    message="authentication failed",
                )
            ]

        feature_files = sorted(
            p for p in root.rglob(f"*{self._settings.feature_extension}") if p.is_file()
        )
        logger.info(f"Found {len(feature_files)} feature file(s) under {root}")

        outcomes: List[SyncOutcome] = []
        for feature_file in feature_files:
            outcomes.extend(self.create_tests_from_file(feature_file))

        self._log_summary("Test creation", outcomes)
        return outcomes

    def create_tests_from_file(self, path: str | Path) -> List[SyncOutcome]:
        """
        Create Test issues for the scenarios of one feature file.

        Returns:
            One outcome per scenario, or a single failure outcome if the
            file cannot be read.
        """
        feature_file = Path(path)
        try:
            content = self._parser.read(feature_file)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error reading feature file {feature_file}: {e}")
            return [
                SyncOutcome(
                    item=str(feature_file),
                    status=OutcomeStatus.FAILURE,
                    message=f"unreadable: {e}",
                )
            ]

        logger.info(f"Processing feature file: {feature_file.name}")
        definitions = self._parser.parse(content, source_file=feature_file.name)
        if not definitions:
            logger.warning(f"No scenarios found in {feature_file.name}")

        return [self.create_test(definition) for definition in definitions]

    def create_test(self, definition: TestCaseDefinition) -> SyncOutcome:
        """Create (or update) the Test issue for one scenario."""
        item = f"{definition.source_file}::{definition.title}"

        existing = definition.issue_keys
        if existing and not self._settings.update_existing_tests:
            logger.info(f"Skipping '{definition.title}' — already linked to {existing[0]}")
            return SyncOutcome(
                item=item,
                status=OutcomeStatus.SKIPPED,
                key=existing[0],
                message="already linked, updates disabled",
            )

        record = TestIssueRecord.from_definition(definition, self._settings)
        key = self._client.create_test_issue(record)

        if key:
            logger.info(f"Created test {key} for scenario: {definition.title}")
            return SyncOutcome(item=item, status=OutcomeStatus.SUCCESS, key=key)

        logger.warning(f"Failed to create test for scenario: {definition.title}")
        return SyncOutcome(
            item=item,
            status=OutcomeStatus.FAILURE,
            message="test issue not created",
        )

    # ------------------------------------------------------------------
    # Result upload
    # ------------------------------------------------------------------

    def upload_results(
        self,
        report_path: str | Path,
        summary: Optional[str] = None,
        test_keys: Optional[Iterable[str]] = None,
    ) -> SyncOutcome:
        """
        Upload a Cucumber JSON report and optionally create a Test Execution.

        A Test Execution is created when ``auto_create_test_execution`` is
        set or a summary is given. It links ``test_keys`` if supplied,
        otherwise the issue keys tagged on the report's scenarios.

        Args:
            report_path: Path to the Cucumber JSON report.
            summary: Custom Test Execution summary.
            test_keys: Test issue keys to link.

        Returns:
            The outcome for the report; ``key`` is the Test Execution key
            when one was created.
        """
        item = str(report_path)

        if not self._settings.upload_results_enabled:
            logger.info("Result upload disabled in settings — nothing to do")
            return SyncOutcome(item=item, status=OutcomeStatus.SKIPPED, message="upload disabled")

        if not self._client.authenticate():
            logger.error("Failed to authenticate with Xray. Check your credentials.")
            return SyncOutcome(
                item=item,
                status=OutcomeStatus.FAILURE,
                message="authentication failed",
            )

        logger.info(f"Uploading test results from: {report_path}")
        if not self._client.upload_results(report_path):
            logger.error("Failed to upload test results to Xray")
            return SyncOutcome(item=item, status=OutcomeStatus.FAILURE, message="upload failed")

        logger.info(f"Uploaded test results to Xray ({self._settings.project_key} project)")

        if not (self._settings.auto_create_test_execution or summary):
            return SyncOutcome(item=item, status=OutcomeStatus.SUCCESS, message="uploaded")

        keys = list(test_keys) if test_keys is not None else self.report_test_keys(report_path)
        execution_key = self._client.create_execution(summary, keys)

        if execution_key:
            logger.info(f"Created test execution: {execution_key}")
            return SyncOutcome(
                item=item,
                status=OutcomeStatus.SUCCESS,
                key=execution_key,
                message=f"uploaded; execution linked {len(keys)} test(s)",
            )

        logger.warning("Failed to create test execution")
        return SyncOutcome(
            item=item,
            status=OutcomeStatus.SUCCESS,
            message="uploaded; test execution not created",
        )

    @staticmethod
    def report_test_keys(report_path: str | Path) -> List[str]:
        """Issue keys tagged in a Cucumber JSON report, or [] if unreadable."""
        try:
            return CucumberReport.load(report_path).test_keys
        except ReportError as e:
            logger.warning(f"Could not read test keys from report: {e}")
            return []

    @staticmethod
    def _log_summary(flow: str, outcomes: List[SyncOutcome]) -> None:
        counts = {status: 0 for status in OutcomeStatus}
        for outcome in outcomes:
            counts[outcome.status] += 1
        logger.info(
            f"{flow} finished: {counts[OutcomeStatus.SUCCESS]} succeeded, "
            f"{counts[OutcomeStatus.FAILURE]} failed, "
            f"{counts[OutcomeStatus.SKIPPED]} skipped"
        )
