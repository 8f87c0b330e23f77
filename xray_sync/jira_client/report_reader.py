"""
Cucumber Report Reader.

Reads a Cucumber JSON execution report (the artifact uploaded to Xray) to
find which test issues were run and how they ended.

Test issue keys come from scenario tags of the form ``@PROJ-123``, the
same tags Xray uses to match report entries to existing tests. Nothing is
inferred beyond what the report carries.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from loguru import logger

from xray_sync.gherkin.parser import ISSUE_KEY_PATTERN


class ReportError(Exception):
    """Raised when a report file cannot be read or is not a Cucumber JSON report."""

    pass


def _list_field(entry: Dict[str, Any], name: str) -> List[Any]:
    """Return a list-valued field, or an empty list when absent or mis-typed."""
    value = entry.get(name)
    return value if isinstance(value, list) else []


@dataclass
class ScenarioResult:
    """
    Outcome of one scenario in a Cucumber report.

    Attributes:
        name: Scenario name.
        status: "PASS", "FAIL" or "TODO" (no steps, or skipped/pending steps).
        test_keys: Issue keys tagged on the scenario.
    """

    name: str
    status: str = "TODO"
    test_keys: List[str] = field(default_factory=list)


@dataclass
class CucumberReport:
    """Scenario results read from a Cucumber JSON report."""

    path: str = ""
    scenarios: List[ScenarioResult] = field(default_factory=list)

    @classmethod
    def load(cls, report_path: str | Path) -> "CucumberReport":
        """
        Read and interpret a Cucumber JSON report.

        Raises:
            ReportError: If the file is missing, unreadable or not a
                         Cucumber JSON report.
        """
        path = Path(report_path)
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ReportError(f"Cannot read report {path}: {e}") from e

        if not isinstance(data, list):
            raise ReportError(
                f"Cucumber JSON report must be a list of features, "
                f"got {type(data).__name__}: {path}"
            )

        report = cls(path=str(path))
        for feature in data:
            if not isinstance(feature, dict):
                continue
            for element in _list_field(feature, "elements"):
                if isinstance(element, dict) and element.get("type", "scenario") == "scenario":
                    report.scenarios.append(cls._scenario_result(element))

        logger.info(
            f"Report read: {report.total_tests} scenarios, {report.passed} passed, "
            f"{report.failed} failed, {report.other} other "
            f"(pass rate {report.pass_rate:.1f}%), {len(report.test_keys)} linked test keys"
        )
        return report

    @staticmethod
    def _scenario_result(element: Dict[str, Any]) -> ScenarioResult:
        tags = [
            str(tag.get("name", "")).lstrip("@")
            for tag in _list_field(element, "tags")
            if isinstance(tag, dict)
        ]
        statuses = [
            str(step["result"].get("status", "")).lower()
            for step in _list_field(element, "steps")
            if isinstance(step, dict) and isinstance(step.get("result"), dict)
        ]

        if any(s in ("failed", "undefined", "ambiguous") for s in statuses):
            status = "FAIL"
        elif statuses and all(s == "passed" for s in statuses):
            status = "PASS"
        else:
            status = "TODO"

        return ScenarioResult(
            name=str(element.get("name", "")),
            status=status,
            test_keys=[t for t in tags if ISSUE_KEY_PATTERN.match(t)],
        )

    @property
    def test_keys(self) -> List[str]:
        """All tagged issue keys, de-duplicated, in report order."""
        keys: Dict[str, None] = {}
        for scenario in self.scenarios:
            for key in scenario.test_keys:
                keys.setdefault(key, None)
        return list(keys)

    @property
    def total_tests(self) -> int:
        return len(self.scenarios)

    @property
    def passed(self) -> int:
        return sum(1 for s in self.scenarios if s.status == "PASS")

    @property
    def failed(self) -> int:
        return sum(1 for s in self.scenarios if s.status == "FAIL")

    @property
    def other(self) -> int:
        return self.total_tests - self.passed - self.failed

    @property
    def pass_rate(self) -> float:
        """Pass rate as a percentage."""
        if self.total_tests == 0:
            return 0.0
        return (self.passed / self.total_tests) * 100
