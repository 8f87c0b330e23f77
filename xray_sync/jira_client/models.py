"""
Xray / Jira Wire Models.

Request records for test issue and Test Execution creation, and the typed
parse of issue creation responses.

Custom field ids are site-specific, so payload builders take them from
XraySettings rather than hard-coding them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple

from loguru import logger

from xray_sync.config.loader import XraySettings
from xray_sync.config.schema_registry import SchemaRegistry
from xray_sync.gherkin.parser import TestCaseDefinition

EXECUTION_ISSUE_TYPE = "Test Execution"
EXECUTION_SUMMARY_PREFIX = "Automated Test Execution"

_ISSUE_REF_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["key"],
    "properties": {
        "id": {"type": ["string", "integer"]},
        "key": {"type": "string", "minLength": 1},
        "self": {"type": "string"},
    },
}

# Jira "create issue" response: {"id": "10000", "key": "XSP-24", "self": "..."}
JIRA_ISSUE_RESPONSE_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    **_ISSUE_REF_SCHEMA,
}

# Xray import response: {"updatedOrCreatedTests": [{"id", "key", "self"}], ...}
XRAY_IMPORT_RESPONSE_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["updatedOrCreatedTests"],
    "properties": {
        "updatedOrCreatedTests": {
            "type": "array",
            "minItems": 1,
            "items": _ISSUE_REF_SCHEMA,
        },
        "errors": {"type": "array"},
    },
}

response_schemas = SchemaRegistry()
response_schemas.register("jira_issue_response", JIRA_ISSUE_RESPONSE_SCHEMA)
response_schemas.register("xray_import_response", XRAY_IMPORT_RESPONSE_SCHEMA)


def unique(values: Iterable[str]) -> Tuple[str, ...]:
    """Drop duplicates and empty strings, keeping first-seen order."""
    return tuple(dict.fromkeys(v for v in values if v))


@dataclass(frozen=True)
class TestIssueRecord:
    """
    Request shape for creating (or updating) an Xray test issue.

    Attributes:
        project_key: Jira project key.
        summary: Issue summary (the scenario title).
        description: Issue description.
        issue_type_name: Jira issue type (normally "Test").
        test_type_name: Xray test type (e.g., "Cucumber").
        body_text: Gherkin definition of the scenario.
        labels: Issue labels, de-duplicated, in order.
        issue_key: Key of the existing test this scenario is linked to, if any.
    """

    __test__ = False

    project_key: str
    summary: str
    description: str = ""
    issue_type_name: str = "Test"
    test_type_name: str = "Cucumber"
    body_text: str = ""
    labels: Tuple[str, ...] = field(default_factory=tuple)
    issue_key: Optional[str] = None

    @classmethod
    def from_definition(
        cls,
        definition: TestCaseDefinition,
        settings: XraySettings,
    ) -> "TestIssueRecord":
        """
        Build a record from a parsed scenario and the run's settings.

        Labels are the configured default labels followed by the scenario's
        own tags. Issue-key tags are not labels and are left out; the first
        one becomes ``issue_key``.
        """
        description = (
            f"Automated test from {definition.source_file or 'unknown'} feature\n\n"
            f"Feature: {definition.source_feature_title}"
        )
        return cls(
            project_key=settings.project_key,
            summary=definition.title,
            description=description,
            issue_type_name=settings.issue_type,
            test_type_name=settings.test_type,
            body_text=definition.body_text,
            labels=unique([*settings.default_labels, *definition.plain_tags]),
            issue_key=next(iter(definition.issue_keys), None),
        )

    @property
    def gherkin(self) -> str:
        """
        Gherkin text sent to Xray.

        A linked scenario carries its key as a tag line above the header,
        which is how the import matches it to the existing test.
        """
        if self.issue_key:
            return f"@{self.issue_key}\n{self.body_text}"
        return self.body_text

    def to_payload(self, settings: XraySettings) -> Dict[str, Any]:
        """Serialize to the Jira ``{"fields": {...}}`` wire format."""
        return {
            "fields": {
                "project": {"key": self.project_key},
                "summary": self.summary,
                "description": self.description,
                "issuetype": {"name": self.issue_type_name},
                settings.test_type_field: {"value": self.test_type_name},
                settings.gherkin_field: self.gherkin,
                "labels": list(self.labels),
            }
        }


@dataclass(frozen=True)
class ExecutionRecord:
    """
    Request shape for creating a Test Execution issue.

    Attributes:
        project_key: Jira project key.
        summary: Execution summary.
        description: Execution description.
        environment: Test environment label.
        version: Version label.
        test_keys: Keys of the test issues run in this execution.
    """

    project_key: str
    summary: str
    description: str = ""
    environment: str = ""
    version: str = ""
    test_keys: Tuple[str, ...] = field(default_factory=tuple)

    @staticmethod
    def default_summary(now: Optional[datetime] = None) -> str:
        """Timestamped summary used when the caller gives none."""
        stamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M")
        return f"{EXECUTION_SUMMARY_PREFIX} - {stamp}"

    @classmethod
    def build(
        cls,
        settings: XraySettings,
        summary: Optional[str],
        test_keys: Iterable[str],
    ) -> "ExecutionRecord":
        """Build a record, falling back to the default summary."""
        if not summary or not summary.strip():
            summary = cls.default_summary()
        return cls(
            project_key=settings.project_key,
            summary=summary.strip(),
            description=settings.execution_description,
            environment=settings.test_environment,
            version=settings.default_version,
            test_keys=unique(test_keys),
        )

    def to_payload(self, settings: XraySettings) -> Dict[str, Any]:
        """Serialize to the Jira ``{"fields": {...}}`` wire format."""
        return {
            "fields": {
                "project": {"key": self.project_key},
                "summary": self.summary,
                "description": self.description,
                "issuetype": {"name": EXECUTION_ISSUE_TYPE},
                settings.environment_field: self.environment,
                settings.version_field: self.version,
                settings.tests_field: list(self.test_keys),
            }
        }


@dataclass(frozen=True)
class CreatedIssue:
    """
    Typed view of an issue creation response.

    Attributes:
        key: Tracker key of the created (or updated) issue.
        id: Tracker internal id, if returned.
        self_url: REST URL of the issue, if returned.
    """

    key: str
    id: str = ""
    self_url: str = ""

    @classmethod
    def parse(cls, body: Any) -> Optional["CreatedIssue"]:
        """
        Parse a decoded JSON response body.

        Accepts a Jira create-issue body or an Xray import body. For the
        import body the first created/updated test is returned.

        Returns:
            CreatedIssue, or None if the body matches neither schema.
        """
        if response_schemas.is_valid(body, "jira_issue_response"):
            ref = body
        elif response_schemas.is_valid(body, "xray_import_response"):
            ref = body["updatedOrCreatedTests"][0]
        else:
            logger.warning(f"Unrecognized issue creation response: {body!r:.200}")
            return None

        return cls(
            key=ref["key"],
            id=str(ref.get("id", "")),
            self_url=ref.get("self", ""),
        )
