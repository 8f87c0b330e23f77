"""
Jira Xray Client Module.

Provides integration with the Xray Cloud and Jira REST APIs for:
- Authenticating with client credentials.
- Creating Test issues from Cucumber scenarios.
- Uploading Cucumber JSON execution results.
- Creating Test Execution issues linking the tests of a run.
"""

from xray_sync.jira_client.auth import AuthSession, Credentials
from xray_sync.jira_client.models import CreatedIssue, ExecutionRecord, TestIssueRecord
from xray_sync.jira_client.report_reader import CucumberReport, ReportError, ScenarioResult
from xray_sync.jira_client.xray_client import XrayClient, XrayClientError

__all__ = [
    "AuthSession",
    "Credentials",
    "CreatedIssue",
    "ExecutionRecord",
    "TestIssueRecord",
    "CucumberReport",
    "ReportError",
    "ScenarioResult",
    "XrayClient",
    "XrayClientError",
]
