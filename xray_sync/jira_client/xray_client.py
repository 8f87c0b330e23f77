"""
Xray REST API Client.

Provides a dedicated client for the four Xray / Jira operations used by
the sync flows:
- Authentication (client id / secret exchanged for a bearer token).
- Creating or updating Test issues from Cucumber scenarios.
- Uploading Cucumber JSON execution results.
- Creating Test Execution issues that link the tests of a run.

Every public operation returns a plain result (key, None, True/False) and
logs failures; no exception escapes. There is no automatic retry.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import requests
from loguru import logger

from xray_sync.config.loader import XraySettings
from xray_sync.jira_client.auth import AuthSession
from xray_sync.jira_client.models import CreatedIssue, ExecutionRecord, TestIssueRecord


class XrayClientError(Exception):
    """Raised when an Xray API request fails."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class XrayClient:
    """
    Client for the Xray Cloud and Jira REST APIs.

    All operations other than ``authenticate`` require a successful
    authentication first; before that they log a warning and return
    an empty result without touching the network.

    Usage::

        settings = SettingsLoader().load("config/xray_settings.yaml")
        with XrayClient(settings) as client:
            if client.authenticate():
                key = client.create_test_issue(record)
                client.upload_results("build/reports/cucumber/cucumber.json")
    """

    def __init__(
        self,
        settings: XraySettings,
        auth: Optional[AuthSession] = None,
        http: Optional[Any] = None,
    ) -> None:
        """
        Initialize the Xray client.

        Args:
            settings: Run settings.
            auth: Authentication session. Created from settings if omitted.
            http: requests.Session-like transport shared with the auth session.
        """
        self._settings = settings
        self._auth = auth or AuthSession(settings, http=http)
        logger.info(
            f"XrayClient initialized — project={settings.project_key}, "
            f"url={settings.xray_base_url}"
        )

    @property
    def settings(self) -> XraySettings:
        return self._settings

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def authenticate(self) -> bool:
        """Authenticate with Xray Cloud. See AuthSession.authenticate."""
        return self._auth.authenticate()

    def is_authenticated(self) -> bool:
        return self._auth.is_authenticated()

    def _ensure_authenticated(self, action: str) -> bool:
        if self._auth.is_authenticated():
            return True
        logger.warning(f"Not authenticated with Xray. Cannot {action}.")
        return False

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _post(
        self,
        url: str,
        expected_status: int,
        **kwargs: Any,
    ) -> requests.Response:
        """
        Make an authenticated POST request.

        Args:
            url: Full request URL.
            expected_status: The only status code treated as success.
            **kwargs: Additional arguments for requests (json, data).

        Returns:
            The response.

        Raises:
            XrayClientError: On transport failure or an unexpected status.
        """
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **self._auth.auth_headers(),
        }
        logger.debug(f"Xray API POST {url}")

        try:
            response = self._auth.http.post(
                url,
                headers=headers,
                timeout=self._settings.timeout,
                **kwargs,
            )
        except requests.exceptions.Timeout as e:
            connect, read = self._settings.timeout
            raise XrayClientError(
                f"Request timed out (connect={connect}s, read={read}s): {e}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise XrayClientError(f"Cannot reach {url}: {e}") from e

        if response.status_code != expected_status:
            raise XrayClientError(
                f"Unexpected status {response.status_code} from {url}",
                status_code=response.status_code,
                body=response.text or "",
            )
        return response

    def _created_key(self, response: requests.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"Issue creation response is not JSON: {e}")
            return None

        created = CreatedIssue.parse(body)
        return created.key if created else None

    @staticmethod
    def _log_failure(action: str, error: XrayClientError) -> None:
        if error.status_code is not None:
            logger.error(
                f"Failed to {action}: {error.status_code} {error.body[:500]}"
            )
        else:
            logger.error(f"Error trying to {action}: {error}")

    # ------------------------------------------------------------------
    # Test Issue Operations
    # ------------------------------------------------------------------

    def create_test_issue(self, record: TestIssueRecord) -> Optional[str]:
        """
        Create (or update) a Test issue from a scenario record.

        Args:
            record: The test issue request.

        Returns:
            Key of the created/updated issue, or None on any failure.
        """
        if not self._ensure_authenticated("create test issue"):
            return None

        url = self._settings.url(
            self._settings.xray_base_url, self._settings.test_import_endpoint
        )
        try:
            response = self._post(url, 200, json=record.to_payload(self._settings))
        except XrayClientError as e:
            self._log_failure(f"create test issue '{record.summary}'", e)
            return None

        key = self._created_key(response)
        if key:
            logger.info(f"Test issue {key} created for: {record.summary}")
        return key

    # ------------------------------------------------------------------
    # Test Execution Operations
    # ------------------------------------------------------------------

    def upload_results(self, report_path: str | Path) -> bool:
        """
        Upload a Cucumber JSON report to Xray.

        Args:
            report_path: Path of the report file. Sent verbatim.

        Returns:
            True if Xray accepted the report.
        """
        if not self._ensure_authenticated("upload results"):
            return False

        path = Path(report_path)
        if not path.is_file():
            logger.error(f"Cucumber JSON report not found: {path}")
            return False

        try:
            with path.open("rb") as fh:
                content = fh.read()
        except OSError as e:
            logger.error(f"Cannot read report {path}: {e}")
            return False

        url = self._settings.url(
            self._settings.xray_base_url, self._settings.execution_import_endpoint
        )
        try:
            self._post(url, 200, data=content)
        except XrayClientError as e:
            self._log_failure("upload test results", e)
            return False

        logger.info(f"Test results uploaded to Xray from: {path}")
        return True

    def create_execution(
        self,
        summary: Optional[str],
        test_keys: Iterable[str] = (),
    ) -> Optional[str]:
        """
        Create a Test Execution issue in Jira.

        Args:
            summary: Execution summary. A timestamped default is used if empty.
            test_keys: Test issue keys to link.

        Returns:
            Key of the Test Execution issue, or None on any failure.
        """
        if not self._ensure_authenticated("create test execution"):
            return None

        record = ExecutionRecord.build(self._settings, summary, test_keys)
        url = self._settings.url(self._settings.jira_url, self._settings.issue_endpoint)
        logger.info(
            f"Creating Test Execution: '{record.summary}' "
            f"with {len(record.test_keys)} tests"
        )
        try:
            response = self._post(url, 201, json=record.to_payload(self._settings))
        except XrayClientError as e:
            self._log_failure("create test execution", e)
            return None

        key = self._created_key(response)
        if key:
            logger.info(f"Test Execution created: {key}")
        return key

    def close(self) -> None:
        """Close the HTTP session."""
        self._auth.close()
        logger.debug("Xray client session closed")

    def __enter__(self) -> "XrayClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
