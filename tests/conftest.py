"""
Root conftest.py — Shared Pytest fixtures.

Provides fixtures for:
- Xray settings with and without credentials.
- A call-recording HTTP transport standing in for requests.Session.
- Sample feature files and Cucumber JSON reports on disk.
"""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import requests

from xray_sync.config.loader import XraySettings
from xray_sync.jira_client.auth import AuthSession
from xray_sync.jira_client.xray_client import XrayClient

AUTH = "/api/v1/authenticate"
IMPORT_FEATURE = "/api/v1/import/feature"
IMPORT_EXECUTION = "/api/v1/import/execution/cucumber"
ISSUE = "/rest/api/2/issue"


LOGIN_FEATURE = """\
@auth
Feature: User login
  As a shopper I want to log in.

  Background:
    Given I am on the login page

  @smoke @login
  Scenario: Valid login
    When I enter valid credentials
    Then I see my account page

  @negative
  Scenario: Invalid password
    When I enter a wrong password
    Then I see an error message
"""


def make_response(
    status_code: int,
    body: Any = None,
    text: Optional[str] = None,
) -> requests.Response:
    """Build a real requests.Response with the given status and body."""
    response = requests.Response()
    response.status_code = status_code
    if text is None:
        text = "" if body is None else json.dumps(body)
    response._content = text.encode("utf-8")
    response.encoding = "utf-8"
    return response


class StubHttp:
    """
    Call-recording stand-in for requests.Session.

    Responses are routed by URL suffix. A route given several responses
    returns them in order and then keeps returning the last one.
    Unrouted URLs raise a ConnectionError.
    """

    def __init__(self) -> None:
        self.routes: Dict[str, List[Any]] = {}
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def route(self, endpoint: str, *responses: Any) -> "StubHttp":
        self.routes[endpoint] = list(responses)
        return self

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        self.calls.append({"url": url, **kwargs})
        for endpoint, responses in self.routes.items():
            if url.endswith(endpoint):
                response = responses.pop(0) if len(responses) > 1 else responses[0]
                if isinstance(response, Exception):
                    raise response
                return response
        raise requests.exceptions.ConnectionError(f"no route for {url}")

    def calls_to(self, endpoint: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["url"].endswith(endpoint)]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings() -> XraySettings:
    """Settings with credentials for a test Jira site."""
    return XraySettings(
        jira_url="https://jira.example.com",
        xray_base_url="https://xray.example.com",
        project_key="XSP",
        client_id="client-id",
        client_secret="client-secret",
    )


@pytest.fixture
def settings_without_credentials(settings: XraySettings) -> XraySettings:
    """Settings with no client id / secret."""
    return replace(settings, client_id="", client_secret="")


@pytest.fixture
def stub_http() -> StubHttp:
    """Transport that authenticates successfully and creates issues."""
    http = StubHttp()
    http.route(AUTH, make_response(200, text='"token-123"'))
    http.route(IMPORT_FEATURE, make_response(
        200, {"updatedOrCreatedTests": [{"id": "10001", "key": "XSP-101", "self": "x"}]}
    ))
    http.route(IMPORT_EXECUTION, make_response(200, {"testExecIssue": {"key": "XSP-900"}}))
    http.route(ISSUE, make_response(201, {"id": "20001", "key": "XSP-500", "self": "y"}))
    return http


@pytest.fixture
def client(settings: XraySettings, stub_http: StubHttp) -> XrayClient:
    """Client over the stub transport (not yet authenticated)."""
    return XrayClient(settings, auth=AuthSession(settings, http=stub_http))


@pytest.fixture
def features_dir(tmp_path: Path) -> Path:
    """Directory tree with feature files and one non-feature file."""
    root = tmp_path / "features"
    (root / "checkout").mkdir(parents=True)
    (root / "login.feature").write_text(LOGIN_FEATURE, encoding="utf-8")
    (root / "checkout" / "cart.feature").write_text(
        "Feature: Cart\n\n  @cart\n  Scenario: Add item\n    When I add an item\n",
        encoding="utf-8",
    )
    (root / "README.md").write_text("Scenario: not a feature file\n", encoding="utf-8")
    return root


@pytest.fixture
def cucumber_report(tmp_path: Path) -> Path:
    """Cucumber JSON report with two keyed scenarios and one unkeyed."""
    report = [
        {
            "uri": "features/login.feature",
            "name": "User login",
            "elements": [
                {
                    "type": "background",
                    "name": "",
                    "steps": [{"result": {"status": "passed"}}],
                },
                {
                    "type": "scenario",
                    "name": "Valid login",
                    "tags": [{"name": "@smoke"}, {"name": "@XSP-12"}],
                    "steps": [
                        {"result": {"status": "passed"}},
                        {"result": {"status": "passed"}},
                    ],
                },
                {
                    "type": "scenario",
                    "name": "Invalid password",
                    "tags": [{"name": "@XSP-13"}],
                    "steps": [
                        {"result": {"status": "passed"}},
                        {"result": {"status": "failed"}},
                    ],
                },
                {
                    "type": "scenario",
                    "name": "Locked account",
                    "tags": [{"name": "@negative"}],
                    "steps": [{"result": {"status": "skipped"}}],
                },
            ],
        }
    ]
    path = tmp_path / "cucumber.json"
    path.write_text(json.dumps(report), encoding="utf-8")
    return path

