"""
Xray Sync - Test Suite Package.

Contains Pytest-based unit tests organized by module:
- test_gherkin_parser: Feature file parsing.
- test_jira_client: Authentication, Xray client, models and report reading.
- test_orchestrator: Test creation and result upload flows.
- test_config: Settings loading and schema validation.
"""
