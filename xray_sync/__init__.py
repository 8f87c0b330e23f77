"""
Xray Sync - Core Source Package.

This package contains the core logic for:
- Gherkin: Parsing .feature files into test-case definitions.
- Jira Client: Xray API integration for test creation and result upload.
- Sync: Directory-level test creation and report upload flows.
- Configuration: Settings loading and validation.
"""

__version__ = "0.1.0"
