"""
Gherkin Module.

Structural parsing of Gherkin feature files into test-case definitions
for Xray test issue creation.
"""

from xray_sync.gherkin.parser import ScenarioParser, TestCaseDefinition

__all__ = ["ScenarioParser", "TestCaseDefinition"]
