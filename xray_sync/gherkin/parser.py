"""
Scenario Parser Module.

Turns the text of a Gherkin ``.feature`` file into an ordered list of
TestCaseDefinition records, one per Scenario / Scenario Outline.

The parser is line-oriented and structural only:
- The feature title is taken from the first ``Feature:`` line.
- Tags are collected from the contiguous tag/blank lines above each header.
- A scenario body runs from its header line until end-of-file, or until a
  blank line whose next line opens a tag, scenario or feature block.

It never raises on malformed input; the worst case is an empty result.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from loguru import logger

FALLBACK_FEATURE_TITLE = "Unknown Feature"

FEATURE_PATTERN = re.compile(r"^\s*Feature:\s*(.+)$")
SCENARIO_PATTERN = re.compile(
    r"^(?P<inline>\s*(?:@\S+\s+)*)Scenario(?:\s+Outline|\s+Template)?:(?P<title>.*)$"
)
TAG_PATTERN = re.compile(r"(?<!\S)@([^\s@]+)")
ISSUE_KEY_PATTERN = re.compile(r"^[A-Z][A-Z0-9_]*-\d+$")

# Line prefixes that open a new block after a blank line
BLOCK_STARTS = ("@", "Scenario", "Feature")


@dataclass(frozen=True)
class TestCaseDefinition:
    """
    One scenario extracted from a feature file.

    Attributes:
        title: Scenario title (never empty).
        tags: Tags above the header, without the leading '@', in source order.
        body_text: Verbatim scenario block, starting with the header line.
        source_feature_title: Title of the enclosing feature.
        source_file: Name of the file the scenario came from.
    """

    __test__ = False  # not a pytest test class

    title: str
    tags: Tuple[str, ...] = field(default_factory=tuple)
    body_text: str = ""
    source_feature_title: str = FALLBACK_FEATURE_TITLE
    source_file: str = ""

    @property
    def issue_keys(self) -> List[str]:
        """Tags that are tracker issue keys (e.g. "XSP-123")."""
        return [tag for tag in self.tags if ISSUE_KEY_PATTERN.match(tag)]

    @property
    def plain_tags(self) -> List[str]:
        """Tags that are not tracker issue keys."""
        return [tag for tag in self.tags if not ISSUE_KEY_PATTERN.match(tag)]


@dataclass
class _Accumulator:
    title: str
    tags: List[str]
    lines: List[str]

    def build(self, feature_title: str, source_file: str) -> TestCaseDefinition:
        lines = list(self.lines)
        while lines and not lines[-1].strip():
            lines.pop()
        return TestCaseDefinition(
            title=self.title,
            tags=tuple(self.tags),
            body_text="\n".join(lines),
            source_feature_title=feature_title,
            source_file=source_file,
        )


class ScenarioParser:
    """
    Parses feature file text into TestCaseDefinition records.

    Usage::

        parser = ScenarioParser()
        definitions = parser.parse_file("features/login.feature")
        for d in definitions:
            print(d.title, d.tags)
    """

    def parse(self, content: str, source_file: str = "") -> List[TestCaseDefinition]:
        """
        Parse feature file content.

        Args:
            content: Full text of a feature file.
            source_file: File name recorded on every definition.

        Returns:
            Definitions in source order. Empty if the text has no scenarios.
        """
        if not content:
            return []

        lines = content.splitlines()
        feature_title = self.extract_feature_title(lines)
        definitions: List[TestCaseDefinition] = []
        current: Optional[_Accumulator] = None
        in_scenario = False

        for index, line in enumerate(lines):
            match = SCENARIO_PATTERN.match(line)
            if match:
                if current is not None:
                    definitions.append(current.build(feature_title, source_file))
                    current = None

                title = match.group("title").strip()
                if not title:
                    logger.debug(
                        f"Skipping scenario without title at line {index + 1} "
                        f"of '{source_file or '<text>'}'"
                    )
                    in_scenario = False
                    continue

                tags = self.extract_preceding_tags(lines, index)
                tags.extend(TAG_PATTERN.findall(match.group("inline")))
                current = _Accumulator(title=title, tags=tags, lines=[line])
                in_scenario = True

            elif in_scenario and current is not None:
                if self._ends_scenario(lines, index):
                    in_scenario = False
                else:
                    current.lines.append(line)

        if current is not None:
            definitions.append(current.build(feature_title, source_file))

        logger.debug(
            f"Parsed {len(definitions)} scenario(s) from "
            f"'{source_file or '<text>'}' (feature: {feature_title})"
        )
        return definitions

    def parse_file(self, path: str | Path) -> List[TestCaseDefinition]:
        """
        Read and parse one feature file.

        The file name (not the full path) is recorded as ``source_file``.
        An unreadable or undecodable file is logged and yields no definitions.
        """
        feature_file = Path(path)
        try:
            content = self.read(feature_file)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error reading feature file {feature_file}: {e}")
            return []
        return self.parse(content, source_file=feature_file.name)

    @staticmethod
    def read(path: str | Path) -> str:
        """
        Read a feature file as UTF-8 text.

        Raises:
            OSError: If the file cannot be opened.
            UnicodeDecodeError: If the file is not valid UTF-8.
        """
        with Path(path).open("r", encoding="utf-8") as fh:
            return fh.read()

    @staticmethod
    def extract_feature_title(lines: List[str]) -> str:
        """Return the first ``Feature:`` title, or the fallback title."""
        for line in lines:
            match = FEATURE_PATTERN.match(line)
            if match and match.group(1).strip():
                return match.group(1).strip()
        return FALLBACK_FEATURE_TITLE

    @staticmethod
    def extract_preceding_tags(lines: List[str], header_index: int) -> List[str]:
        """
        Collect tags from the tag/blank lines directly above a header.

        Scanning stops at the first line that is neither blank nor a tag line.
        Tags keep their left-to-right, top-to-bottom order; duplicates stay.
        """
        groups: List[List[str]] = []
        for index in range(header_index - 1, -1, -1):
            stripped = lines[index].strip()
            if stripped.startswith("@"):
                groups.append(TAG_PATTERN.findall(stripped))
            elif stripped:
                break

        tags: List[str] = []
        for group in reversed(groups):
            tags.extend(group)
        return tags

    @staticmethod
    def _ends_scenario(lines: List[str], index: int) -> bool:
        """A blank line followed by the start of a new block ends a scenario."""
        if lines[index].strip() or index + 1 >= len(lines):
            return False
        return lines[index + 1].strip().startswith(BLOCK_STARTS)
