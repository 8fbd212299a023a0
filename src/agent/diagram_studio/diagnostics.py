"""Turn raw diagram-engine error text into a line/column Diagnostic.

Locating the error is a ranked list of strategies, first match wins:
explicit "line N" patterns in the message come first, then keyword
heuristics that look at the message and, if needed, scan the source.
"""
import logging
import re
from dataclasses import dataclass
from typing import Protocol

from .schema import Diagnostic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Location:
    line: int | None = None
    column: int | None = None


class LocateStrategy(Protocol):
    name: str

    def locate(self, message: str, source: str) -> Location | None:
        ...


@dataclass(frozen=True)
class PatternStrategy:
    """Read line (and optional column) from the message itself."""

    name: str
    pattern: re.Pattern

    def locate(self, message: str, source: str) -> Location | None:
        match = self.pattern.search(message)
        if match is None:
            return None
        groups = [int(g) for g in match.groups() if g is not None]
        return Location(line=groups[0], column=groups[1] if len(groups) > 1 else None)


def _pattern(name: str, regex: str) -> PatternStrategy:
    return PatternStrategy(name, re.compile(regex, re.IGNORECASE))


@dataclass(frozen=True)
class KeywordFirstLineStrategy:
    """Messages about the diagram header or an expected token point at line 1."""

    name: str = "keyword-first-line"
    keywords: re.Pattern = re.compile(r"\b(?:diagram|expected)\b", re.IGNORECASE)

    def locate(self, message: str, source: str) -> Location | None:
        if self.keywords.search(message):
            return Location(line=1)
        return None


_BRACKETS = {")": "(", "]": "[", "}": "{"}
_QUOTED = re.compile(r'"[^"]*"')
_MALFORMED_ARROW = re.compile(
    r"(?<![-=.<])->(?![>)])"  # single-dash arrow; ->> and -) are sequence arrows
    r"|(?:--+>?|==+>?)\s*$"  # dangling arrow with no target
    r"|^\s*(?:--+>|==+>)"  # arrow with no source
)


def has_unbalanced_brackets(line: str) -> bool:
    stack: list[str] = []
    for char in _QUOTED.sub("", line):
        if char in "([{":
            stack.append(char)
        elif char in _BRACKETS:
            if not stack or stack.pop() != _BRACKETS[char]:
                return True
    return bool(stack)


_SKIP_LINE = re.compile(r"^\s*(?:%%|-{3,}\s*$)")


def has_malformed_arrow(line: str) -> bool:
    # Comments and front-matter delimiters are not edges.
    if _SKIP_LINE.match(line):
        return False
    return _MALFORMED_ARROW.search(_QUOTED.sub('""', line)) is not None


@dataclass(frozen=True)
class SourceScanStrategy:
    """For syntax complaints without a position, report the first suspicious line."""

    name: str = "source-scan"
    keywords: re.Pattern = re.compile(r"syntax|unexpected", re.IGNORECASE)

    def locate(self, message: str, source: str) -> Location | None:
        if not self.keywords.search(message):
            return None
        for number, line in enumerate(source.splitlines(), start=1):
            if has_unbalanced_brackets(line) or has_malformed_arrow(line):
                return Location(line=number)
        return None


DEFAULT_STRATEGIES: list[LocateStrategy] = [
    # "N:" alone; the N:M form is the next entry.
    _pattern("parse-error-line", r"parse error on line (\d+):(?!\d)"),
    _pattern("parse-error-line-column", r"parse error on line (\d+):(\d+)"),
    _pattern("error-at-line-column", r"error at line (\d+) column (\d+)"),
    _pattern("line-colon-column", r"line (\d+):(\d+)"),
    _pattern("syntax-error-at-line", r"syntax error at line (\d+)"),
    _pattern("error-on-line", r"error on line (\d+)"),
    _pattern("bare-line", r"line (\d+)"),
    KeywordFirstLineStrategy(),
    SourceScanStrategy(),
]


def locate_error(message: str, source: str, strategies: list[LocateStrategy] | None = None) -> Location:
    for strategy in strategies if strategies is not None else DEFAULT_STRATEGIES:
        location = strategy.locate(message, source)
        if location is not None:
            logger.debug("Error located by %s: %s", strategy.name, location)
            return location
    return Location()


_PREFIX = re.compile(r"^(?:(?:parse\s+|syntax\s+)?error(?:\s+\d{3})?\s*:\s*)+", re.IGNORECASE)
_POSITION = re.compile(r"\s*\b(?:at|on)\s+line\s+\d+(?::\d+)?(?:\s*,?\s*column\s+\d+)?", re.IGNORECASE)
_REDUNDANT = re.compile(r"^(?:parse|syntax)?\s*error\W*$", re.IGNORECASE)
_POINTER = re.compile(r"^[-\s.]*\^[-\s]*$")
_CODE_ECHO = re.compile(r"^\.\.\.")


def clean_message(raw: str) -> str:
    """Strip redundant prefixes and "on line N" positions, capitalize, punctuate.

    Mermaid's parse errors put the useful part on the last line
    ("Expecting 'SQE', got 'PS'"); when the headline is nothing but
    "Parse error on line N:" that detail line is used instead.
    """
    lines = [line.strip() for line in raw.strip().splitlines() if line.strip()]
    if not lines:
        return "Invalid diagram syntax."
    headline = _POSITION.sub("", _PREFIX.sub("", lines[0])).strip().rstrip(":").strip()
    if not headline or _REDUNDANT.match(headline):
        details = [l for l in lines[1:] if not _POINTER.match(l) and not _CODE_ECHO.match(l)]
        if details:
            headline = _PREFIX.sub("", details[-1]).strip()
    if not headline:
        headline = "Invalid diagram syntax"
    headline = headline[0].upper() + headline[1:]
    if headline[-1] not in ".!?":
        headline += "."
    return headline


def build_diagnostic(raw: str, source: str, strategies: list[LocateStrategy] | None = None) -> Diagnostic:
    location = locate_error(raw, source, strategies)
    return Diagnostic(message=clean_message(raw), line=location.line, column=location.column)
