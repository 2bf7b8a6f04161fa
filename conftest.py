"""Root conftest.py for conformu.

Puts ``src`` on the import path, registers the suite's markers and marks
tests that replace real collaborators (mocks, fakes, stubs) with
``uses_mock`` so coverage from them can be reported separately.
"""

from __future__ import annotations

import ast
import inspect
import sys
import textwrap
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.nodes import Item


SRC_DIR = Path(__file__).parent / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

# Names whose use marks a test as not exercising the real collaborator
SUBSTITUTE_NAMES = frozenset({
    "MagicMock",
    "Mock",
    "patch",
    "create_autospec",
    "PropertyMock",
    "MockTransport",
})
SUBSTITUTE_WORDS = ("mock", "fake", "stub")


def pytest_configure(config: Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "uses_mock: Test substitutes a driver, transport or server (auto-detected)",
    )
    config.addinivalue_line(
        "markers",
        "integration: Test requiring a live Alpaca device",
    )
    config.addinivalue_line(
        "markers",
        "slow: Slow-running test",
    )


class SubstituteDetector(ast.NodeVisitor):
    """AST visitor that looks for mocks, fakes and stubs in a test body."""

    def __init__(self) -> None:
        self.found = False

    def visit_Name(self, node: ast.Name) -> None:
        lowered = node.id.lower()
        if node.id in SUBSTITUTE_NAMES or any(w in lowered for w in SUBSTITUTE_WORDS):
            self.found = True
        self.generic_visit(node)

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if node.attr in SUBSTITUTE_NAMES:
            self.found = True
        self.generic_visit(node)

    def visit_arg(self, node: ast.arg) -> None:
        if any(w in node.arg.lower() for w in SUBSTITUTE_WORDS):
            self.found = True
        self.generic_visit(node)


def _uses_substitute(item: Item) -> bool:
    """Return True if the test's name or source refers to a substitute."""
    if any(w in item.name.lower() for w in SUBSTITUTE_WORDS):
        return True
    obj = getattr(item, "obj", None)
    if obj is None:
        return False
    try:
        source = inspect.getsource(obj)
    except (OSError, TypeError):
        return False
    try:
        tree = ast.parse(textwrap.dedent(source))
    except SyntaxError:
        return False
    detector = SubstituteDetector()
    detector.visit(tree)
    return detector.found


def pytest_collection_modifyitems(config: Config, items: list[Item]) -> None:
    """Auto-mark tests that use substitutes."""
    for item in items:
        if item.get_closest_marker("uses_mock"):
            continue
        if _uses_substitute(item):
            item.add_marker(pytest.mark.uses_mock)


def pytest_report_header(config: Config) -> list[str]:
    """Add suite info to the pytest header."""
    lines = ["conformu test suite"]
    if getattr(config.option, "cov_source", None):
        lines.append("Coverage: enabled with mock detection")
    return lines
