#!/usr/bin/env python3
"""Structured build/test report produced from xcodebuild logs"""

from dataclasses import dataclass, field
from typing import Optional, Dict, List, Any, Tuple


def make_test_key(target: Optional[str], class_name: Optional[str], target_matching: bool = True) -> Optional[str]:
    """
    Key under which results of a test class are grouped.

    Returns:
        "Target:Class" when target matching is on and the target is known,
        otherwise "Class". None if there is no class name.
    """
    if not class_name:
        return None

    if target_matching and target:
        return f"{target}:{class_name}"
    return class_name


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _message_list(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(item) for item in value]
    if isinstance(value, str):
        return [value]
    return []


def _dict_items(value: Any) -> List[Dict[str, Any]]:
    # Anything but a list of objects reads as empty
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


@dataclass
class Issue:
    """A compiler diagnostic with an optional source location."""
    filepath: Optional[str] = None
    line_number: Optional[int] = None
    column_number: Optional[int] = None
    message: List[str] = field(default_factory=list)

    def location_key(self) -> Tuple:
        # Location-less diagnostics are told apart by their first message line
        if self.filepath is None:
            return (None, None, None, self.message[0] if self.message else "")
        return (self.filepath, self.line_number, self.column_number)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filepath": self.filepath,
            "lineNumber": self.line_number,
            "columnNumber": self.column_number,
            "message": list(self.message),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        return cls(
            filepath=data.get("filepath"),
            line_number=_optional_int(data.get("lineNumber")),
            column_number=_optional_int(data.get("columnNumber")),
            message=_message_list(data.get("message")),
        )


class BuildError(Issue):
    pass


class BuildWarning(Issue):
    pass


class Diagnostic(Issue):
    """An error raised while a test ran, located outside the test's own file."""
    pass


@dataclass
class TestResult:
    class_name: str
    name: str
    success: bool = False
    target: Optional[str] = None
    time: Optional[str] = None
    filepath: Optional[str] = None
    line_number: Optional[int] = None
    message: List[str] = field(default_factory=list)

    # Keep pytest from collecting this class
    __test__ = False

    @property
    def identifier(self) -> str:
        """Test identifier in "Target/Class/name" form (or "Class/name")."""
        if self.target:
            return f"{self.target}/{self.class_name}/{self.name}"
        return f"{self.class_name}/{self.name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "class": self.class_name,
            "name": self.name,
            "success": self.success,
            "time": self.time,
            "filepath": self.filepath,
            "lineNumber": self.line_number,
            "message": list(self.message),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestResult":
        return cls(
            class_name=str(data.get("class") or ""),
            name=str(data.get("name") or ""),
            success=data.get("success") is True,
            target=data.get("target"),
            time=data.get("time"),
            filepath=data.get("filepath"),
            line_number=_optional_int(data.get("lineNumber")),
            message=_message_list(data.get("message")),
        )


@dataclass
class Report:
    """
    Aggregate of one build or test run.

    Test results are grouped per test-class key, classes in first-seen order.
    `output` holds the raw log lines and is never persisted.
    """
    build_errors: List[BuildError] = field(default_factory=list)
    warnings: List[BuildWarning] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    tests: Dict[str, List[TestResult]] = field(default_factory=dict)
    tests_count: int = 0
    failed_tests_count: int = 0
    output: List[str] = field(default_factory=list)
    xcresult_filepath: Optional[str] = None

    @property
    def success_count(self) -> int:
        return self.tests_count - self.failed_tests_count

    @property
    def build_succeeded(self) -> bool:
        return not self.build_errors

    def all_tests(self) -> List[TestResult]:
        return [test for tests in self.tests.values() for test in tests]

    def failed_tests(self) -> List[TestResult]:
        return [test for test in self.all_tests() if not test.success]

    def recount(self):
        """Recompute the test counters from the grouped results."""
        all_tests = self.all_tests()
        self.tests_count = len(all_tests)
        self.failed_tests_count = sum(1 for test in all_tests if not test.success)

    def to_dict(self, include_output: bool = False) -> Dict[str, Any]:
        data = {
            "buildErrors": [error.to_dict() for error in self.build_errors],
            "warnings": [warning.to_dict() for warning in self.warnings],
            "diagnostics": [diagnostic.to_dict() for diagnostic in self.diagnostics],
            "tests": {
                key: [test.to_dict() for test in tests]
                for key, tests in self.tests.items()
            },
            "testsCount": self.tests_count,
            "failedTestsCount": self.failed_tests_count,
            "xcresultFilepath": self.xcresult_filepath,
        }
        if include_output:
            data["output"] = list(self.output)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Report":
        tests = {}
        raw_tests = data.get("tests") or {}
        if isinstance(raw_tests, dict):
            for key, items in raw_tests.items():
                if isinstance(items, list):
                    tests[str(key)] = [TestResult.from_dict(item) for item in _dict_items(items)]

        xcresult = data.get("xcresultFilepath")
        report = cls(
            build_errors=[BuildError.from_dict(item) for item in _dict_items(data.get("buildErrors"))],
            warnings=[BuildWarning.from_dict(item) for item in _dict_items(data.get("warnings"))],
            diagnostics=[Diagnostic.from_dict(item) for item in _dict_items(data.get("diagnostics"))],
            tests=tests,
            xcresult_filepath=xcresult if isinstance(xcresult, str) else None,
        )
        report.recount()
        return report
