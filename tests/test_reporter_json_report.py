"""Tests for the JSON report generator."""

import json

from webtest.models.test_run import TestRun, TestStatus, TestSuiteRun
from webtest.reporter.json_report import generate_json_report


def _suite_run(suite_id: str, *statuses: TestStatus) -> TestSuiteRun:
    suite_run = TestSuiteRun(test_suite_id=suite_id, total_tests=len(statuses))
    for i, status in enumerate(statuses):
        run = TestRun(test_case_id=f"{suite_id}-{i}")
        if status == TestStatus.BLOCKED:
            run.close_without_running(status, "Test blocked due to failed dependencies")
        else:
            run.start()
            run.finish(status, error_message="boom" if status == TestStatus.FAILED else None)
        suite_run.add_run(run)
    suite_run.finalize(TestStatus.FAILED if TestStatus.FAILED in statuses else TestStatus.PASSED)
    return suite_run


class TestJsonReport:
    def test_report_structure(self, tmp_path):
        runs = [
            _suite_run("auth", TestStatus.PASSED, TestStatus.PASSED),
            _suite_run("cart", TestStatus.PASSED, TestStatus.FAILED, TestStatus.BLOCKED),
        ]
        output = tmp_path / "reports" / "report.json"

        generate_json_report(runs, output)

        report = json.loads(output.read_text())
        assert set(report) == {"summary", "performance", "testSuiteRuns"}
        assert report["summary"]["totalSuites"] == 2
        assert report["summary"]["passedSuites"] == 1
        assert report["summary"]["failedSuites"] == 1
        assert report["summary"]["totalTests"] == 5
        assert report["summary"]["blockedTests"] == 1

    def test_runs_serialized_with_wire_names(self, tmp_path):
        output = tmp_path / "report.json"
        generate_json_report([_suite_run("cart", TestStatus.FAILED)], output)

        (suite_run,) = json.loads(output.read_text())["testSuiteRuns"]
        assert suite_run["testSuiteId"] == "cart"
        assert suite_run["status"] == "FAILED"
        test_run = suite_run["testRuns"][0]
        assert test_run["testCaseId"] == "cart-0"
        assert test_run["errorMessage"] == "boom"
        assert test_run["status"] == "FAILED"

    def test_empty_report(self, tmp_path):
        output = tmp_path / "report.json"
        generate_json_report([], output)

        report = json.loads(output.read_text())
        assert report["summary"]["totalSuites"] == 0
        assert report["performance"]["averageTestDuration"] == 0.0
        assert report["testSuiteRuns"] == []
