"""JSON report output."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from webtest.models.test_run import TestSuiteRun, all_suites_summary, performance_metrics

logger = logging.getLogger(__name__)


def generate_json_report(suite_runs: list[TestSuiteRun], output_path: Path) -> None:
    """Write a machine-readable JSON report of the suite runs."""
    summary = all_suites_summary(suite_runs)
    report = {
        "summary": summary.model_dump(mode="json", by_alias=True),
        "performance": performance_metrics(
            summary.total_duration, summary.total_tests,
        ).model_dump(mode="json", by_alias=True),
        "testSuiteRuns": [r.model_dump(mode="json", by_alias=True) for r in suite_runs],
    }

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(report, f, indent=2, default=str)
    logger.info("JSON report saved to %s", output_path)
