"""CLI entry point for the web test engine."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from webtest.crawler.crawler import Crawler
from webtest.errors import SuiteNotFoundError, ValidationError, WebTestError
from webtest.executor.evidence_collector import ArtifactStore
from webtest.executor.executor import Executor
from webtest.models.config import EngineConfig
from webtest.models.test_run import TestStatus, TestSuiteRun
from webtest.models.test_suite import TestSuite
from webtest.reporter.json_report import generate_json_report

console = Console()

DEFAULT_CONFIG = "webtest-config.json"

_STATUS_STYLES = {
    TestStatus.PASSED: "green",
    TestStatus.FAILED: "red",
    TestStatus.BLOCKED: "yellow",
    TestStatus.SKIPPED: "dim",
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def load_config(path: str) -> EngineConfig:
    """Load ``path`` if it exists, otherwise fall back to defaults."""
    if Path(path).exists():
        return EngineConfig.load(path)
    return EngineConfig()


def load_suites(path: str) -> list[TestSuite]:
    """Read suites from a JSON file holding one suite, a list, or ``{"testSuites": [...]}``."""
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("testSuites", [data])
    return [TestSuite.model_validate(s) for s in data]


def _styled(status: TestStatus) -> str:
    style = _STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def _print_suite_runs(suite_runs: list[TestSuiteRun]) -> None:
    table = Table(title="Test Suite Results")
    table.add_column("Suite", style="bold")
    table.add_column("Status")
    table.add_column("Total", justify="right")
    table.add_column("Passed", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Blocked", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Duration", justify="right")
    for run in suite_runs:
        table.add_row(
            run.test_suite_id,
            _styled(run.status),
            str(run.total_tests),
            f"[green]{run.passed_tests}[/green]",
            f"[red]{run.failed_tests}[/red]",
            f"[yellow]{run.blocked_tests}[/yellow]",
            str(run.skipped_tests),
            f"{(run.duration or 0) / 1000:.1f}s",
        )
    console.print(table)

    for run in suite_runs:
        for test_run in run.test_runs:
            if test_run.status == TestStatus.FAILED:
                console.print(f"  [red]✗[/red] {test_run.test_case_id}: {test_run.error_message}")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Functional test engine for web applications"""
    setup_logging(verbose)


@cli.command()
@click.argument("suites_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--suite-id", "-s", default=None, help="Run only the suite with this ID")
@click.option("--parallel/--sequential", default=None, help="Multi-suite policy (default from config)")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
@click.option("--report", "-r", default=None, help="Write a JSON report to this path")
def run(suites_file: str, suite_id: str | None, parallel: bool | None, config: str, report: str | None) -> None:
    """Run test suites from a JSON file."""
    cfg = load_config(config)
    suites = load_suites(suites_file)
    executor = Executor(cfg)

    async def _run() -> list[TestSuiteRun]:
        if suite_id:
            try:
                return [await executor.run_test_suite_by_id(suites, suite_id)]
            finally:
                await executor.shutdown()
        return await executor.run_all_test_suites(suites, parallel=parallel)

    try:
        suite_runs = asyncio.run(executor.measure_performance(_run, "Test run"))
    except SuiteNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    except WebTestError as e:
        console.print(f"[red]Test run aborted:[/red] {e}")
        sys.exit(1)

    _print_suite_runs(suite_runs)
    summary = executor.get_all_suites_summary(suite_runs)
    console.print(
        f"\n[bold]{summary.passed_tests}/{summary.total_tests} tests passed[/bold] "
        f"across {summary.total_suites} suites ({summary.total_duration / 1000:.1f}s)"
    )
    if report:
        generate_json_report(suite_runs, Path(report))
        console.print(f"  JSON report: [blue]{report}[/blue]")

    if any(r.status != TestStatus.PASSED for r in suite_runs):
        sys.exit(1)


@cli.command()
@click.argument("url")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
@click.option("--output", "-o", default=None, help="Write the crawl result as JSON to this path")
def crawl(url: str, config: str, output: str | None) -> None:
    """Discover testable elements on a page."""
    cfg = load_config(config)

    async def _crawl():
        async with Crawler(cfg) as crawler:
            result = await crawler.crawl_page(url)
            return result, crawler.get_stats()

    try:
        result, stats = asyncio.run(_crawl())
    except WebTestError as e:
        console.print(f"[red]Crawl failed:[/red] {e}")
        sys.exit(1)

    table = Table(title=f"Testable elements on {result.title or url}")
    table.add_column("Type", style="bold")
    table.add_column("Identifier")
    table.add_column("Text")
    table.add_column("Children", justify="right")
    for element in result.elements:
        table.add_row(
            element.type,
            f"{element.identifier.kind}:{element.identifier.value}",
            (element.inner_text or "")[:40],
            str(len(element.child_elements or [])),
        )
    console.print(table)
    console.print(
        f"[green]Crawl complete:[/green] {stats.elements_found} elements in {stats.crawl_duration}ms"
    )

    if output:
        Path(output).write_text(result.model_dump_json(by_alias=True, indent=2))
        console.print(f"  Result: [blue]{output}[/blue]")


@cli.command()
@click.argument("test_id")
@click.option("--type", "kind", type=click.Choice(["screenshot", "logs"]), default="logs",
              help="Artifact type")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def artifacts(test_id: str, kind: str, config: str) -> None:
    """List stored artifacts for a test case."""
    cfg = load_config(config)
    store = ArtifactStore(cfg.artifacts)
    try:
        found = store.list_artifacts(test_id, kind)
    except ValidationError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    if not found:
        console.print(f"[yellow]No {kind} artifacts for {test_id}[/yellow]")
        return

    table = Table(title=f"{kind.capitalize()} artifacts for {test_id}")
    table.add_column("Name", style="bold")
    table.add_column("Created")
    table.add_column("Size", justify="right")
    table.add_column("Status")
    for artifact in found:
        status = artifact.content.get("status", "") if isinstance(artifact.content, dict) else ""
        table.add_row(artifact.name, artifact.created_at.isoformat(timespec="seconds"),
                      str(artifact.size), status)
    console.print(table)


@cli.command()
def init() -> None:
    """Create a default configuration file."""
    config_path = Path(DEFAULT_CONFIG)
    if config_path.exists():
        if not click.confirm(f"{DEFAULT_CONFIG} already exists. Overwrite?"):
            return

    EngineConfig().save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nYou can now customize this file and run:")
    console.print("  [blue]webtest run suites.json[/blue]")


if __name__ == "__main__":
    cli()
