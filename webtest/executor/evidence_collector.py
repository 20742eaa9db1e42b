"""Artifact pipeline: screenshots, per-run JSON logs, and network observations."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Literal, Optional

from playwright.async_api import Page, Request, Response
from pydantic import BaseModel

from webtest.errors import ValidationError
from webtest.models.config import ArtifactConfig
from webtest.models.test_run import TestRun, utc_now

logger = logging.getLogger(__name__)

ArtifactKind = Literal["screenshot", "logs"]

_LOG_FIELDS = {
    "test_case_id",
    "status",
    "started_at",
    "completed_at",
    "duration",
    "error_message",
    "stack_trace",
    "logs",
}


def file_timestamp(moment: datetime | None = None) -> str:
    return (moment or utc_now()).strftime("%Y-%m-%dT%H-%M-%S-%fZ")


def to_data_uri(data: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


@dataclass
class ScreenshotJob:
    """A captured screenshot waiting to be written to disk."""

    test_case_id: str
    data: bytes
    label: str = ""
    sequence: int = 0
    captured_at: datetime = field(default_factory=utc_now)


class ArtifactInfo(BaseModel):
    name: str
    path: str
    created_at: datetime
    size: int
    content: Optional[Any] = None


class ArtifactStore:
    """Captures screenshots and writes run logs under the results directory.

    Screenshot bytes are captured immediately (the page may close right
    after) but file writes are queued and flushed in fixed-size batches by
    ``process_screenshot_queue``. Run logs are written one JSON document per
    TestRun as soon as the run completes.
    """

    def __init__(self, config: ArtifactConfig):
        self.config = config
        self.screenshots_dir = config.screenshots_dir
        self.logs_dir = config.logs_dir
        self._queue: list[ScreenshotJob] = []
        self._screenshot_count = 0

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    def ensure_directories(self) -> None:
        self.screenshots_dir.mkdir(parents=True, exist_ok=True)
        self.logs_dir.mkdir(parents=True, exist_ok=True)

    async def capture_screenshot(
        self, page: Page, test_case_id: str, label: str = "",
    ) -> str | None:
        """Screenshot the page, queue the PNG for writing, return it as a data URI."""
        try:
            data = await page.screenshot(full_page=self.config.full_page_screenshots, type="png")
        except Exception as e:
            logger.warning("Screenshot failed for %s: %s", test_case_id, e)
            return None
        self.queue_screenshot(test_case_id, data, label)
        return to_data_uri(data)

    def queue_screenshot(self, test_case_id: str, data: bytes, label: str = "") -> None:
        self._screenshot_count += 1
        self._queue.append(ScreenshotJob(
            test_case_id=test_case_id, data=data, label=label, sequence=self._screenshot_count,
        ))

    def _write_screenshot(self, job: ScreenshotJob) -> Path:
        parts = [job.test_case_id]
        if job.label:
            parts.append(job.label)
        parts.append(file_timestamp(job.captured_at))
        parts.append(str(job.sequence))
        path = self.screenshots_dir / ("_".join(parts) + ".png")
        path.write_bytes(job.data)
        return path

    async def process_screenshot_queue(self) -> list[Path]:
        """Write every queued screenshot, ``screenshot_batch_size`` at a time."""
        if not self._queue:
            return []
        self.ensure_directories()
        batch_size = self.config.screenshot_batch_size
        written: list[Path] = []
        while self._queue:
            batch = self._queue[:batch_size]
            del self._queue[:batch_size]
            results = await asyncio.gather(
                *(asyncio.to_thread(self._write_screenshot, job) for job in batch),
                return_exceptions=True,
            )
            for job, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.error("Failed to write screenshot for %s: %s", job.test_case_id, result)
                else:
                    logger.debug("Screenshot saved to %s", result)
                    written.append(result)
        logger.info("Flushed %d screenshots to %s", len(written), self.screenshots_dir)
        return written

    def save_test_logs(self, test_run: TestRun) -> Path:
        """Persist a run's status, timing, error and logs as one JSON document."""
        self.ensure_directories()
        path = self.logs_dir / f"{test_run.test_case_id}_{file_timestamp()}.json"
        log_data = test_run.model_dump(mode="json", by_alias=True, include=_LOG_FIELDS)
        with open(path, "w") as f:
            json.dump(log_data, f, indent=2)
        logger.info("Test logs saved to %s", path)
        return path

    def list_artifacts(self, test_id: str, kind: ArtifactKind) -> list[ArtifactInfo]:
        """List artifacts whose file name starts with ``test_id``."""
        if kind not in ("screenshot", "logs"):
            raise ValidationError(f'Invalid artifact type "{kind}". Must be "screenshot" or "logs"')
        self.ensure_directories()
        base = self.screenshots_dir if kind == "screenshot" else self.logs_dir
        artifacts = []
        for path in sorted(base.iterdir()):
            if not path.name.startswith(test_id):
                continue
            stat = path.stat()
            content = None
            if kind == "logs":
                with open(path) as f:
                    content = json.load(f)
            artifacts.append(ArtifactInfo(
                name=path.name,
                path=str(path),
                created_at=datetime.fromtimestamp(stat.st_ctime),
                size=stat.st_size,
                content=content,
            ))
        return artifacts

    def clear(self) -> None:
        """Drop queued screenshots that were never written."""
        self._queue.clear()


class NetworkRecorder:
    """Records a page's requests and responses.

    ``response_cache`` may be shared across pages so that a whole suite run
    sees one cache keyed by URL.
    """

    def __init__(self, response_cache: dict[str, dict] | None = None):
        self.requests: list[dict] = []
        self.responses: list[dict] = []
        self.response_cache = response_cache if response_cache is not None else {}

    def attach(self, page: Page) -> None:
        page.on("request", self._on_request)
        page.on("response", self._on_response)

    def _on_request(self, request: Request) -> None:
        self.requests.append({
            "url": request.url,
            "method": request.method,
            "resource_type": request.resource_type,
        })

    def _on_response(self, response: Response) -> None:
        entry = {
            "url": response.url,
            "method": response.request.method,
            "status": response.status,
            "resource_type": response.request.resource_type,
        }
        self.responses.append(entry)
        self.response_cache[response.url] = {
            **entry,
            "status_text": response.status_text,
            "ok": response.ok,
            "headers": dict(response.headers),
        }


def response_details(response_cache: dict[str, dict]) -> list[dict]:
    return list(response_cache.values())
