"""Configuration models for the test engine."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)

GIB = 1024 ** 3


class ViewportConfig(BaseModel):
    width: int = 1280
    height: int = 800


class BrowserConfig(BaseModel):
    headless: bool = True
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    user_agent: str = DEFAULT_USER_AGENT
    launch_timeout_ms: int = 30000


class RetryConfig(BaseModel):
    """Linear backoff: the n-th retry waits ``base_delay_ms * n``."""

    max_attempts: int = Field(default=3, ge=1)
    base_delay_ms: int = Field(default=1000, ge=0)


class MemoryConfig(BaseModel):
    enabled: bool = True
    threshold_bytes: int = GIB
    recovery_delay_ms: int = 1000


class ArtifactConfig(BaseModel):
    results_dir: str = "testResults"
    screenshot_batch_size: int = Field(default=5, ge=1)
    full_page_screenshots: bool = True
    capture_success_screenshots: bool = False

    @property
    def screenshots_dir(self) -> Path:
        return Path(self.results_dir) / "screenshots"

    @property
    def logs_dir(self) -> Path:
        return Path(self.results_dir) / "logs"


class EngineConfig(BaseModel):
    # Driver
    browser: BrowserConfig = Field(default_factory=BrowserConfig)

    # Recovery
    retry: RetryConfig = Field(default_factory=RetryConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)

    # Artifacts
    artifacts: ArtifactConfig = Field(default_factory=ArtifactConfig)

    # Execution limits
    action_timeout_ms: int = 30000
    wait_default_ms: int = 5000
    assertion_timeout_ms: int = 5000
    case_timeout_seconds: float = 300.0
    max_suite_duration_seconds: Optional[float] = None

    # Multi-suite policy
    parallel_suites: bool = False
    max_parallel_suites: int = Field(default=3, ge=1)

    # Assertion defaults
    accepted_statuses: list[int] = Field(default_factory=lambda: [200])
    performance_threshold_ms: int = 3000

    # Run metadata
    environment: str = "default"
    run_by: Optional[str] = None

    @classmethod
    def load(cls, path: str | Path) -> "EngineConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
