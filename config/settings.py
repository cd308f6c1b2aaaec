"""
Settings Configuration
Pydantic-backed configuration for the run completion pipeline
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from executor.policy import RetryPolicy
from utils.exceptions import ConfigurationError


class QaseSettings(BaseSettings):
    """Test-management API credentials and endpoint"""
    api_token: Optional[str] = Field(default=None, description="API token sent in the Token header")
    project_code: Optional[str] = Field(default=None, description="Project code")
    base_url: str = Field(default="https://api.qase.io/v1", description="API base URL")

    class Config:
        env_prefix = "QASE_"


class ExecutorSettings(BaseSettings):
    """Shared executor limits"""
    max_concurrent: int = Field(default=5, ge=1, description="Concurrent in-flight calls")
    requests_per_second: float = Field(default=5.0, gt=0, description="Global request pacing")

    class Config:
        env_prefix = "EXECUTOR_"


class RetrySettings(BaseSettings):
    """Retry profile for read calls (run lookups, listings)"""
    max_retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    initial_delay: float = Field(default=0.5, ge=0, description="First backoff delay (seconds)")
    max_delay: float = Field(default=10.0, ge=0, description="Backoff ceiling (seconds)")
    backoff_factor: float = Field(default=2.0, ge=1, description="Backoff multiplier")
    request_timeout: float = Field(default=30.0, gt=0, description="Per-attempt timeout (seconds)")

    class Config:
        env_prefix = "RETRY_"

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
            max_delay=self.max_delay,
            backoff_factor=self.backoff_factor,
            request_timeout=self.request_timeout,
        )


class CompletionRetrySettings(RetrySettings):
    """Conservative retry profile for the non-idempotent completion call"""
    max_retries: int = Field(default=2, ge=0)
    initial_delay: float = Field(default=0.3, ge=0)
    max_delay: float = Field(default=5.0, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1)
    request_timeout: float = Field(default=20.0, gt=0)

    class Config:
        env_prefix = "COMPLETION_RETRY_"


class FetchSettings(BaseSettings):
    """Result ingestion and run listing"""
    page_size: int = Field(default=100, ge=1, le=100, description="Entities per page")
    requests_per_second: float = Field(default=6.0, gt=0, description="Pacing for page fetches")
    max_consecutive_failures: int = Field(default=3, ge=1, description="Listing gives up after this many failed pages")

    class Config:
        env_prefix = "FETCH_"


class PathSettings(BaseSettings):
    """Hand-off files between stages"""
    results_log: str = Field(default="results.json", description="Result log, one JSON object per line")
    selected_path: str = Field(default="filtered.txt", description="Run IDs passing selection")
    confirmed_path: str = Field(default="final.txt", description="Run IDs passing validation")
    error_ledger: str = Field(default="errors.txt", description="Append-only completion failure ledger")

    class Config:
        env_prefix = "PIPELINE_"


class Settings(BaseSettings):
    """Top-level settings aggregating every sub-config"""

    qase: QaseSettings = Field(default_factory=QaseSettings)
    executor: ExecutorSettings = Field(default_factory=ExecutorSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    completion_retry: CompletionRetrySettings = Field(default_factory=CompletionRetrySettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    paths: PathSettings = Field(default_factory=PathSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """Load settings, reading an optional .env file into the environment first"""
        if env_path is None:
            env_path = Path.cwd() / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            qase=QaseSettings(),
            executor=ExecutorSettings(),
            retry=RetrySettings(),
            completion_retry=CompletionRetrySettings(),
            fetch=FetchSettings(),
            paths=PathSettings(),
        )

    def require_credentials(self) -> None:
        """Pre-flight check; the only pipeline-fatal condition."""
        missing = []
        if not (self.qase.api_token or "").strip():
            missing.append("QASE_API_TOKEN")
        if not (self.qase.project_code or "").strip():
            missing.append("QASE_PROJECT_CODE")
        if missing:
            raise ConfigurationError(
                "Missing required environment variables",
                {"missing": missing},
            )


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings singleton"""
    return Settings.load_from_env_file()


def get_qase_settings() -> QaseSettings:
    return get_settings().qase


def get_executor_settings() -> ExecutorSettings:
    return get_settings().executor


def get_path_settings() -> PathSettings:
    return get_settings().paths
