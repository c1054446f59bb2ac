"""
Configuration data models for boardsync.

These models define the structure of .boardsync.json and
~/.config/boardsync/config.json files, with validation and type safety
via Pydantic.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from boardsync.core.tasks.models import TaskStatus


class StorageConfig(BaseModel):
    """Where local state (tasks, boards, integrations) is kept."""

    data_dir: Path = Field(
        default=Path(".boardsync"),
        description="Directory holding tasks.json and integrations.json",
    )
    backend: str = Field(
        default="json",
        description="Task store backend (json, memory)",
    )


class SyncConfig(BaseModel):
    """
    Reconciliation settings.

    Items of one sync run are processed on a bounded worker pool.
    """

    max_workers: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Maximum remote items processed concurrently per sync run",
    )
    default_status: TaskStatus = Field(
        default=TaskStatus.BACKLOG,
        description="Local status for remote values with no mapping",
    )


class GitHubConfig(BaseModel):
    """GitHub Projects (v2) connector settings."""

    api_url: str = Field(
        default="https://api.github.com/graphql",
        description="GraphQL endpoint",
    )
    token_env: str = Field(
        default="GITHUB_TOKEN",
        description="Environment variable holding the personal access token",
    )
    page_size: int = Field(
        default=50,
        ge=1,
        le=100,
        description="Project items fetched per GraphQL page",
    )
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")


class AzureDevOpsConfig(BaseModel):
    """Azure DevOps Work Items connector settings."""

    organization: Optional[str] = Field(
        default=None,
        description="Azure DevOps organization (dev.azure.com/<organization>)",
    )
    base_url: str = Field(default="https://dev.azure.com", description="Service root URL")
    pat_env: str = Field(
        default="AZURE_DEVOPS_PAT",
        description="Environment variable holding the personal access token",
    )
    api_version: str = Field(default="7.0", description="REST api-version parameter")
    batch_size: int = Field(
        default=200,
        ge=1,
        le=200,
        description="Work items fetched per batch request",
    )
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")


class RetryConfig(BaseModel):
    """Retry policy for transient HTTP failures (5xx, timeouts, connection errors)."""

    max_retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    base_delay: float = Field(default=1.0, gt=0, description="Delay before the first retry")
    multiplier: float = Field(default=2.0, ge=1.0, description="Backoff multiplier")


class BoardsyncConfig(BaseModel):
    """
    Top-level boardsync configuration.

    Loaded from defaults < user config < project config < env vars by
    `boardsync.core.config.load_config`.

    Example:
        >>> config = BoardsyncConfig()
        >>> config.sync.max_workers
        4
        >>> config.github.token_env
        'GITHUB_TOKEN'
    """

    storage: StorageConfig = Field(default_factory=StorageConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    azure_devops: AzureDevOpsConfig = Field(default_factory=AzureDevOpsConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("azure_devops", mode="before")
    @classmethod
    def validate_azure_devops(cls, v: object) -> object:
        """Accept a bare organization string as shorthand."""
        if isinstance(v, str):
            return {"organization": v}
        return v

    def resolve_data_dir(self, project_dir: Path | None = None) -> Path:
        """Data directory, resolved against the project directory when relative."""
        data_dir = self.storage.data_dir
        if data_dir.is_absolute():
            return data_dir
        return (project_dir or Path.cwd()) / data_dir
