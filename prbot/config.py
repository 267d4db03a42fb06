"""Configuration management using Pydantic BaseSettings.

This module provides centralized configuration management with validation,
type safety, and sensible defaults for prbot. Every field can be set from the
environment with the ``PRBOT_`` prefix (e.g. ``PRBOT_MAX_WORKERS=4``) or from
a ``.env`` file.
"""
from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Main configuration class combining all settings."""

    # GitHub API
    api_url: str = Field("https://api.github.com", description="GitHub REST API base URL")
    user_agent: str = Field("prbot/0.1", description="User-Agent sent with every request")
    timeout: int = Field(30, ge=5, le=120, description="Request timeout in seconds")
    token_file: str = Field("~/.prbot-token", description="File holding the GitHub auth token")

    # Target
    base_branch: str = Field("master", description="Branch scanned and targeted by the pull request")

    # Candidate selection
    suffix: str = Field(".go", description="Path suffix of eligible files")
    max_bytes: int = Field(1 << 20, ge=1, description="Files larger than this are skipped")

    # Formatter
    format_command: str = Field("gofmt", description="Command reading source on stdin and writing canonical form")

    # Worker pool
    max_workers: int = Field(10, ge=1, le=256, description="Maximum concurrent blob fetches")
    rate_limit_per_second: float = Field(0.0, ge=0.0, description="Blob fetches per second (0 = unlimited)")

    # Pull request content
    commit_message: str = Field("Run gofmt over Go source files.", description="Commit message")
    branch_name: str = Field("prbot-gofmt", description="Branch created in the fork")
    pr_title: str = Field("gofmt everything", description="Pull request title")
    pr_body: str = Field(
        "I ran gofmt over this repository using prbot, an automated tool.",
        description="Pull request body",
    )

    # Behaviour
    dry_run: bool = Field(False, description="Report changes without creating anything remotely")
    fail_on_errors: bool = Field(False, description="Exit non-zero when any file could not be checked")

    # Audit
    audit_enabled: bool = Field(True, description="Append workflow milestones to the audit file")
    audit_path: str = Field(".prbot_cache/audit.jsonl", description="Audit JSONL file")

    # Logging
    log_level: str = Field("INFO", description="Logging level")
    max_logged_source_bytes: int = Field(2000, ge=0, le=100000, description="Bytes of rejected source logged")

    model_config = SettingsConfigDict(
        env_prefix="PRBOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator('log_level')
    @classmethod
    def validate_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Invalid log level: {v}. Valid options: {valid_levels}')
        return v.upper()

    @field_validator('api_url')
    @classmethod
    def validate_api_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError('api_url must be an http(s) URL')
        return v.rstrip("/")

    @property
    def token_path(self) -> Path:
        """Token file with ``~`` expanded."""
        return Path(self.token_file).expanduser()

    def validate_configuration(self) -> List[str]:
        """Validate the complete configuration and return any issues."""
        issues = []

        if not self.suffix:
            issues.append("PRBOT_SUFFIX must not be empty")
        elif not self.suffix.startswith("."):
            issues.append("PRBOT_SUFFIX should start with a dot (e.g. .go)")

        if not self.format_command.strip():
            issues.append("PRBOT_FORMAT_COMMAND is required")

        if not self.branch_name or any(c.isspace() for c in self.branch_name):
            issues.append("PRBOT_BRANCH_NAME must be non-empty and contain no whitespace")

        if not self.base_branch:
            issues.append("PRBOT_BASE_BRANCH is required")

        if not self.commit_message.strip():
            issues.append("PRBOT_COMMIT_MESSAGE is required")

        if not self.pr_title.strip():
            issues.append("PRBOT_PR_TITLE is required")

        return issues

    def log_configuration(self) -> None:
        """Log the current configuration (the token is never read here)."""
        from prbot.utils.logger import log_info

        log_info("Configuration loaded",
                 api_url=self.api_url,
                 base_branch=self.base_branch,
                 suffix=self.suffix,
                 max_bytes=self.max_bytes,
                 format_command=self.format_command,
                 max_workers=self.max_workers,
                 rate_limit_per_second=self.rate_limit_per_second,
                 branch_name=self.branch_name,
                 dry_run=self.dry_run,
                 fail_on_errors=self.fail_on_errors,
                 log_level=self.log_level)


# Global configuration instance (lazy loading)
_config = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config() -> Config:
    """Reload configuration from environment variables."""
    global _config
    _config = Config()
    return _config
