"""
Configuration management for the TaskBadge generator.

This module provides centralized configuration with:
- Environment and .env driven settings
- Type validation and defaults
- Scan, badge output and git commit settings
- Logging configuration
"""

from typing import Optional, Dict, Any
from pathlib import Path
from functools import lru_cache

from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings
from pydantic_settings import BaseSettings as PydanticBaseSettings


DEFAULT_BOT_NAME = "github-actions[bot]"
DEFAULT_BOT_EMAIL = "41898282+github-actions[bot]@users.noreply.github.com"
DEFAULT_COMMIT_MESSAGE = "Update task completion badges"


class ScanSettings(BaseSettings):
    """Task document discovery settings."""

    specs_dir: str = Field(default=".kiro/specs", description="Directory holding one sub-directory per spec")
    tasks_filename: str = Field(default="tasks.md", description="Task document name inside each spec directory")

    @field_validator("tasks_filename")
    @classmethod
    def validate_tasks_filename(cls, v):
        if not v or "/" in v or "\\" in v:
            raise ValueError("Tasks filename must be a bare file name")
        return v


class BadgeSettings(BaseSettings):
    """Badge artifact output settings."""

    output_dir: str = Field(default=".kiro", description="Directory receiving badge JSON files")
    global_filename: str = Field(default="badge-data-all.json", description="Global badge file name")
    spec_filename_suffix: str = Field(
        default="-badge-data.json", description="Suffix appended to the sanitized spec name"
    )
    global_label: str = Field(default="All Tasks", description="Label of the global badge")
    label_suffix: str = Field(default="Tasks", description="Suffix of per-spec badge labels")

    @field_validator("global_filename", "spec_filename_suffix")
    @classmethod
    def validate_filename(cls, v):
        if not v or "/" in v or "\\" in v:
            raise ValueError("Badge file names must not contain path separators")
        return v


class GitSettings(BaseSettings):
    """Git commit and push settings."""

    remote: str = Field(default="origin", description="Remote to push to")
    branch: Optional[str] = Field(default=None, description="Branch to push (current branch when unset)")
    user_name: str = Field(default=DEFAULT_BOT_NAME, description="Automation commit author name")
    user_email: str = Field(default=DEFAULT_BOT_EMAIL, description="Automation commit author email")
    commit_message: str = Field(default=DEFAULT_COMMIT_MESSAGE, description="Default commit message")
    token: Optional[SecretStr] = Field(default=None, description="Token used to authenticate the push")
    local_timeout: float = Field(default=10.0, description="Timeout for local git operations (seconds)")
    push_timeout: float = Field(default=60.0, description="Timeout for git push (seconds)")
    max_push_attempts: int = Field(default=3, description="Total push attempts before giving up")
    backoff_base: float = Field(default=2.0, description="First retry delay, doubled on every attempt")
    rebase_on_reject: bool = Field(default=True, description="Rebase onto the remote after a rejected push")

    @field_validator("local_timeout", "push_timeout")
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("Timeouts must be positive")
        return v

    @field_validator("max_push_attempts")
    @classmethod
    def validate_attempts(cls, v):
        if v < 1:
            raise ValueError("At least one push attempt is required")
        return v

    @field_validator("backoff_base")
    @classmethod
    def validate_backoff(cls, v):
        if v < 0:
            raise ValueError("Backoff base cannot be negative")
        return v

    @field_validator("commit_message")
    @classmethod
    def validate_commit_message(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Commit message cannot be empty")
        if "\n" in v or "\r" in v:
            raise ValueError("Commit message must be a single line")
        return v


class MonitoringSettings(BaseSettings):
    """Logging configuration settings."""

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Logging format string",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()


class Settings(PydanticBaseSettings):
    """
    Main application settings.

    Nested values are read from the environment with a double underscore
    delimiter, e.g. ``GIT__REMOTE=upstream`` or ``BADGE__OUTPUT_DIR=.badges``.
    """

    app_name: str = Field(default="TaskBadge", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")

    scan: ScanSettings = Field(default_factory=ScanSettings)
    badge: BadgeSettings = Field(default_factory=BadgeSettings)
    git: GitSettings = Field(default_factory=GitSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        valid_environments = ["development", "testing", "staging", "production"]
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v

    @field_validator("debug")
    @classmethod
    def validate_debug_mode(cls, v, info):
        if info.data.get("environment") == "production" and v:
            raise ValueError("Debug mode cannot be enabled in production")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "extra": "ignore"
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration object

    Example:
        >>> settings = get_settings()
        >>> print(settings.scan.specs_dir)
        >>> print(settings.git.remote)
    """
    return Settings()


# Global settings instance
settings = get_settings()


def validate_configuration(
    config: Optional[Settings] = None,
    workspace: Optional[Path] = None,
    token: Optional[str] = None,
    specs_dir: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Validate settings against the workspace and return validation results.

    ``token`` and ``specs_dir`` are command line overrides of the
    configured values.

    Returns:
        Dict[str, Any]: Validation results with status and errors

    Example:
        >>> validation = validate_configuration()
        >>> if not validation['valid']:
        >>>     print("Configuration errors:", validation['errors'])
    """
    config = config or settings
    root = Path(workspace or Path.cwd()).resolve()
    errors = []
    warnings = []

    if config.environment == "production" and not (token or config.git.token):
        errors.append("A push token is required in production")

    output_dir = (root / config.badge.output_dir).resolve()
    if not output_dir.is_relative_to(root):
        errors.append(f"Badge output directory escapes the workspace: {config.badge.output_dir}")

    specs_dir = specs_dir or config.scan.specs_dir
    if not (root / specs_dir).is_dir():
        warnings.append(f"Specs directory not found: {specs_dir}")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "environment": config.environment,
        "workspace": str(root),
    }


def export_config(config: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Export configuration for logs and diagnostics.

    Returns:
        Dict[str, Any]: Configuration export (without sensitive data)
    """
    config = config or settings
    return {
        "app_name": config.app_name,
        "version": config.version,
        "environment": config.environment,
        "debug": config.debug,
        "scan": {
            "specs_dir": config.scan.specs_dir,
            "tasks_filename": config.scan.tasks_filename,
        },
        "badge": {
            "output_dir": config.badge.output_dir,
            "global_filename": config.badge.global_filename,
            "spec_filename_suffix": config.badge.spec_filename_suffix,
        },
        "git": {
            "remote": config.git.remote,
            "branch": config.git.branch,
            "user_name": config.git.user_name,
            "token_configured": config.git.token is not None,
            "push_timeout": config.git.push_timeout,
            "max_push_attempts": config.git.max_push_attempts,
        },
        "monitoring": {
            "log_level": config.monitoring.log_level,
        },
    }


if __name__ == "__main__":
    """Configuration validation script."""
    import json

    validation = validate_configuration()
    config_export = export_config()

    print("Configuration Validation:")
    print(json.dumps(validation, indent=2))

    print("\nConfiguration Export:")
    print(json.dumps(config_export, indent=2))

    if not validation["valid"]:
        exit(1)
