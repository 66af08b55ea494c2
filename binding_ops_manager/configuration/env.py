"""Pydantic Settings model for application configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from binding_ops_manager.utils.constants import (
    DEFAULT_BINDING_WORK_DIR,
    DEFAULT_CORE_GIT_URL,
    DEFAULT_CORE_REPO,
    DEFAULT_CORE_WORK_DIR,
    DEFAULT_DEPENDENCY_NAME,
    DEFAULT_GIT_USER_EMAIL,
    DEFAULT_GIT_USER_NAME,
    DEFAULT_MANIFEST_PATH,
    DEFAULT_MERGE_MAX_ATTEMPTS,
    DEFAULT_MERGE_RETRY_DELAY_SECONDS,
)


class Settings(BaseSettings):
    """Environment variable settings for the application.

    Credentials (CI_ACCESS_TOKEN, MERGE_TOKEN, GITHUB_TOKEN and the GitHub App
    settings) are not held here; the CLI reads them from the environment when a
    command is invoked.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Generic application-wide settings
    DEBUG: bool = False

    # GitHub API settings
    GITHUB_API_URL: str = "https://api.github.com"

    # Merge retry settings
    MERGE_MAX_ATTEMPTS: int = DEFAULT_MERGE_MAX_ATTEMPTS
    MERGE_RETRY_DELAY_SECONDS: float = DEFAULT_MERGE_RETRY_DELAY_SECONDS

    # Dependency synchronization settings
    CORE_REPO: str = DEFAULT_CORE_REPO
    CORE_GIT_URL: str = DEFAULT_CORE_GIT_URL
    DEPENDENCY_NAME: str = DEFAULT_DEPENDENCY_NAME
    MANIFEST_PATH: Path = Path(DEFAULT_MANIFEST_PATH)
    CORE_WORK_DIR: str = DEFAULT_CORE_WORK_DIR
    BINDING_WORK_DIR: str = DEFAULT_BINDING_WORK_DIR
    GIT_USER_NAME: str = DEFAULT_GIT_USER_NAME
    GIT_USER_EMAIL: str = DEFAULT_GIT_USER_EMAIL


settings = Settings()
