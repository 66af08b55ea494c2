"""Reconciled configuration passed from the CLI into the synchronization workflow."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

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


class GitHubAuthenticationType(str, Enum):
    """Enum for GitHub authentication types."""

    PAT = "pat"
    APP = "app"


@dataclass(frozen=True)
class GitHubCredentials:
    """Credentials for the GitHub API scope (listing pull requests and enabling merges)."""

    github_api_url: str
    github_authentication_type: GitHubAuthenticationType
    github_pat_token: str | None = None
    github_app_id: int | None = None
    github_app_private_key_path: Path | None = None
    github_app_installation_id: int | None = None


@dataclass(frozen=True)
class MergeRetryPolicy:
    """Bounds of the auto-merge retry loop."""

    max_attempts: int = DEFAULT_MERGE_MAX_ATTEMPTS
    delay_seconds: float = DEFAULT_MERGE_RETRY_DELAY_SECONDS


@dataclass(frozen=True)
class BindingSyncConfig:
    """Configuration for the sync-binding command."""

    push_token: str | None = None
    manifest_path: Path = Path(DEFAULT_MANIFEST_PATH)
    dependency_name: str = DEFAULT_DEPENDENCY_NAME
    core_repo: str = DEFAULT_CORE_REPO
    core_git_url: str = DEFAULT_CORE_GIT_URL
    git_host: str = "github.com"
    git_user_name: str = DEFAULT_GIT_USER_NAME
    git_user_email: str = DEFAULT_GIT_USER_EMAIL
    workspace: Path = Path(".")
    core_work_dir: str = DEFAULT_CORE_WORK_DIR
    binding_work_dir: str = DEFAULT_BINDING_WORK_DIR
    verify_core_revision: bool = True
