"""GitHub client adapter for the PyGithub library.

PyGithub is synchronous; every API call is run in a worker thread so the
adapter exposes the same async interface as the rest of the application.
"""

import asyncio
from functools import wraps
from typing import Any, Awaitable, Callable, Literal, Self, TypeVar

import structlog
from github import Github, GithubException
from github.PullRequest import PullRequest
from github.PullRequestMergeStatus import PullRequestMergeStatus
from github.Repository import Repository

from binding_ops_manager.configuration.models import GitHubCredentials
from binding_ops_manager.utils.constants import MERGE_ATTEMPT_RATE_LIMIT_RETRIES
from binding_ops_manager.utils.github import split_repository_in_configuration
from binding_ops_manager.utils.retry import retry_on_rate_limit

from .abc import GitHubClientBase
from .client import get_github_client

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def log_github_422(func: F) -> F:
    """Decorator to log the details of GitHub 422 Unprocessable Entity errors before re-raising them."""

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except GithubException as exc:
            if exc.status == 422:
                error_data = exc.data if isinstance(exc.data, dict) else {}
                logger.error(
                    "GitHub 422 Unprocessable Entity",
                    function=func.__name__,
                    message=error_data.get("message", "Unprocessable Entity"),
                    errors=error_data.get("errors", []),
                    status_code=422,
                )
            raise

    return wrapper  # type: ignore


class GitHubAdapter(GitHubClientBase):
    """GitHub client adapter for the PyGithub library."""

    def __init__(self, client: Github, owner: str, repo_name: str) -> None:
        """Initialize the GitHub client adapter with an already-initialized client."""
        self.client = client
        self.owner = owner
        self.repo_name = repo_name
        self.repository: Repository = client.get_repo(f"{owner}/{repo_name}", lazy=True)

    @classmethod
    async def create(cls, repo: str, credentials: GitHubCredentials) -> Self:
        """Create a new GitHub client adapter.

        Args:
            repo: Repository in 'owner/repo' format
            credentials: Credentials for the GitHub API scope

        Returns:
            Configured GitHubAdapter instance

        Raises:
            ValueError: If the repository is malformed
        """
        owner, repo_name = await split_repository_in_configuration(repo=repo)
        logger.info(
            "Creating client for GitHub instance and repository",
            github_api_url=credentials.github_api_url,
            owner=owner,
            repo_name=repo_name,
            auth_type=credentials.github_authentication_type.value,
        )
        client = await get_github_client(
            github_auth_type=credentials.github_authentication_type,
            github_pat_token=credentials.github_pat_token,
            github_app_id=credentials.github_app_id,
            github_app_private_key_path=credentials.github_app_private_key_path,
            github_app_installation_id=credentials.github_app_installation_id,
            github_api_url=credentials.github_api_url,
        )
        return cls(client, owner, repo_name)

    # Repository
    @retry_on_rate_limit()
    async def get_repository(self) -> Repository:
        """Get the repository for the current client."""
        return await asyncio.to_thread(self.client.get_repo, f"{self.owner}/{self.repo_name}")

    # Pull Requests
    @retry_on_rate_limit(max_retries=MERGE_ATTEMPT_RATE_LIMIT_RETRIES)
    async def get_pull_request(self, pull_request_number: int) -> PullRequest:
        """Get a pull request from the repository."""
        return await asyncio.to_thread(self.repository.get_pull, pull_request_number)

    @retry_on_rate_limit()
    async def list_pull_requests(self, state: Literal["open", "closed", "all"] = "open", **kwargs: Any) -> list[PullRequest]:
        """List all pull requests for a repository, following pagination."""

        def _list() -> list[PullRequest]:
            return list(self.repository.get_pulls(state=state, **kwargs))

        return await asyncio.to_thread(_list)

    @log_github_422
    async def merge_pull_request(self, pull_number: int, merge_method: str, **kwargs: Any) -> PullRequestMergeStatus:
        """Merge a pull request for a repository."""
        pull_request = await self.get_pull_request(pull_number)
        return await asyncio.to_thread(pull_request.merge, merge_method=merge_method, **kwargs)

    @log_github_422
    async def enable_auto_merge(self, pull_number: int, merge_method: str, **kwargs: Any) -> dict[str, Any]:
        """Enable auto-merge on a pull request through the GraphQL API."""
        pull_request = await self.get_pull_request(pull_number)
        return await asyncio.to_thread(pull_request.enable_automerge, merge_method=merge_method, **kwargs)
