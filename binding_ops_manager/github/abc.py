"""Base ABC for GitHub clients."""

from abc import ABC, abstractmethod
from typing import Any, Literal


class GitHubClientBase(ABC):
    """Base ABC for GitHub clients."""

    # Repository
    @abstractmethod
    async def get_repository(self) -> Any:
        """Get a repository."""
        pass

    # Pull Requests
    @abstractmethod
    async def get_pull_request(self, pull_request_number: int) -> Any:
        """Get a pull request for a repository."""
        pass

    @abstractmethod
    async def list_pull_requests(self, state: Literal["open", "closed", "all"] = "open", **kwargs: Any) -> list[Any]:
        """List pull requests for a repository."""
        pass

    @abstractmethod
    async def merge_pull_request(self, pull_number: int, merge_method: str, **kwargs: Any) -> Any:
        """Merge a pull request for a repository."""
        pass

    @abstractmethod
    async def enable_auto_merge(self, pull_number: int, merge_method: str, **kwargs: Any) -> Any:
        """Enable auto-merge on a pull request so it merges once its requirements are met."""
        pass
