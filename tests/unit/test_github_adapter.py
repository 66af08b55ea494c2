"""Unit tests for the GitHubAdapter class and related GitHub operations."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from github import Github, GithubException

from binding_ops_manager.configuration.models import GitHubAuthenticationType, GitHubCredentials
from binding_ops_manager.github.adapter import GitHubAdapter
from binding_ops_manager.github.client import get_github_client


def make_adapter() -> GitHubAdapter:
    """Build an adapter around a mocked PyGithub client."""
    return GitHubAdapter(MagicMock(), "mmtk", "mmtk-openjdk")


def test_adapter_binds_repository() -> None:
    """The adapter looks its repository up lazily by full name."""
    client = MagicMock()
    adapter = GitHubAdapter(client, "mmtk", "mmtk-openjdk")
    client.get_repo.assert_called_once_with("mmtk/mmtk-openjdk", lazy=True)
    assert adapter.repository is client.get_repo.return_value


@pytest.mark.asyncio
async def test_list_pull_requests_follows_pagination() -> None:
    """Every page of open pull requests is collected into a list."""
    # Given
    adapter = make_adapter()
    pages = [MagicMock(number=1), MagicMock(number=2)]
    adapter.repository.get_pulls = MagicMock(return_value=iter(pages))

    # When
    pull_requests = await adapter.list_pull_requests(state="open")

    # Then
    assert pull_requests == pages
    adapter.repository.get_pulls.assert_called_once_with(state="open")


@pytest.mark.asyncio
async def test_get_pull_request() -> None:
    """A pull request is fetched by number."""
    adapter = make_adapter()
    adapter.repository.get_pull = MagicMock(return_value="pull-request")
    assert await adapter.get_pull_request(42) == "pull-request"
    adapter.repository.get_pull.assert_called_once_with(42)


@pytest.mark.asyncio
async def test_merge_pull_request() -> None:
    """Merging forwards the merge method to the pull request."""
    # Given
    adapter = make_adapter()
    pull_request = MagicMock()
    pull_request.merge.return_value = MagicMock(merged=True)
    adapter.repository.get_pull = MagicMock(return_value=pull_request)

    # When
    status = await adapter.merge_pull_request(42, merge_method="squash")

    # Then
    assert status.merged is True
    pull_request.merge.assert_called_once_with(merge_method="squash")


@pytest.mark.asyncio
async def test_enable_auto_merge() -> None:
    """Auto-merge is enabled with the requested merge method."""
    # Given
    adapter = make_adapter()
    pull_request = MagicMock()
    adapter.repository.get_pull = MagicMock(return_value=pull_request)

    # When
    await adapter.enable_auto_merge(42, merge_method="SQUASH")

    # Then
    pull_request.enable_automerge.assert_called_once_with(merge_method="SQUASH")


@pytest.mark.asyncio
async def test_enable_auto_merge_422_is_reraised() -> None:
    """A 422 rejection is logged and raised unchanged so the caller can retry."""
    # Given
    adapter = make_adapter()
    pull_request = MagicMock()
    error = GithubException(422, {"message": "Pull request is in clean status", "errors": []}, None)
    pull_request.enable_automerge.side_effect = error
    adapter.repository.get_pull = MagicMock(return_value=pull_request)

    # When/Then
    with pytest.raises(GithubException) as exc_info:
        await adapter.enable_auto_merge(42, merge_method="SQUASH")
    assert exc_info.value is error


@pytest.mark.asyncio
async def test_rate_limited_listing_is_retried() -> None:
    """A rate limited pull request listing is retried after waiting."""
    # Given
    adapter = make_adapter()
    adapter.repository.get_pulls = MagicMock(
        side_effect=[GithubException(429, {"message": "rate limit"}, {"retry-after": "1"}), iter(["pull-request"])]
    )

    # When
    with patch("binding_ops_manager.utils.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        pull_requests = await adapter.list_pull_requests(state="open")

    # Then
    assert pull_requests == ["pull-request"]
    sleep.assert_awaited_once_with(1.0)


@pytest.mark.asyncio
async def test_rate_limited_lookup_fails_without_waiting() -> None:
    """A rate limited pull request lookup is left to the merge attempt loop instead of waiting."""
    # Given
    adapter = make_adapter()
    error = GithubException(429, {"message": "rate limit"}, {"retry-after": "3600"})
    adapter.repository.get_pull = MagicMock(side_effect=[error, "pull-request"])

    # When/Then
    with patch("binding_ops_manager.utils.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        with pytest.raises(GithubException) as exc_info:
            await adapter.get_pull_request(42)
    assert exc_info.value is error
    sleep.assert_not_awaited()
    adapter.repository.get_pull.assert_called_once_with(42)


@pytest.mark.asyncio
async def test_create_uses_credentials() -> None:
    """The adapter is created with a client built from the credentials."""
    # Given
    credentials = GitHubCredentials(
        github_api_url="https://api.github.com",
        github_authentication_type=GitHubAuthenticationType.PAT,
        github_pat_token="merge-token",
    )
    client = MagicMock()

    # When
    with patch("binding_ops_manager.github.adapter.get_github_client", new=AsyncMock(return_value=client)) as mock_get_client:
        adapter = await GitHubAdapter.create("mmtk/mmtk-openjdk", credentials)

    # Then
    assert adapter.client is client
    assert (adapter.owner, adapter.repo_name) == ("mmtk", "mmtk-openjdk")
    assert mock_get_client.await_args.kwargs["github_pat_token"] == "merge-token"


@pytest.mark.asyncio
async def test_create_rejects_malformed_repository() -> None:
    """A repository that is not in owner/repo form is rejected."""
    credentials = GitHubCredentials(
        github_api_url="https://api.github.com",
        github_authentication_type=GitHubAuthenticationType.PAT,
        github_pat_token="merge-token",
    )
    with pytest.raises(ValueError):
        await GitHubAdapter.create("mmtk-openjdk", credentials)


@pytest.mark.asyncio
async def test_get_github_client_with_token() -> None:
    """A token client is built for token credentials."""
    client = await get_github_client(
        github_auth_type=GitHubAuthenticationType.PAT,
        github_pat_token="merge-token",
        github_app_id=None,
        github_app_private_key_path=None,
        github_app_installation_id=None,
        github_api_url="https://api.github.com",
    )
    assert isinstance(client, Github)


@pytest.mark.asyncio
async def test_get_github_client_missing_token() -> None:
    """Token authentication without a token is refused."""
    with pytest.raises(RuntimeError):
        await get_github_client(
            github_auth_type=GitHubAuthenticationType.PAT,
            github_pat_token=None,
            github_app_id=None,
            github_app_private_key_path=None,
            github_app_installation_id=None,
            github_api_url="https://api.github.com",
        )


@pytest.mark.asyncio
async def test_get_github_client_unreadable_app_key(tmp_path: Path) -> None:
    """An App private key that cannot be read is reported as a ValueError."""
    with pytest.raises(ValueError, match="Failed to read GitHub App private key"):
        await get_github_client(
            github_auth_type=GitHubAuthenticationType.APP,
            github_pat_token=None,
            github_app_id=12345,
            github_app_private_key_path=tmp_path / "missing.pem",
            github_app_installation_id=67890,
            github_api_url="https://api.github.com",
        )
