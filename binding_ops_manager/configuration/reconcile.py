"""Reconcile credential scopes and retry configuration from CLI arguments and environment variables."""

from pathlib import Path

from binding_ops_manager.configuration.exceptions import (
    GitHubAuthenticationConfigurationUndefinedError,
    InvalidConfigurationValueError,
    RequiredConfigurationElementError,
)
from binding_ops_manager.configuration.models import GitHubAuthenticationType, GitHubCredentials, MergeRetryPolicy


async def validate_github_authentication_configuration(
    github_pat_token: str | None,
    github_app_id: int | None,
    github_app_private_key_path: Path | None,
    github_app_installation_id: int | None,
) -> GitHubAuthenticationType:
    """Validates the GitHub authentication configuration.

    Args:
        github_pat_token (str | None): The GitHub token.
        github_app_id (int | None): The GitHub App ID.
        github_app_private_key_path (str | None): The path to the GitHub App private key.
        github_app_installation_id (int | None): The GitHub App installation ID.

    Raises:
        GitHubAuthenticationConfigurationUndefinedError: If both or neither of token and App configurations are defined,
            or if the App configuration is incomplete.

    Returns:
        GitHubAuthenticationType: The type of GitHub authentication used.
    """
    if github_pat_token and (github_app_id or github_app_private_key_path or github_app_installation_id):
        raise GitHubAuthenticationConfigurationUndefinedError("Both token and GitHub App configurations are defined. Please use one or the other.")

    if github_pat_token:
        return GitHubAuthenticationType.PAT

    if github_app_id and github_app_private_key_path and github_app_installation_id:
        return GitHubAuthenticationType.APP
    elif github_app_id or github_app_private_key_path or github_app_installation_id:
        missing_settings: list[dict[str, str]] = []
        if not github_app_id:
            missing_settings.append(
                {
                    "name": "GitHub App ID",
                    "cli_name": "--github-app-id",
                    "env_name": "GITHUB_APP_ID",
                }
            )
        if not github_app_private_key_path:
            missing_settings.append(
                {
                    "name": "GitHub App private key path",
                    "cli_name": "--github-app-private-key-path",
                    "env_name": "GITHUB_APP_PRIVATE_KEY_PATH",
                }
            )
        if not github_app_installation_id:
            missing_settings.append(
                {
                    "name": "GitHub App installation ID",
                    "cli_name": "--github-app-installation-id",
                    "env_name": "GITHUB_APP_INSTALLATION_ID",
                }
            )
        msg = "Incomplete GitHub App configuration - missing settings include " + ", ".join(
            f"{setting['name']} (command line option {setting['cli_name']}, environment variable {setting['env_name']})"
            for setting in missing_settings
        )
        raise GitHubAuthenticationConfigurationUndefinedError(msg)
    else:
        raise GitHubAuthenticationConfigurationUndefinedError(
            "No GitHub authentication configuration provided. Please provide either a token or a GitHub App configuration."
        )


async def reconcile_github_credentials(
    github_api_url: str,
    github_token: str | None,
    github_app_id: int | None = None,
    github_app_private_key_path: Path | None = None,
    github_app_installation_id: int | None = None,
) -> GitHubCredentials:
    """Build the credentials for the GitHub API scope."""
    auth_type = await validate_github_authentication_configuration(
        github_pat_token=github_token,
        github_app_id=github_app_id,
        github_app_private_key_path=github_app_private_key_path,
        github_app_installation_id=github_app_installation_id,
    )
    if auth_type == GitHubAuthenticationType.PAT:
        return GitHubCredentials(
            github_api_url=github_api_url,
            github_authentication_type=auth_type,
            github_pat_token=github_token,
        )
    return GitHubCredentials(
        github_api_url=github_api_url,
        github_authentication_type=auth_type,
        github_app_id=github_app_id,
        github_app_private_key_path=github_app_private_key_path,
        github_app_installation_id=github_app_installation_id,
    )


async def validate_push_token(push_token: str | None) -> str:
    """Require the write-scoped token used to push to the binding repository."""
    if not push_token:
        raise RequiredConfigurationElementError(
            name="Push access token",
            cli_name="--push-token",
            env_name="CI_ACCESS_TOKEN",
        )
    return push_token


async def reconcile_merge_retry_policy(max_attempts: int, delay_seconds: float) -> MergeRetryPolicy:
    """Validate and build the auto-merge retry policy."""
    if max_attempts < 1:
        raise InvalidConfigurationValueError(f"Merge max attempts must be at least 1, got {max_attempts}")
    if delay_seconds < 0:
        raise InvalidConfigurationValueError(f"Merge retry delay must not be negative, got {delay_seconds}")
    return MergeRetryPolicy(max_attempts=max_attempts, delay_seconds=delay_seconds)
