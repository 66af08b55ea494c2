"""Contains utility functions for GitHub interactions."""

from binding_ops_manager.utils.constants import CREDENTIAL_URL_PATTERN


async def split_repository_in_configuration(repo: str | None) -> tuple[str, str]:
    """Splits the repository in the configuration into owner and repository."""
    if repo is None:
        raise ValueError("A repository in 'owner/repo' format is required.")
    repo = repo.strip("/")
    parts = repo.split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError("Repository must be in the format 'owner/repo' with no leading/trailing slashes or extra parts.")
    owner, repository = parts
    return owner, repository


def build_remote_url(repo: str, token: str | None = None, host: str = "github.com") -> str:
    """Build an HTTPS remote URL for a repository, embedding a token when one is given."""
    if token:
        return f"https://x-access-token:{token}@{host}/{repo}.git"
    return f"https://{host}/{repo}.git"


def mask_credentials(text: str) -> str:
    """Replace credentials embedded in remote URLs with a placeholder."""
    return CREDENTIAL_URL_PATTERN.sub(r"\1***@", text)


def web_host_from_api_url(github_api_url: str) -> str:
    """Derive the git host from the GitHub API URL.

    e.g., "https://api.github.com" -> "github.com"
    or "https://github.example.com/api/v3" -> "github.example.com"
    """
    if "api.github.com" in github_api_url:
        return "github.com"
    host = github_api_url.split("://", 1)[-1]
    return host.replace("/api/v3", "").replace("/api", "").strip("/")
