"""Materialize, commit to, and push git working copies using the git CLI."""

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

import structlog

from binding_ops_manager.synchronize.exceptions import GitCommandError
from binding_ops_manager.utils.github import build_remote_url, mask_credentials

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class WorkingCopy:
    """A local checkout of a repository."""

    path: Path
    repo: str
    ref: str


def _git_environment() -> dict[str, str]:
    env = os.environ.copy()
    # Never block on an interactive credential prompt.
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


def _run(args: list[str], cwd: Path | None) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        env=_git_environment(),
    )


def run_git(args: list[str], cwd: Path | None, step: str) -> str:
    """Run a git command and return its stripped stdout.

    Raises:
        GitCommandError: If git exits non-zero. Credentials embedded in remote
            URLs are masked in the error.
    """
    masked_args = [mask_credentials(arg) for arg in args]
    logger.debug("Running git command", args=masked_args, cwd=str(cwd) if cwd else None)
    result = _run(args, cwd)
    if result.returncode != 0:
        raise GitCommandError(masked_args, result.returncode, mask_credentials(result.stderr), step=step)
    return result.stdout.strip()


def clone_branch(repo: str, branch: str, destination: Path, token: str | None = None, host: str = "github.com") -> WorkingCopy:
    """Shallow-clone ``branch`` of ``repo`` into ``destination``.

    When a token is given it is embedded in the origin URL so that later pushes
    are authorized.
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Cloning repository", repo=repo, branch=branch, destination=str(destination))
    run_git(
        ["clone", "--depth=1", "--branch", branch, build_remote_url(repo, token, host=host), str(destination)],
        cwd=None,
        step="checkout-binding",
    )
    return WorkingCopy(path=destination, repo=repo, ref=branch)


def fetch_revision(repo: str, revision: str, destination: Path, token: str | None = None, host: str = "github.com") -> WorkingCopy:
    """Materialize exactly ``revision`` of ``repo`` into ``destination`` as a detached checkout."""
    destination.mkdir(parents=True, exist_ok=True)
    logger.info("Fetching repository revision", repo=repo, revision=revision, destination=str(destination))
    run_git(["init", "--quiet"], cwd=destination, step="checkout-core")
    run_git(["remote", "add", "origin", build_remote_url(repo, token, host=host)], cwd=destination, step="checkout-core")
    run_git(["fetch", "--depth=1", "origin", revision], cwd=destination, step="checkout-core")
    run_git(["checkout", "--quiet", "--detach", "FETCH_HEAD"], cwd=destination, step="checkout-core")
    return WorkingCopy(path=destination, repo=repo, ref=revision)


def head_sha(working_copy: WorkingCopy) -> str:
    """Return the commit SHA checked out in a working copy."""
    return run_git(["rev-parse", "HEAD"], cwd=working_copy.path, step="inspect")


def configure_identity(working_copy: WorkingCopy, user_name: str, user_email: str) -> None:
    """Set the commit author identity for a working copy."""
    run_git(["config", "user.name", user_name], cwd=working_copy.path, step="commit")
    run_git(["config", "user.email", user_email], cwd=working_copy.path, step="commit")


def stage_files(working_copy: WorkingCopy, files: list[Path]) -> list[Path]:
    """Stage exactly the given files (paths relative to the working copy root)."""
    if not files:
        return []
    run_git(["add", "--", *[str(file) for file in files]], cwd=working_copy.path, step="commit")
    return files


def has_staged_changes(working_copy: WorkingCopy) -> bool:
    """Whether the index differs from HEAD."""
    result = _run(["diff", "--cached", "--quiet"], cwd=working_copy.path)
    if result.returncode == 0:
        return False
    if result.returncode == 1:
        return True
    raise GitCommandError(["diff", "--cached", "--quiet"], result.returncode, result.stderr, step="commit")


def commit(working_copy: WorkingCopy, message: str) -> str:
    """Commit the staged changes and return the new commit SHA."""
    run_git(["commit", "--quiet", "-m", message], cwd=working_copy.path, step="commit")
    sha = head_sha(working_copy)
    logger.info("Created commit", repo=working_copy.repo, sha=sha, message=message)
    return sha


def push(working_copy: WorkingCopy, branch: str) -> None:
    """Push HEAD to ``branch`` on origin."""
    run_git(["push", "origin", f"HEAD:refs/heads/{branch}"], cwd=working_copy.path, step="push")
    logger.info("Pushed commit", repo=working_copy.repo, branch=branch)
