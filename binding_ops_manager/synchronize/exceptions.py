"""Custom exceptions raised while synchronizing a binding and enabling its merge."""


class BindingSyncError(Exception):
    """Base class for errors that abort a synchronization run."""

    def __init__(self, message: str, step: str) -> None:
        """Initializes the exception with the name of the step that failed."""
        super().__init__(message)
        self.step = step


class InvalidRevisionError(BindingSyncError):
    """Raised when the pinned revision cannot be found in the upstream repository."""

    def __init__(self, repo: str, revision: str, detail: str = "") -> None:
        message = f"Revision {revision} could not be fetched from {repo}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, step="checkout-core")
        self.repo = repo
        self.revision = revision


class ManifestRewriteError(BindingSyncError):
    """Raised when the dependency declaration in a manifest cannot be rewritten."""

    def __init__(self, message: str) -> None:
        super().__init__(message, step="rewrite-manifest")


class LockfileRegenerationError(BindingSyncError):
    """Raised when the lockfile regeneration command exits non-zero or cannot be started."""

    def __init__(self, command: list[str], returncode: int | None, output: str = "") -> None:
        message = f"Lockfile update command {' '.join(command)!r} failed"
        if returncode is not None:
            message = f"{message} with exit code {returncode}"
        if output:
            message = f"{message}: {output.strip()}"
        super().__init__(message, step="update-lockfile")
        self.command = command
        self.returncode = returncode
        self.output = output


class GitCommandError(BindingSyncError):
    """Raised when a git command (clone, commit, push) fails."""

    def __init__(self, args: list[str], returncode: int, stderr: str, step: str) -> None:
        super().__init__(f"git {' '.join(args)} failed with exit code {returncode}: {stderr.strip()}", step=step)
        self.git_args = args
        self.returncode = returncode
        self.stderr = stderr


class PullRequestNotFoundError(BindingSyncError):
    """Raised when no open pull request exists for the synchronized branch."""

    def __init__(self, repo: str, branch: str) -> None:
        super().__init__(f"No open pull request found for branch '{branch}' in {repo}", step="resolve-pull-request")
        self.repo = repo
        self.branch = branch


class AutoMergeExhaustedError(BindingSyncError):
    """Raised when every attempt to enable auto-merge was rejected."""

    def __init__(self, pull_request_number: int, attempts: int, last_error: BaseException | None) -> None:
        message = f"Failed to enable auto-merge for pull request #{pull_request_number} after {attempts} attempt(s)"
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message, step="enable-auto-merge")
        self.pull_request_number = pull_request_number
        self.attempts = attempts
        self.last_error = last_error


class StepSkippedError(BindingSyncError):
    """Raised when a step produced no result although the gate is open."""

    def __init__(self, step: str) -> None:
        super().__init__(f"Step '{step}' produced no result although the gate is open", step=step)


class MergeAttemptRejectedError(Exception):
    """Raised when a single merge attempt is refused and may succeed on a later attempt."""

    pass
