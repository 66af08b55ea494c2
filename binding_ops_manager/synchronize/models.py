"""Data models passed between the steps of a synchronization run."""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, field_validator

from binding_ops_manager.utils.constants import REPOSITORY_PATTERN
from binding_ops_manager.utils.retry import RetryStatus


class SyncRequest(BaseModel):
    """Immutable description of one synchronization attempt.

    ``source_repo``/``base_repo`` and ``branch_ref``/``base_ref`` decide whether
    the run applies at all; the remaining fields are passed through unmodified
    to the later steps.
    """

    model_config = ConfigDict(frozen=True)

    source_repo: str
    base_repo: str
    branch_ref: str
    base_ref: str
    pinned_revision: str
    lockfile_update_command: str

    @field_validator("source_repo", "base_repo")
    @classmethod
    def validate_repository(cls, value: str) -> str:
        """Require repositories in 'owner/name' form."""
        if not REPOSITORY_PATTERN.fullmatch(value):
            raise ValueError(f"Repository must be in the format 'owner/repo', got {value!r}")
        return value

    @field_validator("branch_ref", "base_ref", "pinned_revision")
    @classmethod
    def validate_ref(cls, value: str) -> str:
        """Reject empty refs and refs with surrounding whitespace."""
        if not value.strip():
            raise ValueError("Value must not be empty")
        if value != value.strip():
            raise ValueError(f"Value must not have surrounding whitespace, got {value!r}")
        return value

    @field_validator("lockfile_update_command")
    @classmethod
    def validate_command(cls, value: str) -> str:
        """Reject empty or whitespace-only commands."""
        if not value.strip():
            raise ValueError("Lockfile update command must not be empty")
        return value


@dataclass(frozen=True)
class GateDecision:
    """Outcome of the gate evaluation, consulted by every later step."""

    skip: bool
    reason: str = ""

    @property
    def proceed(self) -> bool:
        """Whether later steps are allowed to run."""
        return not self.skip


@dataclass(frozen=True)
class PullRequestHandle:
    """Identifies the open pull request tied to the synchronized branch."""

    number: int
    node_id: str
    head_ref: str
    html_url: str | None = None


@dataclass
class MergeAttemptState:
    """Tracks the bounded auto-merge loop for a single Merge Trigger invocation."""

    max_attempts: int
    attempts: int = 0
    outcome: RetryStatus = RetryStatus.PENDING
    merged_directly: bool = False
