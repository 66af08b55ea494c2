"""Contains results of application execution."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from binding_ops_manager.synchronize.models import GateDecision, MergeAttemptState, PullRequestHandle


class SyncRunStatus(str, Enum):
    """Overall status of a synchronization run."""

    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"


@dataclass
class DependencyUpdateResult:
    """Contains results of the dependency synchronization step."""

    manifest_path: Path
    manifest_changed: bool
    staged_files: list[Path]
    commit_sha: str | None
    pushed: bool


@dataclass
class MergeTriggerResult:
    """Contains results of the merge trigger step."""

    pull_request: PullRequestHandle
    state: MergeAttemptState


@dataclass
class SyncRunResult:
    """Contains results of a full synchronization run.

    Failed runs raise a ``BindingSyncError`` instead of producing a result, so a
    result is either a skipped run or a fully successful one.
    """

    gate: GateDecision
    dependency_update: DependencyUpdateResult | None = None
    merge: MergeTriggerResult | None = None

    @property
    def status(self) -> SyncRunStatus:
        """Summarize the run."""
        if self.gate.skip:
            return SyncRunStatus.SKIPPED
        return SyncRunStatus.SUCCEEDED
