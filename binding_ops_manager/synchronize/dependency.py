"""Rewrites the core dependency pin in a binding and publishes the change."""

import shlex
import subprocess
from pathlib import Path

import structlog

from binding_ops_manager.configuration.models import BindingSyncConfig
from binding_ops_manager.manifest.cargo import rewrite_dependency
from binding_ops_manager.synchronize.exceptions import LockfileRegenerationError
from binding_ops_manager.synchronize.models import GateDecision, SyncRequest
from binding_ops_manager.synchronize.results import DependencyUpdateResult
from binding_ops_manager.utils.constants import LOCKFILE_NAME
from binding_ops_manager.utils.helpers import build_commit_message, dependency_label_from_repository
from binding_ops_manager.vcs import working_copy as vcs
from binding_ops_manager.vcs.working_copy import WorkingCopy

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def run_lockfile_update(command: str, manifest_path: Path, cwd: Path) -> None:
    """Run the caller-supplied lockfile command against a manifest.

    The manifest is passed as ``--manifest-path <path>`` after the command's own
    arguments, e.g. ``cargo update -p mmtk --manifest-path mmtk/Cargo.toml``.

    Raises:
        LockfileRegenerationError: If the command cannot be started or exits non-zero.
    """
    args = shlex.split(command) + ["--manifest-path", str(manifest_path)]
    logger.info("Updating lockfile", command=args, cwd=str(cwd))
    try:
        result = subprocess.run(args, cwd=cwd, capture_output=True, text=True)
    except OSError as exc:
        raise LockfileRegenerationError(args, None, str(exc)) from exc
    if result.returncode != 0:
        raise LockfileRegenerationError(args, result.returncode, result.stderr or result.stdout)
    logger.info("Updated lockfile", command=args)


def files_to_stage(binding: WorkingCopy, manifest_path: Path) -> list[Path]:
    """Return the manifest and, if present, its lockfile, relative to the working copy root."""
    root = binding.path.resolve()
    manifest_path = manifest_path.resolve()
    files = [manifest_path.relative_to(root)]
    lockfile = manifest_path.parent / LOCKFILE_NAME
    if lockfile.is_file():
        files.append(lockfile.relative_to(root))
    return files


def synchronize_dependency(
    gate: GateDecision,
    request: SyncRequest,
    binding: WorkingCopy,
    config: BindingSyncConfig,
    core: WorkingCopy | None = None,
) -> DependencyUpdateResult | None:
    """Pin the binding's core dependency to the requested revision and push the change.

    The manifest is rewritten, the lockfile regenerated, and exactly those two
    files are committed and pushed to ``request.branch_ref``. Any failure raises
    before the push, so either the branch advances by one commit or it is left
    untouched. When the rewrite and lockfile update leave nothing to commit
    (the pin was already applied), commit and push are skipped.

    Returns:
        None when the gate says to skip, otherwise the update result.
    """
    if gate.skip:
        logger.info("Gate is closed, skipping dependency synchronization", reason=gate.reason)
        return None

    if core is not None:
        logger.info("Resolved pinned revision", core_repo=core.repo, revision=request.pinned_revision, sha=vcs.head_sha(core))

    # The lockfile command runs inside the checkout, so a relative workspace
    # must not leak into --manifest-path.
    manifest_path = (binding.path / config.manifest_path).resolve()
    manifest_changed = rewrite_dependency(manifest_path, config.dependency_name, config.core_git_url, request.pinned_revision)
    run_lockfile_update(request.lockfile_update_command, manifest_path, cwd=binding.path)

    vcs.configure_identity(binding, config.git_user_name, config.git_user_email)
    staged_files = vcs.stage_files(binding, files_to_stage(binding, manifest_path))
    if not vcs.has_staged_changes(binding):
        logger.info(
            "Binding already pins the requested revision, nothing to commit",
            repo=binding.repo,
            branch=request.branch_ref,
            revision=request.pinned_revision,
        )
        return DependencyUpdateResult(
            manifest_path=manifest_path,
            manifest_changed=manifest_changed,
            staged_files=staged_files,
            commit_sha=None,
            pushed=False,
        )

    message = build_commit_message(dependency_label_from_repository(config.core_repo), request.pinned_revision)
    commit_sha = vcs.commit(binding, message)
    vcs.push(binding, request.branch_ref)
    return DependencyUpdateResult(
        manifest_path=manifest_path,
        manifest_changed=manifest_changed,
        staged_files=staged_files,
        commit_sha=commit_sha,
        pushed=True,
    )
