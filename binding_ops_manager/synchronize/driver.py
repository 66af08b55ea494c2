"""Orchestrates a binding synchronization run: gate, dependency update, then merge."""

import asyncio
import time

import structlog

from binding_ops_manager.configuration.models import BindingSyncConfig, GitHubCredentials, MergeRetryPolicy
from binding_ops_manager.github.abc import GitHubClientBase
from binding_ops_manager.github.adapter import GitHubAdapter
from binding_ops_manager.synchronize.dependency import synchronize_dependency
from binding_ops_manager.synchronize.exceptions import GitCommandError, InvalidRevisionError, StepSkippedError
from binding_ops_manager.synchronize.gate import evaluate_gate
from binding_ops_manager.synchronize.merge import enable_auto_merge_with_retry, resolve_pull_request
from binding_ops_manager.synchronize.models import GateDecision, SyncRequest
from binding_ops_manager.synchronize.results import MergeTriggerResult, SyncRunResult
from binding_ops_manager.utils.retry import Sleeper
from binding_ops_manager.vcs import working_copy as vcs
from binding_ops_manager.vcs.working_copy import WorkingCopy

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def checkout_core(gate: GateDecision, request: SyncRequest, config: BindingSyncConfig) -> WorkingCopy | None:
    """Materialize the upstream core repository at the pinned revision."""
    if gate.skip:
        return None
    destination = config.workspace / config.core_work_dir
    try:
        return vcs.fetch_revision(config.core_repo, request.pinned_revision, destination, host=config.git_host)
    except GitCommandError as exc:
        raise InvalidRevisionError(config.core_repo, request.pinned_revision, exc.stderr.strip()) from exc


def checkout_binding(gate: GateDecision, request: SyncRequest, config: BindingSyncConfig) -> WorkingCopy | None:
    """Clone the binding branch with the push token so the later push is authorized."""
    if gate.skip:
        return None
    destination = config.workspace / config.binding_work_dir
    return vcs.clone_branch(request.source_repo, request.branch_ref, destination, token=config.push_token, host=config.git_host)


async def run_merge_trigger(
    gate: GateDecision,
    request: SyncRequest,
    query_adapter: GitHubClientBase,
    merge_adapter: GitHubClientBase,
    policy: MergeRetryPolicy,
    sleep: Sleeper = asyncio.sleep,
) -> MergeTriggerResult | None:
    """Resolve the pull request for the branch and enable auto-merge on it.

    The pull request is looked up with the query credentials and merged with
    the merge credentials.
    """
    handle = await resolve_pull_request(gate, query_adapter, request.base_repo, request.branch_ref)
    return await enable_auto_merge_with_retry(gate, merge_adapter, handle, policy, sleep=sleep)


async def create_adapters(
    base_repo: str,
    merge_credentials: GitHubCredentials,
    query_credentials: GitHubCredentials | None = None,
) -> tuple[GitHubClientBase, GitHubClientBase]:
    """Create the (query, merge) adapters for the upstream repository."""
    merge_adapter = await GitHubAdapter.create(repo=base_repo, credentials=merge_credentials)
    if query_credentials is None or query_credentials == merge_credentials:
        return merge_adapter, merge_adapter
    query_adapter = await GitHubAdapter.create(repo=base_repo, credentials=query_credentials)
    return query_adapter, merge_adapter


async def run_enable_auto_merge_workflow(
    base_repo: str,
    branch: str,
    merge_credentials: GitHubCredentials,
    policy: MergeRetryPolicy,
    query_credentials: GitHubCredentials | None = None,
    sleep: Sleeper = asyncio.sleep,
) -> MergeTriggerResult:
    """Run only the merge trigger, for resuming a run whose push already landed."""
    gate = GateDecision(skip=False)
    query_adapter, merge_adapter = await create_adapters(base_repo, merge_credentials, query_credentials)
    handle = await resolve_pull_request(gate, query_adapter, base_repo, branch)
    merge = await enable_auto_merge_with_retry(gate, merge_adapter, handle, policy, sleep=sleep)
    if merge is None:
        raise StepSkippedError("enable-auto-merge")
    return merge


async def run_binding_sync_workflow(
    request: SyncRequest,
    config: BindingSyncConfig,
    merge_credentials: GitHubCredentials,
    policy: MergeRetryPolicy,
    query_credentials: GitHubCredentials | None = None,
    adapters: tuple[GitHubClientBase, GitHubClientBase] | None = None,
    sleep: Sleeper = asyncio.sleep,
) -> SyncRunResult:
    """Run the sync-binding workflow.

    Steps run strictly in order and any failure raises a ``BindingSyncError``
    that aborts the rest of the run. Nothing is rolled back: every step can be
    re-run safely from a fresh gate evaluation.

    Args:
        request: The synchronization request.
        config: Dependency synchronization settings, including the push token.
        merge_credentials: Credentials used to enable auto-merge.
        policy: Bounds of the auto-merge retry loop.
        query_credentials: Credentials used to look up the pull request. Defaults
            to ``merge_credentials``.
        adapters: Pre-built (query, merge) adapters; created from the
            credentials when omitted.
        sleep: Awaitable sleep used between merge attempts.
    """
    gate = evaluate_gate(request)
    if gate.skip:
        return SyncRunResult(gate=gate)

    start_time = time.time()
    logger.info(
        "Synchronizing binding",
        repo=request.source_repo,
        branch=request.branch_ref,
        base_repo=request.base_repo,
        base_branch=request.base_ref,
        revision=request.pinned_revision,
    )

    core = checkout_core(gate, request, config) if config.verify_core_revision else None
    binding = checkout_binding(gate, request, config)
    if binding is None:
        raise StepSkippedError("checkout-binding")
    dependency_update = synchronize_dependency(gate, request, binding, config, core=core)
    logger.info("Synchronized binding dependency", duration=round(time.time() - start_time, 2))

    if adapters is None:
        adapters = await create_adapters(request.base_repo, merge_credentials, query_credentials)
    query_adapter, merge_adapter = adapters

    merge_start_time = time.time()
    merge = await run_merge_trigger(gate, request, query_adapter, merge_adapter, policy, sleep=sleep)
    end_time = time.time()
    logger.info(
        "Binding synchronization complete",
        merge_duration=round(end_time - merge_start_time, 2),
        duration=round(end_time - start_time, 2),
    )
    return SyncRunResult(gate=gate, dependency_update=dependency_update, merge=merge)
