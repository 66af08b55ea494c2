"""Resolves the binding pull request and enables auto-merge on it.

GitHub needs a short settling period after a branch is updated before it
accepts enabling auto-merge, so every attempt is preceded by a fixed delay and
a bounded number of attempts is made.
"""

import asyncio
from typing import Any

import structlog
from github import GithubException
from requests.exceptions import RequestException

from binding_ops_manager.configuration.models import MergeRetryPolicy
from binding_ops_manager.github.abc import GitHubClientBase
from binding_ops_manager.synchronize.exceptions import AutoMergeExhaustedError, MergeAttemptRejectedError, PullRequestNotFoundError
from binding_ops_manager.synchronize.models import GateDecision, MergeAttemptState, PullRequestHandle
from binding_ops_manager.synchronize.results import MergeTriggerResult
from binding_ops_manager.utils.constants import AUTO_MERGE_STRATEGY, DIRECT_MERGE_METHOD, IMMEDIATELY_MERGEABLE_STATES
from binding_ops_manager.utils.retry import RetryStatus, Sleeper, retry_with_fixed_delay

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

RETRYABLE_MERGE_ERRORS: tuple[type[Exception], ...] = (GithubException, RequestException, MergeAttemptRejectedError)


async def resolve_pull_request(gate: GateDecision, github_adapter: GitHubClientBase, base_repo: str, branch: str) -> PullRequestHandle | None:
    """Find the open pull request whose head branch is ``branch`` in ``base_repo``.

    The first match is used. The lookup is never cached between runs.

    Returns:
        None when the gate says to skip, otherwise the pull request handle.

    Raises:
        PullRequestNotFoundError: If no open pull request has ``branch`` as its head.
    """
    if gate.skip:
        logger.info("Gate is closed, skipping pull request resolution", reason=gate.reason)
        return None

    open_pull_requests = await github_adapter.list_pull_requests(state="open")
    matches = [pull_request for pull_request in open_pull_requests if pull_request.head.ref == branch]
    if not matches:
        logger.error("No open pull request found for branch", repo=base_repo, branch=branch, open_pull_requests=len(open_pull_requests))
        raise PullRequestNotFoundError(base_repo, branch)

    pull_request = matches[0]
    handle = PullRequestHandle(
        number=pull_request.number,
        node_id=pull_request.node_id,
        head_ref=pull_request.head.ref,
        html_url=pull_request.html_url,
    )
    logger.info("Resolved pull request", repo=base_repo, branch=branch, pull_request_number=handle.number, url=handle.html_url)
    return handle


async def _attempt_merge(github_adapter: GitHubClientBase, handle: PullRequestHandle, state: MergeAttemptState) -> Any:
    """Make one attempt to get the pull request merged.

    Already merged pull requests and pull requests with auto-merge already
    enabled count as success. A pull request that can be merged right away is
    merged directly, as GitHub refuses to enable auto-merge on it.
    """
    pull_request = await github_adapter.get_pull_request(handle.number)
    if pull_request.merged:
        logger.info("Pull request is already merged", pull_request_number=handle.number)
        return None
    if getattr(pull_request, "auto_merge", None) is not None:
        logger.info("Auto-merge is already enabled", pull_request_number=handle.number)
        return None

    if pull_request.mergeable_state in IMMEDIATELY_MERGEABLE_STATES:
        logger.info(
            "Pull request is already mergeable, merging directly",
            pull_request_number=handle.number,
            mergeable_state=pull_request.mergeable_state,
        )
        status = await github_adapter.merge_pull_request(handle.number, merge_method=DIRECT_MERGE_METHOD)
        if not status.merged:
            raise MergeAttemptRejectedError(f"Pull request #{handle.number} was not merged: {status.message}")
        state.merged_directly = True
        return status

    return await github_adapter.enable_auto_merge(handle.number, merge_method=AUTO_MERGE_STRATEGY)


async def enable_auto_merge_with_retry(
    gate: GateDecision,
    github_adapter: GitHubClientBase,
    handle: PullRequestHandle | None,
    policy: MergeRetryPolicy,
    sleep: Sleeper = asyncio.sleep,
) -> MergeTriggerResult | None:
    """Enable squash auto-merge on a pull request, retrying with a fixed delay.

    Waits ``policy.delay_seconds`` before each of at most ``policy.max_attempts``
    attempts and stops at the first success.

    Returns:
        None when the gate says to skip, otherwise the merge result.

    Raises:
        AutoMergeExhaustedError: If every attempt failed.
    """
    if gate.skip or handle is None:
        logger.info("Gate is closed, skipping auto-merge", reason=gate.reason)
        return None

    state = MergeAttemptState(max_attempts=policy.max_attempts)

    async def attempt(attempt_number: int) -> Any:
        state.attempts = attempt_number
        return await _attempt_merge(github_adapter, handle, state)

    outcome = await retry_with_fixed_delay(
        attempt,
        max_attempts=policy.max_attempts,
        delay=policy.delay_seconds,
        retry_on=RETRYABLE_MERGE_ERRORS,
        sleep=sleep,
        description=f"enable auto-merge for pull request #{handle.number}",
    )
    state.attempts = outcome.attempts
    if not outcome.succeeded:
        state.outcome = RetryStatus.EXHAUSTED
        raise AutoMergeExhaustedError(handle.number, outcome.attempts, outcome.last_error)

    state.outcome = RetryStatus.SUCCEEDED
    logger.info(
        "Pull request merge enabled",
        pull_request_number=handle.number,
        attempts=state.attempts,
        merged_directly=state.merged_directly,
    )
    return MergeTriggerResult(pull_request=handle, state=state)
