"""Decides whether a binding needs to be synchronized at all."""

import structlog

from binding_ops_manager.synchronize.models import GateDecision, SyncRequest

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def is_upstream_target_branch(source_repo: str, base_repo: str, branch_ref: str, base_ref: str) -> bool:
    """Whether the branch is the upstream target branch itself."""
    return source_repo == base_repo and branch_ref == base_ref


def should_skip_sync(request: SyncRequest) -> bool:
    """Return True when the request targets an upstream branch against itself.

    Synchronization only applies when the source repository differs from the
    upstream repository, or when the branch differs from the upstream target
    branch.
    """
    return is_upstream_target_branch(request.source_repo, request.base_repo, request.branch_ref, request.base_ref)


def evaluate_refs(source_repo: str, base_repo: str, branch_ref: str, base_ref: str) -> GateDecision:
    """Evaluate the gate from the repository and branch pairs alone."""
    if is_upstream_target_branch(source_repo, base_repo, branch_ref, base_ref):
        reason = f"{source_repo}@{branch_ref} is the upstream target branch itself"
        logger.info("Conditions not met, skipping synchronization", repo=source_repo, branch=branch_ref, reason=reason)
        return GateDecision(skip=True, reason=reason)
    logger.info(
        "Conditions met, synchronization will proceed",
        repo=source_repo,
        base_repo=base_repo,
        branch=branch_ref,
        base_branch=base_ref,
    )
    return GateDecision(skip=False)


def evaluate_gate(request: SyncRequest) -> GateDecision:
    """Evaluate the gate for a request."""
    return evaluate_refs(request.source_repo, request.base_repo, request.branch_ref, request.base_ref)


def gate_output_line(decision: GateDecision) -> str:
    """Render the gate decision in the key=value form consumed by CI step outputs."""
    return f"skip={'true' if decision.skip else 'false'}"
