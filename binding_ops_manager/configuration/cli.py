"""Defines the Command Line Interface (CLI) using Typer."""

import asyncio
import logging
import tempfile
from contextlib import ExitStack
from pathlib import Path

import structlog
import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from typer import Argument, Option
from typing_extensions import Annotated

from binding_ops_manager.configuration.env import settings
from binding_ops_manager.configuration.exceptions import (
    GitHubAuthenticationConfigurationUndefinedError,
    InvalidConfigurationValueError,
    RequiredConfigurationElementError,
)
from binding_ops_manager.configuration.models import BindingSyncConfig, GitHubCredentials, MergeRetryPolicy
from binding_ops_manager.configuration.reconcile import (
    reconcile_github_credentials,
    reconcile_merge_retry_policy,
    validate_push_token,
)
from binding_ops_manager.manifest.cargo import rewrite_dependency, use_local_dependency
from binding_ops_manager.synchronize.driver import run_binding_sync_workflow, run_enable_auto_merge_workflow
from binding_ops_manager.synchronize.exceptions import BindingSyncError, ManifestRewriteError
from binding_ops_manager.synchronize.gate import evaluate_refs, gate_output_line
from binding_ops_manager.synchronize.models import SyncRequest
from binding_ops_manager.synchronize.results import MergeTriggerResult, SyncRunStatus
from binding_ops_manager.utils.github import web_host_from_api_url

load_dotenv()

typer_app = typer.Typer(pretty_exceptions_show_locals=False)

CONFIGURATION_ERRORS = (
    GitHubAuthenticationConfigurationUndefinedError,
    RequiredConfigurationElementError,
    InvalidConfigurationValueError,
)


def configure_logging(debug: bool) -> None:
    """Configure structlog to emit events at INFO, or DEBUG when debugging."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if debug else logging.INFO))


@typer_app.callback()
def main_callback(
    debug: Annotated[bool, Option(envvar="DEBUG", help="Enable debug logging.")] = settings.DEBUG,
) -> None:
    """Keep binding repositories pinned to the core revision and merge their pull requests."""
    configure_logging(debug)


def _echo_merge_result(merge: MergeTriggerResult) -> None:
    action = "Merged" if merge.state.merged_directly else "Enabled auto-merge for"
    typer.echo(f"{action} pull request #{merge.pull_request.number} after {merge.state.attempts} attempt(s)")


async def _reconcile_api_credentials(
    github_api_url: str,
    push_token: str | None,
    merge_token: str | None,
    query_token: str | None,
    github_app_id: int | None,
    github_app_private_key_path: Path | None,
    github_app_installation_id: int | None,
) -> tuple[GitHubCredentials, GitHubCredentials | None]:
    """Build the merge credentials and, when a distinct query token is given, the query credentials."""
    using_app = bool(github_app_id or github_app_private_key_path or github_app_installation_id)
    if merge_token is None and not using_app:
        merge_token = push_token
    merge_credentials = await reconcile_github_credentials(
        github_api_url=github_api_url,
        github_token=merge_token,
        github_app_id=github_app_id,
        github_app_private_key_path=github_app_private_key_path,
        github_app_installation_id=github_app_installation_id,
    )
    query_credentials = None
    if query_token:
        query_credentials = await reconcile_github_credentials(github_api_url=github_api_url, github_token=query_token)
    return merge_credentials, query_credentials


@typer_app.command(name="check-gate")
def check_gate_cli(
    repo: Annotated[str, Argument(envvar="REPO", help="Repository the binding pull request is submitted from (owner/repo).")],
    base_repo: Annotated[str, Argument(envvar="BASE_REPO", help="Upstream repository where the pull request is opened (owner/repo).")],
    ref: Annotated[str, Argument(envvar="REF", help="Branch name of the pull request.")],
    base_ref: Annotated[str, Argument(envvar="BASE_REF", help="Upstream branch the pull request targets.")],
    github_output: Annotated[
        Path | None, Option(envvar="GITHUB_OUTPUT", help="File to append the 'skip=true|false' step output to.")
    ] = None,
) -> None:
    """Decide whether the binding needs to be synchronized and print skip=true|false."""
    decision = evaluate_refs(repo, base_repo, ref, base_ref)
    if decision.skip:
        typer.echo("Conditions not met")
    line = gate_output_line(decision)
    typer.echo(line)
    if github_output is not None:
        with open(github_output, "a", encoding="utf-8") as f:
            f.write(f"{line}\n")


@typer_app.command(name="sync-binding")
def sync_binding_cli(
    repo: Annotated[str, Argument(envvar="REPO", help="Repository the binding pull request is submitted from (owner/repo).")],
    base_repo: Annotated[str, Argument(envvar="BASE_REPO", help="Upstream repository where the pull request is opened (owner/repo).")],
    ref: Annotated[str, Argument(envvar="REF", help="Branch name of the pull request.")],
    base_ref: Annotated[str, Argument(envvar="BASE_REF", help="Upstream branch the pull request targets.")],
    core_commit: Annotated[str, Argument(envvar="CORE_COMMIT", help="Core revision the binding should use.")],
    update_lockfile: Annotated[
        str, Argument(envvar="UPDATE_LOCKFILE", help="Command that updates the lockfile; '--manifest-path <path>' is appended.")
    ],
    push_token: Annotated[str | None, Option(envvar="CI_ACCESS_TOKEN", help="Token with write access to the binding repository.")] = None,
    merge_token: Annotated[
        str | None, Option(envvar="MERGE_TOKEN", help="Token used to enable auto-merge. Defaults to the push token.")
    ] = None,
    query_token: Annotated[
        str | None, Option(envvar="GITHUB_TOKEN", help="Token used to look up the pull request. Defaults to the merge credentials.")
    ] = None,
    github_api_url: Annotated[str, Option(envvar="GITHUB_API_URL", help="GitHub API URL.")] = settings.GITHUB_API_URL,
    github_app_id: Annotated[int | None, Option(envvar="GITHUB_APP_ID", help="GitHub App ID.")] = None,
    github_app_private_key_path: Annotated[Path | None, Option(envvar="GITHUB_APP_PRIVATE_KEY_PATH", help="Path to GitHub App private key.")] = None,
    github_app_installation_id: Annotated[int | None, Option(envvar="GITHUB_APP_INSTALLATION_ID", help="GitHub App Installation ID.")] = None,
    workspace: Annotated[
        Path | None, Option(help="Directory to check repositories out into. Defaults to a temporary directory.")
    ] = None,
    manifest_path: Annotated[Path, Option(help="Manifest path relative to the binding repository root.")] = settings.MANIFEST_PATH,
    dependency_name: Annotated[str, Option(help="Name of the dependency entry to rewrite.")] = settings.DEPENDENCY_NAME,
    core_repo: Annotated[str, Option(help="Upstream core repository (owner/repo).")] = settings.CORE_REPO,
    core_git_url: Annotated[str, Option(help="Git URL written into the dependency entry.")] = settings.CORE_GIT_URL,
    verify_core_revision: Annotated[bool, Option(help="Fetch the core revision before rewriting the manifest.")] = True,
    merge_max_attempts: Annotated[int, Option(envvar="MERGE_MAX_ATTEMPTS", help="Attempts to enable auto-merge.")] = settings.MERGE_MAX_ATTEMPTS,
    merge_retry_delay: Annotated[
        float, Option(envvar="MERGE_RETRY_DELAY_SECONDS", help="Seconds to wait before each auto-merge attempt.")
    ] = settings.MERGE_RETRY_DELAY_SECONDS,
) -> None:
    """Pin a binding to a core revision, push the change, and enable auto-merge on its pull request."""
    try:
        request = SyncRequest(
            source_repo=repo,
            base_repo=base_repo,
            branch_ref=ref,
            base_ref=base_ref,
            pinned_revision=core_commit,
            lockfile_update_command=update_lockfile,
        )
    except ValidationError as exc:
        typer.echo(f"Invalid synchronization request: {exc}", err=True)
        raise typer.Exit(1) from exc

    decision = evaluate_refs(request.source_repo, request.base_repo, request.branch_ref, request.base_ref)
    if decision.skip:
        typer.echo(f"Conditions not met, nothing to synchronize: {decision.reason}")
        return

    try:
        validated_push_token = asyncio.run(validate_push_token(push_token))
        merge_credentials, query_credentials = asyncio.run(
            _reconcile_api_credentials(
                github_api_url,
                validated_push_token,
                merge_token,
                query_token,
                github_app_id,
                github_app_private_key_path,
                github_app_installation_id,
            )
        )
        policy: MergeRetryPolicy = asyncio.run(reconcile_merge_retry_policy(merge_max_attempts, merge_retry_delay))
    except CONFIGURATION_ERRORS as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc

    with ExitStack() as stack:
        if workspace is None:
            workspace = Path(stack.enter_context(tempfile.TemporaryDirectory(prefix="binding-sync-")))
        config = BindingSyncConfig(
            push_token=validated_push_token,
            manifest_path=manifest_path,
            dependency_name=dependency_name,
            core_repo=core_repo,
            core_git_url=core_git_url,
            git_host=web_host_from_api_url(github_api_url),
            git_user_name=settings.GIT_USER_NAME,
            git_user_email=settings.GIT_USER_EMAIL,
            workspace=workspace.resolve(),
            core_work_dir=settings.CORE_WORK_DIR,
            binding_work_dir=settings.BINDING_WORK_DIR,
            verify_core_revision=verify_core_revision,
        )
        typer.echo(f"Synchronizing {request.source_repo}@{request.branch_ref} to {core_repo}@{request.pinned_revision}")
        try:
            result = asyncio.run(
                run_binding_sync_workflow(
                    request=request,
                    config=config,
                    merge_credentials=merge_credentials,
                    policy=policy,
                    query_credentials=query_credentials,
                )
            )
        except BindingSyncError as exc:
            typer.echo(f"Step '{exc.step}' failed: {exc}", err=True)
            raise typer.Exit(1) from exc

    if result.status == SyncRunStatus.SKIPPED:
        typer.echo("Conditions not met, nothing to synchronize")
        return
    if result.dependency_update is not None:
        if result.dependency_update.commit_sha:
            typer.echo(f"Pushed commit {result.dependency_update.commit_sha} to {request.source_repo}@{request.branch_ref}")
        else:
            typer.echo(f"{request.source_repo}@{request.branch_ref} already pins {request.pinned_revision}, nothing pushed")
    if result.merge is not None:
        _echo_merge_result(result.merge)


@typer_app.command(name="enable-auto-merge")
def enable_auto_merge_cli(
    base_repo: Annotated[str, Argument(envvar="BASE_REPO", help="Upstream repository where the pull request is opened (owner/repo).")],
    ref: Annotated[str, Argument(envvar="REF", help="Branch name of the pull request.")],
    merge_token: Annotated[str | None, Option(envvar="CI_ACCESS_TOKEN", help="Token used to enable auto-merge.")] = None,
    query_token: Annotated[str | None, Option(envvar="GITHUB_TOKEN", help="Token used to look up the pull request.")] = None,
    github_api_url: Annotated[str, Option(envvar="GITHUB_API_URL", help="GitHub API URL.")] = settings.GITHUB_API_URL,
    github_app_id: Annotated[int | None, Option(envvar="GITHUB_APP_ID", help="GitHub App ID.")] = None,
    github_app_private_key_path: Annotated[Path | None, Option(envvar="GITHUB_APP_PRIVATE_KEY_PATH", help="Path to GitHub App private key.")] = None,
    github_app_installation_id: Annotated[int | None, Option(envvar="GITHUB_APP_INSTALLATION_ID", help="GitHub App Installation ID.")] = None,
    merge_max_attempts: Annotated[int, Option(envvar="MERGE_MAX_ATTEMPTS", help="Attempts to enable auto-merge.")] = settings.MERGE_MAX_ATTEMPTS,
    merge_retry_delay: Annotated[
        float, Option(envvar="MERGE_RETRY_DELAY_SECONDS", help="Seconds to wait before each auto-merge attempt.")
    ] = settings.MERGE_RETRY_DELAY_SECONDS,
) -> None:
    """Enable auto-merge on the open pull request for a branch, retrying while GitHub settles."""
    try:
        merge_credentials, query_credentials = asyncio.run(
            _reconcile_api_credentials(
                github_api_url,
                None,
                merge_token,
                query_token,
                github_app_id,
                github_app_private_key_path,
                github_app_installation_id,
            )
        )
        policy = asyncio.run(reconcile_merge_retry_policy(merge_max_attempts, merge_retry_delay))
    except CONFIGURATION_ERRORS as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc

    try:
        merge = asyncio.run(
            run_enable_auto_merge_workflow(
                base_repo=base_repo.strip().strip("/"),
                branch=ref.strip(),
                merge_credentials=merge_credentials,
                policy=policy,
                query_credentials=query_credentials,
            )
        )
    except BindingSyncError as exc:
        typer.echo(f"Step '{exc.step}' failed: {exc}", err=True)
        raise typer.Exit(1) from exc
    _echo_merge_result(merge)


# --- Add a new Typer group for manifest commands ---
manifest_app = typer.Typer(help="Commands that edit a binding manifest in place.")


@manifest_app.command(name="rewrite")
def manifest_rewrite_cli(
    manifest_path: Annotated[Path, Argument(help="Path to the Cargo.toml to rewrite.")],
    revision: Annotated[str, Argument(help="Revision to pin the dependency to.")],
    git_url: Annotated[str, Option(help="Git URL written into the dependency entry.")] = settings.CORE_GIT_URL,
    dependency_name: Annotated[str, Option(help="Name of the dependency entry to rewrite.")] = settings.DEPENDENCY_NAME,
) -> None:
    """Pin a dependency in a manifest to a git revision."""
    try:
        changed = rewrite_dependency(manifest_path, dependency_name, git_url, revision)
    except ManifestRewriteError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc
    if changed:
        typer.echo(f"Pinned {dependency_name} to {git_url}@{revision} in {manifest_path}")
    else:
        typer.echo(f"{manifest_path} already pins {dependency_name} to {git_url}@{revision}")


@manifest_app.command(name="use-local")
def manifest_use_local_cli(
    manifest_path: Annotated[Path, Argument(help="Path to the Cargo.toml to switch.")],
    dependency_name: Annotated[str, Option(help="Name of the dependency entry to switch.")] = settings.DEPENDENCY_NAME,
) -> None:
    """Disable the active dependency entry and enable its commented local alternative."""
    try:
        enabled = use_local_dependency(manifest_path, dependency_name)
    except ManifestRewriteError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc
    typer.echo(f"Enabled {enabled} local {dependency_name} entr{'y' if enabled == 1 else 'ies'} in {manifest_path}")


# --- Register the manifest_app as a sub-app of the main Typer app ---
typer_app.add_typer(manifest_app, name="manifest")


if __name__ == "__main__":
    typer_app()
