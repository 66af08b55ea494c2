"""General utility functions and helper classes."""

from binding_ops_manager.utils.constants import COMMIT_MESSAGE_TEMPLATE


def dependency_label_from_repository(repo: str) -> str:
    """Label a dependency by the name of its upstream repository (e.g. 'mmtk/mmtk-core' -> 'mmtk-core')."""
    return repo.strip("/").rsplit("/", 1)[-1]


def build_commit_message(dependency_label: str, revision: str) -> str:
    """Generate a deterministic commit message like 'Update mmtk-core to abc123'."""
    return COMMIT_MESSAGE_TEMPLATE.format(dependency_label=dependency_label, revision=revision)
