"""Rewriting of dependency declarations in Cargo manifests.

The manifest is parsed with ``tomlkit``, which keeps comments and formatting,
so only the rewritten dependency entry changes when the document is written
back. The result is parsed again with ``tomllib`` to confirm the new pin is in
place.
"""

import re
import tomllib
from pathlib import Path
from typing import Any

import structlog
import tomlkit
from tomlkit.exceptions import TOMLKitError

from binding_ops_manager.synchronize.exceptions import ManifestRewriteError
from binding_ops_manager.utils.constants import LOCAL_DEPENDENCY_DISABLED_PREFIX

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

# Keys that select where a dependency comes from. They are replaced when the
# entry is pinned to a git revision; every other key (features, optional,
# default-features, ...) is kept.
SOURCE_KEYS = frozenset({"git", "rev", "branch", "tag", "path", "version", "registry"})


def _is_pinned(entry: Any, git_url: str, revision: str) -> bool:
    """Whether an entry already points at exactly ``revision`` of ``git_url``."""
    if not isinstance(entry, dict):
        return False
    sources = {key for key in entry if key in SOURCE_KEYS}
    return sources == {"git", "rev"} and entry["git"] == git_url and entry["rev"] == revision


def _pin_entry(dependencies: Any, dependency_name: str, git_url: str, revision: str) -> None:
    """Replace the source keys of one dependency entry with ``git`` and ``rev``."""
    entry = dependencies[dependency_name]
    if isinstance(entry, str):
        # A plain version requirement such as mmtk = "0.30.0".
        pinned = tomlkit.inline_table()
        pinned["git"] = git_url
        pinned["rev"] = revision
        dependencies[dependency_name] = pinned
        return
    if not isinstance(entry, dict):
        raise ManifestRewriteError(f"Unsupported value for dependency '{dependency_name}': {entry!r}")

    for key in [key for key in entry if key in SOURCE_KEYS - {"git", "rev"}]:
        del entry[key]
    if entry.get("git") != git_url:
        entry["git"] = git_url
    if entry.get("rev") != revision:
        entry["rev"] = revision


def _verify_pin(text: str, manifest_path: Path, dependency_name: str, git_url: str, revision: str) -> None:
    try:
        document = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ManifestRewriteError(f"Rewritten manifest {manifest_path} is not valid TOML: {exc}") from exc
    entry = document.get("dependencies", {}).get(dependency_name)
    if not isinstance(entry, dict) or entry.get("git") != git_url or entry.get("rev") != revision:
        raise ManifestRewriteError(f"Rewritten manifest {manifest_path} does not pin {dependency_name} to {git_url}@{revision}")


def rewrite_dependency(manifest_path: Path, dependency_name: str, git_url: str, revision: str) -> bool:
    """Point the ``dependency_name`` entry of a manifest at ``revision`` of ``git_url``.

    The entry must exist in the manifest's ``[dependencies]`` table. Its source
    keys are replaced by ``git`` and ``rev``; other keys of the entry are kept
    and the rest of the document is left untouched. Rewriting with the same URL
    and revision again leaves the file byte-identical.

    Args:
        manifest_path: Path to the Cargo.toml to rewrite in place.
        dependency_name: Name of the dependency entry to rewrite.
        git_url: Remote source location of the dependency.
        revision: Revision to pin.

    Returns:
        True if the file content changed, False if it already had the pin.

    Raises:
        ManifestRewriteError: If the manifest is missing or not valid TOML, the
            entry is missing, or the rewritten manifest does not carry the new pin.
    """
    if not manifest_path.is_file():
        raise ManifestRewriteError(f"Manifest not found: {manifest_path}")

    original = manifest_path.read_text(encoding="utf-8")
    try:
        manifest: dict[str, Any] = tomlkit.parse(original)
    except TOMLKitError as exc:
        raise ManifestRewriteError(f"Manifest {manifest_path} is not valid TOML: {exc}") from exc

    dependencies = manifest.get("dependencies")
    if not isinstance(dependencies, dict) or dependency_name not in dependencies:
        raise ManifestRewriteError(f"No '{dependency_name}' entry found in the [dependencies] table of {manifest_path}")

    if _is_pinned(dependencies[dependency_name], git_url, revision):
        logger.info("Manifest already pins dependency", manifest=str(manifest_path), dependency=dependency_name, revision=revision)
        return False

    _pin_entry(dependencies, dependency_name, git_url, revision)
    rewritten = tomlkit.dumps(manifest)
    _verify_pin(rewritten, manifest_path, dependency_name, git_url, revision)

    manifest_path.write_text(rewritten, encoding="utf-8")
    logger.info(
        "Rewrote dependency in manifest",
        manifest=str(manifest_path),
        dependency=dependency_name,
        git_url=git_url,
        revision=revision,
    )
    return True


def use_local_dependency(manifest_path: Path, dependency_name: str) -> int:
    """Switch a manifest from its active dependency entry to a commented local alternative.

    Active ``<name> = ...`` lines are disabled as ``#ci:<name> = ...`` and
    commented ``# <name> = ...`` lines are enabled. The commented alternative is
    typically a path dependency on a local checkout of the core repository.

    Returns:
        The number of lines that were enabled.

    Raises:
        ManifestRewriteError: If the manifest is missing or has no commented alternative.
    """
    if not manifest_path.is_file():
        raise ManifestRewriteError(f"Manifest not found: {manifest_path}")

    name = re.escape(dependency_name)
    active_pattern = re.compile(rf"^{name}(\s*=)")
    commented_pattern = re.compile(rf"^#\s*({name}\s*=)")

    lines = manifest_path.read_text(encoding="utf-8").splitlines(keepends=True)
    disabled = 0
    enabled = 0
    for index, line in enumerate(lines):
        if active_pattern.match(line):
            lines[index] = f"{LOCAL_DEPENDENCY_DISABLED_PREFIX}{line}"
            disabled += 1
        elif commented_pattern.match(line):
            lines[index] = commented_pattern.sub(r"\1", line, count=1)
            enabled += 1

    if not enabled:
        raise ManifestRewriteError(f"No commented '# {dependency_name} = ...' alternative found in {manifest_path}")

    manifest_path.write_text("".join(lines), encoding="utf-8")
    logger.info("Switched manifest to local dependency", manifest=str(manifest_path), dependency=dependency_name, disabled=disabled, enabled=enabled)
    return enabled
