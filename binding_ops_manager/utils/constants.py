"""Shared constants used across the application."""

# This file is intended to hold shared constants.

import re

# Merge Trigger Constants
# -----------------------

DEFAULT_MERGE_MAX_ATTEMPTS = 5
"""Number of times enabling auto-merge is attempted before giving up."""

DEFAULT_MERGE_RETRY_DELAY_SECONDS = 30.0
"""Fixed settling delay applied before every auto-merge attempt, including the first."""

AUTO_MERGE_STRATEGY = "SQUASH"
"""Merge method passed to the enable auto-merge mutation."""

DIRECT_MERGE_METHOD = "squash"
"""Merge method used when a pull request is already mergeable and is merged directly."""

IMMEDIATELY_MERGEABLE_STATES = frozenset({"clean", "has_hooks", "unstable"})
"""Mergeable states in which GitHub refuses auto-merge because the pull request can be merged right away."""

MERGE_ATTEMPT_RATE_LIMIT_RETRIES = 0
"""Rate limit retries for pull request lookups made inside a merge attempt; a rate limit fails the attempt instead."""

# Dependency Synchronization Constants
# ------------------------------------

DEFAULT_CORE_REPO = "mmtk/mmtk-core"
"""Upstream core repository whose revision is pinned in binding manifests."""

DEFAULT_CORE_GIT_URL = "https://github.com/mmtk/mmtk-core.git"
"""Remote source location written into the rewritten dependency entry."""

DEFAULT_DEPENDENCY_NAME = "mmtk"
"""Name of the dependency entry rewritten in the binding manifest."""

DEFAULT_MANIFEST_PATH = "mmtk/Cargo.toml"
"""Manifest location relative to the root of the binding working copy."""

LOCKFILE_NAME = "Cargo.lock"
"""Derived lock artifact that sits beside the manifest."""

DEFAULT_CORE_WORK_DIR = "mmtk-core"
DEFAULT_BINDING_WORK_DIR = "mmtk-binding-repo"

DEFAULT_GIT_USER_NAME = "mmtkgc-bot"
DEFAULT_GIT_USER_EMAIL = "mmtkgc.bot@gmail.com"

COMMIT_MESSAGE_TEMPLATE = "Update {dependency_label} to {revision}"
"""Deterministic commit message for a dependency pin update."""

LOCAL_DEPENDENCY_DISABLED_PREFIX = "#ci:"
"""Prefix used to disable the active dependency line when switching to a local checkout."""

# Regex Patterns
# --------------

REPOSITORY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")
"""Pattern that repository identifiers in 'owner/name' form must match."""

CREDENTIAL_URL_PATTERN = re.compile(r"(https?://)[^/@\s]+@")
"""Pattern matching the userinfo portion of a credentialed remote URL."""
