"""Unit tests for rewriting dependency declarations in Cargo manifests."""

import tomllib
from pathlib import Path

import pytest

from binding_ops_manager.manifest.cargo import rewrite_dependency, use_local_dependency
from binding_ops_manager.synchronize.exceptions import ManifestRewriteError

CORE_GIT_URL = "https://github.com/mmtk/mmtk-core.git"

MANIFEST = """[package]
name = "mmtk_openjdk"
version = "0.30.0"

[dependencies]
libc = "0.2"
# Switch to a local checkout with: mmtk = { path = "../repos/mmtk-core" }
mmtk = { git = "https://github.com/mmtk/mmtk-core.git", rev = "oldrev", features = ["vo_bit"] }
# mmtk = { path = "../repos/mmtk-core" }
once_cell = "1.10.0"

[features]
default = []
mmtk = []
"""


@pytest.fixture
def manifest(tmp_path: Path) -> Path:
    """Write a binding manifest to a temporary directory."""
    path = tmp_path / "Cargo.toml"
    path.write_text(MANIFEST, encoding="utf-8")
    return path


def other_lines(text: str) -> list[str]:
    """Return every line that does not declare the mmtk dependency."""
    return [line for line in text.splitlines() if not line.lstrip().startswith("mmtk = {")]


def test_rewrite_pins_revision_and_keeps_other_lines(manifest: Path) -> None:
    """Only the dependency entry changes; features and every other line are kept."""
    # When
    changed = rewrite_dependency(manifest, "mmtk", CORE_GIT_URL, "newrev")

    # Then
    assert changed is True
    text = manifest.read_text(encoding="utf-8")
    assert other_lines(text) == other_lines(MANIFEST)
    assert tomllib.loads(text)["dependencies"]["mmtk"] == {"git": CORE_GIT_URL, "rev": "newrev", "features": ["vo_bit"]}
    assert tomllib.loads(text)["features"] == {"default": [], "mmtk": []}


def test_rewrite_is_idempotent(manifest: Path) -> None:
    """Rewriting with the same revision twice leaves the file byte-identical."""
    # Given
    rewrite_dependency(manifest, "mmtk", CORE_GIT_URL, "newrev")
    first = manifest.read_bytes()

    # When
    changed = rewrite_dependency(manifest, "mmtk", CORE_GIT_URL, "newrev")

    # Then
    assert changed is False
    assert manifest.read_bytes() == first


def test_rewrite_version_requirement_keeps_trailing_comment(tmp_path: Path) -> None:
    """A plain version requirement becomes a git pin and its trailing comment survives."""
    # Given
    manifest = tmp_path / "Cargo.toml"
    manifest.write_text('[dependencies]\nmmtk = "0.30.0" # released\n', encoding="utf-8")

    # When
    rewrite_dependency(manifest, "mmtk", CORE_GIT_URL, "abc123")

    # Then
    text = manifest.read_text(encoding="utf-8")
    assert "# released" in text
    assert tomllib.loads(text)["dependencies"]["mmtk"] == {"git": CORE_GIT_URL, "rev": "abc123"}


def test_rewrite_replaces_path_source_and_keeps_flags(tmp_path: Path) -> None:
    """Source keys are replaced while flags such as default-features are kept."""
    # Given
    manifest = tmp_path / "Cargo.toml"
    manifest.write_text('[dependencies]\nmmtk = { path = "../mmtk-core", default-features = false }\n', encoding="utf-8")

    # When
    rewrite_dependency(manifest, "mmtk", CORE_GIT_URL, "abc123")

    # Then
    entry = tomllib.loads(manifest.read_text(encoding="utf-8"))["dependencies"]["mmtk"]
    assert entry == {"git": CORE_GIT_URL, "rev": "abc123", "default-features": False}


def test_rewrite_multiline_inline_table(tmp_path: Path) -> None:
    """An inline table whose feature list spans several lines is rewritten."""
    # Given
    manifest = tmp_path / "Cargo.toml"
    manifest.write_text('[dependencies]\nmmtk = { git = "https://x", rev = "old", features = [\n "a",\n] }\n', encoding="utf-8")

    # When
    changed = rewrite_dependency(manifest, "mmtk", CORE_GIT_URL, "abc123")

    # Then
    assert changed is True
    entry = tomllib.loads(manifest.read_text(encoding="utf-8"))["dependencies"]["mmtk"]
    assert entry == {"git": CORE_GIT_URL, "rev": "abc123", "features": ["a"]}


def test_rewrite_indented_entry(tmp_path: Path) -> None:
    """An indented entry is still found in the [dependencies] table."""
    # Given
    manifest = tmp_path / "Cargo.toml"
    manifest.write_text('[dependencies]\n  mmtk = "0.30"\n', encoding="utf-8")

    # When
    rewrite_dependency(manifest, "mmtk", CORE_GIT_URL, "abc123")

    # Then
    entry = tomllib.loads(manifest.read_text(encoding="utf-8"))["dependencies"]["mmtk"]
    assert entry == {"git": CORE_GIT_URL, "rev": "abc123"}


def test_rewrite_dependency_subtable(tmp_path: Path) -> None:
    """A dependency declared as its own [dependencies.mmtk] table is rewritten in place."""
    # Given
    manifest = tmp_path / "Cargo.toml"
    manifest.write_text('[dependencies.mmtk]\nversion = "0.30"\nfeatures = ["vo_bit"]\n', encoding="utf-8")

    # When
    rewrite_dependency(manifest, "mmtk", CORE_GIT_URL, "abc123")

    # Then
    entry = tomllib.loads(manifest.read_text(encoding="utf-8"))["dependencies"]["mmtk"]
    assert entry == {"git": CORE_GIT_URL, "rev": "abc123", "features": ["vo_bit"]}


def test_rewrite_ignores_entries_outside_dependencies(tmp_path: Path) -> None:
    """Entries with the same name in other tables are left unchanged."""
    # Given
    content = '[dependencies]\nmmtk = "0.30.0"\n\n[dev-dependencies]\nmmtk = "0.29.0"\n'
    manifest = tmp_path / "Cargo.toml"
    manifest.write_text(content, encoding="utf-8")

    # When
    rewrite_dependency(manifest, "mmtk", CORE_GIT_URL, "abc123")

    # Then
    assert manifest.read_text(encoding="utf-8").endswith('[dev-dependencies]\nmmtk = "0.29.0"\n')


def test_rewrite_missing_entry(tmp_path: Path) -> None:
    """A manifest without the dependency is rejected and left untouched."""
    # Given
    content = '[dependencies]\nlibc = "0.2"\n'
    manifest = tmp_path / "Cargo.toml"
    manifest.write_text(content, encoding="utf-8")

    # When/Then
    with pytest.raises(ManifestRewriteError, match="No 'mmtk' entry found"):
        rewrite_dependency(manifest, "mmtk", CORE_GIT_URL, "abc123")
    assert manifest.read_text(encoding="utf-8") == content


def test_rewrite_duplicate_entries(tmp_path: Path) -> None:
    """A manifest declaring the dependency twice is invalid and nothing is written."""
    # Given
    content = '[dependencies]\nmmtk = "0.29.0"\nmmtk = "0.30.0"\n'
    manifest = tmp_path / "Cargo.toml"
    manifest.write_text(content, encoding="utf-8")

    # When/Then
    with pytest.raises(ManifestRewriteError, match="not valid TOML"):
        rewrite_dependency(manifest, "mmtk", CORE_GIT_URL, "abc123")
    assert manifest.read_text(encoding="utf-8") == content


def test_rewrite_missing_manifest(tmp_path: Path) -> None:
    """A missing manifest is reported as a rewrite failure."""
    with pytest.raises(ManifestRewriteError, match="Manifest not found"):
        rewrite_dependency(tmp_path / "Cargo.toml", "mmtk", CORE_GIT_URL, "abc123")


def test_rewrite_error_step() -> None:
    """Rewrite failures are attributed to the rewrite step."""
    assert ManifestRewriteError("boom").step == "rewrite-manifest"


def test_use_local_dependency(tmp_path: Path) -> None:
    """The active entry is disabled and the commented alternative enabled."""
    # Given
    manifest = tmp_path / "Cargo.toml"
    manifest.write_text(
        '[dependencies]\nmmtk = { git = "https://github.com/mmtk/mmtk-core.git", rev = "abc123" }\n'
        '# mmtk = { path = "../repos/mmtk-core" }\n',
        encoding="utf-8",
    )

    # When
    enabled = use_local_dependency(manifest, "mmtk")

    # Then
    assert enabled == 1
    assert manifest.read_text(encoding="utf-8") == (
        '[dependencies]\n#ci:mmtk = { git = "https://github.com/mmtk/mmtk-core.git", rev = "abc123" }\n'
        'mmtk = { path = "../repos/mmtk-core" }\n'
    )


def test_use_local_dependency_without_alternative(tmp_path: Path) -> None:
    """Without a commented alternative nothing is written."""
    # Given
    content = '[dependencies]\nmmtk = "0.30.0"\n'
    manifest = tmp_path / "Cargo.toml"
    manifest.write_text(content, encoding="utf-8")

    # When/Then
    with pytest.raises(ManifestRewriteError, match="No commented"):
        use_local_dependency(manifest, "mmtk")
    assert manifest.read_text(encoding="utf-8") == content
