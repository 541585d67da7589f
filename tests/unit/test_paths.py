"""Unit tests for path helper functions."""

from pathlib import Path

from lsp_factory.constants import ARTIFACTS_DIR_ENV
from lsp_factory.paths import get_artifact_path, get_default_artifacts_dir


class TestGetDefaultArtifactsDir:
    """Test the get_default_artifacts_dir function."""

    def test_defaults_to_cwd_artifacts(self, monkeypatch, tmp_path):
        """Test that the default is ./artifacts."""
        monkeypatch.delenv(ARTIFACTS_DIR_ENV, raising=False)
        monkeypatch.chdir(tmp_path)

        assert get_default_artifacts_dir() == tmp_path / "artifacts"

    def test_environment_override(self, monkeypatch, tmp_path):
        """Test that the environment variable wins over the default."""
        monkeypatch.setenv(ARTIFACTS_DIR_ENV, str(tmp_path / "custom"))

        artifacts_dir = get_default_artifacts_dir()

        assert artifacts_dir == tmp_path / "custom"
        assert artifacts_dir.is_absolute()


class TestGetArtifactPath:
    """Test the get_artifact_path function."""

    def test_versioned_layout(self, tmp_path):
        """Test that artifacts live under v<version>/<name>.json."""
        path = get_artifact_path("LSP6KeyManager", 3, tmp_path)

        assert path == tmp_path / "v3" / "LSP6KeyManager.json"

    def test_accepts_string_root(self, tmp_path):
        """Test that string roots are converted to absolute paths."""
        path = get_artifact_path("LSP6KeyManager", 1, str(tmp_path))

        assert isinstance(path, Path)
        assert path.is_absolute()
        assert path.parent == tmp_path / "v1"

    def test_uses_default_root(self, monkeypatch, tmp_path):
        """Test that the default root is used when none is given."""
        monkeypatch.setenv(ARTIFACTS_DIR_ENV, str(tmp_path))

        assert get_artifact_path("LSP0ERC725Account", 1) == tmp_path / "v1" / "LSP0ERC725Account.json"
