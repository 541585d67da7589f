"""Path management utilities for lsp-factory library."""

import os
from pathlib import Path
from typing import Optional, Union

from .constants import ARTIFACTS_DIR_ENV


def get_default_artifacts_dir() -> Path:
    """
    Get default artifacts directory.

    Returns:
        $LSP_FACTORY_ARTIFACTS_DIR if set, otherwise ./artifacts
    """
    env_dir = os.environ.get(ARTIFACTS_DIR_ENV)
    if env_dir:
        return Path(env_dir).absolute()
    return Path.cwd() / "artifacts"


def get_artifact_path(
    contract_name: str,
    version: int,
    artifacts_root: Optional[Union[Path, str]] = None,
) -> Path:
    """
    Get path of a versioned contract artifact.

    Args:
        contract_name: Contract name, e.g. "LSP6KeyManager"
        version: Integer artifact revision
        artifacts_root: Custom artifacts directory (defaults to get_default_artifacts_dir())

    Returns:
        Path to <root>/v<version>/<contract_name>.json
    """
    if artifacts_root is None:
        artifacts_root = get_default_artifacts_dir()
    else:
        artifacts_root = Path(artifacts_root).absolute()

    return artifacts_root / f"v{version}" / f"{contract_name}.json"
