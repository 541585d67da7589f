"""Contract artifact loading for lsp-factory library."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .exceptions import ArtifactNotFoundError, DefectiveArtifactError
from .paths import get_artifact_path


@dataclass(frozen=True)
class ContractArtifact:
    """Compiled contract: name, ABI and creation bytecode."""

    contract_name: str
    abi: List[Dict[str, Any]]
    bytecode: str


def load_artifact(file_path: Path) -> ContractArtifact:
    """
    Parse a hardhat artifact JSON file.

    Args:
        file_path: Path to artifact JSON file

    Returns:
        ContractArtifact

    Raises:
        ArtifactNotFoundError: If the file does not exist
        DefectiveArtifactError: If the file is not valid JSON or has no bytecode
    """
    try:
        with open(file_path) as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ArtifactNotFoundError(f"Contract artifact not found at {file_path}") from e
    except json.JSONDecodeError as e:
        raise DefectiveArtifactError(f"Contract artifact is not valid JSON: {file_path}") from e

    bytecode = data.get("bytecode")
    # hardhat writes "0x" for abstract contracts and interfaces
    if not bytecode or bytecode == "0x":
        raise DefectiveArtifactError(f"Missing bytecode in contract artifact: {file_path}")
    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode

    return ContractArtifact(
        contract_name=data.get("contractName", file_path.stem),
        abi=data.get("abi", []),
        bytecode=bytecode,
    )


class ArtifactRegistry:
    """Loads and memoizes versioned contract artifacts from an artifacts directory."""

    def __init__(self, artifacts_root: Optional[Union[Path, str]] = None):
        """
        Initialize the registry.

        Args:
            artifacts_root: Artifacts directory
                            If None, uses $LSP_FACTORY_ARTIFACTS_DIR or ./artifacts
        """
        self._root = artifacts_root
        self._loaded: Dict[Tuple[str, int], ContractArtifact] = {}

    def get(self, contract_name: str, version: int) -> ContractArtifact:
        """
        Get the artifact for a contract at a given revision.

        Raises:
            ArtifactNotFoundError: If no artifact exists for contract/version
            DefectiveArtifactError: If the artifact has no bytecode
        """
        key = (contract_name, version)
        if key not in self._loaded:
            self._loaded[key] = load_artifact(get_artifact_path(contract_name, version, self._root))
        return self._loaded[key]

    def register(self, version: int, artifact: ContractArtifact) -> None:
        """Register an in-memory artifact, taking precedence over files."""
        self._loaded[(artifact.contract_name, version)] = artifact
