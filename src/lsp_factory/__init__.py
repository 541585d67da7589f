"""
lsp-factory: Python library for deploying and configuring LUKSO Universal Profiles
"""

from importlib.metadata import PackageNotFoundError, version

from .config import ContractOptions, DeploymentConfiguration, UploadOptions
from .exceptions import (
    AddressResolutionError,
    ArtifactNotFoundError,
    ConfigurationError,
    DefectiveArtifactError,
    DeploymentStepError,
    HandoffError,
    InvalidControllerError,
    InvalidPermissionError,
    LSPFactoryError,
    ProfileMetadataError,
    TransactionFailedError,
)
from .factory import LSP3UniversalProfile, LSPFactory
from .handoff import HandoffState
from .proxy_deployer import ProxyDeployer
from .signer import Signer, Web3Signer
from .types import (
    Controller,
    DeployedContracts,
    DeploymentEvent,
    DeploymentStatus,
    DeploymentType,
    PermissionWriteSet,
)
from .universal_profile import UniversalProfileDeployment

try:
    __version__ = version("lsp-factory")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "LSPFactory",
    "LSP3UniversalProfile",
    "UniversalProfileDeployment",
    "ProxyDeployer",
    "DeploymentConfiguration",
    "ContractOptions",
    "UploadOptions",
    "Signer",
    "Web3Signer",
    "HandoffState",
    "Controller",
    "DeployedContracts",
    "DeploymentEvent",
    "DeploymentStatus",
    "DeploymentType",
    "PermissionWriteSet",
    "LSPFactoryError",
    "ConfigurationError",
    "InvalidControllerError",
    "InvalidPermissionError",
    "ArtifactNotFoundError",
    "DefectiveArtifactError",
    "ProfileMetadataError",
    "TransactionFailedError",
    "DeploymentStepError",
    "AddressResolutionError",
    "HandoffError",
]
