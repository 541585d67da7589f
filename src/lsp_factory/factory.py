"""Main API for lsp-factory library."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from .artifacts import ArtifactRegistry
from .config import DeploymentConfiguration
from .constants import DEFAULT_CHAIN_ID, NETWORK_CONFIG
from .encoder import ControllerInput
from .profile import ProfileInput, Uploader
from .proxy_deployer import ProxyDeployer
from .signer import Signer, Web3Signer
from .types import DeployedContracts
from .universal_profile import UniversalProfileDeployment

DeploymentOptions = Union[DeploymentConfiguration, Mapping[str, Any], None]


@dataclass
class FactoryOptions:
    """Connection shared by every deployment a factory performs."""

    signer: Signer
    provider: Any = None
    chain_id: int = DEFAULT_CHAIN_ID


class LSP3UniversalProfile:
    """Deploys Universal Profiles: account, key manager and delegate."""

    def __init__(
        self,
        options: FactoryOptions,
        artifacts: Optional[ArtifactRegistry] = None,
        uploader: Optional[Uploader] = None,
    ):
        self.options = options
        self.artifacts = artifacts if artifacts is not None else ArtifactRegistry()
        self.uploader = uploader

    def deployment(
        self,
        controllers: Iterable[ControllerInput],
        profile: Optional[ProfileInput] = None,
        options: DeploymentOptions = None,
    ) -> UniversalProfileDeployment:
        """
        Prepare a deployment without sending anything.

        Args:
            controllers: Addresses or {"address", "permissions"} mappings
            profile: Encoded profile data, profile URL, or structured profile
            options: DeploymentConfiguration or camelCase options mapping

        Returns:
            UniversalProfileDeployment whose events() and result() drive the run

        Raises:
            InvalidControllerError: If a controller entry is malformed
            ConfigurationError: If options are invalid
            ArtifactNotFoundError: If a needed contract artifact is missing
        """
        if isinstance(options, DeploymentConfiguration):
            config = options
        else:
            config = DeploymentConfiguration.from_options(options)

        return UniversalProfileDeployment(
            self.options.signer,
            controllers,
            profile=profile,
            config=config,
            artifacts=self.artifacts,
            uploader=self.uploader,
        )

    async def deploy(
        self,
        controllers: Iterable[ControllerInput],
        profile: Optional[ProfileInput] = None,
        options: DeploymentOptions = None,
    ) -> DeployedContracts:
        """Deploy and configure a Universal Profile, returning its contract addresses."""
        return await self.deployment(controllers, profile, options).result()


class LSPFactory:
    """Factory for creating LSP3 Universal Profiles and the base contracts they proxy."""

    def __init__(
        self,
        signer: Signer,
        provider: Any = None,
        chain_id: int = DEFAULT_CHAIN_ID,
        artifacts_root: Optional[Union[Path, str]] = None,
        uploader: Optional[Uploader] = None,
    ):
        """
        Initialize the factory.

        Args:
            signer: Signer used for every transaction
            provider: Network endpoint the signer is connected to
            chain_id: Chain id (defaults to LUKSO L14 testnet, 22)
            artifacts_root: Contract artifacts directory
            uploader: Async callable storing raw profile JSON and returning its URL
        """
        self.options = FactoryOptions(signer=signer, provider=provider, chain_id=chain_id)
        self.artifacts = ArtifactRegistry(artifacts_root)
        self.universal_profile = LSP3UniversalProfile(self.options, self.artifacts, uploader)
        self.proxy_deployer = ProxyDeployer(signer, self.artifacts)

    @classmethod
    def from_rpc_url(
        cls,
        rpc_url: Optional[str] = None,
        private_key: Optional[str] = None,
        chain_id: Optional[int] = None,
        **kwargs: Any,
    ) -> "LSPFactory":
        """
        Create a factory signing with a local key against an HTTP RPC endpoint.

        Args:
            rpc_url: RPC endpoint (defaults to $LUKSO_RPC_URL)
            private_key: Hex private key (defaults to $LSP_FACTORY_PRIVATE_KEY)
            chain_id: Chain id to sign for; read from the node when omitted.
                      Reported by network_info() as LUKSO L14 (22) in that case.

        Raises:
            ValueError: If the RPC URL or private key is missing
        """
        signer = Web3Signer.from_rpc_url(rpc_url, private_key, chain_id)
        return cls(
            signer,
            signer.web3,
            chain_id if chain_id is not None else DEFAULT_CHAIN_ID,
            **kwargs,
        )

    def network_info(self) -> Dict[str, Any]:
        """
        Get information about the configured chain.

        Returns:
            Dictionary with chain_id plus chain_name and block_explorer_url when known
        """
        info: Dict[str, Any] = {"chain_id": self.options.chain_id}
        network = NETWORK_CONFIG.get(self.options.chain_id)
        if network is not None:
            info["chain_name"] = network["chain_name"]
            info["block_explorer_url"] = network["block_explorer_url"]
        return info
