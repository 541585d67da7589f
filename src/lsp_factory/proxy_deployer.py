"""
Deployment of the shared base contracts Universal Profile proxies point at.

Base contracts are deployed once per chain; their addresses go into
``DeploymentConfiguration.base_contract_addresses`` so later deployments
only create minimal proxies against them.
"""

import asyncio
import logging
from typing import Dict, Optional, Sequence

from .addresses import resolve_deployed_address
from .artifacts import ArtifactRegistry
from .config import DEFAULT_ARTIFACT_VERSION
from .constants import GAS_BUFFER, GAS_PRICE, ContractNames
from .exceptions import ConfigurationError
from .runner import ContractCall, EmitEvent, StepRunner
from .signer import Signer, address_is_universal_profile
from .types import DeploymentEvent

logger = logging.getLogger(__name__)

BASE_CONTRACTS = (
    ContractNames.ERC725_ACCOUNT,
    ContractNames.KEY_MANAGER,
    ContractNames.UNIVERSAL_RECEIVER,
)


def base_contract_name(contract_name: str) -> str:
    """Artifact name of the initializable base contract proxies point at."""
    return contract_name + "Init"


def _discard(event: DeploymentEvent) -> None:
    pass


class ProxyDeployer:
    """Deploys initializable base contracts from the versioned artifacts."""

    def __init__(
        self,
        signer: Signer,
        artifacts: Optional[ArtifactRegistry] = None,
        gas_price: int = GAS_PRICE,
        gas_buffer: int = GAS_BUFFER,
    ):
        self.signer = signer
        self.artifacts = artifacts if artifacts is not None else ArtifactRegistry()
        self.runner = StepRunner(signer, gas_price, gas_buffer)

    async def _signer_is_identity(self) -> bool:
        return await address_is_universal_profile(self.signer, await self.signer.get_address())

    async def deploy_base_contract(
        self,
        contract_name: str,
        version: int = DEFAULT_ARTIFACT_VERSION,
        emit: Optional[EmitEvent] = None,
        signer_is_identity: Optional[bool] = None,
    ) -> str:
        """
        Deploy the ``<Name>Init`` base contract of one Universal Profile contract.

        Args:
            contract_name: Canonical contract name, e.g. "LSP6KeyManager"
            version: Artifact revision
            emit: Receives the step's DeploymentEvents
            signer_is_identity: Whether the signer is an account contract;
                                checked on chain when omitted

        Returns:
            Checksummed address of the base contract

        Raises:
            ConfigurationError: If contract_name has no base contract
            ArtifactNotFoundError: If the base artifact is missing
            DeploymentStepError: If the deployment transaction fails
        """
        if contract_name not in BASE_CONTRACTS:
            raise ConfigurationError(f"No base contract for '{contract_name}'")

        artifact = self.artifacts.get(base_contract_name(contract_name), version)
        if signer_is_identity is None:
            signer_is_identity = await self._signer_is_identity()

        receipt = await self.runner.run(
            ContractCall.creation(contract_name, artifact.bytecode), emit or _discard
        )
        address = resolve_deployed_address(receipt, signer_is_identity)
        logger.info(f"Deployed {artifact.contract_name} at {address}")
        return address

    async def deploy_account_base_contract(self, version: int = DEFAULT_ARTIFACT_VERSION) -> str:
        return await self.deploy_base_contract(ContractNames.ERC725_ACCOUNT, version)

    async def deploy_key_manager_base_contract(self, version: int = DEFAULT_ARTIFACT_VERSION) -> str:
        return await self.deploy_base_contract(ContractNames.KEY_MANAGER, version)

    async def deploy_universal_receiver_delegate_base_contract(
        self, version: int = DEFAULT_ARTIFACT_VERSION
    ) -> str:
        return await self.deploy_base_contract(ContractNames.UNIVERSAL_RECEIVER, version)

    async def deploy_base_contracts(
        self,
        version: int = DEFAULT_ARTIFACT_VERSION,
        contract_names: Sequence[str] = BASE_CONTRACTS,
        emit: Optional[EmitEvent] = None,
    ) -> Dict[str, str]:
        """
        Deploy several base contracts concurrently.

        Every artifact is loaded before anything is sent.

        Returns:
            Mapping of contract name -> base contract address, usable as
            ``DeploymentConfiguration.base_contract_addresses``
        """
        for name in contract_names:
            if name not in BASE_CONTRACTS:
                raise ConfigurationError(f"No base contract for '{name}'")
            self.artifacts.get(base_contract_name(name), version)

        signer_is_identity = await self._signer_is_identity()
        addresses = await asyncio.gather(
            *[
                self.deploy_base_contract(name, version, emit, signer_is_identity)
                for name in contract_names
            ]
        )
        return dict(zip(contract_names, addresses))
