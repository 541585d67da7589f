"""
Universal Profile provisioning pipeline.

Graph of one deployment (proxy mode shown; full mode has no initialize node)::

    signer ──┬── account:deploy ── account:initialize ──┐
             │        └── keyManager:deploy ── keyManager:initialize ──┐
             ├── delegate:deploy ── delegate:initialize ──┤            │
    profile ─┴────────────────────────────────────────── setData ── ownership

Account and delegate are created concurrently; the key manager needs the
account address. setData waits for account, delegate and profile metadata;
the ownership handoff waits for setData and the key manager.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .addresses import resolve_deployed_address
from .artifacts import ArtifactRegistry
from .cache import Emit, Step, StepCache
from .config import DeploymentConfiguration, DeploymentMode
from .constants import CONSTRUCTOR_TYPES, INITIALIZER_SIGNATURES, ContractNames
from .encoder import (
    ControllerInput,
    prepare_set_data_parameters,
    resolve_controllers,
    to_address,
)
from .exceptions import ConfigurationError
from .graph import TaskGraph
from .handoff import OwnershipHandoff
from .profile import ProfileInput, Uploader, resolve_profile_metadata
from .proxy_deployer import ProxyDeployer, base_contract_name
from .runner import ContractCall, StepRunner
from .signer import Signer, address_is_universal_profile
from .types import DeployedContracts, DeploymentEvent, PermissionWriteSet, SignerInfo

logger = logging.getLogger(__name__)

SIGNER = "signer"
PROFILE = "profile"
SET_DATA = "setData"
OWNERSHIP = "ownership"

ArgsFunction = Callable[[Dict[str, Any]], List[Any]]


class UniversalProfileDeployment:
    """
    One provisioning run.

    Both ``events()`` and ``result()`` may be consumed any number of times,
    concurrently or after the fact; the transactions are only sent once.
    """

    def __init__(
        self,
        signer: Signer,
        controllers: Iterable[ControllerInput],
        profile: Optional[ProfileInput] = None,
        config: Optional[DeploymentConfiguration] = None,
        artifacts: Optional[ArtifactRegistry] = None,
        uploader: Optional[Uploader] = None,
    ):
        """
        Validate inputs and build the execution graph. Nothing is sent yet.

        Raises:
            InvalidControllerError: If a controller entry is malformed
            ConfigurationError: If configuration or profile input is invalid
            ArtifactNotFoundError: If a needed contract artifact is missing
        """
        self.signer = signer
        self.controllers = resolve_controllers(controllers)
        self.config = (config if config is not None else DeploymentConfiguration()).validate()
        self.profile = profile
        self.uploader = uploader
        self._artifacts = artifacts if artifacts is not None else ArtifactRegistry()

        self._check_profile()
        self._preload_artifacts()

        self.runner = StepRunner(signer, self.config.gas_price, self.config.gas_buffer)
        self.proxy_deployer = ProxyDeployer(
            signer, self._artifacts, self.config.gas_price, self.config.gas_buffer
        )
        self.handoff = OwnershipHandoff(self.runner, self.controllers)
        self._cache = StepCache()
        self.graph = TaskGraph(self._cache)
        self.write_set: Optional[PermissionWriteSet] = None

        self._build()

    def _check_profile(self) -> None:
        profile = self.profile
        if profile is None or isinstance(profile, str):
            return
        if not isinstance(profile, Mapping):
            raise ConfigurationError(f"Unsupported profile metadata type: {type(profile).__name__}")
        if not ("url" in profile and "json" in profile) and self.uploader is None:
            raise ConfigurationError("Structured profile metadata requires an uploader")

    def _contracts_to_deploy(self) -> List[str]:
        names = [ContractNames.ERC725_ACCOUNT, ContractNames.KEY_MANAGER]
        if self.config.deploy_delegate:
            names.append(ContractNames.UNIVERSAL_RECEIVER)
        return names

    def _preload_artifacts(self) -> None:
        for name in self._contracts_to_deploy():
            options = self.config.contract_options(name)
            version = self.config.version_for(name)
            if options.mode is DeploymentMode.FULL:
                self._artifacts.get(name, version)
            elif options.mode is DeploymentMode.PROXY and self._lib_address(name) is None:
                self._artifacts.get(base_contract_name(name), version)

    def _lib_address(self, contract_name: str) -> Optional[str]:
        options = self.config.contract_options(contract_name)
        return options.lib_address or self.config.base_contract_addresses.get(contract_name)

    def _creation_bytecode(self, contract_name: str) -> str:
        options = self.config.contract_options(contract_name)
        if options.mode is DeploymentMode.BYTECODE:
            return options.byte_code
        return self._artifacts.get(contract_name, self.config.version_for(contract_name)).bytecode

    # -- graph construction ------------------------------------------------

    def _build(self) -> None:
        graph = self.graph
        graph.add(SIGNER, self._resolve_signer)
        graph.add(PROFILE, self._resolve_profile, contract_name=ContractNames.ERC725_ACCOUNT)

        self._account_ready = self._add_contract(
            ContractNames.ERC725_ACCOUNT, lambda inputs: [inputs[SIGNER].address]
        )
        account_node = f"{ContractNames.ERC725_ACCOUNT}:deploy"

        self._delegate_ready = None
        if self.config.deploy_delegate:
            self._delegate_ready = self._add_contract(
                ContractNames.UNIVERSAL_RECEIVER, lambda inputs: []
            )

        self._key_manager_ready = self._add_contract(
            ContractNames.KEY_MANAGER,
            lambda inputs: [inputs[account_node]],
            depends_on=(account_node,),
        )

        set_data_deps = [SIGNER, PROFILE, self._account_ready]
        if self._delegate_ready is not None:
            set_data_deps.append(self._delegate_ready)
        graph.add(
            SET_DATA, self._set_data, set_data_deps, contract_name=ContractNames.ERC725_ACCOUNT
        )
        graph.add(
            OWNERSHIP,
            self._transfer_ownership,
            (SET_DATA, self._key_manager_ready),
            contract_name=ContractNames.ERC725_ACCOUNT,
        )

    def _add_contract(
        self, contract_name: str, args: ArgsFunction, depends_on: Sequence[str] = ()
    ) -> str:
        """
        Add the nodes creating one contract.

        Returns:
            Name of the node whose result is the address of the ready contract
        """
        graph = self.graph
        options = self.config.contract_options(contract_name)

        if options.mode is not DeploymentMode.PROXY:
            return graph.add(
                f"{contract_name}:deploy",
                self._deploy_full_work(contract_name, args),
                (SIGNER, *depends_on),
                contract_name,
            )

        deploy_deps = [SIGNER]
        base_node = None
        if self._lib_address(contract_name) is None:
            base_node = graph.add(
                f"{contract_name}:base",
                self._deploy_base_work(contract_name),
                (SIGNER,),
                contract_name,
            )
            deploy_deps.append(base_node)

        deploy_node = graph.add(
            f"{contract_name}:deploy",
            self._deploy_proxy_work(contract_name, base_node),
            deploy_deps,
            contract_name,
        )
        return graph.add(
            f"{contract_name}:initialize",
            self._initialize_work(contract_name, deploy_node, args),
            (SIGNER, deploy_node, *depends_on),
            contract_name,
        )

    # -- node work ---------------------------------------------------------

    async def _resolve_signer(self, inputs: Dict[str, Any], emit: Emit) -> SignerInfo:
        address = to_address(await self.signer.get_address(), "signer address")
        is_universal_profile = await address_is_universal_profile(self.signer, address)
        logger.info(f"Deploying from {address} (universal profile: {is_universal_profile})")
        return SignerInfo(address=address, is_universal_profile=is_universal_profile)

    async def _resolve_profile(self, inputs: Dict[str, Any], emit: Emit) -> Optional[str]:
        return await resolve_profile_metadata(
            self.profile, self.config.upload_options, self.uploader
        )

    def _on_created(self, contract_name: str, address: str, initialized: bool) -> None:
        if contract_name == ContractNames.ERC725_ACCOUNT:
            self.handoff.mark_deployed(address)
            if initialized:
                self.handoff.mark_initialized()

    def _deploy_full_work(self, contract_name: str, args: ArgsFunction):
        async def work(inputs: Dict[str, Any], emit: Emit) -> str:
            call = ContractCall.creation(
                contract_name,
                self._creation_bytecode(contract_name),
                CONSTRUCTOR_TYPES[contract_name],
                args(inputs),
            )
            receipt = await self.runner.run(call, emit)
            address = resolve_deployed_address(receipt, inputs[SIGNER].is_universal_profile)
            self._on_created(contract_name, address, initialized=True)
            return address

        return work

    def _deploy_base_work(self, contract_name: str):
        async def work(inputs: Dict[str, Any], emit: Emit) -> str:
            return await self.proxy_deployer.deploy_base_contract(
                contract_name,
                self.config.version_for(contract_name),
                emit,
                inputs[SIGNER].is_universal_profile,
            )

        return work

    def _deploy_proxy_work(self, contract_name: str, base_node: Optional[str]):
        async def work(inputs: Dict[str, Any], emit: Emit) -> str:
            lib_address = inputs[base_node] if base_node else self._lib_address(contract_name)
            receipt = await self.runner.run(
                ContractCall.proxy_creation(contract_name, lib_address), emit
            )
            address = resolve_deployed_address(receipt, inputs[SIGNER].is_universal_profile)
            self._on_created(contract_name, address, initialized=False)
            return address

        return work

    def _initialize_work(self, contract_name: str, deploy_node: str, args: ArgsFunction):
        async def work(inputs: Dict[str, Any], emit: Emit) -> str:
            address = inputs[deploy_node]
            call = ContractCall.transaction(
                contract_name, address, INITIALIZER_SIGNATURES[contract_name], *args(inputs)
            )
            await self.runner.run(call, emit)
            if contract_name == ContractNames.ERC725_ACCOUNT:
                self.handoff.mark_initialized()
            return address

        return work

    async def _set_data(self, inputs: Dict[str, Any], emit: Emit) -> PermissionWriteSet:
        signer = inputs[SIGNER]
        delegate_address = (
            inputs[self._delegate_ready]
            if self._delegate_ready is not None
            else self.config.delegate_address
        )
        self.write_set = prepare_set_data_parameters(
            signer.address,
            inputs[self._account_ready],
            delegate_address,
            self.controllers,
            inputs[PROFILE],
        )
        await self.handoff.set_permissions(self.write_set, signer.address, emit)
        return self.write_set

    async def _transfer_ownership(self, inputs: Dict[str, Any], emit: Emit) -> str:
        await self.handoff.complete(inputs[self._key_manager_ready], emit)
        return self.handoff.state.value

    # -- observation -------------------------------------------------------

    def _pipeline(self) -> Step:
        return self._cache.get_or_create("pipeline", self._execute)

    async def _execute(self, emit: Emit) -> DeployedContracts:
        try:
            results = await self.graph.run()
        except Exception:
            self.handoff.fail()
            raise

        return DeployedContracts(
            account=results[self._account_ready],
            key_manager=results[self._key_manager_ready],
            delegate=(
                results[self._delegate_ready]
                if self._delegate_ready is not None
                else self.config.delegate_address
            ),
            events=self.graph.events.items,
        )

    async def result(self) -> DeployedContracts:
        """
        Run the pipeline (once) and return the provisioned addresses.

        Raises:
            The first step failure; no further transactions are sent after it
        """
        return await self._pipeline().result()

    async def events(self) -> AsyncIterator[DeploymentEvent]:
        """
        Yield every DeploymentEvent of the run, starting it if needed.

        On failure the stream ends with an ERROR event carrying the exception.
        """
        task = self._pipeline().start()
        async for event in self.graph.events.follow():
            yield event
        await asyncio.wait({task})
        if not task.cancelled():
            # already reported through the ERROR event
            task.exception()
