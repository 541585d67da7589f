"""Deployment configuration for lsp-factory library."""

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from web3 import Web3

from .constants import (
    DEFAULT_IPFS_GATEWAY,
    GAS_BUFFER,
    GAS_PRICE,
    IPFS_GATEWAY_ENV,
    LEGACY_OPTION_NAMES,
    ContractNames,
)
from .exceptions import ConfigurationError

DEFAULT_ARTIFACT_VERSION = 1

_HEX_RE = re.compile(r"^0x([0-9a-fA-F]{2})+$")


class DeploymentMode(Enum):
    """
    How a contract gets created.

    - FULL: creation bytecode from the versioned artifact
    - BYTECODE: caller-supplied creation bytecode
    - PROXY: minimal proxy pointing at a base contract, then initialized
    """

    FULL = "full"
    BYTECODE = "bytecode"
    PROXY = "proxy"


def default_ipfs_gateway() -> str:
    return os.environ.get(IPFS_GATEWAY_ENV, DEFAULT_IPFS_GATEWAY)


@dataclass
class UploadOptions:
    """Options for fetching/uploading profile metadata."""

    ipfs_gateway: str = field(default_factory=default_ipfs_gateway)


def resolve_version_option(
    version: Union[int, str, None],
) -> Tuple[Optional[int], Optional[str], Optional[str]]:
    """
    Interpret a per-contract ``version`` option.

    A version may be an integer revision, a base contract address, or raw
    creation bytecode.

    Returns:
        Tuple of (version, byte_code, lib_address); unused members are None

    Raises:
        ConfigurationError: If version is a string that is none of these
    """
    if version is None or isinstance(version, int):
        return version, None, None

    if isinstance(version, str):
        if version.isdigit():
            return int(version), None, None
        if Web3.is_address(version):
            return None, None, Web3.to_checksum_address(version)
        if _HEX_RE.match(version):
            return None, version, None

    raise ConfigurationError(
        f"Version must be an integer revision, an address or bytecode, got {version!r}"
    )


@dataclass
class ContractOptions:
    """Per-contract deployment options."""

    version: Optional[int] = None  # None means the configuration-wide version
    byte_code: Optional[str] = None
    lib_address: Optional[str] = None
    deploy_proxy: bool = True

    @property
    def mode(self) -> DeploymentMode:
        if self.lib_address:
            return DeploymentMode.PROXY
        if self.byte_code:
            return DeploymentMode.BYTECODE
        if self.deploy_proxy:
            return DeploymentMode.PROXY
        return DeploymentMode.FULL

    def validate(self, contract_name: str) -> None:
        """
        Raises:
            ConfigurationError: If options are inconsistent or malformed
        """
        if self.byte_code and self.lib_address:
            raise ConfigurationError(
                f"{contract_name}: byte_code and lib_address are mutually exclusive"
            )
        if self.lib_address is not None and not Web3.is_address(self.lib_address):
            raise ConfigurationError(f"{contract_name}: invalid lib_address {self.lib_address!r}")
        if self.byte_code is not None and not _HEX_RE.match(self.byte_code):
            raise ConfigurationError(f"{contract_name}: byte_code must be 0x-prefixed hex")
        if self.version is not None and (not isinstance(self.version, int) or self.version < 0):
            raise ConfigurationError(f"{contract_name}: invalid version {self.version!r}")

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]]) -> "ContractOptions":
        options = options or {}
        version, byte_code, lib_address = resolve_version_option(options.get("version"))
        return cls(
            version=version,
            byte_code=options.get("byteCode", byte_code),
            lib_address=options.get("libAddress", lib_address),
            deploy_proxy=options.get("deployProxy", True),
        )


@dataclass
class DeploymentConfiguration:
    """Complete, defaulted configuration for one Universal Profile deployment."""

    account: ContractOptions = field(default_factory=ContractOptions)
    key_manager: ContractOptions = field(default_factory=ContractOptions)
    delegate: ContractOptions = field(default_factory=ContractOptions)

    version: int = DEFAULT_ARTIFACT_VERSION
    upload_options: UploadOptions = field(default_factory=UploadOptions)

    # Existing delegate to register instead of deploying a new one
    delegate_address: Optional[str] = None
    # Already-deployed base contracts to proxy against, by contract name
    base_contract_addresses: Dict[str, str] = field(default_factory=dict)

    gas_price: int = GAS_PRICE
    gas_buffer: int = GAS_BUFFER

    def contract_options(self, contract_name: str) -> ContractOptions:
        return {
            ContractNames.ERC725_ACCOUNT: self.account,
            ContractNames.KEY_MANAGER: self.key_manager,
            ContractNames.UNIVERSAL_RECEIVER: self.delegate,
        }[contract_name]

    def version_for(self, contract_name: str) -> int:
        version = self.contract_options(contract_name).version
        return self.version if version is None else version

    @property
    def deploy_delegate(self) -> bool:
        return self.delegate_address is None

    def validate(self) -> "DeploymentConfiguration":
        """
        Check the whole configuration once, before anything is submitted.

        Raises:
            ConfigurationError: If any option is inconsistent or malformed
        """
        for name in (
            ContractNames.ERC725_ACCOUNT,
            ContractNames.KEY_MANAGER,
            ContractNames.UNIVERSAL_RECEIVER,
        ):
            self.contract_options(name).validate(name)

        if not isinstance(self.version, int) or self.version < 0:
            raise ConfigurationError(f"Invalid version {self.version!r}")
        if self.delegate_address is not None and not Web3.is_address(self.delegate_address):
            raise ConfigurationError(f"Invalid delegate_address {self.delegate_address!r}")
        for name, address in self.base_contract_addresses.items():
            if not Web3.is_address(address):
                raise ConfigurationError(f"Invalid base contract address for {name}: {address!r}")
        if self.gas_price <= 0 or self.gas_buffer < 0:
            raise ConfigurationError("gas_price must be positive and gas_buffer non-negative")
        return self

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None) -> "DeploymentConfiguration":
        """
        Build a configuration from a camelCase options mapping.

        Recognised keys: ``LSP0ERC725Account`` (or legacy ``ERC725Account``),
        ``LSP6KeyManager``, ``LSP1UniversalReceiverDelegate`` (each with
        ``version``, ``byteCode``, ``libAddress``, ``deployProxy``), plus
        ``version``, ``ipfsGateway``, ``universalReceiverDelegateAddress``,
        ``baseContractAddresses``, ``gasPrice`` and ``gasBuffer``.

        Raises:
            ConfigurationError: If the resulting configuration is invalid
        """
        options = dict(options or {})
        for legacy, canonical in LEGACY_OPTION_NAMES.items():
            if legacy in options and canonical not in options:
                options[canonical] = options.pop(legacy)

        version = options.get("version", DEFAULT_ARTIFACT_VERSION)
        if isinstance(version, str) and version.isdigit():
            version = int(version)

        config = cls(
            account=ContractOptions.from_options(options.get(ContractNames.ERC725_ACCOUNT)),
            key_manager=ContractOptions.from_options(options.get(ContractNames.KEY_MANAGER)),
            delegate=ContractOptions.from_options(options.get(ContractNames.UNIVERSAL_RECEIVER)),
            version=version,
            upload_options=(
                UploadOptions(ipfs_gateway=options["ipfsGateway"])
                if options.get("ipfsGateway")
                else UploadOptions()
            ),
            delegate_address=options.get("universalReceiverDelegateAddress"),
            base_contract_addresses=dict(options.get("baseContractAddresses") or {}),
            gas_price=options.get("gasPrice", GAS_PRICE),
            gas_buffer=options.get("gasBuffer", GAS_BUFFER),
        )
        return config.validate()
