"""Unit tests for deployment configuration."""

import pytest

from lsp_factory.config import (
    ContractOptions,
    DeploymentConfiguration,
    DeploymentMode,
    UploadOptions,
    resolve_version_option,
)
from lsp_factory.constants import (
    DEFAULT_IPFS_GATEWAY,
    GAS_BUFFER,
    GAS_PRICE,
    IPFS_GATEWAY_ENV,
    ContractNames,
)
from lsp_factory.exceptions import ConfigurationError

BASE_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


class TestResolveVersionOption:
    """Test the resolve_version_option function."""

    def test_integer_revision(self):
        """Test that integers and digit strings are revisions."""
        assert resolve_version_option(3) == (3, None, None)
        assert resolve_version_option("2") == (2, None, None)
        assert resolve_version_option(None) == (None, None, None)

    def test_address_becomes_lib_address(self):
        """Test that an address is treated as a base contract to proxy."""
        version, byte_code, lib_address = resolve_version_option(BASE_ADDRESS.lower())

        assert version is None
        assert byte_code is None
        assert lib_address == BASE_ADDRESS

    def test_hex_becomes_bytecode(self):
        """Test that other hex is treated as creation bytecode."""
        assert resolve_version_option("0x6080604052") == (None, "0x6080604052", None)

    def test_garbage_raises(self):
        """Test that unrecognised strings raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            resolve_version_option("latest")


class TestContractOptions:
    """Test the ContractOptions class."""

    def test_default_mode_is_proxy(self):
        """Test that contracts are proxied unless told otherwise."""
        assert ContractOptions().mode is DeploymentMode.PROXY

    def test_full_mode_when_proxy_disabled(self):
        """Test that deploy_proxy=False deploys full bytecode."""
        assert ContractOptions(deploy_proxy=False).mode is DeploymentMode.FULL

    def test_bytecode_mode(self):
        """Test that supplied bytecode takes precedence over proxying."""
        assert ContractOptions(byte_code="0x6001").mode is DeploymentMode.BYTECODE

    def test_lib_address_forces_proxy(self):
        """Test that a lib address proxies even when deploy_proxy is False."""
        options = ContractOptions(lib_address=BASE_ADDRESS, deploy_proxy=False)

        assert options.mode is DeploymentMode.PROXY

    def test_bytecode_and_lib_address_conflict(self):
        """Test that byte_code and lib_address are mutually exclusive."""
        options = ContractOptions(byte_code="0x6001", lib_address=BASE_ADDRESS)

        with pytest.raises(ConfigurationError):
            options.validate("LSP0ERC725Account")

    @pytest.mark.parametrize(
        "options",
        [
            ContractOptions(lib_address="0x1234"),
            ContractOptions(byte_code="6001"),
            ContractOptions(version=-1),
        ],
    )
    def test_malformed_options_raise(self, options):
        """Test that malformed options raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            options.validate("LSP6KeyManager")

    def test_from_options_reads_camel_case(self):
        """Test that camelCase keys map onto the dataclass fields."""
        options = ContractOptions.from_options({"version": 2, "deployProxy": False})

        assert options.version == 2
        assert options.deploy_proxy is False
        assert options.mode is DeploymentMode.FULL


class TestDeploymentConfiguration:
    """Test the DeploymentConfiguration class."""

    def test_defaults(self, monkeypatch):
        """Test the default gas settings, version and gateway."""
        monkeypatch.delenv(IPFS_GATEWAY_ENV, raising=False)
        config = DeploymentConfiguration()

        assert config.gas_price == GAS_PRICE
        assert config.gas_buffer == GAS_BUFFER
        assert config.version == 1
        assert config.deploy_delegate is True
        assert config.upload_options.ipfs_gateway == DEFAULT_IPFS_GATEWAY

    def test_gateway_from_environment(self, monkeypatch):
        """Test that the gateway default comes from the environment."""
        monkeypatch.setenv(IPFS_GATEWAY_ENV, "https://gw.example/ipfs/")

        assert UploadOptions().ipfs_gateway == "https://gw.example/ipfs/"

    def test_version_for_falls_back_to_global(self):
        """Test per-contract versions override the configuration-wide one."""
        config = DeploymentConfiguration(
            key_manager=ContractOptions(version=4), version=2
        )

        assert config.version_for(ContractNames.KEY_MANAGER) == 4
        assert config.version_for(ContractNames.ERC725_ACCOUNT) == 2

    def test_existing_delegate_skips_deployment(self):
        """Test that a delegate address disables delegate deployment."""
        config = DeploymentConfiguration(delegate_address=BASE_ADDRESS)

        assert config.deploy_delegate is False

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"delegate_address": "0xnope"},
            {"base_contract_addresses": {"LSP6KeyManager": "nope"}},
            {"gas_price": 0},
            {"gas_buffer": -1},
            {"version": -3},
        ],
    )
    def test_validate_rejects_bad_values(self, kwargs):
        """Test that validate raises ConfigurationError on malformed values."""
        with pytest.raises(ConfigurationError):
            DeploymentConfiguration(**kwargs).validate()

    def test_from_options(self):
        """Test building a configuration from a camelCase mapping."""
        config = DeploymentConfiguration.from_options(
            {
                "LSP0ERC725Account": {"version": BASE_ADDRESS},
                "LSP6KeyManager": {"deployProxy": False},
                "version": "2",
                "ipfsGateway": "https://gw.example/ipfs/",
                "gasPrice": 5,
                "gasBuffer": 7,
            }
        )

        assert config.account.lib_address == BASE_ADDRESS
        assert config.account.mode is DeploymentMode.PROXY
        assert config.key_manager.mode is DeploymentMode.FULL
        assert config.version == 2
        assert config.upload_options.ipfs_gateway == "https://gw.example/ipfs/"
        assert (config.gas_price, config.gas_buffer) == (5, 7)

    def test_from_options_accepts_legacy_account_name(self):
        """Test that the legacy ERC725Account key maps to LSP0ERC725Account."""
        config = DeploymentConfiguration.from_options({"ERC725Account": {"byteCode": "0x6001"}})

        assert config.account.mode is DeploymentMode.BYTECODE

    def test_from_options_validates(self):
        """Test that from_options raises on invalid input."""
        with pytest.raises(ConfigurationError):
            DeploymentConfiguration.from_options({"universalReceiverDelegateAddress": "0x12"})
