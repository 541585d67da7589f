"""Configuration constants for lsp-factory library."""

# Network configuration for chains the factory is used against
NETWORK_CONFIG = {
    22: {
        "chain_name": "LUKSO L14",
        "short_name": "l14",
        "block_explorer_url": "https://blockscout.com/lukso/l14",
        "default_rpc_env": "LUKSO_RPC_URL",
    },
    2828: {
        "chain_name": "LUKSO L16",
        "short_name": "l16",
        "block_explorer_url": "https://explorer.execution.l16.lukso.network",
        "default_rpc_env": "LUKSO_RPC_URL",
    },
}

DEFAULT_CHAIN_ID = 22

RPC_URL_ENV = "LUKSO_RPC_URL"
PRIVATE_KEY_ENV = "LSP_FACTORY_PRIVATE_KEY"
ARTIFACTS_DIR_ENV = "LSP_FACTORY_ARTIFACTS_DIR"
IPFS_GATEWAY_ENV = "IPFS_GATEWAY"

DEFAULT_IPFS_GATEWAY = "https://2eff.lukso.dev/ipfs/"

# Fixed gas policy: every transaction gets a fresh estimate plus this buffer
GAS_BUFFER = 100_000
GAS_PRICE = 10_000_000_000  # 10 gwei

HTTP_TIMEOUT = 30


class ContractNames:
    """Canonical names of the contracts the factory provisions."""

    ERC725_ACCOUNT = "LSP0ERC725Account"
    KEY_MANAGER = "LSP6KeyManager"
    UNIVERSAL_RECEIVER = "LSP1UniversalReceiverDelegate"


# Legacy option names accepted by DeploymentConfiguration.from_options
LEGACY_OPTION_NAMES = {
    "ERC725Account": ContractNames.ERC725_ACCOUNT,
}

# ERC725Y data keys (LSP2 key schemas)
LSP3_PROFILE_KEY = "0x5ef83ad9559033e6e941db7d7c495acdce616347d28e90c7ce47cbfcfcad3bc5"
UNIVERSAL_RECEIVER_DELEGATE_KEY = (
    "0x0cfc51aec37c55a4d0b1a65c6255c4bf2fbdf6277f3cc0730c45b828b6db8b47"
)
ADDRESS_PERMISSIONS_ARRAY_KEY = (
    "0xdf30dba06db6a30e65354d9a64c609861f089545ca58c6b4dbe31a5f338cb0e3"
)
# AddressPermissions:Permissions:<address>
PREFIX_PERMISSIONS = "0x4b80742de2bf82acb3630000"

# ERC165 interface ids of the account contract (current, then legacy)
ERC725_ACCOUNT_INTERFACE = "0x9a3bfe88"
LEGACY_ERC725_ACCOUNT_INTERFACE = "0x63cb749b"

# LSP2 JSONURL hash function identifier: keccak256(utf8)
KECCAK256_UTF8 = "0x6f357c6a"

# EIP-1167 minimal proxy creation code, split around the target address
PROXY_BYTECODE_PREFIX = "0x3d602d80600a3d3981f3363d3d373d3d3d363d73"
PROXY_BYTECODE_SUFFIX = "5af43d82803e903d91602b57fd5bf3"

# Event emitted by an account contract when it creates a contract on behalf of its owner
CONTRACT_CREATED_EVENTS = (
    "ContractCreated(uint256,address,uint256)",
    "ContractCreated(uint256,address,uint256,bytes32)",
)

# Constructor / initializer signatures per contract
CONSTRUCTOR_TYPES = {
    ContractNames.ERC725_ACCOUNT: ["address"],
    ContractNames.KEY_MANAGER: ["address"],
    ContractNames.UNIVERSAL_RECEIVER: [],
}

INITIALIZER_SIGNATURES = {
    ContractNames.ERC725_ACCOUNT: "initialize(address)",
    ContractNames.KEY_MANAGER: "initialize(address)",
    ContractNames.UNIVERSAL_RECEIVER: "initialize()",
}
