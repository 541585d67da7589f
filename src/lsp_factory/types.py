"""Data types and dataclasses for lsp-factory library."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class DeploymentType(Enum):
    """
    Kind of on-chain action a DeploymentEvent reports.

    - CONTRACT: full contract creation
    - PROXY_CONTRACT: minimal forwarding contract creation
    - TRANSACTION: call against an existing contract
    """

    CONTRACT = "CONTRACT"
    PROXY_CONTRACT = "PROXY"
    TRANSACTION = "TRANSACTION"


class DeploymentStatus(Enum):
    """Lifecycle status of a DeploymentEvent."""

    PENDING = "PENDING"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


@dataclass(frozen=True)
class DeploymentEvent:
    """Progress notification emitted by a deployment step."""

    type: DeploymentType
    contract_name: str
    status: DeploymentStatus

    function_name: Optional[str] = None
    transaction: Optional[Mapping[str, Any]] = None  # submitted transaction, incl. "hash"
    receipt: Optional[Mapping[str, Any]] = None
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class Controller:
    """A controller address and the bytes32 permission value it is granted."""

    address: str  # Checksummed address
    permissions: str  # 0x-prefixed bytes32 hex


@dataclass
class PermissionWriteSet:
    """ERC725Y keys and values to write to the account in a single setData call."""

    keys_to_set: List[str]
    values_to_set: List[str]
    target_address: str

    def __post_init__(self):
        if len(self.keys_to_set) != len(self.values_to_set):
            raise ValueError(
                f"keys_to_set ({len(self.keys_to_set)}) and values_to_set "
                f"({len(self.values_to_set)}) must have the same length"
            )

    def as_dict(self) -> Dict[str, str]:
        """Map of key -> value, in write order."""
        return dict(zip(self.keys_to_set, self.values_to_set))


@dataclass(frozen=True)
class SignerInfo:
    """Address of the deploying signer and whether it is itself an identity contract."""

    address: str
    is_universal_profile: bool = False


@dataclass
class DeployedContracts:
    """Addresses of the provisioned contracts once the pipeline is done."""

    account: str
    key_manager: str
    delegate: Optional[str] = None
    events: List[DeploymentEvent] = field(default_factory=list, repr=False)
