"""Shared pytest fixtures for lsp-factory tests."""

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

import pytest
from eth_abi import decode, encode
from web3 import Web3

from lsp_factory.addresses import CONTRACT_CREATED_TOPICS
from lsp_factory.artifacts import ArtifactRegistry
from lsp_factory.calldata import function_selector, signature_types
from lsp_factory.constants import PROXY_BYTECODE_PREFIX, ContractNames
from lsp_factory.encoder import permissions_key
from lsp_factory.exceptions import TransactionFailedError
from lsp_factory.permissions import PERMISSIONS
from lsp_factory.signer import Signer

SIGNER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
CONTROLLER_A = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
CONTROLLER_B = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"

BYTECODES = {
    "LSP0ERC725Account": "0x6001",
    "LSP6KeyManager": "0x6002",
    "LSP1UniversalReceiverDelegate": "0x6003",
    "LSP0ERC725AccountInit": "0x6011",
    "LSP6KeyManagerInit": "0x6012",
    "LSP1UniversalReceiverDelegateInit": "0x6013",
}

CALL_SIGNATURES = [
    "initialize(address)",
    "initialize()",
    "setData(bytes32[],bytes[])",
    "setData(bytes32,bytes)",
    "transferOwnership(address)",
    "claimOwnership()",
    "execute(bytes)",
]
SELECTORS = {function_selector(sig): sig for sig in CALL_SIGNATURES}

SUPPORTS_INTERFACE = function_selector("supportsInterface(bytes4)")


class Revert(Exception):
    pass


@dataclass
class FakeContract:
    """State of a contract on the fake chain."""

    address: str
    kind: str  # canonical contract name, without "Init"
    is_proxy: bool = False
    lib: Optional[str] = None
    initialized: bool = False
    owner: Optional[str] = None
    pending_owner: Optional[str] = None
    target: Optional[str] = None  # account controlled by a key manager
    storage: Dict[str, str] = field(default_factory=dict)


def _hex(value: bytes) -> str:
    return "0x" + value.hex()


def _decode_args(signature: str, data: str) -> tuple:
    return decode(signature_types(signature), Web3.to_bytes(hexstr="0x" + data[10:]))


class FakeSigner(Signer):
    """
    In-memory chain with a single externally owned account.

    Enforces enough of the account / key manager rules for a deployment
    done in the wrong order to revert.
    """

    def __init__(
        self,
        address: str = SIGNER_ADDRESS,
        fail_on: Optional[Callable[[str], bool]] = None,
        is_universal_profile: bool = False,
    ):
        self.address = address
        self.fail_on = fail_on
        self.is_universal_profile = is_universal_profile
        self.contracts: Dict[str, FakeContract] = {}
        self.sent: List[Dict[str, Any]] = []
        self.estimates: List[Dict[str, Any]] = []
        self.log: List[str] = []
        self._receipts: Dict[str, Dict[str, Any]] = {}
        self._labels: Dict[str, str] = {}
        self._block = 0

    # -- helpers -----------------------------------------------------------

    def _new_address(self) -> str:
        digest = Web3.to_hex(Web3.keccak(text=f"contract-{len(self.contracts)}"))
        return Web3.to_checksum_address("0x" + digest[-40:])

    def add_contract(self, artifact_name: str) -> str:
        """Place an already-deployed contract on the chain and return its address."""
        address = self._new_address()
        self.contracts[address] = FakeContract(
            address=address, kind=artifact_name.replace("Init", "")
        )
        return address

    def contract(self, address: str) -> FakeContract:
        return self.contracts[Web3.to_checksum_address(address)]

    def permissions_of(self, account: str, controller: str) -> int:
        value = self.contract(account).storage.get(permissions_key(controller), "0x")
        return int(value[2:] or "0", 16)

    def labels(self) -> List[str]:
        return [tx["label"] for tx in self.sent]

    def describe(self, transaction: Mapping[str, Any]) -> str:
        data = transaction.get("data", "0x")
        if "to" not in transaction:
            if data.startswith(PROXY_BYTECODE_PREFIX):
                lib = "0x" + data[len(PROXY_BYTECODE_PREFIX) : len(PROXY_BYTECODE_PREFIX) + 40]
                return f"proxy:{self.contract(lib).kind}"
            for name, code in BYTECODES.items():
                if data.startswith(code):
                    return f"create:{name}"
            return "create:unknown"

        contract = self.contract(transaction["to"])
        signature = SELECTORS.get(data[:10], data[:10])
        if signature == "execute(bytes)":
            (payload,) = _decode_args(signature, data)
            inner = SELECTORS.get(_hex(payload[:4]), _hex(payload[:4]))
            return f"{inner}@{self.contract(contract.target).kind}"
        return f"{signature}@{contract.kind}"

    # -- Signer ------------------------------------------------------------

    async def get_address(self) -> str:
        return self.address

    async def estimate_gas(self, transaction: Mapping[str, Any]) -> int:
        await asyncio.sleep(0)
        self.estimates.append(dict(transaction))
        self.log.append("estimate:" + self.describe(transaction))
        return 21_000 + len(transaction.get("data", ""))

    async def send_transaction(self, transaction: Mapping[str, Any]) -> str:
        await asyncio.sleep(0)
        label = self.describe(transaction)
        if self.fail_on is not None and self.fail_on(label):
            raise ConnectionError(f"simulated transport error on {label}")

        self._block += 1
        tx_hash = "0x" + format(self._block, "064x")
        self.sent.append({**transaction, "label": label})
        self.log.append("send:" + label)
        self._labels[tx_hash] = label
        self._receipts[tx_hash] = self._apply(dict(transaction), tx_hash)
        return tx_hash

    async def wait_for_receipt(self, transaction_hash: str) -> Dict[str, Any]:
        await asyncio.sleep(0)
        receipt = self._receipts[transaction_hash]
        self.log.append("mined:" + self._labels[transaction_hash])
        if receipt["status"] == 0:
            raise TransactionFailedError(f"Transaction {transaction_hash} reverted")
        return receipt

    async def call(self, transaction: Mapping[str, Any]) -> bytes:
        if transaction["data"][:10] != SUPPORTS_INTERFACE:
            raise ValueError("unsupported call")
        is_profile = self.is_universal_profile and transaction["to"] == self.address
        return encode(["bool"], [is_profile])

    # -- execution ---------------------------------------------------------

    def _apply(self, transaction: Dict[str, Any], tx_hash: str) -> Dict[str, Any]:
        receipt: Dict[str, Any] = {
            "transactionHash": tx_hash,
            "blockNumber": self._block,
            "status": 1,
            "contractAddress": None,
            "to": transaction.get("to"),
            "logs": [],
        }
        try:
            if "to" in transaction:
                self._execute(transaction["to"], self.address, transaction["data"])
            else:
                address = self._create(transaction["data"])
                if self.is_universal_profile:
                    receipt["to"] = self.address
                    receipt["logs"] = [self._contract_created_log(address)]
                else:
                    receipt["contractAddress"] = address
        except Revert:
            receipt["status"] = 0
        return receipt

    def _contract_created_log(self, address: str) -> Dict[str, Any]:
        return {
            "address": self.address,
            "topics": [
                sorted(CONTRACT_CREATED_TOPICS)[0],
                "0x" + "00" * 31 + "01",
                "0x" + "00" * 12 + address[2:].lower(),
                "0x" + "00" * 32,
            ],
        }

    def _create(self, data: str) -> str:
        address = self._new_address()
        if data.startswith(PROXY_BYTECODE_PREFIX):
            lib = "0x" + data[len(PROXY_BYTECODE_PREFIX) : len(PROXY_BYTECODE_PREFIX) + 40]
            base = self.contracts.get(Web3.to_checksum_address(lib))
            if base is None:
                raise Revert()
            contract = FakeContract(address=address, kind=base.kind, is_proxy=True, lib=base.address)
        else:
            for name, code in BYTECODES.items():
                if data.startswith(code):
                    break
            else:
                raise Revert()
            contract = FakeContract(address=address, kind=name.replace("Init", ""))
            args = data[len(code) :]
            if not name.endswith("Init"):
                contract.initialized = True
                if args:
                    arg = Web3.to_checksum_address("0x" + args[-40:])
                    if contract.kind == ContractNames.ERC725_ACCOUNT:
                        contract.owner = arg
                    elif contract.kind == ContractNames.KEY_MANAGER:
                        contract.target = arg
        self.contracts[address] = contract
        return address

    def _has_permission(self, account: FakeContract, caller: str, name: str) -> bool:
        value = account.storage.get(permissions_key(caller), "0x")
        return bool(int(value[2:] or "0", 16) & PERMISSIONS[name])

    def _execute(self, to: str, sender: str, data: str) -> None:
        contract = self.contracts.get(Web3.to_checksum_address(to))
        if contract is None:
            raise Revert()
        signature = SELECTORS.get(data[:10])

        if signature == "initialize(address)":
            if not contract.is_proxy or contract.initialized:
                raise Revert()
            (arg,) = _decode_args(signature, data)
            if contract.kind == ContractNames.ERC725_ACCOUNT:
                contract.owner = Web3.to_checksum_address(arg)
            else:
                contract.target = Web3.to_checksum_address(arg)
            contract.initialized = True
        elif signature == "initialize()":
            if not contract.is_proxy or contract.initialized:
                raise Revert()
            contract.initialized = True
        elif signature == "setData(bytes32[],bytes[])":
            if contract.owner != sender:
                raise Revert()
            keys, values = _decode_args(signature, data)
            for key, value in zip(keys, values):
                contract.storage[_hex(key)] = _hex(value)
        elif signature == "setData(bytes32,bytes)":
            if contract.owner != sender:
                raise Revert()
            key, value = _decode_args(signature, data)
            contract.storage[_hex(key)] = _hex(value)
        elif signature == "transferOwnership(address)":
            if contract.owner != sender:
                raise Revert()
            (arg,) = _decode_args(signature, data)
            contract.pending_owner = Web3.to_checksum_address(arg)
        elif signature == "claimOwnership()":
            if contract.pending_owner != sender:
                raise Revert()
            contract.owner = sender
            contract.pending_owner = None
        elif signature == "execute(bytes)" and contract.kind == ContractNames.KEY_MANAGER:
            (payload,) = _decode_args(signature, data)
            account = self.contracts[contract.target]
            inner = SELECTORS.get(_hex(payload[:4]))
            required = "CHANGEOWNER" if inner == "claimOwnership()" else "CHANGEPERMISSIONS"
            if not self._has_permission(account, sender, required):
                raise Revert()
            self._execute(account.address, contract.address, _hex(payload))
        else:
            raise Revert()


def write_artifacts(root: Path, version: int = 1) -> Path:
    version_dir = root / f"v{version}"
    version_dir.mkdir(parents=True, exist_ok=True)
    for name, bytecode in BYTECODES.items():
        with open(version_dir / f"{name}.json", "w") as f:
            json.dump({"contractName": name, "abi": [], "bytecode": bytecode}, f, indent=2)
    return root


@pytest.fixture
def artifacts_root(tmp_path: Path) -> Path:
    """Directory of v1 test artifacts for every contract."""
    return write_artifacts(tmp_path / "artifacts")


@pytest.fixture
def artifacts(artifacts_root: Path) -> ArtifactRegistry:
    return ArtifactRegistry(artifacts_root)


@pytest.fixture
def fake_signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def make_signer() -> Callable[..., FakeSigner]:
    """Factory for FakeSigner instances with custom failure injection."""
    return FakeSigner


@pytest.fixture
def signer_address() -> str:
    return SIGNER_ADDRESS


@pytest.fixture
def controller_a() -> str:
    return CONTROLLER_A


@pytest.fixture
def controller_b() -> str:
    return CONTROLLER_B
