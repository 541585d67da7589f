"""Signer abstraction and its web3-backed implementation."""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from eth_abi import decode
from eth_account import Account
from web3 import AsyncWeb3, Web3

from .calldata import encode_call
from .constants import (
    ERC725_ACCOUNT_INTERFACE,
    LEGACY_ERC725_ACCOUNT_INTERFACE,
    PRIVATE_KEY_ENV,
    RPC_URL_ENV,
)
from .exceptions import TransactionFailedError

logger = logging.getLogger(__name__)


class Signer(ABC):
    """
    Authenticated handle able to read chain state and submit signed transactions.

    Transactions are plain mappings with optional ``to`` (absent for contract
    creation), ``data``, ``gas`` and ``gasPrice``. Receipts are mappings with
    at least ``status``, ``contractAddress``, ``to`` and ``logs``.
    """

    @abstractmethod
    async def get_address(self) -> str:
        """Checksummed address transactions are sent from."""
        pass

    @abstractmethod
    async def estimate_gas(self, transaction: Mapping[str, Any]) -> int:
        pass

    @abstractmethod
    async def send_transaction(self, transaction: Mapping[str, Any]) -> str:
        """Sign and broadcast a transaction, returning its hash."""
        pass

    @abstractmethod
    async def wait_for_receipt(self, transaction_hash: str) -> Dict[str, Any]:
        """
        Wait until a transaction is mined.

        Raises:
            TransactionFailedError: If the transaction reverted
        """
        pass

    @abstractmethod
    async def call(self, transaction: Mapping[str, Any]) -> bytes:
        """Execute a read-only call and return the raw result."""
        pass


class Web3Signer(Signer):
    """Signer backed by an AsyncWeb3 provider and a local private key."""

    def __init__(
        self,
        web3: AsyncWeb3,
        private_key: str,
        chain_id: Optional[int] = None,
        receipt_timeout: float = 120,
    ):
        self.web3 = web3
        self._account = Account.from_key(private_key)
        self._chain_id = chain_id
        self._receipt_timeout = receipt_timeout
        self._nonce: Optional[int] = None
        self._nonce_lock = asyncio.Lock()

    @classmethod
    def from_rpc_url(
        cls,
        rpc_url: Optional[str] = None,
        private_key: Optional[str] = None,
        chain_id: Optional[int] = None,
    ) -> "Web3Signer":
        """
        Create a signer for an HTTP RPC endpoint.

        Args:
            rpc_url: RPC endpoint (defaults to $LUKSO_RPC_URL)
            private_key: Hex private key (defaults to $LSP_FACTORY_PRIVATE_KEY)
            chain_id: Chain id (read from the node when omitted)

        Raises:
            ValueError: If the RPC URL or private key is missing
        """
        if rpc_url is None:
            rpc_url = os.environ.get(RPC_URL_ENV)
        if private_key is None:
            private_key = os.environ.get(PRIVATE_KEY_ENV)

        if rpc_url is None:
            raise ValueError(f"RPC URL required: set ${RPC_URL_ENV} or pass rpc_url")
        if private_key is None:
            raise ValueError(f"Private key required: set ${PRIVATE_KEY_ENV} or pass private_key")

        return cls(AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url)), private_key, chain_id)

    async def get_address(self) -> str:
        return self._account.address

    async def estimate_gas(self, transaction: Mapping[str, Any]) -> int:
        return await self.web3.eth.estimate_gas({**transaction, "from": self._account.address})

    async def send_transaction(self, transaction: Mapping[str, Any]) -> str:
        # Concurrent branches share one account, so nonces are handed out in order
        async with self._nonce_lock:
            if self._chain_id is None:
                self._chain_id = await self.web3.eth.chain_id
            if self._nonce is None:
                self._nonce = await self.web3.eth.get_transaction_count(
                    self._account.address, "pending"
                )

            signed = self._account.sign_transaction(
                {
                    **transaction,
                    "from": self._account.address,
                    "nonce": self._nonce,
                    "chainId": self._chain_id,
                }
            )
            tx_hash = await self.web3.eth.send_raw_transaction(signed.raw_transaction)
            self._nonce += 1

        return Web3.to_hex(tx_hash)

    async def wait_for_receipt(self, transaction_hash: str) -> Dict[str, Any]:
        receipt = dict(
            await self.web3.eth.wait_for_transaction_receipt(
                transaction_hash, timeout=self._receipt_timeout
            )
        )
        if receipt.get("status") == 0:
            raise TransactionFailedError(f"Transaction {transaction_hash} reverted")
        return receipt

    async def call(self, transaction: Mapping[str, Any]) -> bytes:
        return bytes(await self.web3.eth.call(dict(transaction)))


async def address_is_universal_profile(signer: Signer, address: str) -> bool:
    """
    Check whether an address is an account contract, via ERC165.

    Advisory only: any read failure is reported as False.
    """
    try:
        for interface_id in (ERC725_ACCOUNT_INTERFACE, LEGACY_ERC725_ACCOUNT_INTERFACE):
            result = await signer.call(
                {"to": address, "data": encode_call("supportsInterface(bytes4)", interface_id)}
            )
            if decode(["bool"], result)[0]:
                return True
        return False
    except Exception as e:
        logger.debug(f"supportsInterface probe failed for {address}: {e}")
        return False
