"""
Ownership handoff from the deploying signer to the key manager.

The states are strictly linear:

    DEPLOYED -> INITIALIZED -> PERMISSIONS_SET -> OWNERSHIP_TRANSFERRED
             -> OWNERSHIP_CLAIMED -> SIGNER_PERMISSIONS_REVOKED (DONE)

Each transition after INITIALIZED is its own confirmed transaction. The
signer's handoff rights are only revoked after the claim receipt is in:
the key manager checks the caller's rights, so revoking first would leave
nobody able to finish the transfer.
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .calldata import encode_call, function_selector
from .constants import ContractNames
from .encoder import permissions_key, signer_final_permissions, to_address
from .exceptions import HandoffError
from .runner import ContractCall, EmitEvent, StepRunner
from .types import Controller, DeploymentType, PermissionWriteSet


class HandoffState(Enum):
    DEPLOYED = "DEPLOYED"
    INITIALIZED = "INITIALIZED"
    PERMISSIONS_SET = "PERMISSIONS_SET"
    OWNERSHIP_TRANSFERRED = "OWNERSHIP_TRANSFERRED"
    OWNERSHIP_CLAIMED = "OWNERSHIP_CLAIMED"
    SIGNER_PERMISSIONS_REVOKED = "SIGNER_PERMISSIONS_REVOKED"
    DONE = "SIGNER_PERMISSIONS_REVOKED"
    ERROR = "ERROR"


_NEXT_STATE = {
    None: HandoffState.DEPLOYED,
    HandoffState.DEPLOYED: HandoffState.INITIALIZED,
    HandoffState.INITIALIZED: HandoffState.PERMISSIONS_SET,
    HandoffState.PERMISSIONS_SET: HandoffState.OWNERSHIP_TRANSFERRED,
    HandoffState.OWNERSHIP_TRANSFERRED: HandoffState.OWNERSHIP_CLAIMED,
    HandoffState.OWNERSHIP_CLAIMED: HandoffState.SIGNER_PERMISSIONS_REVOKED,
}


class OwnershipHandoff:
    """State machine moving control of an account from the signer to its key manager."""

    def __init__(self, runner: StepRunner, controllers: List[Controller]):
        self.runner = runner
        self.controllers = controllers
        self.state: Optional[HandoffState] = None
        self.history: List[HandoffState] = []

        self.account_address: Optional[str] = None
        self.key_manager_address: Optional[str] = None
        self.signer_address: Optional[str] = None

    @property
    def done(self) -> bool:
        return self.state is HandoffState.DONE

    def _check(self, target: HandoffState) -> None:
        if self.state is HandoffState.ERROR:
            raise HandoffError(f"Cannot move to {target.value}: handoff already failed")
        if _NEXT_STATE.get(self.state) is not target:
            current = self.state.value if self.state else "START"
            raise HandoffError(f"Cannot move from {current} to {target.value}")

    def _advance(self, target: HandoffState) -> None:
        self._check(target)
        self.state = target
        self.history.append(target)

    async def _transition(
        self,
        target: HandoffState,
        send: Callable[[], Awaitable[Dict[str, Any]]],
    ) -> Dict[str, Any]:
        self._check(target)
        try:
            receipt = await send()
        except Exception:
            self.state = HandoffState.ERROR
            self.history.append(HandoffState.ERROR)
            raise
        self._advance(target)
        return receipt

    def mark_deployed(self, account_address: str) -> None:
        self._advance(HandoffState.DEPLOYED)
        self.account_address = account_address

    def mark_initialized(self) -> None:
        self._advance(HandoffState.INITIALIZED)

    def fail(self) -> None:
        if self.state is not HandoffState.DONE:
            self.state = HandoffState.ERROR
            self.history.append(HandoffState.ERROR)

    async def set_permissions(
        self, write_set: PermissionWriteSet, signer_address: str, emit: EmitEvent
    ) -> Dict[str, Any]:
        """Write controller permissions, delegate and profile data to the account."""
        self.signer_address = to_address(signer_address, "signer address")
        call = ContractCall.transaction(
            ContractNames.ERC725_ACCOUNT,
            write_set.target_address,
            "setData(bytes32[],bytes[])",
            write_set.keys_to_set,
            write_set.values_to_set,
        )
        return await self._transition(
            HandoffState.PERMISSIONS_SET, lambda: self.runner.run(call, emit)
        )

    async def transfer_ownership(self, key_manager_address: str, emit: EmitEvent) -> Dict[str, Any]:
        """Make the key manager the account's pending owner."""
        self.key_manager_address = key_manager_address
        call = ContractCall.transaction(
            ContractNames.ERC725_ACCOUNT,
            self.account_address,
            "transferOwnership(address)",
            key_manager_address,
        )
        return await self._transition(
            HandoffState.OWNERSHIP_TRANSFERRED, lambda: self.runner.run(call, emit)
        )

    def _execute_through_key_manager(self, payload: str, function_name: str) -> ContractCall:
        return ContractCall(
            contract_name=ContractNames.ERC725_ACCOUNT,
            type=DeploymentType.TRANSACTION,
            data=encode_call("execute(bytes)", payload),
            to=self.key_manager_address,
            function_name=function_name,
        )

    async def claim_ownership(self, emit: EmitEvent) -> Dict[str, Any]:
        """Have the key manager accept ownership, executed through its execute()."""
        call = self._execute_through_key_manager(
            function_selector("claimOwnership()"), "claimOwnership()"
        )
        return await self._transition(
            HandoffState.OWNERSHIP_CLAIMED, lambda: self.runner.run(call, emit)
        )

    async def revoke_signer_permissions(self, emit: EmitEvent) -> Dict[str, Any]:
        """Overwrite the signer's permissions with what it was meant to keep."""
        final_permissions = signer_final_permissions(self.signer_address, self.controllers)
        payload = encode_call(
            "setData(bytes32,bytes)", permissions_key(self.signer_address), final_permissions
        )
        call = self._execute_through_key_manager(payload, "setData(bytes32,bytes)")
        return await self._transition(
            HandoffState.SIGNER_PERMISSIONS_REVOKED, lambda: self.runner.run(call, emit)
        )

    async def complete(self, key_manager_address: str, emit: EmitEvent) -> None:
        """Run transfer, claim and revoke in order, each after the previous receipt."""
        await self.transfer_ownership(key_manager_address, emit)
        await self.claim_ownership(emit)
        await self.revoke_signer_permissions(emit)
