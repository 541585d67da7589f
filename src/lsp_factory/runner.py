"""Submission and confirmation of single contract-creation or contract calls."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from .calldata import encode_arguments, encode_call
from .constants import GAS_BUFFER, GAS_PRICE, PROXY_BYTECODE_PREFIX, PROXY_BYTECODE_SUFFIX
from .exceptions import DeploymentStepError
from .signer import Signer
from .types import DeploymentEvent, DeploymentStatus, DeploymentType

logger = logging.getLogger(__name__)

EmitEvent = Callable[[DeploymentEvent], None]


def get_proxy_bytecode(lib_address: str) -> str:
    """EIP-1167 creation code for a minimal proxy forwarding to lib_address."""
    return PROXY_BYTECODE_PREFIX + lib_address[2:].lower() + PROXY_BYTECODE_SUFFIX


@dataclass(frozen=True)
class ContractCall:
    """A contract creation (``to`` is None) or a call against an existing contract."""

    contract_name: str
    type: DeploymentType
    data: str
    to: Optional[str] = None
    function_name: Optional[str] = None

    @classmethod
    def creation(
        cls,
        contract_name: str,
        bytecode: str,
        constructor_types: Sequence[str] = (),
        constructor_args: Sequence[Any] = (),
    ) -> "ContractCall":
        return cls(
            contract_name=contract_name,
            type=DeploymentType.CONTRACT,
            data=bytecode + encode_arguments(list(constructor_types), list(constructor_args)),
        )

    @classmethod
    def proxy_creation(cls, contract_name: str, lib_address: str) -> "ContractCall":
        return cls(
            contract_name=contract_name,
            type=DeploymentType.PROXY_CONTRACT,
            data=get_proxy_bytecode(lib_address),
        )

    @classmethod
    def transaction(
        cls, contract_name: str, to: str, signature: str, *args: Any
    ) -> "ContractCall":
        return cls(
            contract_name=contract_name,
            type=DeploymentType.TRANSACTION,
            data=encode_call(signature, *args),
            to=to,
            function_name=signature,
        )


class StepRunner:
    """Submits a ContractCall, waits for it to be mined and reports progress events."""

    def __init__(self, signer: Signer, gas_price: int = GAS_PRICE, gas_buffer: int = GAS_BUFFER):
        self.signer = signer
        self.gas_price = gas_price
        self.gas_buffer = gas_buffer

    def _event(self, call: ContractCall, status: DeploymentStatus, **kwargs) -> DeploymentEvent:
        return DeploymentEvent(
            type=call.type,
            contract_name=call.contract_name,
            status=status,
            function_name=call.function_name,
            **kwargs,
        )

    async def submit(self, call: ContractCall) -> Dict[str, Any]:
        """
        Estimate gas and broadcast a call.

        The gas limit is a fresh estimate plus the fixed buffer; the gas price
        is the configured fixed value.

        Returns:
            The submitted transaction, including its "hash"
        """
        transaction: Dict[str, Any] = {"data": call.data}
        if call.to is not None:
            transaction["to"] = call.to

        estimate = await self.signer.estimate_gas(transaction)
        logger.debug(f"Gas estimate for {call.contract_name} {call.function_name or 'creation'}: {estimate}")

        transaction["gas"] = estimate + self.gas_buffer
        transaction["gasPrice"] = self.gas_price
        transaction["hash"] = await self.signer.send_transaction(transaction)
        return transaction

    async def run(self, call: ContractCall, emit: EmitEvent) -> Dict[str, Any]:
        """
        Submit a call and wait for its receipt.

        Emits PENDING after submission and COMPLETE with the receipt once mined,
        or ERROR carrying the failure.

        Returns:
            Transaction receipt

        Raises:
            DeploymentStepError: If submission or confirmation fails
        """
        label = f"{call.contract_name} {call.function_name or call.type.value}"
        try:
            transaction = await self.submit(call)
        except Exception as e:
            logger.error(f"Submitting {label} failed: {e}")
            error = DeploymentStepError(
                f"Submitting {label} failed: {e}", call.contract_name, call.function_name or ""
            )
            emit(self._event(call, DeploymentStatus.ERROR, error=error))
            raise error from e

        logger.info(f"Submitted {label}: {transaction['hash']}")
        emit(self._event(call, DeploymentStatus.PENDING, transaction=transaction))

        try:
            receipt = await self.signer.wait_for_receipt(transaction["hash"])
        except Exception as e:
            logger.error(f"Confirming {label} failed: {e}")
            error = DeploymentStepError(
                f"Confirming {label} failed: {e}", call.contract_name, call.function_name or ""
            )
            emit(self._event(call, DeploymentStatus.ERROR, transaction=transaction, error=error))
            raise error from e

        logger.info(f"Confirmed {label} in block {receipt.get('blockNumber')}")
        emit(self._event(call, DeploymentStatus.COMPLETE, transaction=transaction, receipt=receipt))
        return receipt

