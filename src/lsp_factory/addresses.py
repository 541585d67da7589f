"""Resolution of deployed contract addresses from transaction receipts."""

from typing import Any, Mapping, Optional

from web3 import Web3

from .constants import CONTRACT_CREATED_EVENTS
from .exceptions import AddressResolutionError

CONTRACT_CREATED_TOPICS = frozenset(
    Web3.to_hex(Web3.keccak(text=signature)) for signature in CONTRACT_CREATED_EVENTS
)


def _hex(value: Any) -> str:
    return value if isinstance(value, str) else Web3.to_hex(value)


def _created_contract_from_logs(receipt: Mapping[str, Any]) -> Optional[str]:
    for log in receipt.get("logs") or []:
        topics = [_hex(t).lower() for t in log.get("topics") or []]
        if len(topics) > 2 and topics[0] in CONTRACT_CREATED_TOPICS:
            # address topic is left-padded to 32 bytes
            return Web3.to_checksum_address("0x" + topics[2][-40:])
    return None


def resolve_deployed_address(receipt: Mapping[str, Any], signer_is_identity: bool) -> str:
    """
    Read the address of a contract created by a transaction.

    A key signer creates contracts directly, so the receipt carries
    ``contractAddress`` (or ``to`` when the transaction targeted an
    existing contract). An identity signer creates contracts through its own
    execute call, so the address is taken from the ContractCreated event
    that call emits.

    Args:
        receipt: Mined transaction receipt
        signer_is_identity: Whether the signer is itself an account contract

    Returns:
        Checksummed contract address

    Raises:
        AddressResolutionError: If no address can be found
    """
    if receipt.get("contractAddress"):
        return Web3.to_checksum_address(receipt["contractAddress"])

    if signer_is_identity:
        address = _created_contract_from_logs(receipt)
        if address is not None:
            return address
        raise AddressResolutionError(
            "No ContractCreated event in receipt of identity-executed deployment "
            f"{_hex(receipt.get('transactionHash', ''))}"
        )

    if receipt.get("to"):
        return Web3.to_checksum_address(receipt["to"])

    raise AddressResolutionError(
        f"Receipt {_hex(receipt.get('transactionHash', ''))} has neither contractAddress nor to"
    )
