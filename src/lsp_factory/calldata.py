"""Function selector and calldata encoding helpers."""

from typing import Any, List

from eth_abi import encode
from web3 import Web3


def function_selector(signature: str) -> str:
    """First four bytes of keccak256(signature), 0x-prefixed."""
    return Web3.to_hex(Web3.keccak(text=signature)[:4])


def signature_types(signature: str) -> List[str]:
    """Argument types of a plain (non-tuple) function signature."""
    args = signature[signature.index("(") + 1 : signature.rindex(")")]
    return [t.strip() for t in args.split(",")] if args else []


def _to_abi_value(abi_type: str, value: Any) -> Any:
    if abi_type.endswith("[]"):
        return [_to_abi_value(abi_type[:-2], v) for v in value]
    if abi_type.startswith("bytes") and isinstance(value, str):
        return Web3.to_bytes(hexstr=value)
    return value


def encode_arguments(types: List[str], args: List[Any]) -> str:
    """ABI-encode arguments, returned as hex without 0x prefix."""
    if len(types) != len(args):
        raise ValueError(f"Expected {len(types)} arguments, got {len(args)}")
    values = [_to_abi_value(t, a) for t, a in zip(types, args)]
    return encode(types, values).hex()


def encode_call(signature: str, *args: Any) -> str:
    """
    Build calldata for a function call.

    Args:
        signature: Canonical signature, e.g. "setData(bytes32[],bytes[])"
        *args: Argument values; hex strings are accepted for bytes types

    Returns:
        0x-prefixed calldata
    """
    return function_selector(signature) + encode_arguments(signature_types(signature), list(args))
