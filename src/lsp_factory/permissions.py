"""LSP6 permission bitmask encoding for lsp-factory library."""

from typing import Dict, Mapping

from .exceptions import InvalidPermissionError

PERMISSIONS: Dict[str, int] = {
    "CHANGEOWNER": 0x1,
    "CHANGEPERMISSIONS": 0x2,
    "ADDPERMISSIONS": 0x4,
    "SETDATA": 0x8,
    "CALL": 0x10,
    "STATICCALL": 0x20,
    "DELEGATECALL": 0x40,
    "DEPLOY": 0x80,
    "TRANSFERVALUE": 0x100,
    "SIGN": 0x200,
    "SUPER_SETDATA": 0x400,
    "SUPER_TRANSFERVALUE": 0x800,
    "SUPER_CALL": 0x1000,
    "SUPER_STATICCALL": 0x2000,
    "SUPER_DELEGATECALL": 0x4000,
}

DEFAULT_PERMISSIONS: Dict[str, bool] = {
    "CHANGEOWNER": True,
    "CHANGEPERMISSIONS": True,
    "ADDPERMISSIONS": True,
    "SETDATA": True,
    "CALL": True,
    "STATICCALL": True,
    "DELEGATECALL": False,
    "DEPLOY": True,
    "TRANSFERVALUE": True,
    "SIGN": True,
}

# Rights the deploying signer needs to hand ownership over
HANDOFF_PERMISSIONS: Dict[str, bool] = {"CHANGEOWNER": True, "CHANGEPERMISSIONS": True}

# Rights granted to the delegate contract
DELEGATE_PERMISSIONS: Dict[str, bool] = {"SUPER_SETDATA": True}


def _to_bytes32_hex(value: int) -> str:
    return "0x" + format(value, "064x")


def encode_permissions(permissions: Mapping[str, bool]) -> str:
    """
    Encode a permission mapping into a bytes32 bitmask.

    Args:
        permissions: Mapping of permission name -> enabled

    Returns:
        0x-prefixed 32-byte hex string

    Raises:
        InvalidPermissionError: If a permission name is unknown
    """
    value = 0
    for name, enabled in permissions.items():
        if name not in PERMISSIONS:
            raise InvalidPermissionError(f"Unknown permission '{name}'")
        if enabled:
            value |= PERMISSIONS[name]
    return _to_bytes32_hex(value)


def parse_permissions(permissions: str) -> int:
    """
    Parse a bytes32 bitmask hex string into an integer.

    Raises:
        InvalidPermissionError: If the value is not a hex string of at most 32 bytes
    """
    if not isinstance(permissions, str) or not permissions.startswith("0x"):
        raise InvalidPermissionError(f"Permissions must be a 0x-prefixed hex string: {permissions!r}")
    digits = permissions[2:]
    if len(digits) > 64:
        raise InvalidPermissionError(f"Permissions value longer than 32 bytes: {permissions}")
    try:
        return int(digits or "0", 16)
    except ValueError as e:
        raise InvalidPermissionError(f"Permissions value is not hex: {permissions}") from e


def normalize_permissions(permissions: str) -> str:
    """Return the canonical zero-padded bytes32 form of a bitmask."""
    return _to_bytes32_hex(parse_permissions(permissions))


def decode_permissions(permissions: str) -> Dict[str, bool]:
    """Decode a bytes32 bitmask into a mapping of every known permission name."""
    value = parse_permissions(permissions)
    return {name: bool(value & bit) for name, bit in PERMISSIONS.items()}


def combine_permissions(*permissions: str) -> str:
    """Bitwise OR of several bytes32 bitmasks."""
    value = 0
    for p in permissions:
        value |= parse_permissions(p)
    return _to_bytes32_hex(value)
