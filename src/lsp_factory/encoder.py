"""
ERC725Y key/value computation for controller permissions and profile data.

Everything in this module is pure: identical inputs always produce
byte-identical key and value sequences.
"""

from typing import Any, Iterable, List, Mapping, Optional, Union

from eth_abi import encode
from web3 import Web3

from .constants import (
    ADDRESS_PERMISSIONS_ARRAY_KEY,
    LSP3_PROFILE_KEY,
    PREFIX_PERMISSIONS,
    UNIVERSAL_RECEIVER_DELEGATE_KEY,
)
from .exceptions import InvalidControllerError, InvalidPermissionError
from .permissions import (
    DEFAULT_PERMISSIONS,
    DELEGATE_PERMISSIONS,
    HANDOFF_PERMISSIONS,
    combine_permissions,
    encode_permissions,
    normalize_permissions,
)
from .types import Controller, PermissionWriteSet

ControllerInput = Union[str, Mapping[str, Any], Controller]


def to_address(value: Any, what: str = "address") -> str:
    """
    Validate and checksum an address.

    Raises:
        InvalidControllerError: If value is not a 20-byte hex address
    """
    if not isinstance(value, str) or not Web3.is_address(value):
        raise InvalidControllerError(f"Invalid {what}: {value!r}")
    return Web3.to_checksum_address(value)


def resolve_controller(entry: ControllerInput) -> Controller:
    """
    Resolve a raw controller entry into a Controller record.

    Accepts a bare address (granted DEFAULT_PERMISSIONS), a mapping with an
    ``address`` and optional ``permissions``, or a Controller record.
    ``permissions`` may be a bytes32 hex string or a mapping of permission
    names. Addresses are always checksummed and permissions normalized.

    Raises:
        InvalidControllerError: If the entry is malformed
    """
    if isinstance(entry, Controller):
        try:
            permissions = normalize_permissions(entry.permissions)
        except InvalidPermissionError as e:
            raise InvalidControllerError(
                f"Invalid permissions for controller {entry.address}: {e}"
            ) from e
        return Controller(
            address=to_address(entry.address, "controller address"),
            permissions=permissions,
        )

    if isinstance(entry, str):
        return Controller(
            address=to_address(entry, "controller address"),
            permissions=encode_permissions(DEFAULT_PERMISSIONS),
        )

    if isinstance(entry, Mapping):
        if "address" not in entry:
            raise InvalidControllerError(f"Controller entry is missing 'address': {entry!r}")
        address = to_address(entry["address"], "controller address")
        permissions = entry.get("permissions")
        try:
            if permissions is None:
                encoded = encode_permissions(DEFAULT_PERMISSIONS)
            elif isinstance(permissions, Mapping):
                encoded = encode_permissions(permissions)
            else:
                encoded = normalize_permissions(permissions)
        except InvalidPermissionError as e:
            raise InvalidControllerError(f"Invalid permissions for controller {address}: {e}") from e
        return Controller(address=address, permissions=encoded)

    raise InvalidControllerError(
        f"Controller must be an address or a mapping with 'address', got {type(entry).__name__}"
    )


def resolve_controllers(entries: Iterable[ControllerInput]) -> List[Controller]:
    """
    Resolve every controller entry, preserving input order.

    Raises:
        InvalidControllerError: If the list is empty, any entry is malformed
                                or an address is listed twice
    """
    controllers = [resolve_controller(entry) for entry in entries]
    if not controllers:
        raise InvalidControllerError("At least one controller is required")

    seen = set()
    for controller in controllers:
        if controller.address in seen:
            raise InvalidControllerError(f"Controller {controller.address} is listed more than once")
        seen.add(controller.address)
    return controllers


def array_element_key(index: int) -> str:
    """AddressPermissions[index] key: array key prefix + uint128 index."""
    return ADDRESS_PERMISSIONS_ARRAY_KEY[:34] + format(index, "032x")


def permissions_key(address: str) -> str:
    """AddressPermissions:Permissions:<address> mapping key."""
    return PREFIX_PERMISSIONS + address[2:].lower()


def encode_array_length(length: int) -> str:
    return "0x" + encode(["uint256"], [length]).hex()


def signer_final_permissions(signer_address: str, controllers: List[Controller]) -> str:
    """
    Permissions the signer keeps once the handoff is complete.

    Its requested permissions if it is an explicit controller, otherwise none.
    """
    signer_address = to_address(signer_address, "signer address")
    for controller in controllers:
        if controller.address == signer_address:
            return controller.permissions
    return encode_permissions({})


def prepare_set_data_parameters(
    signer_address: str,
    account_address: str,
    delegate_address: str,
    controllers: List[Controller],
    encoded_profile: Optional[str] = None,
) -> PermissionWriteSet:
    """
    Compute the keys and values establishing delegate, controllers and profile.

    Layout, in write order:
    - delegate address under the universal receiver delegate key
    - delegate permissions (SUPER_SETDATA)
    - AddressPermissions[] length = controllers + 1
    - AddressPermissions[i] = controller address, for each controller in order
    - AddressPermissions:Permissions:<controller> = controller permissions
    - AddressPermissions[N] = delegate address
    - signer handoff permissions (CHANGEOWNER + CHANGEPERMISSIONS), appended
      when the signer is not a controller, merged into its entry otherwise
    - LSP3Profile, when encoded profile data is given

    Args:
        signer_address: Address of the deploying signer
        account_address: Address of the account receiving the data
        delegate_address: Address of the universal receiver delegate
        controllers: Resolved controllers, in index order
        encoded_profile: JSONURL-encoded profile metadata

    Returns:
        PermissionWriteSet targeting account_address
    """
    signer_address = to_address(signer_address, "signer address")
    delegate_address = to_address(delegate_address, "delegate address")
    account_address = to_address(account_address, "account address")
    controllers = [resolve_controller(c) for c in controllers]

    addresses = [c.address for c in controllers]

    keys_to_set = [
        UNIVERSAL_RECEIVER_DELEGATE_KEY,
        permissions_key(delegate_address),
        ADDRESS_PERMISSIONS_ARRAY_KEY,
        *[array_element_key(index) for index in range(len(controllers))],
        *[permissions_key(address) for address in addresses],
        array_element_key(len(controllers)),
    ]

    values_to_set = [
        delegate_address,
        encode_permissions(DELEGATE_PERMISSIONS),
        encode_array_length(len(controllers) + 1),
        *addresses,
        *[c.permissions for c in controllers],
        delegate_address,
    ]

    handoff = encode_permissions(HANDOFF_PERMISSIONS)
    signer_key = permissions_key(signer_address)
    if signer_address not in addresses:
        keys_to_set.append(signer_key)
        values_to_set.append(handoff)
    else:
        index = keys_to_set.index(signer_key)
        values_to_set[index] = combine_permissions(values_to_set[index], handoff)

    if encoded_profile:
        keys_to_set.append(LSP3_PROFILE_KEY)
        values_to_set.append(encoded_profile)

    return PermissionWriteSet(
        keys_to_set=keys_to_set,
        values_to_set=values_to_set,
        target_address=account_address,
    )
