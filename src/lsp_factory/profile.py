"""LSP3 profile metadata fetching and JSONURL encoding."""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

import requests
from web3 import Web3

from .config import UploadOptions
from .constants import HTTP_TIMEOUT, KECCAK256_UTF8
from .exceptions import ConfigurationError, ProfileMetadataError

logger = logging.getLogger(__name__)

ProfileInput = Union[str, Mapping[str, Any]]

# External content-addressed storage: raw bytes in, URL out
Uploader = Callable[[bytes], Awaitable[str]]


def is_metadata_encoded(value: str) -> bool:
    """Whether a string already is JSONURL-encoded profile data."""
    return isinstance(value, str) and value.lower().startswith(KECCAK256_UTF8)


def format_ipfs_url(gateway: str, path: str) -> str:
    return gateway.rstrip("/") + "/" + path.lstrip("/")


def to_fetch_url(url: str, upload_options: Optional[UploadOptions] = None) -> str:
    """Translate an ipfs:// URI into a gateway URL; other URLs are returned unchanged."""
    if url.startswith("ipfs://"):
        options = upload_options or UploadOptions()
        return format_ipfs_url(options.ipfs_gateway, url[len("ipfs://") :])
    return url


def _serialize(json_data: Any) -> bytes:
    return json.dumps(json_data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def encode_profile_data(url: str, json_data: Any) -> str:
    """
    JSONURL-encode profile metadata.

    Layout: hash function id (keccak256(utf8)) + keccak256 of the JSON + URL bytes.

    Returns:
        0x-prefixed hex string
    """
    json_hash = Web3.to_hex(Web3.keccak(_serialize(json_data)))[2:]
    return KECCAK256_UTF8 + json_hash + url.encode("utf-8").hex()


def fetch_profile_json(url: str, upload_options: Optional[UploadOptions] = None) -> Dict[str, Any]:
    """
    Fetch profile JSON from a URL or ipfs:// URI.

    Raises:
        ProfileMetadataError: On network errors, non-200 responses or invalid JSON
    """
    fetch_url = to_fetch_url(url, upload_options)
    logger.debug(f"Fetching profile metadata from {fetch_url}")
    try:
        response = requests.get(fetch_url, timeout=HTTP_TIMEOUT)
    except requests.RequestException as e:
        raise ProfileMetadataError(f"Network error fetching profile metadata: {e}") from e

    if response.status_code != 200:
        raise ProfileMetadataError(
            f"Profile metadata request to {fetch_url} failed with status {response.status_code}"
        )

    try:
        return response.json()
    except ValueError as e:
        raise ProfileMetadataError(f"Profile metadata at {fetch_url} is not valid JSON") from e


async def resolve_profile_metadata(
    profile: Optional[ProfileInput],
    upload_options: Optional[UploadOptions] = None,
    uploader: Optional[Uploader] = None,
) -> Optional[str]:
    """
    Turn any accepted profile input into JSONURL-encoded bytes.

    Accepted inputs:
    - None: no profile
    - already-encoded JSONURL hex string: returned as is
    - URL or ipfs:// URI: JSON is fetched, then encoded with that URL
    - {"url": ..., "json": ...}: encoded directly
    - structured profile, optionally wrapped as {"LSP3Profile": {...}}:
      uploaded through uploader, then encoded with the returned URL

    Raises:
        ConfigurationError: If structured data is given without an uploader
        ProfileMetadataError: If fetching or uploading fails
    """
    if profile is None:
        return None

    if isinstance(profile, str):
        if is_metadata_encoded(profile):
            return profile
        json_data = await asyncio.to_thread(fetch_profile_json, profile, upload_options)
        return encode_profile_data(profile, json_data)

    if not isinstance(profile, Mapping):
        raise ConfigurationError(f"Unsupported profile metadata type: {type(profile).__name__}")

    if "url" in profile and "json" in profile:
        return encode_profile_data(profile["url"], profile["json"])

    profile_data = profile.get("LSP3Profile", profile)
    if uploader is None:
        raise ConfigurationError("Structured profile metadata requires an uploader")

    json_data = {"LSP3Profile": profile_data}
    try:
        url = await uploader(_serialize(json_data))
    except Exception as e:
        raise ProfileMetadataError(f"Profile metadata upload failed: {e}") from e
    logger.info(f"Uploaded profile metadata to {url}")
    return encode_profile_data(url, json_data)
