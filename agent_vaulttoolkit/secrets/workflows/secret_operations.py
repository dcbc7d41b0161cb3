"""Workflow for versioned Key/Value secret operations."""
import logging
from typing import Dict, List, Mapping, Optional, Union

from ..domains.models import SecretRecord, VersionSelector
from ..domains.path_handles import PathHandleCache
from ..domains.validators import (
    require_secret_value,
    require_string_map,
    require_text,
)

logger = logging.getLogger(__name__)

Version = Union[VersionSelector, int, None]

MOUNT_PATH_REQUIRED = "Vault K/V path must be specified"
SECRET_KEY_REQUIRED = "Secret key must be specified"


def write_secret(handles: PathHandleCache, mount_path: str, secret_key: str, value: str) -> None:
    """
    Write value to the "value" field of a new version of [mount_path]/[secret_key].

    Args:
        handles: Cache of Key/Value handles
        mount_path: Mount path of the Key/Value version 2 secrets engine
        secret_key: The secret key
        value: The secret value (may be empty, may not be None)

    Raises:
        InvalidArgument: If an argument is missing
        BackendUnavailable: If Vault rejects the write or can't be reached
    """
    require_text(mount_path, MOUNT_PATH_REQUIRED)
    require_text(secret_key, SECRET_KEY_REQUIRED)
    record = SecretRecord(require_secret_value(value))

    handles.get_or_create(mount_path).put(secret_key, record.to_payload())


def read_secret(
    handles: PathHandleCache,
    mount_path: str,
    secret_key: str,
    version: Version = None,
) -> Optional[str]:
    """
    Read the "value" field of a version of [mount_path]/[secret_key].

    Args:
        handles: Cache of Key/Value handles
        mount_path: Mount path of the Key/Value version 2 secrets engine
        secret_key: The secret key
        version: VersionSelector or version number; None reads the latest version

    Returns:
        The secret value, or None if the secret or version doesn't exist

    Raises:
        InvalidArgument: If an argument is missing or the version is not positive
        MalformedSecretError: If the stored secret has no string "value" field
        BackendUnavailable: If Vault can't be reached
    """
    require_text(mount_path, MOUNT_PATH_REQUIRED)
    require_text(secret_key, SECRET_KEY_REQUIRED)
    selector = VersionSelector.coerce(version)

    data = handles.get_or_create(mount_path).get(secret_key, selector.version)
    if data is None:
        return None
    return SecretRecord.from_payload(data).value


def write_secret_map(
    handles: PathHandleCache,
    mount_path: str,
    secret_key: str,
    key_values: Mapping[str, str],
) -> None:
    """
    Write key_values as a new version of [mount_path]/[secret_key].

    The new version replaces every field of the previous one. An empty map
    is skipped so no empty version is created.
    """
    require_text(mount_path, MOUNT_PATH_REQUIRED)
    require_text(secret_key, SECRET_KEY_REQUIRED)
    require_string_map(key_values)

    if not key_values:
        logger.debug(f"Skipping write of empty map to {mount_path}/{secret_key}")
        return

    handles.get_or_create(mount_path).put(secret_key, dict(key_values))


def read_secret_map(
    handles: PathHandleCache,
    mount_path: str,
    secret_key: str,
    version: Version = None,
) -> Dict[str, str]:
    """
    Read every field of a version of [mount_path]/[secret_key].

    Returns:
        The stored fields, or an empty dict if the secret or version doesn't exist.
        Fields with a non-string key or value are left out.
    """
    require_text(mount_path, MOUNT_PATH_REQUIRED)
    require_text(secret_key, SECRET_KEY_REQUIRED)
    selector = VersionSelector.coerce(version)

    data = handles.get_or_create(mount_path).get(secret_key, selector.version)
    if not data:
        return {}
    if not isinstance(data, Mapping):
        logger.warning(f"Ignoring non-map data stored at {mount_path}/{secret_key}")
        return {}

    key_values = {}
    for key, value in data.items():
        if isinstance(key, str) and isinstance(value, str):
            key_values[key] = value
        else:
            logger.warning(f"Ignoring non-string field {key!r} in {mount_path}/{secret_key}")
    return key_values


def list_secrets(handles: PathHandleCache, mount_path: str) -> List[str]:
    """List the secret keys at the root of mount_path."""
    require_text(mount_path, MOUNT_PATH_REQUIRED)
    return handles.get_or_create(mount_path).list("")
