"""Per mount path handles to the Key/Value version 2 secrets engine."""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from hvac.exceptions import InvalidPath

from .vault_client import BACKEND_ERRORS, VaultSession, backend_unavailable

logger = logging.getLogger(__name__)


class VersionedKeyValueHandle:
    """
    Key/Value version 2 operations bound to one mount path.

    A missing secret or version is reported as None (or an empty list) rather
    than an error. Any other failure is raised as BackendUnavailable.
    """

    def __init__(self, session: VaultSession, mount_path: str):
        self._session = session
        self._mount_path = mount_path

    @property
    def mount_path(self) -> str:
        return self._mount_path

    def get(self, secret_key: str, version: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """
        Read the data of a secret version.

        Args:
            secret_key: The secret key under the mount path
            version: Version number, or None for the current version

        Returns:
            The secret data, or None if the secret or version doesn't exist
        """
        logger.debug(f"Reading {self._mount_path}/data/{secret_key} (version={version or 'latest'})")
        try:
            response = self._session.client.secrets.kv.v2.read_secret_version(
                path=secret_key,
                version=version,
                mount_point=self._mount_path,
                raise_on_deleted_version=True,
            )
        except InvalidPath:
            return None
        except BACKEND_ERRORS as e:
            raise backend_unavailable(f"read of {self._mount_path}/{secret_key}", e) from e

        if not response:
            return None
        return (response.get("data") or {}).get("data")

    def put(self, secret_key: str, data: Dict[str, Any]) -> None:
        """Write data as a new version of the secret."""
        logger.debug(f"Writing {self._mount_path}/data/{secret_key}")
        try:
            self._session.client.secrets.kv.v2.create_or_update_secret(
                path=secret_key,
                secret=dict(data),
                mount_point=self._mount_path,
            )
        except BACKEND_ERRORS as e:
            raise backend_unavailable(f"write of {self._mount_path}/{secret_key}", e) from e

    def list(self, path: str = "") -> List[str]:
        """List secret keys under path. A path with no secrets yields an empty list."""
        logger.debug(f"Listing {self._mount_path}/metadata/{path}")
        try:
            response = self._session.client.secrets.kv.v2.list_secrets(
                path=path,
                mount_point=self._mount_path,
            )
        except InvalidPath:
            return []
        except BACKEND_ERRORS as e:
            raise backend_unavailable(f"list of {self._mount_path}/{path}", e) from e

        if not response:
            return []
        return list((response.get("data") or {}).get("keys") or [])


class PathHandleCache:
    """
    Thread-safe, grow-only mapping of mount path to handle.

    Lookups of a known path take no lock. Creation of a handle for an unseen
    path happens under a lock, so concurrent first accesses converge on a
    single handle.

    One lock serves every path. Building a handle only binds the mount path
    to the session and performs no I/O, so first accesses to distinct paths
    never wait behind a network call.
    """

    def __init__(self, factory: Callable[[str], VersionedKeyValueHandle]):
        self._factory = factory
        self._handles: Dict[str, VersionedKeyValueHandle] = {}
        self._lock = threading.Lock()

    def get_or_create(self, mount_path: str) -> VersionedKeyValueHandle:
        handle = self._handles.get(mount_path)
        if handle is not None:
            return handle

        with self._lock:
            handle = self._handles.get(mount_path)
            if handle is None:
                handle = self._factory(mount_path)
                self._handles[mount_path] = handle
                logger.debug(f"Created Key/Value handle for mount path: {mount_path}")
        return handle

    def __contains__(self, mount_path: object) -> bool:
        return mount_path in self._handles

    def __len__(self) -> int:
        return len(self._handles)
