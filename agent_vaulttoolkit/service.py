"""Versioned HashiCorp Vault communication service."""
import logging
from typing import Any, Dict, List, Mapping, Optional

from .secrets.domains.config_loader import (
    connection_from_config,
    load_config,
    validate_config,
)
from .secrets.domains.exceptions import UnsupportedBackendConfiguration
from .secrets.domains.models import KeyValueBackend, VersionSelector
from .secrets.domains.path_handles import PathHandleCache, VersionedKeyValueHandle
from .secrets.domains.vault_client import BACKEND_ERRORS, VaultSession, backend_unavailable
from .secrets.workflows import cipher_operations, secret_operations
from .secrets.workflows.secret_operations import Version

logger = logging.getLogger(__name__)


def _require_versioned_backend(backend: KeyValueBackend) -> None:
    if backend is not KeyValueBackend.KV_2:
        raise UnsupportedBackendConfiguration(
            f"Must be a kv2 backend to support versioned secrets, configured: {backend.name}"
        )


class VersionedVaultCommunicationService:
    """
    Reads, writes and encrypts secrets through HashiCorp Vault.

    Secrets are stored in a Key/Value version 2 secrets engine and encryption
    is delegated to the Transit secrets engine. The service is safe to share
    between threads; every operation is one blocking round trip to Vault.

    Example:
        >>> service = VersionedVaultCommunicationService(config_path="config.yml")
        >>> service.write_secret("secret", "db-password", "s3cr3t")
        >>> service.read_secret("secret", "db-password")
        's3cr3t'
    """

    def __init__(
        self,
        config: Optional[Mapping[str, Any]] = None,
        *,
        config_path: Optional[str] = None,
        session: Optional[VaultSession] = None,
    ):
        """
        Args:
            config: Configuration mapping; loaded from file when omitted
            config_path: Config file path used when config is omitted
            session: Pre-built session, used instead of the configuration

        Raises:
            UnsupportedBackendConfiguration: If the Key/Value backend is not version 2
            ConfigError: If the configuration is invalid
        """
        if session is None:
            # The backend version is checked before credential and certificate files
            if config is None:
                config = load_config(config_path, required_backend=KeyValueBackend.KV_2)
            else:
                config = validate_config(dict(config), required_backend=KeyValueBackend.KV_2)
            session = VaultSession(connection_from_config(config))
        else:
            _require_versioned_backend(session.connection.kv_backend)

        self._session = session
        self._handles = PathHandleCache(self._create_handle)
        logger.info(f"Vault communication service ready for {session.connection.url}")

    def _create_handle(self, mount_path: str) -> VersionedKeyValueHandle:
        return VersionedKeyValueHandle(self._session, mount_path)

    @property
    def session(self) -> VaultSession:
        return self._session

    @property
    def handles(self) -> PathHandleCache:
        return self._handles

    def get_server_version(self) -> str:
        """Return the Vault server version reported by the health endpoint."""
        try:
            health = self._session.client.sys.read_health_status(method="GET")
            # Standby and sealed servers answer with a non-200 raw response
            if hasattr(health, "json"):
                health = health.json()
            return health["version"]
        except BACKEND_ERRORS + (KeyError, TypeError, ValueError) as e:
            raise backend_unavailable("health check", e) from e

    def encrypt(self, transit_path: str, plaintext: bytes) -> str:
        """
        Encrypt plaintext with a Transit key.

        Args:
            transit_path: Name of the Transit key
            plaintext: Raw bytes to encrypt

        Returns:
            Vault's ciphertext, unparsed (e.g. "vault:v1:...")

        Raises:
            EncryptionError: If Vault rejects the request
            BackendUnavailable: If Vault can't be reached
        """
        return cipher_operations.encrypt(self._session, transit_path, plaintext)

    def decrypt(self, transit_path: str, ciphertext: str) -> bytes:
        """
        Decrypt ciphertext produced by a Transit key.

        Raises:
            DecryptionError: If the ciphertext is malformed or belongs to another key
            BackendUnavailable: If Vault can't be reached
        """
        return cipher_operations.decrypt(self._session, transit_path, ciphertext)

    def write_secret(self, mount_path: str, secret_key: str, value: str) -> None:
        """Write value as a new version of [mount_path]/[secret_key]."""
        secret_operations.write_secret(self._handles, mount_path, secret_key, value)

    def read_secret(self, mount_path: str, secret_key: str) -> Optional[str]:
        """Read the latest value of [mount_path]/[secret_key], or None if absent."""
        return self.read_versioned_secret(mount_path, secret_key, VersionSelector.latest())

    def read_versioned_secret(self, mount_path: str, secret_key: str, version: Version) -> Optional[str]:
        """
        Read the value stored in one version of [mount_path]/[secret_key].

        Args:
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
        return secret_operations.read_secret(self._handles, mount_path, secret_key, version)

    def write_secret_map(self, mount_path: str, secret_key: str, key_values: Mapping[str, str]) -> None:
        """Replace the fields of [mount_path]/[secret_key] with key_values. Empty maps are skipped."""
        secret_operations.write_secret_map(self._handles, mount_path, secret_key, key_values)

    def read_secret_map(self, mount_path: str, secret_key: str) -> Dict[str, str]:
        return self.read_versioned_secret_map(mount_path, secret_key, VersionSelector.latest())

    def read_versioned_secret_map(self, mount_path: str, secret_key: str, version: Version) -> Dict[str, str]:
        """
        Read the fields stored in one version of [mount_path]/[secret_key].

        Args:
            mount_path: Mount path of the Key/Value version 2 secrets engine
            secret_key: The secret key
            version: VersionSelector or version number; None reads the latest version

        Returns:
            The string fields of the secret, or an empty dict if the secret or version doesn't exist

        Raises:
            InvalidArgument: If an argument is missing or the version is not positive
            BackendUnavailable: If Vault can't be reached
        """
        return secret_operations.read_secret_map(self._handles, mount_path, secret_key, version)

    def list_secrets(self, mount_path: str) -> List[str]:
        """List the secret keys at the root of mount_path; empty if there are none."""
        return secret_operations.list_secrets(self._handles, mount_path)
