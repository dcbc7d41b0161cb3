"""HashiCorp Vault client session."""
import logging
import threading
from typing import Optional

import hvac
import requests
from hvac.exceptions import VaultError

from .exceptions import BackendUnavailable
from .models import VaultConnection

logger = logging.getLogger(__name__)

# Exceptions that mean the round trip to Vault failed or was rejected
BACKEND_ERRORS = (VaultError, requests.exceptions.RequestException)


def backend_unavailable(operation: str, error: Exception) -> BackendUnavailable:
    """Build the error surfaced to callers when a Vault round trip fails."""
    logger.error(f"Vault {operation} failed: {type(error).__name__}: {error}")
    return BackendUnavailable(f"Vault {operation} failed: {error}")


class VaultSession:
    """
    Authenticated session shared by every operation of a service.

    The hvac client is created and logged in once, on first use. hvac attaches
    the resulting token to every request issued through the client.
    """

    def __init__(self, connection: VaultConnection, client: Optional[hvac.Client] = None):
        """
        Args:
            connection: Resolved connection parameters
            client: Already authenticated client to use instead of creating one
        """
        self._connection = connection
        self._client = client
        self._lock = threading.Lock()

    @property
    def connection(self) -> VaultConnection:
        return self._connection

    @property
    def client(self) -> hvac.Client:
        """Lazy-initialize and authenticate client."""
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = self._login(self._create_client())
        return self._client

    def _create_client(self) -> hvac.Client:
        connection = self._connection
        cert = None
        if connection.client_cert and connection.client_key:
            cert = (connection.client_cert, connection.client_key)
        return hvac.Client(
            url=connection.url,
            token=connection.token,
            cert=cert,
            verify=connection.verify,
            timeout=connection.timeout,
            namespace=connection.namespace,
        )

    def _login(self, client: hvac.Client) -> hvac.Client:
        connection = self._connection
        if connection.auth_type == "approle":
            try:
                client.auth.approle.login(
                    role_id=connection.role_id,
                    secret_id=connection.secret_id,
                    mount_point=connection.auth_mount_point,
                )
            except BACKEND_ERRORS as e:
                raise backend_unavailable("approle login", e) from e
            logger.info(f"Authenticated to Vault at {connection.url} using approle")
        else:
            logger.info(f"Using token authentication for Vault at {connection.url}")
        return client
