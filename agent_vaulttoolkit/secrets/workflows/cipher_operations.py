"""Workflow for Transit engine encryption and decryption."""
import base64
import binascii
import logging

from hvac.exceptions import InvalidPath, InvalidRequest

from ..domains.exceptions import DecryptionError, EncryptionError
from ..domains.validators import require_plaintext, require_text
from ..domains.vault_client import BACKEND_ERRORS, VaultSession, backend_unavailable

logger = logging.getLogger(__name__)

# Transit rejections caused by the key or the input rather than the server
CIPHER_REJECTIONS = (InvalidRequest, InvalidPath)

TRANSIT_PATH_REQUIRED = "Transit key must be specified"


def encrypt(session: VaultSession, transit_path: str, plaintext: bytes) -> str:
    """
    Encrypt plaintext with the named Transit key.

    Args:
        session: Authenticated Vault session
        transit_path: Name of the Transit key
        plaintext: Raw bytes to encrypt

    Returns:
        The ciphertext exactly as Vault returns it (e.g. "vault:v1:...")

    Raises:
        EncryptionError: If Vault rejects the request
        BackendUnavailable: If Vault can't be reached
    """
    require_text(transit_path, TRANSIT_PATH_REQUIRED)
    data = require_plaintext(plaintext)
    mount = session.connection.transit_mount

    logger.debug(f"Encrypting with {mount}/encrypt/{transit_path}")
    try:
        response = session.client.secrets.transit.encrypt_data(
            name=transit_path,
            plaintext=base64.b64encode(data).decode("ascii"),
            mount_point=mount,
        )
    except CIPHER_REJECTIONS as e:
        logger.error(f"Encryption with Transit key '{transit_path}' rejected: {e}")
        raise EncryptionError(f"Encryption with Transit key '{transit_path}' failed: {e}") from e
    except BACKEND_ERRORS as e:
        raise backend_unavailable(f"encrypt with {mount}/{transit_path}", e) from e

    return response["data"]["ciphertext"]


def decrypt(session: VaultSession, transit_path: str, ciphertext: str) -> bytes:
    """
    Decrypt ciphertext produced by the named Transit key.

    Raises:
        DecryptionError: If the ciphertext is malformed or was not produced by the key
        BackendUnavailable: If Vault can't be reached
    """
    require_text(transit_path, TRANSIT_PATH_REQUIRED)
    require_text(ciphertext, "Ciphertext must be specified")
    mount = session.connection.transit_mount

    logger.debug(f"Decrypting with {mount}/decrypt/{transit_path}")
    try:
        response = session.client.secrets.transit.decrypt_data(
            name=transit_path,
            ciphertext=ciphertext,
            mount_point=mount,
        )
    except CIPHER_REJECTIONS as e:
        logger.error(f"Decryption with Transit key '{transit_path}' rejected: {e}")
        raise DecryptionError(f"Decryption with Transit key '{transit_path}' failed: {e}") from e
    except BACKEND_ERRORS as e:
        raise backend_unavailable(f"decrypt with {mount}/{transit_path}", e) from e

    try:
        return base64.b64decode(response["data"]["plaintext"], validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionError(f"Vault returned plaintext that is not valid base64: {e}") from e
