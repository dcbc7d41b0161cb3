"""Exception types raised by agent-vaulttoolkit."""


class VaultToolkitError(Exception):
    """Base class for all toolkit errors."""
    pass


class InvalidArgument(VaultToolkitError, ValueError):
    """A required argument was missing, empty, or of the wrong type."""
    pass


class ConfigError(VaultToolkitError):
    """Configuration error exception."""
    pass


class UnsupportedBackendConfiguration(ConfigError):
    """The configured Key/Value backend does not support versioned secrets."""
    pass


class BackendUnavailable(VaultToolkitError):
    """Vault could not be reached or answered with an unexpected error."""
    pass


class MalformedSecretError(VaultToolkitError):
    """A secret payload returned by Vault did not have the expected shape."""
    pass


class CipherError(VaultToolkitError):
    """Base class for Transit engine failures reported by Vault."""
    pass


class EncryptionError(CipherError):
    pass


class DecryptionError(CipherError):
    pass
