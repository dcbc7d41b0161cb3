"""Domain models for versioned secret management."""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Union

from .exceptions import InvalidArgument, MalformedSecretError


class KeyValueBackend(Enum):
    """Vault Key/Value secrets engine versions."""
    KV_1 = 1
    KV_2 = 2

    @classmethod
    def from_version(cls, version: Any) -> "KeyValueBackend":
        try:
            return cls(int(version))
        except (TypeError, ValueError):
            raise InvalidArgument(f"Unknown Key/Value backend version: {version!r}")


@dataclass(frozen=True)
class SecretRecord:
    """A secret holding a single scalar stored under the "value" field."""
    value: str

    def __post_init__(self):
        if not isinstance(self.value, str):
            raise InvalidArgument("Secret value must be specified")

    def to_payload(self) -> dict:
        return {"value": self.value}

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "SecretRecord":
        """
        Build a record from the data section of a Key/Value response.

        Raises:
            MalformedSecretError: If the payload has no string "value" field
        """
        if not isinstance(payload, Mapping) or "value" not in payload:
            raise MalformedSecretError("Secret payload is missing the 'value' field")
        value = payload["value"]
        if not isinstance(value, str):
            raise MalformedSecretError(
                f"Secret 'value' field must be a string, got {type(value).__name__}"
            )
        return cls(value)


@dataclass(frozen=True)
class VersionSelector:
    """Selects either the latest version of a secret or an explicit one."""
    version: Optional[int] = None

    def __post_init__(self):
        if self.version is None:
            return
        if isinstance(self.version, bool) or not isinstance(self.version, int):
            raise InvalidArgument(f"Secret version must be an integer, got {self.version!r}")
        if self.version < 1:
            raise InvalidArgument(f"Secret version must be positive, got {self.version}")

    @classmethod
    def latest(cls) -> "VersionSelector":
        return cls(None)

    @classmethod
    def of(cls, version: int) -> "VersionSelector":
        return cls(version)

    @classmethod
    def coerce(cls, selector: Union["VersionSelector", int, None]) -> "VersionSelector":
        """Accept a selector, a version number, or None for latest."""
        if isinstance(selector, VersionSelector):
            return selector
        return cls(selector)

    @property
    def is_latest(self) -> bool:
        return self.version is None


@dataclass(frozen=True)
class VaultConnection:
    """Resolved connection parameters for a Vault server."""
    url: str
    auth_type: str
    token: Optional[str] = None
    role_id: Optional[str] = None
    secret_id: Optional[str] = None
    auth_mount_point: str = "approle"
    namespace: Optional[str] = None
    verify: Union[bool, str] = True
    client_cert: Optional[str] = None
    client_key: Optional[str] = None
    timeout: int = 30
    kv_backend: KeyValueBackend = KeyValueBackend.KV_2
    transit_mount: str = "transit"

    def __repr__(self) -> str:
        # Credentials are left out so connections can be logged safely
        return (
            f"VaultConnection(url={self.url!r}, auth_type={self.auth_type!r}, "
            f"namespace={self.namespace!r}, kv_backend={self.kv_backend.name}, "
            f"transit_mount={self.transit_mount!r})"
        )
