"""Input validation for secret operation arguments."""
from typing import Any, Mapping

from .exceptions import InvalidArgument


def require_text(value: Any, message: str) -> str:
    """
    Validate a required string argument is present and not empty.

    Args:
        value: Argument to validate
        message: Error message used when validation fails

    Returns:
        The validated value

    Raises:
        InvalidArgument: If the value is None, not a string, or empty
    """
    if not isinstance(value, str) or not value:
        raise InvalidArgument(message)
    return value


def require_secret_value(value: Any) -> str:
    """
    Validate a secret value is a string.

    Unlike paths and keys, an empty string is an acceptable secret value.
    """
    if not isinstance(value, str):
        raise InvalidArgument("Secret value must be specified")
    return value


def require_string_map(key_values: Any) -> Mapping[str, str]:
    """
    Validate a secret map has only string keys and string values.

    Raises:
        InvalidArgument: If the map is None or holds a non-string entry
    """
    if key_values is None or not isinstance(key_values, Mapping):
        raise InvalidArgument("Key/values map must be specified")

    for key, value in key_values.items():
        if not isinstance(key, str) or not key:
            raise InvalidArgument(f"Secret map keys must be non-empty strings, got {key!r}")
        if not isinstance(value, str):
            raise InvalidArgument(f"Secret map value for '{key}' must be a string")
    return key_values


def require_plaintext(plaintext: Any) -> bytes:
    if not isinstance(plaintext, (bytes, bytearray)):
        raise InvalidArgument("Plaintext must be specified as bytes")
    return bytes(plaintext)
