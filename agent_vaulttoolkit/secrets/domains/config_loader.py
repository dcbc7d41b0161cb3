"""Configuration loader for agent-vaulttoolkit."""
import os
import logging
from pathlib import Path
from typing import Dict, Any, Optional
import yaml

from .exceptions import ConfigError, InvalidArgument, UnsupportedBackendConfiguration
from .models import KeyValueBackend, VaultConnection

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "VAULT_TOOLKIT_CONFIG"
SUPPORTED_AUTH_TYPES = ("token", "approle")
DEFAULT_TIMEOUT = 30


def default_config_path() -> Path:
    return Path.home() / ".config" / "agent-vaulttoolkit" / "config.yml"


def _get_config_path(config_path: Optional[str] = None) -> str:
    """
    Get config file path.

    Priority order:
    1. Explicit path argument
    2. VAULT_TOOLKIT_CONFIG environment variable
    3. Default location: ~/.config/agent-vaulttoolkit/config.yml

    Returns:
        Absolute path to config file

    Raises:
        FileNotFoundError: If config file doesn't exist in any location
    """
    # 1. Explicit argument
    if config_path:
        explicit = Path(config_path)
        if explicit.exists():
            logger.info(f"Using config from argument: {explicit}")
            return str(explicit)
        raise FileNotFoundError(f"Configuration file not found: {explicit}")

    # 2. Environment variable
    env_path = os.getenv(CONFIG_PATH_ENV)
    if env_path:
        env_config = Path(env_path)
        if env_config.exists():
            logger.info(f"Using config from {CONFIG_PATH_ENV}: {env_config}")
            return str(env_config)
        else:
            logger.warning(f"Config path from {CONFIG_PATH_ENV} doesn't exist: {env_config}")

    # 3. Default location
    default_config = default_config_path()
    if default_config.exists():
        logger.info(f"Using default config location: {default_config}")
        return str(default_config)

    raise FileNotFoundError(
        "Configuration file not found. Please set up your config file using one of these methods:\n\n"
        "1. Use the default location:\n"
        f"   mkdir -p {default_config.parent}\n"
        f"   cp /path/to/your/config.yml {default_config}\n\n"
        "2. Point to an existing config file:\n"
        f"   export {CONFIG_PATH_ENV}=/path/to/your/config.yml\n"
    )


def _require_file(path: str, label: str) -> None:
    if not os.path.exists(path):
        raise ConfigError(f"{label} not found at: {path}")
    if not os.path.isfile(path):
        raise ConfigError(f"{label} is not a file: {path}")


def _section(config: Dict[str, Any], name: str, source: str) -> Dict[str, Any]:
    """Return an optional section, treating a missing or null one as empty."""
    section = config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' section in config at {source} must be a mapping")
    return section


def validate_config(
    config: Any,
    source: str = "<mapping>",
    required_backend: Optional[KeyValueBackend] = None,
) -> Dict[str, Any]:
    """
    Validate a configuration mapping.

    Args:
        config: Parsed configuration
        source: Where the configuration came from, used in error messages
        required_backend: Key/Value backend the caller needs, checked before
            any credential or certificate file

    Returns:
        The validated configuration

    Raises:
        UnsupportedBackendConfiguration: If kv.version is not required_backend
        ConfigError: If a required section or key is missing or invalid
    """
    if not config:
        raise ConfigError(f"Config at {source} is empty")

    if not isinstance(config, dict):
        raise ConfigError(f"Config at {source} must be a mapping")

    for name in ('vault', 'ssl', 'kv', 'transit'):
        _section(config, name, source)

    # Checked before credentials and certificate files
    backend = resolve_backend(config, source)
    if required_backend is not None and backend is not required_backend:
        raise UnsupportedBackendConfiguration(
            f"Must be a kv{required_backend.value} backend to support versioned secrets, "
            f"configured: {backend.name}"
        )

    vault = _section(config, 'vault', source)
    timeout = vault.get('timeout', DEFAULT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
        raise ConfigError(f"'vault.timeout' must be a positive number of seconds, got {timeout!r}")

    transit_mount = _section(config, 'transit', source).get('mount', 'transit')
    if not isinstance(transit_mount, str) or not transit_mount:
        raise ConfigError(f"'transit.mount' must be a non-empty string, got {transit_mount!r}")

    if not (vault.get('uri') or os.getenv("VAULT_ADDR")):
        raise ConfigError(
            f"Missing 'vault.uri' in config at {source}\n"
            f"Required format:\n"
            f"vault:\n"
            f"  uri: https://vault.example.com:8200"
        )

    if 'authentication' not in config:
        raise ConfigError(
            f"Missing 'authentication' section in config at {source}\n"
            f"Required format:\n"
            f"authentication:\n"
            f"  type: token\n"
            f"  token_path: /path/to/token-file"
        )

    auth = config['authentication']

    if not isinstance(auth, dict) or 'type' not in auth:
        raise ConfigError("Missing 'authentication.type' in config")

    if auth['type'] not in SUPPORTED_AUTH_TYPES:
        raise ConfigError(
            f"Unsupported authentication type: {auth['type']}\n"
            f"Supported types: {', '.join(SUPPORTED_AUTH_TYPES)}"
        )

    if auth['type'] == 'token':
        if not (auth.get('token') or auth.get('token_path') or os.getenv("VAULT_TOKEN")):
            raise ConfigError(
                "Missing 'authentication.token' or 'authentication.token_path' in config\n"
                "Please specify the token or the absolute path to a file containing it."
            )
        if auth.get('token_path'):
            _require_file(auth['token_path'], "Token file")

    if auth['type'] == 'approle':
        for key in ('role_id', 'secret_id'):
            if not auth.get(key):
                raise ConfigError(f"Missing 'authentication.{key}' in config")

    ssl = _section(config, 'ssl', source)
    if ssl.get('ca_cert'):
        _require_file(ssl['ca_cert'], "CA certificate")
    if bool(ssl.get('client_cert')) != bool(ssl.get('client_key')):
        raise ConfigError("'ssl.client_cert' and 'ssl.client_key' must be set together")
    for key in ('client_cert', 'client_key'):
        if ssl.get(key):
            _require_file(ssl[key], f"Client {key.split('_')[1]}")

    return config


def load_config(
    config_path: Optional[str] = None,
    required_backend: Optional[KeyValueBackend] = None,
) -> Dict[str, Any]:
    """
    Load and validate configuration from YAML file.

    Args:
        config_path: Explicit config file path
        required_backend: Key/Value backend the caller needs (see validate_config)

    Returns:
        Dict containing configuration with keys:
        - vault: dict with uri and optional namespace and timeout
        - authentication: dict with type and credential material
        - ssl, kv, transit: optional sections

    Raises:
        UnsupportedBackendConfiguration: If kv.version is not required_backend
        ConfigError: If config file is invalid or a referenced file doesn't exist
        FileNotFoundError: If no config file can be located
    """
    # Resolved on every call so changes to the environment take effect immediately
    config_path = _get_config_path(config_path)

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    validate_config(config, config_path, required_backend)

    logger.info(f"Configuration loaded successfully from {config_path}")
    logger.debug(f"Using Vault at: {os.getenv('VAULT_ADDR') or config['vault']['uri']}")

    return config


def _read_token(auth: Dict[str, Any]) -> Optional[str]:
    # VAULT_TOKEN overrides whatever the file says
    env_token = os.getenv("VAULT_TOKEN")
    if env_token:
        logger.debug("Using VAULT_TOKEN from environment")
        return env_token
    if auth.get('token'):
        return str(auth['token'])
    token_path = auth.get('token_path')
    if token_path:
        try:
            with open(token_path, 'r') as f:
                return f.read().strip()
        except OSError as e:
            raise ConfigError(f"Failed to read token file at {token_path}: {e}")
    return None


def resolve_backend(config: Dict[str, Any], source: str = "<mapping>") -> KeyValueBackend:
    """Return the Key/Value backend version named in the configuration."""
    kv = _section(config, 'kv', source)
    try:
        return KeyValueBackend.from_version(kv.get('version', KeyValueBackend.KV_2.value))
    except InvalidArgument as e:
        raise ConfigError(f"Invalid 'kv.version' in config at {source}: {e}")


def connection_from_config(config: Dict[str, Any]) -> VaultConnection:
    """
    Resolve a validated configuration into connection parameters.

    VAULT_ADDR overrides vault.uri and VAULT_TOKEN overrides a token credential.
    """
    vault = _section(config, "vault", "<mapping>")
    auth = config["authentication"]
    ssl = _section(config, "ssl", "<mapping>")
    transit = _section(config, "transit", "<mapping>")

    url = os.getenv("VAULT_ADDR") or vault['uri']

    verify = ssl.get('verify', True)
    if verify and ssl.get('ca_cert'):
        verify = ssl['ca_cert']

    connection = VaultConnection(
        url=url,
        auth_type=auth['type'],
        token=_read_token(auth) if auth['type'] == 'token' else None,
        role_id=auth.get('role_id'),
        secret_id=auth.get('secret_id'),
        auth_mount_point=auth.get('mount_point', 'approle'),
        namespace=vault.get('namespace'),
        verify=verify,
        client_cert=ssl.get('client_cert'),
        client_key=ssl.get('client_key'),
        timeout=vault.get("timeout", DEFAULT_TIMEOUT),
        kv_backend=resolve_backend(config),
        transit_mount=transit.get('mount', 'transit'),
    )
    logger.debug(f"Resolved connection: {connection!r}")
    return connection
