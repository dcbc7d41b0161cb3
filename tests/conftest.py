"""Shared fixtures: an in-memory stand-in for the parts of hvac.Client we use."""
import base64
import copy
import threading
from types import SimpleNamespace

import pytest
from hvac.exceptions import InvalidPath, InvalidRequest

from agent_vaulttoolkit.secrets.domains.models import KeyValueBackend, VaultConnection
from agent_vaulttoolkit.secrets.domains.vault_client import VaultSession
from agent_vaulttoolkit.service import VersionedVaultCommunicationService


class FakeKeyValueV2:
    """Versioned Key/Value store keyed by mount point then secret path."""

    def __init__(self):
        self.mounts = {}
        self.write_count = 0
        self._lock = threading.Lock()

    def read_secret_version(self, path, version=None, mount_point="secret", raise_on_deleted_version=True):
        versions = self.mounts.get(mount_point, {}).get(path)
        if not versions:
            raise InvalidPath(f"no secret at {mount_point}/data/{path}")
        if version is None:
            version = len(versions)
        if not 1 <= version <= len(versions):
            raise InvalidPath(f"no version {version} at {mount_point}/data/{path}")
        return {
            "data": {
                "data": copy.deepcopy(versions[version - 1]),
                "metadata": {"version": version},
            }
        }

    def create_or_update_secret(self, path, secret, cas=None, mount_point="secret"):
        with self._lock:
            versions = self.mounts.setdefault(mount_point, {}).setdefault(path, [])
            versions.append(copy.deepcopy(secret))
            self.write_count += 1
            return {"data": {"version": len(versions)}}

    def list_secrets(self, path, mount_point="secret"):
        keys = sorted(self.mounts.get(mount_point, {}))
        if not keys:
            raise InvalidPath(f"nothing under {mount_point}/metadata/{path}")
        return {"data": {"keys": keys}}


class FakeTransit:
    """Transit engine producing ciphertext tied to the key that made it."""

    PREFIX = "vault:v1:"

    def encrypt_data(self, name, plaintext, mount_point="transit"):
        base64.b64decode(plaintext, validate=True)
        token = base64.b64encode(f"{mount_point}/{name}|{plaintext}".encode()).decode()
        return {"data": {"ciphertext": self.PREFIX + token}}

    def decrypt_data(self, name, ciphertext, mount_point="transit"):
        if not ciphertext.startswith(self.PREFIX):
            raise InvalidRequest("invalid ciphertext: no prefix")
        try:
            key, plaintext = base64.b64decode(ciphertext[len(self.PREFIX):]).decode().split("|", 1)
        except ValueError:
            raise InvalidRequest("invalid ciphertext: unable to decode")
        if key != f"{mount_point}/{name}":
            raise InvalidRequest("cipher: message authentication failed")
        return {"data": {"plaintext": plaintext}}


class FakeSys:
    def __init__(self):
        self.health = {"initialized": True, "sealed": False, "version": "1.15.4"}

    def read_health_status(self, method="HEAD"):
        return self.health


class FakeVaultClient:
    def __init__(self):
        self.secrets = SimpleNamespace(kv=SimpleNamespace(v2=FakeKeyValueV2()), transit=FakeTransit())
        self.sys = FakeSys()

    @property
    def kv(self):
        return self.secrets.kv.v2


@pytest.fixture
def connection():
    return VaultConnection(
        url="https://vault.test:8200",
        auth_type="token",
        token="s.test-token",
        kv_backend=KeyValueBackend.KV_2,
        transit_mount="transit",
    )


@pytest.fixture
def fake_client():
    return FakeVaultClient()


@pytest.fixture
def session(connection, fake_client):
    return VaultSession(connection, client=fake_client)


@pytest.fixture
def service(session):
    return VersionedVaultCommunicationService(session=session)
