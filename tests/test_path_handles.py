"""Tests for Key/Value handles and the per mount path handle cache."""
import threading
from concurrent.futures import ThreadPoolExecutor
from unittest import mock

import pytest
from hvac.exceptions import InvalidPath, VaultDown

from agent_vaulttoolkit.secrets.domains.exceptions import BackendUnavailable
from agent_vaulttoolkit.secrets.domains.path_handles import PathHandleCache, VersionedKeyValueHandle


class TestPathHandleCache:

    def test_returns_same_handle_for_same_path(self, session):
        cache = PathHandleCache(lambda path: VersionedKeyValueHandle(session, path))

        first = cache.get_or_create("secret")
        second = cache.get_or_create("secret")

        assert first is second
        assert first.mount_path == "secret"
        assert len(cache) == 1

    def test_distinct_paths_get_distinct_handles(self, session):
        cache = PathHandleCache(lambda path: VersionedKeyValueHandle(session, path))

        assert cache.get_or_create("secret") is not cache.get_or_create("apps")
        assert "secret" in cache
        assert "apps" in cache
        assert len(cache) == 2

    def test_concurrent_first_access_builds_one_handle(self, session):
        callers = 16
        constructed = []
        barrier = threading.Barrier(callers)

        def factory(path):
            constructed.append(path)
            return VersionedKeyValueHandle(session, path)

        cache = PathHandleCache(factory)

        def access():
            barrier.wait()
            return cache.get_or_create("shared")

        with ThreadPoolExecutor(max_workers=callers) as pool:
            handles = list(pool.map(lambda _: access(), range(callers)))

        assert constructed == ["shared"]
        assert len(handles) == callers
        assert all(handle is handles[0] for handle in handles)

    def test_creating_handle_makes_no_backend_call(self):
        session = mock.Mock()
        cache = PathHandleCache(lambda path: VersionedKeyValueHandle(session, path))

        cache.get_or_create("secret")

        assert session.mock_calls == []


class TestVersionedKeyValueHandle:

    @pytest.fixture
    def client(self):
        return mock.Mock()

    @pytest.fixture
    def handle(self, client):
        return VersionedKeyValueHandle(mock.Mock(client=client), "kv")

    def test_get_passes_version_and_mount(self, handle, client):
        client.secrets.kv.v2.read_secret_version.return_value = {"data": {"data": {"value": "x"}}}

        assert handle.get("app/key", 3) == {"value": "x"}
        client.secrets.kv.v2.read_secret_version.assert_called_once_with(
            path="app/key", version=3, mount_point="kv", raise_on_deleted_version=True,
        )

    def test_get_missing_returns_none(self, handle, client):
        client.secrets.kv.v2.read_secret_version.side_effect = InvalidPath("not found")

        assert handle.get("app/key") is None

    def test_get_vault_down_raises_backend_unavailable(self, handle, client):
        client.secrets.kv.v2.read_secret_version.side_effect = VaultDown("sealed")

        with pytest.raises(BackendUnavailable):
            handle.get("app/key")

    def test_put_writes_full_payload(self, handle, client):
        handle.put("app/key", {"a": "1"})

        client.secrets.kv.v2.create_or_update_secret.assert_called_once_with(
            path="app/key", secret={"a": "1"}, mount_point="kv",
        )

    def test_list_reads_root_of_mount(self, handle, client):
        client.secrets.kv.v2.list_secrets.return_value = {"data": {"keys": ["a", "b/"]}}

        assert handle.list() == ["a", "b/"]
        client.secrets.kv.v2.list_secrets.assert_called_once_with(path="", mount_point="kv")

    def test_list_missing_returns_empty(self, handle, client):
        client.secrets.kv.v2.list_secrets.side_effect = InvalidPath("not found")

        assert handle.list() == []
