"""Tests for secret domain models."""
import dataclasses

import pytest

from agent_vaulttoolkit.secrets.domains.exceptions import InvalidArgument, MalformedSecretError
from agent_vaulttoolkit.secrets.domains.models import KeyValueBackend, SecretRecord, VersionSelector


class TestSecretRecord:

    def test_payload_has_value_field(self):
        assert SecretRecord("pw").to_payload() == {"value": "pw"}

    def test_record_is_immutable(self):
        record = SecretRecord("pw")

        with pytest.raises(dataclasses.FrozenInstanceError):
            record.value = "other"

    def test_none_value_rejected(self):
        with pytest.raises(InvalidArgument):
            SecretRecord(None)

    def test_from_payload_ignores_extra_fields(self):
        assert SecretRecord.from_payload({"value": "pw", "note": "x"}).value == "pw"

    @pytest.mark.parametrize("payload", [None, {}, {"other": "x"}, {"value": None}, {"value": 1}])
    def test_from_payload_rejects_bad_shapes(self, payload):
        with pytest.raises(MalformedSecretError):
            SecretRecord.from_payload(payload)


class TestVersionSelector:

    def test_latest(self):
        assert VersionSelector.latest().is_latest
        assert VersionSelector.coerce(None) == VersionSelector.latest()

    def test_explicit_version(self):
        selector = VersionSelector.of(3)

        assert not selector.is_latest
        assert selector.version == 3
        assert VersionSelector.coerce(3) == selector
        assert VersionSelector.coerce(selector) is selector

    @pytest.mark.parametrize("version", [0, -2, 1.5, False, "1"])
    def test_invalid_versions_rejected(self, version):
        with pytest.raises(InvalidArgument):
            VersionSelector.of(version)


class TestKeyValueBackend:

    @pytest.mark.parametrize("version,expected", [
        (1, KeyValueBackend.KV_1),
        (2, KeyValueBackend.KV_2),
        ("2", KeyValueBackend.KV_2),
    ])
    def test_from_version(self, version, expected):
        assert KeyValueBackend.from_version(version) is expected

    @pytest.mark.parametrize("version", [3, "kv2", None])
    def test_unknown_version_rejected(self, version):
        with pytest.raises(InvalidArgument):
            KeyValueBackend.from_version(version)
