"""Tests for EncryptionConfig validation and rotation."""

import base64
import json
import os
import tempfile
from pathlib import Path

import pytest

from attrcrypt.core.config import EncryptionConfig
from attrcrypt.core.errors import ConfigurationError, UnknownKeyError


def _key():
    return base64.b64encode(os.urandom(32)).decode()


class TestConstruction:
    def test_valid_config(self):
        k1 = _key()
        config = EncryptionConfig(keys={"k1": k1}, current_key_id="k1")
        assert config.current_key == base64.b64decode(k1)
        assert config.verify_id is None
        assert not config.binds_identity

    def test_keys_are_copied_and_read_only(self):
        keys = {"k1": _key()}
        config = EncryptionConfig(keys=keys, current_key_id="k1")
        keys["k2"] = _key()
        assert "k2" not in config.keys
        with pytest.raises(TypeError):
            config.keys["k3"] = _key()

    def test_frozen(self):
        config = EncryptionConfig(keys={"k1": _key()}, current_key_id="k1")
        with pytest.raises(AttributeError):
            config.current_key_id = "k2"

    def test_empty_keys_rejected(self):
        with pytest.raises(ConfigurationError, match="At least one key"):
            EncryptionConfig(keys={}, current_key_id="k1")

    def test_missing_current_key_rejected(self):
        with pytest.raises(ConfigurationError, match="not in the key map"):
            EncryptionConfig(keys={"k1": _key()}, current_key_id="k2")

    def test_short_key_rejected(self):
        short = base64.b64encode(os.urandom(16)).decode()
        with pytest.raises(ConfigurationError, match="32 bytes"):
            EncryptionConfig(keys={"k1": short}, current_key_id="k1")

    def test_invalid_base64_rejected(self):
        with pytest.raises(ConfigurationError, match="not valid base64"):
            EncryptionConfig(keys={"k1": "!!not base64!!"}, current_key_id="k1")

    def test_key_id_with_delimiter_rejected(self):
        with pytest.raises(ConfigurationError, match="must not contain"):
            EncryptionConfig(keys={"k$1": _key()}, current_key_id="k$1")

    def test_repr_hides_key_material(self):
        k1 = _key()
        config = EncryptionConfig(keys={"k1": k1}, current_key_id="k1")
        assert k1 not in repr(config)
        assert "k1" in repr(config)

    def test_hashable(self):
        k1 = _key()
        a = EncryptionConfig(keys={"k1": k1}, current_key_id="k1", verify_id=True)
        b = EncryptionConfig(keys={"k1": k1}, current_key_id="k1", verify_id="id")
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1


class TestIdentityBinding:
    @pytest.mark.parametrize("verify_id,expected", [
        (None, None),
        (False, None),
        ("", None),
        (True, "id"),
        (1, "id"),
        ("user_id", "user_id"),
        ("meta.owner", "meta.owner"),
    ])
    def test_verify_id_normalized(self, verify_id, expected):
        config = EncryptionConfig(keys={"k1": _key()}, current_key_id="k1", verify_id=verify_id)
        assert config.verify_id == expected
        assert config.binds_identity is (expected is not None)


class TestRotation:
    def test_with_current_key(self):
        config = EncryptionConfig(keys={"k1": _key(), "k2": _key()}, current_key_id="k1")
        rotated = config.with_current_key("k2")
        assert rotated.current_key_id == "k2"
        assert config.current_key_id == "k1"

    def test_with_current_key_unknown(self):
        config = EncryptionConfig(keys={"k1": _key()}, current_key_id="k1")
        with pytest.raises(ConfigurationError):
            config.with_current_key("k2")

    def test_with_keys(self):
        config = EncryptionConfig(keys={"k1": _key()}, current_key_id="k1", verify_id="id")
        rotated = config.with_keys({"k1": config.keys["k1"], "k2": _key()}, current_key_id="k2")
        assert rotated.current_key_id == "k2"
        assert rotated.verify_id == "id"
        assert set(rotated.keys) == {"k1", "k2"}

    def test_key_for_unknown(self):
        config = EncryptionConfig(keys={"k1": _key()}, current_key_id="k1")
        with pytest.raises(UnknownKeyError) as info:
            config.key_for("gone")
        assert info.value.key_id == "gone"


class TestFromOptions:
    def test_camel_case_options(self):
        config = EncryptionConfig.from_options({"keys": {"k1": _key()}, "keyId": "k1", "verifyId": True})
        assert config.current_key_id == "k1"
        assert config.verify_id == "id"

    def test_snake_case_options(self):
        config = EncryptionConfig.from_options(
            {"keys": {"k1": _key()}, "current_key_id": "k1", "verify_id": "uid"}
        )
        assert config.verify_id == "uid"

    def test_missing_keys(self):
        with pytest.raises(ConfigurationError, match="'keys'"):
            EncryptionConfig.from_options({"keyId": "k1"})

    def test_missing_key_id(self):
        with pytest.raises(ConfigurationError, match="'keyId'"):
            EncryptionConfig.from_options({"keys": {"k1": _key()}})

    def test_not_a_mapping(self):
        with pytest.raises(ConfigurationError):
            EncryptionConfig.from_options(["keys"])


class TestLoad:
    def test_load_from_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "keys.json"
            path.write_text(json.dumps({"keys": {"k1": _key()}, "keyId": "k1"}))
            config = EncryptionConfig.load(path)
            assert config.current_key_id == "k1"

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ConfigurationError, match="Cannot read key file"):
                EncryptionConfig.load(Path(tmpdir) / "nope.json")

    def test_invalid_json(self):
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            EncryptionConfig.from_json("{keys:")
