"""
Validated, immutable encryption configuration.

Keys are supplied as base64 strings keyed by key id and decoded once at
construction. Rotating keys means building a new configuration
(``with_current_key`` / ``with_keys``), never mutating an existing one, so a
configuration can be shared freely between threads.
"""

from __future__ import annotations

import base64
import binascii
import json
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any

from .ciphers import DEFAULT_CIPHER
from .errors import ConfigurationError, UnknownKeyError
from .formats import DELIMITER

DEFAULT_IDENTITY_ATTRIBUTE = "id"


def _normalize_verify_id(verify_id: Any) -> str | None:
    # Any truthy non-string turns binding on with the default attribute.
    if not verify_id:
        return None
    if isinstance(verify_id, str):
        return verify_id
    return DEFAULT_IDENTITY_ATTRIBUTE


def decode_key(key_id: Any, encoded: Any) -> bytes:
    """Validate a key id and decode its base64 key to raw bytes."""
    if not isinstance(key_id, str) or not key_id:
        raise ConfigurationError(f"Key id must be a non-empty string (got {key_id!r})")
    if DELIMITER in key_id:
        raise ConfigurationError(f"Key id {key_id!r} must not contain {DELIMITER!r}")
    if not isinstance(encoded, str):
        raise ConfigurationError(f"Key {key_id!r} must be a base64 string")
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConfigurationError(f"Key {key_id!r} is not valid base64") from exc
    if len(raw) != DEFAULT_CIPHER.key_size:
        raise ConfigurationError(
            f"Key {key_id!r} must decode to {DEFAULT_CIPHER.key_size} bytes (got {len(raw)})"
        )
    return raw


@dataclass(frozen=True)
class EncryptionConfig:
    """Key map, current key id and identity-binding mode."""

    keys: Mapping[str, str]
    current_key_id: str
    verify_id: str | None = None
    _raw_keys: Mapping[str, bytes] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not isinstance(self.keys, Mapping) or not self.keys:
            raise ConfigurationError("At least one key is required")
        raw = {key_id: decode_key(key_id, encoded) for key_id, encoded in self.keys.items()}
        if self.current_key_id not in raw:
            raise ConfigurationError(
                f"Current key id {self.current_key_id!r} is not in the key map"
            )
        object.__setattr__(self, "keys", MappingProxyType(dict(self.keys)))
        object.__setattr__(self, "verify_id", _normalize_verify_id(self.verify_id))
        object.__setattr__(self, "_raw_keys", MappingProxyType(raw))

    def __hash__(self) -> int:
        return hash((tuple(sorted(self.keys.items())), self.current_key_id, self.verify_id))

    def __repr__(self) -> str:
        return (
            f"EncryptionConfig(key_ids={sorted(self.keys)!r}, "
            f"current_key_id={self.current_key_id!r}, verify_id={self.verify_id!r})"
        )

    @property
    def binds_identity(self) -> bool:
        return self.verify_id is not None

    @property
    def current_key(self) -> bytes:
        return self._raw_keys[self.current_key_id]

    def key_for(self, key_id: str) -> bytes:
        """Raw key material for ``key_id``. Raises UnknownKeyError."""
        try:
            return self._raw_keys[key_id]
        except KeyError:
            raise UnknownKeyError(key_id) from None

    def with_current_key(self, key_id: str) -> EncryptionConfig:
        """New configuration encrypting under ``key_id``."""
        return replace(self, current_key_id=key_id)

    def with_keys(self, keys: Mapping[str, str], current_key_id: str | None = None) -> EncryptionConfig:
        """New configuration with a replaced key map."""
        return replace(self, keys=keys, current_key_id=current_key_id or self.current_key_id)

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> EncryptionConfig:
        """
        Build from a loose options mapping.

        Accepts ``keys`` plus either ``keyId``/``verifyId`` or
        ``current_key_id``/``verify_id``.
        """
        if not isinstance(options, Mapping):
            raise ConfigurationError("Options must be a mapping")
        if "keys" not in options:
            raise ConfigurationError("Options are missing 'keys'")
        current_key_id = options.get("current_key_id", options.get("keyId"))
        if current_key_id is None:
            raise ConfigurationError("Options are missing 'keyId'")
        verify_id = options.get("verify_id", options.get("verifyId"))
        return cls(keys=options["keys"], current_key_id=current_key_id, verify_id=verify_id)

    @classmethod
    def from_json(cls, text: str) -> EncryptionConfig:
        try:
            options = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Key file is not valid JSON: {exc.msg}") from exc
        return cls.from_options(options)

    @classmethod
    def load(cls, path: str | Path) -> EncryptionConfig:
        """Read options from a JSON key file."""
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"Cannot read key file {path}: {exc.strerror}") from exc
        return cls.from_json(text)
