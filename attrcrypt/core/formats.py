"""
Text envelope format for encrypted attributes.

An envelope is four standard-base64 segments joined by ``$``::

    b64(aad) $ b64(nonce) $ b64(ciphertext) $ b64(tag) without padding

The associated data decodes to ``"aes-256-gcm$<identity>$<key_id>"`` where
``identity`` is empty when identity binding is off. It carries everything
needed to pick the key on decryption and is authenticated by the tag.

``"aes-256-gcm$"`` is 12 bytes, a multiple of the 3-byte base64 group, so
its encoding is a fixed 16-character prefix of every envelope regardless of
identity or key id. ``is_envelope`` relies on that.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, NamedTuple

from .ciphers import DEFAULT_CIPHER
from .errors import ConfigurationError, IntegrityError

DELIMITER = "$"

ALG_TAG = DEFAULT_CIPHER.alg_tag
_ALG_HEADER = f"{ALG_TAG}{DELIMITER}".encode("utf-8")
if len(_ALG_HEADER) % 3:
    raise RuntimeError("algorithm header must be a whole number of base64 groups")

ENVELOPE_PREFIX = base64.b64encode(_ALG_HEADER).decode("ascii")  # "YWVzLTI1Ni1nY20k"

SEGMENT_COUNT = 4

# A 16-byte tag encodes to 24 characters ending in exactly "==". Only that
# padding is stripped. Re-derive this if the tag size changes.
TAG_PADDING = "=="
TAG_B64_LENGTH = 22


class Envelope(NamedTuple):
    """Decoded envelope segments."""
    aad: bytes
    nonce: bytes
    ciphertext: bytes
    tag: bytes


def is_envelope(value: Any) -> bool:
    """True if ``value`` is a string carrying the envelope prefix."""
    return isinstance(value, str) and value.startswith(ENVELOPE_PREFIX)


def build_aad(identity: str | None, key_id: str) -> bytes:
    """Associated data binding the algorithm, record identity and key id."""
    if DELIMITER in key_id:
        raise ConfigurationError(f"Key id {key_id!r} must not contain {DELIMITER!r}")
    return _ALG_HEADER + f"{identity or ''}{DELIMITER}{key_id}".encode("utf-8")


def parse_aad(aad: bytes) -> tuple[str, str]:
    """Split associated data into ``(identity, key_id)``.

    The key id is taken after the last delimiter, so identities that contain
    ``$`` survive the round trip.
    """
    if not aad.startswith(_ALG_HEADER):
        raise IntegrityError(f"Envelope is not {ALG_TAG}")
    try:
        rest = aad[len(_ALG_HEADER):].decode("utf-8")
    except UnicodeDecodeError as exc:
        raise IntegrityError("Envelope associated data is not UTF-8") from exc
    identity, sep, key_id = rest.rpartition(DELIMITER)
    if not sep:
        raise IntegrityError("Envelope associated data has no key id")
    return identity, key_id


def _b64decode(segment: str, what: str) -> bytes:
    try:
        raw = base64.b64decode(segment, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise IntegrityError(f"Invalid base64 in envelope {what}") from exc
    # Unused trailing bits must be zero, otherwise two texts decode alike.
    if base64.b64encode(raw).decode("ascii") != segment:
        raise IntegrityError(f"Non-canonical base64 in envelope {what}")
    return raw


def serialize(envelope: Envelope) -> str:
    """Encode envelope segments to the ``$``-joined text form."""
    tag = base64.b64encode(envelope.tag).decode("ascii")
    if tag.endswith(TAG_PADDING):
        tag = tag[:-len(TAG_PADDING)]
    return DELIMITER.join((
        base64.b64encode(envelope.aad).decode("ascii"),
        base64.b64encode(envelope.nonce).decode("ascii"),
        base64.b64encode(envelope.ciphertext).decode("ascii"),
        tag,
    ))


def deserialize(text: str) -> Envelope:
    """
    Parse envelope text into its segments.

    Raises IntegrityError on a wrong segment count or invalid base64.
    Segment lengths are checked by the cipher.
    """
    parts = text.split(DELIMITER)
    if len(parts) != SEGMENT_COUNT:
        raise IntegrityError(
            f"Envelope must have {SEGMENT_COUNT} segments (got {len(parts)})"
        )
    aad_b64, nonce_b64, ct_b64, tag_b64 = parts
    if len(tag_b64) == TAG_B64_LENGTH:
        tag_b64 += TAG_PADDING
    return Envelope(
        aad=_b64decode(aad_b64, "associated data"),
        nonce=_b64decode(nonce_b64, "nonce"),
        ciphertext=_b64decode(ct_b64, "ciphertext"),
        tag=_b64decode(tag_b64, "tag"),
    )
