"""Property-based tests for envelopes using Hypothesis.

Covers the round trip and prefix guarantees for arbitrary text, identities
and key ids, and checks that decode() never crashes on hostile input. It
must either return a value or raise one of the attrcrypt errors.
"""

import base64
import os

from hypothesis import given, settings, strategies as st

from attrcrypt.core.codec import decode, encode
from attrcrypt.core.config import EncryptionConfig
from attrcrypt.core.errors import AttrCryptError
from attrcrypt.core.formats import ENVELOPE_PREFIX, deserialize, is_envelope

KEY = os.urandom(32)
KEYS = {"k1": KEY}

key_ids = st.text(min_size=1, max_size=20).filter(lambda s: "$" not in s)
identities = st.one_of(st.none(), st.text(min_size=1, max_size=40))


class TestEnvelopeProperties:
    @given(st.text(), identities, key_ids)
    @settings(max_examples=200)
    def test_roundtrip(self, plaintext, identity, key_id):
        envelope = encode(plaintext, KEY, key_id, identity)
        assert decode(envelope, {key_id: KEY}, identity) == plaintext

    @given(st.text(), identities, key_ids)
    @settings(max_examples=200)
    def test_fixed_prefix(self, plaintext, identity, key_id):
        envelope = encode(plaintext, KEY, key_id, identity)
        assert envelope[:16] == ENVELOPE_PREFIX
        assert len(envelope.split("$")) == 4

    @given(st.text())
    @settings(max_examples=200)
    def test_idempotent(self, plaintext):
        once = encode(plaintext, KEY, "k1")
        assert encode(once, KEY, "k1") == once

    @given(st.text(min_size=1).filter(lambda s: not s.startswith(ENVELOPE_PREFIX)))
    @settings(max_examples=200)
    def test_plaintext_is_not_envelope(self, text):
        assert not is_envelope(text)
        assert decode(text, KEYS) == text


class TestDecodeFuzz:
    @given(st.text())
    @settings(max_examples=500)
    def test_arbitrary_suffix_never_crashes(self, data: str):
        """Anything starting with the prefix is parsed; failures are typed."""
        try:
            decode(ENVELOPE_PREFIX + data, KEYS)
        except AttrCryptError:
            pass  # Expected for most random inputs

    @given(st.binary(), st.binary(), st.binary(), st.binary())
    @settings(max_examples=300)
    def test_arbitrary_segments_never_crash(self, aad, nonce, ct, tag):
        text = "$".join(
            base64.b64encode(part).decode() for part in (b"aes-256-gcm$" + aad, nonce, ct, tag)
        )
        try:
            decode(text, KEYS)
        except AttrCryptError:
            pass

    @given(st.text())
    @settings(max_examples=300)
    def test_deserialize_raises_only_integrity_errors(self, data: str):
        try:
            deserialize(data)
        except AttrCryptError:
            pass


class TestConfigFuzz:
    @given(st.dictionaries(st.text(max_size=8), st.text(max_size=60), max_size=3), st.text(max_size=8))
    @settings(max_examples=200)
    def test_invalid_keys_raise_configuration_errors(self, keys, key_id):
        try:
            EncryptionConfig(keys=keys, current_key_id=key_id)
        except ValueError:
            pass
