"""Tests for HS256 secret resolution."""

import base64

import pytest

from atticd.access import (
    ENV_TOKEN_HS256_SECRET_BASE64,
    HS256Key,
    decode_token_hs256_secret_base64,
    encode_token_hs256_secret_base64,
    resolve_secret,
)
from atticd.errors import InvalidSecretEncoding, MissingSecret

from conftest import SECRET, SECRET_B64, make_env


class TestDecode:
    """Tests for decode_token_hs256_secret_base64."""

    def test_valid(self):
        key = decode_token_hs256_secret_base64(SECRET_B64)
        assert key == HS256Key(SECRET)

    def test_surrounding_whitespace_ignored(self):
        key = decode_token_hs256_secret_base64(f"  {SECRET_B64}\n")
        assert key == HS256Key(SECRET)

    @pytest.mark.parametrize("value", ["not base64!", "abc", "éé==", ""])
    def test_invalid(self, value):
        with pytest.raises(InvalidSecretEncoding):
            decode_token_hs256_secret_base64(value)

    def test_encode_round_trip(self):
        key = decode_token_hs256_secret_base64(SECRET_B64)
        assert encode_token_hs256_secret_base64(key) == SECRET_B64


class TestResolveSecret:
    """Tests for inline/env secret resolution."""

    def test_inline(self):
        assert resolve_secret(SECRET_B64, env=make_env()) == HS256Key(SECRET)

    def test_env(self):
        env = make_env(**{ENV_TOKEN_HS256_SECRET_BASE64: SECRET_B64})
        assert resolve_secret(None, env=env) == HS256Key(SECRET)

    def test_inline_and_env_give_same_key(self):
        env = make_env(**{ENV_TOKEN_HS256_SECRET_BASE64: SECRET_B64})
        assert resolve_secret(SECRET_B64, env=make_env()) == resolve_secret(None, env=env)

    def test_inline_takes_precedence(self):
        other = base64.b64encode(b"another secret").decode()
        env = make_env(**{ENV_TOKEN_HS256_SECRET_BASE64: other})
        assert resolve_secret(SECRET_B64, env=env) == HS256Key(SECRET)

    def test_missing(self):
        with pytest.raises(MissingSecret) as exc_info:
            resolve_secret(None, env=make_env())
        assert ENV_TOKEN_HS256_SECRET_BASE64 in str(exc_info.value)

    def test_invalid_inline(self):
        with pytest.raises(InvalidSecretEncoding):
            resolve_secret("***", env=make_env())

    def test_invalid_env(self):
        env = make_env(**{ENV_TOKEN_HS256_SECRET_BASE64: "***"})
        with pytest.raises(InvalidSecretEncoding):
            resolve_secret(None, env=env)

    def test_reads_process_environment_by_default(self, monkeypatch):
        monkeypatch.setenv(ENV_TOKEN_HS256_SECRET_BASE64, SECRET_B64)
        assert resolve_secret() == HS256Key(SECRET)


class TestHS256Key:
    """The key only signs and verifies."""

    def test_sign_and_verify(self):
        key = HS256Key(SECRET)
        signature = key.sign(b"payload")

        assert len(signature) == 32
        assert key.verify(b"payload", signature)
        assert not key.verify(b"tampered", signature)

    def test_different_keys_differ(self):
        assert HS256Key(SECRET) != HS256Key(b"other")

    def test_repr_redacted(self):
        key = HS256Key(SECRET)
        assert SECRET.decode() not in repr(key)
        assert "redacted" in repr(key)

    def test_unhashable(self):
        with pytest.raises(TypeError):
            hash(HS256Key(SECRET))

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            HS256Key(b"")
