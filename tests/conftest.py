"""Pytest fixtures for atticd tests."""

import base64

import pytest

SECRET = b"0123456789abcdef0123456789abcdef"
SECRET_B64 = base64.b64encode(SECRET).decode("ascii")

LOCAL_CONFIG = f"""
token-hs256-secret-base64 = "{SECRET_B64}"

[database]
url = "sqlite:///var/lib/atticd/server.db?mode=rwc"

[storage]
type = "local"
path = "/var/lib/atticd/storage"
"""


def make_env(**values):
    """Build an injectable environment lookup from keyword arguments."""
    return values.get


@pytest.fixture
def empty_env():
    """Environment lookup with nothing set."""
    return make_env()


@pytest.fixture
def secret_env():
    """Environment lookup carrying only the HS256 secret."""
    return make_env(ATTIC_SERVER_TOKEN_HS256_SECRET_BASE64=SECRET_B64)


@pytest.fixture
def local_config_text():
    """Minimal valid config using local storage and an inline secret."""
    return LOCAL_CONFIG
