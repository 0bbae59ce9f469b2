"""Shared pytest fixtures for Staybook tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from helpers import create_jwks, generate_rsa_keypair  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_oidc_jwks_cache():
    """The JWKS cache is module-level; clear it around every test."""
    import staybook.api.auth as auth_module

    auth_module._jwks_cache = None
    auth_module._jwks_cache_time = 0
    yield
    auth_module._jwks_cache = None
    auth_module._jwks_cache_time = 0


@pytest.fixture(scope="session")
def rsa_keypair():
    return generate_rsa_keypair()


@pytest.fixture
def jwks(rsa_keypair):
    _, public_key = rsa_keypair
    return create_jwks(public_key)
