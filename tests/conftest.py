"""Pytest configuration and shared fixtures."""

import pytest

from gamestream.identity import HostIdentity
from tests.pairing.moonlight_client import make_client_credentials


@pytest.fixture(autouse=True)
def reset_logging_state():
    """Reset logging state before each test."""
    from gamestream.logging import reset_logging

    reset_logging()
    yield
    reset_logging()


@pytest.fixture(scope="session")
def host_identity() -> HostIdentity:
    """Host identity shared by the whole run (RSA keygen is slow)."""
    return HostIdentity.generate(common_name="Test Host")


@pytest.fixture(scope="session")
def client_credentials():
    """Client key and certificate shared by the whole run."""
    return make_client_credentials()


@pytest.fixture(scope="session")
def other_client_credentials():
    """A second, unrelated client key and certificate."""
    return make_client_credentials("Other Client")
