"""Test configuration."""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from shared.models.test import Options, Test


@pytest.fixture
def make_test():
    """Build a Test the way the parser would, from target/protocol/arguments."""
    def _make(target='ns.example.com', protocol='dns', input=None, **arguments):
        line = input or ' '.join(
            [target, 'must', 'run', protocol] +
            [f"with {k} '{v}'" for k, v in arguments.items()]
        )
        return Test(input=line, target=target, protocol=protocol, arguments=arguments)
    return _make


@pytest.fixture
def options():
    """Short timeout options."""
    return Options(timeout=2.0)


@pytest.fixture(autouse=True)
def _clear_overseer_env(monkeypatch):
    """Keep the caller's environment out of configuration tests."""
    for key in list(os.environ):
        if key == 'OVERSEER' or key.startswith('OVERSEER_'):
            monkeypatch.delenv(key)
