"""
Protocol testers package for network probe agents.

This package contains the base protocol-test framework, the process-wide
registry and the bundled testers (DNS, IMAPS). Importing it registers
every bundled tester.
"""

from .base import (
    ArgumentError, AuthenticationError, ProbeTimeoutError, ProtocolError,
    ProtocolRegistry, ProtocolTest, ResponseError, ResultMismatchError,
    TransportError, UnsupportedProtocolError
)
from .registry import (
    execute_protocol_test, get_protocol_registry, lookup_protocol,
    register_protocol
)
from . import dns, imaps  # noqa: F401  registers the bundled testers

__all__ = [
    'ArgumentError',
    'AuthenticationError',
    'ProbeTimeoutError',
    'ProtocolError',
    'ProtocolRegistry',
    'ProtocolTest',
    'ResponseError',
    'ResultMismatchError',
    'TransportError',
    'UnsupportedProtocolError',
    'execute_protocol_test',
    'get_protocol_registry',
    'lookup_protocol',
    'register_protocol',
]
