"""
Global protocol registry instance and utility functions.

This module provides the process-wide registry and convenience functions
for working with protocol testers. Tester modules call
:func:`register_protocol` at import time.
"""

import logging
from typing import Any, Dict, List, Optional

from shared.models.test import Options, Test
from .base import ProtocolFactory, ProtocolRegistry, ProtocolTest

logger = logging.getLogger(__name__)

# Global registry instance
_registry = ProtocolRegistry()


def get_protocol_registry() -> ProtocolRegistry:
    """
    Get the global protocol registry instance.

    Returns:
        The global ProtocolRegistry instance
    """
    return _registry


def register_protocol(name: str, factory: ProtocolFactory) -> None:
    """
    Register a tester factory with the global registry.

    Args:
        name: Protocol name used in test definitions
        factory: Callable returning a new tester
    """
    _registry.register(name, factory)


def lookup_protocol(name: str) -> Optional[ProtocolTest]:
    """Get a new tester for the protocol, or None."""
    return _registry.lookup(name)


def get_protocol_plugin(name: str) -> ProtocolTest:
    """Get a new tester for the protocol, raising if it is unknown."""
    return _registry.get_plugin(name)


def list_supported_protocols() -> List[str]:
    """Get list of all supported protocols."""
    return _registry.list_protocols()


def is_protocol_supported(name: str) -> bool:
    """Check if a protocol is supported."""
    return _registry.is_supported(name)


def get_protocol_info(name: str) -> Dict[str, Any]:
    """Get information about a protocol."""
    return _registry.get_plugin_info(name)


async def execute_protocol_test(test: Test, options: Options) -> None:
    """
    Execute a parsed test against its own target.

    Args:
        test: Parsed test definition
        options: Run-time options

    Raises:
        ProtocolError: If the protocol is unknown or the test fails
    """
    tester = get_protocol_plugin(test.protocol)
    logger.debug("Running %s test against %s", test.protocol, test.target)
    await tester.run_test(test, test.target, options)
