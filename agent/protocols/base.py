"""
Base protocol-test framework for network probe agents.

This module defines the abstract base class every protocol tester must
implement, the error hierarchy raised by testers, and the registry that
maps protocol names to tester factories.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from shared.models.test import Options, Test

logger = logging.getLogger(__name__)


def format_address(target: str, port: int) -> str:
    """
    Build a ``host:port`` connection address.

    A target containing ``:`` is taken to be an IPv6 literal and bracketed;
    anything else is used as-is. Zone ids are not special-cased.
    """
    if ':' in target:
        return f"[{target}]:{port}"
    return f"{target}:{port}"


def split_address(address: str) -> tuple:
    """Split an address built by :func:`format_address` into (host, port)."""
    host, _, port = address.rpartition(':')
    if host.startswith('[') and host.endswith(']'):
        host = host[1:-1]
    return host, int(port)


class ProtocolError(Exception):
    """Exception raised by protocol testers."""

    def __init__(self, message: str, protocol: str = None, target: str = None):
        super().__init__(message)
        self.protocol = protocol
        self.target = target


class ArgumentError(ProtocolError):
    """A required argument is missing or invalid; raised before any network I/O."""


class TransportError(ProtocolError):
    """Dial, connection or socket failure."""


class ProbeTimeoutError(TransportError):
    """A network operation exceeded the caller-supplied timeout."""


class ResponseError(ProtocolError):
    """The remote service answered, but not in the way the protocol requires."""


class AuthenticationError(ResponseError):
    """Login was rejected by the remote service."""


class ResultMismatchError(ProtocolError):
    """The interaction succeeded but the outcome differs from the expectation."""

    def __init__(self, message: str, expected: str, actual: str,
                 protocol: str = None, target: str = None):
        super().__init__(message, protocol=protocol, target=target)
        self.expected = expected
        self.actual = actual


class UnsupportedProtocolError(ProtocolError):
    """No tester is registered under the requested protocol name."""


class ProtocolTest(ABC):
    """
    Abstract base class for all protocol testers.

    Argument values handed to :meth:`run_test` have already been validated
    against the patterns returned by :meth:`arguments`, so implementations
    deal only with protocol mechanics.
    """

    #: Registered protocol name, set by subclasses.
    protocol_name: str = ''

    @property
    def name(self) -> str:
        """Get the tester name."""
        return self.protocol_name or self.__class__.__name__.lower().replace('test', '')

    @property
    def supported_parameters(self) -> set:
        """Get the set of argument names this tester accepts."""
        return set(self.arguments())

    @abstractmethod
    def arguments(self) -> Dict[str, str]:
        """
        Describe the arguments this tester understands.

        Returns:
            Dictionary mapping argument names to validation regular expressions
        """

    def should_resolve_hostname(self) -> bool:
        """Whether the caller should resolve the target before calling run_test."""
        return True

    @abstractmethod
    def example(self) -> str:
        """Return sample usage text for self-documentation purposes."""

    @abstractmethod
    async def run_test(self, test: Test, target: str, options: Options) -> None:
        """
        Execute the test against the given target.

        Args:
            test: The parsed test definition
            target: Address (or unresolved name) to connect to
            options: Run-time options such as the timeout

        Raises:
            ProtocolError: If the interaction fails or the outcome does not
                match the expectation
        """


ProtocolFactory = Callable[[], ProtocolTest]


class ProtocolRegistry:
    """
    Registry for protocol testers.

    Maps protocol names to zero-argument factories. A fresh tester is built
    on every lookup so no instance is ever shared between invocations.
    """

    def __init__(self):
        self._factories: Dict[str, ProtocolFactory] = {}
        self._lock = threading.Lock()

    def register(self, name: str, factory: ProtocolFactory) -> None:
        """
        Register a tester factory under a protocol name.

        Registering the same name twice replaces the earlier factory.
        """
        with self._lock:
            self._factories[name] = factory
        logger.debug("Registered protocol tester: %s", name)

    def lookup(self, name: str) -> Optional[ProtocolTest]:
        """
        Build a new tester for the named protocol.

        Returns:
            Tester instance, or None if the protocol is not registered
        """
        with self._lock:
            factory = self._factories.get(name)
        if factory is None:
            return None
        return factory()

    def get_plugin(self, name: str) -> ProtocolTest:
        """
        Like :meth:`lookup`, but raise for unknown protocols.

        Raises:
            UnsupportedProtocolError: If protocol is not supported
        """
        tester = self.lookup(name)
        if tester is None:
            raise UnsupportedProtocolError(f"Unsupported protocol: {name}", protocol=name)
        return tester

    def list_protocols(self) -> List[str]:
        """Get sorted list of registered protocol names."""
        with self._lock:
            return sorted(self._factories)

    def is_supported(self, name: str) -> bool:
        """Check if a protocol is supported."""
        with self._lock:
            return name in self._factories

    def get_plugin_info(self, name: str) -> Dict[str, Any]:
        """
        Get information about a protocol tester.

        Raises:
            UnsupportedProtocolError: If protocol is not supported
        """
        tester = self.get_plugin(name)
        return {
            'name': name,
            'arguments': tester.arguments(),
            'should_resolve_hostname': tester.should_resolve_hostname(),
            'example': tester.example(),
        }
