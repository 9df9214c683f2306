"""
IMAPS protocol tester for network probe agents.

Connects to a remote host over TLS and ensures that this succeeds. If a
username and password are supplied a login is made, and the test fails if
the login fails. Invoked via input like so::

    host.example.com must run imaps [with username 'steve@steve' with password 'secret']

The certificate is validated as part of the test; add ``with tls insecure``
to disable that.
"""

import asyncio
import imaplib
import logging
import socket
import ssl
from functools import partial
from typing import Dict, Optional

from shared.models.test import Options, Test
from .base import (
    ArgumentError, AuthenticationError, ProtocolTest, ProbeTimeoutError,
    ResponseError, TransportError, format_address, split_address
)
from .registry import register_protocol

logger = logging.getLogger(__name__)

IMAPS_PORT = 993


class _IMAP4_SSL(imaplib.IMAP4_SSL):
    """IMAP4_SSL that verifies against a name other than the connect host."""

    def __init__(self, host: str, port: int, server_hostname: Optional[str],
                 ssl_context: ssl.SSLContext, timeout: float):
        self.server_hostname = server_hostname
        super().__init__(host, port, ssl_context=ssl_context, timeout=timeout)

    def _create_socket(self, timeout):
        sock = imaplib.IMAP4._create_socket(self, timeout)
        return self.ssl_context.wrap_socket(sock, server_hostname=self.server_hostname)


def create_tls_context(server_name: str, insecure: bool) -> tuple:
    """
    Build the TLS context and verification name for a connection.

    Returns:
        Tuple of (ssl context, server hostname or None when insecure)
    """
    context = ssl.create_default_context()
    if insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context, None
    return context, server_name


class IMAPSTest(ProtocolTest):
    """IMAP over TLS protocol tester."""

    protocol_name = 'imaps'

    def arguments(self) -> Dict[str, str]:
        """Get the arguments understood by the IMAPS tester."""
        return {
            'port': '^[0-9]+$',
            'tls': 'insecure',
            'username': '.*',
            'password': '.*',
        }

    def should_resolve_hostname(self) -> bool:
        return True

    def example(self) -> str:
        return """
IMAPS Tester
------------
 The IMAPS tester connects to a remote host and ensures that this succeeds.

 If you supply a username & password a login will be made, and the test will
 fail if this login does not succeed.

 This test is invoked via input like so:

    host.example.com must run imaps

 Because IMAPS uses TLS this test will ensure the validity of the certificate as
 part of the test, if you wish to disable this add "with tls insecure".
"""

    async def run_test(self, test: Test, target: str, options: Options) -> None:
        """
        Connect to the target and optionally log in and out.

        Raises:
            ArgumentError: If the port is not numeric
            TransportError: If the TLS connection cannot be established
            AuthenticationError: If the login is rejected
            ResponseError: If logout fails
        """
        port = IMAPS_PORT
        if test.arguments.get('port'):
            try:
                port = int(test.arguments['port'])
            except ValueError:
                raise ArgumentError(
                    f"invalid port '{test.arguments['port']}'",
                    protocol='imaps',
                    target=target
                )

        insecure = test.arguments.get('tls') == 'insecure'
        address = format_address(target, port)

        # Verify against the target as written, not the resolved address.
        context, server_hostname = create_tls_context(test.declared_target, insecure)

        username = test.arguments.get('username', '')
        password = test.arguments.get('password', '')

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None,
            partial(self._session_sync, address, context, server_hostname,
                    username, password, options.timeout)
        )

    def _session_sync(self, address: str, context: ssl.SSLContext,
                      server_hostname: Optional[str], username: str,
                      password: str, timeout: float) -> None:
        """Run the blocking IMAP session. The connection is always released."""
        host, port = split_address(address)
        logger.debug("Connecting to %s (verify as %s)", address, server_hostname)

        try:
            conn = _IMAP4_SSL(host, port, server_hostname, context, timeout)
        except (socket.timeout, TimeoutError) as e:
            raise ProbeTimeoutError(
                f"connection to {address} timed out after {timeout}s",
                protocol='imaps',
                target=host
            ) from e
        except (OSError, imaplib.IMAP4.error) as e:
            raise TransportError(str(e), protocol='imaps', target=host) from e

        released = False
        try:
            if username and password:
                self._login(conn, host, username, password)
                # logout() also shuts the connection down
                released = True
                self._logout(conn, host)
        finally:
            if not released:
                self._release(conn, address)

    def _login(self, conn: imaplib.IMAP4, host: str, username: str, password: str) -> None:
        try:
            conn.login(username, password)
        except imaplib.IMAP4.error as e:
            raise AuthenticationError(
                f"login failed for {username}: {e}",
                protocol='imaps',
                target=host
            ) from e
        except OSError as e:
            raise TransportError(str(e), protocol='imaps', target=host) from e

    def _logout(self, conn: imaplib.IMAP4, host: str) -> None:
        try:
            typ, data = conn.logout()
        except (imaplib.IMAP4.error, OSError) as e:
            self._release(conn, host)
            raise ResponseError(f"logout failed: {e}", protocol='imaps', target=host) from e
        if typ not in ('OK', 'BYE'):
            raise ResponseError(f"logout failed: {typ} {data}", protocol='imaps', target=host)

    def _release(self, conn: imaplib.IMAP4, address: str) -> None:
        try:
            conn.shutdown()
        except OSError as e:
            logger.debug("Error closing connection to %s: %s", address, e)


register_protocol('imaps', IMAPSTest)
