"""
DNS protocol tester for network probe agents.

Confirms that a specific DNS server returns the expected records for a
name. Invoked with input like this::

    ns.example.com must run dns with lookup test.example.com with type A with result '1.2.3.4'

Lookups are supported for A, AAAA, MX, NS and TXT records.
"""

import asyncio
import logging
import socket
from typing import Dict, List, Optional

import dns.exception
import dns.inet
import dns.message
import dns.name
import dns.rcode
import dns.rdatatype
import dns.asyncquery

from shared.models.test import Options, Test
from .base import (
    ArgumentError, ProtocolTest, ProbeTimeoutError, ResponseError,
    ResultMismatchError, TransportError, format_address, split_address
)
from .registry import register_protocol

logger = logging.getLogger(__name__)

DNS_PORT = 53

# Record-type tokens accepted in test definitions.
RECORD_TYPES = {
    'A': dns.rdatatype.A,
    'AAAA': dns.rdatatype.AAAA,
    'MX': dns.rdatatype.MX,
    'NS': dns.rdatatype.NS,
    'TXT': dns.rdatatype.TXT,
}


def fqdn(name: str) -> str:
    """Return the fully-qualified form of a name, with its trailing dot."""
    return name if name.endswith('.') else name + '.'


def extract_answers(response: dns.message.Message) -> List[str]:
    """
    Extract string values from the answer section of a response.

    A and AAAA give the address, MX gives ``"<preference> <exchange>"``,
    NS gives the nameserver and TXT the first text chunk. Other record
    types are skipped.
    """
    results = []
    for rrset in response.answer:
        for rdata in rrset:
            if rrset.rdtype in (dns.rdatatype.A, dns.rdatatype.AAAA):
                results.append(rdata.address)
            elif rrset.rdtype == dns.rdatatype.MX:
                results.append(f"{rdata.preference} {rdata.exchange}")
            elif rrset.rdtype == dns.rdatatype.NS:
                results.append(str(rdata.target))
            elif rrset.rdtype == dns.rdatatype.TXT:
                results.append(rdata.strings[0].decode('utf-8', errors='backslashreplace'))
    return results


def normalize_answers(results: List[str]) -> str:
    """Sort and comma-join answers so comparison is order-independent."""
    return ','.join(sorted(results))


class DNSTest(ProtocolTest):
    """
    DNS protocol tester.

    Every call builds its own query message; nothing is kept on the
    instance between runs.
    """

    protocol_name = 'dns'

    def arguments(self) -> Dict[str, str]:
        """Get the arguments understood by the DNS tester."""
        return {
            'type': 'A|AAAA|MX|NS|TXT',
            'lookup': '.*',
            'result': '.*',
        }

    def should_resolve_hostname(self) -> bool:
        return True

    def example(self) -> str:
        return """
DNS Tester
----------
 The DNS tester allows you to confirm that the specified DNS server
 returns the results you expect.  It is invoked with input like this:

    ns.example.com must run dns with lookup test.example.com with type A with result '1.2.3.4'

 This test ensures that the DNS lookup of an A record for 'test.example.com'
 returns the single value 1.2.3.4

 Lookups are supported for A, AAAA, MX, NS, and TXT records.  If you expect
 there to be zero returning records, perhaps because you're ensuring that a
 service is IPv4-only you can specify that you require an empty result:

    rache.ns.cloudflare.com must run dns with lookup alert.steve.fi with type AAAA with result ''
"""

    async def run_test(self, test: Test, target: str, options: Options) -> None:
        """
        Look up the named record against the target server and compare
        the sorted answers with the expected result.

        Raises:
            ArgumentError: If lookup or type is missing or type is unknown
            TransportError: If the query could not be completed
            ResponseError: If the name does not exist
            ResultMismatchError: If the answers differ from the expectation
        """
        name = test.arguments.get('lookup', '')
        record_type = test.arguments.get('type', '')
        if not name:
            raise ArgumentError("no value to lookup specified", protocol='dns', target=target)
        if not record_type:
            raise ArgumentError("no record-type to lookup", protocol='dns', target=target)

        # "result" may legitimately be empty: it asserts there are no records.
        expected = test.arguments.get('result', '')

        results = await self.lookup(target, name, record_type, options.timeout)
        found = normalize_answers(results)

        if found != expected:
            raise ResultMismatchError(
                f"expected DNS result to be '{expected}', but found '{found}'",
                expected=expected,
                actual=found,
                protocol='dns',
                target=target
            )

    async def lookup(self, server: str, name: str, record_type: str,
                     timeout: float) -> List[str]:
        """
        Query the server for records of the given type.

        Returns:
            List of answer strings, empty when the server answered with a
            response code other than NOERROR or NXDOMAIN
        """
        query = self._build_query(name, record_type, server)
        response = await self._exchange(server, query, timeout)
        if response is None:
            return []

        if response.rcode() == dns.rcode.NXDOMAIN:
            raise ResponseError(f"no such domain {fqdn(name)}", protocol='dns', target=server)

        return extract_answers(response)

    def _build_query(self, name: str, record_type: str, server: str) -> dns.message.Message:
        """Build a recursive query for the fully-qualified name."""
        rdtype = RECORD_TYPES.get(record_type)
        if rdtype is None:
            raise ArgumentError(
                f"unsupported record to lookup '{record_type}'",
                protocol='dns',
                target=server
            )
        try:
            qname = dns.name.from_text(fqdn(name))
        except dns.exception.DNSException as e:
            raise ArgumentError(f"invalid name to lookup '{name}': {e}", protocol='dns', target=server)
        # make_query sets the RD flag.
        return dns.message.make_query(qname, rdtype)

    async def _exchange(self, server: str, query: dns.message.Message,
                        timeout: float) -> Optional[dns.message.Message]:
        """
        Send the query and apply the response-code rule.

        NOERROR and NXDOMAIN responses are returned; any other response
        code yields None.
        """
        address = format_address(server, DNS_PORT)
        host, port = split_address(address)
        where = await self._resolve_server(host, port)

        logger.debug("Querying %s (%s) for %s", address, where, query.question[0])
        try:
            response = await dns.asyncquery.udp(query, where, timeout=timeout, port=port)
        except dns.exception.Timeout as e:
            raise ProbeTimeoutError(
                f"DNS query to {address} timed out after {timeout}s",
                protocol='dns',
                target=server
            ) from e
        except (OSError, dns.exception.DNSException) as e:
            raise TransportError(str(e), protocol='dns', target=server) from e

        if response.rcode() in (dns.rcode.NOERROR, dns.rcode.NXDOMAIN):
            return response
        logger.debug("Ignoring %s response from %s", dns.rcode.to_text(response.rcode()), address)
        return None

    async def _resolve_server(self, host: str, port: int) -> str:
        """Return an address literal for the server, resolving names if needed."""
        if dns.inet.is_address(host):
            return host
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(host, port, type=socket.SOCK_DGRAM)
        except (socket.gaierror, UnicodeError) as e:
            raise TransportError(
                f"failed to resolve DNS server {host}: {e}",
                protocol='dns',
                target=host
            ) from e
        return infos[0][4][0]


register_protocol('dns', DNSTest)
