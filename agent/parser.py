"""
Test-definition parser.

Turns declarative lines such as::

    mail.example.com must run imaps with port 993 with tls insecure

into :class:`~shared.models.test.Test` values, validating every argument
against the pattern declared by the protocol tester.
"""

import logging
import re
import shlex
import sys
from typing import Iterator, List, Optional, TextIO

from shared.models.test import Test
from agent.protocols import get_protocol_registry
from agent.protocols.base import ProtocolRegistry

logger = logging.getLogger(__name__)


class ParseError(ValueError):
    """A test definition could not be parsed or failed validation."""

    def __init__(self, message: str, source: str = None, line_number: int = None):
        if line_number is not None:
            message = f"{source or '<input>'}:{line_number}: {message}"
        super().__init__(message)
        self.source = source
        self.line_number = line_number


class TestParser:
    """Parser for test-definition lines."""
    __test__ = False  # not a pytest test class

    def __init__(self, registry: Optional[ProtocolRegistry] = None):
        self.registry = registry or get_protocol_registry()

    def parse_line(self, line: str) -> Optional[Test]:
        """
        Parse a single line.

        Returns:
            Parsed Test, or None for blank and comment lines

        Raises:
            ParseError: If the line is malformed or an argument is invalid
        """
        text = line.strip()
        if not text or text.startswith('#'):
            return None

        try:
            tokens = self._tokenize(text)
        except ValueError as e:
            raise ParseError(f"invalid quoting: {e}")

        if len(tokens) < 4 or tokens[1] != 'must' or tokens[2] != 'run':
            raise ParseError(f"expected '<target> must run <protocol>', got '{text}'")

        target, protocol = tokens[0], tokens[3]
        tester = self.registry.lookup(protocol)
        if tester is None:
            raise ParseError(f"unknown protocol '{protocol}'")

        known = tester.arguments()
        arguments = {}
        rest = tokens[4:]
        while rest:
            if rest[0] != 'with' or len(rest) < 3:
                raise ParseError(f"expected 'with <name> <value>', got '{' '.join(rest)}'")
            name, value = rest[1], rest[2]
            rest = rest[3:]

            if name not in known:
                raise ParseError(f"argument '{name}' is not supported by protocol '{protocol}'")
            if not re.search(known[name], value):
                raise ParseError(f"value '{value}' for argument '{name}' does not match '{known[name]}'")
            arguments[name] = value

        return Test(input=text, target=target, protocol=protocol, arguments=arguments)

    @staticmethod
    def _tokenize(text: str) -> List[str]:
        """Split on whitespace honouring quotes; backslashes are kept literally."""
        lexer = shlex.shlex(text, posix=True)
        lexer.whitespace_split = True
        lexer.commenters = ''
        lexer.escape = ''
        return list(lexer)

    def iter_stream(self, stream: TextIO, source: str = None) -> Iterator[Test]:
        """
        Yield tests from an open text stream, in order.

        Undecodable input is reported as a ParseError.
        """
        lines = iter(stream)
        line_number = 0
        while True:
            try:
                line = next(lines)
            except StopIteration:
                return
            except UnicodeDecodeError as e:
                raise ParseError(f"invalid UTF-8 input: {e}", source=source,
                                 line_number=line_number + 1) from e
            line_number += 1
            try:
                test = self.parse_line(line)
            except ParseError as e:
                raise ParseError(str(e), source=source, line_number=line_number) from e
            if test is not None:
                yield test

    def iter_file(self, path: str) -> Iterator[Test]:
        """
        Yield tests from a file, or from standard input when path is ``-``.

        Raises:
            OSError: If the file cannot be read
            ParseError: On the first invalid line
        """
        if path == '-':
            yield from self.iter_stream(sys.stdin, source='<stdin>')
            return

        with open(path, 'r', encoding='utf-8') as f:
            yield from self.iter_stream(f, source=path)
