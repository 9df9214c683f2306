"""Unit tests for the test-definition parser."""

import io

import pytest

from agent.parser import ParseError, TestParser


class TestParseLine:
    """Test single-line parsing."""

    def setup_method(self):
        """Set up test fixtures."""
        self.parser = TestParser()

    def test_dns_line(self):
        line = "ns.example.com must run dns with lookup test.example.com with type A with result '1.2.3.4'"
        test = self.parser.parse_line(line)

        assert test.input == line
        assert test.target == 'ns.example.com'
        assert test.protocol == 'dns'
        assert test.arguments == {'lookup': 'test.example.com', 'type': 'A', 'result': '1.2.3.4'}

    def test_empty_quoted_value(self):
        test = self.parser.parse_line(
            "rache.ns.cloudflare.com must run dns with lookup alert.steve.fi with type AAAA with result ''"
        )
        assert test.arguments['result'] == ''

    def test_double_quoted_value(self):
        test = self.parser.parse_line(
            'mail.example.com must run imaps with username "steve@example.com" with password "s3 cret"'
        )
        assert test.arguments == {'username': 'steve@example.com', 'password': 's3 cret'}

    def test_backslashes_kept_literally(self):
        test = self.parser.parse_line(
            r"mail.example.com must run imaps with username steve with password se\cret"
        )
        assert test.arguments['password'] == 'se\\cret'

    def test_input_is_stripped_and_reparses_equal(self):
        test = self.parser.parse_line("  mail.example.com must run imaps with tls insecure \n")

        assert test.input == "mail.example.com must run imaps with tls insecure"
        assert self.parser.parse_line(test.input) == test
        assert test.declared_target == 'mail.example.com'

    @pytest.mark.parametrize('line', ['', '   ', '# a comment', '  # indented comment'])
    def test_blank_and_comment_lines(self, line):
        assert self.parser.parse_line(line) is None

    def test_unknown_protocol(self):
        with pytest.raises(ParseError, match="unknown protocol 'gopher'"):
            self.parser.parse_line("example.com must run gopher")

    def test_malformed_line(self):
        with pytest.raises(ParseError, match="must run"):
            self.parser.parse_line("example.com should run dns")

    def test_unknown_argument(self):
        with pytest.raises(ParseError, match="argument 'colour' is not supported"):
            self.parser.parse_line("example.com must run imaps with colour blue")

    def test_invalid_argument_value(self):
        with pytest.raises(ParseError, match="does not match"):
            self.parser.parse_line("example.com must run imaps with port imap")

    def test_dangling_with(self):
        with pytest.raises(ParseError, match="expected 'with <name> <value>'"):
            self.parser.parse_line("example.com must run imaps with port")

    def test_unbalanced_quotes(self):
        with pytest.raises(ParseError, match="invalid quoting"):
            self.parser.parse_line("example.com must run dns with result 'oops")


class TestParseStreams:
    """Test stream and file parsing."""

    def setup_method(self):
        """Set up test fixtures."""
        self.parser = TestParser()

    def test_iter_stream_in_order(self):
        stream = io.StringIO(
            "# mail checks\n"
            "one.example.com must run imaps\n"
            "\n"
            "two.example.com must run imaps with tls insecure\n"
        )
        tests = list(self.parser.iter_stream(stream))

        assert [t.target for t in tests] == ['one.example.com', 'two.example.com']

    def test_error_reports_line_number(self):
        stream = io.StringIO("one.example.com must run imaps\nbroken line here\n")

        with pytest.raises(ParseError) as exc_info:
            list(self.parser.iter_stream(stream, source='checks.txt'))

        assert exc_info.value.line_number == 2
        assert str(exc_info.value).startswith('checks.txt:2:')

    def test_iter_file(self, tmp_path):
        path = tmp_path / 'checks.txt'
        path.write_text("ns.example.com must run dns with lookup example.com with type NS with result ''\n")

        tests = list(self.parser.iter_file(str(path)))

        assert len(tests) == 1
        assert tests[0].protocol == 'dns'

    def test_iter_file_invalid_utf8(self, tmp_path):
        path = tmp_path / 'checks.txt'
        path.write_bytes(b"mail.example.com must run imaps\xff\n")

        with pytest.raises(ParseError, match="invalid UTF-8") as exc_info:
            list(self.parser.iter_file(str(path)))

        assert exc_info.value.source == str(path)

    def test_iter_file_missing(self, tmp_path):
        with pytest.raises(OSError):
            list(self.parser.iter_file(str(tmp_path / 'missing.txt')))

    def test_iter_stdin(self, monkeypatch):
        monkeypatch.setattr('sys.stdin', io.StringIO("mail.example.com must run imaps\n"))

        tests = list(self.parser.iter_file('-'))

        assert tests[0].input == "mail.example.com must run imaps"
