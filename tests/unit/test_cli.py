"""Unit tests for the command-line entry point."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from enqueuer import cli
from shared.config import CONFIG_ENV_VAR, EnqueueConfig


class TestBuildParser:
    """Test argument parsing."""

    def test_defaults_from_config(self):
        parser = cli.build_parser(EnqueueConfig(redis_host='queue:6380', redis_db=4))

        args = parser.parse_args(['enqueue', 'checks.txt'])

        assert args.command == 'enqueue'
        assert args.redis_host == 'queue:6380'
        assert args.redis_db == 4
        assert args.redis_timeout == 5.0
        assert args.files == ['checks.txt']

    def test_flags(self):
        parser = cli.build_parser(EnqueueConfig())

        args = parser.parse_args([
            'enqueue', '--redis-socket', '/run/redis.sock', '--redis-pass', 'secret',
            '--redis-timeout', '500ms', 'a.txt', '-'
        ])

        assert args.redis_socket == '/run/redis.sock'
        assert args.redis_pass == 'secret'
        assert args.redis_timeout == 0.5
        assert args.files == ['a.txt', '-']

    def test_invalid_timeout(self):
        parser = cli.build_parser(EnqueueConfig())

        with pytest.raises(SystemExit):
            parser.parse_args(['enqueue', '--redis-timeout', 'soon'])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser(EnqueueConfig()).parse_args([])


class TestMain:
    """Test main()."""

    @patch('enqueuer.cli.run_enqueue', new_callable=AsyncMock)
    def test_flags_override_config_file(self, mock_run, tmp_path, monkeypatch):
        path = tmp_path / 'overseer.json'
        path.write_text(json.dumps({'RedisHost': 'file:6380', 'RedisDB': 3}))
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        mock_run.return_value = 0

        status = cli.main(['enqueue', '--redis-host', 'flag:6381', 'checks.txt'])

        assert status == 0
        config, files = mock_run.await_args.args
        assert config.redis_host == 'flag:6381'
        assert config.redis_db == 3
        assert files == ['checks.txt']

    @patch('enqueuer.cli.run_enqueue', new_callable=AsyncMock)
    def test_malformed_config_file_does_not_abort(self, mock_run, tmp_path, monkeypatch):
        path = tmp_path / 'overseer.json'
        path.write_text('not json')
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        mock_run.return_value = 1

        assert cli.main(['enqueue', 'checks.txt']) == 1
        config = mock_run.await_args.args[0]
        assert config.redis_host == 'localhost:6379'

    @pytest.mark.asyncio
    @patch('enqueuer.cli.create_redis_client')
    async def test_run_enqueue_closes_client(self, mock_create):
        client = mock_create.return_value
        client.ping = AsyncMock(side_effect=OSError("refused"))
        client.aclose = AsyncMock()

        status = await cli.run_enqueue(EnqueueConfig(), ['checks.txt'])

        assert status == 1
        client.aclose.assert_awaited_once()


class TestExamples:
    """Test the examples command."""

    def test_all_protocols(self, capsys):
        assert cli.main(['examples']) == 0

        out = capsys.readouterr().out
        assert 'DNS Tester' in out
        assert 'IMAPS Tester' in out

    def test_single_protocol(self, capsys):
        assert cli.main(['examples', 'imaps']) == 0

        out = capsys.readouterr().out
        assert 'IMAPS Tester' in out
        assert 'DNS Tester' not in out

    def test_unknown_protocol(self, capsys):
        assert cli.main(['examples', 'gopher']) == 1
        assert 'Unknown protocol: gopher' in capsys.readouterr().err
