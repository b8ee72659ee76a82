"""
Unit tests for the command line interface.
"""

import pytest

from rawhttp import __version__
from rawhttp.__main__ import build_parser, config_from_args, main
from rawhttp.config import ServerConfig


def parse(*argv: str):
    return build_parser(ServerConfig()).parse_args(list(argv))


class TestArguments:
    """Tests for build_parser() and config_from_args()."""

    def test_defaults(self):
        config = config_from_args(parse())

        assert config.host == "127.0.0.1"
        assert config.port == 4221
        assert config.directory is None
        assert config.confine_files
        assert config.legacy_identity_echo

    def test_directory(self):
        config = config_from_args(parse("--directory", "/tmp/data"))

        assert config.directory == "/tmp/data"

    def test_short_options(self):
        config = config_from_args(parse("-H", "0.0.0.0", "-p", "0", "-d", "/srv", "-w", "2"))

        assert config.host == "0.0.0.0"
        assert config.port == 0
        assert config.directory == "/srv"
        assert config.max_workers == 2
        assert config.min_workers == 2

    def test_min_workers_capped(self):
        """Test that min_workers never exceeds the requested maximum."""
        config = config_from_args(parse("--workers", "32"))

        assert config.min_workers == 4
        assert config.max_workers == 32

    def test_switches(self):
        config = config_from_args(parse("--no-confine", "--fix-identity-echo"))

        assert not config.confine_files
        assert not config.legacy_identity_echo

    def test_timeout_none(self):
        """Test that --timeout none selects fully blocking sockets."""
        assert config_from_args(parse("--timeout", "none")).timeout is None
        assert config_from_args(parse("--timeout", "NONE")).timeout is None
        assert config_from_args(parse("--timeout", "2.5")).timeout == 2.5

    def test_bad_timeout(self):
        with pytest.raises(SystemExit):
            parse("--timeout", "soon")

    def test_log_level_case_insensitive(self):
        assert config_from_args(parse("-l", "debug")).log_level == "DEBUG"

    def test_bad_log_level(self):
        with pytest.raises(SystemExit):
            parse("--log-level", "loud")

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            parse("--version")

        assert __version__ in capsys.readouterr().out

    def test_defaults_follow_environment(self, monkeypatch):
        """Test that the environment supplies the parser defaults."""
        monkeypatch.setenv("HTTP_PORT", "9000")
        config = config_from_args(build_parser(ServerConfig.from_env()).parse_args([]))

        assert config.port == 9000


class TestMain:
    """Tests for main() exit codes."""

    def test_invalid_config_exits_1(self, capsys):
        """Test that a bad setting is reported without a traceback."""
        assert main(["--port", "70000"]) == 1
        assert "Invalid port" in capsys.readouterr().err

    def test_invalid_environment_exits_1(self, monkeypatch, capsys):
        monkeypatch.setenv("HTTP_PORT", "nope")

        assert main([]) == 1
        assert "invalid environment" in capsys.readouterr().err
