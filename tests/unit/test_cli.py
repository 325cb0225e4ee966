"""
Unit tests for the command-line interface.
"""

from pathlib import Path

import pytest

from hike.__main__ import build_parser, build_server, config_from_args, main
from hike.config import ServerConfig


class TestArguments:
    """Tests for argument parsing and config layering."""

    def test_unset_arguments_keep_base(self):
        args = build_parser().parse_args([])
        base = ServerConfig(port=1234, log_format="json")

        assert config_from_args(args, base) == base

    def test_arguments_override_base(self, docroot: Path):
        args = build_parser().parse_args([
            "--host", "0.0.0.0",
            "--port", "3000",
            "--root", str(docroot),
            "--index", "home.html",
            "--timeout", "5",
            "--debug",
            "--log-level", "DEBUG",
            "--log-format", "json",
        ])

        config = config_from_args(args, ServerConfig(port=1234))

        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.root_dir == str(docroot)
        assert config.index_file == "home.html"
        assert config.timeout == 5.0
        assert config.debug is True
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_environment_is_the_default_base(self, monkeypatch):
        monkeypatch.setenv("HIKE_PORT", "4321")
        args = build_parser().parse_args([])

        assert config_from_args(args).port == 4321

    def test_log_format_choices(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--log-format", "xml"])


class TestBuildServer:
    """Tests for --dynamic registration."""

    def test_dynamic_pages_grouped_by_url(self, docroot: Path):
        args = build_parser().parse_args([
            "--root", str(docroot),
            "--dynamic", "/", "<!-- [ls] -->", "ls",
            "--dynamic", "/status.html", "{{load}}", "uptime",
            "--dynamic", "/", "<!-- [uptime] -->", "uptime",
        ])

        server = build_server(args, ServerConfig())

        assert len(server.registry) == 2
        assert [a.marker for a in server.registry.lookup("/")] == ["<!-- [ls] -->", "<!-- [uptime] -->"]
        assert [a.marker for a in server.registry.lookup("/status.html")] == ["{{load}}"]

    def test_dynamic_anchor_runs_command(self, docroot: Path):
        args = build_parser().parse_args([
            "--root", str(docroot),
            "--dynamic", "/", "<!-- [Marker1] -->", "echo hi",
        ])

        anchor = build_server(args, ServerConfig()).registry.lookup("/")[0]

        assert anchor.produce() == b"hi\n"

    def test_duplicate_marker_is_error(self, docroot: Path):
        args = build_parser().parse_args([
            "--root", str(docroot),
            "--dynamic", "/", "{{x}}", "ls",
            "--dynamic", "/", "{{x}}", "uptime",
        ])

        with pytest.raises(ValueError):
            build_server(args, ServerConfig())


class TestMain:
    def test_invalid_root_exits_2(self, tmp_path: Path, capsys):
        assert main(["--root", str(tmp_path / "nope")]) == 2
        assert "Error:" in capsys.readouterr().err
