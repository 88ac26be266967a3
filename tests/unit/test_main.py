"""Tests for the command line entry point."""

import io
import json
from pathlib import Path

import pytest

from error_ingestor.__main__ import main, parse_args


@pytest.fixture
def trace_file(tmp_path: Path, chrome_trace: str) -> Path:
    """A trace file on disk."""
    path = tmp_path / "trace.txt"
    path.write_text(chrome_trace)
    return path


class TestParseArgs:
    """Tests for argument parsing."""

    def test_parse_command(self, trace_file: Path):
        """Test the parse subcommand."""
        args = parse_args(["parse", str(trace_file), "--platform", "web"])

        assert args.command == "parse"
        assert args.platform == "web"
        assert args.source_maps == []
        assert args.config is None

    def test_source_map_pairs(self, trace_file: Path):
        """Test FILE_NAME=PATH arguments."""
        args = parse_args(
            [
                "parse",
                str(trace_file),
                "--platform",
                "ios",
                "--app-id",
                "app",
                "--app-version",
                "1.0",
                "--source-map",
                "main.jsbundle=maps/main.jsbundle.map",
            ]
        )

        assert args.source_maps == [("main.jsbundle", Path("maps/main.jsbundle.map"))]

    @pytest.mark.parametrize(
        "argv",
        [
            ["parse", "trace.txt"],
            ["parse", "trace.txt", "--platform", "desktop"],
            ["parse", "trace.txt", "--platform", "web", "--source-map", "broken"],
            ["parse", "trace.txt", "--platform", "web", "--source-map", "a.js=a.map"],
            [],
        ],
    )
    def test_invalid_arguments(self, argv: list[str]):
        """Test argument errors exit with usage."""
        with pytest.raises(SystemExit):
            parse_args(argv)

    def test_dry_run_needs_no_command(self):
        """Test that --dry-run alone is accepted."""
        assert parse_args(["--dry-run"]).dry_run is True


class TestMain:
    """Tests for running the CLI."""

    def test_parse_prints_record(self, trace_file: Path, capsys: pytest.CaptureFixture[str]):
        """Test that the parsed trace is printed as JSON."""
        assert main(["parse", str(trace_file), "--platform", "web"]) == 0

        record = json.loads(capsys.readouterr().out)
        assert record["parser"] == "browser"
        assert len(record["frames"]) == 4
        assert record["frames"][0]["functionName"] == "render"
        assert "resolved" not in record["frames"][0]

    def test_reads_stdin(
        self,
        chrome_trace: str,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ):
        """Test reading the trace from stdin."""
        monkeypatch.setattr("sys.stdin", io.StringIO(chrome_trace))

        assert main(["parse", "-", "--platform", "android"]) == 0
        assert json.loads(capsys.readouterr().out)["parser"] == "react-native"

    def test_resolves_with_source_map(
        self,
        tmp_path: Path,
        trace_file: Path,
        app_source_map: str,
        capsys: pytest.CaptureFixture[str],
    ):
        """Test resolution against a local source map."""
        map_path = tmp_path / "app.bundle.js.map"
        map_path.write_text(app_source_map)

        exit_code = main(
            [
                "parse",
                str(trace_file),
                "--platform",
                "web",
                "--app-id",
                "web-app",
                "--app-version",
                "2.3.1",
                "--source-map",
                f"app.bundle.js={map_path}",
            ]
        )

        assert exit_code == 0
        top = json.loads(capsys.readouterr().out)["frames"][0]
        assert top["resolved"] is True
        assert top["originalFileName"] == "src/App.tsx"
        assert top["originalLineNumber"] == 10
        assert top["originalFunctionName"] == "render"

    def test_missing_trace_file(self, tmp_path: Path):
        """Test that a missing trace file exits with 1."""
        assert main(["parse", str(tmp_path / "nope.txt"), "--platform", "web"]) == 1

    def test_invalid_source_map(self, tmp_path: Path, trace_file: Path):
        """Test that an unreadable source map exits with 1."""
        map_path = tmp_path / "broken.map"
        map_path.write_text("{not json")

        exit_code = main(
            [
                "parse",
                str(trace_file),
                "--platform",
                "web",
                "--app-id",
                "a",
                "--app-version",
                "1",
                "--source-map",
                f"app.bundle.js={map_path}",
            ]
        )

        assert exit_code == 1

    @pytest.mark.parametrize(
        ("app_id", "app_version"), [("web:app", "2.3.1"), ("web-app", "2:3")]
    )
    def test_invalid_app_scope(
        self,
        trace_file: Path,
        app_id: str,
        app_version: str,
        capsys: pytest.CaptureFixture[str],
    ):
        """Test that delimiter-bearing identifiers exit with 1."""
        exit_code = main(
            [
                "parse",
                str(trace_file),
                "--platform",
                "web",
                "--app-id",
                app_id,
                "--app-version",
                app_version,
            ]
        )

        assert exit_code == 1
        assert capsys.readouterr().out == ""

    def test_dry_run_with_config(self, tmp_path: Path):
        """Test validating a configuration file."""
        config = tmp_path / "config.yaml"
        config.write_text("source_maps:\n  cache_ttl_seconds: 60\n")

        assert main(["-c", str(config), "--dry-run"]) == 0

    def test_invalid_config(self, tmp_path: Path):
        """Test that an invalid configuration exits with 1."""
        config = tmp_path / "config.yaml"
        config.write_text("source_maps:\n  cache_ttl_seconds: -1\n")

        assert main(["-c", str(config), "--dry-run"]) == 1

    def test_missing_config(self, tmp_path: Path):
        """Test that a missing configuration file exits with 1."""
        assert main(["-c", str(tmp_path / "missing.yaml"), "--dry-run"]) == 1
