"""Command line entry point for the error ingestor.

This module parses a stack trace file the way the ingestion path does and
prints the structured result. It handles:
- Configuration loading
- Logging setup with secret sanitization
- Optional source map resolution against local map files
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

import structlog

from error_ingestor._version import __version__

log = structlog.get_logger()


def setup_logging(
    debug: bool = False,
    log_format: str = "console",
    file_path: Path | None = None,
    file_enabled: bool = False,
) -> None:
    """Configure structured logging with secret sanitization.

    Args:
        debug: Enable debug logging if True
        log_format: Output format ("json" or "console")
        file_path: Path to log file (if file logging enabled)
        file_enabled: Whether to enable file logging
    """
    from error_ingestor.utils.logging import LogFormat, LogLevel, configure_logging

    level = LogLevel.DEBUG if debug else LogLevel.INFO

    configure_logging(
        level=level,
        log_format=LogFormat(log_format.lower()),
        file_path=file_path,
        file_enabled=file_enabled,
    )


def _source_map_arg(value: str) -> tuple[str, Path]:
    file_name, sep, path = value.partition("=")
    if not sep or not file_name or not path:
        raise argparse.ArgumentTypeError(f"expected FILE_NAME=PATH, got {value!r}")
    return file_name, Path(path)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed argument namespace
    """
    parser = argparse.ArgumentParser(
        prog="error-ingestor",
        description="Error ingestor - parse and resolve JavaScript stack traces",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: built-in defaults)",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and exit",
    )

    parser.add_argument(
        "--format",
        choices=["json", "console"],
        default="console",
        help="Log output format (default: console)",
    )

    subparsers = parser.add_subparsers(dest="command")

    parse_cmd = subparsers.add_parser("parse", help="Parse a stack trace file")
    parse_cmd.add_argument(
        "trace_file",
        help="File containing the raw stack trace ('-' reads stdin)",
    )
    parse_cmd.add_argument(
        "--platform",
        choices=["ios", "android", "web"],
        required=True,
        help="Platform that produced the trace",
    )
    parse_cmd.add_argument("--app-id", help="Application identifier for resolution")
    parse_cmd.add_argument("--app-version", help="Application version for resolution")
    parse_cmd.add_argument(
        "--source-map",
        dest="source_maps",
        action="append",
        type=_source_map_arg,
        default=[],
        metavar="FILE_NAME=PATH",
        help="Source map for a bundle file (repeatable)",
    )

    args = parser.parse_args(argv)
    if not args.dry_run and args.command is None:
        parser.error("a command is required unless --dry-run is given")
    if args.command == "parse" and args.source_maps and not (args.app_id and args.app_version):
        parser.error("--source-map requires --app-id and --app-version")
    return args


def _read_trace(trace_file: str) -> str:
    if trace_file == "-":
        return sys.stdin.read()
    return Path(trace_file).read_text()


async def run_parse(args: argparse.Namespace) -> int:
    """Run the ingestor CLI.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    try:
        from error_ingestor.config import IngestorConfig, load_config

        if args.config is not None:
            log.info("loading_configuration", path=str(args.config))
            config = load_config(args.config)
        else:
            config = IngestorConfig()
        log.info("configuration_loaded")

        # Reconfigure logging from config file settings
        if args.config is not None:
            from error_ingestor.utils.logging import configure_logging

            configure_logging(
                level="DEBUG" if args.debug else config.logging.level,
                log_format=config.logging.format,
                file_path=config.logging.file.path if config.logging.file.enabled else None,
                file_enabled=config.logging.file.enabled,
            )

        if args.dry_run:
            log.info("dry_run_mode_config_valid")
            return 0

        raw = _read_trace(args.trace_file)

    except FileNotFoundError as e:
        log.error("input_file_not_found", error=str(e))
        return 1
    except ValueError as e:
        log.error("configuration_invalid", error=str(e))
        return 1

    from error_ingestor.adapters.storage.memory import InMemorySourceMapStore
    from error_ingestor.core.context import create_context
    from error_ingestor.utils.async_helpers import IngestorError

    # Local maps only; the configured store is not contacted from the CLI
    context = create_context(config, store=InMemorySourceMapStore())
    trace = context.parser.parse(raw, args.platform)

    if args.app_id and args.app_version:
        try:
            for file_name, path in args.source_maps:
                await context.source_maps.upload(
                    args.app_id, args.app_version, file_name, path.read_text()
                )
            trace = await context.resolver.resolve_stack(trace, args.app_id, args.app_version)
        except (OSError, ValueError, IngestorError) as e:
            log.error("source_map_load_failed", error=str(e))
            return 1

    print(json.dumps(trace.to_record(), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Setup logging with CLI options
    setup_logging(
        debug=args.debug,
        log_format=args.format,
    )

    try:
        return asyncio.run(run_parse(args))
    except KeyboardInterrupt:
        log.info("interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
