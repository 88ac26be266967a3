"""Parser for raw JavaScript stack traces.

Splits ``error.stack`` into lines, turns each line into a frame with the
platform's matcher order and tags the trace with the dialect it looks like.
The dialect tag is informational and never affects which frames are kept.
"""

from __future__ import annotations

import re

import structlog

from error_ingestor.core.frame_parser import is_mobile_platform, parse_frame
from error_ingestor.models.stacktrace import (
    InAppConfig,
    ParsedStackTrace,
    Platform,
    StackFrame,
    StackParserKind,
)
from error_ingestor.utils.logging import LogEventNames
from error_ingestor.utils.metrics import MetricsRegistry

log = structlog.get_logger()

V8_FRAME_MARKER = "    at "
FIREFOX_LOCATION_PATTERN = re.compile(r"@.+:\d+:\d+")
NODE_INTERNAL_MARKERS = ("(node:", "(internal/")


def detect_parser(platform: Platform | str, raw: str) -> StackParserKind:
    """Guess the dialect a stack trace was produced in.

    Args:
        platform: Platform the error was captured on
        raw: Full stack trace text

    Returns:
        The dialect tag for the trace
    """
    if is_mobile_platform(platform):
        return StackParserKind.REACT_NATIVE

    if V8_FRAME_MARKER in raw:
        return StackParserKind.BROWSER

    if FIREFOX_LOCATION_PATTERN.search(raw):
        return StackParserKind.BROWSER

    if any(marker in raw for marker in NODE_INTERNAL_MARKERS):
        return StackParserKind.NODE

    return StackParserKind.UNKNOWN


def parse_stack_trace(
    raw: str | None,
    platform: Platform | str,
    config: InAppConfig | None = None,
) -> ParsedStackTrace:
    """Parse a stack trace string into structured frames.

    Args:
        raw: The raw stack trace, as found in ``error.stack``
        platform: Platform the error was captured on
        config: In-app classification rules

    Returns:
        ParsedStackTrace with frames in the order of the input lines
    """
    if not raw:
        return ParsedStackTrace(frames=(), raw="", parser=StackParserKind.UNKNOWN)

    frames: list[StackFrame] = []
    for line in raw.split("\n"):
        frame = parse_frame(line, platform, config)
        if frame is not None:
            frames.append(frame)

    return ParsedStackTrace(
        frames=tuple(frames),
        raw=raw,
        parser=detect_parser(platform, raw),
    )


class StackTraceParser:
    """Stack trace parser bound to an in-app configuration.

    Example:
        parser = StackTraceParser(InAppConfig(include_patterns=("src/",)))
        trace = parser.parse(event.stack_trace, Platform.WEB)
        for frame in trace.in_app_frames:
            print(frame.function_name, frame.file_name, frame.line_number)
    """

    def __init__(
        self,
        in_app_config: InAppConfig | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._in_app_config = in_app_config
        self._metrics = metrics

    @property
    def in_app_config(self) -> InAppConfig | None:
        return self._in_app_config

    def parse(
        self,
        raw: str | None,
        platform: Platform | str,
        config: InAppConfig | None = None,
    ) -> ParsedStackTrace:
        """Parse a stack trace, preferring a per-call in-app config over the bound one."""
        trace = parse_stack_trace(raw, platform, config or self._in_app_config)

        unparsed = sum(1 for frame in trace.frames if frame.file_name is None)
        if self._metrics is not None:
            self._metrics.traces_parsed.inc()
            self._metrics.frames_parsed.inc(len(trace.frames) - unparsed)
            self._metrics.frames_unparsed.inc(unparsed)

        log.debug(
            LogEventNames.STACK_TRACE_PARSED,
            platform=str(platform),
            parser=trace.parser.value,
            frames=len(trace.frames),
            unparsed_frames=unparsed,
        )
        return trace
