"""Parser for single JavaScript stack frame lines.

Three runtime dialects are recognised:

- V8 (Chrome, Node, Edge)::

      at functionName (file:line:col)
      at file:line:col
      at async functionName (file:line:col)
      at new ClassName (file:line:col)

- Firefox / Safari::

      functionName@file:line:col
      @file:line:col

- Hermes (React Native)::

      at functionName (address at file:line:col)
      at functionName (file:line:col)

Matchers are tried in a fixed per-platform order and the first structural
match wins. A line no matcher accepts still becomes a frame, carrying only
its raw text.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from error_ingestor.core.in_app import is_in_app
from error_ingestor.models.stacktrace import InAppConfig, Platform, StackFrame

FrameMatcher = Callable[[str, InAppConfig | None], StackFrame | None]

V8_FRAME_PATTERN = re.compile(
    r"^\s*at\s+(?:(?:async|new)\s+)?(?:(.+?)\s+\()?(.+?):(\d+):(\d+)\)?$"
)
FIREFOX_FRAME_PATTERN = re.compile(r"^(.*)@(.+?):(\d+):(\d+)$")
HERMES_FRAME_PATTERN = re.compile(
    r"^\s*at\s+(.+?)\s+\((?:address at\s+)?(.+?):(\d+):(\d+)\)$"
)

# First line of error.stack, e.g. "TypeError: undefined is not a function"
ERROR_HEADER_PREFIXES = (
    "Error:",
    "TypeError:",
    "ReferenceError:",
    "SyntaxError:",
    "RangeError:",
)


def _to_int(value: str | None) -> int | None:
    return int(value, 10) if value else None


def _regex_matcher(pattern: re.Pattern[str]) -> FrameMatcher:
    """Build a matcher for a pattern capturing (function, file, line, column)."""

    def match_frame(line: str, config: InAppConfig | None) -> StackFrame | None:
        match = pattern.match(line.rstrip())
        if not match:
            return None

        function_name, file_name, line_number, column_number = match.groups()
        function_name = function_name.strip() if function_name else None

        return StackFrame(
            raw=line,
            function_name=function_name or None,
            file_name=file_name,
            line_number=_to_int(line_number),
            column_number=_to_int(column_number),
            in_app=is_in_app(file_name, config),
        )

    return match_frame


parse_v8_frame = _regex_matcher(V8_FRAME_PATTERN)
parse_firefox_frame = _regex_matcher(FIREFOX_FRAME_PATTERN)
parse_hermes_frame = _regex_matcher(HERMES_FRAME_PATTERN)

MOBILE_MATCHERS: tuple[FrameMatcher, ...] = (parse_hermes_frame, parse_v8_frame)
WEB_MATCHERS: tuple[FrameMatcher, ...] = (parse_v8_frame, parse_firefox_frame)


def is_mobile_platform(platform: Platform | str) -> bool:
    """iOS and Android errors come from React Native runtimes."""
    return platform in (Platform.IOS, Platform.ANDROID)


def matchers_for(platform: Platform | str) -> tuple[FrameMatcher, ...]:
    """Matcher order for a platform; anything that is not iOS/Android is web."""
    if is_mobile_platform(platform):
        return MOBILE_MATCHERS
    return WEB_MATCHERS


def is_error_header(line: str) -> bool:
    """Whether a trimmed line is the leading ``ErrorType: message`` line."""
    return line.startswith(ERROR_HEADER_PREFIXES)


def parse_frame(
    line: str,
    platform: Platform | str,
    config: InAppConfig | None = None,
) -> StackFrame | None:
    """Parse one stack trace line into a frame.

    Args:
        line: A single line of ``error.stack``
        platform: Platform the error was captured on
        config: In-app classification rules

    Returns:
        None for blank lines and error headers, otherwise a StackFrame
        (a raw-only fallback frame when no dialect matches)
    """
    trimmed = line.strip()
    if not trimmed or is_error_header(trimmed):
        return None

    for matcher in matchers_for(platform):
        frame = matcher(line, config)
        if frame is not None:
            return frame

    return StackFrame(raw=line)
