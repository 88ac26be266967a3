"""In-app classification for stack frames.

A frame is "in app" when its file belongs to the application rather than to
dependencies, bundler runtime, polyfills or the JavaScript engine itself.

Evaluation order is fixed:
1. No file name -> not in app
2. Any exclude pattern matches -> not in app
3. Include patterns configured -> in app only if one matches
4. Otherwise -> in app
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from error_ingestor.models.stacktrace import InAppConfig, InAppPattern

DEFAULT_EXCLUDE_PATTERNS: tuple[InAppPattern, ...] = (
    re.compile(r"node_modules"),
    re.compile(r"react-dom"),
    re.compile(r"react-native"),
    re.compile(r"webpack"),
    re.compile(r"metro"),
    re.compile(r"__webpack_require__"),
    re.compile(r"regenerator-runtime"),
    re.compile(r"\[native code\]"),
    re.compile(r"<anonymous>"),
    re.compile(r"^internal/"),
    re.compile(r"^node:"),
)


def matches_pattern(file_name: str, pattern: InAppPattern) -> bool:
    """Substring test for strings, ``search`` for compiled patterns."""
    if isinstance(pattern, str):
        return pattern in file_name
    return pattern.search(file_name) is not None


def _matches_any(file_name: str, patterns: Iterable[InAppPattern]) -> bool:
    return any(matches_pattern(file_name, pattern) for pattern in patterns)


def is_in_app(file_name: str | None, config: InAppConfig | None = None) -> bool:
    """Decide whether a file belongs to application code.

    Args:
        file_name: File name, path or URL taken from a frame
        config: Include/exclude rules; built-in excludes when omitted

    Returns:
        True if the file is application code
    """
    if not file_name:
        return False

    exclude = DEFAULT_EXCLUDE_PATTERNS
    if config is not None and config.exclude_patterns is not None:
        exclude = config.exclude_patterns

    if _matches_any(file_name, exclude):
        return False

    if config is not None and config.include_patterns:
        return _matches_any(file_name, config.include_patterns)

    return True
