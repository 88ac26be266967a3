"""Data models for parsed JavaScript stack traces."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

InAppPattern = str | re.Pattern[str]


class Platform(StrEnum):
    """Runtime platform reported by the capturing client."""

    IOS = "ios"
    ANDROID = "android"
    WEB = "web"


class StackParserKind(StrEnum):
    """Stack trace dialect tag attached to a parsed trace."""

    BROWSER = "browser"
    REACT_NATIVE = "react-native"
    NODE = "node"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class InAppConfig:
    """Rules deciding whether a frame belongs to application code.

    String patterns match by substring, compiled patterns by ``search``.
    ``exclude_patterns=None`` selects the built-in exclude list; an explicit
    sequence (even an empty one) replaces it.
    """

    include_patterns: tuple[InAppPattern, ...] = ()
    exclude_patterns: tuple[InAppPattern, ...] | None = None


@dataclass(frozen=True)
class StackFrame:
    """A single call-site entry in a JavaScript stack trace."""

    raw: str
    function_name: str | None = None
    file_name: str | None = None
    line_number: int | None = None
    column_number: int | None = None
    in_app: bool = False
    original_file_name: str | None = None
    original_line_number: int | None = None
    original_column_number: int | None = None
    original_function_name: str | None = None
    resolved: bool = False

    def __post_init__(self) -> None:
        if self.resolved and (not self.original_file_name or self.original_line_number is None):
            raise ValueError("Resolved frames need an original file name and line number")

    def with_original(
        self,
        file_name: str,
        line_number: int,
        column_number: int | None,
        function_name: str | None,
    ) -> StackFrame:
        """Return a resolved copy of this frame."""
        return replace(
            self,
            original_file_name=file_name,
            original_line_number=line_number,
            original_column_number=column_number,
            original_function_name=function_name,
            resolved=True,
        )

    def to_record(self) -> dict[str, Any]:
        """Convert to the camelCase record exchanged with transport and storage."""
        record: dict[str, Any] = {
            "functionName": self.function_name,
            "fileName": self.file_name,
            "lineNumber": self.line_number,
            "columnNumber": self.column_number,
            "inApp": self.in_app,
            "raw": self.raw,
        }
        if self.resolved:
            record.update(
                originalFileName=self.original_file_name,
                originalLineNumber=self.original_line_number,
                originalColumnNumber=self.original_column_number,
                originalFunctionName=self.original_function_name,
                resolved=True,
            )
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> StackFrame:
        """Build a frame from a camelCase record."""
        return cls(
            raw=record.get("raw", ""),
            function_name=record.get("functionName"),
            file_name=record.get("fileName"),
            line_number=record.get("lineNumber"),
            column_number=record.get("columnNumber"),
            in_app=bool(record.get("inApp", False)),
            original_file_name=record.get("originalFileName"),
            original_line_number=record.get("originalLineNumber"),
            original_column_number=record.get("originalColumnNumber"),
            original_function_name=record.get("originalFunctionName"),
            resolved=bool(record.get("resolved", False)),
        )


@dataclass(frozen=True)
class ParsedStackTrace:
    """A fully parsed stack trace, most recent call first."""

    frames: tuple[StackFrame, ...] = field(default_factory=tuple)
    raw: str = ""
    parser: StackParserKind = StackParserKind.UNKNOWN

    @property
    def in_app_frames(self) -> tuple[StackFrame, ...]:
        """Frames classified as application code."""
        return tuple(frame for frame in self.frames if frame.in_app)

    @property
    def top_frame(self) -> StackFrame | None:
        """The frame where the error was thrown, if any."""
        return self.frames[0] if self.frames else None

    @property
    def is_resolved(self) -> bool:
        """True when at least one frame was mapped back to original source."""
        return any(frame.resolved for frame in self.frames)

    def with_frames(self, frames: tuple[StackFrame, ...]) -> ParsedStackTrace:
        return replace(self, frames=frames)

    def to_record(self) -> dict[str, Any]:
        return {
            "frames": [frame.to_record() for frame in self.frames],
            "raw": self.raw,
            "parser": self.parser.value,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> ParsedStackTrace:
        return cls(
            frames=tuple(StackFrame.from_record(f) for f in record.get("frames", [])),
            raw=record.get("raw", ""),
            parser=StackParserKind(record.get("parser", StackParserKind.UNKNOWN)),
        )
