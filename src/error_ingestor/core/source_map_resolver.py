"""Source map resolution for parsed stack traces.

Maps minified frame locations back to original source using the source maps
uploaded for an app version. Resolution degrades silently: a frame without
a usable map or mapping comes back unchanged.
"""

from __future__ import annotations

import asyncio
from urllib.parse import urlsplit

import structlog

from error_ingestor.core.source_map_cache import SourceMapCache, validate_app_scope
from error_ingestor.models.stacktrace import ParsedStackTrace, StackFrame
from error_ingestor.utils.logging import LogEventNames
from error_ingestor.utils.metrics import MetricsRegistry

log = structlog.get_logger()


def extract_bundle_name(file_name: str) -> str:
    """Extract the bundle file name from a frame's file path or URL.

    Example:
        extract_bundle_name("http://localhost:8081/index.bundle?platform=ios")
        # -> "index.bundle"
    """
    try:
        path = urlsplit(file_name).path
    except ValueError:
        path = file_name
    return path.rsplit("/", 1)[-1] or file_name


class SourceMapResolver:
    """Resolves frames to their original source locations.

    Example:
        resolver = SourceMapResolver(cache)
        resolved = await resolver.resolve_stack(trace, "my-app", "1.4.0")
        for frame in resolved.frames:
            if frame.resolved:
                print(frame.original_file_name, frame.original_line_number)
    """

    def __init__(self, cache: SourceMapCache, metrics: MetricsRegistry | None = None) -> None:
        self._cache = cache
        self._metrics = metrics

    @property
    def cache(self) -> SourceMapCache:
        return self._cache

    async def resolve_frame(
        self,
        frame: StackFrame,
        app_id: str,
        app_version: str,
    ) -> StackFrame:
        """Resolve one frame.

        Args:
            frame: Frame to resolve
            app_id: Application identifier
            app_version: Version whose source maps apply

        Returns:
            A resolved copy of the frame, or the frame itself when it cannot
            be resolved

        Raises:
            InvalidIdentifierError: If app_id or app_version is invalid
        """
        validate_app_scope(app_id, app_version)
        resolved = await self._resolve(frame, app_id, app_version)
        self._record(resolved)
        return resolved

    async def resolve_stack(
        self,
        trace: ParsedStackTrace,
        app_id: str,
        app_version: str,
    ) -> ParsedStackTrace:
        """Resolve all frames of a trace concurrently, keeping frame order.

        Raises:
            InvalidIdentifierError: If app_id or app_version is invalid
        """
        validate_app_scope(app_id, app_version)
        frames = await asyncio.gather(
            *(self._resolve(frame, app_id, app_version) for frame in trace.frames)
        )
        for frame in frames:
            self._record(frame)

        log.debug(
            LogEventNames.STACK_RESOLVED,
            app_id=app_id,
            app_version=app_version,
            frames=len(frames),
            resolved=sum(1 for frame in frames if frame.resolved),
        )
        return trace.with_frames(tuple(frames))

    async def _resolve(self, frame: StackFrame, app_id: str, app_version: str) -> StackFrame:
        file_name, line_number = frame.file_name, frame.line_number
        if not file_name or not line_number:
            return frame

        bundle_name = extract_bundle_name(file_name)

        table = await self._cache.get(app_id, app_version, bundle_name)
        if table is None:
            return frame

        try:
            position = table.lookup(line_number, frame.column_number or 0)
        except Exception as e:
            log.warning(
                LogEventNames.FRAME_RESOLUTION_FAILED,
                app_id=app_id,
                app_version=app_version,
                bundle=bundle_name,
                line=line_number,
                column=frame.column_number,
                error=str(e),
            )
            return frame

        if position is None:
            return frame

        return frame.with_original(
            file_name=position.source,
            line_number=position.line,
            column_number=position.column,
            function_name=position.name or frame.function_name,
        )

    def _record(self, frame: StackFrame) -> None:
        if self._metrics is None:
            return
        if frame.resolved:
            self._metrics.frames_resolved.inc()
        else:
            self._metrics.frames_unresolved.inc()
