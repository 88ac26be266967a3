"""Position lookups against version 3 source maps.

Decoding is delegated to ``symbolic.SourceMapView``. Its coordinates are
0-indexed; this table takes a 1-based line and a column exactly as the
frame reports it, and reports the original line 1-based and the original
column as stored in the map.
"""

from __future__ import annotations

from symbolic import SourceMapView

from error_ingestor.models.source_map import OriginalPosition
from error_ingestor.utils.async_helpers import SourceMapParseError


class SourceMapTable:
    """A decoded source map answering original-position queries.

    Example:
        table = SourceMapTable.from_document(document)
        position = table.lookup(42, 7)
        if position is not None:
            print(position.source, position.line, position.column, position.name)
    """

    def __init__(self, view: SourceMapView) -> None:
        self._view = view

    @classmethod
    def from_document(cls, document: str | bytes) -> SourceMapTable:
        """Decode a raw source map document.

        Raises:
            SourceMapParseError: If the document is not a usable source map
        """
        data = document.encode("utf-8") if isinstance(document, str) else document
        try:
            view = SourceMapView.from_json_bytes(data)
        except Exception as e:
            raise SourceMapParseError(f"Invalid source map: {e}") from e
        return cls(view)

    def __len__(self) -> int:
        return len(self._view)

    def lookup(self, line: int, column: int) -> OriginalPosition | None:
        """Find the original position for a generated location.

        Args:
            line: 1-based generated line
            column: Generated column

        Returns:
            The original position, or None if the map has no mapping with a
            source file at that location
        """
        if line < 1:
            return None

        token = self._view.lookup(line - 1, max(column, 0))
        if token is None or not token.src:
            return None
        # The view falls back to tokens on earlier generated lines
        if token.dst_line != line - 1:
            return None

        return OriginalPosition(
            source=token.src,
            line=token.src_line + 1,
            column=token.src_col,
            name=token.name or None,
        )
