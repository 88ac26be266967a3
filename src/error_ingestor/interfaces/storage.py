"""Abstract interface for source map storage."""

from typing import Protocol

from ..models.source_map import SourceMapInfo, SourceMapRecord


class SourceMapStore(Protocol):
    """Abstract interface for the store holding uploaded source maps.

    Documents are keyed by (app_id, app_version, file_name). When the same
    key is uploaded more than once, the most recent upload wins.
    """

    async def get_source_map(
        self,
        app_id: str,
        app_version: str,
        file_name: str,
    ) -> str | None:
        """
        Fetch the raw source map document for a bundle file.

        Args:
            app_id: Application identifier
            app_version: Application version the bundle was built for
            file_name: Bundle file name (last path segment)

        Returns:
            The raw JSON document, or None if nothing was uploaded

        Raises:
            StorageError: If the store cannot be queried
        """
        ...

    async def insert_source_map(self, record: SourceMapRecord) -> None:
        """
        Store a source map document.

        Raises:
            StorageError: If the document cannot be stored
        """
        ...

    async def list_source_maps(
        self,
        app_id: str,
        app_version: str | None = None,
    ) -> list[SourceMapInfo]:
        """
        List stored source maps, newest first.

        Args:
            app_id: Application identifier
            app_version: Restrict the listing to one version

        Raises:
            StorageError: If the store cannot be queried
        """
        ...

    async def delete_source_maps(self, app_id: str, app_version: str) -> None:
        """
        Delete every source map of an app version.

        Raises:
            StorageError: If the delete fails
        """
        ...
