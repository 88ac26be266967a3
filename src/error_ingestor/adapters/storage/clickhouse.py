"""ClickHouse source map store over the HTTP interface.

Source maps live in the ``source_maps`` table::

    app_id String, app_version String, file_name String,
    source_map String, created_at DateTime DEFAULT now()

Values are always sent as server-side query parameters (``{name:String}``
placeholders bound by ``param_name`` URL parameters), never interpolated
into SQL. Transient transport errors are retried; everything else surfaces
as ``StorageError``.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog

from ...config.schema import ClickHouseConfig, RetryConfig
from ...models.source_map import SourceMapInfo, SourceMapRecord
from ...utils.async_helpers import StorageError, create_retry
from ...utils.logging import LogEventNames

log = structlog.get_logger()

TABLE_NAME = "source_maps"


def _parse_rows(text: str) -> list[dict[str, Any]]:
    """Decode a JSONEachRow response body."""
    return [json.loads(line) for line in text.splitlines() if line.strip()]


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class ClickHouseSourceMapStore:
    """SourceMapStore backed by ClickHouse.

    Example:
        async with ClickHouseSourceMapStore(ClickHouseConfig()) as store:
            document = await store.get_source_map("my-app", "1.4.0", "index.bundle")
    """

    def __init__(
        self,
        config: ClickHouseConfig,
        retry_config: RetryConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            config: Connection settings
            retry_config: Retry policy for transient transport errors
            client: Pre-built HTTP client (tests inject one with a mock transport)
        """
        self._config = config
        self._client = client or httpx.AsyncClient(
            base_url=config.host,
            timeout=config.timeout,
        )
        self._owns_client = client is None

        retry_config = retry_config or RetryConfig()
        self._send_with_retry = create_retry(
            max_attempts=retry_config.max_attempts,
            min_wait=retry_config.min_wait,
            max_wait=retry_config.max_wait,
        )(self._send_once)

    async def __aenter__(self) -> ClickHouseSourceMapStore:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this store created it."""
        if self._owns_client:
            await self._client.aclose()

    async def ping(self) -> bool:
        """Check that the server answers on /ping."""
        try:
            response = await self._client.get("/ping")
        except httpx.HTTPError:
            return False
        return response.status_code == 200

    async def get_source_map(
        self,
        app_id: str,
        app_version: str,
        file_name: str,
    ) -> str | None:
        rows = await self._query(
            f"""
            SELECT source_map
            FROM {TABLE_NAME}
            WHERE app_id = {{app_id:String}}
              AND app_version = {{app_version:String}}
              AND file_name = {{file_name:String}}
            ORDER BY created_at DESC
            LIMIT 1
            FORMAT JSONEachRow
            """,
            app_id=app_id,
            app_version=app_version,
            file_name=file_name,
        )
        return str(rows[0]["source_map"]) if rows else None

    async def insert_source_map(self, record: SourceMapRecord) -> None:
        row = {
            "app_id": record.app_id,
            "app_version": record.app_version,
            "file_name": record.file_name,
            "source_map": record.source_map,
        }
        query = (
            f"INSERT INTO {TABLE_NAME} (app_id, app_version, file_name, source_map) "
            "FORMAT JSONEachRow"
        )
        await self._request({"query": query}, json.dumps(row))

    async def list_source_maps(
        self,
        app_id: str,
        app_version: str | None = None,
    ) -> list[SourceMapInfo]:
        conditions = ["app_id = {app_id:String}"]
        params = {"app_id": app_id}
        if app_version:
            conditions.append("app_version = {app_version:String}")
            params["app_version"] = app_version

        rows = await self._query(
            f"""
            SELECT file_name, app_version, toString(created_at) AS created_at
            FROM {TABLE_NAME}
            WHERE {" AND ".join(conditions)}
            ORDER BY created_at DESC
            FORMAT JSONEachRow
            """,
            **params,
        )
        return [
            SourceMapInfo(
                file_name=row["file_name"],
                app_version=row["app_version"],
                created_at=_parse_timestamp(row["created_at"]),
            )
            for row in rows
        ]

    async def delete_source_maps(self, app_id: str, app_version: str) -> None:
        await self._request(
            {
                "param_app_id": app_id,
                "param_app_version": app_version,
            },
            f"ALTER TABLE {TABLE_NAME} "
            "DELETE WHERE app_id = {app_id:String} AND app_version = {app_version:String}",
        )

    async def _query(self, sql: str, **params: str) -> list[dict[str, Any]]:
        url_params = {f"param_{name}": value for name, value in params.items()}
        response = await self._request(url_params, sql)
        try:
            return _parse_rows(response.text)
        except json.JSONDecodeError as e:
            raise StorageError(f"Unexpected ClickHouse response: {e}") from e

    async def _send_once(self, params: dict[str, str], body: str) -> httpx.Response:
        headers = {
            "X-ClickHouse-User": self._config.username,
            "X-ClickHouse-Key": self._config.password,
            "X-ClickHouse-Database": self._config.database,
        }
        response = await self._client.post("/", params=params, content=body, headers=headers)

        if response.status_code != 200:
            log.error(
                LogEventNames.STORAGE_REQUEST_FAILED,
                status_code=response.status_code,
                error=response.text[:500],
            )
            raise StorageError(
                f"ClickHouse request failed ({response.status_code}): {response.text[:200]}"
            )
        return response

    async def _request(self, params: dict[str, str], body: str) -> httpx.Response:
        try:
            return await self._send_with_retry(params, body)
        except httpx.HTTPError as e:
            log.error(LogEventNames.STORAGE_REQUEST_FAILED, error=str(e))
            raise StorageError(f"ClickHouse request failed: {e}") from e
