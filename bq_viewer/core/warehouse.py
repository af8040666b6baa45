"""BigQuery client adapter.

Wraps ``google.cloud.bigquery.Client`` with the handful of operations the API
needs and reshapes SDK objects into the response schemas. Every SDK call is
blocking, so it runs in a worker thread and any failure is re-raised as
``UpstreamError`` carrying the SDK's own message.
"""
import asyncio
import base64
import datetime
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from google.cloud import bigquery
from google.oauth2 import service_account

from bq_viewer.core import schemas
from bq_viewer.core.errors import UpstreamError

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"

# Column type reported for ad hoc results that carry no schema metadata
UNKNOWN_TYPE = "UNKNOWN"


def normalize_private_key(private_key: str) -> str:
    """Turn escaped ``\\n`` sequences from single-line JSON into real newlines."""
    return private_key.replace("\\n", "\n")


def build_client(
    project_id: str,
    client_email: str,
    private_key: str,
    location: Optional[str] = None,
) -> bigquery.Client:
    """Build a BigQuery client from service account fields."""
    credentials = service_account.Credentials.from_service_account_info(
        {
            "type": "service_account",
            "project_id": project_id,
            "client_email": client_email,
            "private_key": private_key,
            "token_uri": TOKEN_URI,
        }
    )
    return bigquery.Client(
        project=project_id, credentials=credentials, location=location
    )


def to_json_value(value: Any) -> Any:
    """Convert a BigQuery cell value into something JSON can carry."""
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {key: to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(item) for item in value]
    return value


def row_to_record(row) -> Dict[str, Any]:
    return {name: to_json_value(value) for name, value in row.items()}


def column_schema(fields) -> List[schemas.ColumnSchema]:
    return [
        schemas.ColumnSchema(
            name=field.name,
            type=field.field_type,
            mode=field.mode,
            fields=column_schema(field.fields) if field.fields else None,
        )
        for field in fields or []
    ]


def quote_table_name(project_id: str, dataset_id: str, table_id: str) -> str:
    return f"`{project_id}.{dataset_id}.{table_id}`"


def page_query(
    project_id: str, dataset_id: str, table_id: str, limit: int, offset: int
) -> str:
    # No ORDER BY: pages are only stable if the table has a natural order
    table_name = quote_table_name(project_id, dataset_id, table_id)
    return f"SELECT * FROM {table_name} LIMIT {int(limit)} OFFSET {int(offset)}"


class WarehouseClient:
    """Async facade over a connected ``bigquery.Client``."""

    def __init__(self, client: bigquery.Client, query_timeout: Optional[float] = None):
        self._client = client
        self._query_timeout = query_timeout

    @property
    def project(self) -> str:
        return self._client.project

    async def _call(self, operation: str, func, *args, **kwargs):
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except Exception as error:
            logger.error(f"BigQuery {operation} failed: {error}")
            raise UpstreamError(str(error)) from error

    async def verify(self):
        """Cheap round trip used to prove the credentials work."""

        def _check():
            return list(self._client.list_datasets(max_results=1))

        # Not logged here, the session reports the failed connect
        try:
            await asyncio.to_thread(_check)
        except Exception as error:
            raise UpstreamError(str(error)) from error

    async def list_datasets(self) -> List[schemas.DatasetSummary]:
        def _list():
            return list(self._client.list_datasets())

        datasets = await self._call("list datasets", _list)
        # The list API returns location but DatasetListItem has no accessor for it
        return [
            schemas.DatasetSummary(
                id=item.dataset_id, location=getattr(item, "_properties", {}).get("location")
            )
            for item in datasets
        ]

    async def list_tables(self, dataset_id: str) -> List[schemas.TableSummary]:
        def _list():
            return list(self._client.list_tables(dataset_id))

        tables = await self._call("list tables", _list)
        return [
            schemas.TableSummary(id=item.table_id, type=item.table_type)
            for item in tables
        ]

    async def get_table_schema(self, dataset_id: str, table_id: str) -> schemas.TableSchema:
        table = await self._call(
            "get table", self._client.get_table, f"{self.project}.{dataset_id}.{table_id}"
        )
        return schemas.TableSchema(
            columns=column_schema(table.schema), num_rows=table.num_rows
        )

    def _execute(self, sql: str):
        job = self._client.query(sql)
        result = job.result(timeout=self._query_timeout)
        return [row_to_record(row) for row in result], list(result.schema or [])

    async def query_page(
        self, project_id: str, dataset_id: str, table_id: str, limit: int, offset: int
    ) -> List[Dict[str, Any]]:
        sql = page_query(project_id, dataset_id, table_id, limit, offset)
        rows, _ = await self._call("page query", self._execute, sql)
        return rows

    async def run_query(self, sql: str) -> schemas.QueryResult:
        rows, fields = await self._call("query", self._execute, sql)
        if fields:
            columns = column_schema(fields)
        elif rows:
            columns = [
                schemas.ColumnSchema(name=name, type=UNKNOWN_TYPE) for name in rows[0]
            ]
        else:
            columns = []
        return schemas.QueryResult(rows=rows, schema_=columns)

    def close(self):
        try:
            self._client.close()
        except Exception as error:
            logger.warning(f"Failed to close BigQuery client: {error}")
