from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from bq_viewer.core import schemas
from bq_viewer.core.config import settings
from bq_viewer.core.errors import ValidationError
from bq_viewer.core.session import (
    Connection,
    WarehouseSession,
    get_connection,
    get_session,
)

router = APIRouter(prefix="/api/bigquery", tags=["BigQuery"])

session_dep = Annotated[WarehouseSession, Depends(get_session)]
connection_dep = Annotated[Connection, Depends(get_connection)]


def parse_int(value: Optional[str], default: int) -> int:
    """Parse a query param, falling back to the default on junk input."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def check_identifier(value: str):
    # Identifiers go into a backtick-quoted table name
    if not value or "`" in value:
        raise ValidationError(f"Invalid identifier: {value}")


@router.get("/status", response_model=schemas.StatusResponse)
async def get_status(session: session_dep):
    return session.status()


@router.post("/connect", response_model=schemas.ConnectResponse)
async def connect(
    session: session_dep, credentials: Optional[schemas.ConnectRequest] = None
):
    """
    Build a client from the service account fields and check it with a
    datasets call. A failure leaves the session disconnected.
    """
    if (
        credentials is None
        or not credentials.project_id
        or not credentials.client_email
        or not credentials.private_key
    ):
        raise ValidationError("Missing required credentials")

    await session.connect(
        credentials.project_id, credentials.client_email, credentials.private_key
    )
    return schemas.ConnectResponse(message="Connected to BigQuery")


@router.post("/disconnect", response_model=schemas.SuccessResponse)
async def disconnect(session: session_dep):
    await session.disconnect()
    return schemas.SuccessResponse()


@router.get("/datasets", response_model=schemas.DatasetListResponse)
async def list_datasets(connection: connection_dep):
    datasets = await connection.warehouse.list_datasets()
    return schemas.DatasetListResponse(datasets=datasets)


@router.get("/tables/{dataset_id}", response_model=schemas.TableListResponse)
async def list_tables(dataset_id: str, connection: connection_dep):
    tables = await connection.warehouse.list_tables(dataset_id)
    return schemas.TableListResponse(tables=tables)


@router.get("/data/{dataset_id}/{table_id}", response_model=schemas.TablePageResponse)
async def get_table_data(
    dataset_id: str,
    table_id: str,
    connection: connection_dep,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
):
    """
    Return one page of rows with the table's schema and row count.
    Paging is plain LIMIT/OFFSET so row order between pages is not guaranteed.
    """
    check_identifier(dataset_id)
    check_identifier(table_id)

    page_size = parse_int(limit, settings.DEFAULT_PAGE_SIZE)
    if page_size <= 0:
        page_size = settings.DEFAULT_PAGE_SIZE
    start = max(parse_int(offset, 0), 0)

    table_schema = await connection.warehouse.get_table_schema(dataset_id, table_id)
    rows = await connection.warehouse.query_page(
        connection.project_id, dataset_id, table_id, page_size, start
    )
    return schemas.TablePageResponse(
        rows=rows, schema_=table_schema.columns, total=table_schema.num_rows
    )


@router.post("/query", response_model=schemas.QueryResult)
async def run_query(
    connection: connection_dep, payload: Optional[schemas.QueryRequest] = None
):
    """Run caller SQL as-is."""
    if payload is None or not payload.query or not payload.query.strip():
        raise ValidationError("Query is required")

    return await connection.warehouse.run_query(payload.query)
