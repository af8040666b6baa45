from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# The front-end speaks camelCase, python code uses snake_case
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =========================
# CONNECTION
# =========================
class ConnectRequest(CamelModel):
    # All optional so a missing field becomes a 400 from the handler, not a 422
    project_id: Optional[str] = None
    client_email: Optional[str] = None
    private_key: Optional[str] = None


class ConnectResponse(BaseModel):
    success: bool = True
    message: str


class SuccessResponse(BaseModel):
    success: bool = True


class StatusResponse(CamelModel):
    connected: bool
    project_id: Optional[str] = None


# =========================
# BROWSING
# =========================
class DatasetSummary(BaseModel):
    id: str
    location: Optional[str] = None


class DatasetListResponse(BaseModel):
    datasets: List[DatasetSummary]


class TableSummary(BaseModel):
    id: str
    type: Optional[str] = None


class TableListResponse(BaseModel):
    tables: List[TableSummary]


class ColumnSchema(BaseModel):
    name: str
    type: str
    mode: Optional[str] = None
    # Sub-columns of RECORD columns
    fields: Optional[List["ColumnSchema"]] = None


class TableSchema(BaseModel):
    columns: List[ColumnSchema]
    num_rows: Optional[int] = None


# =========================
# DATA / QUERY
# =========================
class TablePageResponse(BaseModel):
    rows: List[Dict[str, Any]]
    schema_: List[ColumnSchema] = Field(alias="schema")
    total: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True)


class QueryRequest(BaseModel):
    query: Optional[str] = None


class QueryResult(BaseModel):
    rows: List[Dict[str, Any]]
    schema_: List[ColumnSchema] = Field(alias="schema")

    model_config = ConfigDict(populate_by_name=True)
