import asyncio
import logging
from dataclasses import dataclass
from typing import Annotated, Callable, Optional

from fastapi import Depends

from bq_viewer.core import schemas
from bq_viewer.core.config import settings
from bq_viewer.core.errors import AuthError
from bq_viewer.core.warehouse import WarehouseClient, build_client, normalize_private_key

logger = logging.getLogger(__name__)


# Credentials and client live in one immutable object so they are swapped together
@dataclass(frozen=True)
class Connection:
    project_id: str
    client_email: str
    warehouse: WarehouseClient


class WarehouseSession:
    """
    Holds the single BigQuery connection of the process.

    Empty at startup, set by connect, cleared by disconnect or a failed
    connect. Mutations are serialised by a lock, reads just take the current
    connection object.
    """

    def __init__(
        self,
        client_factory: Callable = build_client,
        location: Optional[str] = None,
        query_timeout: Optional[float] = None,
    ):
        self._client_factory = client_factory
        self._location = location
        self._query_timeout = query_timeout
        self._connection: Optional[Connection] = None
        self._lock = asyncio.Lock()

    @property
    def connection(self) -> Optional[Connection]:
        return self._connection

    def status(self) -> schemas.StatusResponse:
        connection = self._connection
        return schemas.StatusResponse(
            connected=connection is not None,
            project_id=connection.project_id if connection else None,
        )

    def require(self) -> Connection:
        connection = self._connection
        if connection is None:
            raise AuthError("Not connected to BigQuery")
        return connection

    async def connect(self, project_id: str, client_email: str, private_key: str) -> Connection:
        async with self._lock:
            warehouse = None
            try:
                client = await asyncio.to_thread(
                    self._client_factory,
                    project_id,
                    client_email,
                    normalize_private_key(private_key),
                    self._location,
                )
                warehouse = WarehouseClient(client, query_timeout=self._query_timeout)
                await warehouse.verify()
            except Exception as error:
                # Never keep the old connection around after a failed attempt
                self._connection = None
                if warehouse is not None:
                    warehouse.close()
                logger.error(f"Connection to project {project_id} failed: {error}")
                raise AuthError(f"Authentication failed: {error}") from error

            # The private key is not kept, only the client built from it
            self._connection = Connection(
                project_id=project_id, client_email=client_email, warehouse=warehouse
            )
            logger.info(f"Connected to BigQuery project {project_id} as {client_email}")
            return self._connection

    async def disconnect(self):
        async with self._lock:
            if self._connection is not None:
                logger.info(f"Disconnected from BigQuery project {self._connection.project_id}")
            # In-flight requests may still hold the old client, so it is not closed here
            self._connection = None


session = WarehouseSession(
    location=settings.BIGQUERY_LOCATION, query_timeout=settings.QUERY_TIMEOUT
)


# The "Bridge" that gives routes access to the connection
def get_session() -> WarehouseSession:
    return session


# Raises 401 before the handler runs when nothing is connected
def get_connection(
    session: Annotated[WarehouseSession, Depends(get_session)],
) -> Connection:
    return session.require()
