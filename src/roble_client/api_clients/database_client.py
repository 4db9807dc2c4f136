"""Database API Client for the Roble data service.

Table creation and record CRUD. Every call goes through the base client's
engine, so a stale access token is refreshed transparently.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from .base_client import RobleAPIClient
from .errors import RecordInsertError

logger = logging.getLogger(__name__)

ID_COLUMN = "_id"
IDENTITY_FIELDS = ("_id", "id")


class DatabaseAPIClient(RobleAPIClient):
    """Client for table and record operations against the data service."""

    async def create_table(
        self,
        table_name: str,
        columns: List[Dict[str, Any]],
        description: Optional[str] = None,
    ) -> None:
        """Create a table.

        Args:
            table_name: Name of the new table
            columns: Column definitions, e.g. ``[{"name": "title", "type": "text"}]``
            description: Optional table description
        """
        await self.execute(
            "POST",
            "create-table",
            body={
                "tableName": table_name,
                "description": description or f"Table {table_name} created from client",
                "columns": columns,
            },
        )
        logger.info(f"Created table {table_name}")

    async def get_table_data(self, table_name: str, schema: str = "public") -> Any:
        """Return the table description as sent by the server (JSON, text or None)."""
        response = await self.execute(
            "GET",
            "table-data",
            query_params={"schema": schema, "table": table_name},
        )
        return response.value

    async def create(self, table_name: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert one record and return it as stored.

        Returns:
            The first element of the reply's ``inserted`` list, or the reply
            itself when it is an object without one

        Raises:
            RecordInsertError: If the reply is neither of those shapes
        """
        response = await self.execute(
            "POST",
            "insert",
            body={"tableName": table_name, "records": [dict(record)]},
        )

        payload = response.as_dict()
        if payload is not None:
            inserted = payload.get("inserted")
            if isinstance(inserted, list) and inserted and isinstance(inserted[0], dict):
                return dict(inserted[0])
            return dict(payload)

        raise RecordInsertError(
            f"could not insert record into {table_name}",
            status_code=response.status_code,
        )

    async def read(
        self, table_name: str, filters: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Read records, optionally filtered by column equality.

        Any reply that is neither a list nor an object with a ``data`` list
        yields an empty list.
        """
        query_params: Dict[str, Any] = {"tableName": table_name}
        if filters:
            query_params.update(filters)

        response = await self.execute("GET", "read", query_params=query_params)

        rows = response.as_list()
        if rows is None:
            payload = response.as_dict()
            data = payload.get("data") if payload else None
            rows = data if isinstance(data, list) else []
        return [dict(row) for row in rows if isinstance(row, dict)]

    async def update(
        self, table_name: str, record_id: Any, data: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """Update the record whose ``_id`` is ``record_id``.

        Identity fields (``_id``, ``id``) are removed from ``data`` before
        sending; the caller's mapping is not modified.
        """
        updates = {k: v for k, v in data.items() if k not in IDENTITY_FIELDS}
        response = await self.execute(
            "PUT",
            "update",
            body={
                "tableName": table_name,
                "idColumn": ID_COLUMN,
                "idValue": record_id,
                "updates": updates,
            },
        )
        return dict(response.as_dict() or {})

    async def delete(self, table_name: str, record_id: Any) -> Dict[str, Any]:
        """Delete the record whose ``_id`` is ``record_id``."""
        response = await self.execute(
            "DELETE",
            "delete",
            body={"tableName": table_name, "idColumn": ID_COLUMN, "idValue": record_id},
        )
        return dict(response.as_dict() or {})

    async def get_all(self, table_name: str) -> List[Dict[str, Any]]:
        return await self.read(table_name)

    async def get_by_id(self, table_name: str, record_id: Any) -> Optional[Dict[str, Any]]:
        rows = await self.read(table_name, filters={ID_COLUMN: record_id})
        return rows[0] if rows else None

    async def get_where(
        self, table_name: str, column: str, value: Any
    ) -> List[Dict[str, Any]]:
        return await self.read(table_name, filters={column: value})
