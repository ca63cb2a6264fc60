"""Base repository with common table operations"""
from typing import Generic, TypeVar, Type, Optional, List, Dict, Any
from pydantic import BaseModel
from supabase import Client

T = TypeVar('T', bound=BaseModel)
CreateT = TypeVar('CreateT', bound=BaseModel)
UpdateT = TypeVar('UpdateT', bound=BaseModel)


class BaseRepository(Generic[T, CreateT, UpdateT]):
    """
    Base repository providing common table operations.
    Hides Supabase query-builder details from the services.

    Filters are plain dicts: scalar values become ``eq``, lists/tuples become
    ``in_`` and ``None`` becomes ``is null``.
    """

    def __init__(self, client: Client, table_name: str, model_class: Type[T]):
        self._client = client
        self._table_name = table_name
        self._model_class = model_class

    def _to_model(self, data: Dict[str, Any]) -> T:
        """Convert database row to domain model"""
        return self._model_class(**data)

    def _to_models(self, data: List[Dict[str, Any]]) -> List[T]:
        """Convert list of database rows to domain models"""
        return [self._to_model(item) for item in data]

    @staticmethod
    def _apply_filters(query, filters: Optional[Dict[str, Any]]):
        for key, value in (filters or {}).items():
            if value is None:
                query = query.is_(key, "null")
            elif isinstance(value, (list, tuple)):
                query = query.in_(key, list(value))
            else:
                query = query.eq(key, value)
        return query

    async def find_by_id(self, id: str) -> Optional[T]:
        """Find a single record by ID"""
        response = self._client.table(self._table_name).select("*").eq("id", id).execute()

        if not response.data:
            return None

        return self._to_model(response.data[0])

    async def find_by_filters(
        self,
        filters: Dict[str, Any],
        limit: Optional[int] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[T]:
        """Find records matching filters"""
        query = self._apply_filters(self._client.table(self._table_name).select("*"), filters)

        if order_by:
            query = query.order(order_by, desc=descending)

        if limit:
            query = query.limit(limit)

        response = query.execute()
        return self._to_models(response.data)

    async def find_one(
        self,
        filters: Dict[str, Any],
        order_by: Optional[str] = "created_at",
        descending: bool = True,
    ) -> Optional[T]:
        """Find the first record matching filters (newest first by default)"""
        results = await self.find_by_filters(filters, limit=1, order_by=order_by, descending=descending)
        return results[0] if results else None

    async def create(self, data: CreateT) -> T:
        """Insert a new record"""
        data_dict = data.model_dump(exclude_unset=True, mode='json')
        response = self._client.table(self._table_name).insert(data_dict).execute()

        if not response.data:
            raise ValueError(f"Failed to create record in {self._table_name}")

        return self._to_model(response.data[0])

    async def update(self, id: str, data: UpdateT) -> Optional[T]:
        """Update a record by ID"""
        return await self.update_where(id, data)

    async def update_where(
        self,
        id: str,
        data: UpdateT,
        expected: Optional[Dict[str, Any]] = None,
    ) -> Optional[T]:
        """
        Update a record by ID, only if its current columns match ``expected``.

        Returns None when no row matched, which for a guarded update means
        another writer changed the row first.
        """
        data_dict = data.model_dump(exclude_unset=True, mode='json')

        if not data_dict:
            # No fields to update
            return await self.find_by_id(id)

        query = self._client.table(self._table_name).update(data_dict).eq("id", id)
        query = self._apply_filters(query, expected)
        response = query.execute()

        if not response.data:
            return None

        return self._to_model(response.data[0])
