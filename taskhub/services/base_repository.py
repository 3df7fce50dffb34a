"""
Base repository with common CRUD functionality
"""

import asyncio
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar, Union
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from taskhub.config.settings import settings
from taskhub.services.entity_cache import EntityCache
from taskhub.storage.base_storage import BaseStorage
from taskhub.utils.date_utils import generate_id, get_current_datetime
from taskhub.utils.error_handler import (
    ConflictError,
    DuplicateError,
    ValidationError,
    validation_error_from_pydantic,
)
from taskhub.utils.logger import logger

T = TypeVar("T", bound=BaseModel)

PROTECTED_FIELDS = {"id", "version", "created_at"}


class BaseRepository(Generic[T]):
    """
    Repository over one storage key holding an id -> record map

    Reads go through a short-TTL id cache. Mutations are serialized by a
    per-instance lock so read-modify-write cycles never interleave.
    Entities handed out are copies; mutate them and pass them back through
    update() to persist.
    """

    protected_fields = PROTECTED_FIELDS

    def __init__(
        self,
        storage: BaseStorage,
        storage_key: str,
        model_class: Type[T],
        entity_label: str,
        id_prefix: str,
        cache_ttl: Optional[float] = None,
    ):
        """
        Initialize repository

        Args:
            storage: Storage backend
            storage_key: Key holding the collection
            model_class: Pydantic model of the entities
            entity_label: Human-readable entity name for messages
            id_prefix: Prefix for generated ids
            cache_ttl: Cache TTL in seconds (defaults to settings)
        """
        self.storage = storage
        self.storage_key = storage_key
        self.model_class = model_class
        self.entity_label = entity_label
        self.id_prefix = id_prefix
        self.logger = logger
        self._log_prefix = f"[{type(self).__name__}]"
        ttl = settings.CACHE_TTL_SECONDS if cache_ttl is None else cache_ttl
        self.cache = EntityCache(ttl_seconds=ttl, name=type(self).__name__)
        self._lock = asyncio.Lock()

    # Record helpers

    async def _load_records(self) -> Dict[str, Dict[str, Any]]:
        raw = await self.storage.load(self.storage_key, {})
        if raw is None:
            return {}
        if isinstance(raw, list):
            # Collections stored as plain arrays are re-indexed by id
            return {item["id"]: item for item in raw if isinstance(item, dict) and item.get("id")}
        if not isinstance(raw, dict):
            self.logger.warning(
                f"{self._log_prefix} Unexpected data under '{self.storage_key}': {type(raw).__name__}, ignoring"
            )
            return {}
        return raw

    async def _save_records(self, records: Dict[str, Dict[str, Any]]) -> None:
        await self.storage.save(self.storage_key, records)

    def _to_record(self, entity: T) -> Dict[str, Any]:
        return entity.model_dump(mode="json", by_alias=True)

    def _to_entity(self, record: Any) -> Optional[T]:
        try:
            return self.model_class.model_validate(record)
        except PydanticValidationError as e:
            record_id = record.get("id") if isinstance(record, dict) else None
            self.logger.warning(f"{self._log_prefix} Skipping malformed {self.entity_label} {record_id}: {e}")
            return None

    def _build(self, data: Union[T, Dict[str, Any]]) -> T:
        if isinstance(data, self.model_class):
            return data.model_copy(deep=True)
        try:
            return self.model_class.model_validate(data)
        except PydanticValidationError as e:
            raise validation_error_from_pydantic(e)

    def _field_name(self, key: str) -> Optional[str]:
        fields = self.model_class.model_fields
        if key in fields:
            return key
        for name, info in fields.items():
            if info.alias == key:
                return name
        return None

    def _normalize_changes(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        normalized: Dict[str, Any] = {}
        for key, value in changes.items():
            name = self._field_name(key)
            if name is None:
                raise ValidationError(f"Unknown field: {key}")
            if name in self.protected_fields:
                raise ValidationError(f"Field cannot be updated: {name}")
            normalized[name] = value
        return normalized

    async def _check_unique(self, entity: T, entities: List[T]) -> None:
        """Raise DuplicateError when entity collides with another; no constraints by default"""
        pass

    async def _all_entities(self) -> List[T]:
        records = await self._load_records()
        entities = []
        for record in records.values():
            entity = self._to_entity(record)
            if entity is not None:
                entities.append(entity)
        return entities

    # CRUD

    async def create(self, data: Union[T, Dict[str, Any]]) -> T:
        """
        Create entity

        Args:
            data: Entity or field dict; an id is generated when missing

        Returns:
            Stored entity

        Raises:
            ValidationError: If data fails model validation
            DuplicateError: If the id or a unique field is taken
        """
        entity = self._build(data)

        async with self._lock:
            records = await self._load_records()
            if not entity.id:
                entity.id = generate_id(self.id_prefix)
            elif entity.id in records:
                raise DuplicateError(f"{self.entity_label} with ID {entity.id} already exists")

            others = [e for e in (self._to_entity(r) for r in records.values()) if e is not None]
            await self._check_unique(entity, others)

            records[entity.id] = self._to_record(entity)
            await self._save_records(records)
            self.cache.set(entity.id, entity.model_copy(deep=True))

        self.logger.info(f"{self._log_prefix} Created {self.entity_label.lower()} {entity.id}")
        return entity

    async def find_by_id(self, entity_id: Optional[str]) -> Optional[T]:
        """
        Find entity by id

        Returns:
            Entity copy or None when absent
        """
        if not entity_id:
            return None

        cached = self.cache.get(entity_id)
        if cached is not None:
            self.logger.debug(f"{self._log_prefix} Cache hit for {entity_id}")
            return cached.model_copy(deep=True)

        records = await self._load_records()
        record = records.get(entity_id)
        if record is None:
            return None

        entity = self._to_entity(record)
        if entity is None:
            return None

        self.cache.set(entity_id, entity.model_copy(deep=True))
        return entity

    async def find_all(
        self,
        filters: Optional[Dict[str, Any]] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "asc",
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[T]:
        """
        Find entities matching filters

        Args:
            filters: Field -> expected value. Lists/sets/tuples match by
                membership, callables are used as predicates on the field value
            sort_by: Field to sort by (None values sort last)
            sort_order: "asc" or "desc"
            limit: Maximum number of results
            offset: Number of results to skip

        Returns:
            Matching entities
        """
        entities = await self._all_entities()

        if filters:
            entities = [e for e in entities if self._matches(e, filters)]

        if sort_by:
            field = self._field_name(sort_by)
            if field is None:
                raise ValidationError(f"Unknown field: {sort_by}")
            present = [e for e in entities if getattr(e, field) is not None]
            missing = [e for e in entities if getattr(e, field) is None]
            present.sort(key=lambda e: getattr(e, field), reverse=sort_order == "desc")
            entities = present + missing

        if offset:
            entities = entities[offset:]
        if limit is not None:
            entities = entities[:limit]

        return entities

    def _matches(self, entity: T, filters: Dict[str, Any]) -> bool:
        for key, expected in filters.items():
            if expected is None:
                continue
            field = self._field_name(key)
            if field is None:
                raise ValidationError(f"Unknown field: {key}")
            actual = getattr(entity, field)
            if callable(expected):
                if not expected(actual):
                    return False
            elif isinstance(expected, (list, tuple, set)):
                if actual not in expected:
                    return False
            elif actual != expected:
                return False
        return True

    async def update(
        self,
        entity_id: str,
        changes: Union[T, Dict[str, Any]],
        expected_version: Optional[int] = None,
    ) -> Optional[T]:
        """
        Update entity

        Args:
            entity_id: Entity id
            changes: Field dict to merge, or a full entity to store
            expected_version: Reject with ConflictError if the stored version differs

        Returns:
            Updated entity or None when absent
        """
        async with self._lock:
            records = await self._load_records()
            record = records.get(entity_id)
            current = self._to_entity(record) if record is not None else None
            if current is None:
                self.logger.debug(f"{self._log_prefix} Update skipped, {entity_id} not found")
                return None

            if expected_version is not None and current.version != expected_version:
                raise ConflictError(
                    f"{self.entity_label} {entity_id} was modified concurrently "
                    f"(expected version {expected_version}, found {current.version})"
                )

            if isinstance(changes, BaseModel):
                data = changes.model_dump()
            else:
                data = current.model_dump()
                data.update(self._normalize_changes(changes))

            data["id"] = entity_id
            data["created_at"] = current.created_at
            data["version"] = current.version + 1
            data["updated_at"] = get_current_datetime()

            try:
                updated = self.model_class.model_validate(data)
            except PydanticValidationError as e:
                raise validation_error_from_pydantic(e)

            others = [
                e for key, r in records.items() if key != entity_id
                for e in [self._to_entity(r)] if e is not None
            ]
            await self._check_unique(updated, others)

            records[entity_id] = self._to_record(updated)
            await self._save_records(records)
            self.cache.set(entity_id, updated.model_copy(deep=True))

        self.logger.debug(f"{self._log_prefix} Updated {entity_id} (version {updated.version})")
        return updated

    async def delete(self, entity_id: str) -> bool:
        """
        Delete entity

        Returns:
            True if deleted, False if the id was unknown
        """
        async with self._lock:
            records = await self._load_records()
            if entity_id not in records:
                return False

            del records[entity_id]
            await self._save_records(records)
            self.cache.invalidate(entity_id)

        self.logger.info(f"{self._log_prefix} Deleted {self.entity_label.lower()} {entity_id}")
        return True

    async def exists(self, entity_id: str) -> bool:
        return await self.find_by_id(entity_id) is not None

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        return len(await self.find_all(filters))

    async def find_where(self, predicate: Callable[[T], bool]) -> List[T]:
        return [e for e in await self._all_entities() if predicate(e)]

    def clear_cache(self) -> None:
        self.cache.clear()
