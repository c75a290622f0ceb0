"""Entity store: dumb document storage keyed by internal identity.

Knows nothing about foreign keys or uniqueness. Absence is reported as `None`,
never raised.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from registrar.core.enums import EntityType
from registrar.core.models import Document

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
Predicate = Union[Mapping[str, Any], Callable[[Record], bool]]

# Keys owned by the store; never persisted inside a document's data.
RESERVED_KEYS = ("id", "created_at", "updated_at")


def matches(record: Record, predicate: Optional[Predicate]) -> bool:
    if predicate is None:
        return True
    if callable(predicate):
        return bool(predicate(record))
    return all(record.get(k) == v for k, v in predicate.items())


def sort_records(records: Iterable[Record], sort: Optional[Sequence[str]]) -> List[Record]:
    """Stable multi-key sort. `-field` sorts descending; missing values always go last."""
    ordered = list(records)
    for key in reversed(sort or ()):
        descending = key.startswith("-")
        name = key[1:] if descending else key
        present = [r for r in ordered if r.get(name) is not None]
        missing = [r for r in ordered if r.get(name) is None]
        present.sort(key=lambda r: r[name], reverse=descending)
        ordered = present + missing
    return ordered


def _type_tag(entity_type: Union[EntityType, str]) -> str:
    return EntityType(entity_type).value


def _strip_reserved(fields: Mapping[str, Any]) -> Record:
    return {k: v for k, v in fields.items() if k not in RESERVED_KEYS}


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    # SQLite hands back naive datetimes; every stored timestamp is UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _to_record(doc: Document) -> Record:
    record: Record = {"id": doc.id}
    record.update(doc.data or {})
    record["created_at"] = _iso(doc.created_at)
    record["updated_at"] = _iso(doc.updated_at)
    return record


class EntityStore(ABC):
    """Persistence interface consumed by the constraint engine, resolver and coordinator."""

    @abstractmethod
    async def put(self, entity_type: EntityType, record: Mapping[str, Any]) -> str:
        """Store a new record and return its freshly assigned identity."""

    @abstractmethod
    async def get(self, entity_type: EntityType, identity: str) -> Optional[Record]:
        pass

    @abstractmethod
    async def find_one(self, entity_type: EntityType, predicate: Optional[Predicate]) -> Optional[Record]:
        pass

    @abstractmethod
    async def find_all(
        self,
        entity_type: EntityType,
        predicate: Optional[Predicate] = None,
        sort: Optional[Sequence[str]] = None,
    ) -> List[Record]:
        pass

    @abstractmethod
    async def update(self, entity_type: EntityType, identity: str, patch: Mapping[str, Any]) -> Optional[Record]:
        """Merge `patch` into the stored record. Fields not in `patch` are kept."""

    @abstractmethod
    async def delete(self, entity_type: EntityType, identity: str) -> Optional[Record]:
        """Remove the record and return it as it was before removal."""


class SQLAlchemyEntityStore(EntityStore):
    """Stores every entity type in the `documents` table, one JSON document per row."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _get_document(self, entity_type: EntityType, identity: str) -> Optional[Document]:
        # Filtering by type makes an identity of another entity type look absent.
        result = await self.db.execute(
            select(Document).where(
                Document.id == identity,
                Document.entity_type == _type_tag(entity_type),
            )
        )
        return result.scalar_one_or_none()

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def put(self, entity_type: EntityType, record: Mapping[str, Any]) -> str:
        doc = Document(entity_type=_type_tag(entity_type), data=_strip_reserved(record))
        self.db.add(doc)
        await self._commit()
        logger.debug("Stored %s %s", doc.entity_type, doc.id, extra={"entity_type": doc.entity_type, "identity": doc.id})
        return doc.id

    async def get(self, entity_type: EntityType, identity: str) -> Optional[Record]:
        doc = await self._get_document(entity_type, identity)
        return _to_record(doc) if doc else None

    async def find_one(self, entity_type: EntityType, predicate: Optional[Predicate]) -> Optional[Record]:
        for record in await self.find_all(entity_type, predicate):
            return record
        return None

    async def find_all(
        self,
        entity_type: EntityType,
        predicate: Optional[Predicate] = None,
        sort: Optional[Sequence[str]] = None,
    ) -> List[Record]:
        # Predicates are matched in Python so that JSON field comparison behaves the same on every dialect.
        result = await self.db.execute(
            select(Document)
            .where(Document.entity_type == _type_tag(entity_type))
            .order_by(Document.created_at)
        )
        records = [_to_record(doc) for doc in result.scalars().all()]
        return sort_records((r for r in records if matches(r, predicate)), sort)

    async def update(self, entity_type: EntityType, identity: str, patch: Mapping[str, Any]) -> Optional[Record]:
        doc = await self._get_document(entity_type, identity)
        if not doc:
            return None
        merged = dict(doc.data or {})
        merged.update(_strip_reserved(patch))
        # Reassign rather than mutate so the JSON column is flagged dirty.
        doc.data = merged
        doc.updated_at = datetime.now(timezone.utc)
        await self._commit()
        logger.debug("Updated %s %s", doc.entity_type, doc.id, extra={"entity_type": doc.entity_type, "identity": doc.id})
        return _to_record(doc)

    async def delete(self, entity_type: EntityType, identity: str) -> Optional[Record]:
        doc = await self._get_document(entity_type, identity)
        if not doc:
            return None
        record = _to_record(doc)
        await self.db.delete(doc)
        await self._commit()
        logger.debug("Deleted %s %s", doc.entity_type, identity, extra={"entity_type": doc.entity_type, "identity": identity})
        return record
