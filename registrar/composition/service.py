"""Builds joined (denormalized) views by walking a join plan over foreign keys."""

import logging
from typing import Dict, List, Optional, Sequence, Tuple, Union

from registrar.composition.plan import JoinPlan
from registrar.core.catalog import Catalog
from registrar.core.enums import EntityType
from registrar.core.exceptions import ServiceError
from registrar.records.schemas import ReferenceBroken
from registrar.store.service import EntityStore, Predicate, Record

logger = logging.getLogger(__name__)

# Records fetched during one resolution, keyed by (type, identity). None marks a known miss.
_Fetched = Dict[Tuple[EntityType, str], Optional[Record]]


def _project(record: Record, select: Optional[Sequence[str]]) -> Record:
    if select is None:
        return dict(record)
    view = {"id": record["id"]}
    for name in select:
        if name in record:
            view[name] = record[name]
    return view


async def _fetch(store: EntityStore, fetched: _Fetched, entity_type: EntityType, identity: str) -> Optional[Record]:
    key = (entity_type, identity)
    if key not in fetched:
        fetched[key] = await store.get(entity_type, identity)
    return fetched[key]


async def expand(
    store: EntityStore,
    catalog: Catalog,
    entity_type: EntityType,
    record: Record,
    plan: JoinPlan = (),
    select: Optional[Sequence[str]] = None,
    fetched: Optional[_Fetched] = None,
) -> Record:
    """Return a view of `record` with every hop in `plan` substituted by the referenced record."""
    spec = catalog.spec(entity_type)
    fetched = {} if fetched is None else fetched
    view = _project(record, select)
    for hop in plan:
        ref_type = spec.referenced_type(hop.field)
        if ref_type is None:
            raise ServiceError(f"{spec.entity_type.value}.{hop.field} is not a foreign key")
        identity = record.get(hop.field)
        if identity is None:
            continue
        target = await _fetch(store, fetched, ref_type, identity)
        if target is None:
            logger.warning(
                "%s %s: %s points at missing %s %s",
                spec.entity_type.value, record.get("id"), hop.field, ref_type.value, identity,
                extra={"entity_type": spec.entity_type.value, "identity": record.get("id"), "field": hop.field},
            )
            view[hop.field] = ReferenceBroken(field=hop.field, referenced_type=ref_type, identity=str(identity))
            continue
        view[hop.field] = await expand(store, catalog, ref_type, target, hop.nested, hop.select, fetched)
    if spec.derive is not None:
        view = spec.derive(view)
    return view


async def resolve_one(
    store: EntityStore,
    catalog: Catalog,
    entity_type: EntityType,
    identity: str,
    plan: JoinPlan = (),
) -> Optional[Record]:
    record = await store.get(catalog.spec(entity_type).entity_type, identity)
    if record is None:
        return None
    return await expand(store, catalog, entity_type, record, plan)


async def resolve_many(
    store: EntityStore,
    catalog: Catalog,
    entity_type: EntityType,
    predicate: Optional[Predicate] = None,
    plan: JoinPlan = (),
    sort: Optional[Sequence[str]] = None,
) -> List[Record]:
    # Sorting applies to the base collection, before any expansion.
    records = await store.find_all(catalog.spec(entity_type).entity_type, predicate, sort)
    fetched: _Fetched = {}
    return [await expand(store, catalog, entity_type, r, plan, fetched=fetched) for r in records]


async def resolve(
    store: EntityStore,
    catalog: Catalog,
    entity_type: EntityType,
    target: Union[str, Predicate, None] = None,
    plan: JoinPlan = (),
    sort: Optional[Sequence[str]] = None,
) -> Union[Optional[Record], List[Record]]:
    """Resolve by identity (one view or None) or by predicate (list of views)."""
    if isinstance(target, str):
        return await resolve_one(store, catalog, entity_type, target, plan)
    return await resolve_many(store, catalog, entity_type, target, plan, sort)

