import logging
from typing import Any, Mapping, Optional, Sequence, Union

from registrar.composition import join
from registrar.composition import service as composition
from registrar.composition.plan import JoinPlan
from registrar.constraints.service import validate_for_insert, validate_for_update
from registrar.core.catalog import CATALOG, SUBJECT_BRIEF, Catalog, EntitySpec
from registrar.core.enums import EntityType
from registrar.records.schemas import EntityKey, OperationResult, Violation, not_found
from registrar.store.service import EntityStore, Predicate

logger = logging.getLogger(__name__)


def _key(spec: EntitySpec, view: Mapping[str, Any]) -> EntityKey:
    return EntityKey(identity=view["id"], business_id=view[spec.business_key])


def _plan_for(spec: EntitySpec, plan: Optional[JoinPlan], populate: bool, single: bool = False) -> JoinPlan:
    if plan is not None:
        return plan
    if not populate:
        return ()
    if single and spec.detail_plan:
        return spec.detail_plan
    return spec.default_plan


def _rejected(spec: EntitySpec, action: str, errors: Sequence[Violation], identity: Optional[str] = None) -> OperationResult:
    logger.warning(
        "Rejected %s of %s: %s",
        action,
        spec.entity_type.value,
        "; ".join(e.message for e in errors),
        extra={"entity_type": spec.entity_type.value, "identity": identity, "error_kind": errors[0].kind.value},
    )
    return OperationResult(entity_type=spec.entity_type, identity=identity, errors=list(errors))


def normalize_create(spec: EntitySpec, payload: Mapping[str, Any]) -> dict:
    return spec.create_schema.model_validate(dict(payload)).model_dump(mode="json", exclude_none=True)


def normalize_update(spec: EntitySpec, patch: Mapping[str, Any]) -> dict:
    return spec.update_schema.model_validate(dict(patch)).model_dump(mode="json", exclude_unset=True)


async def create_record(
    store: EntityStore,
    entity_type: Union[EntityType, str],
    payload: Mapping[str, Any],
    populate: bool = False,
    catalog: Catalog = CATALOG,
) -> OperationResult:
    spec = catalog.spec(entity_type)
    candidate = normalize_create(spec, payload)
    errors = await validate_for_insert(store, catalog, spec.entity_type, candidate)
    if errors:
        return _rejected(spec, "create", errors)
    identity = await store.put(spec.entity_type, candidate)
    view = await composition.resolve_one(store, catalog, spec.entity_type, identity, _plan_for(spec, None, populate))
    logger.info(
        "Created %s %s=%s",
        spec.entity_type.value,
        spec.business_key,
        candidate[spec.business_key],
        extra={"entity_type": spec.entity_type.value, "identity": identity},
    )
    return OperationResult(
        entity_type=spec.entity_type,
        identity=identity,
        key=EntityKey(identity=identity, business_id=candidate[spec.business_key]),
        data=view,
    )


async def update_record(
    store: EntityStore,
    entity_type: Union[EntityType, str],
    identity: str,
    patch: Mapping[str, Any],
    populate: bool = False,
    catalog: Catalog = CATALOG,
) -> OperationResult:
    spec = catalog.spec(entity_type)
    changes = normalize_update(spec, patch)
    errors = await validate_for_update(store, catalog, spec.entity_type, identity, changes)
    if errors:
        return _rejected(spec, "update", errors, identity)
    updated = await store.update(spec.entity_type, identity, changes)
    if updated is None:
        # Removed between validation and write.
        return _rejected(spec, "update", [not_found(spec.entity_type, identity)], identity)
    view = await composition.expand(store, catalog, spec.entity_type, updated, _plan_for(spec, None, populate))
    logger.info(
        "Updated %s %s (%s)",
        spec.entity_type.value,
        identity,
        ", ".join(sorted(changes)) or "no changes",
        extra={"entity_type": spec.entity_type.value, "identity": identity},
    )
    return OperationResult(entity_type=spec.entity_type, identity=identity, key=_key(spec, updated), data=view)


async def delete_record(
    store: EntityStore,
    entity_type: Union[EntityType, str],
    identity: str,
    catalog: Catalog = CATALOG,
) -> OperationResult:
    """Delete by identity. Records that reference the deleted one are left in place."""
    spec = catalog.spec(entity_type)
    deleted = await store.delete(spec.entity_type, identity)
    if deleted is None:
        return _rejected(spec, "delete", [not_found(spec.entity_type, identity)], identity)
    dependents = catalog.dependents_of(spec.entity_type)
    if dependents:
        logger.warning(
            "Deleted %s %s without a dependent check; references from %s may now be broken",
            spec.entity_type.value,
            identity,
            ", ".join(f"{t.value}.{f}" for t, f in dependents),
            extra={"entity_type": spec.entity_type.value, "identity": identity},
        )
    else:
        logger.info("Deleted %s %s", spec.entity_type.value, identity, extra={"entity_type": spec.entity_type.value, "identity": identity})
    return OperationResult(entity_type=spec.entity_type, identity=identity, key=_key(spec, deleted), data=deleted)


async def get_record(
    store: EntityStore,
    entity_type: Union[EntityType, str],
    identity: str,
    plan: Optional[JoinPlan] = None,
    populate: bool = False,
    catalog: Catalog = CATALOG,
) -> OperationResult:
    spec = catalog.spec(entity_type)
    view = await composition.resolve_one(store, catalog, spec.entity_type, identity, _plan_for(spec, plan, populate, single=True))
    if view is None:
        return OperationResult(entity_type=spec.entity_type, identity=identity, errors=[not_found(spec.entity_type, identity)])
    return OperationResult(entity_type=spec.entity_type, identity=identity, key=_key(spec, view), data=view)


async def get_record_by_key(
    store: EntityStore,
    entity_type: Union[EntityType, str],
    business_id: Union[int, str],
    populate: bool = False,
    catalog: Catalog = CATALOG,
) -> OperationResult:
    """Look a record up by its business key (e.g. Student_ID) instead of its identity."""
    spec = catalog.spec(entity_type)
    value = normalize_update(spec, {spec.business_key: business_id})[spec.business_key]
    views = await composition.resolve_many(
        store, catalog, spec.entity_type, {spec.business_key: value}, _plan_for(spec, None, populate)
    )
    if not views:
        return OperationResult(entity_type=spec.entity_type, errors=[not_found(spec.entity_type, str(value))])
    view = views[0]
    return OperationResult(entity_type=spec.entity_type, identity=view["id"], key=_key(spec, view), data=view)


async def list_records(
    store: EntityStore,
    entity_type: Union[EntityType, str],
    predicate: Optional[Predicate] = None,
    plan: Optional[JoinPlan] = None,
    sort: Optional[Sequence[str]] = None,
    populate: bool = False,
    catalog: Catalog = CATALOG,
) -> OperationResult:
    spec = catalog.spec(entity_type)
    views = await composition.resolve_many(
        store,
        catalog,
        spec.entity_type,
        predicate,
        _plan_for(spec, plan, populate),
        sort if sort is not None else spec.default_sort,
    )
    return OperationResult(entity_type=spec.entity_type, data=views)


async def list_schedules_for_enrollment(
    store: EntityStore,
    enrollment_identity: str,
    catalog: Catalog = CATALOG,
) -> OperationResult:
    """Schedule rows of one enrollment, subject populated, ordered by class time."""
    return await list_records(
        store,
        EntityType.STUDENT_SCHEDULE,
        predicate={"FK_Enrollment_ID": enrollment_identity},
        plan=(join("FK_Subject_Code", select=SUBJECT_BRIEF),),
        sort=("Class_Schedule",),
        catalog=catalog,
    )
