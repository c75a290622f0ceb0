"""Foreign-key existence and uniqueness checks run before a write commits.

Every rule is evaluated; violations accumulate so the caller can report all of
them at once.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from registrar.core.catalog import Catalog, EntitySpec
from registrar.core.enums import EntityType, ErrorKind
from registrar.records.schemas import Violation, not_found
from registrar.store.service import EntityStore, matches

logger = logging.getLogger(__name__)


async def _dangling_references(
    store: EntityStore,
    spec: EntitySpec,
    values: Mapping[str, Any],
) -> List[Violation]:
    violations = []
    for fk_field, ref_type in spec.foreign_keys.items():
        value = values.get(fk_field)
        if value is None:
            continue
        if await store.get(ref_type, value) is None:
            violations.append(
                Violation(
                    kind=ErrorKind.DANGLING_REFERENCE,
                    entity_type=spec.entity_type,
                    fields=[fk_field],
                    identity=str(value),
                    referenced_type=ref_type,
                    message=f"{fk_field} references {ref_type.value} '{value}' which does not exist",
                )
            )
    return violations


def _cleared_required(spec: EntitySpec, patch: Mapping[str, Any]) -> List[Violation]:
    return [
        Violation(
            kind=ErrorKind.REQUIRED_FIELD,
            entity_type=spec.entity_type,
            fields=[name],
            referenced_type=spec.referenced_type(name),
            message=f"{name} is required on {spec.entity_type.value} and cannot be cleared",
        )
        for name in spec.required_fields
        if name in patch and patch[name] is None
    ]


async def _duplicate_keys(
    store: EntityStore,
    spec: EntitySpec,
    record: Mapping[str, Any],
    exclude_identity: Optional[str] = None,
) -> List[Violation]:
    violations = []
    for fields in spec.unique_together:
        if any(record.get(f) is None for f in fields):
            continue
        criteria = {f: record[f] for f in fields}
        if exclude_identity is None:
            existing = await store.find_one(spec.entity_type, criteria)
        else:
            existing = await store.find_one(
                spec.entity_type,
                lambda r, c=criteria: r["id"] != exclude_identity and matches(r, c),
            )
        if existing is not None:
            shown = ", ".join(f"{k}={v!r}" for k, v in criteria.items())
            violations.append(
                Violation(
                    kind=ErrorKind.DUPLICATE_KEY,
                    entity_type=spec.entity_type,
                    fields=list(fields),
                    conflicting_identity=existing["id"],
                    message=f"{spec.entity_type.value} with {shown} already exists (id={existing['id']})",
                )
            )
    return violations


async def validate_for_insert(
    store: EntityStore,
    catalog: Catalog,
    entity_type: EntityType,
    candidate: Mapping[str, Any],
) -> List[Violation]:
    spec = catalog.spec(entity_type)
    violations = await _dangling_references(store, spec, candidate)
    violations += await _duplicate_keys(store, spec, candidate)
    if violations:
        logger.debug("Insert of %s failed %d check(s)", spec.entity_type.value, len(violations))
    return violations


async def validate_for_update(
    store: EntityStore,
    catalog: Catalog,
    entity_type: EntityType,
    identity: str,
    patch: Mapping[str, Any],
) -> List[Violation]:
    """Check `patch` against the record it would produce once merged.

    Only foreign keys named in the patch are re-resolved; uniqueness is checked
    on the merged record, ignoring the record itself. Clearing the business key
    or a foreign key is rejected.
    """
    spec = catalog.spec(entity_type)
    current = await store.get(spec.entity_type, identity)
    if current is None:
        return [not_found(spec.entity_type, identity)]
    merged: Dict[str, Any] = dict(current)
    merged.update(patch)
    changed_refs = {f: v for f, v in patch.items() if f in spec.foreign_keys}
    violations = _cleared_required(spec, patch)
    violations += await _dangling_references(store, spec, changed_refs)
    violations += await _duplicate_keys(store, spec, merged, exclude_identity=identity)
    if violations:
        logger.debug("Update of %s %s failed %d check(s)", spec.entity_type.value, identity, len(violations))
    return violations
