from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Join:
    """One hop of a join plan: expand `field` into the referenced record.

    `select` projects the fetched record onto the listed fields (the internal
    identity is always kept); `nested` hops are applied to the fetched record.
    """

    field: str
    select: Optional[Tuple[str, ...]] = None
    nested: Tuple["Join", ...] = ()


JoinPlan = Sequence[Join]


def join(field: str, *nested: Join, select: Optional[Iterable[str]] = None) -> Join:
    return Join(
        field=field,
        select=tuple(select) if select is not None else None,
        nested=tuple(nested),
    )
