"""Module and lecture numbering.

Numbers are unique and gapless (``1..N``) within their parent. The store
rejects a colliding number with ``DuplicateNumberError``; this module builds
the two write patterns on top of that constraint:

- ``claim_next_number``: append at ``max + 1`` with a bounded retry when a
  concurrent writer claims the same number first.
- ``renumber``: move a set of siblings to new positions through a temporary
  offset range so no two siblings share a number at any instant.
"""

from collections.abc import Callable, Iterable, Sequence
from typing import Protocol, TypeVar
from uuid import UUID

import structlog

from coursetrack.core.errors import DuplicateNumberError
from coursetrack.core.validation import next_number, offset_base

from .models import EntityKind
from .store import ContentStore


logger = structlog.get_logger(__name__)

T = TypeVar("T")

NUMBER_FIELDS: dict[EntityKind, str] = {
    EntityKind.MODULE: "module_number",
    EntityKind.LECTURE: "lecture_number",
}


class Numbered(Protocol):
    id: UUID


def claim_next_number(
    scope_id: UUID,
    current_numbers: Callable[[], Iterable[int]],
    insert: Callable[[int], T],
    retries: int,
) -> T:
    """Insert a new sibling at the end of its parent.

    Args:
        scope_id: Parent id (course for modules, module for lectures)
        current_numbers: Reads the numbers currently used in the parent
        insert: Builds and inserts the entity with the given number
        retries: Attempts before the conflict is raised to the caller

    Raises:
        DuplicateNumberError: Every attempt lost the race for the number
    """
    number = 0
    for attempt in range(1, retries + 1):
        number = next_number(current_numbers())
        try:
            return insert(number)
        except DuplicateNumberError:
            logger.info(
                "number_claim_conflict",
                scope_id=str(scope_id),
                number=number,
                attempt=attempt,
            )

    raise DuplicateNumberError(scope_id, number)


def renumber(
    store: ContentStore,
    kind: EntityKind,
    siblings: Sequence[Numbered],
    final_order: Sequence[UUID],
) -> int:
    """Assign ``position + 1`` to each id of ``final_order``.

    Only siblings whose number changes are written. They first move above
    every current number, then to their final slot. Running it again after a
    partial failure converges on the same result.

    Returns:
        Number of siblings whose number changed
    """
    field = NUMBER_FIELDS[kind]
    current = {sibling.id: getattr(sibling, field) for sibling in siblings}
    targets = {item_id: position + 1 for position, item_id in enumerate(final_order)}

    moving = [item_id for item_id in final_order if current[item_id] != targets[item_id]]
    if not moving:
        return 0

    base = offset_base(current.values(), len(final_order))

    # Phase 1: park every moving sibling in the free range above the maximum
    for item_id in moving:
        store.update_record(kind, item_id, {field: base + targets[item_id]})

    # Phase 2: final slots are now free
    for item_id in moving:
        store.update_record(kind, item_id, {field: targets[item_id]})

    logger.debug("siblings_renumbered", kind=kind.value, moved=len(moving))
    return len(moving)
