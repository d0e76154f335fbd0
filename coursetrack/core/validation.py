"""Shared invariant and validation helpers.

Numbering helpers enforce the gapless ``1..N`` rule for module and lecture
numbers; ordering helpers validate reorder requests before anything is
written.
"""

from collections import Counter
from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from coursetrack.core.errors import (
    DuplicateEntryError,
    EmptySetError,
    ForeignEntityMismatchError,
)


def is_gapless(numbers: Iterable[int]) -> bool:
    """Return True if ``numbers`` is exactly ``{1..N}`` with no repeats."""
    values = list(numbers)
    return sorted(values) == list(range(1, len(values) + 1))


def next_number(numbers: Iterable[int]) -> int:
    """Next free ordinal after the current maximum (1 for an empty scope)."""
    return max(numbers, default=0) + 1


def offset_base(numbers: Iterable[int], count: int) -> int:
    """Start of a temporary number range that cannot collide with ``numbers``.

    Renumbering first moves every entity to ``base + 1 .. base + count`` so the
    final ``1..count`` slots are all free before they are assigned.
    """
    return max(max(numbers, default=0), count)


def validate_ordering(
    requested_ids: Sequence[UUID],
    owned_ids: Iterable[UUID],
    scope: str,
) -> None:
    """Validate a reorder request against the ids owned by the parent.

    Raises:
        EmptySetError: No ids were given
        DuplicateEntryError: An id is repeated
        ForeignEntityMismatchError: An id does not belong to the parent
    """
    if not requested_ids:
        raise EmptySetError(f"At least one {scope} item id is required")

    repeated = [item for item, count in Counter(requested_ids).items() if count > 1]
    if repeated:
        raise DuplicateEntryError(repeated)

    owned = set(owned_ids)
    foreign = [item for item in requested_ids if item not in owned]
    if foreign:
        raise ForeignEntityMismatchError(foreign, scope)


def complete_ordering(
    requested_ids: Sequence[UUID],
    current_ids: Sequence[UUID],
) -> list[UUID]:
    """Requested ids first, then any unnamed ids in their current order."""
    named = set(requested_ids)
    return [*requested_ids, *(item for item in current_ids if item not in named)]


def round_half_up(numerator: int | float, denominator: int | float = 1) -> int:
    """Round ``numerator / denominator`` to an int, halves away from zero."""
    value = Decimal(str(numerator)) / Decimal(str(denominator))
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def percentage(completed: int, total: int) -> int:
    """Integer percentage rounded half-up; 0 when ``total`` is 0."""
    if total <= 0:
        return 0
    return round_half_up(completed * 100, total)
