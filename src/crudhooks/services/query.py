"""Query DSL evaluation for in-memory collections.

Supported:
- equality: {"name": "Johnny Cash"}
- field operators: $in $nin $lt $lte $gt $gte $ne
- logical: $or / $and with lists of sub-queries
- filters: $sort {field: 1 | -1}, $limit, $skip, $select [fields]
"""

from collections.abc import Callable
from typing import Any

from crudhooks.core.utils import is_object
from crudhooks.errors import BadRequest

FILTERS = ("$sort", "$limit", "$skip", "$select")


def _ordered(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    """Comparisons never match a missing value or incomparable types."""

    def op(value: Any, operand: Any) -> bool:
        if value is None or operand is None:
            return False
        try:
            return compare(value, operand)
        except TypeError:
            return False

    return op


FIELD_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$in": lambda value, operand: value in operand,
    "$nin": lambda value, operand: value not in operand,
    "$ne": lambda value, operand: value != operand,
    "$lt": _ordered(lambda value, operand: value < operand),
    "$lte": _ordered(lambda value, operand: value <= operand),
    "$gt": _ordered(lambda value, operand: value > operand),
    "$gte": _ordered(lambda value, operand: value >= operand),
}


def filter_query(query: dict[str, Any] | None) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split a query into (filters, criteria)."""
    filters: dict[str, Any] = {}
    criteria: dict[str, Any] = {}
    for key, value in (query or {}).items():
        if key in FILTERS:
            filters[key] = value
        else:
            criteria[key] = value
    return filters, criteria


def matches(record: dict[str, Any], criteria: dict[str, Any]) -> bool:
    """Check a record against query criteria.

    Raises:
        BadRequest: On an unknown operator
    """
    for key, condition in criteria.items():
        if key == "$or":
            if not any(matches(record, sub) for sub in condition):
                return False
        elif key == "$and":
            if not all(matches(record, sub) for sub in condition):
                return False
        elif key.startswith("$"):
            raise BadRequest(f"Invalid query operator '{key}'")
        elif not _match_field(record.get(key), condition):
            return False
    return True


def _match_field(value: Any, condition: Any) -> bool:
    if not (is_object(condition) and any(key.startswith("$") for key in condition)):
        return value == condition

    for operator, operand in condition.items():
        if operator not in FIELD_OPERATORS:
            raise BadRequest(f"Invalid query operator '{operator}'")
        if not FIELD_OPERATORS[operator](value, operand):
            return False
    return True


def sort_records(records: list[dict[str, Any]], sort: dict[str, Any] | None) -> list[dict[str, Any]]:
    """Stable multi-key sort; the first $sort key is the primary order.

    Missing values sort after present ones ascending, before them descending.
    """
    result = list(records)
    if not sort:
        return result

    for field, direction in reversed(list(sort.items())):
        result.sort(
            key=lambda record, field=field: (record.get(field) is None, record.get(field)),
            reverse=int(direction) < 0,
        )
    return result


def select_fields(
    record: dict[str, Any], select: list[str] | None, id_field: str = "id"
) -> dict[str, Any]:
    """Keep only the selected fields; the id field is always kept."""
    if not select:
        return record
    keep = {id_field, *select}
    return {key: value for key, value in record.items() if key in keep}
