"""Record filter construction.

Compiles the node's (field, operator, value) filter list into the nested
``filter`` parameter of the CMA records endpoint.
"""

from typing import Any

from datocms_node.errors import ValidationError
from datocms_node.models.enums import FilterOperator
from datocms_node.models.params import FilterCondition


def split_values(value: Any) -> list[str]:
    """Split a comma-separated value into trimmed parts.

    Embedded commas cannot be escaped.
    """
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value]
    if value is None:
        return [""]
    return [part.strip() for part in str(value).split(",")]


def compile_condition(condition: FilterCondition) -> dict[str, Any]:
    """Compile one condition into its ``{operator: value}`` clause."""
    operator = condition.operator
    if operator is FilterOperator.EXISTS:
        return {"exists": True}
    if operator in (FilterOperator.IN, FilterOperator.NOT_IN):
        return {operator.value: split_values(condition.value)}
    return {operator.value: condition.value}


def build_record_filter(
    item_type: str | None,
    conditions: list[FilterCondition] | None = None,
) -> dict[str, Any]:
    """Build the ``filter`` parameter for listing records of a model.

    A later condition on the same field replaces an earlier one.
    """
    record_filter: dict[str, Any] = {"type": item_type}
    if conditions:
        fields: dict[str, Any] = {}
        for condition in conditions:
            if not condition.field:
                raise ValidationError("Filter field must not be empty")
            fields[condition.field] = compile_condition(condition)
        record_filter["fields"] = fields
    return record_filter


def build_match_filter(item_type: str, criterion: dict[str, Any]) -> dict[str, Any]:
    """Build an equality filter on every matching field."""
    return {
        "type": item_type,
        "fields": {key: {"eq": value} for key, value in criterion.items()},
    }
