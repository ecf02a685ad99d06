"""Boolean condition evaluation shared by conditional rules and field visibility.

A condition is one of:
- a predicate callable, invoked with the values mapping
- a comparison: {"field": ..., "operator": "=", "value": ...}
- a conjunction: {"and": [condition, ...]}
- a disjunction: {"or": [condition, ...]}

Anything else (including None) evaluates to True.
"""

import operator as op
from typing import Any, Callable, Iterable, Mapping

Condition = Callable[[Mapping[str, Any]], bool] | Mapping[str, Any] | None


def _ordered(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    """Wrap an ordering comparison so incomparable operands are False."""

    def compare_safely(left: Any, right: Any) -> bool:
        if left is None or right is None:
            return False
        try:
            return bool(compare(left, right))
        except TypeError:
            return False

    return compare_safely


def strict_equals(left: Any, right: Any) -> bool:
    """Equality that keeps booleans apart from the numbers 0 and 1."""
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return bool(left == right)


def _member(left: Any, right: Any) -> bool:
    if not isinstance(right, (list, tuple)):
        return False
    return any(strict_equals(left, item) for item in right)


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "=": strict_equals,
    "==": strict_equals,
    "!=": lambda left, right: not strict_equals(left, right),
    ">": _ordered(op.gt),
    "<": _ordered(op.lt),
    ">=": _ordered(op.ge),
    "<=": _ordered(op.le),
    "in": _member,
}


def evaluate_condition(condition: Condition, values: Mapping[str, Any]) -> bool:
    """Evaluate a condition against a snapshot of field values.

    Args:
        condition: Predicate, comparison, and/or tree, or None
        values: Field name -> value

    Returns:
        The condition's truth value. Unknown shapes are True; an unknown
        comparison operator is False.
    """
    if callable(condition):
        return condition(values)

    if not isinstance(condition, Mapping):
        return True

    if condition.get("field"):
        compare = OPERATORS.get(condition.get("operator", "="))
        if compare is None:
            return False
        return compare(values.get(condition["field"]), condition.get("value"))

    if isinstance(condition.get("and"), (list, tuple)):
        return all(evaluate_condition(c, values) for c in condition["and"])

    if isinstance(condition.get("or"), (list, tuple)):
        return any(evaluate_condition(c, values) for c in condition["or"])

    return True


# =============================================================================
# Field Visibility
# =============================================================================


def _attr(definition: Any, name: str) -> Any:
    if isinstance(definition, Mapping):
        return definition.get(name)
    return getattr(definition, name, None)


def is_field_visible(field_definition: Any, values: Mapping[str, Any]) -> bool:
    """Check whether a form field should be shown for the current values.

    The field's `condition` (mapping key or attribute) is evaluated with
    evaluate_condition; a field without a condition is always visible.
    """
    return bool(evaluate_condition(_attr(field_definition, "condition"), values))


def visible_fields(
    field_definitions: Iterable[Any],
    values: Mapping[str, Any],
) -> list[str]:
    """Names of the fields whose visibility condition holds, in input order."""
    return [
        _attr(definition, "name")
        for definition in field_definitions
        if is_field_visible(definition, values)
    ]
