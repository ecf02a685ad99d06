"""Rule evaluation for fieldcheck.

A rule either passes (None) or fails with a message. Dispatch order:
1. async custom check
2. sync custom check
3. the built-in catalog, keyed by RuleKind

Built-in checks are type-scoped: a string rule given a number, or a number
rule given a string, passes silently.
"""

import inspect
import logging
import re
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Callable, Mapping
from urllib.parse import urlsplit

from fieldcheck.checks import CheckRegistry
from fieldcheck.conditions import evaluate_condition, strict_equals
from fieldcheck.exceptions import SchemaError
from fieldcheck.types import CustomCheck, Rule, RuleKind, ValidationContext

logger = logging.getLogger(__name__)

# Handler signature: (value, params, context) -> default failure message or None
Handler = Callable[[Any, Any, ValidationContext | None], str | None]


# =============================================================================
# Format Patterns
# =============================================================================

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PHONE_PATTERN = re.compile(r"^[\d\s\-+()]+$")


# =============================================================================
# Type Helpers
# =============================================================================


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _is_date_like(value: Any) -> bool:
    # Blank strings are empty values, not dates
    if isinstance(value, str):
        return bool(value.strip())
    return isinstance(value, date)


def _to_datetime(value: Any) -> datetime:
    """Coerce a date, datetime or ISO-8601 string to a datetime.

    Raises:
        ValueError: If a string is not ISO-8601
        TypeError: If the value is not date-like
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, str):
        text = value.strip()
        # fromisoformat only accepts a "Z" suffix from Python 3.11
        if text[-1:] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    raise TypeError(f"Cannot interpret {type(value).__name__} as a date")


def _align(left: datetime, right: datetime) -> tuple[datetime, datetime]:
    # Naive datetimes are treated as UTC when compared with aware ones
    if left.tzinfo is not None and right.tzinfo is None:
        right = right.replace(tzinfo=timezone.utc)
    elif left.tzinfo is None and right.tzinfo is not None:
        left = left.replace(tzinfo=timezone.utc)
    return left, right


def _now_for(moment: datetime) -> datetime:
    if moment.tzinfo is not None:
        return datetime.now(timezone.utc)
    return datetime.now()


def _format_date(moment: datetime) -> str:
    return moment.date().isoformat()


_UNHASHABLE = object()


def _distinct_count(items: list | tuple) -> int:
    # Unhashable items (dicts, lists) are distinct unless they are the same object.
    # Booleans are keyed apart from 0 and 1.
    seen = set()
    for item in items:
        try:
            hash(item)
            seen.add((bool, item) if isinstance(item, bool) else item)
        except TypeError:
            seen.add((_UNHASHABLE, id(item)))
    return len(seen)


# =============================================================================
# Built-in Checks
# =============================================================================


def _required(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """Value must not be None or an empty string."""
    if value is None or value == "":
        return "This field is required"
    return None


def _min_length(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """String length must be at least params."""
    if isinstance(value, str) and len(value) < params:
        return f"Minimum length is {params} characters"
    return None


def _max_length(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """String length must be at most params."""
    if isinstance(value, str) and len(value) > params:
        return f"Maximum length is {params} characters"
    return None


def _pattern(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """String must match the params regex (string or compiled)."""
    if isinstance(value, str):
        regex = params if isinstance(params, re.Pattern) else re.compile(params)
        if not regex.search(value):
            return "Invalid format"
    return None


def _email(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """String must look like local@domain.tld."""
    if isinstance(value, str) and not EMAIL_PATTERN.fullmatch(value):
        return "Invalid email address"
    return None


def _url(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """String must parse as an absolute URL."""
    if not isinstance(value, str):
        return None
    try:
        parts = urlsplit(value.strip())
    except ValueError:
        return "Invalid URL"
    if not parts.scheme or not (parts.netloc or parts.path) or " " in parts.netloc:
        return "Invalid URL"
    return None


def _phone(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """String may only contain digits, spaces and - + ( )."""
    if isinstance(value, str) and not PHONE_PATTERN.fullmatch(value):
        return "Invalid phone number"
    return None


def _min(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """Number must be at least params."""
    if _is_number(value) and value < params:
        return f"Minimum value is {params}"
    return None


def _max(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """Number must be at most params."""
    if _is_number(value) and value > params:
        return f"Maximum value is {params}"
    return None


def _integer(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """Number must be whole."""
    if not _is_number(value) or isinstance(value, int):
        return None
    if isinstance(value, Decimal):
        whole = value.is_finite() and value == value.to_integral_value()
    else:
        whole = value.is_integer()
    if not whole:
        return "Value must be an integer"
    return None


def _positive(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """Number must be greater than zero."""
    if _is_number(value) and value <= 0:
        return "Value must be positive"
    return None


def _negative(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """Number must be less than zero."""
    if _is_number(value) and value >= 0:
        return "Value must be negative"
    return None


def _date_min(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """Date must not be before params."""
    if not _is_date_like(value):
        return None
    moment, bound = _align(_to_datetime(value), _to_datetime(params))
    if moment < bound:
        return f"Date must be after {_format_date(bound)}"
    return None


def _date_max(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """Date must not be after params."""
    if not _is_date_like(value):
        return None
    moment, bound = _align(_to_datetime(value), _to_datetime(params))
    if moment > bound:
        return f"Date must be before {_format_date(bound)}"
    return None


def _date_future(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """Date must be later than now."""
    if not _is_date_like(value):
        return None
    moment = _to_datetime(value)
    if moment <= _now_for(moment):
        return "Date must be in the future"
    return None


def _date_past(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """Date must be earlier than now."""
    if not _is_date_like(value):
        return None
    moment = _to_datetime(value)
    if moment >= _now_for(moment):
        return "Date must be in the past"
    return None


def _min_items(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """Array must have at least params items."""
    if _is_array(value) and len(value) < params:
        return f"Minimum {params} items required"
    return None


def _max_items(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """Array must have at most params items."""
    if _is_array(value) and len(value) > params:
        return f"Maximum {params} items allowed"
    return None


def _unique_items(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """Array items must be distinct."""
    if _is_array(value) and _distinct_count(value) != len(value):
        return "All items must be unique"
    return None


def _field_match(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """Value must equal the sibling field named by params."""
    if context is None or not params:
        return None
    if not strict_equals(value, context.values.get(params)):
        return f"Value must match {params}"
    return None


COMPARISONS: dict[str, tuple[Callable[[Any, Any], bool], str]] = {
    ">": (lambda a, b: a > b, "greater than"),
    "<": (lambda a, b: a < b, "less than"),
    ">=": (lambda a, b: a >= b, "greater than or equal to"),
    "<=": (lambda a, b: a <= b, "less than or equal to"),
}


def _field_compare(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """Value must compare to a sibling field with params.operator."""
    if context is None or not isinstance(params, Mapping):
        return None

    other_field = params.get("field")
    comparison = COMPARISONS.get(params.get("operator"))
    if not other_field or comparison is None:
        return None

    other_value = context.values.get(other_field)
    if value is None or other_value is None:
        return None

    compare_fn, wording = comparison
    try:
        satisfied = compare_fn(value, other_value)
    except TypeError:
        # Incomparable operands are treated like any other type mismatch
        return None

    if not satisfied:
        return f"Value must be {wording} {other_field}"
    return None


def _custom_placeholder(value: Any, params: Any, context: ValidationContext | None) -> str | None:
    """Behaviour supplied by the rule's custom check; passes without one."""
    return None


BUILTIN_RULES: dict[RuleKind, Handler] = {
    RuleKind.REQUIRED: _required,
    RuleKind.MIN_LENGTH: _min_length,
    RuleKind.MAX_LENGTH: _max_length,
    RuleKind.PATTERN: _pattern,
    RuleKind.EMAIL: _email,
    RuleKind.URL: _url,
    RuleKind.PHONE: _phone,
    RuleKind.MIN: _min,
    RuleKind.MAX: _max,
    RuleKind.INTEGER: _integer,
    RuleKind.POSITIVE: _positive,
    RuleKind.NEGATIVE: _negative,
    RuleKind.DATE_MIN: _date_min,
    RuleKind.DATE_MAX: _date_max,
    RuleKind.DATE_FUTURE: _date_future,
    RuleKind.DATE_PAST: _date_past,
    RuleKind.MIN_ITEMS: _min_items,
    RuleKind.MAX_ITEMS: _max_items,
    RuleKind.UNIQUE_ITEMS: _unique_items,
    RuleKind.FIELD_MATCH: _field_match,
    RuleKind.FIELD_COMPARE: _field_compare,
    RuleKind.CUSTOM: _custom_placeholder,
    RuleKind.ASYNC_CUSTOM: _custom_placeholder,
}


def describe_catalog() -> list[tuple[str, str]]:
    """(kind, description) for every built-in kind, in catalog order."""
    described = []
    for kind in RuleKind:
        if kind is RuleKind.CONDITIONAL:
            described.append((kind.value, "Apply nested rules when a condition holds."))
        else:
            doc = BUILTIN_RULES[kind].__doc__ or ""
            described.append((kind.value, doc.strip()))
    return described


# =============================================================================
# Built-in Dispatch
# =============================================================================


def evaluate_builtin(
    value: Any,
    rule: Rule,
    context: ValidationContext | None = None,
    messages: Mapping[str, str] | None = None,
    strict_kinds: bool = False,
) -> str | None:
    """Evaluate a rule against the built-in catalog only.

    Custom checks on the rule are ignored. This is also how the nested rules
    of a `conditional` rule are evaluated.

    Args:
        value: The value being checked
        rule: The rule to apply
        context: Sibling values for cross-field kinds
        messages: Per-kind message overrides from the schema
        strict_kinds: Raise SchemaError for kinds outside the catalog

    Returns:
        The failure message, or None if the rule passes.
    """
    if rule.kind == RuleKind.CONDITIONAL:
        return _conditional(value, rule.params, context, messages, strict_kinds)

    if not RuleKind.is_known(rule.kind):
        if strict_kinds:
            raise SchemaError(f"Unknown rule kind '{rule.kind}'")
        logger.debug("Unknown rule kind '%s' passes", rule.kind)
        return None

    failure = BUILTIN_RULES[RuleKind(rule.kind)](value, rule.params, context)
    if failure is None:
        return None
    return rule.message or (messages or {}).get(rule.kind) or failure


def _conditional(
    value: Any,
    params: Any,
    context: ValidationContext | None,
    messages: Mapping[str, str] | None,
    strict_kinds: bool,
) -> str | None:
    # Returns the first failing nested rule's message
    if context is None or not isinstance(params, Mapping):
        return None

    if not evaluate_condition(params.get("condition"), context.values):
        return None

    for nested in params.get("rules") or []:
        nested_rule = nested if isinstance(nested, Rule) else Rule.from_dict(nested)
        failure = evaluate_builtin(value, nested_rule, context, messages, strict_kinds)
        if failure:
            return failure
    return None


# =============================================================================
# Rule Evaluator
# =============================================================================


def _interpret(outcome: Any, fallback: str) -> str | None:
    """Map a custom check outcome to a failure message."""
    if outcome is False:
        return fallback
    if isinstance(outcome, str):
        return outcome
    return None


class RuleEvaluator:
    """Evaluates a single rule, honouring custom checks.

    Stateless apart from the check registry it was built with, so one
    instance can be shared by concurrent validations.
    """

    def __init__(self, registry: CheckRegistry | None = None, strict_kinds: bool = False):
        self.registry = registry if registry is not None else CheckRegistry()
        self.strict_kinds = strict_kinds

    async def evaluate_rule(
        self,
        value: Any,
        rule: Rule,
        context: ValidationContext | None = None,
        messages: Mapping[str, str] | None = None,
    ) -> str | None:
        """Evaluate one rule.

        Args:
            value: The value being checked
            rule: The rule to apply
            context: Read-only snapshot of sibling values
            messages: Per-kind message overrides from the schema

        Returns:
            The failure message, or None if the rule passes.
        """
        overrides = messages or {}

        if rule.async_custom_check is not None:
            check = self._resolve(rule.async_custom_check)
            outcome = check(value, context)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            return _interpret(
                outcome,
                rule.message or overrides.get(rule.kind) or "Async validation failed",
            )

        if rule.custom_check is not None:
            check = self._resolve(rule.custom_check)
            outcome = check(value, context)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            return _interpret(
                outcome,
                rule.message or overrides.get(rule.kind) or "Validation failed",
            )

        return evaluate_builtin(value, rule, context, overrides, self.strict_kinds)

    def _resolve(self, check: CustomCheck | str) -> CustomCheck:
        if isinstance(check, str):
            return self.registry.get(check)
        return check
