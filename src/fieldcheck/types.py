"""Core types for the fieldcheck validation engine.

This module defines the data model shared by every component:
- Rules and schemas: declarative, immutable input authored elsewhere
- Validation context: a read-only snapshot of sibling field values
- Issues and results: the structured output consumed by a form layer
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Protocol, Union

from fieldcheck.exceptions import SchemaError


class Severity(Enum):
    """Severity of a failed rule.

    ERROR: Blocks submission
    WARNING: Advisory, surfaced but never affects validity
    INFO: Informational; routed with errors, like any non-warning severity
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class RuleKind(str, Enum):
    """The closed catalog of built-in rule kinds."""

    REQUIRED = "required"
    # Strings
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"
    PATTERN = "pattern"
    EMAIL = "email"
    URL = "url"
    PHONE = "phone"
    # Numbers
    MIN = "min"
    MAX = "max"
    INTEGER = "integer"
    POSITIVE = "positive"
    NEGATIVE = "negative"
    # Dates
    DATE_MIN = "date_min"
    DATE_MAX = "date_max"
    DATE_FUTURE = "date_future"
    DATE_PAST = "date_past"
    # Arrays
    MIN_ITEMS = "min_items"
    MAX_ITEMS = "max_items"
    UNIQUE_ITEMS = "unique_items"
    # Cross-field
    FIELD_MATCH = "field_match"
    FIELD_COMPARE = "field_compare"
    CONDITIONAL = "conditional"
    # Behaviour supplied entirely by a custom check
    CUSTOM = "custom"
    ASYNC_CUSTOM = "async_custom"

    @classmethod
    def is_known(cls, kind: str) -> bool:
        return kind in cls._value2member_map_


@dataclass(frozen=True)
class UserContext:
    """Identity of the user whose input is being validated.

    Attributes:
        tenant_id: The tenant/client ID the user belongs to
        user_id: The authenticated user's ID
        roles: Role names the user has
    """

    tenant_id: str | None = None
    user_id: str | None = None
    roles: tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidationContext:
    """Read-only snapshot passed to cross-field rules and custom checks.

    Built once per multi-field call and never mutated; `values` is exposed
    as a read-only mapping.

    Attributes:
        values: Field name -> value for every field in the call
        field: Metadata of the field being validated, if the caller has any
        parent: Parent record data, for nested forms
        user: Identity information
    """

    values: Mapping[str, Any] = field(default_factory=dict)
    field: Any = None
    parent: Any = None
    user: UserContext | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))


# A custom check: (value, context) -> bool | str, or its awaitable equivalent.
CheckResult = Union[bool, str, None]
SyncCheck = Callable[[Any, ValidationContext | None], CheckResult]
AsyncCheck = Callable[[Any, ValidationContext | None], Awaitable[CheckResult]]


class CustomCheck(Protocol):
    """Protocol for caller-supplied checks.

    The engine never inspects a check, only its outcome: False fails with
    the rule's message, a string fails with that string, anything else passes.
    """

    def __call__(self, value: Any, context: ValidationContext | None) -> Any:
        ...


@dataclass(frozen=True)
class Rule:
    """One declarative check.

    Attributes:
        kind: A RuleKind value (unknown kinds pass silently)
        params: Kind-specific parameters
        message: Failure message overriding the kind's default
        custom_check: Sync check, as a callable or a registered check id
        async_custom_check: Async check, as a callable or a registered check id
        depends_on: Sibling fields this rule reads, for the caller's re-validation
        severity: ERROR, WARNING or INFO
    """

    kind: str
    params: Any = None
    message: str | None = None
    custom_check: SyncCheck | str | None = None
    async_custom_check: AsyncCheck | str | None = None
    depends_on: tuple[str, ...] = ()
    severity: Severity = Severity.ERROR

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Rule":
        """Create a Rule from YAML/JSON data.

        Accepts `type` as an alias for `kind`. Nested rules of a
        `conditional` rule are converted as well.
        """
        if not isinstance(data, Mapping):
            raise SchemaError(f"Rule must be a mapping, got {type(data).__name__}")

        kind = data.get("kind", data.get("type"))
        if not kind or not isinstance(kind, str):
            raise SchemaError(f"Rule is missing a kind: {dict(data)!r}")

        try:
            severity = Severity(data.get("severity") or "error")
        except ValueError:
            raise SchemaError(
                f"Rule '{kind}' has invalid severity {data.get('severity')!r}"
            ) from None

        params = data.get("params")
        if kind == RuleKind.CONDITIONAL and isinstance(params, Mapping):
            params = {
                "condition": params.get("condition"),
                "rules": [
                    r if isinstance(r, Rule) else cls.from_dict(r)
                    for r in params.get("rules") or []
                ],
            }

        depends_on = data.get("depends_on") or ()
        if isinstance(depends_on, str):
            depends_on = (depends_on,)

        return cls(
            kind=kind,
            params=params,
            message=data.get("message"),
            custom_check=data.get("custom_check", data.get("validator")),
            async_custom_check=data.get("async_custom_check", data.get("async_validator")),
            depends_on=tuple(depends_on),
            severity=severity,
        )


@dataclass(frozen=True)
class Schema:
    """The ordered rule list and metadata for one field.

    Attributes:
        rules: Rules in declared order
        messages: Per-kind message overrides, used when a rule has no message
        field: Field name reported on issues ("unknown" when absent)
        on: Triggers the caller should validate on (blur, change, submit)
        is_async: Hint that the schema contains async checks
        debounce: Debounce hint in milliseconds for the caller's scheduler
    """

    rules: tuple[Rule, ...] = ()
    messages: Mapping[str, str] = field(default_factory=dict)
    field: str | None = None
    on: tuple[str, ...] = ()
    is_async: bool = False
    debounce: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "messages", MappingProxyType(dict(self.messages)))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], field_name: str | None = None) -> "Schema":
        """Create a Schema from YAML/JSON data."""
        if not isinstance(data, Mapping):
            raise SchemaError(f"Schema must be a mapping, got {type(data).__name__}")

        raw_rules = data.get("rules") or []
        if not isinstance(raw_rules, list):
            raise SchemaError(f"Schema rules must be a list, got {type(raw_rules).__name__}")

        triggers = data.get("on") or ()
        if isinstance(triggers, str):
            triggers = (triggers,)

        return cls(
            rules=tuple(r if isinstance(r, Rule) else Rule.from_dict(r) for r in raw_rules),
            field=data.get("field", field_name),
            messages=data.get("messages") or {},
            on=tuple(triggers),
            is_async=bool(data.get("async", data.get("is_async", False))),
            debounce=data.get("debounce"),
        )


@dataclass(frozen=True)
class ValidationIssue:
    """A single validation error or warning.

    Attributes:
        field: Field name this issue relates to
        message: Human-readable message
        code: Machine-readable code (the rule kind)
        rule: The rule kind that failed
        severity: ERROR, WARNING or INFO
        context: Optional extra details (e.g. the fault for evaluator faults)
    """

    field: str
    message: str
    code: str
    rule: str
    severity: Severity = Severity.ERROR
    context: Mapping[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "field": self.field,
            "message": self.message,
            "code": self.code,
            "rule": self.rule,
            "severity": self.severity.value,
        }
        if self.context:
            result["context"] = dict(self.context)
        return result


@dataclass
class ValidationResult:
    """Result of validating one field.

    Attributes:
        valid: True if no errors (warnings don't affect this)
        errors: Non-warning issues, in declared rule order
        warnings: WARNING issues, in declared rule order
    """

    valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }
