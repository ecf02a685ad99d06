"""fieldcheck: declarative validation engine for form fields.

The engine is built from five pieces:
- Condition evaluation: and/or/comparison trees, shared with field visibility
- Rule evaluation: the built-in rule catalog plus custom checks
- ValidationEngine.validate: one field's rules, errors vs. warnings
- ValidationEngine.validate_fields: many fields over one shared snapshot
- Result helpers: is_valid, all_errors, all_warnings

Usage:
    from fieldcheck import CheckRegistry, Schema, ValidationEngine, is_valid

    checks = CheckRegistry()
    engine = ValidationEngine(registry=checks)

    results = await engine.validate_fields(values, schemas)
    if not is_valid(results):
        ...
"""

from fieldcheck.checks import CheckRegistry
from fieldcheck.conditions import evaluate_condition, is_field_visible, visible_fields
from fieldcheck.config import EngineConfig, FaultMode
from fieldcheck.engine import (
    ValidationEngine,
    get_default_engine,
    validate,
    validate_fields,
)
from fieldcheck.exceptions import (
    FieldCheckError,
    RuleEvaluationError,
    ReadOnlyRegistryError,
    SchemaError,
    UnknownCheckError,
)
from fieldcheck.loader import load_schemas, parse_schemas, validate_schema_file
from fieldcheck.results import all_errors, all_warnings, is_valid
from fieldcheck.rules import RuleEvaluator, evaluate_builtin
from fieldcheck.types import (
    CustomCheck,
    Rule,
    RuleKind,
    Schema,
    Severity,
    UserContext,
    ValidationContext,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Types
    "CustomCheck",
    "Rule",
    "RuleKind",
    "Schema",
    "Severity",
    "UserContext",
    "ValidationContext",
    "ValidationIssue",
    "ValidationResult",
    # Conditions
    "evaluate_condition",
    "is_field_visible",
    "visible_fields",
    # Rules
    "CheckRegistry",
    "RuleEvaluator",
    "evaluate_builtin",
    # Engine
    "EngineConfig",
    "FaultMode",
    "ValidationEngine",
    "get_default_engine",
    "validate",
    "validate_fields",
    # Results
    "all_errors",
    "all_warnings",
    "is_valid",
    # Loading
    "load_schemas",
    "parse_schemas",
    "validate_schema_file",
    # Errors
    "FieldCheckError",
    "RuleEvaluationError",
    "ReadOnlyRegistryError",
    "SchemaError",
    "UnknownCheckError",
]
