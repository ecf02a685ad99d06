"""Helpers over multi-field results (field name -> ValidationResult).

Flattening follows the mapping's iteration order, which for results from
ValidationEngine.validate_fields is the order of the schemas passed in.
"""

from typing import Any, Mapping

from fieldcheck.types import ValidationIssue, ValidationResult


def is_valid(results: Mapping[str, ValidationResult]) -> bool:
    """True iff every field's result is valid."""
    return all(result.valid for result in results.values())


def all_errors(results: Mapping[str, ValidationResult]) -> list[ValidationIssue]:
    errors: list[ValidationIssue] = []
    for result in results.values():
        errors.extend(result.errors)
    return errors


def all_warnings(results: Mapping[str, ValidationResult]) -> list[ValidationIssue]:
    warnings: list[ValidationIssue] = []
    for result in results.values():
        warnings.extend(result.warnings)
    return warnings


def to_dict(results: Mapping[str, ValidationResult]) -> dict[str, Any]:
    """Serialize a multi-field result for a form layer."""
    return {
        "valid": is_valid(results),
        "fields": {name: result.to_dict() for name, result in results.items()},
    }
