"""Validation engine for fieldcheck.

ValidationEngine runs one field's schema (validate) or a whole set of fields
against a shared snapshot of their values (validate_fields). It holds no
per-call state and is safe to share across concurrent callers.
"""

import asyncio
import logging
from functools import lru_cache
from typing import Any, Mapping

from fieldcheck.checks import CheckRegistry
from fieldcheck.config import EngineConfig, FaultMode
from fieldcheck.exceptions import RuleEvaluationError, SchemaError
from fieldcheck.rules import RuleEvaluator
from fieldcheck.types import (
    Rule,
    Schema,
    Severity,
    ValidationContext,
    ValidationIssue,
    ValidationResult,
)

logger = logging.getLogger(__name__)

UNKNOWN_FIELD = "unknown"
FAULT_CODE = "evaluator_fault"


class ValidationEngine:
    """Evaluates schemas and partitions failures into errors and warnings.

    Rules within one schema run one at a time in declared order, and every
    rule runs (no short-circuit) so the caller gets all problems in one pass.
    Fields in a validate_fields call are independent and run concurrently.

    Example:
        engine = ValidationEngine(registry=checks, config=EngineConfig.from_env())
        results = await engine.validate_fields(values, schemas)
        if not is_valid(results):
            ...
    """

    def __init__(
        self,
        registry: CheckRegistry | None = None,
        config: EngineConfig | None = None,
    ):
        self.config = config if config is not None else EngineConfig()
        self.evaluator = RuleEvaluator(registry, strict_kinds=self.config.strict_kinds)

    @property
    def registry(self) -> CheckRegistry:
        return self.evaluator.registry

    async def validate(
        self,
        value: Any,
        schema: Schema,
        context: ValidationContext | Mapping[str, Any] | None = None,
    ) -> ValidationResult:
        """Validate a value against one field's schema.

        Args:
            value: The field's value
            schema: The field's rules and metadata
            context: Snapshot of sibling values, or a plain values mapping

        Returns:
            ValidationResult with errors and warnings in declared rule order

        Raises:
            RuleEvaluationError: If a rule raises and faults propagate
        """
        if context is not None and not isinstance(context, ValidationContext):
            context = ValidationContext(values=context)

        field_name = schema.field or UNKNOWN_FIELD
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        for rule in schema.rules:
            issue = await self._evaluate(value, rule, schema, field_name, context)
            if issue is None:
                continue
            if issue.severity == Severity.WARNING:
                warnings.append(issue)
            else:
                errors.append(issue)

        return ValidationResult(
            valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
        )

    async def validate_fields(
        self,
        values: Mapping[str, Any],
        schemas: Mapping[str, Schema],
    ) -> dict[str, ValidationResult]:
        """Validate several fields against one shared snapshot of values.

        The snapshot is taken once before any field runs; results for one
        field are never fed back into another field's context.

        Args:
            values: Field name -> value
            schemas: Field name -> schema, in the order results should be keyed

        Returns:
            Field name -> ValidationResult, one entry per schema
        """
        context = ValidationContext(values=values)
        names = list(schemas)

        if self.config.concurrent_fields:
            # Every field finishes before a propagated fault is re-raised
            outcomes = await asyncio.gather(
                *(self._validate_field(name, schemas[name], context) for name in names),
                return_exceptions=True,
            )
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    raise outcome
        else:
            outcomes = [
                await self._validate_field(name, schemas[name], context) for name in names
            ]

        return dict(zip(names, outcomes))

    async def _validate_field(
        self,
        name: str,
        schema: Schema,
        context: ValidationContext,
    ) -> ValidationResult:
        return await self.validate(context.values.get(name), schema, context)

    async def _evaluate(
        self,
        value: Any,
        rule: Rule,
        schema: Schema,
        field_name: str,
        context: ValidationContext | None,
    ) -> ValidationIssue | None:
        try:
            message = await self.evaluator.evaluate_rule(value, rule, context, schema.messages)
        except SchemaError:
            # Malformed schemas are never isolated
            raise
        except Exception as e:
            if self.config.fault_mode == FaultMode.PROPAGATE:
                raise RuleEvaluationError(field_name, rule.kind, e) from e
            logger.exception("Rule '%s' on field '%s' raised", rule.kind, field_name)
            return ValidationIssue(
                field=field_name,
                message=f"Validation rule '{rule.kind}' could not be evaluated",
                code=FAULT_CODE,
                rule=rule.kind,
                severity=Severity.ERROR,
                context={"error": f"{type(e).__name__}: {e}"},
            )

        if not message:
            return None

        return ValidationIssue(
            field=field_name,
            message=message,
            code=rule.kind,
            rule=rule.kind,
            severity=rule.severity,
        )


# =============================================================================
# Default Engine
# =============================================================================


@lru_cache(maxsize=1)
def get_default_engine() -> ValidationEngine:
    """Process-wide engine built on first use from environment config.

    Its check registry is empty and read-only; rules that reference checks
    by id need an engine constructed with a populated CheckRegistry.
    """
    return ValidationEngine(
        registry=CheckRegistry(read_only=True),
        config=EngineConfig.from_env(),
    )


async def validate(
    value: Any,
    schema: Schema,
    context: ValidationContext | Mapping[str, Any] | None = None,
) -> ValidationResult:
    """Validate a value with the default engine."""
    return await get_default_engine().validate(value, schema, context)


async def validate_fields(
    values: Mapping[str, Any],
    schemas: Mapping[str, Schema],
) -> dict[str, ValidationResult]:
    """Validate several fields with the default engine."""
    return await get_default_engine().validate_fields(values, schemas)
