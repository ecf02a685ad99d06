"""Tests for ValidationEngine.

Tests cover:
- validate: ordering, severities, no short-circuit, field naming
- validate_fields: shared snapshot, keying, concurrency
- fault handling (isolate vs. propagate)
- the default engine and module-level helpers
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from fieldcheck.checks import CheckRegistry
from fieldcheck.config import EngineConfig, FaultMode
from fieldcheck.engine import (
    FAULT_CODE,
    ValidationEngine,
    get_default_engine,
    validate,
    validate_fields,
)
from fieldcheck.exceptions import ReadOnlyRegistryError, RuleEvaluationError, SchemaError
from fieldcheck.types import Rule, Schema, Severity, ValidationContext


@pytest.fixture
def engine():
    return ValidationEngine()


def make_schema(*rules: Rule, field: str | None = "name", messages=None) -> Schema:
    """Helper to build a schema from rules."""
    return Schema(rules=rules, field=field, messages=messages or {})


# =============================================================================
# Single Field
# =============================================================================


class TestValidate:

    @pytest.mark.asyncio
    async def test_passing_value(self, engine):
        result = await engine.validate("Ada", make_schema(Rule(kind="required")))
        assert result.valid
        assert result.errors == []
        assert result.warnings == []

    @pytest.mark.asyncio
    async def test_error_entry_shape(self, engine):
        result = await engine.validate(None, make_schema(Rule(kind="required")))

        assert not result.valid
        [error] = result.errors
        assert error.field == "name"
        assert error.message == "This field is required"
        assert error.code == "required"
        assert error.rule == "required"
        assert error.severity == Severity.ERROR

    @pytest.mark.asyncio
    async def test_missing_field_name_reports_unknown(self, engine):
        result = await engine.validate(None, make_schema(Rule(kind="required"), field=None))
        assert result.errors[0].field == "unknown"

    @pytest.mark.asyncio
    async def test_warnings_do_not_affect_validity(self, engine):
        schema = make_schema(
            Rule(kind="min_length", params=8, severity=Severity.WARNING),
        )
        result = await engine.validate("short", schema)

        assert result.valid
        assert result.errors == []
        assert [w.message for w in result.warnings] == ["Minimum length is 8 characters"]
        assert result.warnings[0].severity == Severity.WARNING

    @pytest.mark.asyncio
    async def test_info_severity_is_routed_to_errors(self, engine):
        schema = make_schema(Rule(kind="required", severity=Severity.INFO))
        result = await engine.validate("", schema)

        assert not result.valid
        assert result.errors[0].severity == Severity.INFO

    @pytest.mark.asyncio
    async def test_all_rules_evaluated_in_declared_order(self, engine):
        schema = make_schema(
            Rule(kind="min_length", params=10),
            Rule(kind="pattern", params=r"^\d+$", severity=Severity.WARNING),
            Rule(kind="email"),
            Rule(kind="max_length", params=2, severity=Severity.WARNING),
        )
        result = await engine.validate("abc", schema)

        assert [e.code for e in result.errors] == ["min_length", "email"]
        assert [w.code for w in result.warnings] == ["pattern", "max_length"]
        assert result.valid == (len(result.errors) == 0)

    @pytest.mark.asyncio
    async def test_async_rules_keep_declared_order(self, engine):
        async def slow(value, context):
            await asyncio.sleep(0.01)
            return "slow failed"

        async def fast(value, context):
            return "fast failed"

        schema = make_schema(
            Rule(kind="async_custom", async_custom_check=slow),
            Rule(kind="async_custom", async_custom_check=fast),
            Rule(kind="required"),
        )
        result = await engine.validate(None, schema)

        assert [e.message for e in result.errors] == [
            "slow failed",
            "fast failed",
            "This field is required",
        ]

    @pytest.mark.asyncio
    async def test_schema_messages_apply(self, engine):
        schema = make_schema(Rule(kind="required"), messages={"required": "Tell us your name"})
        result = await engine.validate("", schema)
        assert result.errors[0].message == "Tell us your name"

    @pytest.mark.asyncio
    async def test_plain_mapping_context(self, engine):
        schema = make_schema(Rule(kind="field_match", params="password"))
        result = await engine.validate("secret", schema, {"password": "other"})
        assert result.errors[0].message == "Value must match password"

    @pytest.mark.asyncio
    async def test_idempotent(self, engine):
        schema = make_schema(
            Rule(kind="required"),
            Rule(kind="min_length", params=3, severity=Severity.WARNING),
        )
        context = ValidationContext(values={"name": "ab"})

        first = await engine.validate("ab", schema, context)
        second = await engine.validate("ab", schema, context)

        assert first.to_dict() == second.to_dict()
        assert dict(context.values) == {"name": "ab"}


# =============================================================================
# Multiple Fields
# =============================================================================


class TestValidateFields:

    @pytest.mark.asyncio
    async def test_results_keyed_by_schema_fields(self, engine):
        schemas = {
            "a": make_schema(Rule(kind="required"), field="a"),
            "b": make_schema(Rule(kind="field_match", params="a"), field="b"),
        }
        results = await engine.validate_fields({"a": 5, "b": 5}, schemas)

        assert list(results) == ["a", "b"]
        assert results["a"].valid
        assert results["b"].valid

    @pytest.mark.asyncio
    async def test_cross_field_mismatch(self, engine):
        schemas = {
            "a": make_schema(field="a"),
            "b": make_schema(Rule(kind="field_match", params="a"), field="b"),
        }
        results = await engine.validate_fields({"a": 5, "b": 6}, schemas)

        assert results["a"].valid
        assert results["b"].errors[0].message == "Value must match a"

    @pytest.mark.asyncio
    async def test_absent_value_still_has_result(self, engine):
        schemas = {"missing": make_schema(Rule(kind="required"), field="missing")}
        results = await engine.validate_fields({}, schemas)

        assert set(results) == {"missing"}
        assert results["missing"].errors[0].message == "This field is required"

    @pytest.mark.asyncio
    async def test_values_without_schema_are_ignored(self, engine):
        results = await engine.validate_fields({"a": 1, "extra": 2}, {"a": make_schema(field="a")})
        assert list(results) == ["a"]

    @pytest.mark.asyncio
    async def test_conditional_sees_sibling_values(self, engine):
        conditional = Rule(
            kind="conditional",
            params={
                "condition": {"field": "type", "operator": "=", "value": "business"},
                "rules": [Rule(kind="required")],
            },
        )
        schemas = {"company": make_schema(conditional, field="company")}

        personal = await engine.validate_fields({"type": "personal", "company": ""}, schemas)
        business = await engine.validate_fields({"type": "business", "company": ""}, schemas)

        assert personal["company"].valid
        assert business["company"].errors[0].message == "This field is required"

    @pytest.mark.asyncio
    async def test_checks_share_one_snapshot(self, engine):
        contexts = []

        def capture(value, context):
            contexts.append(context)
            return True

        schemas = {
            "a": make_schema(Rule(kind="custom", custom_check=capture), field="a"),
            "b": make_schema(Rule(kind="custom", custom_check=capture), field="b"),
        }
        values = {"a": 1, "b": 2}
        await engine.validate_fields(values, schemas)

        assert len(contexts) == 2
        assert contexts[0] is contexts[1]
        assert dict(contexts[0].values) == values

    @pytest.mark.asyncio
    async def test_snapshot_is_read_only(self, engine):
        def mutate(value, context):
            context.values["b"] = "changed"
            return True

        schemas = {"a": make_schema(Rule(kind="custom", custom_check=mutate), field="a")}
        values = {"a": 1, "b": 2}
        results = await engine.validate_fields(values, schemas)

        # The TypeError from the read-only mapping is isolated as a fault
        assert results["a"].errors[0].code == FAULT_CODE
        assert values == {"a": 1, "b": 2}

    @pytest.mark.asyncio
    async def test_fields_run_concurrently(self, engine):
        started = asyncio.Event()

        async def wait_for_other(value, context):
            await asyncio.wait_for(started.wait(), timeout=1)
            return True

        async def signal(value, context):
            started.set()
            return True

        schemas = {
            "a": make_schema(Rule(kind="async_custom", async_custom_check=wait_for_other), field="a"),
            "b": make_schema(Rule(kind="async_custom", async_custom_check=signal), field="b"),
        }
        results = await engine.validate_fields({}, schemas)

        assert results["a"].valid
        assert results["b"].valid

    @pytest.mark.asyncio
    async def test_sequential_fields(self):
        order = []

        async def record(value, context):
            order.append(value)
            return True

        engine = ValidationEngine(config=EngineConfig(concurrent_fields=False))
        schemas = {
            name: make_schema(Rule(kind="async_custom", async_custom_check=record), field=name)
            for name in ("x", "y", "z")
        }
        await engine.validate_fields({"x": 1, "y": 2, "z": 3}, schemas)

        assert order == [1, 2, 3]


# =============================================================================
# Faults
# =============================================================================


class TestFaults:

    @pytest.mark.asyncio
    async def test_fault_is_isolated_by_default(self, engine):
        schema = make_schema(
            Rule(kind="custom", async_custom_check=AsyncMock(side_effect=RuntimeError("down"))),
            Rule(kind="required"),
        )
        result = await engine.validate(None, schema)

        assert not result.valid
        fault, required = result.errors
        assert fault.code == FAULT_CODE
        assert fault.rule == "custom"
        assert fault.severity == Severity.ERROR
        assert "RuntimeError: down" in fault.context["error"]
        assert required.code == "required"

    @pytest.mark.asyncio
    async def test_isolated_fault_does_not_block_other_fields(self, engine):
        schemas = {
            "bad": make_schema(Rule(kind="pattern", params="("), field="bad"),
            "good": make_schema(Rule(kind="required"), field="good"),
        }
        results = await engine.validate_fields({"bad": "x", "good": "y"}, schemas)

        assert results["bad"].errors[0].code == FAULT_CODE
        assert results["good"].valid

    @pytest.mark.asyncio
    async def test_fault_is_logged(self, engine, caplog):
        schema = make_schema(Rule(kind="date_min", params="2024-01-01"))
        with caplog.at_level("ERROR", logger="fieldcheck.engine"):
            await engine.validate("not a date", schema)
        assert "date_min" in caplog.text

    @pytest.mark.asyncio
    async def test_unknown_check_id_is_a_fault(self, engine):
        result = await engine.validate("x", make_schema(Rule(kind="custom", custom_check="nope")))
        assert result.errors[0].code == FAULT_CODE

    @pytest.mark.asyncio
    async def test_propagate_mode_raises(self):
        engine = ValidationEngine(config=EngineConfig(fault_mode=FaultMode.PROPAGATE))
        schema = make_schema(Rule(kind="pattern", params="("))

        with pytest.raises(RuleEvaluationError) as exc_info:
            await engine.validate("x", schema)

        assert exc_info.value.field == "name"
        assert exc_info.value.kind == "pattern"
        assert exc_info.value.__cause__ is exc_info.value.error

    @pytest.mark.asyncio
    async def test_propagate_mode_aborts_validate_fields(self):
        engine = ValidationEngine(config=EngineConfig(fault_mode=FaultMode.PROPAGATE))
        schemas = {
            "bad": make_schema(Rule(kind="pattern", params="("), field="bad"),
            "good": make_schema(Rule(kind="required"), field="good"),
        }
        with pytest.raises(RuleEvaluationError):
            await engine.validate_fields({"bad": "x", "good": "y"}, schemas)

    @pytest.mark.asyncio
    async def test_propagate_mode_waits_for_other_fields(self):
        finished = []

        async def slow(value, context):
            await asyncio.sleep(0.01)
            finished.append(value)
            return True

        engine = ValidationEngine(config=EngineConfig(fault_mode=FaultMode.PROPAGATE))
        schemas = {
            "bad": make_schema(Rule(kind="pattern", params="("), field="bad"),
            "slow": make_schema(Rule(kind="async_custom", async_custom_check=slow), field="slow"),
        }
        with pytest.raises(RuleEvaluationError) as exc_info:
            await engine.validate_fields({"bad": "x", "slow": "y"}, schemas)

        assert exc_info.value.field == "bad"
        assert finished == ["y"]

    @pytest.mark.asyncio
    async def test_blank_optional_date_is_not_a_fault(self, engine):
        schema = make_schema(Rule(kind="date_min", params="2024-01-01"), field="d")
        result = await engine.validate("", schema)
        assert result.valid
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_unknown_kind_passes_by_default(self, engine):
        result = await engine.validate("x", make_schema(Rule(kind="remote_lookup")))
        assert result.valid

    @pytest.mark.asyncio
    async def test_strict_unknown_kind_is_not_isolated(self):
        engine = ValidationEngine(config=EngineConfig(strict_kinds=True))
        with pytest.raises(SchemaError, match="remote_lookup"):
            await engine.validate("x", make_schema(Rule(kind="remote_lookup")))


# =============================================================================
# Registry and Default Engine
# =============================================================================


class TestRegistryAndDefaults:

    @pytest.mark.asyncio
    async def test_engine_resolves_registered_checks(self):
        checks = CheckRegistry()
        checks.register("username_available", AsyncMock(return_value="Username is taken"))
        engine = ValidationEngine(registry=checks)

        schema = make_schema(Rule(kind="async_custom", async_custom_check="username_available"))
        result = await engine.validate("ada", schema)

        assert result.errors[0].message == "Username is taken"
        assert engine.registry is checks

    def test_default_engine_is_shared(self):
        assert get_default_engine() is get_default_engine()

    def test_default_engine_registry_is_read_only(self):
        registry = get_default_engine().registry

        with pytest.raises(ReadOnlyRegistryError):
            registry.register("shared", lambda value, context: True)

        assert not get_default_engine().registry.is_registered("shared")

    @pytest.mark.asyncio
    async def test_module_level_validate(self):
        result = await validate("", make_schema(Rule(kind="required")))
        assert not result.valid

    @pytest.mark.asyncio
    async def test_module_level_validate_fields(self):
        results = await validate_fields({"a": 1}, {"a": make_schema(Rule(kind="positive"), field="a")})
        assert results["a"].valid
