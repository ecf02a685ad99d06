"""Engine configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum


class FaultMode(Enum):
    """What happens when a rule raises during evaluation.

    ISOLATE: The fault becomes an error issue with code "evaluator_fault"
             and the remaining rules and fields still run
    PROPAGATE: The fault aborts the call as a RuleEvaluationError
    """

    ISOLATE = "isolate"
    PROPAGATE = "propagate"


_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class EngineConfig:
    """Validation engine configuration.

    Attributes:
        fault_mode: How evaluator faults are handled
        strict_kinds: Reject rule kinds outside the built-in catalog
        concurrent_fields: Validate fields of one call concurrently
    """

    fault_mode: FaultMode = FaultMode.ISOLATE
    strict_kinds: bool = False
    concurrent_fields: bool = True

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Create config from environment variables.

        FIELDCHECK_FAULT_MODE: "isolate" (default) or "propagate"
        FIELDCHECK_STRICT_KINDS: boolean flag, default false
        FIELDCHECK_CONCURRENT_FIELDS: boolean flag, default true

        Raises:
            ValueError: For an unsupported fault mode.
        """
        mode = os.environ.get("FIELDCHECK_FAULT_MODE", "").strip().lower()
        try:
            fault_mode = FaultMode(mode) if mode else FaultMode.ISOLATE
        except ValueError:
            raise ValueError(
                f"Unsupported FIELDCHECK_FAULT_MODE '{mode}'. "
                "Supported: isolate, propagate"
            ) from None

        return cls(
            fault_mode=fault_mode,
            strict_kinds=_env_flag("FIELDCHECK_STRICT_KINDS", False),
            concurrent_fields=_env_flag("FIELDCHECK_CONCURRENT_FIELDS", True),
        )
