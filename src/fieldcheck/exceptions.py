"""Exceptions raised by fieldcheck.

Validation failures are never exceptions; they are returned as
ValidationIssue data. These types cover bad schema data and evaluator faults.
"""


class FieldCheckError(Exception):
    """Base class for fieldcheck errors."""
    pass


class SchemaError(FieldCheckError):
    """Schema or rule data is malformed."""
    pass


class UnknownCheckError(FieldCheckError):
    """A rule references a custom check id that is not registered."""
    pass


class RuleEvaluationError(FieldCheckError):
    """A rule raised while being evaluated.

    Raised only when the engine is configured to propagate faults. The
    original exception is available as __cause__.
    """

    def __init__(self, field: str, kind: str, error: BaseException):
        self.field = field
        self.kind = kind
        self.error = error
        super().__init__(f"Rule '{kind}' on field '{field}' failed: {error}")


class ReadOnlyRegistryError(FieldCheckError):
    """A check was registered on a read-only CheckRegistry."""
    pass
