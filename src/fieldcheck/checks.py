"""Registry for custom checks.

Rules reference custom checks by id so schemas stay plain data that can be
logged, diffed or transmitted. Applications register the implementations
with a CheckRegistry and hand it to the engine.
"""

from typing import Callable

from fieldcheck.exceptions import ReadOnlyRegistryError, UnknownCheckError
from fieldcheck.types import CustomCheck


class CheckRegistry:
    """Registry of custom check implementations, keyed by id.

    Unlike a process-wide registry, each instance is independent; build one
    at application startup and pass it to ValidationEngine.

    Example:
        checks = CheckRegistry()

        @checks.check("username_available")
        async def username_available(value, context):
            return await users.is_free(value) or "Username is taken"

        engine = ValidationEngine(registry=checks)
    """

    def __init__(
        self,
        checks: dict[str, CustomCheck] | None = None,
        read_only: bool = False,
    ):
        self._checks: dict[str, CustomCheck] = dict(checks or {})
        self.read_only = read_only

    def register(self, name: str, check_fn: CustomCheck) -> None:
        """Register a check under an id.

        Idempotent - re-registering the same id is a no-op.

        Args:
            name: Id referenced from rule data
            check_fn: Sync or async callable taking (value, context)

        Raises:
            ReadOnlyRegistryError: If the registry is read-only
        """
        if self.read_only:
            raise ReadOnlyRegistryError(
                f"Cannot register check '{name}' on a read-only registry. "
                "Build a ValidationEngine with its own CheckRegistry instead."
            )
        if name in self._checks:
            return
        self._checks[name] = check_fn

    def check(self, name: str) -> Callable[[CustomCheck], CustomCheck]:
        """Decorator form of register()."""

        def decorator(check_fn: CustomCheck) -> CustomCheck:
            self.register(name, check_fn)
            return check_fn

        return decorator

    def get(self, name: str) -> CustomCheck:
        """Get a registered check by id.

        Raises:
            UnknownCheckError: If no check is registered under the id
        """
        if name not in self._checks:
            raise UnknownCheckError(
                f"Check '{name}' is not registered. "
                "Custom checks must be registered before validation."
            )
        return self._checks[name]

    def is_registered(self, name: str) -> bool:
        """Check if a check id is registered."""
        return name in self._checks

    def list_registered(self) -> list[str]:
        """List all registered check ids."""
        return sorted(self._checks)
