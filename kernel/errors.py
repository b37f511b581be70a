"""Kernel error taxonomy.

Every diagnostic code emitted by the kernel (events, metrics labels, crash
notices) must belong to ``_ALLOWED_ERROR_TYPES``; ``validate_error_type``
enforces that at the emission site.
"""
from __future__ import annotations

_ALLOWED_ERROR_TYPES = {
    # registry
    "module-load",
    "module-duplicate",
    "module-reserved-id",
    "module-invalid-spec",
    # config
    "config-invalid",
    "config-out-of-range",
    "setup-contract",
    # scheduler / bootstrap
    "init-failed",
    "task-failed",
    # persistence
    "persist-io",
    # infra
    "event-handler-error",
}


def validate_error_type(code: str) -> str:
    assert (
        code in _ALLOWED_ERROR_TYPES
    ), f"Unknown error_type '{code}' (not in taxonomy)"
    return code


class KernelError(Exception):
    """Base kernel exception."""


class ModuleLoadError(KernelError):
    """A module source could not be turned into a descriptor.

    Carries the taxonomy code so the registry can label the skip.
    """

    def __init__(self, message: str, code: str = "module-load"):
        super().__init__(message)
        self.code = validate_error_type(code)


class ConfigError(KernelError):
    pass


class SetupContractError(AssertionError):
    """A module's setup hook ran but left an option mistyped."""

    def __init__(self, module_id: str, option: str):
        super().__init__(f"Module {module_id} setup failed to set {option}")
        self.module_id = module_id
        self.option = option


class TaskFailedError(KernelError):
    """Raised out of the run loop when a task errors during resume."""

    def __init__(self, module_id: str, error: BaseException, trace: str):
        super().__init__(f"{module_id}: {error}")
        self.module_id = module_id
        self.error = error
        self.trace = trace


__all__ = [
    "validate_error_type",
    "KernelError",
    "ModuleLoadError",
    "ConfigError",
    "SetupContractError",
    "TaskFailedError",
]
