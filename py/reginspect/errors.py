from __future__ import annotations

__all__ = [
    'InspectError',
    'ConfigError',
    'ConfigParseError',
    'ConfigValidationError',
    'FieldValidationError',
    'RegisterValidationError',
    'BlockValidationError',
    'DeviceReadError',
    'UnresolvedValueError',
    'ProbeError',
]


class InspectError(Exception):
    """Base class for all reginspect errors."""
    pass


class ConfigError(InspectError):
    """Base class for register map configuration errors."""
    pass


class ConfigParseError(ConfigError):
    """Raised when the register map text is structurally invalid."""
    pass


class ConfigValidationError(ConfigError, ValueError):
    """Raised when a register map is well formed but inconsistent."""
    pass


class FieldValidationError(ConfigValidationError):
    """Raised when a field definition is invalid."""
    pass


class RegisterValidationError(ConfigValidationError):
    """Raised when a register definition is invalid."""
    pass


class BlockValidationError(ConfigValidationError):
    """Raised when a register block definition is invalid."""
    pass


class DeviceReadError(InspectError):
    """Raised by a target when a single register read fails."""

    def __init__(self, message: str, bar: int | None = None, addr: int | None = None,
                 size: int | None = None) -> None:
        super().__init__(message)
        self.bar = bar
        self.addr = addr
        self.size = size


class UnresolvedValueError(InspectError):
    """Raised when a value is requested before a probe populated it."""
    pass


class ProbeError(InspectError):
    """Raised once after a probe in which one or more register reads failed."""

    def __init__(self, failures, result=None) -> None:
        names = ', '.join(reg.name or reg.address for reg, _ in failures)
        super().__init__(f'{len(failures)} register read(s) failed: {names}')
        self.failures = failures
        self.result = result
