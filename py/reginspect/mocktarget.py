from __future__ import annotations

import logging
from typing import Iterable, Mapping

import yaml  # type: ignore[import-untyped]

from .errors import ConfigParseError, DeviceReadError
from .target import Target

__all__ = [ 'MockTarget', ]

logger = logging.getLogger(__name__)


class MockTarget(Target):
    """In-memory target for tests and dry runs.

    'values' maps either (bar, addr) or a plain addr (any bar) to a
    register value. Reads of addresses listed in 'failures', or of unknown
    addresses when no 'default' is given, raise DeviceReadError.
    """

    def __init__(self, values: Mapping[int | tuple[int, int], int] | None = None,
                 failures: Iterable[int | tuple[int, int]] = (),
                 default: int | None = None) -> None:
        self.values = dict(values or {})
        self.failures = set(failures)
        self.default = default
        self.reads: list[tuple[int, int, int]] = []

    @classmethod
    def from_yaml(cls, text: str, default: int | None = None) -> MockTarget:
        """Build from ``{addr: value}`` or ``{bar: {addr: value}}`` YAML."""
        try:
            doc = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ConfigParseError(f'Failed to parse mock values: {exc}') from exc

        if not isinstance(doc, dict):
            raise ConfigParseError('Mock values must be a mapping')

        values: dict[int | tuple[int, int], int] = {}
        try:
            for k, v in doc.items():
                if isinstance(v, dict):
                    for addr, value in v.items():
                        values[(int(k), int(addr))] = int(value)
                else:
                    values[int(k)] = int(v)
        except (TypeError, ValueError) as exc:
            raise ConfigParseError(f'Invalid mock values: {exc}') from exc

        return cls(values, default=default)

    def _lookup(self, bar: int, addr: int) -> int | None:
        for key in ((bar, addr), addr):
            if key in self.values:
                return self.values[key]
        return self.default

    def read_register(self, bar: int, addr: int, size: int) -> int:
        self.reads.append((bar, addr, size))
        self._check_size(bar, addr, size)

        if (bar, addr) in self.failures or addr in self.failures:
            raise DeviceReadError(f'simulated read failure at bar {bar} {addr:#x}', bar, addr, size)

        value = self._lookup(bar, addr)
        if value is None:
            raise DeviceReadError(f'no value at bar {bar} {addr:#x}', bar, addr, size)

        logger.debug('mock read bar %d %#x = %#x', bar, addr, value)

        return value & ((1 << (size * 8)) - 1)
