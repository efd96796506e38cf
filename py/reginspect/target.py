from __future__ import annotations

import sys
from abc import ABC, abstractmethod

from .enums import Endianness
from .errors import DeviceReadError

__all__ = [
    'Target',
    'READ_SIZES',
]

READ_SIZES = (1, 2, 4, 8)


class Target(ABC):
    """Read-only access to device registers.

    A read is addressed by a bar (a backend specific region number, e.g. a
    PCI base address register index), an address within it and a byte size.
    Every failure is raised as DeviceReadError.
    """

    @abstractmethod
    def read_register(self, bar: int, addr: int, size: int) -> int: ...

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, exc_tb):
        self.close()

    def _check_size(self, bar: int, addr: int, size: int):
        if size not in READ_SIZES:
            raise DeviceReadError(f'Unsupported read size {size}', bar, addr, size)

    def _endianness_to_bo(self, endianness: Endianness):
        if endianness == Endianness.Default:
            return sys.byteorder
        elif endianness == Endianness.Little:
            return 'little'
        elif endianness == Endianness.Big:
            return 'big'

        raise NotImplementedError()
