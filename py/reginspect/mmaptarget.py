from __future__ import annotations

import logging
import mmap
import os
import threading
import weakref

from .enums import Endianness
from .errors import DeviceReadError
from .target import Target

__all__ = [ 'MMapTarget', ]

logger = logging.getLogger(__name__)


class MMapTarget(Target):
    """Reads registers from memory mapped PCI BAR resource files.

    Bar N is read from ``<device_path>/resource<N>``, as laid out by sysfs
    under /sys/bus/pci/devices/<bdf>/. Each bar is mapped read-only on
    first use.
    """

    def __init__(self, device_path: str,
                 data_endianness: Endianness = Endianness.Default) -> None:
        self.device_path = device_path
        self.data_endianness = data_endianness
        self._maps: dict[int, mmap.mmap] = {}
        self._lock = threading.Lock()

        weakref.finalize(self, MMapTarget.cleanup, self._maps)

    @staticmethod
    def cleanup(maps):
        # It is ok to call close() multiple times
        for m in maps.values():
            m.close()
        maps.clear()

    def close(self):
        MMapTarget.cleanup(self._maps)

    def resource_path(self, bar: int) -> str:
        return os.path.join(self.device_path, f'resource{bar}')

    def _map_bar(self, bar: int, addr: int, size: int) -> mmap.mmap:
        m = self._maps.get(bar)
        if m is not None:
            return m

        path = self.resource_path(bar)

        try:
            fd = os.open(path, os.O_RDONLY | os.O_SYNC)
        except OSError as e:
            raise DeviceReadError(f'bar {bar} not mapped: {e}', bar, addr, size) from e

        try:
            # mmap duplicates the fd, so ours can be closed right away
            m = mmap.mmap(fd, 0, mmap.MAP_SHARED, mmap.PROT_READ)
        except (OSError, ValueError) as e:
            raise DeviceReadError(f'bar {bar}: mmap of {path} failed: {e}', bar, addr, size) from e
        finally:
            os.close(fd)

        logger.debug('mapped %s (%#x bytes)', path, len(m))

        self._maps[bar] = m
        return m

    def read_register(self, bar: int, addr: int, size: int) -> int:
        self._check_size(bar, addr, size)

        # probe() may read from several threads
        with self._lock:
            m = self._map_bar(bar, addr, size)

        if addr < 0 or addr + size > len(m):
            raise DeviceReadError(f'Access outside bar {bar}: {addr + size:#x} > {len(m):#x}', bar, addr, size)

        bo = self._endianness_to_bo(self.data_endianness)

        v = m[addr:addr + size]

        return int.from_bytes(v, bo, signed=False)
