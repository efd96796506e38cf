from __future__ import annotations

import logging
import shlex
import subprocess
from typing import Sequence

from .errors import DeviceReadError
from .target import Target

__all__ = [ 'ToolTarget', ]

logger = logging.getLogger(__name__)

DEFAULT_TOOL = 'efh_tool'


class ToolTarget(Target):
    """Reads registers by running an external utility.

    Each read runs ``<command> read <bar> <addr> <size>`` and parses the
    value the utility prints on stdout, in decimal or 0x-prefixed hex.
    """

    def __init__(self, command: str | Sequence[str] = DEFAULT_TOOL,
                 timeout: float | None = None) -> None:
        if isinstance(command, str):
            command = shlex.split(command)
        if not command:
            raise ValueError('Tool command must not be empty')

        self.command = list(command)
        self.timeout = timeout

    def _argv(self, bar: int, addr: int, size: int) -> list[str]:
        return [*self.command, 'read', str(bar), f'{addr:#018x}', str(size)]

    def read_register(self, bar: int, addr: int, size: int) -> int:
        self._check_size(bar, addr, size)

        argv = self._argv(bar, addr, size)
        logger.debug('running %s', ' '.join(argv))

        try:
            proc = subprocess.run(argv, capture_output=True, text=True,
                                  timeout=self.timeout, check=True)
        except FileNotFoundError as e:
            raise DeviceReadError(f'{self.command[0]}: not found', bar, addr, size) from e
        except subprocess.TimeoutExpired as e:
            raise DeviceReadError(f'{self.command[0]}: timed out after {self.timeout}s', bar, addr, size) from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or '').strip()
            raise DeviceReadError(f'{self.command[0]}: exit status {e.returncode}: {stderr}', bar, addr, size) from e
        except OSError as e:
            raise DeviceReadError(f'{self.command[0]}: {e}', bar, addr, size) from e

        return self._parse_output(proc.stdout, bar, addr, size)

    def _parse_output(self, out: str, bar: int, addr: int, size: int) -> int:
        tokens = out.split()
        if not tokens:
            raise DeviceReadError(f'{self.command[0]}: no output', bar, addr, size)

        try:
            value = int(tokens[0], 0)
        except ValueError as e:
            raise DeviceReadError(f'{self.command[0]}: malformed output {tokens[0]!r}', bar, addr, size) from e

        if value < 0 or value >= 1 << (size * 8):
            raise DeviceReadError(f'{self.command[0]}: value {value:#x} does not fit in {size} bytes', bar, addr, size)

        return value
