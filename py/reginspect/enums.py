from __future__ import annotations

from enum import Enum

__all__ = [ 'Endianness', 'ValueFormat', ]


class Endianness(Enum):
    Default = 0
    Big = 1
    Little  = 2


class ValueFormat(Enum):
    HEX = 'hex'
    DEC = 'dec'
    BIN = 'bin'
