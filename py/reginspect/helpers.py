from __future__ import annotations

from typing import Sequence

from .enums import ValueFormat

MAX_BITS = 64

def widthmask(width: int):
    return (1 << width) - 1

def get_low_bits(r_val: int, width: int):
    return r_val & widthmask(width)

def gather_bits(r_val: int, bits: Sequence[int]):
    """Pack the listed source bits of r_val into result bits 0..n-1.

    The order of 'bits' defines the result bit order, so [1, 0] swaps
    the two lowest bits.
    """
    v = 0
    for i, b in enumerate(bits):
        v |= ((r_val >> b) & 1) << i
    return v

def hex_digits(width_bits: int):
    return max(1, (width_bits + 3) // 4)

def format_value(value: int, fmt: ValueFormat, width_bits: int) -> str:
    if fmt == ValueFormat.HEX:
        nchars = hex_digits(width_bits)
        return f'0x{value:0{nchars}x}'
    elif fmt == ValueFormat.DEC:
        return str(value)
    elif fmt == ValueFormat.BIN:
        return f'0b{value:0{width_bits}b}'
    return hex(value)
