"""In-memory register map: blocks of registers of bit-fields.

Registers cache the raw value read by a probe. Fields never touch the
device, they decode their bits from the owning register's cached value.
"""

from __future__ import annotations

import logging
import weakref
from typing import Iterator, Protocol, Sequence

from .errors import (
    BlockValidationError,
    FieldValidationError,
    RegisterValidationError,
    UnresolvedValueError,
)
from .helpers import MAX_BITS, gather_bits, get_low_bits, widthmask

__all__ = [ 'Node', 'Block', 'Register', 'Field', 'walk', 'iter_registers', 'value_or_none', ]

logger = logging.getLogger(__name__)


def _is_int(v) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


class Node(Protocol):
    name: str
    description: str

    @property
    def address(self) -> str: ...

    @property
    def value(self) -> int | None: ...

    @property
    def is_resolved(self) -> bool: ...

    def is_bad(self) -> bool: ...

    def children(self) -> Sequence[Node]: ...


class Field:
    def __init__(self, name: str = '', description: str = '',
                 bits: Sequence[int] | None = None, width: int | None = None,
                 good: int | None = None, goodexpr: str | None = None) -> None:
        self._validate_inputs(name, description, bits, width, good, goodexpr)
        self.name = name
        self.description = description
        self.bits = list(bits) if bits is not None else None
        self.width = width
        self.good = good
        self.goodexpr = goodexpr
        self.expr_ok: bool | None = None
        self._register: weakref.ref[Register] | None = None

    def _validate_inputs(self, name, description, bits, width, good, goodexpr) -> None:
        if not isinstance(name, str):
            raise FieldValidationError(f'Field name must be a string, got {type(name).__name__}')

        if not isinstance(description, str):
            raise FieldValidationError(f"Field '{name}': description must be a string, got {type(description).__name__}")

        if (bits is None) == (width is None):
            raise FieldValidationError(f"Field '{name}': exactly one of bits and width must be given")

        if bits is not None:
            if len(bits) == 0:
                raise FieldValidationError(f"Field '{name}': bit list must not be empty")
            for b in bits:
                if not _is_int(b) or b < 0 or b >= MAX_BITS:
                    raise FieldValidationError(f"Field '{name}': bit index {b!r} out of range 0..{MAX_BITS - 1}")
            if len(set(bits)) != len(bits):
                raise FieldValidationError(f"Field '{name}': duplicate bit index in {list(bits)}")
            nbits = len(bits)
        else:
            if not _is_int(width) or width < 1 or width > MAX_BITS:
                raise FieldValidationError(f"Field '{name}': width must be 1..{MAX_BITS}, got {width!r}")
            nbits = width

        if good is not None:
            if not _is_int(good) or good < 0:
                raise FieldValidationError(f"Field '{name}': good value must be a non-negative integer, got {good!r}")
            if good > widthmask(nbits):
                raise FieldValidationError(f"Field '{name}': good value 0x{good:x} does not fit in {nbits} bits")

        if goodexpr is not None and not isinstance(goodexpr, str):
            raise FieldValidationError(f"Field '{name}': goodexpr must be a string")

        if good is not None and goodexpr is not None:
            raise FieldValidationError(f"Field '{name}': both good and goodexpr specified")

    @property
    def num_bits(self) -> int:
        return len(self.bits) if self.bits is not None else self.width

    @property
    def source_bits(self) -> list[int]:
        """Register bits the field reads, in result bit order."""
        return list(self.bits) if self.bits is not None else list(range(self.width))

    @property
    def high(self) -> int:
        """Highest source bit the field reads."""
        return max(self.bits) if self.bits is not None else self.width - 1

    @property
    def register(self) -> Register | None:
        return self._register() if self._register is not None else None

    def attach(self, register: Register) -> None:
        self._register = weakref.ref(register)

    @property
    def bit_range(self) -> str:
        if self.bits is not None:
            return '[' + ','.join(str(b) for b in self.bits) + ']'
        if self.width == 1:
            return '[0]'
        return f'[{self.width - 1}:0]'

    @property
    def address(self) -> str:
        reg = self.register
        return (reg.address if reg else '') + self.bit_range

    @property
    def is_resolved(self) -> bool:
        reg = self.register
        return reg is not None and reg.is_resolved

    @property
    def value(self) -> int:
        reg = self.register
        if reg is None:
            raise UnresolvedValueError(f"Field '{self.name}' is not attached to a register")

        raw = reg.value

        if self.bits is not None:
            return gather_bits(raw, self.bits)
        return get_low_bits(raw, self.width)

    @property
    def has_check(self) -> bool:
        return self.good is not None or self.goodexpr is not None

    def is_bad(self) -> bool:
        if self.good is not None:
            try:
                return self.value != self.good
            except UnresolvedValueError:
                return True

        if self.goodexpr is not None:
            return not self.expr_ok

        return False

    def children(self) -> Sequence[Node]:
        return []

    def __repr__(self):
        return f'Field({self.name!r}, {self.bit_range})'


class Register:
    DEFAULT_BAR = 4
    DEFAULT_SIZE = 8

    def __init__(self, addr: int, name: str = '', description: str = '',
                 fields: Sequence[Field] | None = None,
                 good: int | None = None, goodexpr: str | None = None,
                 bar: int | None = None, size: int | None = None) -> None:
        self._validate_inputs(addr, name, description, good, goodexpr, bar, size)
        self.addr = addr
        self.name = name
        self.description = description
        self.good = good
        self.goodexpr = goodexpr
        self.bar = bar
        self.size = size

        self._value: int | None = None
        self.error: Exception | None = None
        self.expr_ok: bool | None = None

        self.fields: list[Field] = []
        for f in fields or ():
            self.add_field(f)

    def _validate_inputs(self, addr, name, description, good, goodexpr, bar, size) -> None:
        if not isinstance(name, str):
            raise RegisterValidationError(f'Register name must be a string, got {type(name).__name__}')

        if not _is_int(addr):
            raise RegisterValidationError(f"Register '{name}': addr must be an integer, got {type(addr).__name__}")

        if addr < 0 or addr > widthmask(64):
            raise RegisterValidationError(f"Register '{name}': addr {addr:#x} is not a 64-bit address")

        if not isinstance(description, str):
            raise RegisterValidationError(f"Register '{name}': description must be a string, got {type(description).__name__}")

        if bar is not None and (not _is_int(bar) or bar < 0):
            raise RegisterValidationError(f"Register '{name}': bar must be a non-negative integer, got {bar!r}")

        if size is not None and (not _is_int(size) or size not in (1, 2, 4, 8)):
            raise RegisterValidationError(f"Register '{name}': size must be 1, 2, 4, 8, or None, got {size!r}")

        if good is not None:
            if not _is_int(good) or good < 0:
                raise RegisterValidationError(f"Register '{name}': good value must be a non-negative integer, got {good!r}")
            nbytes = size if size is not None else self.DEFAULT_SIZE
            if good > widthmask(nbytes * 8):
                raise RegisterValidationError(
                    f"Register '{name}': good value 0x{good:x} exceeds maximum for {nbytes}-byte register")

        if goodexpr is not None and not isinstance(goodexpr, str):
            raise RegisterValidationError(f"Register '{name}': goodexpr must be a string")

        if good is not None and goodexpr is not None:
            raise RegisterValidationError(f"Register '{name}': both good and goodexpr specified")

    @property
    def effective_bar(self) -> int:
        return self.bar if self.bar is not None else self.DEFAULT_BAR

    @property
    def effective_size(self) -> int:
        return self.size if self.size is not None else self.DEFAULT_SIZE

    def add_field(self, field: Field) -> None:
        """Attach a field, checking that it fits within the register width."""
        max_bit = self.effective_size * 8 - 1
        if field.high > max_bit:
            raise FieldValidationError(
                f"Field '{field.name}' in register '{self.name}': "
                f'high bit ({field.high}) exceeds register width ({self.effective_size} bytes = {max_bit} max bit)'
            )
        field.attach(self)
        self.fields.append(field)

    @property
    def address(self) -> str:
        return f'{self.addr:#018x}'

    @property
    def is_resolved(self) -> bool:
        return self._value is not None

    @property
    def value(self) -> int:
        if self._value is None:
            if self.error is not None:
                raise UnresolvedValueError(f"Register '{self.name}' could not be read: {self.error}")
            raise UnresolvedValueError(f"Register '{self.name}' has not been probed")
        return self._value

    def resolve(self, value: int) -> None:
        self._value = value & widthmask(self.effective_size * 8)
        self.error = None

    def fail(self, error: Exception) -> None:
        self._value = None
        self.error = error

    def reset(self) -> None:
        self._value = None
        self.error = None
        self.expr_ok = None
        for f in self.fields:
            f.expr_ok = None

    def is_bad(self) -> bool:
        if self.error is not None:
            return True

        if self.good is not None:
            if not self.is_resolved or self._value != self.good:
                return True
        elif self.goodexpr is not None:
            if not self.expr_ok:
                return True

        return any(f.is_bad() for f in self.fields)

    def children(self) -> Sequence[Node]:
        return list(self.fields)

    def __repr__(self):
        return f'Register({self.name!r}, {self.address})'


class Block:
    def __init__(self, name: str = '', description: str = '',
                 registers: Sequence[Register] | None = None,
                 blocks: Sequence[Block] | None = None) -> None:
        if not isinstance(name, str):
            raise BlockValidationError(f'Block name must be a string, got {type(name).__name__}')

        if not isinstance(description, str):
            raise BlockValidationError(f"Block '{name}': description must be a string, got {type(description).__name__}")

        self.name = name
        self.description = description
        self.registers: list[Register] = list(registers or ())
        self.blocks: list[Block] = list(blocks or ())

        self._check_register_addresses()

    def _check_register_addresses(self) -> None:
        seen: dict[tuple[int, int], str] = {}
        for r in self.registers:
            key = (r.effective_bar, r.addr)
            if key in seen:
                logger.warning("Block '%s': registers '%s' and '%s' share address %s",
                               self.name, seen[key], r.name, r.address)
            else:
                seen[key] = r.name

    @property
    def address(self) -> str:
        return ''

    @property
    def value(self) -> None:
        # blocks have no value of their own
        return None

    @property
    def is_resolved(self) -> bool:
        return all(r.is_resolved for r in iter_registers(self))

    def is_bad(self) -> bool:
        return any(c.is_bad() for c in self.children())

    def children(self) -> Sequence[Node]:
        return [*self.registers, *self.blocks]

    def __repr__(self):
        return f'Block({self.name!r})'


def walk(node: Node, depth: int = 0) -> Iterator[tuple[int, Node]]:
    """Yield (depth, node) pairs depth-first in declared order."""
    yield depth, node
    for child in node.children():
        yield from walk(child, depth + 1)


def iter_registers(node: Node) -> Iterator[Register]:
    for _, n in walk(node):
        if isinstance(n, Register):
            yield n


def value_or_none(node: Node) -> int | None:
    """Value of a node, or None if it has none or is unresolved."""
    try:
        return node.value
    except UnresolvedValueError:
        return None
