"""Text reports of a probed register map."""

from __future__ import annotations

import io

import tabulate

from .enums import ValueFormat
from .helpers import format_value, hex_digits
from .regmap import Block, Field, Node, Register, iter_registers, walk

__all__ = [ 'report', 'report_legacy', 'marker', ]

tabulate.PRESERVE_WHITESPACE = True

MARK_BAD = '*'
MARK_UNRESOLVED = '?'
MARK_GOOD = ' '

HEADERS = ['', 'Value', 'Address', 'Name', 'Description', 'Expected']


def marker(node: Node) -> str:
    """'?' for unresolved registers and fields, '*' for bad nodes, else ' '."""
    if not isinstance(node, Block) and not node.is_resolved:
        return MARK_UNRESOLVED
    return MARK_BAD if node.is_bad() else MARK_GOOD


def _width_bits(node: Node) -> int:
    if isinstance(node, Register):
        return node.effective_size * 8
    if isinstance(node, Field):
        return node.num_bits
    return 64


def _format_node_value(node: Node, fmt: ValueFormat) -> str:
    if isinstance(node, Block):
        return ''
    if not node.is_resolved:
        reg = node if isinstance(node, Register) else node.register
        return 'ERR' if reg is not None and reg.error is not None else '-'
    return format_value(node.value, fmt, _width_bits(node))


def _format_expected(node: Node, fmt: ValueFormat) -> str:
    good = getattr(node, 'good', None)
    if good is not None:
        return format_value(good, fmt, _width_bits(node))
    return getattr(node, 'goodexpr', None) or ''


def _is_anonymous(node: Node) -> bool:
    return isinstance(node, Block) and not node.name and not node.description


def report(root: Block, only_bad: bool = False, fmt: ValueFormat = ValueFormat.HEX) -> str:
    """Render the tree as a table in declared order.

    Rows are marked '*' when bad and '?' when unresolved. With only_bad,
    good nodes are left out (the ancestors of a bad node are bad as well).
    """
    skip_root = _is_anonymous(root)
    rows = []

    for depth, node in walk(root):
        if skip_root:
            if node is root:
                continue
            depth -= 1

        if only_bad and not node.is_bad():
            continue

        rows.append([
            marker(node),
            _format_node_value(node, fmt),
            node.address,
            '  ' * depth + (node.name or '<unnamed>'),
            node.description,
            _format_expected(node, fmt),
        ])

    regs = list(iter_registers(root))
    nbad = sum(1 for r in regs if r.is_bad())
    nunresolved = sum(1 for r in regs if not r.is_resolved)

    out = io.StringIO()
    if rows:
        out.write(tabulate.tabulate(rows, HEADERS, tablefmt='plain', disable_numparse=True))
        out.write('\n\n')
    out.write(f'{len(regs)} registers, {nbad} bad, {nunresolved} unresolved\n')

    return out.getvalue()


def report_legacy(root: Block) -> str:
    """Free text report with an EXPECTED: note on every bad node."""
    out = io.StringIO()

    blocks = [b for _, b in walk(root) if isinstance(b, Block) and not _is_anonymous(b)]

    for block in blocks:
        out.write(f'\n**      {block.name}      **\n')
        out.write(f'{block.description}\n')

        for reg in block.registers:
            value = f'{reg.value:#018x}' if reg.is_resolved else 'UNRESOLVED'
            out.write(f'\n{reg.name} {reg.address} value: {value}')
            if reg.is_bad():
                out.write(' EXPECTED: ')
                if reg.goodexpr is not None:
                    out.write(f'{reg.goodexpr} ')
                if reg.good is not None:
                    out.write(f'{reg.good:#018x}')
            out.write(f'     {reg.description}\n')

            for f in reg.fields:
                digits = hex_digits(f.num_bits)
                if f.is_resolved:
                    out.write(f'{f.name}: 0x{f.value:0{digits}x} {f.value}')
                else:
                    out.write(f'{f.name}: UNRESOLVED')
                if f.is_bad():
                    out.write(' EXPECTED: ')
                    if f.goodexpr is not None:
                        out.write(f'{f.goodexpr} ')
                    if f.good is not None:
                        out.write(f'0x{f.good:0{digits}x} {f.good}')
                out.write(f'     {f.description}\n')

    return out.getvalue()
