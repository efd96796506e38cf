"""Leaf-level formatting helpers for reginspect-tui."""

from __future__ import annotations

from rich.markup import escape

from reginspect.enums import ValueFormat
from reginspect.helpers import format_value
from reginspect.regmap import Block, Field, Node, Register, value_or_none
from reginspect.report import MARK_BAD, MARK_UNRESOLVED, marker

# Field colors for bit diagram
FIELD_COLORS = [
    'cyan',
    'magenta',
    'green',
    'yellow',
    'blue',
    'red',
    'bright_cyan',
    'bright_magenta',
]


def width_bits(node: Node) -> int:
    if isinstance(node, Register):
        return node.effective_size * 8
    if isinstance(node, Field):
        return node.num_bits
    return 0


def format_node_value(node: Node, fmt: ValueFormat) -> str:
    value = value_or_none(node)
    if value is not None:
        return format_value(value, fmt, width_bits(node))
    reg = node if isinstance(node, Register) else getattr(node, 'register', None)
    if reg is not None and reg.error is not None:
        return '[red]ERR[/red]'
    return '[dim]-[/dim]'


def node_label(node: Node, fmt: ValueFormat) -> str:
    label = escape(node.name or '<unnamed>')

    if isinstance(node, Register):
        label += f' @ 0x{node.addr:X}'
    elif isinstance(node, Field):
        label += f' {node.bit_range}'

    if not isinstance(node, Block):
        label += f' = {format_node_value(node, fmt)}'

    mark = marker(node)
    if mark == MARK_BAD:
        return f'[bold red]{MARK_BAD} {label}[/bold red]'
    if mark == MARK_UNRESOLVED:
        return f'[yellow]{MARK_UNRESOLVED}[/yellow] {label}'
    return f'  {label}'
