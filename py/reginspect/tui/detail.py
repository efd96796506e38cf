"""Right-pane detail/display widgets for reginspect-tui."""

from __future__ import annotations

from rich.markup import escape
from textual.app import ComposeResult
from textual.containers import VerticalScroll
from textual.widgets import Static

from reginspect.enums import ValueFormat
from reginspect.helpers import format_value
from reginspect.regmap import Block, Field, Register, iter_registers, value_or_none
from reginspect.report import MARK_BAD, MARK_UNRESOLVED, marker

from .state import AppState
from .types import FIELD_COLORS, format_node_value


def _status_line(node) -> str:
    mark = marker(node)
    if mark == MARK_BAD:
        return '[bold red]BAD[/bold red]'
    if mark == MARK_UNRESOLVED:
        return '[yellow]UNRESOLVED[/yellow]'
    return '[green]OK[/green]'


def _expected_line(node, fmt: ValueFormat, width_bits: int) -> str | None:
    if node.good is not None:
        return f'Expected: {format_value(node.good, fmt, width_bits)}'
    if node.goodexpr is not None:
        return f'Expected: {escape(node.goodexpr)}'
    return None


def bit_diagram(reg: Register, highlight: Field | None = None) -> list[str]:
    """Rows of bit numbers, bit values and field names, 16 bits per row, MSB first."""
    total_bits = reg.effective_size * 8
    value = value_or_none(reg)

    field_map: dict[int, tuple[Field, int]] = {}
    for i, field in enumerate(reg.fields):
        color_idx = i % len(FIELD_COLORS)
        for bit in field.source_bits:
            field_map[bit] = (field, color_idx)

    def styled(text: str, fld: Field | None, cidx: int) -> str:
        if fld is None or (highlight is not None and fld is not highlight):
            return f'[dim]{text}[/dim]'
        color = FIELD_COLORS[cidx]
        return f'[{color}]{text}[/{color}]'

    lines = []
    bits_per_row = 16
    for row_start_bit in range(total_bits - 1, -1, -bits_per_row):
        row_end_bit = max(row_start_bit - bits_per_row + 1, 0)

        hdr = ''
        for bit in range(row_start_bit, row_end_bit - 1, -1):
            hdr += f'{bit:>4}'
        lines.append(f'[dim]{hdr}[/dim]')

        vals = ''
        for bit in range(row_start_bit, row_end_bit - 1, -1):
            bv = (value >> bit) & 1 if value is not None else '-'
            fld, cidx = field_map.get(bit, (None, 0))
            vals += styled(f'{bv:>4}', fld, cidx)
        lines.append(vals)

        labels = ''
        bit = row_start_bit
        while bit >= row_end_bit:
            if bit in field_map:
                fld, cidx = field_map[bit]
                span_low = bit
                while (
                    span_low - 1 >= row_end_bit
                    and (span_low - 1) in field_map
                    and field_map[span_low - 1][0] is fld
                ):
                    span_low -= 1
                char_width = (bit - span_low + 1) * 4
                name = fld.name
                if len(name) > char_width:
                    name = name[: char_width - 1] + '~'
                labels += styled(escape(f'{name:^{char_width}}'), fld, cidx)
                bit = span_low - 1
            else:
                labels += '    '
                bit -= 1
        lines.append(labels)
        lines.append('')

    return lines


class RegisterDetailWidget(Static):
    """Detail view for a register: bit diagram and field table."""

    def __init__(self) -> None:
        super().__init__('', id='register-detail')

    def set_register(self, reg: Register, fmt: ValueFormat) -> None:
        width_bits = reg.effective_size * 8
        lines = [
            f'[bold]{escape(reg.name)}[/bold] @ {reg.address}  '
            f'(bar {reg.effective_bar}, {reg.effective_size} byte{"s" if reg.effective_size > 1 else ""})',
            f'Status: {_status_line(reg)}   Value: {format_node_value(reg, fmt)}',
        ]
        expected = _expected_line(reg, fmt, width_bits)
        if expected:
            lines.append(expected)
        if reg.error is not None:
            lines.append(f'[red]Read error: {escape(str(reg.error))}[/red]')
        if reg.description:
            lines.append(f'[dim]{escape(reg.description)}[/dim]')
        lines.append('')

        lines.extend(bit_diagram(reg))

        if not reg.fields:
            lines.append('[dim]No fields defined[/dim]')
            self.update('\n'.join(lines))
            return

        name_w = max(len('Name'), *(len(f.name) for f in reg.fields))
        bits_w = max(len('Bits'), *(len(f.bit_range) for f in reg.fields))

        hdr = f'  {"Name":<{name_w}}  {"Bits":>{bits_w}}  Value'
        lines.append(f'[bold]{hdr}[/bold]')
        lines.append('─' * len(hdr))

        for idx, field in enumerate(reg.fields):
            color = FIELD_COLORS[idx % len(FIELD_COLORS)]
            mark = marker(field)
            lines.append(
                f'{mark} [{color}]{escape(f"{field.name:<{name_w}}")}[/{color}]  '
                f'{escape(f"{field.bit_range:>{bits_w}}")}  {format_node_value(field, fmt)}'
            )

        self.update('\n'.join(lines))


class FieldDetailWidget(Static):
    """Detail view for a field: highlighted bit diagram + multi-format value."""

    def __init__(self) -> None:
        super().__init__('', id='field-detail')

    def set_field(self, field: Field, fmt: ValueFormat) -> None:
        reg = field.register
        lines: list[str] = []

        where = f'  in {escape(reg.name)} @ {reg.address}' if reg is not None else ''
        lines.append(f'[bold]{escape(field.name)}[/bold] {escape(field.bit_range)}{where}')
        lines.append(f'Status: {_status_line(field)}')
        expected = _expected_line(field, fmt, field.num_bits)
        if expected:
            lines.append(expected)
        lines.append('')

        if reg is not None:
            lines.extend(bit_diagram(reg, highlight=field))

        lines.append('─' * 40)
        value = value_or_none(field)
        if value is not None:
            lines.append(f'Hex: {format_value(value, ValueFormat.HEX, field.num_bits)}')
            lines.append(f'Dec: {format_value(value, ValueFormat.DEC, field.num_bits)}')
            lines.append(f'Bin: {format_value(value, ValueFormat.BIN, field.num_bits)}')
        else:
            lines.append('[dim]No value read[/dim]')

        if field.description:
            lines.append('')
            lines.append(f'[dim]{escape(field.description)}[/dim]')

        self.update('\n'.join(lines))


class BlockDetailWidget(Static):
    """Detail view for a block: description and probe counts."""

    def __init__(self) -> None:
        super().__init__('', id='block-detail')

    def set_block(self, block: Block) -> None:
        regs = list(iter_registers(block))
        lines = [
            f'[bold]{escape(block.name or "<unnamed>")}[/bold]',
            f'Status: {_status_line(block)}',
        ]
        if block.description:
            lines.append(f'[dim]{escape(block.description)}[/dim]')
        lines.append('')
        lines.append(f'  {len(regs)} registers')
        lines.append(f'  {sum(1 for r in regs if r.is_resolved)} read')
        lines.append(f'  {sum(1 for r in regs if r.error is not None)} read errors')
        lines.append(f'  {sum(1 for r in regs if r.is_bad())} bad')

        self.update('\n'.join(lines))


class RootDetailWidget(Static):
    """Detail view for the root node: target and map summary."""

    def __init__(self) -> None:
        super().__init__('', id='root-detail')

    def set_root(self, state: AppState) -> None:
        lines = [
            '[bold]Target[/bold]',
            f'  {escape(state.target_str)}',
            f'  Register map: {escape(state.config_path or "<none>")}',
            f'  Probes: {state.probe_count}',
            '',
        ]

        if state.root is not None:
            regs = list(iter_registers(state.root))
            nfields = sum(len(r.fields) for r in regs)
            lines.append('[bold]Totals[/bold]')
            lines.append(f'  Registers: {len(regs)}')
            lines.append(f'  Fields:    {nfields}')
            lines.append(f'  Bad:       {sum(1 for r in regs if r.is_bad())}')
            lines.append(f'  Failed:    {state.num_failures}')

        self.update('\n'.join(lines))


class DetailPanel(VerticalScroll):
    """Right pane: switches between register, field, block, and root detail views."""

    def compose(self) -> ComposeResult:
        yield RegisterDetailWidget()
        yield FieldDetailWidget()
        yield BlockDetailWidget()
        yield RootDetailWidget()

    def on_mount(self) -> None:
        self._show_only(RootDetailWidget)

    def _show_only(self, widget_type: type) -> None:
        """Show only the specified widget type, hide all others."""
        views: list[type] = [
            RegisterDetailWidget,
            FieldDetailWidget,
            BlockDetailWidget,
            RootDetailWidget,
        ]
        for vt in views:
            self.query_one(vt).display = vt == widget_type

    def set_register(self, reg: Register, fmt: ValueFormat) -> None:
        self._show_only(RegisterDetailWidget)
        self.query_one(RegisterDetailWidget).set_register(reg, fmt)

    def set_field(self, field: Field, fmt: ValueFormat) -> None:
        self._show_only(FieldDetailWidget)
        self.query_one(FieldDetailWidget).set_field(field, fmt)

    def set_block(self, block: Block) -> None:
        self._show_only(BlockDetailWidget)
        self.query_one(BlockDetailWidget).set_block(block)

    def set_root(self, state: AppState) -> None:
        self._show_only(RootDetailWidget)
        self.query_one(RootDetailWidget).set_root(state)
