"""Loading and dumping register maps in YAML.

A register map document is either a single block or a list of blocks::

    - name: CTRL
      desc: Control block
      regs:
        - addr: 0x1000
          name: STATUS
          good: 0x5
          fields:
            - bits: [1, 0]
              name: STATE
            - width: 8
              name: LOW

Keys left out take their defaults: empty name and description, no
good-value check, no children, standard bar and read size. Unknown keys
are ignored.
"""

from __future__ import annotations

import datetime
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from .errors import ConfigParseError, ConfigValidationError
from .goodexpr import compile_expr, expand_expr
from .regmap import Block, Field, Node, Register, walk

__all__ = [ 'parse', 'dump', 'load', 'save', 'to_data', ]


class HexInt(int):
    """int dumped in hexadecimal notation."""
    pass


class FlowList(list):
    """list dumped in flow style, e.g. [1, 0]."""
    pass


class _Dumper(yaml.SafeDumper):
    pass


def _represent_hex(dumper: yaml.SafeDumper, data: HexInt):
    return dumper.represent_scalar('tag:yaml.org,2002:int', f'{int(data):#x}')


def _represent_flow(dumper: yaml.SafeDumper, data: FlowList):
    return dumper.represent_sequence('tag:yaml.org,2002:seq', list(data), flow_style=True)


_Dumper.add_representer(HexInt, _represent_hex)
_Dumper.add_representer(FlowList, _represent_flow)


# --- parsing ---

def _is_int(v) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _get_str(raw: dict[str, Any], key: str, loc: str) -> str:
    v = raw.get(key)
    if v is None:
        return ''
    if isinstance(v, bool) or not isinstance(v, (str, int, float, datetime.date)):
        raise ConfigParseError(f'{loc}: {key} must be a string, got {type(v).__name__}')
    # YAML turns unquoted names like 0x10, 1e3 or 2024-01-01 into numbers and dates
    return str(v)


def _get_int(raw: dict[str, Any], key: str, loc: str, required: bool = False) -> int | None:
    v = raw.get(key)
    if v is None:
        if required:
            raise ConfigParseError(f'{loc}: missing required key {key!r}')
        return None
    if not _is_int(v):
        raise ConfigParseError(f'{loc}: {key} must be an integer, got {v!r}')
    return v


def _get_list(raw: dict[str, Any], key: str, loc: str) -> list:
    v = raw.get(key)
    if v is None:
        return []
    if not isinstance(v, list):
        raise ConfigParseError(f'{loc}: {key} must be a list, got {type(v).__name__}')
    return v


def _get_expr(raw: dict[str, Any], loc: str) -> str | None:
    v = raw.get('goodexpr')
    if v is None or v == '':
        return None
    if not isinstance(v, str):
        raise ConfigParseError(f'{loc}: goodexpr must be a string, got {type(v).__name__}')
    return v


def _expect_mapping(raw, loc: str) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise ConfigParseError(f'{loc}: expected a mapping, got {type(raw).__name__}')
    return raw


def _build_field(raw, loc: str) -> Field:
    raw = _expect_mapping(raw, loc)
    name = _get_str(raw, 'name', loc)
    loc = f'{loc}/`{name}`' if name else loc

    bits = raw.get('bits')
    if bits is not None:
        if not isinstance(bits, list) or not all(_is_int(b) for b in bits):
            raise ConfigParseError(f'{loc}: bits must be a list of integers, got {bits!r}')

    return Field(
        name=name,
        description=_get_str(raw, 'desc', loc),
        bits=bits,
        width=_get_int(raw, 'width', loc),
        good=_get_int(raw, 'good', loc),
        goodexpr=_get_expr(raw, loc),
    )


def _build_register(raw, loc: str) -> Register:
    raw = _expect_mapping(raw, loc)
    name = _get_str(raw, 'name', loc)
    loc = f'{loc}/`{name}`' if name else loc

    reg = Register(
        addr=_get_int(raw, 'addr', loc, required=True),
        name=name,
        description=_get_str(raw, 'desc', loc),
        good=_get_int(raw, 'good', loc),
        goodexpr=_get_expr(raw, loc),
        bar=_get_int(raw, 'bar', loc),
        size=_get_int(raw, 'size', loc),
    )

    for idx, fraw in enumerate(_get_list(raw, 'fields', loc)):
        reg.add_field(_build_field(fraw, f'{loc}/fields[{idx}]'))

    return reg


def _build_block(raw, loc: str) -> Block:
    raw = _expect_mapping(raw, loc)
    name = _get_str(raw, 'name', loc)
    loc = f'`{name}`' if name else loc

    regs = [_build_register(r, f'{loc}/regs[{idx}]') for idx, r in enumerate(_get_list(raw, 'regs', loc))]
    blocks = [_build_block(b, f'{loc}/blocks[{idx}]') for idx, b in enumerate(_get_list(raw, 'blocks', loc))]

    return Block(name=name, description=_get_str(raw, 'desc', loc), registers=regs, blocks=blocks)


def _check_exprs(root: Block) -> None:
    for _, node in walk(root):
        expr = getattr(node, 'goodexpr', None)
        if expr is None:
            continue
        try:
            compile_expr(expand_expr(expr, node.name))
        except ConfigValidationError as e:
            raise ConfigValidationError(f"'{node.name}': {e}") from e


def parse(text: str) -> Block:
    """Build a register map tree from YAML text.

    A list document produces an unnamed root block holding the listed
    blocks.

    Raises:
        ConfigParseError: on YAML syntax errors or structural problems
        ConfigValidationError: on inconsistent definitions
    """
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigParseError(f'Failed to parse register map: {exc}') from exc

    if doc is None:
        raise ConfigParseError('Register map is empty')

    if isinstance(doc, list):
        root = Block(blocks=[_build_block(b, f'blocks[{idx}]') for idx, b in enumerate(doc)])
    elif isinstance(doc, dict):
        root = _build_block(doc, 'block')
    else:
        raise ConfigParseError(f'Register map must be a block or a list of blocks, got {type(doc).__name__}')

    _check_exprs(root)

    return root


def load(path: str | Path) -> Block:
    p = Path(path)
    try:
        text = p.read_text(encoding='utf-8')
    except OSError as exc:
        raise ConfigParseError(f'Failed to read register map {p}: {exc}') from exc

    return parse(text)


# --- dumping ---

def _field_to_data(f: Field, values: bool) -> dict[str, Any]:
    d: dict[str, Any] = {}
    if f.bits is not None:
        d['bits'] = FlowList(f.bits)
    if f.width is not None:
        d['width'] = f.width
    if f.name:
        d['name'] = f.name
    if f.description:
        d['desc'] = f.description
    if f.good is not None:
        d['good'] = HexInt(f.good)
    if f.goodexpr is not None:
        d['goodexpr'] = f.goodexpr
    if values and f.is_resolved:
        d['value'] = HexInt(f.value)
    return d


def _register_to_data(r: Register, values: bool) -> dict[str, Any]:
    d: dict[str, Any] = {'addr': HexInt(r.addr)}
    if r.name:
        d['name'] = r.name
    if r.description:
        d['desc'] = r.description
    if r.good is not None:
        d['good'] = HexInt(r.good)
    if r.goodexpr is not None:
        d['goodexpr'] = r.goodexpr
    if r.bar is not None:
        d['bar'] = r.bar
    if r.size is not None:
        d['size'] = r.size
    if r.fields:
        d['fields'] = [_field_to_data(f, values) for f in r.fields]
    if values and r.is_resolved:
        d['value'] = HexInt(r.value)
    return d


def _block_to_data(b: Block, values: bool) -> dict[str, Any]:
    d: dict[str, Any] = {}
    if b.name:
        d['name'] = b.name
    if b.description:
        d['desc'] = b.description
    if b.registers:
        d['regs'] = [_register_to_data(r, values) for r in b.registers]
    if b.blocks:
        d['blocks'] = [_block_to_data(sb, values) for sb in b.blocks]
    return d


def _is_list_root(b: Block) -> bool:
    return not b.name and not b.description and not b.registers and bool(b.blocks)


def to_data(node: Node, values: bool = False):
    """Plain data (dicts, lists, ints, strs) for a node, as dump() writes it.

    Two trees with equal to_data() are structurally equal.
    """
    if isinstance(node, Block):
        if _is_list_root(node):
            return [_block_to_data(b, values) for b in node.blocks]
        return _block_to_data(node, values)
    if isinstance(node, Register):
        return _register_to_data(node, values)
    if isinstance(node, Field):
        return _field_to_data(node, values)
    raise TypeError(f'Unsupported node type: {type(node)}')


def dump(root: Block, values: bool = False) -> str:
    """Serialize a tree back to YAML, omitting keys at their defaults.

    With values=True the resolved register and field values are written as
    well. parse() ignores them.
    """
    return yaml.dump(to_data(root, values), Dumper=_Dumper, sort_keys=False,
                     default_flow_style=False, allow_unicode=True)


def save(root: Block, path: str | Path, values: bool = False) -> None:
    Path(path).write_text(dump(root, values), encoding='utf-8')
