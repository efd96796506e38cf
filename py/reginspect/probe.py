"""Reading a register map's live values from a target."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from .errors import DeviceReadError, ProbeError
from .goodexpr import ExprEvalError, ExprNameError, evaluate, expand_expr
from .regmap import Block, Register, iter_registers, walk
from .target import Target

__all__ = [ 'probe', 'ProbeResult', ]

logger = logging.getLogger(__name__)


@dataclass
class ProbeResult:
    root: Block
    registers: list[Register] = field(default_factory=list)
    failures: list[tuple[Register, DeviceReadError]] = field(default_factory=list)

    @property
    def is_bad(self) -> bool:
        return self.root.is_bad()

    @property
    def num_resolved(self) -> int:
        return sum(1 for r in self.registers if r.is_resolved)


def _read(target: Target, reg: Register) -> int | DeviceReadError:
    try:
        return target.read_register(reg.effective_bar, reg.addr, reg.effective_size)
    except DeviceReadError as e:
        return e


def _collect_values(root: Block) -> dict[str, int]:
    values: dict[str, int] = {}
    for _, node in walk(root):
        if isinstance(node, Block) or not node.name or not node.is_resolved:
            continue
        values[node.name] = node.value
    return values


def _evaluate_exprs(root: Block) -> None:
    values = _collect_values(root)

    for _, node in walk(root):
        expr = getattr(node, 'goodexpr', None)
        if expr is None:
            continue

        expr = expand_expr(expr, node.name)
        try:
            node.expr_ok = evaluate(expr, values)
        except ExprNameError as e:
            logger.warning("'%s': goodexpr %r refers to %s, which has no value", node.name, expr, e)
            node.expr_ok = False
        except ExprEvalError as e:
            logger.warning("'%s': goodexpr %r failed: %s", node.name, expr, e)
            node.expr_ok = False


def probe(target: Target, root: Block, jobs: int = 1) -> ProbeResult:
    """Read every register below root, one read per register.

    A failed read leaves that register unresolved and the walk carries on.
    Once all registers were attempted, ProbeError is raised if any read
    failed; its 'result' holds the ProbeResult.
    """
    result = ProbeResult(root, list(iter_registers(root)))

    for reg in result.registers:
        reg.reset()

    if jobs > 1 and len(result.registers) > 1:
        with ThreadPoolExecutor(max_workers=jobs) as pool:
            outcomes = list(pool.map(lambda r: _read(target, r), result.registers))
    else:
        outcomes = [_read(target, r) for r in result.registers]

    for reg, outcome in zip(result.registers, outcomes):
        if isinstance(outcome, DeviceReadError):
            logger.warning('%s %s: read failed: %s', reg.name or '<unnamed>', reg.address, outcome)
            reg.fail(outcome)
            result.failures.append((reg, outcome))
        else:
            logger.debug('%s %s = %#x', reg.name or '<unnamed>', reg.address, outcome)
            reg.resolve(outcome)

    _evaluate_exprs(root)

    logger.info('probed %d registers: %d read, %d failed', len(result.registers),
                result.num_resolved, len(result.failures))

    if result.failures:
        raise ProbeError(result.failures, result)

    return result

