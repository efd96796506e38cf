"""Evaluation of 'goodexpr' checks.

A goodexpr is a boolean expression over the probed values of named
registers and fields, e.g. ``STATUS & 0x3 == 0x1 and ERRORS < 4``. A
``%s`` in the expression stands for the name of the node that carries it.
Only a small, side-effect free subset of Python expression syntax is
accepted.
"""

from __future__ import annotations

import ast
import operator
from typing import Mapping

from .errors import ConfigValidationError

__all__ = [ 'compile_expr', 'expand_expr', 'evaluate', 'ExprEvalError', 'ExprNameError', ]

_BINOPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.LShift: operator.lshift,
    ast.RShift: operator.rshift,
    ast.BitAnd: operator.and_,
    ast.BitOr: operator.or_,
    ast.BitXor: operator.xor,
}

_UNARYOPS = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
    ast.Invert: operator.invert,
    ast.Not: operator.not_,
}

_CMPOPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}


class ExprNameError(LookupError):
    """Raised when an expression refers to a name without a value."""
    pass


class ExprEvalError(ValueError):
    """Raised when an operator fails on the probed values, e.g. a negative
    shift count or a division by zero."""
    pass


def expand_expr(expr: str, name: str) -> str:
    return expr.replace('%s', name)


def _check(node: ast.AST, expr: str) -> None:
    if isinstance(node, ast.Expression):
        _check(node.body, expr)
    elif isinstance(node, ast.Constant):
        if not isinstance(node.value, int):
            raise ConfigValidationError(f'goodexpr {expr!r}: only integer constants are allowed')
    elif isinstance(node, ast.Name):
        pass
    elif isinstance(node, ast.BinOp):
        if type(node.op) not in _BINOPS:
            raise ConfigValidationError(f'goodexpr {expr!r}: operator {type(node.op).__name__} not allowed')
        _check(node.left, expr)
        _check(node.right, expr)
    elif isinstance(node, ast.UnaryOp):
        if type(node.op) not in _UNARYOPS:
            raise ConfigValidationError(f'goodexpr {expr!r}: operator {type(node.op).__name__} not allowed')
        _check(node.operand, expr)
    elif isinstance(node, ast.BoolOp):
        for v in node.values:
            _check(v, expr)
    elif isinstance(node, ast.Compare):
        for op in node.ops:
            if type(op) not in _CMPOPS:
                raise ConfigValidationError(f'goodexpr {expr!r}: comparison {type(op).__name__} not allowed')
        _check(node.left, expr)
        for c in node.comparators:
            _check(c, expr)
    elif isinstance(node, ast.IfExp):
        _check(node.test, expr)
        _check(node.body, expr)
        _check(node.orelse, expr)
    else:
        raise ConfigValidationError(f'goodexpr {expr!r}: {type(node).__name__} not allowed')


def compile_expr(expr: str) -> ast.Expression:
    """Parse and vet an (already expanded) expression."""
    try:
        tree = ast.parse(expr.strip(), mode='eval')
    except SyntaxError as e:
        raise ConfigValidationError(f'goodexpr {expr!r}: {e.msg}') from e

    _check(tree, expr)
    return tree


def _eval(node: ast.AST, values: Mapping[str, int]):
    if isinstance(node, ast.Expression):
        return _eval(node.body, values)
    if isinstance(node, ast.Constant):
        return node.value
    if isinstance(node, ast.Name):
        if node.id not in values:
            raise ExprNameError(node.id)
        return values[node.id]
    if isinstance(node, ast.BinOp):
        return _BINOPS[type(node.op)](_eval(node.left, values), _eval(node.right, values))
    if isinstance(node, ast.UnaryOp):
        return _UNARYOPS[type(node.op)](_eval(node.operand, values))
    if isinstance(node, ast.BoolOp):
        if isinstance(node.op, ast.And):
            result = True
            for v in node.values:
                result = _eval(v, values)
                if not result:
                    return result
            return result
        result = False
        for v in node.values:
            result = _eval(v, values)
            if result:
                return result
        return result
    if isinstance(node, ast.Compare):
        left = _eval(node.left, values)
        for op, comp in zip(node.ops, node.comparators):
            right = _eval(comp, values)
            if not _CMPOPS[type(op)](left, right):
                return False
            left = right
        return True
    if isinstance(node, ast.IfExp):
        if _eval(node.test, values):
            return _eval(node.body, values)
        return _eval(node.orelse, values)
    raise ConfigValidationError(f'unsupported expression node {type(node).__name__}')


def evaluate(expr: str, values: Mapping[str, int]) -> bool:
    """Evaluate an expanded expression against a name -> value mapping.

    Raises ExprNameError if a referenced name has no value and
    ExprEvalError if an operator fails on the values.
    """
    tree = compile_expr(expr)
    try:
        return bool(_eval(tree, values))
    except (ArithmeticError, ValueError, MemoryError) as e:
        raise ExprEvalError(str(e)) from e
