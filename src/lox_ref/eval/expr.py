from __future__ import annotations

import math
from typing import TYPE_CHECKING

from lark import Token, Tree

from ..runtime import (
    Frame,
    LoxBool,
    LoxList,
    LoxNumber,
    LoxRuntimeError,
    LoxString,
    LoxTypeError,
    LoxValue,
    LoxZeroDivisionError,
)
from .common import require_number, require_numbers
from .helpers import is_truthy, lox_equals

if TYPE_CHECKING:
    from ..evaluator import Interpreter

def eval_literal(n: Tree, frame: Frame, interp: 'Interpreter') -> LoxValue:
    return n.children[1]

def eval_grouping(n: Tree, frame: Frame, interp: 'Interpreter') -> LoxValue:
    return interp.eval_node(n.children[1], frame)

def eval_list(n: Tree, frame: Frame, interp: 'Interpreter') -> LoxList:
    return LoxList([interp.eval_node(elem, frame) for elem in n.children[1:]])

def eval_unary(n: Tree, frame: Frame, interp: 'Interpreter') -> LoxValue:
    op, rhs_node = n.children
    rhs = interp.eval_node(rhs_node, frame)

    match op.type:
        case 'MINUS':
            return LoxNumber(-require_number(op, rhs))
        case 'NEG':
            return LoxBool(not is_truthy(rhs))

    raise LoxRuntimeError(f"Unknown unary operator '{op}'.", op)

def eval_binary(n: Tree, frame: Frame, interp: 'Interpreter') -> LoxValue:
    lhs_node, op, rhs_node = n.children
    lhs = interp.eval_node(lhs_node, frame)
    rhs = interp.eval_node(rhs_node, frame)

    return apply_binary(op, lhs, rhs)

def apply_binary(op: Token, lhs: LoxValue, rhs: LoxValue) -> LoxValue:
    match op.type:
        case 'EQ':
            return LoxBool(lox_equals(lhs, rhs))
        case 'NEQ':
            return LoxBool(not lox_equals(lhs, rhs))
        case 'PLUS':
            return _add(op, lhs, rhs)

    a, b = require_numbers(op, lhs, rhs)

    match op.type:
        case 'MINUS':
            return LoxNumber(a - b)
        case 'STAR':
            return LoxNumber(a * b)
        case 'SLASH':
            if b == 0:
                raise LoxZeroDivisionError("Division by zero.", op)
            return LoxNumber(a / b)
        case 'MOD':
            if b == 0:
                raise LoxZeroDivisionError("Division by zero.", op)
            # truncated remainder: the result takes the sign of the dividend
            return LoxNumber(math.fmod(a, b))
        case 'GT':
            return LoxBool(a > b)
        case 'GTE':
            return LoxBool(a >= b)
        case 'LT':
            return LoxBool(a < b)
        case 'LTE':
            return LoxBool(a <= b)

    raise LoxRuntimeError(f"Unknown operator '{op}'.", op)

def _add(op: Token, lhs: LoxValue, rhs: LoxValue) -> LoxValue:
    match (lhs, rhs):
        case (LoxNumber(value=a), LoxNumber(value=b)):
            return LoxNumber(a + b)
        case (LoxString(value=a), LoxString(value=b)):
            return LoxString(a + b)

    raise LoxTypeError(f"Operands of '{op}' must be two numbers or two strings.", op)

def eval_logical(n: Tree, frame: Frame, interp: 'Interpreter') -> LoxValue:
    """Short-circuit; the result is whichever operand decided it."""
    lhs_node, op, rhs_node = n.children
    lhs = interp.eval_node(lhs_node, frame)

    if op.type == 'OR':
        if is_truthy(lhs):
            return lhs
    elif not is_truthy(lhs):
        return lhs

    return interp.eval_node(rhs_node, frame)

def eval_conditional(n: Tree, frame: Frame, interp: 'Interpreter') -> LoxValue:
    cond_node, _qmark, then_node, else_node = n.children

    if is_truthy(interp.eval_node(cond_node, frame)):
        return interp.eval_node(then_node, frame)

    return interp.eval_node(else_node, frame)

def eval_comma(n: Tree, frame: Frame, interp: 'Interpreter') -> LoxValue:
    lhs_node, _comma, rhs_node = n.children
    interp.eval_node(lhs_node, frame)

    return interp.eval_node(rhs_node, frame)
